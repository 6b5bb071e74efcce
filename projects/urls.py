from django.urls import path
from . import views

urlpatterns = [
    path('', views.ProjectListCreateView.as_view(), name='project-list-create'),
    path('<uuid:project_id>/', views.ProjectDetailView.as_view(), name='project-detail'),
    path('<uuid:project_id>/cancel/', views.ProjectCancelView.as_view(), name='project-cancel'),
    path('<uuid:project_id>/timeline/', views.ProjectTimelineView.as_view(), name='project-timeline'),

    # Reviews
    path('<uuid:project_id>/review/', views.ProjectReviewView.as_view(), name='project-review'),
    path('<uuid:project_id>/review/respond/', views.ReviewRespondView.as_view(), name='project-review-respond'),
]
