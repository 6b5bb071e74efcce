from django.urls import path
from . import views

urlpatterns = [
    path('projects/', views.ContractorProjectListView.as_view(), name='contractor-project-list'),
    path('projects/<uuid:project_id>/', views.ProjectDetailView.as_view(), name='contractor-project-detail'),
    path('reviews/', views.ContractorReviewListView.as_view(), name='contractor-review-list'),
]
