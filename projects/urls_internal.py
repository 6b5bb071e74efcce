from django.urls import path
from . import views_internal

urlpatterns = [
    path('projects/<uuid:project_id>/info/', views_internal.InternalProjectInfoView.as_view(), name='internal-project-info'),
    path('projects/<uuid:project_id>/status/', views_internal.InternalProjectStatusView.as_view(), name='internal-project-status'),
    path('projects/<uuid:project_id>/timeline/', views_internal.InternalTimelineView.as_view(), name='internal-project-timeline'),
]
