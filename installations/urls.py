from django.urls import path
from . import views

urlpatterns = [
    path('<uuid:project_id>/schedule-installation/', views.ScheduleInstallationView.as_view(), name='project-schedule-installation'),
    path('<uuid:project_id>/start-installation/', views.StartInstallationView.as_view(), name='project-start-installation'),
    path('<uuid:project_id>/complete-installation/', views.CompleteInstallationView.as_view(), name='project-complete-installation'),
    path('<uuid:project_id>/resend-completion-code/', views.ResendCompletionCodeView.as_view(), name='project-resend-completion-code'),
    path('<uuid:project_id>/verify-completion/', views.VerifyCompletionView.as_view(), name='project-verify-completion'),
    path('<uuid:project_id>/installation/', views.InstallationDetailView.as_view(), name='project-installation'),
    path('<uuid:project_id>/documents/', views.ProjectDocumentsView.as_view(), name='project-documents'),
]
