from django.urls import path

from installations.views import QualityCheckView
from payments.views import ReleasePaymentView
from . import views

urlpatterns = [
    path('projects/', views.AdminProjectListView.as_view(), name='admin-project-list'),
    path('projects/<uuid:project_id>/release-payment/', ReleasePaymentView.as_view(), name='admin-release-payment'),
    path('projects/<uuid:project_id>/quality-check/', QualityCheckView.as_view(), name='admin-quality-check'),
    path('projects/<uuid:project_id>/hold/', views.AdminProjectHoldView.as_view(), name='admin-project-hold'),
    path('projects/<uuid:project_id>/resume/', views.AdminProjectResumeView.as_view(), name='admin-project-resume'),

    # Reviews
    path('reviews/', views.AdminReviewListView.as_view(), name='admin-review-list'),
    path('reviews/<uuid:review_id>/moderate/', views.AdminModerateReviewView.as_view(), name='admin-review-moderate'),
    path('contractors/<uuid:contractor_id>/reviews/', views.AdminContractorReviewsView.as_view(), name='admin-contractor-reviews'),
]
