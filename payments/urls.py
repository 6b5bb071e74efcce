from django.urls import path
from . import views

urlpatterns = [
    path('<uuid:project_id>/payment-method/', views.SelectPaymentMethodView.as_view(), name='project-payment-method'),
    path('<uuid:project_id>/pay-full/', views.FullPaymentView.as_view(), name='project-pay-full'),
    path('<uuid:project_id>/pay-downpayment/', views.DownpaymentView.as_view(), name='project-pay-downpayment'),
    path('<uuid:project_id>/pay-installment/', views.PayInstallmentView.as_view(), name='project-pay-installment'),
    path('<uuid:project_id>/installments/', views.InstallmentScheduleView.as_view(), name='project-installments'),
    path('<uuid:project_id>/payment/', views.ProjectPaymentView.as_view(), name='project-payment'),
]
