from django.contrib import admin

from .models import InstallmentSchedule, PaymentTransaction, ProjectPayment


class InstallmentInline(admin.TabularInline):
    model = InstallmentSchedule
    extra = 0
    readonly_fields = ('installment_number', 'amount', 'due_date', 'paid_at', 'payment_reference')


@admin.register(ProjectPayment)
class ProjectPaymentAdmin(admin.ModelAdmin):
    list_display = ('project', 'payment_method', 'payment_status', 'total_amount', 'paid_amount',
                    'remaining_amount', 'admin_paid_contractor')
    list_filter = ('payment_method', 'payment_status', 'admin_paid_contractor')
    search_fields = ('payment_reference', 'project__id')
    inlines = [InstallmentInline]


@admin.register(PaymentTransaction)
class PaymentTransactionAdmin(admin.ModelAdmin):
    list_display = ('transaction_reference', 'transaction_type', 'amount', 'status', 'created_at')
    list_filter = ('transaction_type', 'status')
    search_fields = ('transaction_reference',)
