import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from projects.models import Project
from .calculator import BNPL, SINGLE_PAY, calculate_late_fee, calculate_overdue_days


# ========================================
# PROJECT PAYMENT
# ========================================

class ProjectPayment(models.Model):
    """
    How the owner pays for a project. One per project.

    ``paid_amount + remaining_amount == total_amount`` holds after every
    write; late fees are kept apart in ``late_fees_paid``.
    """

    PAYMENT_METHOD_CHOICES = [
        (SINGLE_PAY, 'Single Payment'),
        (BNPL, 'Buy Now Pay Later'),
    ]

    PENDING = 'pending'
    PARTIALLY_PAID = 'partially_paid'
    COMPLETED = 'completed'

    PAYMENT_STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (PARTIALLY_PAID, 'Partially Paid'),
        (COMPLETED, 'Completed'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    project = models.OneToOneField(Project, on_delete=models.CASCADE, related_name='payment')

    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default=PENDING)

    total_amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    downpayment_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    remaining_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    late_fees_paid = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    # BNPL only
    number_of_installments = models.PositiveSmallIntegerField(null=True, blank=True)
    monthly_emi = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    credit_deducted = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    payment_reference = models.CharField(max_length=64, blank=True, default='')
    completed_at = models.DateTimeField(null=True, blank=True)

    # Release of funds to the contractor
    admin_paid_contractor = models.BooleanField(default=False)
    admin_payment_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    admin_paid_at = models.DateTimeField(null=True, blank=True)
    admin_payment_reference = models.CharField(max_length=64, blank=True, default='')
    admin_payment_notes = models.TextField(blank=True, default='')
    contractor_bank_name = models.CharField(max_length=120, blank=True, default='')
    contractor_iban = models.CharField(max_length=34, blank=True, default='')
    contractor_account_holder = models.CharField(max_length=120, blank=True, default='')
    released_by_id = models.CharField(max_length=64, blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'project_payments'
        indexes = [
            models.Index(fields=['payment_status'], name='project_pay_payment_7c4e12_idx'),
        ]

    def __str__(self):
        return f"{self.payment_method} payment for {self.project_id} ({self.payment_status})"

    @property
    def is_bnpl(self):
        return self.payment_method == BNPL

    @property
    def downpayment_settled(self):
        if self.downpayment_amount <= 0:
            return True
        return self.transactions.filter(transaction_type=PaymentTransaction.DOWNPAYMENT).exists()


# ========================================
# INSTALLMENT SCHEDULE
# ========================================

class InstallmentSchedule(models.Model):
    UPCOMING = 'upcoming'
    PAID = 'paid'
    OVERDUE = 'overdue'

    STATUS_CHOICES = [
        (UPCOMING, 'Upcoming'),
        (PAID, 'Paid'),
        (OVERDUE, 'Overdue'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    payment = models.ForeignKey(ProjectPayment, on_delete=models.CASCADE, related_name='installments')
    installment_number = models.PositiveSmallIntegerField()
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    due_date = models.DateTimeField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=UPCOMING)

    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    payment_reference = models.CharField(max_length=64, blank=True, default='')
    overdue_days = models.PositiveIntegerField(default=0)
    late_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'installment_schedules'
        ordering = ['installment_number']
        constraints = [
            models.UniqueConstraint(fields=['payment', 'installment_number'], name='unique_installment_per_payment'),
        ]

    def __str__(self):
        return f"Installment {self.installment_number} of {self.payment_id}: {self.amount} ({self.status})"

    def refresh_overdue(self, today=None, save=True):
        """
        Recompute overdue days and late fee for an unpaid installment.
        Returns True when anything changed.
        """
        if self.status == self.PAID:
            return False

        days = calculate_overdue_days(self.due_date, today)
        fee = calculate_late_fee(self.amount, days)
        new_status = self.OVERDUE if days > 0 else self.UPCOMING
        changed = (days, fee, new_status) != (self.overdue_days, self.late_fee, self.status)

        self.overdue_days = days
        self.late_fee = fee
        self.status = new_status
        if changed and save:
            self.save(update_fields=['overdue_days', 'late_fee', 'status', 'updated_at'])
        return changed


# ========================================
# PAYMENT TRANSACTIONS
# ========================================

class PaymentTransaction(models.Model):
    """
    One row per successful gateway charge.
    """

    FULL_PAYMENT = 'full_payment'
    DOWNPAYMENT = 'downpayment'
    INSTALLMENT = 'installment'

    TRANSACTION_TYPE_CHOICES = [
        (FULL_PAYMENT, 'Full Payment'),
        (DOWNPAYMENT, 'Downpayment'),
        (INSTALLMENT, 'Installment'),
    ]

    STATUS_CHOICES = [
        ('completed', 'Completed'),
        ('failed', 'Failed'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    payment = models.ForeignKey(ProjectPayment, on_delete=models.CASCADE, related_name='transactions')
    installment = models.ForeignKey(
        InstallmentSchedule,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='transactions',
    )
    transaction_type = models.CharField(max_length=20, choices=TRANSACTION_TYPE_CHOICES)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='completed')
    transaction_reference = models.CharField(max_length=64, unique=True)
    metadata = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'payment_transactions'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.transaction_type} {self.amount} ({self.transaction_reference})"
