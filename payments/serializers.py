from decimal import Decimal

from rest_framework import serializers

from .calculator import BNPL, SINGLE_PAY
from .models import InstallmentSchedule, PaymentTransaction, ProjectPayment


# ---------------- Output ----------------

class InstallmentScheduleSerializer(serializers.ModelSerializer):
    class Meta:
        model = InstallmentSchedule
        fields = [
            'id',
            'installment_number',
            'amount',
            'due_date',
            'status',
            'paid_amount',
            'paid_at',
            'payment_reference',
            'overdue_days',
            'late_fee',
        ]


class PaymentTransactionSerializer(serializers.ModelSerializer):
    installment_number = serializers.IntegerField(source='installment.installment_number', read_only=True, default=None)

    class Meta:
        model = PaymentTransaction
        fields = [
            'id',
            'transaction_type',
            'amount',
            'status',
            'transaction_reference',
            'installment_number',
            'created_at',
        ]


class ProjectPaymentSerializer(serializers.ModelSerializer):
    project_id = serializers.UUIDField(read_only=True)
    installments = InstallmentScheduleSerializer(many=True, read_only=True)

    class Meta:
        model = ProjectPayment
        fields = [
            'id',
            'project_id',
            'payment_method',
            'payment_status',
            'total_amount',
            'downpayment_amount',
            'paid_amount',
            'remaining_amount',
            'late_fees_paid',
            'number_of_installments',
            'monthly_emi',
            'credit_deducted',
            'payment_reference',
            'completed_at',
            'admin_paid_contractor',
            'admin_payment_amount',
            'admin_paid_at',
            'admin_payment_reference',
            'installments',
            'created_at',
            'updated_at',
        ]


# ---------------- Input ----------------

class SelectPaymentMethodSerializer(serializers.Serializer):
    payment_method = serializers.ChoiceField(choices=[SINGLE_PAY, BNPL])
    downpayment_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, min_value=Decimal('0.00'), default=Decimal('0.00')
    )
    number_of_installments = serializers.IntegerField(required=False, allow_null=True, min_value=1)

    def validate(self, attrs):
        if attrs['payment_method'] == BNPL and not attrs.get('number_of_installments'):
            raise serializers.ValidationError({'number_of_installments': 'This field is required for BNPL.'})
        return attrs


class AmountSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))


class PayInstallmentSerializer(serializers.Serializer):
    installment_id = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))


class ReleasePaymentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    bank_name = serializers.CharField(max_length=120)
    iban = serializers.CharField(max_length=34)
    account_holder = serializers.CharField(max_length=120)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_iban(self, value):
        cleaned = value.replace(' ', '').upper()
        if len(cleaned) < 15 or not cleaned[:2].isalpha():
            raise serializers.ValidationError('Enter a valid IBAN.')
        return cleaned
