import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('projects', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='ProjectPayment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('payment_method', models.CharField(choices=[('single_pay', 'Single Payment'), ('bnpl', 'Buy Now Pay Later')], max_length=20)),
                ('payment_status', models.CharField(choices=[('pending', 'Pending'), ('partially_paid', 'Partially Paid'), ('completed', 'Completed')], default='pending', max_length=20)),
                ('total_amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('downpayment_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('paid_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('remaining_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('late_fees_paid', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('number_of_installments', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('monthly_emi', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('credit_deducted', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('payment_reference', models.CharField(blank=True, default='', max_length=64)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('admin_paid_contractor', models.BooleanField(default=False)),
                ('admin_payment_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('admin_paid_at', models.DateTimeField(blank=True, null=True)),
                ('admin_payment_reference', models.CharField(blank=True, default='', max_length=64)),
                ('admin_payment_notes', models.TextField(blank=True, default='')),
                ('contractor_bank_name', models.CharField(blank=True, default='', max_length=120)),
                ('contractor_iban', models.CharField(blank=True, default='', max_length=34)),
                ('contractor_account_holder', models.CharField(blank=True, default='', max_length=120)),
                ('released_by_id', models.CharField(blank=True, default='', max_length=64)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('project', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='payment', to='projects.project')),
            ],
            options={
                'db_table': 'project_payments',
                'indexes': [
                    models.Index(fields=['payment_status'], name='project_pay_payment_7c4e12_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='InstallmentSchedule',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('installment_number', models.PositiveSmallIntegerField()),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('due_date', models.DateTimeField()),
                ('status', models.CharField(choices=[('upcoming', 'Upcoming'), ('paid', 'Paid'), ('overdue', 'Overdue')], default='upcoming', max_length=20)),
                ('paid_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('paid_at', models.DateTimeField(blank=True, null=True)),
                ('payment_reference', models.CharField(blank=True, default='', max_length=64)),
                ('overdue_days', models.PositiveIntegerField(default=0)),
                ('late_fee', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('payment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='installments', to='payments.projectpayment')),
            ],
            options={
                'db_table': 'installment_schedules',
                'ordering': ['installment_number'],
                'constraints': [
                    models.UniqueConstraint(fields=('payment', 'installment_number'), name='unique_installment_per_payment'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PaymentTransaction',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('transaction_type', models.CharField(choices=[('full_payment', 'Full Payment'), ('downpayment', 'Downpayment'), ('installment', 'Installment')], max_length=20)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('status', models.CharField(choices=[('completed', 'Completed'), ('failed', 'Failed')], default='completed', max_length=20)),
                ('transaction_reference', models.CharField(max_length=64, unique=True)),
                ('metadata', models.JSONField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('installment', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='transactions', to='payments.installmentschedule')),
                ('payment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='transactions', to='payments.projectpayment')),
            ],
            options={
                'db_table': 'payment_transactions',
                'ordering': ['-created_at'],
            },
        ),
    ]
