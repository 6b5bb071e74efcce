import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


STATUS_CHOICES = [
    ('payment_pending', 'Payment Pending'),
    ('payment_processing', 'Payment Processing'),
    ('payment_completed', 'Payment Completed'),
    ('installation_scheduled', 'Installation Scheduled'),
    ('installation_in_progress', 'Installation In Progress'),
    ('installation_completed', 'Installation Completed'),
    ('completed', 'Completed'),
    ('cancelled', 'Cancelled'),
    ('on_hold', 'On Hold'),
]

EVENT_TYPE_CHOICES = [
    ('project_created', 'Project Created'),
    ('project_updated', 'Project Updated'),
    ('project_cancelled', 'Project Cancelled'),
    ('project_on_hold', 'Project On Hold'),
    ('project_resumed', 'Project Resumed'),
    ('status_changed', 'Status Changed'),
    ('payment_method_selected', 'Payment Method Selected'),
    ('payment_completed', 'Payment Completed'),
    ('downpayment_received', 'Downpayment Received'),
    ('installment_paid', 'Installment Paid'),
    ('installation_scheduled', 'Installation Scheduled'),
    ('installation_started', 'Installation Started'),
    ('installation_completed', 'Installation Completed'),
    ('installation_verified', 'Installation Verified'),
    ('quality_check', 'Quality Check'),
    ('review_submitted', 'Review Submitted'),
    ('project_completed', 'Project Completed'),
    ('admin_action', 'Admin Action'),
    ('service_event', 'Service Event'),
]

RATING_VALIDATORS = [
    django.core.validators.MinValueValidator(1),
    django.core.validators.MaxValueValidator(5),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Project',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('user_id', models.UUIDField(db_index=True, help_text='Owning user (identity service id)')),
                ('contractor_id', models.UUIDField(db_index=True, help_text='Assigned contractor')),
                ('quote_id', models.CharField(help_text='Converted quote; one project per quote', max_length=64, unique=True)),
                ('request_id', models.CharField(blank=True, default='', help_text='Originating quote request', max_length=64)),
                ('total_amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('system_size_kwp', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=8)),
                ('project_name', models.CharField(blank=True, default='', max_length=200)),
                ('description', models.TextField(blank=True, default='')),
                ('property_address', models.CharField(blank=True, default='', max_length=500)),
                ('preferred_installation_date', models.DateTimeField(blank=True, null=True)),
                ('actual_installation_date', models.DateTimeField(blank=True, null=True)),
                ('status', models.CharField(choices=STATUS_CHOICES, default='payment_pending', max_length=30)),
                ('held_from_status', models.CharField(blank=True, choices=STATUS_CHOICES, default='', help_text='Status to restore when an on-hold project is resumed', max_length=30)),
                ('hold_reason', models.TextField(blank=True, default='')),
                ('cancellation_reason', models.TextField(blank=True, default='')),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'projects',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['user_id', '-created_at'], name='projects_user_id_0e7c1a_idx'),
                    models.Index(fields=['contractor_id', '-created_at'], name='projects_contrac_5b2d4e_idx'),
                    models.Index(fields=['status'], name='projects_status_8f3a21_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ProjectTimeline',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('event_type', models.CharField(choices=EVENT_TYPE_CHOICES, max_length=50)),
                ('title', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True, default='')),
                ('created_by_id', models.CharField(blank=True, default='', max_length=64)),
                ('created_by_role', models.CharField(blank=True, default='system', max_length=30)),
                ('metadata', models.JSONField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='timeline', to='projects.project')),
            ],
            options={
                'db_table': 'project_timeline',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['project', '-created_at'], name='project_tim_project_6d1f0b_idx'),
                    models.Index(fields=['event_type'], name='project_tim_event_t_2c9e47_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ProjectReview',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('user_id', models.UUIDField()),
                ('contractor_id', models.UUIDField(db_index=True)),
                ('rating', models.PositiveSmallIntegerField(validators=RATING_VALIDATORS)),
                ('review_title', models.CharField(blank=True, default='', max_length=100)),
                ('review_text', models.TextField(blank=True, default='')),
                ('quality_rating', models.PositiveSmallIntegerField(blank=True, null=True, validators=RATING_VALIDATORS)),
                ('communication_rating', models.PositiveSmallIntegerField(blank=True, null=True, validators=RATING_VALIDATORS)),
                ('timeliness_rating', models.PositiveSmallIntegerField(blank=True, null=True, validators=RATING_VALIDATORS)),
                ('professionalism_rating', models.PositiveSmallIntegerField(blank=True, null=True, validators=RATING_VALIDATORS)),
                ('value_rating', models.PositiveSmallIntegerField(blank=True, null=True, validators=RATING_VALIDATORS)),
                ('would_recommend', models.BooleanField(blank=True, null=True)),
                ('photo_urls', models.JSONField(blank=True, default=list)),
                ('has_photos', models.BooleanField(default=False)),
                ('contractor_response', models.TextField(blank=True, default='')),
                ('contractor_responded_at', models.DateTimeField(blank=True, null=True)),
                ('is_visible', models.BooleanField(default=True)),
                ('is_flagged', models.BooleanField(default=False)),
                ('flag_reason', models.TextField(blank=True, default='')),
                ('moderated_by', models.CharField(blank=True, default='', max_length=64)),
                ('moderated_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('project', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='review', to='projects.project')),
            ],
            options={
                'db_table': 'project_reviews',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['contractor_id', '-created_at'], name='project_rev_contrac_4a7b90_idx'),
                    models.Index(fields=['rating'], name='project_rev_rating_1e5c3d_idx'),
                ],
            },
        ),
    ]
