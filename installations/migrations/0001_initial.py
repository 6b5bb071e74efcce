import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('projects', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='ProjectInstallation',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('status', models.CharField(choices=[('scheduled', 'Scheduled'), ('in_progress', 'In Progress'), ('awaiting_verification', 'Awaiting Verification'), ('verified', 'Verified')], default='scheduled', max_length=30)),
                ('scheduled_date', models.DateTimeField()),
                ('scheduled_time_slot', models.CharField(blank=True, choices=[('morning', 'Morning (8AM - 12PM)'), ('afternoon', 'Afternoon (12PM - 4PM)'), ('evening', 'Evening (4PM - 8PM)'), ('full_day', 'Full Day')], default='', max_length=20)),
                ('estimated_duration_hours', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('team_lead_name', models.CharField(blank=True, default='', max_length=120)),
                ('team_lead_phone', models.CharField(blank=True, default='', max_length=20)),
                ('installation_team', models.JSONField(blank=True, default=list)),
                ('installation_notes', models.TextField(blank=True, default='')),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('actual_duration_hours', models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True)),
                ('equipment_installed', models.JSONField(blank=True, default=list)),
                ('warranty_info', models.JSONField(blank=True, default=dict)),
                ('contractor_notes', models.TextField(blank=True, default='')),
                ('issues_encountered', models.TextField(blank=True, default='')),
                ('otp_code', models.CharField(blank=True, default='', max_length=6)),
                ('otp_expires_at', models.DateTimeField(blank=True, null=True)),
                ('otp_attempts', models.PositiveSmallIntegerField(default=0)),
                ('max_otp_attempts', models.PositiveSmallIntegerField(default=3)),
                ('otp_verified', models.BooleanField(default=False)),
                ('verified_at', models.DateTimeField(blank=True, null=True)),
                ('quality_check_passed', models.BooleanField(blank=True, null=True)),
                ('quality_check_notes', models.TextField(blank=True, default='')),
                ('quality_checked_by', models.CharField(blank=True, default='', max_length=64)),
                ('quality_checked_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('project', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='installation', to='projects.project')),
            ],
            options={
                'db_table': 'project_installations',
                'indexes': [
                    models.Index(fields=['status'], name='project_ins_status_3b8d5f_idx'),
                    models.Index(fields=['scheduled_date'], name='project_ins_schedul_9a2c6e_idx'),
                ],
            },
        ),
    ]
