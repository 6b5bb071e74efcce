from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('projects', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='projecttimeline',
            name='event_type',
            field=models.CharField(
                choices=[
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
                    ('document_uploaded', 'Document Uploaded'),
                    ('review_submitted', 'Review Submitted'),
                    ('project_completed', 'Project Completed'),
                    ('admin_action', 'Admin Action'),
                    ('service_event', 'Service Event'),
                ],
                max_length=50,
            ),
        ),
    ]
