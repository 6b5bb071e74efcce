import uuid

from django.db import models

from projects.models import Project


# ========================================
# PROJECT INSTALLATION
# ========================================

class ProjectInstallation(models.Model):
    """
    On-site installation of a project.

    scheduled -> in_progress -> awaiting_verification -> verified

    Completion is confirmed by the owner with a one-time code sent by SMS.
    The quality check is an admin annotation and does not move the status.
    """

    SCHEDULED = 'scheduled'
    IN_PROGRESS = 'in_progress'
    AWAITING_VERIFICATION = 'awaiting_verification'
    VERIFIED = 'verified'

    STATUS_CHOICES = [
        (SCHEDULED, 'Scheduled'),
        (IN_PROGRESS, 'In Progress'),
        (AWAITING_VERIFICATION, 'Awaiting Verification'),
        (VERIFIED, 'Verified'),
    ]

    TIME_SLOT_CHOICES = [
        ('morning', 'Morning (8AM - 12PM)'),
        ('afternoon', 'Afternoon (12PM - 4PM)'),
        ('evening', 'Evening (4PM - 8PM)'),
        ('full_day', 'Full Day'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    project = models.OneToOneField(Project, on_delete=models.CASCADE, related_name='installation')
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default=SCHEDULED)

    # Scheduling
    scheduled_date = models.DateTimeField()
    scheduled_time_slot = models.CharField(max_length=20, choices=TIME_SLOT_CHOICES, blank=True, default='')
    estimated_duration_hours = models.PositiveSmallIntegerField(null=True, blank=True)
    team_lead_name = models.CharField(max_length=120, blank=True, default='')
    team_lead_phone = models.CharField(max_length=20, blank=True, default='')
    installation_team = models.JSONField(default=list, blank=True)
    installation_notes = models.TextField(blank=True, default='')

    # Execution
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    actual_duration_hours = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True)
    equipment_installed = models.JSONField(default=list, blank=True)
    warranty_info = models.JSONField(default=dict, blank=True)
    contractor_notes = models.TextField(blank=True, default='')
    issues_encountered = models.TextField(blank=True, default='')

    # Completion code (never serialized)
    otp_code = models.CharField(max_length=6, blank=True, default='')
    otp_expires_at = models.DateTimeField(null=True, blank=True)
    otp_attempts = models.PositiveSmallIntegerField(default=0)
    max_otp_attempts = models.PositiveSmallIntegerField(default=3)
    otp_verified = models.BooleanField(default=False)
    verified_at = models.DateTimeField(null=True, blank=True)

    # Quality check
    quality_check_passed = models.BooleanField(null=True, blank=True)
    quality_check_notes = models.TextField(blank=True, default='')
    quality_checked_by = models.CharField(max_length=64, blank=True, default='')
    quality_checked_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'project_installations'
        indexes = [
            models.Index(fields=['status'], name='project_ins_status_3b8d5f_idx'),
            models.Index(fields=['scheduled_date'], name='project_ins_schedul_9a2c6e_idx'),
        ]

    def __str__(self):
        return f"Installation for {self.project_id} ({self.status})"

    @property
    def attempts_remaining(self):
        return max(self.max_otp_attempts - self.otp_attempts, 0)


# ========================================
# PROJECT DOCUMENTS
# ========================================

class ProjectDocument(models.Model):
    """Metadata of a file attached to the installation; the file lives in external storage."""

    DOCUMENT_TYPE_CHOICES = [
        ('installation_photo', 'Installation Photo'),
        ('certificate', 'Certificate'),
        ('warranty', 'Warranty'),
        ('invoice', 'Invoice'),
        ('contract', 'Contract'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='documents')
    document_type = models.CharField(max_length=30, choices=DOCUMENT_TYPE_CHOICES)
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, default='')

    file_name = models.CharField(max_length=255)
    file_url = models.URLField(max_length=500)
    file_size = models.PositiveIntegerField(null=True, blank=True)
    file_mime_type = models.CharField(max_length=100, blank=True, default='')

    uploaded_by_id = models.CharField(max_length=64)
    uploaded_by_role = models.CharField(max_length=30)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'project_documents'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['project', 'document_type'], name='project_doc_project_5e1f0a_idx'),
        ]

    def __str__(self):
        return f"{self.get_document_type_display()}: {self.title}"
