import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models


# ========================================
# PROJECT MODEL
# ========================================

class Project(models.Model):
    """
    A solar installation project created from an admin-approved quote.

    Lifecycle:
    payment_pending -> payment_processing -> payment_completed ->
    installation_scheduled -> installation_in_progress ->
    installation_completed -> completed

    Side states: cancelled (terminal) and on_hold (resumable).
    """

    PAYMENT_PENDING = 'payment_pending'
    PAYMENT_PROCESSING = 'payment_processing'
    PAYMENT_COMPLETED = 'payment_completed'
    INSTALLATION_SCHEDULED = 'installation_scheduled'
    INSTALLATION_IN_PROGRESS = 'installation_in_progress'
    INSTALLATION_COMPLETED = 'installation_completed'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    ON_HOLD = 'on_hold'

    STATUS_CHOICES = [
        (PAYMENT_PENDING, 'Payment Pending'),
        (PAYMENT_PROCESSING, 'Payment Processing'),
        (PAYMENT_COMPLETED, 'Payment Completed'),
        (INSTALLATION_SCHEDULED, 'Installation Scheduled'),
        (INSTALLATION_IN_PROGRESS, 'Installation In Progress'),
        (INSTALLATION_COMPLETED, 'Installation Completed'),
        (COMPLETED, 'Completed'),
        (CANCELLED, 'Cancelled'),
        (ON_HOLD, 'On Hold'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user_id = models.UUIDField(db_index=True, help_text="Owning user (identity service id)")
    contractor_id = models.UUIDField(db_index=True, help_text="Assigned contractor")
    quote_id = models.CharField(max_length=64, unique=True, help_text="Converted quote; one project per quote")
    request_id = models.CharField(max_length=64, blank=True, default='', help_text="Originating quote request")

    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
    )
    system_size_kwp = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal('0.00'))

    project_name = models.CharField(max_length=200, blank=True, default='')
    description = models.TextField(blank=True, default='')
    property_address = models.CharField(max_length=500, blank=True, default='')
    preferred_installation_date = models.DateTimeField(null=True, blank=True)
    actual_installation_date = models.DateTimeField(null=True, blank=True)

    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default=PAYMENT_PENDING)
    held_from_status = models.CharField(
        max_length=30,
        choices=STATUS_CHOICES,
        blank=True,
        default='',
        help_text="Status to restore when an on-hold project is resumed",
    )
    hold_reason = models.TextField(blank=True, default='')

    cancellation_reason = models.TextField(blank=True, default='')
    cancelled_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'projects'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user_id', '-created_at'], name='projects_user_id_0e7c1a_idx'),
            models.Index(fields=['contractor_id', '-created_at'], name='projects_contrac_5b2d4e_idx'),
            models.Index(fields=['status'], name='projects_status_8f3a21_idx'),
        ]

    def __str__(self):
        return f"Project {self.id} ({self.status})"

    @property
    def is_terminal(self):
        return self.status in (self.COMPLETED, self.CANCELLED)


# ========================================
# TIMELINE (append-only)
# ========================================

class ProjectTimeline(models.Model):
    """
    Immutable record of everything that happened to a project.
    Rows are only ever inserted.
    """

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
        ('document_uploaded', 'Document Uploaded'),
        ('review_submitted', 'Review Submitted'),
        ('project_completed', 'Project Completed'),
        ('admin_action', 'Admin Action'),
        ('service_event', 'Service Event'),
    ]

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='timeline')
    event_type = models.CharField(max_length=50, choices=EVENT_TYPE_CHOICES)
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, default='')
    created_by_id = models.CharField(max_length=64, blank=True, default='')
    created_by_role = models.CharField(max_length=30, blank=True, default='system')
    metadata = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'project_timeline'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['project', '-created_at'], name='project_tim_project_6d1f0b_idx'),
            models.Index(fields=['event_type'], name='project_tim_event_t_2c9e47_idx'),
        ]

    def __str__(self):
        return f"{self.event_type} on {self.project_id} at {self.created_at}"

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding:
            raise ValueError("Timeline entries are immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Timeline entries cannot be deleted")


# ========================================
# REVIEW MODEL
# ========================================

RATING_VALIDATORS = [MinValueValidator(1), MaxValueValidator(5)]


class ProjectReview(models.Model):
    """
    The owner's review of a finished installation. One per project; the
    contractor may answer it exactly once.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    project = models.OneToOneField(Project, on_delete=models.CASCADE, related_name='review')
    user_id = models.UUIDField()
    contractor_id = models.UUIDField(db_index=True)

    rating = models.PositiveSmallIntegerField(validators=RATING_VALIDATORS)
    review_title = models.CharField(max_length=100, blank=True, default='')
    review_text = models.TextField(blank=True, default='')

    quality_rating = models.PositiveSmallIntegerField(null=True, blank=True, validators=RATING_VALIDATORS)
    communication_rating = models.PositiveSmallIntegerField(null=True, blank=True, validators=RATING_VALIDATORS)
    timeliness_rating = models.PositiveSmallIntegerField(null=True, blank=True, validators=RATING_VALIDATORS)
    professionalism_rating = models.PositiveSmallIntegerField(null=True, blank=True, validators=RATING_VALIDATORS)
    value_rating = models.PositiveSmallIntegerField(null=True, blank=True, validators=RATING_VALIDATORS)
    would_recommend = models.BooleanField(null=True, blank=True)

    photo_urls = models.JSONField(default=list, blank=True)
    has_photos = models.BooleanField(default=False)

    contractor_response = models.TextField(blank=True, default='')
    contractor_responded_at = models.DateTimeField(null=True, blank=True)

    is_visible = models.BooleanField(default=True)
    is_flagged = models.BooleanField(default=False)
    flag_reason = models.TextField(blank=True, default='')
    moderated_by = models.CharField(max_length=64, blank=True, default='')
    moderated_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'project_reviews'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['contractor_id', '-created_at'], name='project_rev_contrac_4a7b90_idx'),
            models.Index(fields=['rating'], name='project_rev_rating_1e5c3d_idx'),
        ]

    def __str__(self):
        return f"{self.rating}-star review for {self.project_id}"
