from decimal import Decimal

from django.utils import timezone
from rest_framework import serializers

from .models import ProjectDocument, ProjectInstallation


class ProjectInstallationSerializer(serializers.ModelSerializer):
    """Read model. The completion code is never part of it."""
    project_id = serializers.UUIDField(read_only=True)
    otp_attempts_remaining = serializers.IntegerField(source='attempts_remaining', read_only=True)

    class Meta:
        model = ProjectInstallation
        fields = [
            'id',
            'project_id',
            'status',
            'scheduled_date',
            'scheduled_time_slot',
            'estimated_duration_hours',
            'team_lead_name',
            'team_lead_phone',
            'installation_team',
            'installation_notes',
            'started_at',
            'completed_at',
            'actual_duration_hours',
            'equipment_installed',
            'warranty_info',
            'contractor_notes',
            'issues_encountered',
            'otp_expires_at',
            'otp_verified',
            'otp_attempts_remaining',
            'verified_at',
            'quality_check_passed',
            'quality_check_notes',
            'quality_checked_at',
            'created_at',
            'updated_at',
        ]


class ScheduleInstallationSerializer(serializers.Serializer):
    scheduled_date = serializers.DateTimeField()
    scheduled_time_slot = serializers.ChoiceField(choices=ProjectInstallation.TIME_SLOT_CHOICES, required=False)
    estimated_duration_hours = serializers.IntegerField(min_value=1, max_value=240, required=False)
    team_lead_name = serializers.CharField(max_length=120, required=False, allow_blank=True)
    team_lead_phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    installation_team = serializers.ListField(child=serializers.CharField(max_length=120), required=False)
    installation_notes = serializers.CharField(required=False, allow_blank=True)

    def validate_scheduled_date(self, value):
        if value <= timezone.now():
            raise serializers.ValidationError('Installation date must be in the future.')
        return value


class StartInstallationSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class CompleteInstallationSerializer(serializers.Serializer):
    actual_duration_hours = serializers.DecimalField(
        max_digits=6, decimal_places=2, min_value=Decimal('0.01'), required=False
    )
    equipment_installed = serializers.ListField(child=serializers.DictField(), required=False)
    warranty_info = serializers.DictField(required=False)
    contractor_notes = serializers.CharField(required=False, allow_blank=True)
    issues_encountered = serializers.CharField(required=False, allow_blank=True)


class VerifyCompletionSerializer(serializers.Serializer):
    otp = serializers.RegexField(r'^\d{6}$', error_messages={'invalid': 'OTP must be 6 digits.'})


class QualityCheckSerializer(serializers.Serializer):
    passed = serializers.BooleanField()
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class ProjectDocumentSerializer(serializers.ModelSerializer):
    project_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = ProjectDocument
        fields = [
            'id',
            'project_id',
            'document_type',
            'title',
            'description',
            'file_name',
            'file_url',
            'file_size',
            'file_mime_type',
            'uploaded_by_id',
            'uploaded_by_role',
            'created_at',
        ]


class UploadDocumentSerializer(serializers.Serializer):
    document_type = serializers.ChoiceField(choices=ProjectDocument.DOCUMENT_TYPE_CHOICES)
    title = serializers.CharField(min_length=3, max_length=200)
    description = serializers.CharField(max_length=500, required=False, allow_blank=True)
    file_name = serializers.CharField(max_length=255)
    file_url = serializers.URLField(max_length=500)
    file_size = serializers.IntegerField(min_value=1, required=False)
    file_mime_type = serializers.CharField(max_length=100, required=False, allow_blank=True)


class DocumentFilterSerializer(serializers.Serializer):
    document_type = serializers.ChoiceField(choices=ProjectDocument.DOCUMENT_TYPE_CHOICES, required=False)
