from rest_framework import serializers

from .models import Project, ProjectReview, ProjectTimeline


# ========================================
# Project
# ========================================

class ProjectSerializer(serializers.ModelSerializer):
    payment_method = serializers.SerializerMethodField()
    payment_status = serializers.SerializerMethodField()
    installation_status = serializers.SerializerMethodField()

    class Meta:
        model = Project
        fields = [
            'id',
            'user_id',
            'contractor_id',
            'quote_id',
            'request_id',
            'project_name',
            'description',
            'property_address',
            'total_amount',
            'system_size_kwp',
            'status',
            'held_from_status',
            'hold_reason',
            'preferred_installation_date',
            'actual_installation_date',
            'payment_method',
            'payment_status',
            'installation_status',
            'cancellation_reason',
            'cancelled_at',
            'completed_at',
            'created_at',
            'updated_at',
        ]

    def get_payment_method(self, obj):
        payment = getattr(obj, 'payment', None)
        return payment.payment_method if payment else None

    def get_payment_status(self, obj):
        payment = getattr(obj, 'payment', None)
        return payment.payment_status if payment else None

    def get_installation_status(self, obj):
        installation = getattr(obj, 'installation', None)
        return installation.status if installation else None


class ProjectCreateSerializer(serializers.Serializer):
    request_id = serializers.CharField(max_length=64)
    contractor_id = serializers.UUIDField()
    project_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)
    property_address = serializers.CharField(max_length=500, required=False, allow_blank=True)
    preferred_installation_date = serializers.DateTimeField(required=False, allow_null=True)


class ProjectUpdateSerializer(serializers.Serializer):
    project_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)
    property_address = serializers.CharField(max_length=500, required=False, allow_blank=True)
    preferred_installation_date = serializers.DateTimeField(required=False, allow_null=True)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError('Provide at least one field to update.')
        return attrs


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='', max_length=1000)


class AdminProjectFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Project.STATUS_CHOICES, required=False)
    contractor_id = serializers.UUIDField(required=False)
    user_id = serializers.UUIDField(required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    ordering = serializers.CharField(required=False)

    def validate(self, attrs):
        if attrs.get('date_from') and attrs.get('date_to') and attrs['date_from'] > attrs['date_to']:
            raise serializers.ValidationError('date_from must be on or before date_to.')
        return attrs


class ProjectTimelineSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProjectTimeline
        fields = [
            'id',
            'event_type',
            'title',
            'description',
            'created_by_id',
            'created_by_role',
            'metadata',
            'created_at',
        ]


# ========================================
# Reviews
# ========================================

class ProjectReviewSerializer(serializers.ModelSerializer):
    project_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = ProjectReview
        fields = [
            'id',
            'project_id',
            'user_id',
            'contractor_id',
            'rating',
            'review_title',
            'review_text',
            'quality_rating',
            'communication_rating',
            'timeliness_rating',
            'professionalism_rating',
            'value_rating',
            'would_recommend',
            'photo_urls',
            'has_photos',
            'contractor_response',
            'contractor_responded_at',
            'is_visible',
            'is_flagged',
            'created_at',
        ]


def _rating_field(required=False):
    return serializers.IntegerField(min_value=1, max_value=5, required=required, allow_null=not required)


class ReviewCreateSerializer(serializers.Serializer):
    rating = _rating_field(required=True)
    review_title = serializers.CharField(max_length=100, required=False, allow_blank=True)
    review_text = serializers.CharField(max_length=2000, required=False, allow_blank=True)
    quality_rating = _rating_field()
    communication_rating = _rating_field()
    timeliness_rating = _rating_field()
    professionalism_rating = _rating_field()
    value_rating = _rating_field()
    would_recommend = serializers.BooleanField(required=False, allow_null=True)
    photo_urls = serializers.ListField(child=serializers.URLField(), required=False, max_length=10)


class ReviewResponseSerializer(serializers.Serializer):
    response = serializers.CharField(max_length=1000)


class ReviewModerationSerializer(serializers.Serializer):
    is_visible = serializers.BooleanField(required=False, allow_null=True, default=None)
    is_flagged = serializers.BooleanField(required=False, allow_null=True, default=None)
    flag_reason = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)

    def validate(self, attrs):
        if attrs.get('is_flagged') and not attrs.get('flag_reason'):
            raise serializers.ValidationError({'flag_reason': 'A reason is required when flagging a review.'})
        return attrs


# ========================================
# Internal service API
# ========================================

class InternalStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Project.STATUS_CHOICES)
    reason = serializers.CharField(required=False, allow_blank=True, default='')
    service = serializers.CharField(max_length=64, required=False, allow_blank=True, default='')


class InternalTimelineSerializer(serializers.Serializer):
    event_type = serializers.ChoiceField(choices=ProjectTimeline.EVENT_TYPE_CHOICES)
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    metadata = serializers.JSONField(required=False, allow_null=True, default=None)
    service = serializers.CharField(max_length=64, required=False, allow_blank=True, default='')


class AdminReviewFilterSerializer(serializers.Serializer):
    is_flagged = serializers.BooleanField(required=False, allow_null=True, default=None)
    is_visible = serializers.BooleanField(required=False, allow_null=True, default=None)
    rating = serializers.IntegerField(min_value=1, max_value=5, required=False)
