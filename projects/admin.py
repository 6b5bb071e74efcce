from django.contrib import admin

from .models import Project, ProjectReview, ProjectTimeline


class TimelineInline(admin.TabularInline):
    model = ProjectTimeline
    extra = 0
    can_delete = False
    readonly_fields = ('event_type', 'title', 'description', 'created_by_id', 'created_by_role', 'created_at')

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ('id', 'project_name', 'status', 'total_amount', 'user_id', 'contractor_id', 'created_at')
    list_filter = ('status',)
    search_fields = ('id', 'quote_id', 'project_name')
    readonly_fields = (
        'quote_id',
        'total_amount',
        'status',
        'held_from_status',
        'cancelled_at',
        'completed_at',
        'created_at',
        'updated_at',
    )
    inlines = [TimelineInline]

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(ProjectReview)
class ProjectReviewAdmin(admin.ModelAdmin):
    list_display = ('project', 'rating', 'is_visible', 'is_flagged', 'created_at')
    list_filter = ('rating', 'is_visible', 'is_flagged')
