from django.contrib import admin

from .models import ProjectDocument, ProjectInstallation


@admin.register(ProjectInstallation)
class ProjectInstallationAdmin(admin.ModelAdmin):
    list_display = ('project', 'status', 'scheduled_date', 'otp_verified', 'quality_check_passed')
    list_filter = ('status', 'otp_verified', 'quality_check_passed')
    exclude = ('otp_code',)


@admin.register(ProjectDocument)
class ProjectDocumentAdmin(admin.ModelAdmin):
    list_display = ('title', 'project', 'document_type', 'uploaded_by_role', 'created_at')
    list_filter = ('document_type', 'uploaded_by_role')
    search_fields = ('title', 'file_name')
    readonly_fields = ('uploaded_by_id', 'uploaded_by_role', 'created_at')
