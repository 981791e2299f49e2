from django.contrib import admin
from .models import AlumniProfile, AlumniNote, AlumniIssue, IssueResponse, AlumniFlag, Message


@admin.register(AlumniProfile)
class AlumniProfileAdmin(admin.ModelAdmin):
    list_display = ['user', 'department', 'graduation_year', 'current_company', 'available_for_mentorship']
    list_filter = ['department', 'graduation_year', 'available_for_mentorship']
    search_fields = ['user__username', 'user__first_name', 'user__last_name', 'user__email', 'current_company']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(AlumniNote)
class AlumniNoteAdmin(admin.ModelAdmin):
    list_display = ['alumni', 'staff', 'category', 'is_private', 'created_at']
    list_filter = ['category', 'is_private']
    search_fields = ['content', 'alumni__user__username']


class IssueResponseInline(admin.TabularInline):
    model = IssueResponse
    extra = 0


@admin.register(AlumniIssue)
class AlumniIssueAdmin(admin.ModelAdmin):
    list_display = ['title', 'alumni', 'status', 'priority', 'assigned_to', 'created_at']
    list_filter = ['status', 'priority']
    search_fields = ['title', 'description']
    inlines = [IssueResponseInline]


@admin.register(AlumniFlag)
class AlumniFlagAdmin(admin.ModelAdmin):
    list_display = ['alumni', 'flag_type', 'flag_value', 'created_by', 'updated_at']
    search_fields = ['flag_type', 'flag_value']


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ['sender', 'recipient', 'subject', 'is_read', 'created_at']
    list_filter = ['is_read']
    search_fields = ['subject', 'content']
