from django.contrib import admin
from .models import (
    ApprovalHistory, MenteeRegistration, MentoringProgram, MentorMenteeMatch, MentorRegistration,
    MentorshipCommunication,
)


@admin.register(MentoringProgram)
class MentoringProgramAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'college', 'status', 'registration_end_date_mentor', 'registration_end_date_mentee', 'matching_end_date']
    list_filter = ['status', 'college']
    search_fields = ['name', 'short_description']


class RegistrationAdmin(admin.ModelAdmin):
    list_display = ['full_name', 'program', 'personal_email', 'class_of', 'status', 'submitted_at']
    list_filter = ['status', 'program']
    search_fields = ['first_name', 'last_name', 'personal_email']
    # Status changes go through the approval workflow
    readonly_fields = ['status', 'approved_by', 'approved_at', 'rejected_by', 'rejected_at', 'rejection_reason', 'submitted_at']


admin.site.register(MentorRegistration, RegistrationAdmin)
admin.site.register(MenteeRegistration, RegistrationAdmin)


@admin.register(ApprovalHistory)
class ApprovalHistoryAdmin(admin.ModelAdmin):
    list_display = ['action', 'from_status', 'to_status', 'performed_by', 'performed_at']
    list_filter = ['action']
    readonly_fields = [f.name for f in ApprovalHistory._meta.fields]


@admin.register(MentorshipCommunication)
class MentorshipCommunicationAdmin(admin.ModelAdmin):
    list_display = ['subject', 'from_user', 'to_user', 'program', 'sent_at', 'is_read']
    search_fields = ['subject', 'body']


@admin.register(MentorMenteeMatch)
class MentorMenteeMatchAdmin(admin.ModelAdmin):
    list_display = ['mentee_registration', 'mentor_registration', 'program', 'match_type', 'status', 'score', 'respond_by']
    list_filter = ['status', 'match_type', 'program']
    readonly_fields = ['score', 'score_breakdown', 'preferred_order', 'matched_at', 'responded_at']
