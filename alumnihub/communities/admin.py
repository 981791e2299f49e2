from django.contrib import admin
from .models import Community, CommunityMembership, CommunityPost


class CommunityMembershipInline(admin.TabularInline):
    model = CommunityMembership
    fk_name = 'community'
    extra = 0
    fields = ['user', 'role', 'status', 'joined_at']
    readonly_fields = ['joined_at']


@admin.register(Community)
class CommunityAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'type', 'college', 'member_count', 'post_count', 'status']
    list_filter = ['category', 'type', 'status', 'college']
    search_fields = ['name', 'description']
    readonly_fields = ['member_count', 'post_count', 'created_at', 'updated_at']
    inlines = [CommunityMembershipInline]


@admin.register(CommunityPost)
class CommunityPostAdmin(admin.ModelAdmin):
    list_display = ['__str__', 'community', 'author', 'post_type', 'status', 'is_pinned', 'is_announcement', 'created_at']
    list_filter = ['status', 'post_type', 'is_pinned', 'is_announcement']
    search_fields = ['title', 'content']
