from django.contrib import admin
from .models import Campaign, Donation


@admin.register(Campaign)
class CampaignAdmin(admin.ModelAdmin):
    list_display = ['title', 'college', 'goal_amount', 'start_date', 'end_date', 'is_active']
    list_filter = ['is_active', 'college']
    search_fields = ['title', 'description']


@admin.register(Donation)
class DonationAdmin(admin.ModelAdmin):
    list_display = ['donor', 'amount', 'currency', 'payment_status', 'donation_type', 'campaign', 'created_at']
    list_filter = ['payment_status', 'currency', 'donation_type', 'anonymous']
    search_fields = ['donor__username', 'donor__email', 'transaction_id']
    ordering = ['-created_at']
    readonly_fields = ['created_at', 'updated_at']
