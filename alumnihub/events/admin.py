from django.contrib import admin
from .models import Event, EventRegistration, EventFeedback


class EventRegistrationInline(admin.TabularInline):
    model = EventRegistration
    extra = 0
    readonly_fields = ['registered_at']


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ['title', 'event_type', 'start_date', 'status', 'is_online', 'max_attendees', 'price', 'college']
    list_filter = ['event_type', 'status', 'is_online', 'college']
    search_fields = ['title', 'description', 'location']
    ordering = ['-start_date']
    inlines = [EventRegistrationInline]


@admin.register(EventFeedback)
class EventFeedbackAdmin(admin.ModelAdmin):
    list_display = ['event', 'user', 'rating', 'created_at']
    list_filter = ['rating']
