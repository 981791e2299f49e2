from decimal import Decimal
from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils import timezone


class Event(models.Model):
    """College event (reunion, workshop, webinar, ...)"""
    TYPE_CHOICES = [
        ('reunion', 'Reunion'),
        ('workshop', 'Workshop'),
        ('webinar', 'Webinar'),
        ('meetup', 'Meetup'),
        ('conference', 'Conference'),
        ('career_fair', 'Career Fair'),
    ]
    STATUS_CHOICES = [
        ('upcoming', 'Upcoming'),
        ('ongoing', 'Ongoing'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]

    title = models.CharField(max_length=200)
    description = models.TextField(max_length=2000)
    event_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    location = models.CharField(max_length=255, blank=True)
    is_online = models.BooleanField(default=False)
    meeting_link = models.URLField(blank=True)
    max_attendees = models.PositiveIntegerField(default=0, help_text="0 means unlimited")
    registration_deadline = models.DateTimeField(null=True, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0.00'))])
    organizer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='organized_events')
    college = models.ForeignKey('core.College', on_delete=models.CASCADE, null=True, blank=True, related_name='events')
    tags = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='upcoming')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.title

    @property
    def is_paid(self):
        return self.price > 0

    def registration_closes_at(self):
        return self.registration_deadline or self.start_date

    def has_ended(self, now=None):
        return self.end_date < (now or timezone.now())

    def active_registration_count(self):
        return self.registrations.filter(status__in=EventRegistration.ACTIVE_STATUSES).count()

    def is_full(self):
        return self.max_attendees > 0 and self.active_registration_count() >= self.max_attendees

    class Meta:
        db_table = 'events'
        ordering = ['start_date']


class EventRegistration(models.Model):
    STATUS_CHOICES = [
        ('registered', 'Registered'),
        ('attended', 'Attended'),
        ('cancelled', 'Cancelled'),
        ('pending_payment', 'Pending Payment'),
    ]
    PAYMENT_STATUS_CHOICES = [
        ('free', 'Free'),
        ('pending', 'Pending'),
        ('successful', 'Successful'),
        ('failed', 'Failed'),
    ]
    # Registrations that hold a seat
    ACTIVE_STATUSES = ('registered', 'attended', 'pending_payment')
    # Registrations that count as participation
    PARTICIPATING_STATUSES = ('registered', 'attended')

    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name='registrations')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='event_registrations')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='registered')
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='free')
    amount_paid = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    registered_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'event_registrations'
        ordering = ['-registered_at']
        constraints = [
            models.UniqueConstraint(fields=['event', 'user'], name='unique_event_registration'),
        ]


class EventFeedback(models.Model):
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name='feedback')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='event_feedback')
    rating = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)])
    comment = models.TextField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'event_feedback'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['event', 'user'], name='unique_event_feedback'),
        ]
