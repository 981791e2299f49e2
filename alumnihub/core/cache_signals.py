"""
Cache invalidation signals
Automatically invalidate cached engagement metrics when their inputs change
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from alumnihub.alumni.models import Message
from alumnihub.donations.models import Donation
from alumnihub.events.models import Event, EventRegistration
from .models import User
from .model_cache import invalidate_engagement_cache


@receiver(post_save, sender=User)
def invalidate_user_engagement(sender, instance, **kwargs):
    invalidate_engagement_cache(instance.pk)


@receiver([post_save, post_delete], sender=Donation)
def invalidate_donor_engagement(sender, instance, **kwargs):
    invalidate_engagement_cache(instance.donor_id)


@receiver([post_save, post_delete], sender=EventRegistration)
def invalidate_attendee_engagement(sender, instance, **kwargs):
    invalidate_engagement_cache(instance.user_id)


@receiver([post_save, post_delete], sender=Message)
def invalidate_message_engagement(sender, instance, **kwargs):
    invalidate_engagement_cache(instance.sender_id, instance.recipient_id)


@receiver(post_save, sender=Event)
def invalidate_event_attendees_engagement(sender, instance, created, **kwargs):
    if created:
        return
    invalidate_engagement_cache(*instance.registrations.values_list('user_id', flat=True))
