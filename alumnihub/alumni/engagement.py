"""
Engagement scoring for alumni.

The score is a number in 0..100 derived from donations, event participation
and messaging activity. It is always computed here; clients only read it.
"""
import logging
from datetime import timedelta
from decimal import Decimal

from django.db.models import Sum, Count, Max, Q
from django.utils import timezone

from alumnihub.core.conf import get_setting
from alumnihub.core.model_cache import get_cached_engagement, cache_engagement_data
from alumnihub.donations.models import Donation
from alumnihub.events.models import EventRegistration
from .models import Message

logger = logging.getLogger(__name__)

MAX_SCORE = 100
COMPLETED_DONATION_STATUSES = ('completed',)


def calculate_engagement_score(donation_count, total_donated, events_attended,
                               message_count, last_interaction, now=None):
    """Combine activity figures into a score capped at 100"""
    weights = get_setting('ENGAGEMENT_WEIGHTS')
    now = now or timezone.now()
    score = 0

    if donation_count > 0:
        score += weights['donor']
    if total_donated > get_setting('ENGAGEMENT_HIGH_DONATION_TOTAL'):
        score += weights['major_donor']
    if events_attended > 0:
        score += weights['event_attendee']
    if events_attended > get_setting('ENGAGEMENT_FREQUENT_EVENTS'):
        score += weights['frequent_attendee']
    if message_count > 0:
        score += weights['messaging']
    if last_interaction and now - last_interaction < timedelta(days=get_setting('ENGAGEMENT_RECENCY_DAYS')):
        score += weights['recent_interaction']

    return min(score, MAX_SCORE)


def engagement_level(score):
    """Map a score to High / Medium / Low / Inactive"""
    if score >= 80:
        return 'High'
    if score >= 50:
        return 'Medium'
    if score > 0:
        return 'Low'
    return 'Inactive'


def compute_engagement_metrics(user):
    donations = Donation.objects.filter(
        donor=user, payment_status__in=COMPLETED_DONATION_STATUSES
    ).aggregate(
        total=Sum('amount'),
        count=Count('id'),
        last=Max('created_at'),
    )
    events = EventRegistration.objects.filter(
        user=user, status__in=EventRegistration.PARTICIPATING_STATUSES
    ).aggregate(
        count=Count('id'),
        last=Max('event__start_date'),
    )
    messages = Message.objects.filter(
        Q(sender=user) | Q(recipient=user)
    ).aggregate(
        count=Count('id'),
        last=Max('created_at'),
    )

    total_donated = donations['total'] or Decimal('0.00')
    last_interaction = messages['last'] or events['last']

    score = calculate_engagement_score(
        donation_count=donations['count'],
        total_donated=total_donated,
        events_attended=events['count'],
        message_count=messages['count'],
        last_interaction=last_interaction,
    )
    return {
        'engagement_score': score,
        'engagement_level': engagement_level(score),
        'total_donated': total_donated,
        'donation_count': donations['count'],
        'last_donation_date': donations['last'],
        'events_attended': events['count'],
        'last_event_date': events['last'],
        'message_count': messages['count'],
        'last_interaction': last_interaction,
    }


def get_engagement_metrics(user):
    """Engagement metrics for a user, served from cache when possible"""
    cached = get_cached_engagement(user.pk)
    if cached is not None:
        return cached
    metrics = compute_engagement_metrics(user)
    cache_engagement_data(user.pk, metrics)
    logger.debug(f"Computed engagement for user {user.pk}: {metrics['engagement_score']}")
    return metrics
