"""
Domain constants. Values can be overridden through the ALUMNIHUB dict in settings.
"""
from django.conf import settings

DEFAULTS = {
    'PAGE_SIZE': 20,
    'MAX_PAGE_SIZE': 100,
    'REJECTION_REASON_MIN_LENGTH': 10,
    'MENTOR_MIN_AGE': 16,
    'CLASS_OF_MIN_YEAR': 1950,
    'ENGAGEMENT_CACHE_TTL': 600,  # 10 minutes
    'ENGAGEMENT_HIGH_DONATION_TOTAL': 10000,
    'ENGAGEMENT_FREQUENT_EVENTS': 5,
    'ENGAGEMENT_RECENCY_DAYS': 90,
    'ENGAGEMENT_WEIGHTS': {
        'donor': 30,
        'major_donor': 20,
        'event_attendee': 25,
        'frequent_attendee': 10,
        'messaging': 10,
        'recent_interaction': 5,
    },
    'EVENT_CURRENCY': 'INR',
    'MATCHING_WEIGHTS': {
        'industry': 0.3,
        'programme': 0.2,
        'skills': 0.1,
        'preference': 0.4,
    },
    'MATCH_PREFERENCE_SCORES': (100, 80, 60),  # 1st, 2nd, 3rd choice
    'PREFERRED_MENTOR_COUNT': 3,
    'MAX_MENTEES_PER_MENTOR': 20,
    'MATCH_RESPONSE_DAYS': 3,
}


def get_setting(name):
    overrides = getattr(settings, 'ALUMNIHUB', {}) or {}
    if name in overrides:
        return overrides[name]
    return DEFAULTS[name]
