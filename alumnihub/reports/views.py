import logging
from decimal import Decimal

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.contrib.auth import get_user_model
from django.db.models import Sum, DecimalField
from django.utils import timezone

from alumnihub.alumni.engagement import get_engagement_metrics
from alumnihub.communities.models import Community
from alumnihub.core.permissions import IsCollegeStaff, scope_to_college
from alumnihub.donations.models import Donation
from alumnihub.events.models import Event
from alumnihub.mentoring.models import MenteeRegistration, MentorRegistration

logger = logging.getLogger(__name__)
User = get_user_model()

ENGAGEMENT_LEVELS = ('High', 'Medium', 'Low', 'Inactive')


def college_alumni(user):
    return scope_to_college(user, User.objects.filter(role=User.ROLE_ALUMNI, is_active=True))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCollegeStaff])
def dashboard(request):
    """College-level KPIs for staff roles"""
    user = request.user
    alumni = college_alumni(user)

    distribution = {level: 0 for level in ENGAGEMENT_LEVELS}
    for alumnus in alumni:
        distribution[get_engagement_metrics(alumnus)['engagement_level']] += 1

    donations_total = scope_to_college(user, Donation.objects.filter(payment_status='completed')).aggregate(
        total=Sum('amount', output_field=DecimalField())
    )['total'] or Decimal('0.00')

    pending_registrations = (
        scope_to_college(user, MentorRegistration.objects.filter(status='submitted')).count() +
        scope_to_college(user, MenteeRegistration.objects.filter(status='submitted')).count()
    )

    upcoming_events = Event.objects.filter(start_date__gte=timezone.now()).exclude(status='cancelled')
    upcoming_events = scope_to_college(user, upcoming_events)

    return Response({
        'alumni_count': alumni.count(),
        'active_communities': scope_to_college(user, Community.objects.filter(status='active')).count(),
        'upcoming_events': upcoming_events.count(),
        'total_donations': donations_total,
        'pending_registrations': pending_registrations,
        'engagement_distribution': distribution,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCollegeStaff])
def engagement_leaderboard(request):
    """Alumni ranked by engagement score. Query param: limit (default 10, max 100)"""
    try:
        limit = int(request.query_params.get('limit', 10))
    except (TypeError, ValueError):
        return Response({'error': 'limit must be a number'}, status=status.HTTP_400_BAD_REQUEST)
    limit = min(max(limit, 1), 100)

    rows = []
    for alumnus in college_alumni(request.user):
        metrics = get_engagement_metrics(alumnus)
        rows.append({
            'user_id': alumnus.id,
            'username': alumnus.username,
            'name': alumnus.display_name,
            'engagement_score': metrics['engagement_score'],
            'engagement_level': metrics['engagement_level'],
            'total_donated': metrics['total_donated'],
            'events_attended': metrics['events_attended'],
        })
    rows.sort(key=lambda row: (-row['engagement_score'], row['user_id']))
    return Response({'results': rows[:limit], 'count': len(rows)})
