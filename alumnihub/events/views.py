import logging
from datetime import timedelta

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.db.models import Count, Q
from django.db.models.functions import TruncMonth
from django.shortcuts import get_object_or_404
from django.utils import timezone

from alumnihub.core.conf import get_setting
from alumnihub.core.pagination import paginated_response_data
from alumnihub.core.permissions import (
    can_manage_alumni, is_admin, is_super_admin, same_college, scope_to_college,
)
from alumnihub.core.utils import create_audit_log
from .filters import EventFilter
from .models import Event, EventRegistration, EventFeedback
from .serializers import EventSerializer, EventRegistrationSerializer, EventFeedbackSerializer

logger = logging.getLogger(__name__)


def visible_events(user):
    """Events of the user's college plus events not tied to any college"""
    queryset = Event.objects.select_related('organizer', 'college')
    if is_super_admin(user):
        return queryset
    return queryset.filter(Q(college__isnull=True) | Q(college_id=user.college_id))


def can_edit_event(user, event):
    if event.organizer_id == user.id or is_super_admin(user):
        return True
    return is_admin(user) and same_college(user, event.college_id)


def can_view_participants(user, event):
    if event.organizer_id == user.id:
        return True
    return can_manage_alumni(user) and (event.college_id is None or same_college(user, event.college_id))


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def event_list_create(request):
    """List events or create a new event (staff roles)"""
    if request.method == 'GET':
        queryset = EventFilter(request.query_params, queryset=visible_events(request.user)).qs
        return Response(paginated_response_data(request, queryset, EventSerializer))

    if not can_manage_alumni(request.user):
        return Response({'error': 'Only staff can create events'}, status=status.HTTP_403_FORBIDDEN)
    serializer = EventSerializer(data=request.data)
    if serializer.is_valid():
        event = serializer.save(organizer=request.user, college=request.user.college)
        logger.info(f"Event created: {event.title} (ID: {event.id}) by {request.user.username}")
        create_audit_log(request=request, action='create', model_name='Event',
                         object_id=event.id, object_name=event.title)
        return Response(EventSerializer(event).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def event_detail(request, pk):
    """Retrieve, update or delete an event"""
    event = get_object_or_404(visible_events(request.user), pk=pk)

    if request.method == 'GET':
        data = EventSerializer(event).data
        registration = event.registrations.filter(user=request.user).first()
        data['my_registration'] = EventRegistrationSerializer(registration).data if registration else None
        return Response(data)

    if not can_edit_event(request.user, event):
        return Response({'error': 'Only the organizer or an admin can change this event'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'DELETE':
        create_audit_log(request=request, action='delete', model_name='Event',
                         object_id=event.id, object_name=event.title)
        event.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = EventSerializer(event, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        serializer.save()
        create_audit_log(request=request, action='update', model_name='Event',
                         object_id=event.id, object_name=event.title,
                         changes={'fields': sorted(serializer.validated_data)})
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def event_register(request, pk):
    """
    Register the current user for an event.

    Free events register immediately. Paid events create a registration
    pending payment and return the amount to pay.
    """
    get_object_or_404(visible_events(request.user), pk=pk)
    now = timezone.now()

    with transaction.atomic():
        # Lock the event row so concurrent registrations see each other's seats
        event = Event.objects.select_for_update().get(pk=pk)

        if event.status in ('cancelled', 'completed'):
            return Response({'error': f'Event is {event.status}'}, status=status.HTTP_400_BAD_REQUEST)
        if now > event.registration_closes_at():
            return Response({'error': 'Registration deadline has passed'}, status=status.HTTP_400_BAD_REQUEST)

        registration = EventRegistration.objects.filter(event=event, user=request.user).first()
        if registration and registration.status in EventRegistration.ACTIVE_STATUSES:
            return Response({'error': 'Already registered for this event'}, status=status.HTTP_400_BAD_REQUEST)
        if event.is_full():
            return Response({'error': 'Event is full'}, status=status.HTTP_400_BAD_REQUEST)

        if event.is_paid:
            new_status, payment_status = 'pending_payment', 'pending'
        else:
            new_status, payment_status = 'registered', 'free'

        if registration:
            registration.status = new_status
            registration.payment_status = payment_status
            registration.amount_paid = 0
            registration.save()
        else:
            registration = EventRegistration.objects.create(
                event=event, user=request.user, status=new_status, payment_status=payment_status
            )

    create_audit_log(request=request, action='event_register', model_name='Event',
                     object_id=event.id, object_name=event.title, changes={'status': new_status},
                     college=event.college)

    if event.is_paid:
        return Response({
            'status': 'pending_payment',
            'payment_required': True,
            'amount': event.price,
            'currency': get_setting('EVENT_CURRENCY'),
            'registration': EventRegistrationSerializer(registration).data,
        }, status=status.HTTP_201_CREATED)
    return Response({
        'status': 'registered',
        'payment_required': False,
        'registration': EventRegistrationSerializer(registration).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def event_confirm_payment(request, pk):
    """Confirm payment for a paid registration"""
    event = get_object_or_404(visible_events(request.user), pk=pk)
    if request.data.get('payment_status') != 'success':
        return Response({'error': 'Payment was not successful'}, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        registration = EventRegistration.objects.select_for_update().filter(event=event, user=request.user).first()
        if registration is None or registration.status == 'cancelled':
            return Response({'error': 'No registration found for this event'}, status=status.HTTP_400_BAD_REQUEST)
        if registration.status in EventRegistration.PARTICIPATING_STATUSES:
            return Response({
                'message': 'Payment already confirmed',
                'registration': EventRegistrationSerializer(registration).data,
            })
        registration.status = 'registered'
        registration.payment_status = 'successful'
        registration.amount_paid = event.price
        registration.save()

    create_audit_log(request=request, action='event_payment', model_name='Event',
                     object_id=event.id, object_name=event.title,
                     changes={'amount': str(event.price), 'transaction_id': request.data.get('transaction_id')},
                     college=event.college)
    return Response({
        'message': 'Payment confirmed',
        'registration': EventRegistrationSerializer(registration).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def event_unregister(request, pk):
    """Cancel the current user's registration"""
    event = get_object_or_404(visible_events(request.user), pk=pk)
    registration = EventRegistration.objects.filter(
        event=event, user=request.user, status__in=EventRegistration.ACTIVE_STATUSES
    ).first()
    if registration is None:
        return Response({'error': 'You are not registered for this event'}, status=status.HTTP_400_BAD_REQUEST)
    if event.has_ended():
        return Response({'error': 'Cannot unregister from a past event'}, status=status.HTTP_400_BAD_REQUEST)
    registration.status = 'cancelled'
    registration.save(update_fields=['status', 'updated_at'])
    create_audit_log(request=request, action='event_unregister', model_name='Event',
                     object_id=event.id, object_name=event.title, college=event.college)
    return Response({'message': 'Unregistered successfully'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def event_participants(request, pk):
    """Registrations of an event (organizer and staff roles)"""
    event = get_object_or_404(visible_events(request.user), pk=pk)
    if not can_view_participants(request.user, event):
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)
    registrations = event.registrations.select_related('user', 'event')
    status_filter = request.query_params.get('status')
    if status_filter:
        registrations = registrations.filter(status=status_filter)
    else:
        registrations = registrations.exclude(status='cancelled')
    return Response({
        'event': event.id,
        'count': registrations.count(),
        'results': EventRegistrationSerializer(registrations, many=True).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def event_attendance(request, pk):
    """Mark registered users as attended"""
    event = get_object_or_404(visible_events(request.user), pk=pk)
    if not can_view_participants(request.user, event):
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)
    user_ids = request.data.get('user_ids') or []
    if not isinstance(user_ids, list) or not user_ids:
        return Response({'error': 'user_ids must be a non-empty list'}, status=status.HTTP_400_BAD_REQUEST)

    registrations = event.registrations.filter(user_id__in=user_ids, status='registered')
    updated = 0
    for registration in registrations:
        registration.status = 'attended'
        registration.save(update_fields=['status', 'updated_at'])
        updated += 1
    return Response({'updated': updated})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def event_feedback(request, pk):
    """List feedback or leave feedback for an attended event"""
    event = get_object_or_404(visible_events(request.user), pk=pk)

    if request.method == 'GET':
        feedback = event.feedback.select_related('user')
        return Response(EventFeedbackSerializer(feedback, many=True).data)

    participated = event.registrations.filter(
        user=request.user, status__in=EventRegistration.PARTICIPATING_STATUSES
    ).exists()
    if not participated:
        return Response({'error': 'Only participants can leave feedback'}, status=status.HTTP_400_BAD_REQUEST)
    if not event.has_ended():
        return Response({'error': 'Feedback opens after the event has ended'}, status=status.HTTP_400_BAD_REQUEST)
    if EventFeedback.objects.filter(event=event, user=request.user).exists():
        return Response({'error': 'Feedback already submitted'}, status=status.HTTP_400_BAD_REQUEST)

    serializer = EventFeedbackSerializer(data=request.data)
    if serializer.is_valid():
        feedback = serializer.save(event=event, user=request.user)
        return Response(EventFeedbackSerializer(feedback).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def upcoming_events(request):
    """Next upcoming events"""
    try:
        limit = min(int(request.query_params.get('limit', 10)), 50)
    except ValueError:
        limit = 10
    events = visible_events(request.user).filter(
        start_date__gte=timezone.now(), status='upcoming'
    ).order_by('start_date')[:limit]
    return Response(EventSerializer(events, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_events(request):
    """Events the current user is registered for"""
    registrations = EventRegistration.objects.filter(user=request.user).exclude(
        status='cancelled'
    ).select_related('event', 'user').order_by('event__start_date')
    when = request.query_params.get('when')
    now = timezone.now()
    if when == 'upcoming':
        registrations = registrations.filter(event__start_date__gte=now)
    elif when == 'past':
        registrations = registrations.filter(event__start_date__lt=now)
    return Response(EventRegistrationSerializer(registrations, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def event_stats(request):
    """Event statistics for the user's college"""
    if not can_manage_alumni(request.user):
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)
    events = scope_to_college(request.user, Event.objects.all())
    now = timezone.now()

    by_type = events.values('event_type').annotate(count=Count('id')).order_by('event_type')
    monthly = events.filter(
        start_date__gte=now - timedelta(days=365)
    ).annotate(
        month=TruncMonth('start_date')
    ).values('month').annotate(count=Count('id')).order_by('month')

    return Response({
        'total': events.count(),
        'upcoming': events.filter(start_date__gte=now).exclude(status='cancelled').count(),
        'online': events.filter(is_online=True).count(),
        'offline': events.filter(is_online=False).count(),
        'total_registrations': EventRegistration.objects.filter(
            event__in=events, status__in=EventRegistration.PARTICIPATING_STATUSES
        ).count(),
        'by_type': [{'type': row['event_type'], 'count': row['count']} for row in by_type],
        'monthly': [
            {'month': row['month'].strftime('%Y-%m') if row['month'] else None, 'count': row['count']}
            for row in monthly
        ],
    })
