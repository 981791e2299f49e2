import logging
from datetime import timedelta

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone

from alumnihub.core.pagination import paginate, paginated_response_data
from alumnihub.core.permissions import (
    IsCollegeStaff, is_admin, same_college, scope_to_college,
)
from alumnihub.core.utils import create_audit_log
from alumnihub.donations.models import Donation
from alumnihub.donations.serializers import DonationSerializer
from alumnihub.events.models import EventRegistration
from alumnihub.events.serializers import EventRegistrationSerializer
from alumnihub.mentoring.models import MentorshipCommunication
from .engagement import get_engagement_metrics, engagement_level
from .filters import AlumniProfileFilter
from .models import AlumniProfile, AlumniNote, AlumniIssue, IssueResponse, AlumniFlag, Message
from .serializers import (
    AlumniProfileSerializer, AlumniNoteSerializer, AlumniIssueSerializer,
    AlumniFlagSerializer, MessageSerializer,
)

User = get_user_model()
logger = logging.getLogger(__name__)

RECENT_ITEMS_LIMIT = 50


def resolve_alumni_profile(request, identifier):
    """
    Find the alumni profile addressed by a route id.

    The id may be an AlumniProfile id or the id of an alumni user. Alumni
    users without a profile get a minimal one. Returns (profile, None) on
    success, (None, Response) otherwise.
    """
    profile = AlumniProfile.objects.select_related('user', 'user__college').filter(pk=identifier).first()
    if profile is None:
        user = User.objects.filter(pk=identifier).first()
        if user is None:
            return None, Response({'error': 'Alumni not found'}, status=status.HTTP_404_NOT_FOUND)
        if user.role != User.ROLE_ALUMNI:
            return None, Response({'error': 'User is not an alumni'}, status=status.HTTP_400_BAD_REQUEST)
        if not same_college(request.user, user.college_id):
            return None, Response({'error': 'You do not have access to this alumni'}, status=status.HTTP_403_FORBIDDEN)
        profile, created = AlumniProfile.objects.get_or_create(user=user)
        if created:
            logger.info(f"Created minimal alumni profile for user {user.pk}")
        return profile, None

    if not same_college(request.user, profile.user.college_id):
        return None, Response({'error': 'You do not have access to this alumni'}, status=status.HTTP_403_FORBIDDEN)
    return profile, None


def visible_notes(user, profile):
    """Private notes are only visible to their author and to admins"""
    notes = profile.notes.select_related('staff')
    if not is_admin(user):
        notes = notes.filter(Q(is_private=False) | Q(staff=user))
    return notes


def can_modify(user, author_id):
    return author_id == user.id or is_admin(user)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCollegeStaff])
def alumni_list(request):
    """Alumni directory for staff"""
    queryset = scope_to_college(
        request.user,
        AlumniProfile.objects.select_related('user', 'user__college'),
        field='user__college',
    )
    queryset = AlumniProfileFilter(request.query_params, queryset=queryset).qs
    return Response(paginated_response_data(request, queryset, AlumniProfileSerializer))


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def alumni_me(request):
    """The current alumnus' own profile"""
    if request.user.role != User.ROLE_ALUMNI:
        return Response({'error': 'Only alumni have an alumni profile'}, status=status.HTTP_400_BAD_REQUEST)
    profile, _ = AlumniProfile.objects.get_or_create(user=request.user)
    if request.method == 'GET':
        return Response(AlumniProfileSerializer(profile).data)
    serializer = AlumniProfileSerializer(profile, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated, IsCollegeStaff])
def alumni_detail(request, pk):
    """Retrieve or update an alumni profile"""
    profile, error = resolve_alumni_profile(request, pk)
    if error:
        return error
    if request.method == 'GET':
        return Response(AlumniProfileSerializer(profile).data)
    serializer = AlumniProfileSerializer(profile, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        serializer.save()
        create_audit_log(request=request, action='update', model_name='AlumniProfile',
                         object_id=profile.id, object_name=str(profile), changes={'fields': sorted(serializer.validated_data)})
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCollegeStaff])
def alumni_360(request, pk):
    """Aggregated view of everything known about one alumnus"""
    profile, error = resolve_alumni_profile(request, pk)
    if error:
        return error
    alumni_user = profile.user

    notes = visible_notes(request.user, profile)[:RECENT_ITEMS_LIMIT]
    issues = profile.issues.select_related('raised_by', 'resolved_by', 'assigned_to').prefetch_related('responses__staff')
    donations = alumni_user.donations.select_related('campaign')[:RECENT_ITEMS_LIMIT]
    registrations = alumni_user.event_registrations.select_related('event').order_by('-event__start_date')[:RECENT_ITEMS_LIMIT]

    return Response({
        'profile': AlumniProfileSerializer(profile).data,
        'notes': AlumniNoteSerializer(notes, many=True).data,
        'issues': AlumniIssueSerializer(issues, many=True).data,
        'flags': AlumniFlagSerializer(profile.flags.select_related('created_by'), many=True).data,
        'donations': DonationSerializer(donations, many=True).data,
        'events': EventRegistrationSerializer(registrations, many=True).data,
        'engagement': get_engagement_metrics(alumni_user),
        # Fetched separately through the communications endpoint
        'communication_history': [],
    })


# Notes
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsCollegeStaff])
def alumni_notes(request, pk):
    """List or add notes on an alumnus"""
    profile, error = resolve_alumni_profile(request, pk)
    if error:
        return error

    if request.method == 'GET':
        notes = visible_notes(request.user, profile)
        category = request.query_params.get('category')
        if category:
            notes = notes.filter(category=category)
        return Response(paginated_response_data(request, notes, AlumniNoteSerializer))

    serializer = AlumniNoteSerializer(data=request.data)
    if serializer.is_valid():
        note = serializer.save(alumni=profile, staff=request.user)
        create_audit_log(request=request, action='create', model_name='AlumniNote',
                         object_id=note.id, object_name=str(profile),
                         changes={'category': note.category, 'is_private': note.is_private})
        return Response(AlumniNoteSerializer(note).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsCollegeStaff])
def alumni_note_detail(request, pk, note_pk):
    """Retrieve, update or delete a note"""
    profile, error = resolve_alumni_profile(request, pk)
    if error:
        return error
    note = get_object_or_404(visible_notes(request.user, profile), pk=note_pk)

    if request.method == 'GET':
        return Response(AlumniNoteSerializer(note).data)
    if not can_modify(request.user, note.staff_id):
        return Response({'error': 'Only the author or an admin can change this note'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'DELETE':
        create_audit_log(request=request, action='delete', model_name='AlumniNote',
                         object_id=note.id, object_name=str(profile))
        note.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = AlumniNoteSerializer(note, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# Issues
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsCollegeStaff])
def alumni_issues(request, pk):
    """List or raise issues for an alumnus"""
    profile, error = resolve_alumni_profile(request, pk)
    if error:
        return error

    if request.method == 'GET':
        issues = profile.issues.select_related('raised_by', 'resolved_by', 'assigned_to').prefetch_related('responses__staff')
        status_filter = request.query_params.get('status')
        if status_filter:
            issues = issues.filter(status=status_filter)
        priority = request.query_params.get('priority')
        if priority:
            issues = issues.filter(priority=priority)
        return Response(AlumniIssueSerializer(issues, many=True).data)

    serializer = AlumniIssueSerializer(data=request.data)
    if serializer.is_valid():
        issue = serializer.save(alumni=profile, raised_by=request.user)
        if issue.status in AlumniIssue.RESOLVED_STATUSES:
            issue.resolved_at = timezone.now()
            issue.resolved_by = request.user
            issue.save(update_fields=['resolved_at', 'resolved_by'])
        create_audit_log(request=request, action='create', model_name='AlumniIssue',
                         object_id=issue.id, object_name=issue.title,
                         changes={'status': issue.status, 'priority': issue.priority})
        return Response(AlumniIssueSerializer(issue).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsCollegeStaff])
def alumni_issue_detail(request, pk, issue_pk):
    """
    Retrieve, update or delete an issue.

    Besides the issue fields, an update accepts:
        response: text of a new response (or the new text when response_id is given)
        response_id: id of an existing response to edit
        response_id_to_delete: id of a response to remove
    Responses can only be edited or removed by their author or an admin.
    """
    profile, error = resolve_alumni_profile(request, pk)
    if error:
        return error
    issue = get_object_or_404(profile.issues, pk=issue_pk)

    if request.method == 'GET':
        return Response(AlumniIssueSerializer(issue).data)

    if request.method == 'DELETE':
        if not can_modify(request.user, issue.raised_by_id):
            return Response({'error': 'Only the creator or an admin can delete this issue'}, status=status.HTTP_403_FORBIDDEN)
        create_audit_log(request=request, action='delete', model_name='AlumniIssue',
                         object_id=issue.id, object_name=issue.title)
        issue.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = AlumniIssueSerializer(issue, data=request.data, partial=True)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    response_text = str(request.data.get('response') or '').strip()
    response_id = request.data.get('response_id')
    delete_id = request.data.get('response_id_to_delete')

    edited_response = None
    if response_id:
        edited_response = issue.responses.filter(pk=response_id).first()
        if edited_response is None:
            return Response({'error': 'Response not found'}, status=status.HTTP_404_NOT_FOUND)
        if not can_modify(request.user, edited_response.staff_id):
            return Response({'error': 'Only the author or an admin can edit this response'}, status=status.HTTP_403_FORBIDDEN)
        if not response_text:
            return Response({'error': 'Response content is required'}, status=status.HTTP_400_BAD_REQUEST)

    deleted_response = None
    if delete_id:
        deleted_response = issue.responses.filter(pk=delete_id).first()
        if deleted_response is None:
            return Response({'error': 'Response not found'}, status=status.HTTP_404_NOT_FOUND)
        if not can_modify(request.user, deleted_response.staff_id):
            return Response({'error': 'Only the author or an admin can delete this response'}, status=status.HTTP_403_FORBIDDEN)

    previous_status = issue.status
    with transaction.atomic():
        issue = serializer.save()
        if edited_response:
            edited_response.content = response_text
            edited_response.save(update_fields=['content', 'updated_at'])
        elif response_text:
            IssueResponse.objects.create(issue=issue, staff=request.user, content=response_text)
        if deleted_response:
            deleted_response.delete()

        if issue.status != previous_status:
            if issue.status in AlumniIssue.RESOLVED_STATUSES:
                issue.resolved_at = timezone.now()
                issue.resolved_by = request.user
            else:
                issue.resolved_at = None
                issue.resolved_by = None
            issue.save(update_fields=['resolved_at', 'resolved_by', 'updated_at'])

    create_audit_log(request=request, action='update', model_name='AlumniIssue',
                     object_id=issue.id, object_name=issue.title,
                     changes={'status': {'old': previous_status, 'new': issue.status}})
    issue.refresh_from_db()
    return Response(AlumniIssueSerializer(issue).data)


# Flags
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsCollegeStaff])
def alumni_flags(request, pk):
    """List flags or set one (upsert by flag_type)"""
    profile, error = resolve_alumni_profile(request, pk)
    if error:
        return error

    if request.method == 'GET':
        return Response(AlumniFlagSerializer(profile.flags.select_related('created_by'), many=True).data)

    flag_type = str(request.data.get('flag_type') or '').strip()
    flag_value = str(request.data.get('flag_value') or '').strip()
    if not flag_type or not flag_value:
        return Response({'error': 'flag_type and flag_value are required'}, status=status.HTTP_400_BAD_REQUEST)

    flag, created = AlumniFlag.objects.update_or_create(
        alumni=profile,
        flag_type=flag_type,
        defaults={
            'flag_value': flag_value,
            'description': request.data.get('description', '') or '',
            'created_by': request.user,
        },
    )
    create_audit_log(request=request, action='flag_set', model_name='AlumniFlag',
                     object_id=flag.id, object_name=str(profile),
                     changes={'flag_type': flag_type, 'flag_value': flag_value})
    return Response(AlumniFlagSerializer(flag).data,
                    status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsCollegeStaff])
def alumni_flag_delete(request, pk, flag_type):
    """Remove a flag by its type"""
    profile, error = resolve_alumni_profile(request, pk)
    if error:
        return error
    flag = get_object_or_404(AlumniFlag, alumni=profile, flag_type=flag_type)
    create_audit_log(request=request, action='flag_remove', model_name='AlumniFlag',
                     object_id=flag.id, object_name=str(profile), changes={'flag_type': flag_type})
    flag.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


def _participant(user):
    return {'id': user.id, 'name': user.display_name}


def build_communication_history(alumni_user):
    """Direct messages and mentorship communications of a user, newest first"""
    items = []
    messages = Message.objects.filter(
        Q(sender=alumni_user) | Q(recipient=alumni_user)
    ).select_related('sender', 'recipient')
    for message in messages:
        items.append({
            'id': f'message-{message.id}',
            'type': 'message',
            'subject': message.subject,
            'content': message.content,
            'from': _participant(message.sender),
            'to': _participant(message.recipient),
            'date': message.created_at,
            'is_read': message.is_read,
        })

    communications = MentorshipCommunication.objects.filter(
        Q(from_user=alumni_user) | Q(to_user=alumni_user)
    ).select_related('from_user', 'to_user', 'program')
    for communication in communications:
        items.append({
            'id': f'mentorship-{communication.id}',
            'type': 'mentorship',
            'subject': communication.subject,
            'content': communication.body,
            'from': _participant(communication.from_user),
            'to': _participant(communication.to_user),
            'date': communication.sent_at,
            'is_read': communication.is_read,
            'program': communication.program.name if communication.program_id else None,
        })

    items.sort(key=lambda item: item['date'], reverse=True)
    return items


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCollegeStaff])
def alumni_communications(request, pk):
    """Merged communication history with type/search filters"""
    profile, error = resolve_alumni_profile(request, pk)
    if error:
        return error

    items = build_communication_history(profile.user)

    comm_type = request.query_params.get('type')
    if comm_type and comm_type != 'all':
        items = [item for item in items if item['type'] == comm_type]

    search = request.query_params.get('search', '').strip().lower()
    if search:
        items = [
            item for item in items
            if search in item['from']['name'].lower()
            or search in item['to']['name'].lower()
            or search in (item['content'] or '').lower()
            or search in (item['subject'] or '').lower()
        ]

    page_items, meta = paginate(request, items)
    return Response({'results': page_items, **meta})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCollegeStaff])
def alumni_engagement(request, pk):
    """Engagement metrics of an alumnus"""
    profile, error = resolve_alumni_profile(request, pk)
    if error:
        return error
    return Response(get_engagement_metrics(profile.user))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCollegeStaff])
def alumni_analytics(request, pk):
    """Summary statistics and activity breakdown for an alumnus"""
    profile, error = resolve_alumni_profile(request, pk)
    if error:
        return error
    alumni_user = profile.user
    since = timezone.now() - timedelta(days=30)

    notes = visible_notes(request.user, profile)
    issues = profile.issues.all()
    donations = Donation.objects.filter(donor=alumni_user)
    registrations = EventRegistration.objects.filter(
        user=alumni_user, status__in=EventRegistration.PARTICIPATING_STATUSES
    )
    messages = Message.objects.filter(Q(sender=alumni_user) | Q(recipient=alumni_user))
    mentorship = MentorshipCommunication.objects.filter(Q(from_user=alumni_user) | Q(to_user=alumni_user))

    counts = [
        ('notes', notes.count()),
        ('issues', issues.count()),
        ('donations', donations.count()),
        ('events', registrations.count()),
        ('communications', messages.count() + mentorship.count()),
    ]
    total = sum(count for _, count in counts)

    recent = (
        notes.filter(created_at__gte=since).count()
        + issues.filter(created_at__gte=since).count()
        + donations.filter(created_at__gte=since).count()
        + registrations.filter(registered_at__gte=since).count()
        + messages.filter(created_at__gte=since).count()
        + mentorship.filter(sent_at__gte=since).count()
    )

    engagement = get_engagement_metrics(alumni_user)
    score = engagement['engagement_score']

    return Response({
        'summary_stats': {
            'total_activities': total,
            'engagement_score': score,
            'active_interactions': recent,
            'pending_items': issues.filter(status__in=AlumniIssue.PENDING_STATUSES).count(),
        },
        'activity_breakdown': [
            {
                'type': kind,
                'count': count,
                'percentage': round(count * 100 / total, 1),
            }
            for kind, count in counts if count > 0
        ],
        'engagement_status': {
            'level': engagement_level(score),
            'score': score,
        },
        'engagement': engagement,
    })


# Messages
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def message_list_create(request):
    """List the current user's messages or send one"""
    if request.method == 'GET':
        box = request.query_params.get('box', 'inbox')
        if box == 'sent':
            messages = Message.objects.filter(sender=request.user)
        else:
            messages = Message.objects.filter(recipient=request.user)
        messages = messages.select_related('sender', 'recipient')
        return Response(paginated_response_data(request, messages, MessageSerializer))

    serializer = MessageSerializer(data=request.data)
    if serializer.is_valid():
        recipient = serializer.validated_data['recipient']
        if recipient == request.user:
            return Response({'error': 'You cannot message yourself'}, status=status.HTTP_400_BAD_REQUEST)
        if not recipient.is_active or not same_college(request.user, recipient.college_id):
            return Response({'error': 'Recipient belongs to another college'}, status=status.HTTP_400_BAD_REQUEST)
        message = serializer.save(sender=request.user)
        return Response(MessageSerializer(message).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def message_mark_read(request, pk):
    """Mark a received message as read"""
    message = get_object_or_404(Message, pk=pk, recipient=request.user)
    if not message.is_read:
        message.is_read = True
        message.save(update_fields=['is_read'])
    return Response(MessageSerializer(message).data)
