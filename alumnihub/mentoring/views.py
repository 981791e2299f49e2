import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Avg, Count, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone

from alumnihub.core.pagination import paginate, paginated_response_data
from alumnihub.core.permissions import (
    IsCollegeStaff, can_manage_alumni, is_admin, same_college, scope_to_college,
)
from alumnihub.core.utils import create_audit_log
from .filters import MenteeRegistrationFilter, MentoringProgramFilter, MentorRegistrationFilter
from .matching import manual_match, respond_to_match, run_matching
from .models import (
    ApprovalHistory, MenteeRegistration, MentoringProgram, MentorMenteeMatch, MentorRegistration,
    MentorshipCommunication,
)
from .serializers import (
    ApprovalHistorySerializer, MenteeRegistrationSerializer, MenteeSummarySerializer, MentoringProgramSerializer,
    MenteePreferencesSerializer, MentorMenteeMatchSerializer, MentorRegistrationSerializer,
    MentorshipCommunicationSerializer, MentorSummarySerializer,
)
from .workflow import REGISTRATION_MODELS, WorkflowError, transition_registration

logger = logging.getLogger(__name__)
User = get_user_model()

REGISTRATION_SERIALIZERS = {
    'mentor': MentorRegistrationSerializer,
    'mentee': MenteeRegistrationSerializer,
}
REGISTRATION_FILTERS = {
    'mentor': MentorRegistrationFilter,
    'mentee': MenteeRegistrationFilter,
}
STATUSES = ('submitted', 'approved', 'rejected')


def visible_programs(user):
    """Staff see every program of their college; others only published ones"""
    queryset = scope_to_college(user, MentoringProgram.objects.select_related('manager', 'college'))
    if not can_manage_alumni(user):
        queryset = queryset.filter(status='published')
    return queryset


def registration_queryset(kind, user):
    model = REGISTRATION_MODELS[kind]
    return scope_to_college(user, model.objects.select_related('program', 'user'))


def filtered_registrations(kind, request):
    filterset = REGISTRATION_FILTERS[kind](request.query_params, queryset=registration_queryset(kind, request.user))
    return filterset.qs


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def program_list_create(request):
    """List mentoring programs or create one (staff roles)"""
    if request.method == 'GET':
        programs = MentoringProgramFilter(request.query_params, queryset=visible_programs(request.user)).qs
        return Response(paginated_response_data(request, programs, MentoringProgramSerializer))

    if not can_manage_alumni(request.user):
        return Response({'error': 'Only staff can create mentoring programs'}, status=status.HTTP_403_FORBIDDEN)
    serializer = MentoringProgramSerializer(data=request.data)
    if serializer.is_valid():
        program = serializer.save(created_by=request.user, college=request.user.college)
        create_audit_log(request=request, action='create', model_name='MentoringProgram',
                         object_id=program.id, object_name=program.name)
        logger.info(f"Mentoring program created: {program.name} (ID: {program.id}) by {request.user.username}")
        return Response(MentoringProgramSerializer(program).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def program_detail(request, pk):
    program = get_object_or_404(visible_programs(request.user), pk=pk)
    if request.method == 'GET':
        return Response(MentoringProgramSerializer(program).data)

    if request.method == 'DELETE':
        if not is_admin(request.user):
            return Response({'error': 'Only admins can delete mentoring programs'}, status=status.HTTP_403_FORBIDDEN)
        create_audit_log(request=request, action='delete', model_name='MentoringProgram',
                         object_id=program.id, object_name=program.name)
        program.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    if not can_manage_alumni(request.user):
        return Response({'error': 'Only staff can change mentoring programs'}, status=status.HTTP_403_FORBIDDEN)
    serializer = MentoringProgramSerializer(program, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        serializer.save()
        create_audit_log(request=request, action='update', model_name='MentoringProgram',
                         object_id=program.id, object_name=program.name,
                         changes={'fields': sorted(serializer.validated_data)})
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


def _register(request, pk, kind):
    program = get_object_or_404(visible_programs(request.user), pk=pk)
    if program.status != 'published':
        return Response({'error': 'Program is not open for registration'}, status=status.HTTP_400_BAD_REQUEST)

    closes_on = program.registration_end_date_mentor if kind == 'mentor' else program.registration_end_date_mentee
    if timezone.localdate() > closes_on:
        return Response({'error': f'{kind.title()} registration for this program has closed'}, status=status.HTTP_400_BAD_REQUEST)

    serializer_class = REGISTRATION_SERIALIZERS[kind]
    serializer = serializer_class(data=request.data, context={'request': request, 'program': program})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    model = REGISTRATION_MODELS[kind]
    if kind == 'mentor':
        duplicate = model.objects.filter(program=program, user=request.user).exists()
    else:
        duplicate = model.objects.filter(program=program, personal_email__iexact=serializer.validated_data['personal_email']).exists()
    if duplicate:
        return Response({'error': f'Already registered as a {kind} for this program'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        with transaction.atomic():
            registration = serializer.save(program=program, user=request.user, college=program.college)
    except IntegrityError:
        return Response({'error': f'Already registered as a {kind} for this program'}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, action='create', model_name=model.__name__,
                     object_id=registration.id, object_name=registration.full_name,
                     college=program.college)
    logger.info(f"{kind.title()} registration {registration.id} submitted for program {program.id} by {request.user.username}")
    return Response(serializer_class(registration).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def mentor_register(request, pk):
    """Register the current alumni user as a mentor"""
    if request.user.role != User.ROLE_ALUMNI:
        return Response({'error': 'Only alumni can register as mentors'}, status=status.HTTP_403_FORBIDDEN)
    return _register(request, pk, 'mentor')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def mentee_register(request, pk):
    return _register(request, pk, 'mentee')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_registrations(request):
    mentors = MentorRegistration.objects.filter(user=request.user).select_related('program')
    mentees = MenteeRegistration.objects.filter(user=request.user).select_related('program')
    return Response({
        'mentor_registrations': MentorRegistrationSerializer(mentors, many=True).data,
        'mentee_registrations': MenteeRegistrationSerializer(mentees, many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCollegeStaff])
def approval_queue(request):
    """
    Mentor and mentee registrations awaiting or past review.

    Query params: stage (submitted/approved/rejected), type (mentor/mentee),
    program, search, page, limit.
    """
    kind = request.query_params.get('type')
    if kind and kind not in REGISTRATION_MODELS:
        return Response({'error': "type must be 'mentor' or 'mentee'"}, status=status.HTTP_400_BAD_REQUEST)

    data = {}
    for each in REGISTRATION_MODELS:
        key = f'{each}s'
        if kind and kind != each:
            data[key] = []
            data[f'{each}_total'] = 0
            continue
        page_items, meta = paginate(request, filtered_registrations(each, request))
        data[key] = REGISTRATION_SERIALIZERS[each](page_items, many=True).data
        data[f'{each}_total'] = meta['count']
        data['page'] = meta['page']
        data['page_size'] = meta['page_size']
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCollegeStaff])
def mentor_approvals(request):
    return Response(paginated_response_data(request, filtered_registrations('mentor', request), MentorRegistrationSerializer))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCollegeStaff])
def mentee_approvals(request):
    return Response(paginated_response_data(request, filtered_registrations('mentee', request), MenteeRegistrationSerializer))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def registration_action(request, kind, pk, action):
    """
    Approve, reject, reconsider or disapprove a registration.

    Body: reason (required for reject and disapprove), notes.
    """
    try:
        registration, history = transition_registration(
            kind, pk, action, request.user,
            reason=request.data.get('reason', ''),
            notes=request.data.get('notes', ''),
            request=request,
        )
    except WorkflowError as e:
        return Response({'error': e.message}, status=e.status_code)

    return Response({
        'message': f'Registration {registration.status}',
        'registration': REGISTRATION_SERIALIZERS[kind](registration).data,
        'history': ApprovalHistorySerializer(history).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def registration_history(request, kind, pk):
    """Decision history of a registration, newest first. Visible to staff and the registrant."""
    if kind not in REGISTRATION_MODELS:
        return Response({'error': f"Unknown registration type '{kind}'"}, status=status.HTTP_404_NOT_FOUND)
    registration = get_object_or_404(REGISTRATION_MODELS[kind].objects.select_related('program'), pk=pk)
    is_registrant = registration.user_id == request.user.id
    if not is_registrant and not (can_manage_alumni(request.user) and same_college(request.user, registration.college_id)):
        return Response({'error': 'You do not have access to this registration'}, status=status.HTTP_403_FORBIDDEN)

    history = registration.history.select_related('performed_by')
    return Response({
        'registration': REGISTRATION_SERIALIZERS[kind](registration).data,
        'history': ApprovalHistorySerializer(history, many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCollegeStaff])
def approval_statistics(request):
    """Per-status counts for mentors and mentees, plus the latest decisions"""
    program_id = request.query_params.get('program')
    data = {}
    for kind in REGISTRATION_MODELS:
        queryset = registration_queryset(kind, request.user)
        if program_id:
            queryset = queryset.filter(program_id=program_id)
        counts = dict(queryset.values_list('status').annotate(n=Count('id')).order_by())
        stats = {name: counts.get(name, 0) for name in STATUSES}
        stats['total'] = sum(stats.values())
        data[f'{kind}s'] = stats

    recent = ApprovalHistory.objects.select_related('performed_by')
    recent = recent.filter(
        Q(mentor_registration__in=registration_queryset('mentor', request.user)) |
        Q(mentee_registration__in=registration_queryset('mentee', request.user))
    )
    data['recent_actions'] = ApprovalHistorySerializer(recent[:10], many=True).data
    return Response(data)


# Matching
def match_queryset():
    return MentorMenteeMatch.objects.select_related('program', 'mentor_registration', 'mentee_registration')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def program_mentors(request, pk):
    """Approved mentors of a program, for mentees choosing their preferences"""
    program = get_object_or_404(visible_programs(request.user), pk=pk)
    mentors = program.mentorregistrations.filter(status='approved').order_by('last_name', 'first_name', 'id')
    return Response(paginated_response_data(request, mentors, MentorSummarySerializer))


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def mentee_preferences(request, pk):
    """
    Read or submit the current user's ranked mentor preferences.

    Body: preferred_mentors, approved mentor registration ids, first choice first.
    """
    program = get_object_or_404(visible_programs(request.user), pk=pk)
    mentee = MenteeRegistration.objects.filter(program=program, user=request.user, status='approved').first()
    if mentee is None:
        return Response({'error': 'Approved mentee registration not found for this program'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        mentors = MentorRegistration.objects.in_bulk(mentee.preferred_mentors)
        chosen = [mentors[i] for i in mentee.preferred_mentors if i in mentors]
        return Response({
            'preferred_mentors': MentorSummarySerializer(chosen, many=True).data,
            'submitted_at': mentee.preferences_submitted_at,
        })

    if timezone.localdate() > program.registration_end_date_mentee:
        return Response({'error': 'The deadline for mentor preferences has passed'}, status=status.HTTP_400_BAD_REQUEST)
    serializer = MenteePreferencesSerializer(data=request.data, context={'program': program})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    mentee.preferred_mentors = serializer.validated_data['preferred_mentors']
    mentee.preferences_submitted_at = timezone.now()
    mentee.save(update_fields=['preferred_mentors', 'preferences_submitted_at', 'updated_at'])
    create_audit_log(request=request, action='update', model_name='MenteeRegistration',
                     object_id=mentee.id, object_name=mentee.full_name,
                     changes={'preferred_mentors': mentee.preferred_mentors}, college=program.college)
    return Response({
        'message': 'Mentor preferences submitted',
        'preferred_mentors': mentee.preferred_mentors,
        'submitted_at': mentee.preferences_submitted_at,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def matching_run(request, pk):
    """Offer every approved, unmatched mentee to a mentor"""
    program = get_object_or_404(MentoringProgram, pk=pk)
    try:
        summary = run_matching(program, request.user, request=request)
    except WorkflowError as e:
        return Response({'error': e.message}, status=e.status_code)
    return Response(summary)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def matching_manual(request, pk):
    """
    Pair a mentee with a mentor by hand.

    Body: mentee_registration, mentor_registration (ids).
    """
    program = get_object_or_404(MentoringProgram, pk=pk)
    mentee_id = request.data.get('mentee_registration')
    mentor_id = request.data.get('mentor_registration')
    if not mentee_id or not mentor_id:
        return Response({'error': 'mentee_registration and mentor_registration are required'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        match = manual_match(program, mentee_id, mentor_id, request.user, request=request)
    except WorkflowError as e:
        return Response({'error': e.message}, status=e.status_code)
    return Response(MentorMenteeMatchSerializer(match).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCollegeStaff])
def program_matches(request, pk):
    """Matches of a program. Query params: status, match_type, page, limit."""
    program = get_object_or_404(visible_programs(request.user), pk=pk)
    matches = match_queryset().filter(program=program)
    for param in ('status', 'match_type'):
        value = request.query_params.get(param)
        if value:
            matches = matches.filter(**{param: value})
    return Response(paginated_response_data(request, matches, MentorMenteeMatchSerializer))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCollegeStaff])
def unmatched_mentees(request, pk):
    """Approved mentees with no pending or accepted match"""
    program = get_object_or_404(visible_programs(request.user), pk=pk)
    mentees = program.menteeregistrations.filter(status='approved').exclude(
        matches__status__in=MentorMenteeMatch.ACTIVE_STATUSES
    ).order_by('submitted_at', 'id')
    return Response(paginated_response_data(request, mentees, MenteeSummarySerializer))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCollegeStaff])
def matching_statistics(request, pk):
    program = get_object_or_404(visible_programs(request.user), pk=pk)
    matches = program.matches.all()
    by_status = dict(matches.values_list('status').annotate(n=Count('id')).order_by())
    by_type = dict(matches.values_list('match_type').annotate(n=Count('id')).order_by())
    total_mentees = program.menteeregistrations.filter(status='approved').count()
    matched = matches.filter(status=MentorMenteeMatch.STATUS_ACCEPTED).values('mentee_registration').distinct().count()

    data = {
        'total_mentees': total_mentees,
        'total_mentors': program.mentorregistrations.filter(status='approved').count(),
        'matched_mentees': matched,
        'unmatched_mentees': total_mentees - matched,
        'total_matches': sum(by_status.values()),
    }
    for value, _ in MentorMenteeMatch.STATUS_CHOICES:
        data[value] = by_status.get(value, 0)
    for value, _ in MentorMenteeMatch.TYPE_CHOICES:
        data[f'{value}_matches'] = by_type.get(value, 0)
    average = matches.aggregate(avg=Avg('score'))['avg']
    data['average_score'] = round(float(average), 1) if average is not None else None
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_matches(request):
    """The current user's matches as a mentee and as a mentor. Query param: program."""
    as_mentee = match_queryset().filter(mentee_registration__user=request.user)
    as_mentor = match_queryset().filter(
        mentor_registration__user=request.user, status__in=MentorMenteeMatch.ACTIVE_STATUSES
    )
    program_id = request.query_params.get('program')
    if program_id:
        as_mentee = as_mentee.filter(program_id=program_id)
        as_mentor = as_mentor.filter(program_id=program_id)
    return Response({
        'as_mentee': MentorMenteeMatchSerializer(as_mentee, many=True).data,
        'as_mentor': MentorMenteeMatchSerializer(as_mentor, many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def match_requests(request):
    """Pending matches waiting for the current user's answer as mentor"""
    matches = match_queryset().filter(
        mentor_registration__user=request.user, status=MentorMenteeMatch.STATUS_PENDING
    ).order_by('respond_by', 'id')
    return Response(MentorMenteeMatchSerializer(matches, many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def match_respond(request, pk, action):
    """Accept or reject a match as its mentor. Body: reason (optional)."""
    try:
        match = respond_to_match(pk, action, request.user, reason=request.data.get('reason', ''), request=request)
    except WorkflowError as e:
        return Response({'error': e.message}, status=e.status_code)
    return Response({
        'message': f'Match {match.status}',
        'match': MentorMenteeMatchSerializer(match).data,
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def communication_list_create(request):
    """Mentorship messages sent or received by the current user"""
    if request.method == 'GET':
        messages = MentorshipCommunication.objects.filter(
            Q(from_user=request.user) | Q(to_user=request.user)
        ).select_related('from_user', 'to_user', 'program')
        program_id = request.query_params.get('program')
        if program_id:
            messages = messages.filter(program_id=program_id)
        return Response(paginated_response_data(request, messages, MentorshipCommunicationSerializer))

    serializer = MentorshipCommunicationSerializer(data=request.data)
    if serializer.is_valid():
        recipient = serializer.validated_data['to_user']
        if recipient.id == request.user.id:
            return Response({'error': 'Cannot send a message to yourself'}, status=status.HTTP_400_BAD_REQUEST)
        if not same_college(request.user, recipient.college_id):
            return Response({'error': 'Recipient belongs to another college'}, status=status.HTTP_400_BAD_REQUEST)
        message = serializer.save(from_user=request.user)
        return Response(MentorshipCommunicationSerializer(message).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
