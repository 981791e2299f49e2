"""
Mentor-mentee matching for a mentoring program.

Approved mentees are offered to one approved mentor at a time. Candidates are
scored on industry, programme, shared areas of mentoring and the mentee's
ranked preferences. The mentee's preferred mentors are tried in order before
the best scoring remaining mentor.

    pending   -> accepted        mentor accepts
    pending   -> rejected        mentor declines
    pending   -> auto_rejected   no answer before respond_by

A declined preferred match is offered to the next candidate straight away.
Mentees left without a mentor are matched by staff by hand. A mentor holds at
most MAX_MENTEES_PER_MENTOR pending or accepted matches per program.
"""
import logging
import re
from datetime import timedelta
from decimal import Decimal
from functools import partial

from django.db import transaction
from django.db.models import Count
from django.utils import timezone

from alumnihub.core.conf import get_setting
from alumnihub.core.permissions import can_review_registrations
from alumnihub.core.utils import create_audit_log
from .models import MenteeRegistration, MentoringProgram, MentorMenteeMatch, MentorRegistration, RegistrationBase
from .notifications import notify_match_accepted, notify_match_request
from .workflow import WorkflowError, deadline_passed

logger = logging.getLogger(__name__)

RELATED_INDUSTRIES = {
    'technology': {'software', 'it', 'tech', 'computing', 'ai', 'data'},
    'finance': {'banking', 'investment', 'accounting', 'consulting'},
    'healthcare': {'medical', 'pharmaceutical', 'biotech'},
    'education': {'academic', 'teaching', 'research'},
    'engineering': {'manufacturing', 'construction', 'automotive'},
}


def normalize(value):
    return (value or '').strip().lower()


def words(value, min_length=1):
    return {w for w in re.split(r'[^a-z0-9]+', normalize(value)) if len(w) >= min_length}


# Scores are 0-100
def industry_score(mentee_company, mentor_company, mentee_position='', mentor_position=''):
    if normalize(mentee_company) and normalize(mentee_company) == normalize(mentor_company):
        return 100
    mentee_words = words(f'{mentee_company} {mentee_position}')
    mentor_words = words(f'{mentor_company} {mentor_position}')
    for keywords in RELATED_INDUSTRIES.values():
        if mentee_words & keywords and mentor_words & keywords:
            return 60
    if {w for w in mentee_words & mentor_words if len(w) > 3}:
        return 40
    return 0


def programme_score(mentee_programme, mentor_programme):
    mentee = re.sub(r'[^a-z0-9\s]', '', normalize(mentee_programme))
    mentor = re.sub(r'[^a-z0-9\s]', '', normalize(mentor_programme))
    if not mentee or not mentor:
        return 0
    if mentee == mentor:
        return 100
    if mentee in mentor or mentor in mentee:
        return 80
    common = words(mentee, 4) & words(mentor, 4)
    if len(common) >= 2:
        return 60
    if common:
        return 30
    return 0


def skills_score(mentee_areas, mentor_areas):
    """Average of mentee coverage and mentor coverage of the shared areas"""
    mentee_areas = [normalize(a) for a in mentee_areas or []]
    mentor_areas = [normalize(a) for a in mentor_areas or []]
    if not mentee_areas or not mentor_areas:
        return 0
    matches = sum(
        1 for wanted in mentee_areas
        if any(wanted == offered or wanted in offered or offered in wanted for offered in mentor_areas)
    )
    coverage = matches / len(mentee_areas) + matches / len(mentor_areas)
    return round(coverage / 2 * 100)


def preference_score(mentor_registration_id, preferred_mentors):
    """Return (score, 1-based choice) or (0, None) when the mentor was not chosen"""
    scores = get_setting('MATCH_PREFERENCE_SCORES')
    if mentor_registration_id not in (preferred_mentors or []):
        return 0, None
    order = preferred_mentors.index(mentor_registration_id) + 1
    return (scores[order - 1] if order <= len(scores) else 0), order


def background(registration):
    """(company, position, programme) from the registrant's alumni profile"""
    profile = getattr(registration.user, 'alumni_profile', None) if registration.user_id else None
    company = getattr(registration, 'current_company', '') or (profile.current_company if profile else '')
    position = getattr(registration, 'current_position', '') or (profile.current_position if profile else '')
    programme = (profile.program or profile.department) if profile else ''
    return company, position, programme


def score_match(mentee, mentor):
    mentee_company, mentee_position, mentee_programme = background(mentee)
    mentor_company, mentor_position, mentor_programme = background(mentor)
    preference, order = preference_score(mentor.id, mentee.preferred_mentors)
    breakdown = {
        'industry': industry_score(mentee_company, mentor_company, mentee_position, mentor_position),
        'programme': programme_score(mentee_programme, mentor_programme),
        'skills': skills_score(mentee.areas_of_mentoring, mentor.areas_of_mentoring),
        'preference': preference,
    }
    weights = get_setting('MATCHING_WEIGHTS')
    total = sum(breakdown[name] * weights[name] for name in breakdown)
    return {
        'mentor_registration': mentor,
        'breakdown': breakdown,
        'total': round(total, 1),
        'preferred_order': order,
    }


def mentor_loads(program):
    """Pending and accepted matches per mentor registration id"""
    rows = MentorMenteeMatch.objects.filter(
        program=program, status__in=MentorMenteeMatch.ACTIVE_STATUSES
    ).values('mentor_registration').annotate(n=Count('id')).order_by()
    return {row['mentor_registration']: row['n'] for row in rows}


def available_mentors(program, excluded=()):
    """Approved mentors of the program below capacity"""
    capacity = get_setting('MAX_MENTEES_PER_MENTOR')
    full = [mentor_id for mentor_id, n in mentor_loads(program).items() if n >= capacity]
    return list(
        MentorRegistration.objects.filter(program=program, status=RegistrationBase.STATUS_APPROVED)
        .exclude(id__in=list(excluded) + full)
        .select_related('user', 'user__alumni_profile')
    )


def rank_candidates(mentee, mentors):
    scores = [score_match(mentee, mentor) for mentor in mentors]
    scores.sort(key=lambda s: (-s['total'], s['mentor_registration'].id))
    return scores


def find_best_match(mentee, excluded=()):
    """First available preferred mentor, otherwise the highest score"""
    scores = rank_candidates(mentee, available_mentors(mentee.program, excluded))
    if not scores:
        return None
    by_mentor = {s['mentor_registration'].id: s for s in scores}
    for mentor_id in mentee.preferred_mentors or []:
        if mentor_id in by_mentor:
            return by_mentor[mentor_id]
    return scores[0]


def declined_mentor_ids(mentee):
    return list(MentorMenteeMatch.objects.filter(
        mentee_registration=mentee, status__in=MentorMenteeMatch.DECLINED_STATUSES
    ).values_list('mentor_registration_id', flat=True))


def lock_program(pk):
    """Matches of a program are created under its row lock so capacity counts stay exact"""
    return MentoringProgram.objects.select_for_update().get(pk=pk)


def create_match(mentee, scored, match_type, status=MentorMenteeMatch.STATUS_PENDING, actor=None):
    now = timezone.now()
    pending = status == MentorMenteeMatch.STATUS_PENDING
    match = MentorMenteeMatch.objects.create(
        program=mentee.program,
        college=mentee.college,
        mentor_registration=scored['mentor_registration'],
        mentee_registration=mentee,
        match_type=match_type,
        status=status,
        score=Decimal(str(scored['total'])),
        score_breakdown=scored['breakdown'],
        preferred_order=scored['preferred_order'],
        respond_by=now + timedelta(days=get_setting('MATCH_RESPONSE_DAYS')) if pending else None,
        responded_at=None if pending else now,
        matched_by=actor,
    )
    if pending:
        transaction.on_commit(partial(notify_match_request, match))
    logger.info(f"Match {match.id}: mentee registration {mentee.id} -> mentor registration {match.mentor_registration_id} ({match_type}, {status})")
    return match


def offer_next_mentor(mentee):
    """
    Create a pending match for the mentee with the best mentor who has not
    declined them. Returns None when nobody is left.
    """
    scored = find_best_match(mentee, excluded=declined_mentor_ids(mentee))
    if scored is None:
        logger.warning(f"Mentee registration {mentee.id} needs a manual match")
        return None
    match_type = MentorMenteeMatch.TYPE_PREFERRED if scored['preferred_order'] else MentorMenteeMatch.TYPE_ALGORITHM
    return create_match(mentee, scored, match_type)


def _check_reviewer(actor, program):
    if not can_review_registrations(actor):
        raise WorkflowError('Only college admins, HODs and staff can match mentors', 403)
    if program.college_id != actor.college_id:
        raise WorkflowError('Program belongs to another college', 403)


def run_matching(program, actor, request=None):
    """
    Offer every approved, unmatched mentee of the program to a mentor.

    Returns a summary dict. Raises WorkflowError.
    """
    _check_reviewer(actor, program)
    today = timezone.localdate()
    if today <= program.registration_end_date_mentor or today <= program.registration_end_date_mentee:
        raise WorkflowError('Matching can start once mentor and mentee registration have closed')
    if deadline_passed(program, today):
        raise WorkflowError('The matching deadline for this program has passed')

    with transaction.atomic():
        program = lock_program(program.pk)
        mentees = list(
            MenteeRegistration.objects.filter(program=program, status=RegistrationBase.STATUS_APPROVED)
            .select_related('program', 'college', 'user')
            .order_by('submitted_at', 'id')
        )
        matched = set(MentorMenteeMatch.objects.filter(
            program=program, status__in=MentorMenteeMatch.ACTIVE_STATUSES
        ).values_list('mentee_registration_id', flat=True))

        summary = {'total_mentees': len(mentees), 'already_matched': 0, 'pending': 0, 'needs_manual': 0}
        for mentee in mentees:
            if mentee.id in matched:
                summary['already_matched'] += 1
            elif offer_next_mentor(mentee):
                summary['pending'] += 1
            else:
                summary['needs_manual'] += 1

        create_audit_log(request=request, user=actor, action='match_run', model_name='MentoringProgram',
                         object_id=program.id, object_name=program.name, changes=summary,
                         college=program.college)

    logger.info(f"Matching run for program {program.id} by {actor.username}: {summary}")
    return summary


def respond_to_match(match_id, action, actor, reason='', request=None):
    """
    Accept or reject a pending match as its mentor. Returns the match.
    """
    if action not in ('accept', 'reject'):
        raise WorkflowError(f"Unknown action '{action}'")

    with transaction.atomic():
        try:
            match = MentorMenteeMatch.objects.select_for_update(of=('self',)).select_related(
                'program', 'mentor_registration', 'mentee_registration'
            ).get(pk=match_id)
        except MentorMenteeMatch.DoesNotExist:
            raise WorkflowError('Match not found', 404)

        if match.mentor_registration.user_id != actor.id:
            raise WorkflowError('Only the assigned mentor can respond to this match', 403)
        if match.status != MentorMenteeMatch.STATUS_PENDING:
            raise WorkflowError(f'Cannot {action} a match that is {match.status}')

        match.responded_at = timezone.now()
        if action == 'accept':
            match.status = MentorMenteeMatch.STATUS_ACCEPTED
            match.save(update_fields=['status', 'responded_at', 'updated_at'])
            transaction.on_commit(partial(notify_match_accepted, match))
        else:
            match.status = MentorMenteeMatch.STATUS_REJECTED
            match.rejection_reason = (reason or '').strip()
            match.save(update_fields=['status', 'responded_at', 'rejection_reason', 'updated_at'])
            if match.match_type == MentorMenteeMatch.TYPE_PREFERRED:
                lock_program(match.program_id)
                offer_next_mentor(match.mentee_registration)

        create_audit_log(request=request, user=actor, action=f'match_{action}', model_name='MentorMenteeMatch',
                         object_id=match.id, object_name=str(match),
                         changes={'status': match.status, 'reason': match.rejection_reason},
                         college=match.college)

    logger.info(f"Match {match.id} {match.status} by {actor.username}")
    return match


def manual_match(program, mentee_id, mentor_id, actor, request=None):
    """Staff pair a mentee with a mentor; the match is accepted straight away"""
    _check_reviewer(actor, program)

    with transaction.atomic():
        program = lock_program(program.pk)
        mentee = MenteeRegistration.objects.filter(
            program=program, pk=mentee_id, status=RegistrationBase.STATUS_APPROVED
        ).select_related('program', 'college', 'user').first()
        mentor = MentorRegistration.objects.filter(
            program=program, pk=mentor_id, status=RegistrationBase.STATUS_APPROVED
        ).select_related('user').first()
        if mentee is None or mentor is None:
            raise WorkflowError('Approved mentee or mentor registration not found in this program', 404)

        if mentee.matches.filter(status__in=MentorMenteeMatch.ACTIVE_STATUSES).exists():
            raise WorkflowError('Mentee already has an active match')
        capacity = get_setting('MAX_MENTEES_PER_MENTOR')
        if mentor_loads(program).get(mentor.id, 0) >= capacity:
            raise WorkflowError(f'Mentor has reached the maximum of {capacity} mentees for this program')

        match = create_match(
            mentee, score_match(mentee, mentor), MentorMenteeMatch.TYPE_MANUAL,
            status=MentorMenteeMatch.STATUS_ACCEPTED, actor=actor,
        )
        create_audit_log(request=request, user=actor, action='match_manual', model_name='MentorMenteeMatch',
                         object_id=match.id, object_name=str(match), college=program.college)
        transaction.on_commit(partial(notify_match_accepted, match))

    return match


def expire_pending_matches(now=None):
    """
    Auto-reject pending matches past their respond_by time and offer
    preferred ones to the next candidate. Returns the number expired.
    """
    now = now or timezone.now()
    days = get_setting('MATCH_RESPONSE_DAYS')
    with transaction.atomic():
        expired = list(
            MentorMenteeMatch.objects.select_for_update(of=('self',)).select_related(
                'program', 'mentor_registration', 'mentee_registration'
            ).filter(status=MentorMenteeMatch.STATUS_PENDING, respond_by__lt=now)
        )
        for match in expired:
            match.status = MentorMenteeMatch.STATUS_AUTO_REJECTED
            match.rejection_reason = f'No response received within {days} days'
            match.save(update_fields=['status', 'rejection_reason', 'updated_at'])
            if match.match_type == MentorMenteeMatch.TYPE_PREFERRED:
                lock_program(match.program_id)
                offer_next_mentor(match.mentee_registration)

    logger.info(f"Auto-rejected {len(expired)} expired matches")
    return len(expired)
