"""
Email notifications for registration decisions and mentor matches
"""
import logging

from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)

SUBJECTS = {
    'approve': 'Your {kind} registration for {program} has been approved',
    'reject': 'Your {kind} registration for {program} was not approved',
    'reconsider': 'Your {kind} registration for {program} is under review again',
    'disapprove': 'Your {kind} registration for {program} has been withdrawn',
}


def build_decision_email(registration, kind, action, reason=''):
    """Return (subject, body) for a decision on a registration"""
    program = registration.program.name
    subject = SUBJECTS[action].format(kind=kind, program=program)
    lines = [
        f"Dear {registration.preferred_name or registration.first_name},",
        '',
        subject + '.',
    ]
    if reason:
        lines.extend(['', f"Reason: {reason}"])
    lines.extend(['', 'AlumniHub'])
    return subject, '\n'.join(lines)


def build_match_request_email(match):
    mentor = match.mentor_registration
    mentee = match.mentee_registration
    subject = f'New mentee match request for {match.program.name}'
    lines = [
        f"Dear {mentor.preferred_name or mentor.first_name},",
        '',
        f"{mentee.full_name} (class of {mentee.class_of}) has been matched with you.",
        f"Areas of mentoring: {', '.join(mentee.areas_of_mentoring)}",
    ]
    if match.respond_by:
        lines.append(f"Please accept or decline by {match.respond_by:%d %b %Y}.")
    lines.extend(['', 'AlumniHub'])
    return subject, '\n'.join(lines)


def build_match_accepted_email(match):
    mentee = match.mentee_registration
    subject = f'Your mentor for {match.program.name} has accepted'
    body = '\n'.join([
        f"Dear {mentee.preferred_name or mentee.first_name},",
        '',
        f"{match.mentor_registration.full_name} has accepted to mentor you.",
        'Your mentor will be in touch with you soon.',
        '',
        'AlumniHub',
    ])
    return subject, body


def send_notification(recipient, subject, body, label):
    """
    Send one email. Failures are logged and never raised: the change that
    triggered the email is already committed.
    """
    if not recipient:
        return False
    try:
        send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [recipient], fail_silently=False)
    except Exception as e:
        logger.error(f"Failed to send {label} email: {str(e)}")
        return False
    logger.info(f"Sent {label} email")
    return True


def notify_registrant(registration, kind, action, reason=''):
    """Send the decision email to the registrant"""
    subject, body = build_decision_email(registration, kind, action, reason)
    return send_notification(
        registration.personal_email, subject, body, f'{action} for {kind} registration {registration.id}'
    )


def notify_match_request(match):
    subject, body = build_match_request_email(match)
    return send_notification(
        match.mentor_registration.personal_email, subject, body, f'match request {match.id}'
    )


def notify_match_accepted(match):
    subject, body = build_match_accepted_email(match)
    return send_notification(
        match.mentee_registration.personal_email, subject, body, f'match accepted {match.id}'
    )
