"""
Approval workflow for mentor and mentee registrations.

    approve     submitted -> approved
    reject      submitted -> rejected   (reason required)
    reconsider  rejected  -> submitted
    disapprove  approved  -> rejected   (reason required)

Every transition locks the registration row, writes an ApprovalHistory row and
an audit log entry in the same transaction, and emails the registrant once the
transaction commits.
"""
import logging
from functools import partial

from django.db import transaction
from django.utils import timezone

from alumnihub.core.conf import get_setting
from alumnihub.core.permissions import can_review_registrations
from alumnihub.core.utils import create_audit_log
from .models import ApprovalHistory, MenteeRegistration, MentorRegistration, RegistrationBase
from .notifications import notify_registrant

logger = logging.getLogger(__name__)

REGISTRATION_MODELS = {
    'mentor': MentorRegistration,
    'mentee': MenteeRegistration,
}

TRANSITIONS = {
    'approve': (RegistrationBase.STATUS_SUBMITTED, RegistrationBase.STATUS_APPROVED),
    'reject': (RegistrationBase.STATUS_SUBMITTED, RegistrationBase.STATUS_REJECTED),
    'reconsider': (RegistrationBase.STATUS_REJECTED, RegistrationBase.STATUS_SUBMITTED),
    'disapprove': (RegistrationBase.STATUS_APPROVED, RegistrationBase.STATUS_REJECTED),
}

REASON_REQUIRED = ('reject', 'disapprove')
DEADLINE_BOUND = ('approve', 'reject')


class WorkflowError(Exception):
    def __init__(self, message, status_code=400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def get_registration_model(kind):
    model = REGISTRATION_MODELS.get(kind)
    if model is None:
        raise WorkflowError(f"Unknown registration type '{kind}'", 404)
    return model


def deadline_passed(program, today=None):
    if not program.matching_end_date:
        return False
    today = today or timezone.localdate()
    return today > program.matching_end_date


def _apply_status(registration, action, actor, reason, now):
    _, to_status = TRANSITIONS[action]
    registration.status = to_status
    if action == 'approve':
        registration.approved_by = actor
        registration.approved_at = now
        registration.rejected_by = None
        registration.rejected_at = None
        registration.rejection_reason = ''
    elif action in REASON_REQUIRED:
        registration.approved_by = None
        registration.approved_at = None
        registration.rejected_by = actor
        registration.rejected_at = now
        registration.rejection_reason = reason
    elif action == 'reconsider':
        registration.rejected_by = None
        registration.rejected_at = None
        registration.rejection_reason = ''
    registration.save()


def transition_registration(kind, registration_id, action, actor, reason='', notes='', request=None):
    """
    Apply a workflow action to a registration.

    Returns (registration, history). Raises WorkflowError with the HTTP status
    the caller should answer with.
    """
    model = get_registration_model(kind)
    if action not in TRANSITIONS:
        raise WorkflowError(f"Unknown action '{action}'")
    if not can_review_registrations(actor):
        raise WorkflowError('Only college admins, HODs and staff can review registrations', 403)

    reason = (reason or '').strip()
    notes = (notes or '').strip()
    min_length = get_setting('REJECTION_REASON_MIN_LENGTH')
    if action in REASON_REQUIRED and len(reason) < min_length:
        raise WorkflowError(f'A reason of at least {min_length} characters is required')

    with transaction.atomic():
        try:
            registration = model.objects.select_for_update(of=('self',)).select_related('program').get(pk=registration_id)
        except model.DoesNotExist:
            raise WorkflowError('Registration not found', 404)

        if registration.college_id != actor.college_id:
            raise WorkflowError('Registration belongs to another college', 403)

        from_status, to_status = TRANSITIONS[action]
        if registration.status != from_status:
            raise WorkflowError(f'Cannot {action} a registration that is {registration.status}')

        if action in DEADLINE_BOUND and deadline_passed(registration.program):
            raise WorkflowError('The matching deadline for this program has passed')

        _apply_status(registration, action, actor, reason, timezone.now())

        history = ApprovalHistory.objects.create(
            action=action,
            from_status=from_status,
            to_status=to_status,
            performed_by=actor,
            reason=reason,
            notes=notes,
            **{f'{kind}_registration': registration}
        )

        create_audit_log(
            request=request,
            user=actor,
            action=f'registration_{action}',
            model_name=model.__name__,
            object_id=registration.id,
            object_name=registration.full_name,
            changes={'status': {'old': from_status, 'new': to_status}, 'reason': reason},
            college=registration.college,
        )

        transaction.on_commit(partial(notify_registrant, registration, kind, action, reason))

    logger.info(f"{kind.title()} registration {registration.id} {from_status} -> {to_status} by {actor.username}")
    return registration, history
