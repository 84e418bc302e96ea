"""
Transactional job/application operations.

Each public function is one atomic unit: the job row is locked first, then the
applications involved, the rules in ``apps.jobs.workflow`` are consulted, and
all writes happen before the transaction commits. Status writes are
conditional on the status that was validated, so a concurrent writer that slips
past the row lock (e.g. on a backend without SELECT ... FOR UPDATE) surfaces
as ``ConflictError`` and the whole unit rolls back.

Notifications are sent with ``transaction.on_commit`` and therefore never
observe, or influence, an uncommitted state.
"""
import logging
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction, IntegrityError
from django.utils import timezone

from apps.management.models import ManagementLog
from core.constants import BID_TYPE_CHOICES, DEFAULT_CURRENCY
from .exceptions import (
    NotFoundError, ConflictError, DuplicateApplicationError, InvalidInputError, AuthorizationError,
    InvalidTransitionError,
)
from .models import Job, Application, ApplicationStatusHistory
from .signals import application_submitted, application_status_changed, job_status_changed
from . import workflow

User = get_user_model()
logger = logging.getLogger(__name__)

WORKFLOW_DEFAULTS = {
    'ACCEPT_STARTS_JOB': True,
    'ACCEPT_REJECTS_SHORTLISTED': False,
}

BID_TYPES = tuple(value for value, _ in BID_TYPE_CHOICES)


def workflow_setting(name):
    return getattr(settings, 'WORKFLOW', {}).get(name, WORKFLOW_DEFAULTS[name])


def _get_job(job_id, lock=False):
    queryset = Job.objects.select_for_update() if lock else Job.objects.all()
    try:
        return queryset.get(pk=job_id)
    except (Job.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Job not found")


def _get_application(application_id, lock=False):
    queryset = Application.objects.select_for_update() if lock else Application.objects.all()
    try:
        return queryset.get(pk=application_id)
    except (Application.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Application not found")


def _lock_application_with_job(application_id):
    """Lock the owning job, then the application, always in that order."""
    application = _get_application(application_id)
    job = _get_job(application.job_id, lock=True)
    application = _get_application(application_id, lock=True)
    return application, job


def _set_application_status(application, new_status, actor, note='', **extra):
    expected = application.status
    now = timezone.now()
    updated = Application.objects.filter(pk=application.pk, status=expected).update(
        status=new_status, last_updated=now, **extra
    )
    if updated != 1:
        logger.warning(f"Conflicting update on application {application.pk}: expected status '{expected}'")
        raise ConflictError()
    application.status = new_status
    application.last_updated = now
    for field, value in extra.items():
        setattr(application, field, value)
    ApplicationStatusHistory.objects.create(
        application=application, status=new_status, changed_by_id=actor.id, note=(note or '')[:255]
    )
    return expected


def _update_job(job, **changes):
    expected = job.status
    changes['updated_at'] = timezone.now()
    updated = Job.objects.filter(pk=job.pk, status=expected).update(**changes)
    if updated != 1:
        logger.warning(f"Conflicting update on job {job.pk}: expected status '{expected}'")
        raise ConflictError()
    for field, value in changes.items():
        setattr(job, field, value)
    return expected


def _notify_application_status(application, previous_status, actor):
    transaction.on_commit(lambda: application_status_changed.send(
        sender=Application, application=application, previous_status=previous_status, actor=actor
    ))


def _notify_job_status(job, previous_status, actor):
    transaction.on_commit(lambda: job_status_changed.send(
        sender=Job, job=job, previous_status=previous_status, actor=actor
    ))


def _clean_bid(bid):
    bid = bid or {}
    bid_type = bid.get('type')
    if bid_type not in BID_TYPES:
        raise InvalidInputError(f"Bid type must be one of: {', '.join(BID_TYPES)}")

    amount = bid.get('amount')
    if amount in (None, ''):
        if bid_type != 'negotiable':
            raise InvalidInputError("A bid amount is required unless the bid is negotiable")
        amount = None
    else:
        try:
            amount = Decimal(str(amount))
        except InvalidOperation:
            raise InvalidInputError("Bid amount must be a number")
        if amount <= 0:
            raise InvalidInputError("Bid amount must be greater than zero")

    return {
        'bid_type': bid_type,
        'bid_amount': amount,
        'bid_currency': bid.get('currency') or DEFAULT_CURRENCY,
        'estimated_days': bid.get('estimated_days'),
        'estimated_hours': bid.get('estimated_hours'),
    }


def submit_application(job_id, tradesperson_id, bid, cover_letter, availability=None, actor=None):
    """Create a pending application of ``tradesperson_id`` against an open job."""
    if actor is not None and actor.id != tradesperson_id:
        raise AuthorizationError("You can only apply on your own behalf")
    try:
        tradesperson = User.objects.get(pk=tradesperson_id)
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Tradesperson not found")
    if actor is None:
        actor = workflow.actor_for(tradesperson)

    if not cover_letter or not str(cover_letter).strip():
        raise InvalidInputError("Please provide a cover letter explaining why you are suitable for this job")
    bid_fields = _clean_bid(bid)

    with transaction.atomic():
        job = _get_job(job_id, lock=True)
        workflow.check_can_apply(job, actor, tradesperson.is_verified)
        if Application.objects.filter(job=job, tradesperson_id=tradesperson_id).exists():
            raise DuplicateApplicationError()
        try:
            with transaction.atomic():
                application = Application.objects.create(
                    job=job,
                    tradesperson_id=tradesperson_id,
                    cover_letter=cover_letter.strip(),
                    availability=availability or {},
                    **bid_fields
                )
        except IntegrityError:
            raise DuplicateApplicationError()
        ApplicationStatusHistory.objects.create(
            application=application, status='pending', changed_by_id=actor.id, note="Application submitted"
        )
        transaction.on_commit(lambda: application_submitted.send(
            sender=Application, application=application, actor=actor
        ))

    logger.info(f"Tradesperson {tradesperson_id} applied to job {job.pk} (application {application.pk})")
    return application


def transition_application(application_id, new_status, actor, note='', withdrawal_reason=''):
    """Move an application to ``new_status``.

    Accepting is routed through ``accept_application`` so its side effects
    always happen together.
    """
    if new_status == 'accepted':
        application, _ = accept_application(application_id, actor, note=note)
        return application

    with transaction.atomic():
        application, job = _lock_application_with_job(application_id)
        if not workflow.check_application_transition(application, job, new_status, actor):
            logger.info(f"Application {application.pk} already '{new_status}', nothing to do")
            return application

        extra = {}
        if new_status == 'withdrawn' and withdrawal_reason:
            extra['withdrawal_reason'] = withdrawal_reason
        previous = _set_application_status(application, new_status, actor, note=note, **extra)
        _notify_application_status(application, previous, actor)

    logger.info(f"Application {application.pk}: {previous} -> {new_status} by user {actor.id}")
    return application


def _reject_competing_applications(job, accepted, actor):
    statuses = workflow.sibling_statuses_to_reject(workflow_setting('ACCEPT_REJECTS_SHORTLISTED'))
    siblings = list(
        Application.objects.select_for_update()
        .filter(job=job, status__in=statuses)
        .exclude(pk=accepted.pk)
        .order_by('pk')
    )
    for sibling in siblings:
        previous = _set_application_status(sibling, 'rejected', actor, note="Another application was accepted")
        _notify_application_status(sibling, previous, actor)
    return siblings


def _assign_job(job, accepted, actor):
    if not workflow_setting('ACCEPT_STARTS_JOB'):
        return None
    previous = _update_job(
        job,
        status='in-progress',
        selected_tradesperson_id=accepted.tradesperson_id,
        start_date=job.start_date or timezone.now(),
    )
    _notify_job_status(job, previous, actor)
    return previous


def accept_application(application_id, actor, note=''):
    """Accept one application and settle its competitors, all or nothing.

    Returns ``(application, job)``.
    """
    with transaction.atomic():
        application, job = _lock_application_with_job(application_id)
        if not workflow.check_application_transition(application, job, 'accepted', actor):
            logger.info(f"Application {application.pk} already accepted, nothing to do")
            return application, job
        if job.applications.filter(status='accepted').exclude(pk=application.pk).exists():
            raise InvalidTransitionError("Another application has already been accepted for this job")

        previous = _set_application_status(application, 'accepted', actor, note=note or "Application accepted")
        _notify_application_status(application, previous, actor)
        rejected = _reject_competing_applications(job, application, actor)
        _assign_job(job, application, actor)

    logger.info(
        f"Application {application.pk} accepted for job {job.pk}; "
        f"{len(rejected)} competing application(s) rejected; job is '{job.status}'"
    )
    return application, job


def transition_job(job_id, new_status, actor, final_amount=None, customer_feedback=''):
    """Move a job to ``new_status``. Admin overrides are written to the management log."""
    with transaction.atomic():
        job = _get_job(job_id, lock=True)
        accepted = job.accepted_application()
        if not workflow.check_job_transition(job, new_status, actor, accepted is not None):
            logger.info(f"Job {job.pk} already '{new_status}', nothing to do")
            return job

        changes = {'status': new_status}
        if workflow.requires_selected_tradesperson(new_status):
            if job.selected_tradesperson_id is None and accepted is not None:
                changes['selected_tradesperson_id'] = accepted.tradesperson_id
        else:
            changes['selected_tradesperson_id'] = None
        if new_status == 'in-progress' and job.start_date is None:
            changes['start_date'] = timezone.now()
        if new_status == 'completed':
            changes['completed_at'] = timezone.now()
            changes['final_amount'] = final_amount if final_amount is not None else job.budget_min_amount
            changes['customer_feedback'] = customer_feedback or ''

        is_override = workflow.ADMIN in workflow.relationships(actor, job) and actor.id != job.customer_id
        previous = _update_job(job, **changes)
        if is_override:
            ManagementLog.objects.create(
                admin_id=actor.id,
                action='override_job_status',
                details=f"Changed job {job.pk} status from '{previous}' to '{new_status}'"
            )
        _notify_job_status(job, previous, actor)

    logger.info(f"Job {job.pk}: {previous} -> {new_status} by user {actor.id}")
    return job


def append_note(application_id, actor, text):
    """Append ``text`` to the notes field that belongs to ``actor``'s side of the application."""
    text = (text or '').strip()
    if not text:
        raise InvalidInputError("Note text is required")

    with transaction.atomic():
        application, job = _lock_application_with_job(application_id)
        field = workflow.note_field_for(application, job, actor)
        existing = getattr(application, field)
        setattr(application, field, f"{existing}\n{text}" if existing else text)
        application.save(update_fields=[field, 'last_updated'])

    logger.info(f"Note added to application {application.pk} ({field}) by user {actor.id}")
    return application


def get_application_for(application_id, actor):
    """Load an application the actor may see; marks it viewed when the job owner opens it."""
    application = _get_application(application_id)
    job = application.job
    held = workflow.relationships(actor, job, application)
    if not held:
        raise AuthorizationError("You do not have permission to view this application")
    if workflow.OWNER in held and not application.customer_viewed:
        Application.objects.filter(pk=application.pk).update(customer_viewed=True)
        application.customer_viewed = True
    return application
