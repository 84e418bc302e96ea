"""
Job and application lifecycle rules.

Everything in this module is a pure function over already-loaded objects: no
queries, no saves, no HTTP. ``apps.jobs.services`` loads and locks the rows,
asks these functions whether a transition is allowed and then writes the
result inside a single transaction.

An operation is always checked in the same order: the actor's relationship to
the job first (``AuthorizationError``), then idempotence (already in the
target state is a no-op), then the transition table and its preconditions
(``InvalidTransitionError``).
"""
from collections import namedtuple

from core.constants import (
    APPLICATION_STATUS_CHOICES, JOB_STATUS_CHOICES, JOB_TERMINAL_STATUSES, JOB_ASSIGNED_STATUSES,
)
from .exceptions import AuthorizationError, InvalidTransitionError

Actor = namedtuple('Actor', ['id', 'role'])

OWNER = 'owner'
APPLICANT = 'applicant'
ADMIN = 'admin'

APPLICATION_STATUSES = tuple(value for value, _ in APPLICATION_STATUS_CHOICES)
JOB_STATUSES = tuple(value for value, _ in JOB_STATUS_CHOICES)

# (from, to) -> who may trigger it
APPLICATION_TRANSITIONS = {
    ('pending', 'shortlisted'): OWNER,
    ('pending', 'accepted'): OWNER,
    ('pending', 'rejected'): OWNER,
    ('shortlisted', 'accepted'): OWNER,
    ('shortlisted', 'rejected'): OWNER,
    ('shortlisted', 'pending'): OWNER,
    ('pending', 'withdrawn'): APPLICANT,
    ('shortlisted', 'withdrawn'): APPLICANT,
}

JOB_TRANSITIONS = {
    ('draft', 'open'): OWNER,
    ('draft', 'canceled'): OWNER,
    ('open', 'in-progress'): OWNER,
    ('open', 'canceled'): OWNER,
    ('in-progress', 'completed'): OWNER,
}

# Every target status is reachable by exactly one kind of actor.
_APPLICATION_TARGET_ACTOR = {to: who for (_, to), who in APPLICATION_TRANSITIONS.items()}


def actor_for(user):
    """Build the explicit actor passed into workflow operations from an authenticated user."""
    role = 'admin' if user.is_superuser else user.role
    return Actor(id=user.pk, role=role)


def relationships(actor, job, application=None):
    """Return the set of capacities in which ``actor`` acts on ``job``/``application``."""
    found = set()
    if actor.role == 'admin':
        found.add(ADMIN)
    if actor.id is not None and actor.id == job.customer_id:
        found.add(OWNER)
    if application is not None and actor.id is not None and actor.id == application.tradesperson_id:
        found.add(APPLICANT)
    return found


def check_application_transition(application, job, new_status, actor):
    """Validate moving ``application`` to ``new_status``.

    Returns True when the change must be written and False when the
    application is already in ``new_status``. Raises AuthorizationError or
    InvalidTransitionError otherwise.
    """
    if new_status not in APPLICATION_STATUSES:
        raise InvalidTransitionError(f"Unknown application status '{new_status}'")

    required = _APPLICATION_TARGET_ACTOR.get(new_status)
    held = relationships(actor, job, application)
    if ADMIN not in held and (required is None or required not in held):
        if required == APPLICANT:
            raise AuthorizationError("Only the applicant can withdraw this application")
        raise AuthorizationError("Only the job owner can change the status of this application")

    if application.status == new_status:
        return False

    if (application.status, new_status) not in APPLICATION_TRANSITIONS:
        raise InvalidTransitionError(
            f"Cannot change application from '{application.status}' to '{new_status}'"
        )

    if required == OWNER and job.status != 'open':
        raise InvalidTransitionError(f"Job must be open to update applications (job is '{job.status}')")

    return True


def check_job_transition(job, new_status, actor, has_accepted_application=False):
    """Validate moving ``job`` to ``new_status``.

    Admins bypass the transition graph, but a job can never be in progress or
    completed without an accepted application. Returns True when the change
    must be written and False when the job is already in ``new_status``.
    """
    if new_status not in JOB_STATUSES:
        raise InvalidTransitionError(f"Unknown job status '{new_status}'")

    held = relationships(actor, job)
    if ADMIN in held:
        if job.status == new_status:
            return False
        if requires_selected_tradesperson(new_status) and not has_accepted_application:
            raise InvalidTransitionError("An application must be accepted before the job can start")
        return True
    if OWNER not in held:
        raise AuthorizationError("You are not authorized to update this job")

    if job.status == new_status:
        return False

    if job.status in JOB_TERMINAL_STATUSES:
        raise InvalidTransitionError(f"A {job.status} job cannot be changed")
    if (job.status, new_status) not in JOB_TRANSITIONS:
        raise InvalidTransitionError(f"Cannot change job from '{job.status}' to '{new_status}'")

    if new_status == 'in-progress' and not has_accepted_application:
        raise InvalidTransitionError("An application must be accepted before the job can start")

    return True


def check_can_apply(job, actor, is_verified):
    if actor.role != 'tradesperson':
        raise AuthorizationError("Only tradespeople can apply for jobs")
    if actor.id == job.customer_id:
        raise AuthorizationError("You cannot apply to your own job")
    if job.status != 'open':
        raise InvalidTransitionError("This job is no longer accepting applications")
    if not is_verified:
        raise AuthorizationError("Your account has not been verified yet. Please wait for admin verification.")


def note_field_for(application, job, actor):
    """Name of the notes field ``actor`` writes to on ``application``."""
    held = relationships(actor, job, application)
    if OWNER in held:
        return 'customer_notes'
    if APPLICANT in held:
        return 'tradesperson_notes'
    if ADMIN in held:
        return 'internal_notes'
    raise AuthorizationError("You do not have permission to add notes to this application")


def sibling_statuses_to_reject(reject_shortlisted=False):
    """Statuses of competing applications that accepting one application rejects."""
    if reject_shortlisted:
        return ('pending', 'shortlisted')
    return ('pending',)


def requires_selected_tradesperson(status):
    return status in JOB_ASSIGNED_STATUSES
