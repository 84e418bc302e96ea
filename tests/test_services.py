"""Tests for the transactional job/application operations."""

import random
from decimal import Decimal
from unittest.mock import patch

import pytest

from apps.jobs import services
from apps.jobs.exceptions import (
    AuthorizationError,
    ConflictError,
    DuplicateApplicationError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
)
from apps.jobs.models import Application, ApplicationStatusHistory, Job
from apps.jobs.workflow import actor_for
from apps.management.models import ManagementLog

from .factories import make_job, make_user

pytestmark = pytest.mark.django_db

FIXED_BID = {'type': 'fixed', 'amount': '150.00'}


def statuses(applications):
    return [Application.objects.get(pk=a.pk).status for a in applications]


class TestSubmitApplication:
    def test_creates_pending_application_with_history(self, job, tradesperson):
        application = services.submit_application(
            job.pk, tradesperson.pk, bid=FIXED_BID, cover_letter="  Happy to help.  ",
            availability={'available_days': ['Monday']},
        )

        assert application.status == 'pending'
        assert application.cover_letter == "Happy to help."
        assert application.bid_amount == Decimal('150.00')
        assert application.bid_currency == 'GBP'
        assert application.availability == {'available_days': ['Monday']}
        history = list(application.status_history.all())
        assert [(h.status, h.changed_by_id) for h in history] == [('pending', tradesperson.pk)]

    def test_duplicate_is_rejected(self, job, tradesperson):
        services.submit_application(job.pk, tradesperson.pk, bid=FIXED_BID, cover_letter="First")

        with pytest.raises(DuplicateApplicationError, match="already applied"):
            services.submit_application(job.pk, tradesperson.pk, bid=FIXED_BID, cover_letter="Again")
        assert Application.objects.filter(job=job, tradesperson=tradesperson).count() == 1

    @pytest.mark.parametrize("status", ['draft', 'in-progress', 'completed', 'canceled'])
    def test_job_must_be_open(self, customer, tradesperson, status):
        job = make_job(customer, status=status)
        with pytest.raises(InvalidTransitionError):
            services.submit_application(job.pk, tradesperson.pk, bid=FIXED_BID, cover_letter="Hi")
        assert not Application.objects.exists()

    def test_customer_cannot_apply(self, job, other_customer):
        with pytest.raises(AuthorizationError):
            services.submit_application(job.pk, other_customer.pk, bid=FIXED_BID, cover_letter="Hi")

    def test_cannot_apply_for_someone_else(self, job, tradespeople):
        with pytest.raises(AuthorizationError):
            services.submit_application(
                job.pk, tradespeople[0].pk, bid=FIXED_BID, cover_letter="Hi", actor=actor_for(tradespeople[1])
            )

    def test_cover_letter_required(self, job, tradesperson):
        with pytest.raises(InvalidInputError, match="cover letter"):
            services.submit_application(job.pk, tradesperson.pk, bid=FIXED_BID, cover_letter="   ")

    @pytest.mark.parametrize("bid", [
        {'type': 'fixed'},
        {'type': 'hourly', 'amount': ''},
        {'type': 'fixed', 'amount': '0'},
        {'type': 'fixed', 'amount': 'lots'},
        {'type': 'barter', 'amount': '10'},
        None,
    ])
    def test_invalid_bids(self, job, tradesperson, bid):
        with pytest.raises(InvalidInputError):
            services.submit_application(job.pk, tradesperson.pk, bid=bid, cover_letter="Hi")

    def test_negotiable_bid_needs_no_amount(self, job, tradesperson):
        application = services.submit_application(
            job.pk, tradesperson.pk, bid={'type': 'negotiable'}, cover_letter="Let's talk"
        )
        assert application.bid_amount is None

    def test_unknown_job(self, tradesperson):
        with pytest.raises(NotFoundError):
            services.submit_application(999999, tradesperson.pk, bid=FIXED_BID, cover_letter="Hi")

    def test_unverified_tradesperson_cannot_apply(self, job):
        newcomer = make_user('tradesperson', is_verified=False)
        with pytest.raises(AuthorizationError, match="has not been verified yet"):
            services.submit_application(job.pk, newcomer.pk, bid=FIXED_BID, cover_letter="Hi")
        assert not Application.objects.exists()

    def test_unknown_tradesperson(self, job):
        with pytest.raises(NotFoundError, match="Tradesperson not found"):
            services.submit_application(job.pk, 999999, bid=FIXED_BID, cover_letter="Hi")


class TestAcceptApplication:
    def test_scenario_accept_rejects_pending_keeps_shortlisted(self, job, applications, owner):
        a1, a2, a3 = applications
        services.transition_application(a3.pk, 'shortlisted', owner)

        application, updated_job = services.accept_application(a1.pk, owner)

        assert application.status == 'accepted'
        assert statuses([a1, a2, a3]) == ['accepted', 'rejected', 'shortlisted']
        job.refresh_from_db()
        assert job.selected_tradesperson_id == a1.tradesperson_id
        assert job.status == 'in-progress'
        assert job.start_date is not None
        assert updated_job.status == 'in-progress'

    def test_transition_to_accepted_has_same_side_effects(self, job, applications, owner):
        a1, a2, a3 = applications
        services.transition_application(a2.pk, 'accepted', owner)

        assert statuses([a1, a2, a3]) == ['rejected', 'accepted', 'rejected']
        job.refresh_from_db()
        assert job.selected_tradesperson_id == a2.tradesperson_id

    def test_reject_shortlisted_flag(self, settings, job, applications, owner):
        settings.WORKFLOW = {'ACCEPT_STARTS_JOB': True, 'ACCEPT_REJECTS_SHORTLISTED': True}
        a1, a2, a3 = applications
        services.transition_application(a3.pk, 'shortlisted', owner)

        services.accept_application(a1.pk, owner)

        assert statuses([a1, a2, a3]) == ['accepted', 'rejected', 'rejected']

    def test_accept_without_starting_job(self, settings, job, applications, owner):
        settings.WORKFLOW = {'ACCEPT_STARTS_JOB': False, 'ACCEPT_REJECTS_SHORTLISTED': False}
        a1, a2, _ = applications
        services.transition_application(a2.pk, 'shortlisted', owner)

        services.accept_application(a1.pk, owner)

        job.refresh_from_db()
        assert job.status == 'open'
        assert job.selected_tradesperson_id is None

        with pytest.raises(InvalidTransitionError, match="already been accepted"):
            services.accept_application(a2.pk, owner)

        services.transition_job(job.pk, 'in-progress', owner)
        job.refresh_from_db()
        assert job.status == 'in-progress'
        assert job.selected_tradesperson_id == a1.tradesperson_id

    def test_records_history(self, job, applications, owner, customer):
        a1, a2, _ = applications
        services.accept_application(a1.pk, owner)

        accepted = ApplicationStatusHistory.objects.filter(application=a1).last()
        rejected = ApplicationStatusHistory.objects.filter(application=a2).last()
        assert (accepted.status, accepted.changed_by_id) == ('accepted', customer.pk)
        assert rejected.status == 'rejected'
        assert rejected.note == "Another application was accepted"

    def test_transition_to_accepted_keeps_note(self, job, applications, owner):
        a1 = applications[0]
        services.transition_application(a1.pk, 'accepted', owner, note="Best price and earliest start")

        accepted = ApplicationStatusHistory.objects.filter(application=a1).last()
        assert (accepted.status, accepted.note) == ('accepted', "Best price and earliest start")

    def test_accept_without_note_uses_default(self, job, applications, owner):
        services.accept_application(applications[0].pk, owner)
        assert ApplicationStatusHistory.objects.filter(application=applications[0]).last().note == "Application accepted"

    def test_applicant_cannot_accept_own_application(self, job, applications):
        a1 = applications[0]
        with pytest.raises(AuthorizationError):
            services.accept_application(a1.pk, actor_for(a1.tradesperson))
        assert statuses(applications) == ['pending', 'pending', 'pending']

    def test_other_customer_cannot_accept(self, job, applications, other_customer):
        with pytest.raises(AuthorizationError):
            services.accept_application(applications[0].pk, actor_for(other_customer))

    @pytest.mark.parametrize("status", ['draft', 'in-progress', 'completed', 'canceled'])
    def test_job_must_be_open(self, job, applications, owner, status):
        Job.objects.filter(pk=job.pk).update(status=status)
        with pytest.raises(InvalidTransitionError):
            services.accept_application(applications[0].pk, owner)
        assert statuses(applications) == ['pending', 'pending', 'pending']

    def test_accepting_twice_is_noop(self, job, applications, owner):
        a1 = applications[0]
        services.accept_application(a1.pk, owner)
        history_rows = ApplicationStatusHistory.objects.count()

        application, updated_job = services.accept_application(a1.pk, owner)

        assert application.status == 'accepted'
        assert updated_job.status == 'in-progress'
        assert ApplicationStatusHistory.objects.count() == history_rows

    def test_unknown_application(self, owner):
        with pytest.raises(NotFoundError):
            services.accept_application(424242, owner)

    def test_failure_after_sibling_rejection_rolls_back(self, job, applications, owner):
        a1, a2, a3 = applications
        with patch('apps.jobs.services._assign_job', side_effect=RuntimeError("database went away")):
            with pytest.raises(RuntimeError):
                services.accept_application(a1.pk, owner)

        assert statuses([a1, a2, a3]) == ['pending', 'pending', 'pending']
        job.refresh_from_db()
        assert job.status == 'open'
        assert job.selected_tradesperson_id is None
        assert not ApplicationStatusHistory.objects.filter(status__in=['accepted', 'rejected']).exists()

    def test_concurrent_status_change_is_conflict(self, job, applications, owner):
        a1, a2, _ = applications
        real_set_status = services._set_application_status

        def change_behind_our_back(application, new_status, actor, note='', **extra):
            if application.pk == a2.pk:
                Application.objects.filter(pk=a2.pk).update(status='withdrawn')
            return real_set_status(application, new_status, actor, note=note, **extra)

        with patch('apps.jobs.services._set_application_status', side_effect=change_behind_our_back):
            with pytest.raises(ConflictError):
                services.accept_application(a1.pk, owner)

        a1.refresh_from_db()
        assert a1.status == 'pending'


class TestTransitionApplication:
    def test_reject_is_idempotent(self, job, applications, owner):
        a1 = applications[0]
        once = services.transition_application(a1.pk, 'rejected', owner)
        history_rows = ApplicationStatusHistory.objects.filter(application=a1).count()

        twice = services.transition_application(a1.pk, 'rejected', owner)

        assert once.status == twice.status == 'rejected'
        assert ApplicationStatusHistory.objects.filter(application=a1).count() == history_rows

    def test_shortlist_and_revert(self, job, applications, owner):
        a1 = applications[0]
        services.transition_application(a1.pk, 'shortlisted', owner)
        services.transition_application(a1.pk, 'pending', owner, note="Changed my mind")

        a1.refresh_from_db()
        assert a1.status == 'pending'
        assert list(a1.status_history.values_list('status', flat=True)) == ['shortlisted', 'pending']

    def test_withdraw_by_applicant_keeps_reason(self, job, applications):
        a1 = applications[0]
        application = services.transition_application(
            a1.pk, 'withdrawn', actor_for(a1.tradesperson), withdrawal_reason="Booked elsewhere"
        )
        assert application.status == 'withdrawn'
        a1.refresh_from_db()
        assert a1.withdrawal_reason == "Booked elsewhere"

    def test_owner_cannot_withdraw(self, job, applications, owner):
        with pytest.raises(AuthorizationError):
            services.transition_application(applications[0].pk, 'withdrawn', owner)

    def test_withdrawn_is_terminal(self, job, applications, owner):
        a1 = applications[0]
        services.transition_application(a1.pk, 'withdrawn', actor_for(a1.tradesperson))
        with pytest.raises(InvalidTransitionError):
            services.transition_application(a1.pk, 'shortlisted', owner)

    def test_admin_can_reject(self, job, applications, admin):
        application = services.transition_application(applications[0].pk, 'rejected', admin)
        assert application.status == 'rejected'


class TestTransitionJob:
    def test_cancel_open_job(self, job, owner):
        services.transition_job(job.pk, 'canceled', owner)
        job.refresh_from_db()
        assert job.status == 'canceled'
        assert job.selected_tradesperson_id is None

    def test_publish_draft(self, customer, owner):
        job = make_job(customer, status='draft')
        services.transition_job(job.pk, 'open', owner)
        job.refresh_from_db()
        assert job.status == 'open'

    def test_complete_records_outcome(self, job, applications, owner):
        services.accept_application(applications[0].pk, owner)

        services.transition_job(job.pk, 'completed', owner, customer_feedback="Great work")

        job.refresh_from_db()
        assert job.status == 'completed'
        assert job.completed_at is not None
        assert job.final_amount == Decimal('120.00')
        assert job.customer_feedback == "Great work"
        assert job.selected_tradesperson_id == applications[0].tradesperson_id

    def test_complete_with_final_amount(self, job, applications, owner):
        services.accept_application(applications[0].pk, owner)
        services.transition_job(job.pk, 'completed', owner, final_amount=Decimal('95.50'))
        job.refresh_from_db()
        assert job.final_amount == Decimal('95.50')

    def test_completed_job_cannot_reopen(self, job, applications, owner):
        services.accept_application(applications[0].pk, owner)
        services.transition_job(job.pk, 'completed', owner)

        with pytest.raises(InvalidTransitionError):
            services.transition_job(job.pk, 'open', owner)
        job.refresh_from_db()
        assert job.status == 'completed'

    def test_start_without_accepted_application(self, job, applications, owner):
        with pytest.raises(InvalidTransitionError):
            services.transition_job(job.pk, 'in-progress', owner)

    def test_stranger_cannot_change_job(self, job, other_customer):
        with pytest.raises(AuthorizationError):
            services.transition_job(job.pk, 'canceled', actor_for(other_customer))

    def test_same_status_is_noop(self, job, owner):
        before = Job.objects.get(pk=job.pk).updated_at
        services.transition_job(job.pk, 'open', owner)
        assert Job.objects.get(pk=job.pk).updated_at == before

    def test_admin_override_is_logged_and_syncs_tradesperson(self, job, applications, owner, admin, admin_user):
        services.accept_application(applications[0].pk, owner)
        services.transition_job(job.pk, 'completed', owner)

        services.transition_job(job.pk, 'open', admin)

        job.refresh_from_db()
        assert job.status == 'open'
        assert job.selected_tradesperson_id is None
        log = ManagementLog.objects.get()
        assert log.admin_id == admin_user.pk
        assert log.action == 'override_job_status'
        assert "'completed' to 'open'" in log.details

        services.transition_job(job.pk, 'in-progress', admin)
        job.refresh_from_db()
        assert job.selected_tradesperson_id == applications[0].tradesperson_id
        assert ManagementLog.objects.count() == 2

    def test_owner_changes_are_not_logged(self, job, owner):
        services.transition_job(job.pk, 'canceled', owner)
        assert not ManagementLog.objects.exists()

    def test_unknown_job(self, owner):
        with pytest.raises(NotFoundError):
            services.transition_job(31337, 'canceled', owner)


class TestNotes:
    def test_each_party_writes_own_field(self, job, applications, owner, admin):
        a1 = applications[0]
        services.append_note(a1.pk, owner, "Can you start Monday?")
        services.append_note(a1.pk, owner, "Parking is on the street")
        services.append_note(a1.pk, actor_for(a1.tradesperson), "Monday works")
        services.append_note(a1.pk, admin, "Checked insurance")

        a1.refresh_from_db()
        assert a1.customer_notes == "Can you start Monday?\nParking is on the street"
        assert a1.tradesperson_notes == "Monday works"
        assert a1.internal_notes == "Checked insurance"

    def test_blank_note(self, job, applications, owner):
        with pytest.raises(InvalidInputError):
            services.append_note(applications[0].pk, owner, "  ")

    def test_stranger(self, job, applications, other_customer):
        with pytest.raises(AuthorizationError):
            services.append_note(applications[0].pk, actor_for(other_customer), "hello")


class TestGetApplication:
    def test_owner_view_marks_viewed(self, job, applications, owner):
        application = services.get_application_for(applications[0].pk, owner)
        assert application.customer_viewed is True
        assert Application.objects.get(pk=applications[0].pk).customer_viewed is True

    def test_applicant_view_does_not_mark_viewed(self, job, applications):
        a1 = applications[0]
        services.get_application_for(a1.pk, actor_for(a1.tradesperson))
        assert Application.objects.get(pk=a1.pk).customer_viewed is False

    def test_other_applicant_cannot_view(self, job, applications):
        with pytest.raises(AuthorizationError):
            services.get_application_for(applications[0].pk, actor_for(applications[1].tradesperson))


@pytest.mark.parametrize("seed", range(8))
def test_random_sequences_keep_lifecycle_invariants(seed):
    """At most one accepted application per job, and the selected tradesperson
    is set exactly while the job is in progress or completed."""
    rng = random.Random(seed)
    customer = make_user('customer')
    owner = actor_for(customer)
    admin = actor_for(make_user('admin'))
    tradespeople = [make_user('tradesperson') for _ in range(4)]
    jobs = [make_job(customer) for _ in range(2)]

    for _ in range(60):
        job = rng.choice(jobs)
        tp = rng.choice(tradespeople)
        applications = list(Application.objects.filter(job=job))
        action = rng.choice(['submit', 'transition', 'accept', 'job'])
        try:
            if action == 'submit':
                services.submit_application(job.pk, tp.pk, bid=FIXED_BID, cover_letter="Seeded")
            elif action == 'transition' and applications:
                application = rng.choice(applications)
                actor = rng.choice([owner, actor_for(application.tradesperson), admin])
                target = rng.choice(['pending', 'shortlisted', 'rejected', 'withdrawn', 'accepted'])
                services.transition_application(application.pk, target, actor)
            elif action == 'accept' and applications:
                services.accept_application(rng.choice(applications).pk, owner)
            elif action == 'job':
                actor = rng.choice([owner, admin])
                target = rng.choice(['draft', 'open', 'in-progress', 'completed', 'canceled'])
                services.transition_job(job.pk, target, actor)
        except (AuthorizationError, InvalidTransitionError, DuplicateApplicationError):
            pass

        for checked in Job.objects.all():
            accepted = checked.applications.filter(status='accepted')
            assert accepted.count() <= 1
            if checked.status in ('in-progress', 'completed'):
                assert checked.selected_tradesperson_id is not None
                assert checked.selected_tradesperson_id == accepted.get().tradesperson_id
            else:
                assert checked.selected_tradesperson_id is None
