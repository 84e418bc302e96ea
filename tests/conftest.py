"""Pytest configuration and fixtures."""

import pytest
from rest_framework.test import APIClient

from apps.jobs.workflow import actor_for

from .factories import make_application, make_job, make_user


@pytest.fixture
def customer(db):
    return make_user('customer')


@pytest.fixture
def other_customer(db):
    return make_user('customer')


@pytest.fixture
def tradesperson(db):
    return make_user('tradesperson')


@pytest.fixture
def tradespeople(db):
    return [make_user('tradesperson') for _ in range(3)]


@pytest.fixture
def admin_user(db):
    return make_user('admin')


@pytest.fixture
def owner(customer):
    """Workflow actor for the job owner."""
    return actor_for(customer)


@pytest.fixture
def admin(admin_user):
    return actor_for(admin_user)


@pytest.fixture
def job(customer):
    return make_job(customer)


@pytest.fixture
def applications(job, tradespeople):
    """Three pending applications (A1, A2, A3) on ``job``."""
    return [make_application(job, tp) for tp in tradespeople]


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for(api_client):
    """Return an APIClient authenticated as the given user."""

    def _client(user):
        api_client.force_authenticate(user=user)
        return api_client

    return _client
