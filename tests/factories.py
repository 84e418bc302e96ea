"""Small builders for users, jobs and applications."""

from decimal import Decimal
from itertools import count

from django.contrib.auth import get_user_model

from apps.jobs.models import Application, Job

User = get_user_model()

PASSWORD = 'Str0ngPass!word'

_sequence = count(1)


def make_user(role, **fields):
    n = next(_sequence)
    fields.setdefault('username', f"{role}{n}")
    fields.setdefault('email', f"{role}{n}@example.com")
    fields.setdefault('first_name', role.capitalize())
    fields.setdefault('last_name', str(n))
    fields.setdefault('is_verified', True)
    return User.objects.create_user(password=PASSWORD, role=role, **fields)


def make_job(customer, **fields):
    fields.setdefault('title', 'Fix leaking kitchen tap')
    fields.setdefault('description', 'Mixer tap drips constantly, needs a new cartridge.')
    fields.setdefault('category', 'Plumbing')
    fields.setdefault('city', 'London')
    fields.setdefault('postal_code', 'NW1 6XE')
    fields.setdefault('budget_type', 'fixed')
    fields.setdefault('budget_min_amount', Decimal('120.00'))
    return Job.objects.create(customer=customer, **fields)


def make_application(job, tradesperson, **fields):
    fields.setdefault('cover_letter', 'Ten years of domestic plumbing, available this week.')
    fields.setdefault('bid_type', 'fixed')
    fields.setdefault('bid_amount', Decimal('110.00'))
    return Application.objects.create(job=job, tradesperson=tradesperson, **fields)
