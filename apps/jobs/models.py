from django.db import models
from django.conf import settings
from core.constants import (
    JOB_STATUS_CHOICES, APPLICATION_STATUS_CHOICES, BUDGET_TYPE_CHOICES, BID_TYPE_CHOICES,
    DEFAULT_CURRENCY,
)

class Job(models.Model):
    customer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='jobs')
    title = models.CharField(max_length=200)
    description = models.TextField()
    category = models.CharField(max_length=100, blank=True)
    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100)
    postal_code = models.CharField(max_length=10)
    status = models.CharField(max_length=20, choices=JOB_STATUS_CHOICES, default='open')

    budget_type = models.CharField(max_length=20, choices=BUDGET_TYPE_CHOICES, default='negotiable')
    budget_min_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    budget_max_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    budget_currency = models.CharField(max_length=3, default=DEFAULT_CURRENCY)

    selected_tradesperson = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_jobs'
    )
    start_date = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    final_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    customer_feedback = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'created_at'], name='job_status_created_idx'),
        ]

    def __str__(self):
        return f"{self.title} - {self.customer.username}"

    def accepted_application(self):
        return self.applications.filter(status='accepted').first()

class Application(models.Model):
    job = models.ForeignKey(Job, on_delete=models.CASCADE, related_name='applications')
    tradesperson = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='applications')
    status = models.CharField(max_length=20, choices=APPLICATION_STATUS_CHOICES, default='pending')
    cover_letter = models.TextField()

    bid_type = models.CharField(max_length=20, choices=BID_TYPE_CHOICES)
    bid_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    bid_currency = models.CharField(max_length=3, default=DEFAULT_CURRENCY)
    estimated_days = models.PositiveIntegerField(null=True, blank=True)
    estimated_hours = models.PositiveIntegerField(null=True, blank=True)

    # {"can_start_on": "2024-05-01", "available_days": [...], "preferred_hours": {"start": "09:00", "end": "17:00"}}
    availability = models.JSONField(default=dict, blank=True)

    customer_notes = models.TextField(blank=True)
    tradesperson_notes = models.TextField(blank=True)
    internal_notes = models.TextField(blank=True)
    withdrawal_reason = models.TextField(blank=True)
    customer_viewed = models.BooleanField(default=False)

    submitted_at = models.DateTimeField(auto_now_add=True)
    last_updated = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-submitted_at']
        constraints = [
            models.UniqueConstraint(fields=['job', 'tradesperson'], name='unique_application_per_tradesperson'),
            models.UniqueConstraint(
                fields=['job'], condition=models.Q(status='accepted'), name='single_accepted_application_per_job'
            ),
        ]
        indexes = [
            models.Index(fields=['job', 'status'], name='application_job_status_idx'),
            models.Index(fields=['tradesperson', 'status'], name='application_trade_status_idx'),
        ]

    def __str__(self):
        return f"{self.tradesperson.username} applied to {self.job.title}"

class ApplicationStatusHistory(models.Model):
    application = models.ForeignKey(Application, on_delete=models.CASCADE, related_name='status_history')
    status = models.CharField(max_length=20, choices=APPLICATION_STATUS_CHOICES)
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    note = models.CharField(max_length=255, blank=True)
    changed_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['changed_at', 'id']
        verbose_name_plural = 'Application status history'

    def __str__(self):
        return f"Application #{self.application_id} -> {self.status}"
