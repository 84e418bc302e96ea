from django.db import models
from django.contrib.auth.models import AbstractUser
from core.constants import USER_ROLE_CHOICES

class User(AbstractUser):
    email = models.EmailField(unique=True)
    phone_number = models.CharField(max_length=20, blank=True, null=True)
    role = models.CharField(max_length=20, choices=USER_ROLE_CHOICES, default='customer')
    is_verified = models.BooleanField(default=False)

    @property
    def is_customer(self):
        return self.role == 'customer'

    @property
    def is_tradesperson(self):
        return self.role == 'tradesperson'

    @property
    def is_admin(self):
        return self.role == 'admin' or self.is_superuser

    def __str__(self):
        return f"{self.username} ({self.role})"

class TradespersonProfile(models.Model):
    """Professional details collected by the tradesperson registration wizard.

    Uploaded documents live in external file storage; only their URLs are kept.
    """
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='tradesperson_profile')
    business_name = models.CharField(max_length=200, blank=True)
    skills = models.JSONField(default=list)
    years_experience = models.PositiveIntegerField(default=0)
    bio = models.TextField(blank=True)

    address = models.CharField(max_length=255)
    city = models.CharField(max_length=100)
    state = models.CharField(max_length=100)
    postal_code = models.CharField(max_length=10)
    service_radius_miles = models.PositiveIntegerField(default=25)

    certification_name = models.CharField(max_length=200, blank=True)
    certification_issuing_body = models.CharField(max_length=200, blank=True)
    certification_number = models.CharField(max_length=100, blank=True)
    certification_expiry = models.DateField(blank=True, null=True)
    certification_document_url = models.URLField(blank=True)

    insurance_provider = models.CharField(max_length=200, blank=True)
    insurance_policy_number = models.CharField(max_length=100, blank=True)
    insurance_coverage_amount = models.DecimalField(max_digits=12, decimal_places=2, blank=True, null=True)
    insurance_expiry = models.DateField(blank=True, null=True)
    insurance_document_url = models.URLField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Tradesperson: {self.user.username}"
