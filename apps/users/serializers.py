from rest_framework import serializers
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from .models import TradespersonProfile
from .validators import RegistrationStepError, validate_all_steps, validate_credentials

import logging

User = get_user_model()
logger = logging.getLogger(__name__)


def unique_username(first_name, last_name):
    base_username = f"{first_name.strip().lower()}.{last_name.strip().lower()}".replace(' ', '')
    username = base_username
    counter = 1
    while User.objects.filter(username=username).exists():
        username = f"{base_username}{counter}"
        counter += 1
    return username


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'first_name', 'last_name', 'email', 'phone_number', 'role', 'is_verified']
        read_only_fields = fields


class LocationSerializer(serializers.Serializer):
    address = serializers.CharField(required=False, allow_blank=True, default='')
    city = serializers.CharField(required=False, allow_blank=True, default='')
    state = serializers.CharField(required=False, allow_blank=True, default='')
    postal_code = serializers.CharField(required=False, allow_blank=True, default='')


class CertificationSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, allow_blank=True, default='')
    issuing_body = serializers.CharField(required=False, allow_blank=True, default='')
    number = serializers.CharField(required=False, allow_blank=True, default='')
    expiry = serializers.DateField(required=False, allow_null=True, default=None)
    document_url = serializers.URLField(required=False, allow_blank=True, default='')


class InsuranceSerializer(serializers.Serializer):
    provider = serializers.CharField(required=False, allow_blank=True, default='')
    policy_number = serializers.CharField(required=False, allow_blank=True, default='')
    coverage_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True, default=None
    )
    expiry = serializers.DateField(required=False, allow_null=True, default=None)
    document_url = serializers.URLField(required=False, allow_blank=True, default='')


class CredentialsMixin(serializers.Serializer):
    # Presence is checked by the wizard rules so their messages reach the client.
    email = serializers.EmailField(required=False, allow_blank=True, default='')
    password = serializers.CharField(max_length=128, write_only=True, required=False, allow_blank=True, default='')
    confirm_password = serializers.CharField(max_length=128, write_only=True, required=False, allow_blank=True, default='')
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True, default='')
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True, default='')
    phone_number = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')

    def _check_account(self, data):
        if User.objects.filter(email__iexact=data['email']).exists():
            raise serializers.ValidationError({"email": "Email already in use."})
        try:
            validate_password(data['password'])
        except DjangoValidationError as e:
            raise serializers.ValidationError({"password": list(e.messages)})

    def _create_user(self, role):
        data = self.validated_data
        user = User(
            username=unique_username(data['first_name'], data['last_name']),
            email=data['email'].strip().lower(),
            first_name=data['first_name'].strip(),
            last_name=data['last_name'].strip(),
            phone_number=data['phone_number'].strip(),
            role=role,
        )
        user.set_password(data['password'])
        user.save()
        return user


class CustomerRegistrationSerializer(CredentialsMixin):
    def validate(self, data):
        try:
            validate_credentials(data)
        except RegistrationStepError as e:
            raise serializers.ValidationError({f"step_{e.step}": e.message})
        self._check_account(data)
        return data

    def save(self):
        user = self._create_user('customer')
        logger.info(f"Customer {user.id} registered: email={user.email}")
        return user


class TradespersonRegistrationSerializer(CredentialsMixin):
    business_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    skills = serializers.ListField(child=serializers.CharField(max_length=100), required=False, default=list)
    years_experience = serializers.IntegerField(min_value=0, required=False, default=0)
    bio = serializers.CharField(required=False, allow_blank=True, default='')
    location = LocationSerializer(required=False, default=dict)
    service_radius_miles = serializers.IntegerField(min_value=1, required=False, default=25)
    certification = CertificationSerializer(required=False, default=dict)
    insurance = InsuranceSerializer(required=False, default=dict)

    def validate(self, data):
        try:
            validate_all_steps(data)
        except RegistrationStepError as e:
            raise serializers.ValidationError({f"step_{e.step}": e.message})
        self._check_account(data)
        data['location']['postal_code'] = data['location']['postal_code'].strip().upper()
        return data

    def save(self):
        data = self.validated_data
        location = data['location']
        certification = data.get('certification') or {}
        insurance = data.get('insurance') or {}
        with transaction.atomic():
            user = self._create_user('tradesperson')
            TradespersonProfile.objects.create(
                user=user,
                business_name=data['business_name'],
                skills=data['skills'],
                years_experience=data['years_experience'],
                bio=data['bio'],
                address=location['address'],
                city=location['city'],
                state=location['state'],
                postal_code=location['postal_code'],
                service_radius_miles=data['service_radius_miles'],
                certification_name=certification.get('name', ''),
                certification_issuing_body=certification.get('issuing_body', ''),
                certification_number=certification.get('number', ''),
                certification_expiry=certification.get('expiry'),
                certification_document_url=certification.get('document_url', ''),
                insurance_provider=insurance.get('provider', ''),
                insurance_policy_number=insurance.get('policy_number', ''),
                insurance_coverage_amount=insurance.get('coverage_amount'),
                insurance_expiry=insurance.get('expiry'),
                insurance_document_url=insurance.get('document_url', ''),
            )
        logger.info(f"Tradesperson {user.id} registered: email={user.email}, skills={len(data['skills'])}")
        return user


class RegistrationStepSerializer(serializers.Serializer):
    step = serializers.IntegerField(min_value=1, max_value=6)
    data = serializers.DictField()


class TradespersonProfileSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)

    class Meta:
        model = TradespersonProfile
        fields = [
            'id', 'user', 'business_name', 'skills', 'years_experience', 'bio',
            'address', 'city', 'state', 'postal_code', 'service_radius_miles',
            'certification_name', 'certification_issuing_body', 'certification_number',
            'certification_expiry', 'certification_document_url',
            'insurance_provider', 'insurance_policy_number', 'insurance_coverage_amount',
            'insurance_expiry', 'insurance_document_url',
        ]
        read_only_fields = fields
