from rest_framework import serializers
from .models import Job, Application, ApplicationStatusHistory
from apps.users.serializers import UserSerializer
from apps.users.validators import is_valid_uk_postcode
from core.constants import (
    JOB_STATUS_CHOICES, APPLICATION_STATUS_CHOICES, BID_TYPE_CHOICES, WEEKDAY_CHOICES,
)


class PublicUserSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    first_name = serializers.CharField(read_only=True)
    last_name = serializers.CharField(read_only=True)


class JobSerializer(serializers.ModelSerializer):
    customer = PublicUserSerializer(read_only=True)
    selected_tradesperson = PublicUserSerializer(read_only=True)
    status = serializers.ChoiceField(choices=[('draft', 'Draft'), ('open', 'Open')], default='open')
    application_count = serializers.SerializerMethodField()

    class Meta:
        model = Job
        fields = [
            'id', 'title', 'description', 'category', 'address', 'city', 'postal_code',
            'customer', 'status', 'budget_type', 'budget_min_amount', 'budget_max_amount',
            'budget_currency', 'selected_tradesperson', 'start_date', 'completed_at',
            'final_amount', 'customer_feedback', 'application_count', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'customer', 'selected_tradesperson', 'start_date', 'completed_at',
            'final_amount', 'customer_feedback', 'application_count', 'created_at', 'updated_at',
        ]

    def get_application_count(self, obj):
        return obj.applications.count()

    def validate_postal_code(self, value):
        if not is_valid_uk_postcode(value):
            raise serializers.ValidationError("Please provide a valid UK postal code")
        return value.strip().upper()

    def validate(self, data):
        budget_type = data.get('budget_type', getattr(self.instance, 'budget_type', 'negotiable'))
        min_amount = data.get('budget_min_amount')
        max_amount = data.get('budget_max_amount')
        if budget_type == 'fixed' and min_amount is None:
            raise serializers.ValidationError({"budget_min_amount": "A fixed budget needs an amount."})
        if budget_type == 'range':
            if min_amount is None or max_amount is None:
                raise serializers.ValidationError("A budget range needs both a minimum and a maximum amount.")
            if min_amount > max_amount:
                raise serializers.ValidationError("The minimum budget cannot exceed the maximum budget.")
        return data

    def create(self, validated_data):
        return Job.objects.create(customer=self.context['request'].user, **validated_data)


class ApplicationSerializer(serializers.ModelSerializer):
    tradesperson = serializers.SerializerMethodField()
    job_title = serializers.ReadOnlyField(source='job.title')
    bid = serializers.SerializerMethodField()
    notes = serializers.SerializerMethodField()

    class Meta:
        model = Application
        fields = [
            'id', 'job', 'job_title', 'tradesperson', 'status', 'cover_letter', 'bid',
            'availability', 'notes', 'withdrawal_reason', 'customer_viewed',
            'submitted_at', 'last_updated',
        ]
        read_only_fields = fields

    def get_tradesperson(self, obj):
        # Contact details are shared with the job owner only once the application is accepted.
        if obj.status == 'accepted' or self.context.get('include_contact_details'):
            return UserSerializer(obj.tradesperson).data
        return PublicUserSerializer(obj.tradesperson).data

    def get_bid(self, obj):
        return {
            'type': obj.bid_type,
            'amount': str(obj.bid_amount) if obj.bid_amount is not None else None,
            'currency': obj.bid_currency,
            'estimated_days': obj.estimated_days,
            'estimated_hours': obj.estimated_hours,
        }

    def get_notes(self, obj):
        notes = {'customer': obj.customer_notes, 'tradesperson': obj.tradesperson_notes}
        if self.context.get('include_internal_notes'):
            notes['internal'] = obj.internal_notes
        return notes


class BidSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=BID_TYPE_CHOICES)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    currency = serializers.CharField(max_length=3, required=False)
    estimated_days = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    estimated_hours = serializers.IntegerField(min_value=0, required=False, allow_null=True)


class PreferredHoursSerializer(serializers.Serializer):
    start = serializers.RegexField(r'^\d{2}:\d{2}$')
    end = serializers.RegexField(r'^\d{2}:\d{2}$')


class AvailabilitySerializer(serializers.Serializer):
    can_start_on = serializers.DateField(required=False, allow_null=True)
    available_days = serializers.ListField(
        child=serializers.ChoiceField(choices=WEEKDAY_CHOICES), required=False
    )
    preferred_hours = PreferredHoursSerializer(required=False)

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        if value.get('can_start_on'):
            value['can_start_on'] = value['can_start_on'].isoformat()
        return value


class ApplicationSubmitSerializer(serializers.Serializer):
    cover_letter = serializers.CharField()
    bid = BidSerializer()
    availability = AvailabilitySerializer(required=False)


class ApplicationStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=APPLICATION_STATUS_CHOICES)
    note = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    withdrawal_reason = serializers.CharField(required=False, allow_blank=True, default='')


class AcceptApplicationSerializer(serializers.Serializer):
    application_id = serializers.IntegerField()


class JobStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=JOB_STATUS_CHOICES)
    final_amount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    customer_feedback = serializers.CharField(required=False, allow_blank=True, default='')


class ApplicationNoteSerializer(serializers.Serializer):
    text = serializers.CharField(max_length=2000)


class ApplicationStatusHistorySerializer(serializers.ModelSerializer):
    changed_by = PublicUserSerializer(read_only=True)

    class Meta:
        model = ApplicationStatusHistory
        fields = ['id', 'status', 'changed_by', 'note', 'changed_at']
        read_only_fields = fields
