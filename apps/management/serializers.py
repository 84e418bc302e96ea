from rest_framework import serializers
from .models import ManagementLog


class ManagementLogSerializer(serializers.ModelSerializer):
    admin_id = serializers.IntegerField(read_only=True)
    admin_username = serializers.ReadOnlyField(source='admin.username')

    class Meta:
        model = ManagementLog
        fields = ['id', 'admin_id', 'admin_username', 'action', 'details', 'timestamp']
        read_only_fields = fields
