from django.contrib.auth import get_user_model
from django.db import transaction
from rest_framework.response import Response
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from apps.jobs.exceptions import WorkflowError
from apps.jobs.models import Job
from apps.jobs.serializers import JobSerializer, JobStatusUpdateSerializer
from apps.jobs.services import transition_job
from apps.jobs.workflow import actor_for
from apps.users.serializers import UserSerializer
from .models import ManagementLog
from .permissions import IsAdminUser
from .serializers import ManagementLogSerializer
import logging

User = get_user_model()
logger = logging.getLogger(__name__)


class JobViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Admin API for moderating jobs (list, retrieve, override status).
    Only accessible to admin/superuser accounts.
    """
    serializer_class = JobSerializer
    permission_classes = [IsAuthenticated, IsAdminUser]

    def get_queryset(self):
        queryset = Job.objects.select_related('customer', 'selected_tradesperson')
        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset

    @swagger_auto_schema(
        method='patch',
        operation_description="Force a job into any status. The change is recorded in the management log.",
        request_body=JobStatusUpdateSerializer,
        responses={200: JobSerializer, 400: 'Bad Request', 403: 'Forbidden', 404: 'Not Found'}
    )
    @action(detail=True, methods=['patch'], url_path='status')
    def set_status(self, request, pk=None):
        serializer = JobStatusUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        try:
            job = transition_job(
                pk,
                data['status'],
                actor_for(request.user),
                final_amount=data.get('final_amount'),
                customer_feedback=data.get('customer_feedback', ''),
            )
        except WorkflowError as e:
            logger.warning(f"Admin {request.user.pk} status override on job {pk} rejected: {e.message}")
            return Response({"error": e.message}, status=e.status_code)
        return Response(JobSerializer(job).data)


class UserViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Admin API for reviewing accounts and verifying tradespeople.
    Only verified tradespeople may apply for jobs.
    """
    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated, IsAdminUser]

    def get_queryset(self):
        queryset = User.objects.order_by('pk')
        role_filter = self.request.query_params.get('role')
        if role_filter:
            queryset = queryset.filter(role=role_filter)
        verified_filter = self.request.query_params.get('verified')
        if verified_filter in ('true', 'false'):
            queryset = queryset.filter(is_verified=verified_filter == 'true')
        return queryset

    @swagger_auto_schema(
        method='post',
        operation_description="Mark an account as verified. The change is recorded in the management log.",
        responses={200: UserSerializer, 403: 'Forbidden', 404: 'Not Found'}
    )
    @action(detail=True, methods=['post'], url_path='verify')
    def verify(self, request, pk=None):
        user = self.get_object()
        if user.is_verified:
            return Response(UserSerializer(user).data)
        with transaction.atomic():
            user.is_verified = True
            user.save(update_fields=['is_verified'])
            ManagementLog.objects.create(
                admin=request.user,
                action='verify_user',
                details=f"Verified {user.role} account {user.pk} ({user.email})"
            )
        logger.info(f"Admin {request.user.pk} verified user {user.pk}")
        return Response(UserSerializer(user).data)


class ManagementLogViewSet(viewsets.ReadOnlyModelViewSet):
    """Audit trail of admin actions."""
    serializer_class = ManagementLogSerializer
    permission_classes = [IsAuthenticated, IsAdminUser]

    def get_queryset(self):
        queryset = ManagementLog.objects.select_related('admin')
        action_filter = self.request.query_params.get('action')
        if action_filter:
            queryset = queryset.filter(action=action_filter)
        return queryset

    @swagger_auto_schema(
        manual_parameters=[
            openapi.Parameter('action', openapi.IN_QUERY, type=openapi.TYPE_STRING, required=False),
        ]
    )
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)
