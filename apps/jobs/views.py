from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from .models import Job, Application
from .serializers import (
    JobSerializer, ApplicationSerializer, ApplicationSubmitSerializer, ApplicationStatusSerializer,
    AcceptApplicationSerializer, JobStatusUpdateSerializer, ApplicationNoteSerializer,
    ApplicationStatusHistorySerializer,
)
from .exceptions import WorkflowError
from .workflow import actor_for, relationships, OWNER, ADMIN
from . import services
from core.utils import IsCustomer, IsTradesperson
import logging

logger = logging.getLogger(__name__)

ERROR_SCHEMA = openapi.Schema(
    type=openapi.TYPE_OBJECT,
    properties={'error': openapi.Schema(type=openapi.TYPE_STRING)}
)


def workflow_error_response(request, error):
    logger.warning(
        f"{request.method} {request.path} rejected for user {request.user.pk}: "
        f"{error.__class__.__name__}: {error.message}"
    )
    return Response({"error": error.message}, status=error.status_code)


def application_context(application, actor):
    is_admin = ADMIN in relationships(actor, application.job, application)
    return {'include_internal_notes': is_admin, 'include_contact_details': is_admin}


class JobCreateView(APIView):
    permission_classes = [IsAuthenticated, IsCustomer]

    @swagger_auto_schema(
        operation_description="Create a new job. Jobs are published as 'open' unless saved as 'draft'.",
        request_body=JobSerializer,
        responses={
            201: JobSerializer,
            400: 'Bad Request',
            401: 'Unauthorized',
            403: 'Forbidden'
        }
    )
    def post(self, request):
        serializer = JobSerializer(data=request.data, context={'request': request})
        if serializer.is_valid():
            job = serializer.save()
            logger.info(f"Customer {request.user.pk} created job {job.pk} ({job.status})")
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


class JobListView(APIView):
    permission_classes = [IsAuthenticated, IsCustomer]

    @swagger_auto_schema(
        operation_description="List the authenticated customer's jobs, optionally filtered by status.",
        manual_parameters=[
            openapi.Parameter('status', openapi.IN_QUERY, type=openapi.TYPE_STRING, required=False),
        ],
        responses={200: JobSerializer(many=True), 401: 'Unauthorized'}
    )
    def get(self, request):
        queryset = Job.objects.filter(customer=request.user)
        status_filter = request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        serializer = JobSerializer(queryset, many=True)
        return Response(serializer.data)


class OpenJobListView(APIView):
    permission_classes = [IsAuthenticated, IsTradesperson]

    @swagger_auto_schema(
        operation_description="List all open jobs",
        manual_parameters=[
            openapi.Parameter('city', openapi.IN_QUERY, type=openapi.TYPE_STRING, required=False),
            openapi.Parameter('category', openapi.IN_QUERY, type=openapi.TYPE_STRING, required=False),
        ],
        responses={200: JobSerializer(many=True), 401: 'Unauthorized'}
    )
    def get(self, request):
        jobs = Job.objects.filter(status='open')
        city = request.query_params.get('city')
        if city:
            jobs = jobs.filter(city__iexact=city)
        category = request.query_params.get('category')
        if category:
            jobs = jobs.filter(category__iexact=category)
        serializer = JobSerializer(jobs, many=True)
        return Response(serializer.data)


class JobDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Retrieve a job. Open jobs are public; others are visible to the owner, "
                              "the selected tradesperson, applicants and admins.",
        responses={200: JobSerializer, 401: 'Unauthorized', 403: 'Forbidden', 404: 'Not Found'}
    )
    def get(self, request, pk):
        try:
            job = Job.objects.get(pk=pk)
        except Job.DoesNotExist:
            return Response({"error": "Job not found"}, status=status.HTTP_404_NOT_FOUND)

        actor = actor_for(request.user)
        visible = (
            job.status == 'open'
            or relationships(actor, job)
            or job.selected_tradesperson_id == request.user.pk
            or job.applications.filter(tradesperson=request.user).exists()
        )
        if not visible:
            return Response({"error": "Not authorized to view this job"}, status=status.HTTP_403_FORBIDDEN)
        return Response(JobSerializer(job).data)


class JobApplicationView(APIView):
    permission_classes = [IsAuthenticated, IsTradesperson]

    @swagger_auto_schema(
        operation_description="Apply to an open job.",
        request_body=ApplicationSubmitSerializer,
        responses={
            201: ApplicationSerializer,
            400: openapi.Response('Bad Request', ERROR_SCHEMA),
            401: openapi.Response('Unauthorized'),
            403: openapi.Response('Forbidden'),
            404: openapi.Response('Not Found'),
            409: openapi.Response('Already applied', ERROR_SCHEMA),
        }
    )
    def post(self, request, pk):
        serializer = ApplicationSubmitSerializer(data=request.data)
        if not serializer.is_valid():
            logger.warning(f"Job application failed for job {pk}: {serializer.errors}")
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        try:
            application = services.submit_application(
                pk,
                request.user.pk,
                bid=data['bid'],
                cover_letter=data['cover_letter'],
                availability=data.get('availability'),
                actor=actor_for(request.user),
            )
        except WorkflowError as e:
            return workflow_error_response(request, e)
        return Response(ApplicationSerializer(application).data, status=status.HTTP_201_CREATED)


class JobApplicationsListView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="List all applications for a job (job owner or admin).",
        responses={
            200: ApplicationSerializer(many=True),
            401: 'Unauthorized',
            403: 'Forbidden',
            404: 'Not Found'
        }
    )
    def get(self, request, pk):
        try:
            job = Job.objects.get(pk=pk)
        except Job.DoesNotExist:
            return Response({"error": "Job not found"}, status=status.HTTP_404_NOT_FOUND)
        held = relationships(actor_for(request.user), job)
        if OWNER not in held and ADMIN not in held:
            return Response({"error": "Job not found or not authorized"}, status=status.HTTP_403_FORBIDDEN)
        applications = job.applications.select_related('tradesperson', 'job')
        is_admin = ADMIN in held
        serializer = ApplicationSerializer(
            applications, many=True,
            context={'include_internal_notes': is_admin, 'include_contact_details': is_admin},
        )
        return Response(serializer.data)


class JobAcceptApplicationView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Accept one application. Competing pending applications are rejected "
                              "in the same transaction.",
        request_body=AcceptApplicationSerializer,
        responses={
            200: openapi.Response('Application accepted', openapi.Schema(
                type=openapi.TYPE_OBJECT,
                properties={
                    'application': openapi.Schema(type=openapi.TYPE_OBJECT),
                    'job': openapi.Schema(type=openapi.TYPE_OBJECT),
                }
            )),
            400: openapi.Response('Bad Request', ERROR_SCHEMA),
            403: openapi.Response('Forbidden', ERROR_SCHEMA),
            404: openapi.Response('Not Found', ERROR_SCHEMA),
            409: openapi.Response('Conflict', ERROR_SCHEMA),
        }
    )
    def post(self, request, pk):
        serializer = AcceptApplicationSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        application_id = serializer.validated_data['application_id']
        if not Job.objects.filter(pk=pk).exists():
            return Response({"error": "Job not found"}, status=status.HTTP_404_NOT_FOUND)
        if not Application.objects.filter(pk=application_id, job_id=pk).exists():
            return Response({"error": "Invalid application"}, status=status.HTTP_400_BAD_REQUEST)

        actor = actor_for(request.user)
        try:
            application, job = services.accept_application(application_id, actor)
        except WorkflowError as e:
            return workflow_error_response(request, e)
        return Response({
            "application": ApplicationSerializer(application, context=application_context(application, actor)).data,
            "job": JobSerializer(job).data,
        })


class JobStatusUpdateView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Move a job through its lifecycle (owner), or to any status (admin).",
        request_body=JobStatusUpdateSerializer,
        responses={
            200: JobSerializer,
            400: openapi.Response('Bad Request', ERROR_SCHEMA),
            401: 'Unauthorized',
            403: openapi.Response('Forbidden', ERROR_SCHEMA),
            404: openapi.Response('Not Found', ERROR_SCHEMA),
        }
    )
    def patch(self, request, pk):
        serializer = JobStatusUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        try:
            job = services.transition_job(
                pk,
                data['status'],
                actor_for(request.user),
                final_amount=data.get('final_amount'),
                customer_feedback=data.get('customer_feedback', ''),
            )
        except WorkflowError as e:
            return workflow_error_response(request, e)
        return Response(JobSerializer(job).data)


class ApplicationDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Retrieve an application (job owner, applicant or admin).",
        responses={200: ApplicationSerializer, 403: 'Forbidden', 404: 'Not Found'}
    )
    def get(self, request, pk):
        actor = actor_for(request.user)
        try:
            application = services.get_application_for(pk, actor)
        except WorkflowError as e:
            return workflow_error_response(request, e)
        return Response(ApplicationSerializer(application, context=application_context(application, actor)).data)

    @swagger_auto_schema(
        operation_description="Change an application's status. The job owner shortlists, accepts, rejects "
                              "or reverts to pending; the applicant withdraws.",
        request_body=ApplicationStatusSerializer,
        responses={
            200: ApplicationSerializer,
            400: openapi.Response('Bad Request', ERROR_SCHEMA),
            403: openapi.Response('Forbidden', ERROR_SCHEMA),
            404: openapi.Response('Not Found', ERROR_SCHEMA),
            409: openapi.Response('Conflict', ERROR_SCHEMA),
        }
    )
    def patch(self, request, pk):
        serializer = ApplicationStatusSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        actor = actor_for(request.user)
        try:
            application = services.transition_application(
                pk,
                data['status'],
                actor,
                note=data['note'],
                withdrawal_reason=data['withdrawal_reason'],
            )
        except WorkflowError as e:
            return workflow_error_response(request, e)
        return Response(ApplicationSerializer(application, context=application_context(application, actor)).data)


class ApplicationNoteView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Append a note to your side of an application.",
        request_body=ApplicationNoteSerializer,
        responses={
            200: ApplicationSerializer,
            400: openapi.Response('Bad Request', ERROR_SCHEMA),
            403: openapi.Response('Forbidden', ERROR_SCHEMA),
            404: openapi.Response('Not Found', ERROR_SCHEMA),
        }
    )
    def post(self, request, pk):
        serializer = ApplicationNoteSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        actor = actor_for(request.user)
        try:
            application = services.append_note(pk, actor, serializer.validated_data['text'])
        except WorkflowError as e:
            return workflow_error_response(request, e)
        return Response(ApplicationSerializer(application, context=application_context(application, actor)).data)


class ApplicationHistoryView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Status history of an application (job owner, applicant or admin).",
        responses={200: ApplicationStatusHistorySerializer(many=True), 403: 'Forbidden', 404: 'Not Found'}
    )
    def get(self, request, pk):
        try:
            application = Application.objects.select_related('job').get(pk=pk)
        except Application.DoesNotExist:
            return Response({"error": "Application not found"}, status=status.HTTP_404_NOT_FOUND)
        if not relationships(actor_for(request.user), application.job, application):
            return Response(
                {"error": "You do not have permission to view this application"},
                status=status.HTTP_403_FORBIDDEN
            )
        history = application.status_history.select_related('changed_by')
        return Response(ApplicationStatusHistorySerializer(history, many=True).data)
