from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.permissions import IsAuthenticated
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from .serializers import (
    CustomerRegistrationSerializer, TradespersonRegistrationSerializer, RegistrationStepSerializer,
    UserSerializer, TradespersonProfileSerializer,
)
from .validators import RegistrationStepError, validate_step, LAST_STEP
from apps.jobs.models import Application
from apps.jobs.serializers import ApplicationSerializer
from core.utils import IsTradesperson
import logging

logger = logging.getLogger(__name__)

REGISTRATION_RESPONSE = openapi.Response(
    description='Registration completed',
    schema=openapi.Schema(
        type=openapi.TYPE_OBJECT,
        properties={
            'token': openapi.Schema(type=openapi.TYPE_STRING),
            'user': openapi.Schema(type=openapi.TYPE_OBJECT),
        }
    )
)


class AuthRegisterCustomerView(APIView):
    permission_classes = []

    @swagger_auto_schema(
        request_body=CustomerRegistrationSerializer,
        responses={201: REGISTRATION_RESPONSE, 400: 'Bad Request'}
    )
    def post(self, request):
        serializer = CustomerRegistrationSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            token, _ = Token.objects.get_or_create(user=user)
            return Response({"token": token.key, "user": UserSerializer(user).data}, status=status.HTTP_201_CREATED)
        logger.warning(f"Customer registration rejected: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


class AuthRegisterTradespersonView(APIView):
    permission_classes = []

    @swagger_auto_schema(
        operation_description="Register a tradesperson with the data collected by all wizard steps.",
        request_body=TradespersonRegistrationSerializer,
        responses={201: REGISTRATION_RESPONSE, 400: 'Bad Request'}
    )
    def post(self, request):
        serializer = TradespersonRegistrationSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            token, _ = Token.objects.get_or_create(user=user)
            return Response({"token": token.key, "user": UserSerializer(user).data}, status=status.HTTP_201_CREATED)
        logger.warning(f"Tradesperson registration rejected: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


class AuthRegisterStepView(APIView):
    permission_classes = []

    @swagger_auto_schema(
        operation_description="Check whether the wizard may advance past a step.",
        request_body=RegistrationStepSerializer,
        responses={
            200: openapi.Response(
                description='Step is complete',
                schema=openapi.Schema(
                    type=openapi.TYPE_OBJECT,
                    properties={
                        'step': openapi.Schema(type=openapi.TYPE_INTEGER),
                        'next_step': openapi.Schema(type=openapi.TYPE_INTEGER),
                    }
                )
            ),
            400: openapi.Response('Bad Request', openapi.Schema(
                type=openapi.TYPE_OBJECT,
                properties={'error': openapi.Schema(type=openapi.TYPE_STRING)}
            )),
        }
    )
    def post(self, request):
        serializer = RegistrationStepSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        step = serializer.validated_data['step']
        try:
            validate_step(step, serializer.validated_data['data'])
        except RegistrationStepError as e:
            return Response({"step": step, "error": e.message}, status=status.HTTP_400_BAD_REQUEST)
        return Response({"step": step, "next_step": min(step + 1, LAST_STEP)}, status=status.HTTP_200_OK)


class UserProfileView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(responses={200: UserSerializer, 401: 'Unauthorized'})
    def get(self, request):
        data = UserSerializer(request.user).data
        if request.user.is_tradesperson and hasattr(request.user, 'tradesperson_profile'):
            data['profile'] = TradespersonProfileSerializer(request.user.tradesperson_profile).data
        return Response(data)


class UserApplicationsView(APIView):
    permission_classes = [IsAuthenticated, IsTradesperson]

    @swagger_auto_schema(
        operation_description="List all applications submitted by the authenticated tradesperson.",
        manual_parameters=[
            openapi.Parameter('status', openapi.IN_QUERY, type=openapi.TYPE_STRING, required=False),
        ],
        responses={
            200: ApplicationSerializer(many=True),
            401: 'Unauthorized',
            403: 'Forbidden'
        }
    )
    def get(self, request):
        applications = Application.objects.filter(tradesperson=request.user).select_related('job')
        status_filter = request.query_params.get('status')
        if status_filter:
            applications = applications.filter(status=status_filter)
        serializer = ApplicationSerializer(applications, many=True)
        return Response(serializer.data)
