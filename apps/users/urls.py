from django.urls import path
from rest_framework.authtoken.views import obtain_auth_token
from .views import (
    AuthRegisterCustomerView, AuthRegisterTradespersonView, AuthRegisterStepView,
    UserProfileView, UserApplicationsView,
)

urlpatterns = [
    # Authentication
    path('auth/login/', obtain_auth_token, name='auth_login'),
    path('auth/register/', AuthRegisterCustomerView.as_view(), name='auth_register_customer'),
    path('auth/register-tradesperson/', AuthRegisterTradespersonView.as_view(), name='auth_register_tradesperson'),
    path('auth/register-tradesperson/validate-step/', AuthRegisterStepView.as_view(), name='auth_register_step'),

    # Profile
    path('me/', UserProfileView.as_view(), name='user_profile'),
    path('my-applications/', UserApplicationsView.as_view(), name='user_my_applications'),
]
