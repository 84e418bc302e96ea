from django.contrib import admin
from .models import User, TradespersonProfile

@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'email', 'phone_number', 'role', 'is_superuser', 'is_verified')
    list_filter = ('role', 'is_superuser', 'is_verified')
    search_fields = ('username', 'email', 'phone_number')

@admin.register(TradespersonProfile)
class TradespersonProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'business_name', 'city', 'postal_code', 'years_experience')
    search_fields = ('user__username', 'user__email', 'business_name')
    list_filter = ('city',)
