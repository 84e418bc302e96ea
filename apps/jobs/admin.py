from django.contrib import admin
from .models import Job, Application, ApplicationStatusHistory

@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    list_display = ('title', 'customer', 'status', 'selected_tradesperson', 'city', 'created_at')
    list_filter = ('status', 'budget_type')
    search_fields = ('title', 'customer__username', 'city', 'postal_code')

class ApplicationStatusHistoryInline(admin.TabularInline):
    model = ApplicationStatusHistory
    extra = 0
    readonly_fields = ('status', 'changed_by', 'note', 'changed_at')

@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    list_display = ('job', 'tradesperson', 'status', 'bid_type', 'bid_amount', 'submitted_at')
    list_filter = ('status', 'bid_type')
    search_fields = ('job__title', 'tradesperson__username')
    # Status changes must go through apps.jobs.services so the accept side effects stay atomic.
    readonly_fields = ('status',)
    inlines = [ApplicationStatusHistoryInline]
