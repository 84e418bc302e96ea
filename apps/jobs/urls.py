from django.urls import path
from .views import (
    JobCreateView, JobListView, OpenJobListView, JobDetailView, JobApplicationView,
    JobApplicationsListView, JobAcceptApplicationView, JobStatusUpdateView,
    ApplicationDetailView, ApplicationNoteView, ApplicationHistoryView,
)

urlpatterns = [
    path('jobs/create/', JobCreateView.as_view(), name='job_create'),
    path('jobs/', JobListView.as_view(), name='job_list'),
    path('jobs/open/', OpenJobListView.as_view(), name='open_jobs'),
    path('jobs/<int:pk>/details/', JobDetailView.as_view(), name='job_details'),
    path('jobs/<int:pk>/apply/', JobApplicationView.as_view(), name='job_apply'),
    path('jobs/<int:pk>/applications/', JobApplicationsListView.as_view(), name='job_applications'),
    path('jobs/<int:pk>/accept/', JobAcceptApplicationView.as_view(), name='job_accept_application'),
    path('jobs/<int:pk>/status/', JobStatusUpdateView.as_view(), name='job_status_update'),
    path('applications/<int:pk>/', ApplicationDetailView.as_view(), name='application_detail'),
    path('applications/<int:pk>/notes/', ApplicationNoteView.as_view(), name='application_notes'),
    path('applications/<int:pk>/history/', ApplicationHistoryView.as_view(), name='application_history'),
]
