from django.dispatch import Signal, receiver
import logging

from .utils import send_notification

logger = logging.getLogger(__name__)

# Sent after the surrounding transaction commits. Receivers must not write
# workflow state; delivery failures are theirs to handle.
application_submitted = Signal()        # application, actor
application_status_changed = Signal()   # application, previous_status, actor
job_status_changed = Signal()           # job, previous_status, actor

SIGN_OFF = "\n\nBest regards,\nTradeLink Team"


def _full_name(user):
    return f"{user.first_name} {user.last_name}".strip() or user.username


@receiver(application_submitted)
def notify_new_application(sender, application, **kwargs):
    """Tell the job owner a tradesperson applied."""
    try:
        job = application.job
        tradesperson = application.tradesperson
        send_notification(
            job.customer,
            f"New Application for Job: {job.title}",
            f"Dear {job.customer.first_name},\n\n"
            f"{_full_name(tradesperson)} has applied for your job '{job.title}'.\n"
            f"Please review the application on TradeLink." + SIGN_OFF,
            f"New application for '{job.title}' from {tradesperson.first_name}. Review on TradeLink."
        )
    except Exception as e:
        logger.error(f"Error sending new application notification for application {application.pk}: {str(e)}")


@receiver(application_status_changed)
def notify_application_status(sender, application, previous_status, **kwargs):
    """Tell the other party that an application moved."""
    try:
        job = application.job
        customer = job.customer
        tradesperson = application.tradesperson

        if application.status == 'accepted':
            send_notification(
                tradesperson,
                f"Application Accepted for {job.title}",
                f"Dear {tradesperson.first_name},\n\n"
                f"Your application for job '{job.title}' has been accepted.\n"
                f"Contact the customer at:\n"
                f"- Email: {customer.email}\n"
                f"- Phone: {customer.phone_number or 'Not provided'}" + SIGN_OFF,
                f"Your application for '{job.title}' was accepted. Contact the customer for details."
            )
            send_notification(
                customer,
                f"You Accepted an Application for {job.title}",
                f"Dear {customer.first_name},\n\n"
                f"You have accepted {_full_name(tradesperson)}'s application for job '{job.title}'.\n"
                f"Contact the tradesperson at:\n"
                f"- Email: {tradesperson.email}\n"
                f"- Phone: {tradesperson.phone_number or 'Not provided'}" + SIGN_OFF,
                f"You accepted {tradesperson.first_name}'s application for '{job.title}'."
            )
        elif application.status == 'withdrawn':
            send_notification(
                customer,
                f"Application Withdrawn: {job.title}",
                f"Dear {customer.first_name},\n\n"
                f"{_full_name(tradesperson)} has withdrawn their application for job: {job.title}." + SIGN_OFF,
                f"{tradesperson.first_name} has withdrawn their application for job: {job.title}."
            )
        elif application.status == 'rejected':
            send_notification(
                tradesperson,
                f"Application Rejected for {job.title}",
                f"Dear {tradesperson.first_name},\n\n"
                f"Your application for job '{job.title}' was not successful this time." + SIGN_OFF,
                f"Your application for '{job.title}' was not successful."
            )
        elif application.status == 'shortlisted':
            send_notification(
                tradesperson,
                f"You Have Been Shortlisted for {job.title}",
                f"Dear {tradesperson.first_name},\n\n"
                f"The customer has shortlisted your application for job '{job.title}'." + SIGN_OFF,
                f"You were shortlisted for '{job.title}'."
            )
        else:
            logger.debug(
                f"No notification for application {application.pk}: {previous_status} -> {application.status}"
            )
    except Exception as e:
        logger.error(f"Error sending status notification for application {application.pk}: {str(e)}")


@receiver(job_status_changed)
def notify_job_status(sender, job, previous_status, **kwargs):
    """Keep the selected tradesperson (or open applicants, on cancel) informed."""
    try:
        if job.status == 'canceled':
            recipients = [
                application.tradesperson
                for application in job.applications.filter(status__in=['pending', 'shortlisted'])
            ]
            if job.selected_tradesperson is not None:
                recipients.append(job.selected_tradesperson)
            for user in recipients:
                send_notification(
                    user,
                    f"Job Canceled: {job.title}",
                    f"Dear {user.first_name},\n\n"
                    f"The job '{job.title}' has been canceled." + SIGN_OFF,
                    f"Job '{job.title}' has been canceled."
                )
            return

        tradesperson = job.selected_tradesperson
        if tradesperson is None:
            return
        if job.status == 'in-progress':
            send_notification(
                tradesperson,
                f"Job Started: {job.title}",
                f"Dear {tradesperson.first_name},\n\n"
                f"The job '{job.title}' is now in progress.\n"
                f"Location: {job.address or ''} {job.city} {job.postal_code}".rstrip() + SIGN_OFF,
                f"Job '{job.title}' is now in progress."
            )
        elif job.status == 'completed':
            send_notification(
                tradesperson,
                f"Job Marked as Completed: {job.title}",
                f"Dear {tradesperson.first_name},\n\n"
                f"The customer has marked job '{job.title}' as completed." + SIGN_OFF,
                f"Job '{job.title}' was marked as completed."
            )
    except Exception as e:
        logger.error(f"Error sending job status notification for job {job.pk}: {str(e)}")
