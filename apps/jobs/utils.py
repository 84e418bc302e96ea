import logging
import re
from django.conf import settings
from django.core.mail import send_mail
from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client as TwilioClient

logger = logging.getLogger(__name__)

# E.164, e.g. +447700900123
PHONE_NUMBER_PATTERN = re.compile(r'^\+\d{9,15}$')


def sms_enabled():
    return bool(settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN and settings.TWILIO_PHONE_NUMBER)


def _email(recipient, subject, body):
    try:
        send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [recipient], fail_silently=False)
    except Exception as e:
        logger.error(f"Email '{subject}' to {recipient} failed: {str(e)}")
        return False
    logger.info(f"Email '{subject}' sent to {recipient}")
    return True


def _sms(user, body):
    if not PHONE_NUMBER_PATTERN.match(user.phone_number):
        logger.warning(f"Skipping SMS for user {user.pk}: '{user.phone_number}' is not an E.164 number")
        return False
    try:
        client = TwilioClient(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
        client.messages.create(body=body, from_=settings.TWILIO_PHONE_NUMBER, to=user.phone_number)
    except TwilioRestException as e:
        logger.error(f"SMS to user {user.pk} failed: {str(e)}")
        return False
    logger.info(f"SMS sent to user {user.pk}")
    return True


def send_notification(user, subject, email_message, sms_message):
    """
    Notify ``user`` by email and, when Twilio is configured, by SMS.

    Best effort: each channel logs its own failure and nothing is raised.

    Returns:
        dict: channel name -> whether delivery was handed off
    """
    sent = {'email': False, 'sms': False}
    if user.email:
        sent['email'] = _email(user.email, subject, email_message)
    if user.phone_number and sms_enabled():
        sent['sms'] = _sms(user, sms_message)
    return sent
