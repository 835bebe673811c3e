import logging

from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)


def send_email(to: str, subject: str, body: str) -> None:
    """Send a plain text email; SMTP errors propagate."""
    send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [to], fail_silently=False)
    logger.info('Sent "%s" to %s', subject, to)


def try_send_email(to, subject: str, body: str) -> bool:
    """Best effort variant for notification mail.  Returns False on failure."""
    if not to:
        return False
    try:
        send_email(to, subject, body)
        return True
    except Exception:
        logger.exception('Failed to send "%s" to %s', subject, to)
        return False


def email_parties(appointment, subject: str, body: str) -> None:
    """Mail the doctor and the patient of an appointment."""
    try_send_email(appointment.doctor.user.email, subject, body)
    try_send_email(appointment.patient.user.email, subject, body)
