"""
Periodic jobs: appointment reminders and prescription expiry alerts.

Both functions run one pass and return counts.  The management commands
``send_appointment_reminders`` and ``alert_expiring_prescriptions`` call
them once or on a fixed interval.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Tuple

from django.conf import settings
from django.utils import timezone

from clinic.models import Appointment, Notification, Prescription
from clinic.services.mailer import send_email

logger = logging.getLogger(__name__)

REMINDER_STATUSES = (Appointment.STATUS_SCHEDULED, Appointment.STATUS_CONFIRMED)
EXPIRY_ALERT_PREFIX = 'Your prescription will expire on'


def send_due_reminders(now=None) -> int:
    """Email patients whose appointment starts between 24 and 25 hours from now."""
    now = now or timezone.now()
    due = Appointment.objects.filter(
        status__in=REMINDER_STATUSES,
        reminder_sent=False,
        appointment_datetime__gte=now + timedelta(hours=24),
        appointment_datetime__lt=now + timedelta(hours=25),
    ).select_related('patient__user')
    sent = 0
    for appt in due:
        user = appt.patient.user
        at = timezone.localtime(appt.appointment_datetime).strftime('%Y-%m-%d %H:%M')
        body = (f'Dear {user.display_name()},\n\n'
                f'This is a reminder for your appointment scheduled at {at} (Ref: {appt.reference_number}).'
                + (f'\nVideo link: {appt.video_link}' if appt.video_link else '')
                + '\n\nThank you.')
        try:
            send_email(user.email, 'Appointment Reminder', body)
        except Exception:
            logger.exception('Reminder for appointment %s failed', appt.id)
            continue
        appt.reminder_sent = True
        appt.save(update_fields=['reminder_sent'])
        sent += 1
    logger.info('Appointment reminders sent: %s', sent)
    return sent


def alert_expiring_prescriptions(now=None) -> Tuple[int, int]:
    """Notify about prescriptions expiring soon and expire the overdue ones.

    Returns ``(alerted, expired)``.
    """
    now = now or timezone.now()
    window = now + timedelta(days=settings.EXPIRY_ALERT_WINDOW_DAYS)
    expiring = Prescription.objects.filter(
        status=Prescription.STATUS_ACTIVE, expiry_date__gt=now, expiry_date__lte=window
    ).select_related('patient__user')
    alerted = 0
    for pres in expiring:
        if Notification.objects.filter(prescription=pres, message__startswith=EXPIRY_ALERT_PREFIX).exists():
            continue
        day = timezone.localtime(pres.expiry_date).strftime('%Y-%m-%d')
        Notification.objects.create(
            prescription=pres,
            user=pres.patient.user,
            message=f'{EXPIRY_ALERT_PREFIX} {day}. Please renew or consult your doctor.',
        )
        alerted += 1
    expired = Prescription.objects.filter(
        status=Prescription.STATUS_ACTIVE, expiry_date__lte=now
    ).update(status=Prescription.STATUS_EXPIRED)
    logger.info('Prescription expiry alerts: %s, expired: %s', alerted, expired)
    return alerted, expired
