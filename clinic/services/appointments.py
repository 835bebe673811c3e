"""
Appointment booking rules and lifecycle changes.

Every booking and every reschedule goes through :func:`validate_slot`:
the requested time must be in the future, fall inside the doctor's
schedule, not collide with another live appointment of that doctor and
not fall inside one of the doctor's unavailable slots.  Functions raise
``ValueError`` for rule violations; views turn those into 400 responses.
"""
from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_date

from clinic.models import Appointment, DoctorProfile, DoctorUnavailableSlot, Notification, PatientProfile
from clinic.services.mailer import email_parties
from clinic.services.notifications import notify_admins, notify_appointment
from clinic.services.queue import publish

logger = logging.getLogger(__name__)


def fmt(dt: datetime) -> str:
    return timezone.localtime(dt).strftime('%Y-%m-%d %H:%M')


def normalize(dt: datetime) -> datetime:
    """Slots have minute resolution; naive input is read in the current time zone."""
    if timezone.is_naive(dt):
        dt = timezone.make_aware(dt)
    return dt.replace(second=0, microsecond=0)


def load_schedule(raw) -> dict:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw) if raw.strip() else {}
        except ValueError:
            return {}
    return raw if isinstance(raw, dict) else {}


def _same_day(value, day) -> bool:
    try:
        return parse_date(str(value)[:10]) == day
    except ValueError:
        return False


def schedule_problem(doctor: DoctorProfile, when: datetime) -> Optional[str]:
    """Return why ``when`` falls outside the doctor's schedule, or None.

    Malformed schedule entries are ignored and never block a booking.
    """
    schedule = load_schedule(doctor.schedule)
    if not schedule:
        return None
    local = timezone.localtime(when)
    weekday = local.strftime('%A')

    days_off = schedule.get('daysOff')
    if isinstance(days_off, list) and any(str(d).strip().lower() == weekday.lower() for d in days_off):
        return f'Doctor is not available on {weekday}'

    for key, message in (('vacations', 'Doctor is on vacation this day'),
                         ('holidays', 'Doctor is on holiday this day')):
        entries = schedule.get(key)
        if isinstance(entries, list) and any(_same_day(v, local.date()) for v in entries):
            return message

    start, end = schedule.get('workingHoursStart'), schedule.get('workingHoursEnd')
    if start and end:
        start, end = str(start), str(end)
        hhmm = local.strftime('%H:%M')
        if hhmm < start or hhmm >= end:
            return f'Doctor is only available between {start} and {end}'
    return None


def validate_slot(doctor: DoctorProfile, when: datetime, *, exclude_id=None, now=None) -> None:
    now = now or timezone.now()
    if when <= now:
        raise ValueError('Appointment time must be in the future.')

    problem = schedule_problem(doctor, when)
    if problem:
        raise ValueError(problem)

    taken = Appointment.objects.filter(doctor=doctor, appointment_datetime=when) \
        .exclude(status=Appointment.STATUS_CANCELLED)
    if exclude_id is not None:
        taken = taken.exclude(pk=exclude_id)
    if taken.exists():
        raise ValueError('This slot is already booked.')

    local = timezone.localtime(when)
    hhmm = local.strftime('%H:%M')
    blocked = DoctorUnavailableSlot.objects.filter(
        doctor=doctor, date=local.date(), start_time__lte=hhmm, end_time__gt=hhmm
    ).exists()
    if blocked:
        raise ValueError('This slot is unavailable (doctor not available).')


def ensure_notice(appointment: Appointment, action: str, now=None) -> None:
    """Patients must act at least CANCELLATION_NOTICE_HOURS before the visit."""
    now = now or timezone.now()
    hours = settings.CANCELLATION_NOTICE_HOURS
    if appointment.appointment_datetime - now < timedelta(hours=hours):
        raise ValueError(f'Cannot {action} within {hours} hours of appointment.')


def within_notice(appointment: Appointment, now=None) -> bool:
    now = now or timezone.now()
    return appointment.appointment_datetime - now < timedelta(hours=settings.CANCELLATION_NOTICE_HOURS)


def _video_link() -> str:
    return f"{settings.TELEHEALTH_BASE_URL.rstrip('/')}/{uuid.uuid4().hex}"


def book(patient: PatientProfile, doctor_id, when: datetime, is_telehealth: bool = False) -> Appointment:
    when = normalize(when)
    with transaction.atomic():
        # serialise bookings per doctor
        doctor = DoctorProfile.objects.select_for_update().filter(pk=doctor_id).first()
        if doctor is None:
            raise ValueError('Doctor not found')
        validate_slot(doctor, when)
        appointment = Appointment.objects.create(
            patient=patient,
            doctor=doctor,
            appointment_datetime=when,
            status=Appointment.STATUS_PENDING,
            is_telehealth=is_telehealth,
            video_link=_video_link() if is_telehealth else None,
        )
        ref = appointment.reference_number
        notify_appointment(
            appointment,
            f'Appointment booked: {ref} for patient {patient.id} with doctor {doctor.id} at {fmt(when)}',
        )
        notify_admins(
            f'New appointment booked: {ref} (Patient: {patient.id}, Doctor: {doctor.id}, Date: {fmt(when)})'
        )
    logger.info('Booked appointment %s with doctor %s at %s', ref, doctor.id, fmt(when))
    publish(f'Appointment booked: {ref} for patient {patient.id} with doctor {doctor.id} at {fmt(when)}')
    return appointment


def _move(appointment: Appointment, when: datetime) -> Appointment:
    when = normalize(when)
    with transaction.atomic():
        DoctorProfile.objects.select_for_update().filter(pk=appointment.doctor_id).first()
        validate_slot(appointment.doctor, when, exclude_id=appointment.pk)
        appointment.appointment_datetime = when
        appointment.status = Appointment.STATUS_PENDING
        appointment.reminder_sent = False
        appointment.save(update_fields=['appointment_datetime', 'status', 'reminder_sent'])
    return appointment


def _set_status(appointment: Appointment, status: str) -> Appointment:
    appointment.status = status
    appointment.save(update_fields=['status'])
    return appointment


# ---------------------------------------------------------------------
# Patient actions
# ---------------------------------------------------------------------
def cancel_by_patient(appointment: Appointment, now=None) -> Appointment:
    if appointment.status == Appointment.STATUS_CANCELLED:
        raise ValueError('Appointment is already cancelled.')
    ensure_notice(appointment, 'cancel', now)
    _set_status(appointment, Appointment.STATUS_CANCELLED)
    message = f'Appointment cancelled: {appointment.reference_number} by patient {appointment.patient_id}'
    notify_appointment(appointment, message)
    publish(message)
    return appointment


def reschedule_by_patient(appointment: Appointment, when: datetime, now=None) -> Appointment:
    if appointment.status == Appointment.STATUS_CANCELLED:
        raise ValueError('Cannot reschedule a cancelled appointment.')
    ensure_notice(appointment, 'reschedule', now)
    _move(appointment, when)
    ref, at = appointment.reference_number, fmt(appointment.appointment_datetime)
    message = f'Appointment rescheduled: {ref} by patient {appointment.patient_id} to {at}'
    notify_appointment(appointment, message)
    publish(message)
    email_parties(appointment, 'Appointment Rescheduled',
                  f'Your appointment (Ref: {ref}) has been rescheduled to {at}.')
    return appointment


def confirm_by_patient(appointment: Appointment) -> Appointment:
    if appointment.status != Appointment.STATUS_SCHEDULED:
        raise ValueError('Only scheduled appointments can be confirmed.')
    _set_status(appointment, Appointment.STATUS_CONFIRMED)
    message = f'Appointment confirmed: {appointment.reference_number} by patient {appointment.patient_id}'
    notify_appointment(appointment, message)
    publish(message)
    return appointment


# ---------------------------------------------------------------------
# Doctor actions
# ---------------------------------------------------------------------
def cancel_by_doctor(appointment: Appointment) -> Appointment:
    if appointment.status == Appointment.STATUS_CANCELLED:
        raise ValueError('Appointment is already cancelled.')
    _set_status(appointment, Appointment.STATUS_CANCELLED)
    notify_appointment(
        appointment,
        f'Your appointment on {fmt(appointment.appointment_datetime)} was cancelled by the doctor.',
    )
    publish(f'Appointment cancelled by doctor: {appointment.reference_number} '
            f'for patient {appointment.patient_id} at {fmt(appointment.appointment_datetime)}')
    return appointment


def complete(appointment: Appointment) -> Appointment:
    if appointment.status == Appointment.STATUS_CANCELLED:
        raise ValueError('Cannot complete a cancelled appointment.')
    return _set_status(appointment, Appointment.STATUS_COMPLETED)


def mark_scheduled(appointment: Appointment) -> Appointment:
    if appointment.status in (Appointment.STATUS_CANCELLED, Appointment.STATUS_COMPLETED):
        raise ValueError(f'Cannot schedule a {appointment.status.lower()} appointment.')
    return _set_status(appointment, Appointment.STATUS_SCHEDULED)


def reschedule_by_doctor(appointment: Appointment, when: datetime) -> Appointment:
    if appointment.status == Appointment.STATUS_CANCELLED:
        raise ValueError('Cannot reschedule a cancelled appointment.')
    _move(appointment, when)
    ref, at = appointment.reference_number, fmt(appointment.appointment_datetime)
    notify_appointment(appointment, f'Your appointment was rescheduled by the doctor to {at}.')
    email_parties(appointment, 'Appointment Rescheduled',
                  f'Your appointment (Ref: {ref}) has been rescheduled by the doctor to {at}.')
    publish(f'Appointment rescheduled by doctor: {ref} for patient {appointment.patient_id} to {at}')
    return appointment


# ---------------------------------------------------------------------
# Admin actions
# ---------------------------------------------------------------------
def cancel_by_admin(appointment: Appointment, justification: Optional[str] = None, now=None) -> bool:
    """Cancel on behalf of an admin.  Returns True when the notice window was overridden."""
    if appointment.status == Appointment.STATUS_CANCELLED:
        raise ValueError('Appointment is already cancelled.')
    justification = (justification or '').strip()
    is_override = within_notice(appointment, now)
    if is_override and not justification:
        raise ValueError('Justification required to override 48-hour rule.')
    _set_status(appointment, Appointment.STATUS_CANCELLED)
    ref = appointment.reference_number
    if is_override:
        note = f'Appointment cancelled by admin with override. Reason: {justification}'
        body = f'Your appointment (Ref: {ref}) was cancelled by admin with override. Reason: {justification}'
    else:
        note = 'Appointment cancelled by admin.' + (f' Reason: {justification}' if justification else '')
        body = f'Your appointment (Ref: {ref}) was cancelled by admin.'
    notify_appointment(appointment, note)
    email_parties(appointment, 'Appointment Cancelled', body)
    publish(f'Appointment cancelled by admin: {ref} for patient {appointment.patient_id} '
            f'with doctor {appointment.doctor_id} at {fmt(appointment.appointment_datetime)}')
    return is_override


def reschedule_by_admin(appointment: Appointment, when: datetime) -> Appointment:
    _move(appointment, when)
    ref, at = appointment.reference_number, fmt(appointment.appointment_datetime)
    notify_appointment(appointment, f'Appointment rescheduled by admin to {at}')
    email_parties(appointment, 'Appointment Rescheduled',
                  f'Your appointment (Ref: {ref}) has been rescheduled by admin to {at}.')
    publish(f'Appointment rescheduled by admin: {ref} for patient {appointment.patient_id} '
            f'with doctor {appointment.doctor_id} to {at}')
    return appointment


def set_status(appointment: Appointment, status: str) -> Appointment:
    if status not in dict(Appointment.STATUS_CHOICES):
        raise ValueError(f'Unknown status: {status}')
    return _set_status(appointment, status)


def cancellation_notes(appointment_ids) -> dict:
    """First cancellation notification message per appointment id."""
    notes: dict = {}
    rows = Notification.objects.filter(
        appointment_id__in=list(appointment_ids), message__icontains='cancelled'
    ).order_by('created_at', 'id').values_list('appointment_id', 'message')
    for appointment_id, message in rows:
        notes.setdefault(appointment_id, message)
    return notes
