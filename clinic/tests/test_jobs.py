import smtplib
from datetime import timedelta

import pytest
from django.core import mail
from django.core.management import call_command
from django.utils import timezone

from clinic.models import Appointment, DoctorProfile, Message, Notification, Prescription, SystemLog, User
from clinic.services.jobs import alert_expiring_prescriptions, send_due_reminders
from clinic.services.prescriptions import reject_renewal, request_renewal

pytestmark = pytest.mark.django_db


@pytest.fixture
def now():
    return timezone.now().replace(microsecond=0)


def test_reminder_sent_once_in_window(patient, doctor, make_appointment, now):
    appt = make_appointment(patient, doctor, now + timedelta(hours=24, minutes=30),
                            status=Appointment.STATUS_SCHEDULED)
    assert send_due_reminders(now) == 1
    assert len(mail.outbox) == 1
    assert mail.outbox[0].subject == 'Appointment Reminder'
    assert appt.reference_number in mail.outbox[0].body
    appt.refresh_from_db()
    assert appt.reminder_sent is True

    assert send_due_reminders(now) == 0
    assert len(mail.outbox) == 1


def test_reminder_skips_pending_and_out_of_window(patient, doctor, make_appointment, now):
    make_appointment(patient, doctor, now + timedelta(hours=24, minutes=10))
    make_appointment(patient, doctor, now + timedelta(hours=26), status=Appointment.STATUS_CONFIRMED)
    make_appointment(patient, doctor, now + timedelta(hours=23), status=Appointment.STATUS_SCHEDULED)
    assert send_due_reminders(now) == 0
    assert mail.outbox == []


def test_reminder_includes_video_link(patient, doctor, make_appointment, now):
    make_appointment(patient, doctor, now + timedelta(hours=24), status=Appointment.STATUS_CONFIRMED,
                     is_telehealth=True, video_link='https://meet.jit.si/abc')
    assert send_due_reminders(now) == 1
    assert 'Video link: https://meet.jit.si/abc' in mail.outbox[0].body


def test_failed_reminder_is_retried_next_run(patient, doctor, make_appointment, now, monkeypatch):
    def broken(*args, **kwargs):
        raise smtplib.SMTPException('relay down')

    appt = make_appointment(patient, doctor, now + timedelta(hours=24, minutes=30),
                            status=Appointment.STATUS_SCHEDULED)
    monkeypatch.setattr('clinic.services.jobs.send_email', broken)
    assert send_due_reminders(now) == 0
    appt.refresh_from_db()
    assert appt.reminder_sent is False


def test_expiry_alerts_and_expires(patient, doctor, make_appointment, make_prescription, now):
    visit = make_appointment(patient, doctor, status=Appointment.STATUS_COMPLETED)
    soon = make_prescription(visit, expiry_date=now + timedelta(days=2))
    overdue = make_prescription(visit, 'Ibuprofen', expiry_date=now - timedelta(hours=1))
    far = make_prescription(visit, 'Metformin', expiry_date=now + timedelta(days=30))

    assert alert_expiring_prescriptions(now) == (1, 1)
    note = Notification.objects.get(prescription=soon)
    assert note.user == patient.user
    assert note.message.startswith('Your prescription will expire on')

    overdue.refresh_from_db()
    far.refresh_from_db()
    assert overdue.status == Prescription.STATUS_EXPIRED
    assert far.status == Prescription.STATUS_ACTIVE

    # already alerted, nothing left to expire
    assert alert_expiring_prescriptions(now) == (0, 0)


def test_job_commands_write_audit_rows(patient, doctor, make_appointment):
    make_appointment(patient, doctor, timezone.now() + timedelta(hours=24, minutes=30),
                     status=Appointment.STATUS_SCHEDULED)
    call_command('send_appointment_reminders')
    call_command('alert_expiring_prescriptions')

    log = SystemLog.objects.get(action='job:appointment_reminders')
    assert log.user is None
    assert log.detail == {'sent': 1}
    assert SystemLog.objects.get(action='job:prescription_expiry').detail == {'alerted': 0, 'expired': 0}


def test_seed_data_is_idempotent():
    call_command('seed_data', patients=2)
    call_command('seed_data', patients=2)

    assert User.objects.filter(role=User.ROLE_ADMIN).count() == 1
    assert User.objects.get(email='admin@hospital.com').check_password('Admin@123')
    assert DoctorProfile.objects.count() == 5
    assert DoctorProfile.objects.get(user__email='doctor2@hospital.com').specialization == 'Dermatology'
    assert User.objects.filter(role=User.ROLE_PATIENT).count() == 2
    assert Message.objects.count() == 2


def test_rejection_reason_mentioning_expiry_does_not_suppress_alert(patient, doctor, make_appointment,
                                                                   make_prescription, now):
    visit = make_appointment(patient, doctor, status=Appointment.STATUS_COMPLETED)
    pres = make_prescription(visit, is_renewable=True, expiry_date=now + timedelta(days=2))
    request_renewal(pres)
    reject_renewal(pres, 'Current supply will not expire for a while')

    assert alert_expiring_prescriptions(now) == (1, 0)
    assert Notification.objects.filter(prescription=pres, message__startswith='Your prescription will expire on') \
        .count() == 1
