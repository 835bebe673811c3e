from datetime import timedelta

import pytest
from django.core import mail
from django.db import IntegrityError, transaction
from django.urls import reverse
from django.utils import timezone

from clinic.models import Appointment, DoctorUnavailableSlot, Notification

pytestmark = pytest.mark.django_db


@pytest.fixture
def published(monkeypatch):
    sent = []
    monkeypatch.setattr('clinic.services.appointments.publish', lambda message: sent.append(message) or True)
    return sent


def book(client, doctor, when, **extra):
    payload = {'doctorId': doctor.id, 'appointmentDateTime': when.isoformat(), **extra}
    return client.post(reverse('appointment-book'), payload, format='json')


def test_book_appointment(patient, doctor, admin_user, client_for, at, published):
    r = book(client_for(patient.user), doctor, at())
    assert r.status_code == 201
    appt = Appointment.objects.get(pk=r.data['id'])
    assert appt.status == Appointment.STATUS_PENDING
    assert len(appt.reference_number) == 8
    assert r.data['referenceNumber'] == appt.reference_number
    assert r.data['videoLink'] is None
    assert Notification.objects.filter(appointment=appt, message__startswith='Appointment booked').exists()
    assert Notification.objects.filter(user=admin_user, message__startswith='New appointment booked').exists()
    assert published and published[0].startswith('Appointment booked')


def test_book_telehealth_gets_video_link(patient, doctor, client_for, at, published):
    r = book(client_for(patient.user), doctor, at(), isTelehealth=True)
    assert r.status_code == 201
    assert r.data['isTelehealth'] is True
    assert r.data['videoLink'].startswith('https://meet.jit.si/')


def test_booking_truncates_seconds(patient, doctor, client_for, at, published):
    r = book(client_for(patient.user), doctor, at().replace(minute=15, second=42))
    assert r.status_code == 201
    appt = Appointment.objects.get(pk=r.data['id'])
    assert appt.appointment_datetime.second == 0
    assert appt.appointment_datetime.minute == 15


def test_double_booking_is_rejected(patient, other_patient, doctor, client_for, at, published):
    when = at()
    assert book(client_for(patient.user), doctor, when).status_code == 201
    r = book(client_for(other_patient.user), doctor, when)
    assert r.status_code == 400
    assert r.data['detail'] == 'This slot is already booked.'


def test_cancelled_slot_can_be_booked_again(patient, other_patient, doctor, client_for, at, make_appointment,
                                            published):
    when = at()
    make_appointment(patient, doctor, when, status=Appointment.STATUS_CANCELLED)
    assert book(client_for(other_patient.user), doctor, when).status_code == 201


def test_booking_in_the_past_is_rejected(patient, doctor, client_for, published):
    r = book(client_for(patient.user), doctor, timezone.now() - timedelta(hours=1))
    assert r.status_code == 400
    assert r.data['detail'] == 'Appointment time must be in the future.'


def test_unknown_doctor(patient, client_for, at, published):
    r = client_for(patient.user).post(reverse('appointment-book'),
                                      {'doctorId': 9999, 'appointmentDateTime': at().isoformat()}, format='json')
    assert r.status_code == 400
    assert r.data['detail'] == 'Doctor not found'


def test_booking_on_day_off(patient, doctor, client_for, at, published):
    when = at()
    doctor.schedule = {'daysOff': [timezone.localtime(when).strftime('%A')]}
    doctor.save()
    r = book(client_for(patient.user), doctor, when)
    assert r.status_code == 400
    assert r.data['detail'].startswith('Doctor is not available on')


def test_booking_on_vacation(patient, doctor, client_for, at, published):
    when = at()
    doctor.schedule = {'vacations': [timezone.localtime(when).date().isoformat()]}
    doctor.save()
    r = book(client_for(patient.user), doctor, when)
    assert r.status_code == 400
    assert r.data['detail'] == 'Doctor is on vacation this day'


def test_booking_outside_working_hours(patient, doctor, client_for, at, published):
    doctor.schedule = {'workingHoursStart': '09:00', 'workingHoursEnd': '17:00'}
    doctor.save()
    client = client_for(patient.user)
    r = book(client, doctor, at(hour=17))
    assert r.status_code == 400
    assert r.data['detail'] == 'Doctor is only available between 09:00 and 17:00'
    assert book(client, doctor, at(hour=9)).status_code == 201


def test_booking_inside_unavailable_slot(patient, doctor, client_for, at, published):
    when = at(hour=10)
    DoctorUnavailableSlot.objects.create(doctor=doctor, date=when.date(), start_time='09:00', end_time='12:00')
    r = book(client_for(patient.user), doctor, when)
    assert r.status_code == 400
    assert r.data['detail'] == 'This slot is unavailable (doctor not available).'


def test_doctor_cannot_book(doctor, client_for, at):
    r = book(client_for(doctor.user), doctor, at())
    assert r.status_code == 403


def test_cancel_respects_notice_window(patient, doctor, client_for, make_appointment, published):
    soon = make_appointment(patient, doctor, timezone.now() + timedelta(hours=24))
    later = make_appointment(patient, doctor, timezone.now() + timedelta(days=5))
    client = client_for(patient.user)

    r = client.post(reverse('appointment-cancel', args=[soon.id]))
    assert r.status_code == 400
    assert r.data['detail'] == 'Cannot cancel within 48 hours of appointment.'

    r = client.post(reverse('appointment-cancel', args=[later.id]))
    assert r.status_code == 200
    later.refresh_from_db()
    assert later.status == Appointment.STATUS_CANCELLED
    assert any('cancelled' in m for m in published)


def test_cannot_cancel_someone_elses_appointment(patient, other_patient, doctor, client_for, make_appointment):
    appt = make_appointment(other_patient, doctor)
    r = client_for(patient.user).post(reverse('appointment-cancel', args=[appt.id]))
    assert r.status_code == 404


def test_reschedule(patient, doctor, client_for, at, make_appointment, published):
    appt = make_appointment(patient, doctor, at(days=5), status=Appointment.STATUS_SCHEDULED, reminder_sent=True)
    new_time = at(days=6, hour=11)
    r = client_for(patient.user).post(reverse('appointment-reschedule', args=[appt.id]),
                                      {'newDateTime': new_time.isoformat()}, format='json')
    assert r.status_code == 200
    appt.refresh_from_db()
    assert appt.appointment_datetime == new_time
    assert appt.status == Appointment.STATUS_PENDING
    assert appt.reminder_sent is False
    assert {m.to[0] for m in mail.outbox} == {'doc@test.com', 'pat@test.com'}


def test_reschedule_to_same_time_is_allowed(patient, doctor, client_for, at, make_appointment, published):
    when = at(days=5)
    appt = make_appointment(patient, doctor, when)
    r = client_for(patient.user).post(reverse('appointment-reschedule', args=[appt.id]),
                                      {'newDateTime': when.isoformat()}, format='json')
    assert r.status_code == 200


def test_reschedule_into_taken_slot(patient, other_patient, doctor, client_for, at, make_appointment, published):
    taken = at(days=6)
    make_appointment(other_patient, doctor, taken)
    appt = make_appointment(patient, doctor, at(days=5))
    r = client_for(patient.user).post(reverse('appointment-reschedule', args=[appt.id]),
                                      {'newDateTime': taken.isoformat()}, format='json')
    assert r.status_code == 400
    assert r.data['detail'] == 'This slot is already booked.'


def test_reschedule_within_notice_window(patient, doctor, client_for, at, make_appointment, published):
    appt = make_appointment(patient, doctor, timezone.now() + timedelta(hours=10))
    r = client_for(patient.user).post(reverse('appointment-reschedule', args=[appt.id]),
                                      {'newDateTime': at(days=7).isoformat()}, format='json')
    assert r.status_code == 400
    assert r.data['detail'] == 'Cannot reschedule within 48 hours of appointment.'


def test_confirm_only_scheduled(patient, doctor, client_for, at, make_appointment, published):
    pending = make_appointment(patient, doctor, at(days=5))
    scheduled = make_appointment(patient, doctor, at(days=6), status=Appointment.STATUS_SCHEDULED)
    client = client_for(patient.user)

    assert client.post(reverse('appointment-confirm', args=[pending.id])).status_code == 400
    assert client.post(reverse('appointment-confirm', args=[scheduled.id])).status_code == 200
    scheduled.refresh_from_db()
    assert scheduled.status == Appointment.STATUS_CONFIRMED


def test_my_appointments_scoped_to_caller(patient, other_patient, doctor, admin_user, client_for, at,
                                          make_appointment):
    mine = make_appointment(patient, doctor, at(days=5))
    make_appointment(other_patient, doctor, at(days=6))

    r = client_for(patient.user).get(reverse('appointment-my'))
    assert [a['id'] for a in r.data['data']] == [mine.id]
    assert r.data['data'][0]['doctorEmail'] == 'doc@test.com'

    r = client_for(doctor.user).get(reverse('appointment-my'))
    assert len(r.data['data']) == 2

    assert client_for(admin_user).get(reverse('appointment-my')).status_code == 403


def test_filter_appointments(patient, doctor, other_doctor, client_for, at, make_appointment):
    first = make_appointment(patient, doctor, at(days=5), status=Appointment.STATUS_SCHEDULED)
    make_appointment(patient, other_doctor, at(days=6))
    client = client_for(patient.user)

    r = client.get(reverse('appointment-filter'), {'doctorId': doctor.id})
    assert [a['id'] for a in r.data['data']] == [first.id]

    r = client.get(reverse('appointment-filter'), {'status': 'Scheduled'})
    assert [a['id'] for a in r.data['data']] == [first.id]

    r = client.get(reverse('appointment-filter'), {'date': at(days=6).date().isoformat()})
    assert len(r.data['data']) == 1


def test_unique_live_slot_constraint(patient, other_patient, doctor, make_appointment, at):
    when = at()
    make_appointment(patient, doctor, when)
    with pytest.raises(IntegrityError), transaction.atomic():
        make_appointment(other_patient, doctor, when)
    # a cancelled row does not hold the slot
    Appointment.objects.filter(patient=patient).update(status=Appointment.STATUS_CANCELLED)
    make_appointment(other_patient, doctor, when)


def test_booking_on_holiday(patient, doctor, client_for, at, published):
    when = at()
    doctor.schedule = {'holidays': [timezone.localtime(when).date().isoformat()]}
    doctor.save()
    r = book(client_for(patient.user), doctor, when)
    assert r.status_code == 400
    assert r.data['detail'] == 'Doctor is on holiday this day'


def test_days_off_match_ignores_case(patient, doctor, client_for, at, published):
    when = at()
    doctor.schedule = {'daysOff': [timezone.localtime(when).strftime('%A').upper()]}
    doctor.save()
    r = book(client_for(patient.user), doctor, when)
    assert r.status_code == 400
    assert r.data['detail'].startswith('Doctor is not available on')


@pytest.mark.parametrize('schedule', [{}, '', '{not json', '[1, 2]'])
def test_empty_or_unreadable_schedule_does_not_block(patient, doctor, client_for, at, published, schedule):
    doctor.schedule = schedule
    doctor.save()
    assert book(client_for(patient.user), doctor, at()).status_code == 201


def test_doctor_reschedule_into_taken_slot(patient, other_patient, doctor, client_for, at, make_appointment,
                                           published):
    taken = at(days=6)
    make_appointment(other_patient, doctor, taken)
    appt = make_appointment(patient, doctor, at(days=5))
    r = client_for(doctor.user).post(reverse('doctor-appointment-reschedule', args=[appt.id]),
                                     {'newDateTime': taken.isoformat()}, format='json')
    assert r.status_code == 400
    assert r.data['detail'] == 'This slot is already booked.'


def test_admin_reschedule_respects_schedule(patient, doctor, admin_user, client_for, at, make_appointment,
                                            published):
    target = at(days=6)
    doctor.schedule = {'vacations': [timezone.localtime(target).date().isoformat()]}
    doctor.save()
    appt = make_appointment(patient, doctor, at(days=5))
    r = client_for(admin_user).put(reverse('admin-appointment-reschedule', args=[appt.id]),
                                   {'newDateTime': target.isoformat()}, format='json')
    assert r.status_code == 400
    assert r.data['detail'] == 'Doctor is on vacation this day'
    appt.refresh_from_db()
    assert appt.appointment_datetime == at(days=5)
