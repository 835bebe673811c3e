from datetime import timedelta

import pytest
from django.core import mail
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from clinic.models import (
    Appointment,
    DoctorUnavailableSlot,
    Feedback,
    MedicalInfoRequest,
    Message,
    Notification,
    SystemLog,
)

pytestmark = pytest.mark.django_db


@pytest.fixture(autouse=True)
def _no_queue(monkeypatch):
    monkeypatch.setattr('clinic.services.appointments.publish', lambda message: True)


def test_profile_partial_update(doctor, client_for):
    client = client_for(doctor.user)
    r = client.put(reverse('doctor-profile'), {'location': 'Building B', 'schedule': '{"daysOff": ["Sunday"]}'},
                   format='json')
    assert r.status_code == 200
    doctor.refresh_from_db()
    assert doctor.location == 'Building B'
    assert doctor.schedule == {'daysOff': ['Sunday']}
    assert doctor.specialization == 'Cardiology'


def test_profile_rejects_non_object_schedule(doctor, client_for):
    r = client_for(doctor.user).put(reverse('doctor-profile'), {'schedule': [1, 2]}, format='json')
    assert r.status_code == 400


def test_doctor_appointments_include_feedback(patient, doctor, client_for, make_appointment):
    appt = make_appointment(patient, doctor, status=Appointment.STATUS_COMPLETED)
    Feedback.objects.create(appointment=appt, patient=patient, rating=4, comments='Good')
    r = client_for(doctor.user).get(reverse('doctor-appointments'))
    assert r.status_code == 200
    row = r.data['data'][0]
    assert row['patientEmail'] == 'pat@test.com'
    assert row['feedback'] == {'rating': 4, 'comments': 'Good'}


def test_doctor_cancel_ignores_notice_window(patient, doctor, client_for, make_appointment):
    appt = make_appointment(patient, doctor, timezone.now() + timedelta(hours=2))
    r = client_for(doctor.user).post(reverse('doctor-appointment-cancel', args=[appt.id]))
    assert r.status_code == 200
    appt.refresh_from_db()
    assert appt.status == Appointment.STATUS_CANCELLED
    assert Notification.objects.filter(appointment=appt, message__contains='cancelled by the doctor').exists()


def test_complete_and_schedule(patient, doctor, client_for, make_appointment):
    client = client_for(doctor.user)
    appt = make_appointment(patient, doctor)
    assert client.post(reverse('doctor-appointment-scheduled', args=[appt.id])).status_code == 200
    appt.refresh_from_db()
    assert appt.status == Appointment.STATUS_SCHEDULED

    assert client.post(reverse('doctor-appointment-complete', args=[appt.id])).status_code == 200
    appt.refresh_from_db()
    assert appt.status == Appointment.STATUS_COMPLETED


def test_cannot_complete_cancelled(patient, doctor, client_for, make_appointment):
    appt = make_appointment(patient, doctor, status=Appointment.STATUS_CANCELLED)
    r = client_for(doctor.user).post(reverse('doctor-appointment-complete', args=[appt.id]))
    assert r.status_code == 400


def test_cannot_touch_other_doctors_appointment(patient, doctor, other_doctor, client_for, make_appointment):
    appt = make_appointment(patient, other_doctor)
    r = client_for(doctor.user).post(reverse('doctor-appointment-cancel', args=[appt.id]))
    assert r.status_code == 404


def test_doctor_reschedule_emails_both_parties(patient, doctor, client_for, at, make_appointment):
    appt = make_appointment(patient, doctor, at(days=3), status=Appointment.STATUS_SCHEDULED)
    r = client_for(doctor.user).post(reverse('doctor-appointment-reschedule', args=[appt.id]),
                                     {'newDateTime': at(days=4, hour=14).isoformat()}, format='json')
    assert r.status_code == 200
    appt.refresh_from_db()
    assert appt.status == Appointment.STATUS_PENDING
    assert len(mail.outbox) == 2
    assert mail.outbox[0].subject == 'Appointment Rescheduled'


def test_unavailable_slots(doctor, client_for):
    client = client_for(doctor.user)
    url = reverse('doctor-slots')
    assert client.post(url, {'date': '2030-01-10', 'startTime': '9:00', 'endTime': '10:00'},
                       format='json').status_code == 400
    assert client.post(url, {'date': '2030-01-10', 'startTime': '11:00', 'endTime': '10:00'},
                       format='json').status_code == 400

    r = client.post(url, {'date': '2030-01-10', 'startTime': '09:00', 'endTime': '10:00'}, format='json')
    assert r.status_code == 201
    slot_id = r.data['data']['id']
    assert client.get(url).data['data'][0]['startTime'] == '09:00'

    assert client.delete(reverse('doctor-slot-delete', args=[slot_id])).status_code == 200
    assert not DoctorUnavailableSlot.objects.exists()


def test_report_csv(patient, doctor, client_for, at, make_appointment):
    when = at(days=2)
    appt = make_appointment(patient, doctor, when)
    day = when.date().isoformat()
    r = client_for(doctor.user).get(reverse('doctor-report'), {'startDate': day, 'endDate': day, 'format': 'csv'})
    assert r.status_code == 200
    assert r['Content-Type'].startswith('text/csv')
    lines = r.content.decode().splitlines()
    assert lines[0] == 'Date,Time,Patient,Status,Reference'
    assert lines[1].endswith(f'Pending,{appt.reference_number}')
    assert SystemLog.objects.filter(action='DoctorReport').exists()


def test_report_pdf_is_not_supported(doctor, client_for):
    r = client_for(doctor.user).get(reverse('doctor-report'),
                                    {'startDate': '2030-01-01', 'endDate': '2030-01-31', 'format': 'pdf'})
    assert r.status_code == 400


def test_my_patients_lists_completed_only(patient, other_patient, doctor, client_for, at, make_appointment):
    make_appointment(patient, doctor, at(days=2), status=Appointment.STATUS_COMPLETED)
    make_appointment(patient, doctor, at(days=3), status=Appointment.STATUS_COMPLETED)
    make_appointment(other_patient, doctor, at(days=4))
    client = client_for(doctor.user)

    r = client.get(reverse('doctor-patients'))
    assert [p['id'] for p in r.data['data']] == [patient.id]

    r = client.get(reverse('doctor-patient-appointments', args=[patient.id]))
    assert len(r.data['data']) == 2


def test_public_search_and_booked_times(patient, doctor, other_doctor, at, make_appointment):
    when = at(days=2)
    make_appointment(patient, doctor, when)
    make_appointment(patient, doctor, at(days=2, hour=11), status=Appointment.STATUS_CANCELLED)
    client = APIClient()

    r = client.get(reverse('doctor-search'), {'specialization': 'cardio'})
    assert r.status_code == 200
    assert [d['id'] for d in r.data['data']] == [doctor.id]

    r = client.get(reverse('doctor-search'), {'name': 'cuddy'})
    assert [d['id'] for d in r.data['data']] == [other_doctor.id]

    r = client.get(reverse('doctor-booked-times', args=[doctor.id]), {'date': when.date().isoformat()})
    assert len(r.data['data']) == 1

    assert client.get(reverse('doctor-booked-times', args=[doctor.id])).status_code == 400
    assert client.get(reverse('doctor-detail', args=[doctor.id])).data['data']['specialization'] == 'Cardiology'
    assert client.get(reverse('doctor-schedule', args=[doctor.id])).data['schedule'] == {}


def test_messaging_between_doctor_and_patient(patient, doctor, client_for):
    doc_client = client_for(doctor.user)
    pat_client = client_for(patient.user)

    r = doc_client.post(reverse('doctor-message-send'),
                        {'patientId': patient.id, 'content': '<b>Please</b> fast before the test'}, format='json')
    assert r.status_code == 201
    assert r.data['data']['content'] == 'Please fast before the test'

    r = pat_client.post(reverse('patient-message-send'), {'doctorId': doctor.id, 'content': '   '}, format='json')
    assert r.status_code == 400

    pat_client.post(reverse('patient-message-send'), {'doctorId': doctor.id, 'content': 'Will do'}, format='json')

    r = pat_client.get(reverse('patient-messages', args=[doctor.id]))
    assert [m['content'] for m in r.data['data']] == ['Please fast before the test', 'Will do']
    assert Message.objects.get(sender=doctor.user).is_read is True
    assert Message.objects.get(sender=patient.user).is_read is False


def test_medical_info_request_flow(patient, doctor, client_for):
    doc_client = client_for(doctor.user)
    pat_client = client_for(patient.user)

    r = doc_client.post(reverse('doctor-info-requests'),
                        {'patientId': patient.id, 'requestText': 'Recent blood work?'}, format='json')
    assert r.status_code == 201
    req_id = r.data['data']['id']
    assert Notification.objects.filter(user=patient.user, message__contains='Recent blood work?').exists()

    r = pat_client.get(reverse('patient-info-requests'))
    assert r.data['data'][0]['status'] == 'Pending'

    r = pat_client.post(reverse('patient-info-request-respond', args=[req_id]),
                        {'responseText': 'Attached', 'attachmentUrl': 'https://files.example.com/a.pdf'},
                        format='json')
    assert r.status_code == 200
    req = MedicalInfoRequest.objects.get(pk=req_id)
    assert req.status == MedicalInfoRequest.STATUS_RESPONDED
    assert req.responded_at is not None

    r = pat_client.post(reverse('patient-info-request-respond', args=[req_id]), {'responseText': 'Again'},
                        format='json')
    assert r.status_code == 400
    assert doc_client.post(reverse('doctor-info-request-cancel', args=[req_id])).status_code == 400
