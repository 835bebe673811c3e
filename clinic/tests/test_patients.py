import pytest
from django.urls import reverse

from clinic.models import Appointment, Feedback, Notification, PatientProfile, User

pytestmark = pytest.mark.django_db


# ---------------------------------------------------------------------
# Profile and medical history review
# ---------------------------------------------------------------------
def test_profile_update_queues_medical_history(patient, client_for):
    client = client_for(patient.user)
    r = client.put(reverse('patient-profile'), {
        'fullName': 'Johnny Doe', 'contactInfo': '555-0100', 'medicalHistory': 'Asthma',
    }, format='json')
    assert r.status_code == 200
    data = r.data['data']
    assert data['fullName'] == 'Johnny Doe'
    assert data['medicalHistory'] == ''
    assert data['pendingMedicalHistory'] == 'Asthma'
    assert data['medicalHistoryApprovalStatus'] == 'Pending'


def test_doctor_approves_medical_history(patient, doctor, client_for):
    client_for(patient.user).put(reverse('patient-profile'), {'medicalHistory': 'Asthma'}, format='json')
    r = client_for(doctor.user).post(reverse('medical-history-approve', args=[patient.id]))
    assert r.status_code == 200
    patient.refresh_from_db()
    assert patient.medical_history == 'Asthma'
    assert patient.pending_medical_history is None
    assert patient.medical_history_approval_status == PatientProfile.APPROVAL_APPROVED
    assert Notification.objects.filter(user=patient.user, message__contains='approved').exists()


def test_admin_rejects_medical_history(patient, admin_user, client_for):
    client_for(patient.user).put(reverse('patient-profile'), {'medicalHistory': 'Asthma'}, format='json')
    r = client_for(admin_user).post(reverse('medical-history-reject', args=[patient.id]),
                                    {'reason': 'Needs a diagnosis date'}, format='json')
    assert r.status_code == 200
    patient.refresh_from_db()
    assert patient.medical_history == ''
    assert patient.medical_history_approval_status == PatientProfile.APPROVAL_REJECTED
    assert Notification.objects.filter(user=patient.user, message__contains='Needs a diagnosis date').exists()


def test_review_without_pending_change(patient, doctor, client_for):
    r = client_for(doctor.user).post(reverse('medical-history-approve', args=[patient.id]))
    assert r.status_code == 400
    assert r.data['detail'] == 'No pending change.'


def test_patient_cannot_review_own_history(patient, client_for):
    r = client_for(patient.user).post(reverse('medical-history-approve', args=[patient.id]))
    assert r.status_code == 403


def test_patient_appointments(patient, doctor, client_for, make_appointment):
    make_appointment(patient, doctor)
    r = client_for(patient.user).get(reverse('patient-appointments'))
    assert r.data['data'][0]['doctorName'] == 'Gregory House'


# ---------------------------------------------------------------------
# Feedback
# ---------------------------------------------------------------------
def test_feedback_requires_completed_appointment(patient, doctor, client_for, make_appointment):
    appt = make_appointment(patient, doctor)
    r = client_for(patient.user).post(reverse('feedback-submit'), {'appointmentId': appt.id, 'rating': 5},
                                      format='json')
    assert r.status_code == 400
    assert r.data['detail'] == 'Invalid appointment or not completed.'


def test_feedback_once_per_appointment(patient, doctor, client_for, make_appointment):
    appt = make_appointment(patient, doctor, status=Appointment.STATUS_COMPLETED)
    client = client_for(patient.user)
    payload = {'appointmentId': appt.id, 'rating': 5, 'comments': 'Very thorough'}

    r = client.post(reverse('feedback-submit'), payload, format='json')
    assert r.status_code == 201
    assert r.data['data']['rating'] == 5

    r = client.post(reverse('feedback-submit'), payload, format='json')
    assert r.status_code == 400
    assert r.data['detail'] == 'Feedback already submitted.'
    assert Feedback.objects.count() == 1


def test_feedback_rating_range(patient, doctor, client_for, make_appointment):
    appt = make_appointment(patient, doctor, status=Appointment.STATUS_COMPLETED)
    r = client_for(patient.user).post(reverse('feedback-submit'), {'appointmentId': appt.id, 'rating': 6},
                                      format='json')
    assert r.status_code == 400
    assert r.data['error']['code'] == 'invalid'


def test_feedback_visibility(patient, other_patient, doctor, admin_user, client_for, make_appointment):
    appt = make_appointment(patient, doctor, status=Appointment.STATUS_COMPLETED)
    empty = make_appointment(patient, doctor, status=Appointment.STATUS_COMPLETED,
                             when=appt.appointment_datetime.replace(hour=12))
    Feedback.objects.create(appointment=appt, patient=patient, rating=3, comments='Long wait')

    assert len(client_for(patient.user).get(reverse('feedback-my')).data['data']) == 1
    assert len(client_for(doctor.user).get(reverse('feedback-doctor', args=[doctor.id])).data['data']) == 1
    assert client_for(patient.user).get(reverse('feedback-doctor', args=[doctor.id])).status_code == 403

    url = reverse('feedback-appointment', args=[appt.id])
    assert client_for(admin_user).get(url).data['data']['comments'] == 'Long wait'
    assert client_for(other_patient.user).get(url).status_code == 403
    assert client_for(doctor.user).get(reverse('feedback-appointment', args=[empty.id])).status_code == 404


# ---------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------
def test_my_notifications_union(patient, other_patient, doctor, client_for, make_appointment):
    appt = make_appointment(patient, doctor)
    on_appt = Notification.objects.create(appointment=appt, message='Appointment booked')
    direct = Notification.objects.create(user=patient.user, message='Hello')
    Notification.objects.create(user=other_patient.user, message='Not yours')

    r = client_for(patient.user).get(reverse('notification-my'))
    ids = [n['id'] for n in r.data['data']]
    assert ids == [direct.id, on_appt.id]

    r = client_for(doctor.user).get(reverse('notification-my'))
    assert [n['id'] for n in r.data['data']] == [on_appt.id]


def test_mark_read_only_visible(patient, other_patient, client_for):
    mine = Notification.objects.create(user=patient.user, message='Mine')
    theirs = Notification.objects.create(user=other_patient.user, message='Theirs')
    client = client_for(patient.user)

    assert client.post(reverse('notification-read', args=[mine.id])).status_code == 200
    mine.refresh_from_db()
    assert mine.is_read is True
    assert client.post(reverse('notification-read', args=[theirs.id])).status_code == 404


def test_broadcast_by_role(patient, other_patient, doctor, admin_user, client_for):
    client = client_for(admin_user)
    r = client.post(reverse('notification-broadcast'), {'message': 'Clinic closed Friday', 'role': 'Patient'},
                    format='json')
    assert r.status_code == 200
    assert r.data['recipients'] == 2
    assert Notification.objects.filter(message='Clinic closed Friday').count() == 2

    r = client.post(reverse('notification-broadcast'), {'message': 'All hands'}, format='json')
    assert r.data['recipients'] == User.objects.count()

    r = client.post(reverse('notification-broadcast'), {'message': 'x', 'role': 'janitor'}, format='json')
    assert r.status_code == 400


def test_broadcast_is_admin_only(doctor, client_for):
    r = client_for(doctor.user).post(reverse('notification-broadcast'), {'message': 'hi'}, format='json')
    assert r.status_code == 403
