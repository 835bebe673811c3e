from datetime import timedelta

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from clinic.models import Appointment, Prescription
from clinic.services import accounts


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttle counters live in the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def admin_user(db):
    return accounts.create_account('admin@test.com', 'Admin@123', 'admin', full_name='Ada Admin')


@pytest.fixture
def doctor(db):
    user = accounts.create_account('doc@test.com', 'Doctor@123', 'doctor', full_name='Gregory House',
                                   specialization='Cardiology')
    return user.doctor_profile


@pytest.fixture
def other_doctor(db):
    user = accounts.create_account('doc2@test.com', 'Doctor@123', 'doctor', full_name='Lisa Cuddy',
                                   specialization='Dermatology')
    return user.doctor_profile


@pytest.fixture
def patient(db):
    user = accounts.create_account('pat@test.com', 'Patient@123', 'patient', full_name='John Doe')
    return user.patient_profile


@pytest.fixture
def other_patient(db):
    user = accounts.create_account('pat2@test.com', 'Patient@123', 'patient', full_name='Jane Roe')
    return user.patient_profile


@pytest.fixture
def client_for():
    def make(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return make


@pytest.fixture
def at():
    """Whole-hour datetime ``days`` from now."""
    def make(days=5, hour=10):
        return (timezone.now() + timedelta(days=days)).replace(hour=hour, minute=0, second=0, microsecond=0)
    return make


@pytest.fixture
def make_appointment(at):
    def make(patient, doctor, when=None, status=Appointment.STATUS_PENDING, **extra):
        return Appointment.objects.create(
            patient=patient, doctor=doctor, appointment_datetime=when or at(), status=status, **extra
        )
    return make


@pytest.fixture
def make_prescription():
    def make(appointment, medication='Aspirin', **extra):
        extra.setdefault('dosage', '100mg')
        return Prescription.objects.create(
            appointment=appointment, doctor=appointment.doctor, patient=appointment.patient,
            medication_name=medication, **extra
        )
    return make
