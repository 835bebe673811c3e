"""
Management command to seed the database with demo accounts.

Idempotent: existing accounts are left alone, so the command can run on
every deploy.
"""
from django.core.management.base import BaseCommand
from django.db import transaction

from clinic.models import DoctorProfile, Message, PatientProfile, User
from clinic.services.accounts import ensure_profile

SPECIALIZATIONS = ["Cardiology", "Dermatology", "Neurology", "Pediatrics", "Orthopedics"]
DOCTOR_COUNT = 5


class Command(BaseCommand):
    help = "Seed an admin, five doctors, patients and a sample conversation"

    def add_arguments(self, parser):
        parser.add_argument("--patients", type=int, default=50, help="Number of patients to create.")

    @transaction.atomic
    def handle(self, *args, **options):
        self.create_admin()
        doctors = self.create_doctors()
        patients = self.create_patients(options["patients"])
        if doctors and patients:
            self.create_sample_messages(doctors[0], patients[0])
        self.stdout.write(self.style.SUCCESS("Seed data ready."))

    def _account(self, email, password, role, full_name):
        user = User.objects.filter(email__iexact=email).first()
        created = user is None
        if created:
            user = User.objects.create_user(
                email=email, password=password, role=role, full_name=full_name,
                is_staff=(role == User.ROLE_ADMIN),
            )
        return user, created

    def create_admin(self):
        user, created = self._account("admin@hospital.com", "Admin@123", User.ROLE_ADMIN, "System Admin")
        ensure_profile(user)
        if created:
            self.stdout.write("created admin@hospital.com")

    def create_doctors(self):
        doctors = []
        for n in range(1, DOCTOR_COUNT + 1):
            specialization = SPECIALIZATIONS[(n - 1) % len(SPECIALIZATIONS)]
            user, created = self._account(f"doctor{n}@hospital.com", "Doctor@123", User.ROLE_DOCTOR, f"Doctor {n}")
            doctor = ensure_profile(user, specialization)
            if created:
                self.stdout.write(f"created doctor{n}@hospital.com ({specialization})")
            doctors.append(doctor)
        return doctors

    def create_patients(self, count):
        patients = []
        for n in range(1, count + 1):
            user, _ = self._account(f"patient{n}@example.com", "Test@123", User.ROLE_PATIENT, f"Patient {n}")
            patients.append(ensure_profile(user))
        self.stdout.write(f"{len(patients)} patients ready")
        return patients

    def create_sample_messages(self, doctor: DoctorProfile, patient: PatientProfile):
        if Message.objects.filter(sender=doctor.user, receiver=patient.user).exists():
            return
        Message.objects.create(
            sender=doctor.user, receiver=patient.user,
            content="Hello, please remember to bring your previous test results.",
        )
        Message.objects.create(
            sender=patient.user, receiver=doctor.user,
            content="Thank you, doctor. I will bring them.",
        )
