"""
Database models for the appointment system.

Users carry a single role (patient, doctor or admin) and a matching
profile row.  Appointments, prescriptions, feedback, messages and
medical information requests hang off those profiles; notifications can
target a user directly or be attached to an appointment or prescription.
"""
from __future__ import annotations

import secrets
import uuid

from django.contrib.auth.models import AbstractUser, UserManager as DjangoUserManager
from django.db import models
from django.db.models import Q


def _reference_number() -> str:
    return uuid.uuid4().hex[:8]


def _secure_code() -> str:
    return secrets.token_hex(4)


class UserManager(DjangoUserManager):
    """Email is the login identifier; ``username`` mirrors it."""

    def create_user(self, username=None, email=None, password=None, **extra_fields):
        email = self.normalize_email(email or username)
        return super().create_user(email, email=email, password=password, **extra_fields)

    def create_superuser(self, username=None, email=None, password=None, **extra_fields):
        email = self.normalize_email(email or username)
        extra_fields.setdefault('role', User.ROLE_ADMIN)
        return super().create_superuser(email, email=email, password=password, **extra_fields)


class User(AbstractUser):
    """Custom user model with one role per account."""
    ROLE_PATIENT = 'patient'
    ROLE_DOCTOR = 'doctor'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = [
        (ROLE_PATIENT, 'Patient'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_ADMIN, 'Admin'),
    ]
    email = models.EmailField(unique=True)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_PATIENT, db_index=True)
    full_name = models.CharField(max_length=255, blank=True)
    contact_info = models.CharField(max_length=255, blank=True)

    objects = UserManager()

    def display_name(self) -> str:
        return self.full_name or self.email

    def __str__(self) -> str:
        return f"{self.email} ({self.role})"


class PatientProfile(models.Model):
    APPROVAL_PENDING = 'Pending'
    APPROVAL_APPROVED = 'Approved'
    APPROVAL_REJECTED = 'Rejected'
    APPROVAL_CHOICES = [
        (APPROVAL_PENDING, 'Pending'),
        (APPROVAL_APPROVED, 'Approved'),
        (APPROVAL_REJECTED, 'Rejected'),
    ]
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='patient_profile')
    medical_history = models.TextField(blank=True)
    pending_medical_history = models.TextField(null=True, blank=True)
    medical_history_approval_status = models.CharField(
        max_length=10, choices=APPROVAL_CHOICES, null=True, blank=True
    )

    def __str__(self) -> str:
        return f"Patient {self.user.email}"


class DoctorProfile(models.Model):
    """A doctor and the weekly schedule used to validate bookings.

    ``schedule`` holds ``daysOff`` (weekday names), ``vacations`` and
    ``holidays`` (``YYYY-MM-DD``) and ``workingHoursStart`` /
    ``workingHoursEnd`` (``HH:MM``).
    """
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='doctor_profile')
    specialization = models.CharField(max_length=100, default='General', db_index=True)
    location = models.CharField(max_length=255, blank=True)
    schedule = models.JSONField(default=dict, blank=True)

    def __str__(self) -> str:
        return f"Dr. {self.user.display_name()} ({self.specialization})"


class AdminProfile(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='admin_profile')

    def __str__(self) -> str:
        return f"Admin {self.user.email}"


class Appointment(models.Model):
    STATUS_PENDING = 'Pending'
    STATUS_APPROVED = 'Approved'
    STATUS_REJECTED = 'Rejected'
    STATUS_COMPLETED = 'Completed'
    STATUS_CANCELLED = 'Cancelled'
    STATUS_SCHEDULED = 'Scheduled'
    STATUS_CONFIRMED = 'Confirmed'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_SCHEDULED, 'Scheduled'),
        (STATUS_CONFIRMED, 'Confirmed'),
    ]

    patient = models.ForeignKey(PatientProfile, on_delete=models.CASCADE, related_name='appointments')
    doctor = models.ForeignKey(DoctorProfile, on_delete=models.CASCADE, related_name='appointments')
    appointment_datetime = models.DateTimeField(db_index=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    reference_number = models.CharField(max_length=8, default=_reference_number, db_index=True)
    reminder_sent = models.BooleanField(default=False)
    is_telehealth = models.BooleanField(default=False)
    video_link = models.CharField(max_length=255, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['appointment_datetime']
        constraints = [
            # a doctor's slot is taken by at most one live appointment
            models.UniqueConstraint(
                fields=['doctor', 'appointment_datetime'],
                condition=~Q(status='Cancelled'),
                name='unique_active_doctor_slot',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.reference_number} {self.appointment_datetime:%Y-%m-%d %H:%M} ({self.status})"


class DoctorUnavailableSlot(models.Model):
    doctor = models.ForeignKey(DoctorProfile, on_delete=models.CASCADE, related_name='unavailable_slots')
    date = models.DateField(db_index=True)
    start_time = models.CharField(max_length=5)
    end_time = models.CharField(max_length=5)

    class Meta:
        ordering = ['date', 'start_time']

    def __str__(self) -> str:
        return f"{self.doctor_id} {self.date} {self.start_time}-{self.end_time}"


class Prescription(models.Model):
    STATUS_ACTIVE = 'Active'
    STATUS_EXPIRED = 'Expired'
    STATUS_COMPLETED = 'Completed'
    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_EXPIRED, 'Expired'),
        (STATUS_COMPLETED, 'Completed'),
    ]
    RENEWAL_PENDING = 'Pending'
    RENEWAL_APPROVED = 'Approved'
    RENEWAL_REJECTED = 'Rejected'
    RENEWAL_CHOICES = [
        (RENEWAL_PENDING, 'Pending'),
        (RENEWAL_APPROVED, 'Approved'),
        (RENEWAL_REJECTED, 'Rejected'),
    ]

    appointment = models.ForeignKey(Appointment, on_delete=models.CASCADE, related_name='prescriptions')
    doctor = models.ForeignKey(DoctorProfile, on_delete=models.CASCADE, related_name='prescriptions')
    patient = models.ForeignKey(PatientProfile, on_delete=models.CASCADE, related_name='prescriptions')
    medication_name = models.CharField(max_length=200)
    dosage = models.CharField(max_length=100)
    instructions = models.TextField(blank=True)
    issue_date = models.DateTimeField(auto_now_add=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    is_renewable = models.BooleanField(default=False)
    refills_remaining = models.PositiveIntegerField(default=0)
    notes = models.TextField(null=True, blank=True)
    renewal_requested = models.BooleanField(default=False)
    renewal_status = models.CharField(max_length=10, choices=RENEWAL_CHOICES, null=True, blank=True)
    renewal_reason = models.TextField(null=True, blank=True)
    expiry_date = models.DateTimeField(null=True, blank=True, db_index=True)
    secure_code = models.CharField(max_length=8, default=_secure_code)
    pharmacy_email = models.EmailField(null=True, blank=True)
    sent_to_pharmacy = models.BooleanField(default=False)

    class Meta:
        ordering = ['-issue_date']

    def __str__(self) -> str:
        return f"{self.medication_name} {self.dosage} ({self.status})"


class Notification(models.Model):
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.CASCADE, related_name='notifications'
    )
    prescription = models.ForeignKey(
        Prescription, null=True, blank=True, on_delete=models.CASCADE, related_name='notifications'
    )
    user = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.CASCADE, related_name='notifications'
    )
    message = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    is_read = models.BooleanField(default=False)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self) -> str:
        return self.message[:50]


class Message(models.Model):
    sender = models.ForeignKey(User, on_delete=models.CASCADE, related_name='sent_messages')
    receiver = models.ForeignKey(User, on_delete=models.CASCADE, related_name='received_messages')
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='messages'
    )
    content = models.TextField()
    sent_at = models.DateTimeField(auto_now_add=True, db_index=True)
    is_read = models.BooleanField(default=False)

    class Meta:
        ordering = ['sent_at', 'id']


class Feedback(models.Model):
    appointment = models.OneToOneField(Appointment, on_delete=models.CASCADE, related_name='feedback')
    patient = models.ForeignKey(PatientProfile, on_delete=models.CASCADE, related_name='feedback')
    rating = models.PositiveSmallIntegerField()
    comments = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']


class MedicalInfoRequest(models.Model):
    STATUS_PENDING = 'Pending'
    STATUS_RESPONDED = 'Responded'
    STATUS_CANCELLED = 'Cancelled'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_RESPONDED, 'Responded'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    doctor = models.ForeignKey(DoctorProfile, on_delete=models.CASCADE, related_name='info_requests')
    patient = models.ForeignKey(PatientProfile, on_delete=models.CASCADE, related_name='info_requests')
    request_text = models.TextField()
    response_text = models.TextField(null=True, blank=True)
    attachment_url = models.URLField(null=True, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    responded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at', '-id']


class SystemLog(models.Model):
    """Audit trail of logins, exports and administrative actions."""
    user = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='system_logs')
    action = models.CharField(max_length=64, db_index=True)
    object_type = models.CharField(max_length=64, null=True, blank=True)
    object_id = models.CharField(max_length=64, null=True, blank=True)
    detail = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-timestamp', '-id']

    def __str__(self) -> str:
        return f"{self.timestamp:%Y-%m-%d %H:%M:%S} {self.action}"
