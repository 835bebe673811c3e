from typing import Optional

import bleach
from django.db import IntegrityError, transaction

from clinic.models import Appointment, Feedback, PatientProfile
from clinic.services.notifications import notify_user


@transaction.atomic
def update_profile(profile: PatientProfile, *, full_name: Optional[str] = None,
                   contact_info: Optional[str] = None, medical_history: Optional[str] = None) -> PatientProfile:
    """Name and contact details change at once; history edits wait for review."""
    user = profile.user
    if full_name is not None:
        user.full_name = full_name.strip()
    if contact_info is not None:
        user.contact_info = contact_info.strip()
    user.save(update_fields=['full_name', 'contact_info'])

    if medical_history is not None:
        medical_history = bleach.clean(medical_history.strip(), strip=True)
        if medical_history != profile.medical_history:
            profile.pending_medical_history = medical_history
            profile.medical_history_approval_status = PatientProfile.APPROVAL_PENDING
            profile.save(update_fields=['pending_medical_history', 'medical_history_approval_status'])
    return profile


def _require_pending(profile: PatientProfile) -> None:
    if profile.pending_medical_history is None or \
            profile.medical_history_approval_status != PatientProfile.APPROVAL_PENDING:
        raise ValueError('No pending change.')


def approve_history(profile: PatientProfile) -> PatientProfile:
    _require_pending(profile)
    profile.medical_history = profile.pending_medical_history
    profile.pending_medical_history = None
    profile.medical_history_approval_status = PatientProfile.APPROVAL_APPROVED
    profile.save(update_fields=['medical_history', 'pending_medical_history', 'medical_history_approval_status'])
    notify_user(profile.user, 'Your medical history update was approved.')
    return profile


def reject_history(profile: PatientProfile, reason: str = '') -> PatientProfile:
    _require_pending(profile)
    profile.pending_medical_history = None
    profile.medical_history_approval_status = PatientProfile.APPROVAL_REJECTED
    profile.save(update_fields=['pending_medical_history', 'medical_history_approval_status'])
    reason = bleach.clean((reason or '').strip(), strip=True)
    notify_user(profile.user, 'Your medical history update was rejected.' + (f' Reason: {reason}' if reason else ''))
    return profile


def submit_feedback(patient: PatientProfile, appointment_id, rating: int, comments: str = '') -> Feedback:
    appointment = Appointment.objects.filter(
        pk=appointment_id, patient=patient, status=Appointment.STATUS_COMPLETED
    ).first()
    if appointment is None:
        raise ValueError('Invalid appointment or not completed.')
    if Feedback.objects.filter(appointment=appointment).exists():
        raise ValueError('Feedback already submitted.')
    try:
        with transaction.atomic():
            return Feedback.objects.create(
                appointment=appointment,
                patient=patient,
                rating=rating,
                comments=bleach.clean((comments or '').strip(), strip=True),
            )
    except IntegrityError:
        raise ValueError('Feedback already submitted.')
