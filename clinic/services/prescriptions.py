"""
Prescription issuing, renewal workflow and pharmacy dispatch.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

import bleach
from django.db import transaction
from django.utils import timezone

from clinic.models import Appointment, DoctorProfile, PatientProfile, Prescription
from clinic.services.mailer import send_email
from clinic.services.notifications import notify_prescription, notify_user

logger = logging.getLogger(__name__)

# Known drug pairs; lookups are case-insensitive.
INTERACTIONS = {
    'aspirin': {'warfarin', 'ibuprofen'},
    'warfarin': {'aspirin', 'amiodarone'},
    'ibuprofen': {'aspirin'},
    'amiodarone': {'warfarin'},
}


def interaction_warnings(medication: str, active: Iterable[str]) -> List[str]:
    """Return ``"X interacts with Y"`` for each hit in either direction."""
    warnings = []
    new_key = medication.strip().lower()
    for other in active:
        other_key = other.strip().lower()
        if other_key in INTERACTIONS.get(new_key, ()):
            warnings.append(f'{medication} interacts with {other}')
        if new_key in INTERACTIONS.get(other_key, ()):
            warnings.append(f'{other} interacts with {medication}')
    return warnings


@transaction.atomic
def issue(doctor: DoctorProfile, patient: PatientProfile, appointment: Appointment, *,
          medication_name: str, dosage: str, instructions: str = '', is_renewable: bool = False,
          refills_remaining: int = 0, notes: Optional[str] = None, expiry_date=None) -> Tuple[Prescription, List[str]]:
    if appointment.doctor_id != doctor.id or appointment.patient_id != patient.id:
        raise PermissionError('Appointment does not belong to this doctor and patient.')

    active = Prescription.objects.filter(patient=patient, status=Prescription.STATUS_ACTIVE) \
        .exclude(appointment=appointment).values_list('medication_name', flat=True)
    warnings = interaction_warnings(medication_name, active)

    prescription = Prescription.objects.create(
        appointment=appointment,
        doctor=doctor,
        patient=patient,
        medication_name=medication_name.strip(),
        dosage=dosage.strip(),
        instructions=bleach.clean(instructions or '', strip=True),
        is_renewable=is_renewable,
        refills_remaining=refills_remaining,
        notes=bleach.clean(notes, strip=True) if notes else notes,
        expiry_date=expiry_date,
    )
    notify_prescription(
        prescription,
        f'Prescription issued for patient {patient.id} by doctor {doctor.id} for appointment {appointment.id}',
    )
    if warnings:
        logger.info('Prescription %s issued with interaction warnings: %s', prescription.id, warnings)
    return prescription, warnings


def request_renewal(prescription: Prescription) -> Prescription:
    if not prescription.is_renewable or prescription.status != Prescription.STATUS_ACTIVE:
        raise ValueError('Prescription is not renewable.')
    if prescription.renewal_requested or prescription.renewal_status == Prescription.RENEWAL_PENDING:
        raise ValueError('Renewal already requested.')
    prescription.renewal_requested = True
    prescription.renewal_status = Prescription.RENEWAL_PENDING
    prescription.renewal_reason = None
    prescription.save(update_fields=['renewal_requested', 'renewal_status', 'renewal_reason'])
    notify_user(
        prescription.doctor.user,
        f'Renewal requested for {prescription.medication_name} by patient {prescription.patient_id}.',
        prescription=prescription,
    )
    return prescription


def _require_pending(prescription: Prescription) -> None:
    if not prescription.renewal_requested or prescription.renewal_status != Prescription.RENEWAL_PENDING:
        raise ValueError('No pending renewal request.')


def approve_renewal(prescription: Prescription) -> Prescription:
    _require_pending(prescription)
    prescription.renewal_status = Prescription.RENEWAL_APPROVED
    prescription.renewal_requested = False
    if prescription.refills_remaining > 0:
        prescription.refills_remaining -= 1
    prescription.save(update_fields=['renewal_status', 'renewal_requested', 'refills_remaining'])
    notify_user(prescription.patient.user, 'Your prescription renewal was approved.', prescription=prescription)
    return prescription


def reject_renewal(prescription: Prescription, reason: str) -> Prescription:
    _require_pending(prescription)
    reason = bleach.clean((reason or '').strip(), strip=True)
    prescription.renewal_status = Prescription.RENEWAL_REJECTED
    prescription.renewal_requested = False
    prescription.renewal_reason = reason
    prescription.save(update_fields=['renewal_status', 'renewal_requested', 'renewal_reason'])
    notify_user(
        prescription.patient.user,
        f'Your prescription renewal was rejected. Reason: {reason}',
        prescription=prescription,
    )
    return prescription


def send_to_pharmacy(prescription: Prescription, pharmacy_email: str) -> Prescription:
    """Email the prescription.  SMTP errors propagate and nothing is recorded."""
    if prescription.sent_to_pharmacy:
        raise ValueError('Already sent to pharmacy.')
    if not (pharmacy_email or '').strip():
        raise ValueError('Pharmacy email required.')
    patient_user = prescription.patient.user
    patient_name = patient_user.display_name()
    issued = timezone.localtime(prescription.issue_date).strftime('%Y-%m-%d %H:%M')
    body = (
        'Prescription Details:\n\n'
        f'Medication: {prescription.medication_name}\n'
        f'Dosage: {prescription.dosage}\n'
        f'Instructions: {prescription.instructions}\n'
        f'Notes: {prescription.notes or ""}\n'
        f'Doctor: {prescription.doctor.user.email}\n'
        f'Patient: {patient_name}\n'
        f'Issued: {issued}\n'
        f'Secure Code: {prescription.secure_code}'
    )
    send_email(pharmacy_email.strip(), f'Prescription for {patient_name}', body)
    prescription.pharmacy_email = pharmacy_email.strip()
    prescription.sent_to_pharmacy = True
    prescription.save(update_fields=['pharmacy_email', 'sent_to_pharmacy'])
    return prescription
