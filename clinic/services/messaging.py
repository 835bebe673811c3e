"""
Doctor/patient messaging and medical information requests.
"""
from typing import Optional

import bleach
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from clinic.models import Appointment, MedicalInfoRequest, Message
from clinic.services.notifications import notify_user


def _clean(text: Optional[str]) -> str:
    return bleach.clean((text or '').strip(), strip=True)


def _appointment_between(appointment_id, doctor, patient) -> Optional[Appointment]:
    if not appointment_id:
        return None
    appt = Appointment.objects.filter(pk=appointment_id, doctor=doctor, patient=patient).first()
    if appt is None:
        raise ValueError('Appointment not found for this conversation.')
    return appt


def send_message(doctor, patient, *, from_doctor: bool, content: str, appointment_id=None) -> Message:
    content = _clean(content)
    if not content:
        raise ValueError('Message content cannot be empty.')
    appointment = _appointment_between(appointment_id, doctor, patient)
    sender, receiver = (doctor.user, patient.user) if from_doctor else (patient.user, doctor.user)
    return Message.objects.create(sender=sender, receiver=receiver, appointment=appointment, content=content)


@transaction.atomic
def conversation(me, other, appointment_id=None):
    """Messages between two users, oldest first.  Incoming ones are marked read."""
    qs = Message.objects.filter(
        Q(sender=me, receiver=other) | Q(sender=other, receiver=me)
    ).select_related('sender', 'receiver')
    if appointment_id:
        qs = qs.filter(appointment_id=appointment_id)
    messages = list(qs.order_by('sent_at', 'id'))
    unread = [m.id for m in messages if m.receiver_id == me.id and not m.is_read]
    if unread:
        Message.objects.filter(id__in=unread).update(is_read=True)
    return messages


def create_info_request(doctor, patient, request_text: str) -> MedicalInfoRequest:
    request_text = _clean(request_text)
    if not request_text:
        raise ValueError('Request text is required.')
    req = MedicalInfoRequest.objects.create(doctor=doctor, patient=patient, request_text=request_text)
    notify_user(patient.user, f'Dr. {doctor.user.display_name()} requested medical information: {request_text}')
    return req


def respond_info_request(req: MedicalInfoRequest, response_text: str, attachment_url: Optional[str] = None) -> MedicalInfoRequest:
    if req.status != MedicalInfoRequest.STATUS_PENDING:
        raise ValueError('Already responded or cancelled.')
    response_text = _clean(response_text)
    if not response_text:
        raise ValueError('Response text is required.')
    req.response_text = response_text
    req.attachment_url = attachment_url or None
    req.status = MedicalInfoRequest.STATUS_RESPONDED
    req.responded_at = timezone.now()
    req.save(update_fields=['response_text', 'attachment_url', 'status', 'responded_at'])
    notify_user(req.doctor.user, f'Patient {req.patient_id} responded to your medical information request.')
    return req


def cancel_info_request(req: MedicalInfoRequest) -> MedicalInfoRequest:
    if req.status != MedicalInfoRequest.STATUS_PENDING:
        raise ValueError('Already responded or cancelled.')
    req.status = MedicalInfoRequest.STATUS_CANCELLED
    req.save(update_fields=['status'])
    return req
