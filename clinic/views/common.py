"""
Response builders and request helpers shared by the view modules.
"""
from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework.response import Response

from ..models import (
    Appointment,
    DoctorProfile,
    DoctorUnavailableSlot,
    Feedback,
    MedicalInfoRequest,
    Message,
    Notification,
    PatientProfile,
    Prescription,
    User,
)


def _iso(dt):
    return dt.isoformat() if dt else None


def fail(detail, status: int = 400) -> Response:
    return Response({'ok': False, 'detail': str(detail)}, status=status)


def patient_of(request) -> PatientProfile:
    return get_object_or_404(PatientProfile.objects.select_related('user'), user=request.user)


def doctor_of(request) -> DoctorProfile:
    return get_object_or_404(DoctorProfile.objects.select_related('user'), user=request.user)


def user_dict(u: User) -> dict:
    return {
        'id': u.id,
        'email': u.email,
        'fullName': u.full_name,
        'contactInfo': u.contact_info,
        'role': u.role,
        'isActive': u.is_active,
    }


def doctor_dict(d: DoctorProfile) -> dict:
    return {
        'id': d.id,
        'userId': d.user_id,
        'email': d.user.email,
        'fullName': d.user.full_name,
        'specialization': d.specialization,
        'location': d.location,
        'schedule': d.schedule or {},
    }


def patient_dict(p: PatientProfile) -> dict:
    return {
        'id': p.id,
        'userId': p.user_id,
        'email': p.user.email,
        'fullName': p.user.full_name,
        'contactInfo': p.user.contact_info,
        'medicalHistory': p.medical_history,
        'pendingMedicalHistory': p.pending_medical_history,
        'medicalHistoryApprovalStatus': p.medical_history_approval_status,
    }


def appointment_dict(a: Appointment, *, doctor_email: bool = False, patient_email: bool = False) -> dict:
    data = {
        'id': a.id,
        'appointmentDateTime': _iso(a.appointment_datetime),
        'status': a.status,
        'referenceNumber': a.reference_number,
        'doctorId': a.doctor_id,
        'patientId': a.patient_id,
        'isTelehealth': a.is_telehealth,
        'videoLink': a.video_link,
    }
    if doctor_email:
        data['doctorEmail'] = a.doctor.user.email
        data['doctorName'] = a.doctor.user.full_name
    if patient_email:
        data['patientEmail'] = a.patient.user.email
        data['patientName'] = a.patient.user.full_name
    return data


def prescription_dict(p: Prescription) -> dict:
    return {
        'id': p.id,
        'appointmentId': p.appointment_id,
        'medicationName': p.medication_name,
        'dosage': p.dosage,
        'instructions': p.instructions,
        'issueDate': _iso(p.issue_date),
        'status': p.status,
        'isRenewable': p.is_renewable,
        'refillsRemaining': p.refills_remaining,
        'notes': p.notes,
        'renewalRequested': p.renewal_requested,
        'renewalStatus': p.renewal_status,
        'renewalReason': p.renewal_reason,
        'expiryDate': _iso(p.expiry_date),
        'secureCode': p.secure_code,
        'pharmacyEmail': p.pharmacy_email,
        'sentToPharmacy': p.sent_to_pharmacy,
        'doctor': p.doctor.user.email,
        'patient': p.patient.user.email,
    }


def notification_dict(n: Notification) -> dict:
    return {
        'id': n.id,
        'message': n.message,
        'createdAt': _iso(n.created_at),
        'isRead': n.is_read,
        'appointmentId': n.appointment_id,
        'prescriptionId': n.prescription_id,
        'userId': n.user_id,
    }


def message_dict(m: Message) -> dict:
    return {
        'id': m.id,
        'senderId': m.sender_id,
        'senderEmail': m.sender.email,
        'receiverId': m.receiver_id,
        'receiverEmail': m.receiver.email,
        'appointmentId': m.appointment_id,
        'content': m.content,
        'sentAt': _iso(m.sent_at),
        'isRead': m.is_read,
    }


def feedback_dict(f: Feedback) -> dict:
    return {
        'id': f.id,
        'appointmentId': f.appointment_id,
        'patientId': f.patient_id,
        'rating': f.rating,
        'comments': f.comments,
        'createdAt': _iso(f.created_at),
    }


def info_request_dict(r: MedicalInfoRequest) -> dict:
    return {
        'id': r.id,
        'doctorId': r.doctor_id,
        'patientId': r.patient_id,
        'requestText': r.request_text,
        'responseText': r.response_text,
        'attachmentUrl': r.attachment_url,
        'status': r.status,
        'createdAt': _iso(r.created_at),
        'respondedAt': _iso(r.responded_at),
    }


def slot_dict(s: DoctorUnavailableSlot) -> dict:
    return {
        'id': s.id,
        'date': s.date.isoformat(),
        'startTime': s.start_time,
        'endTime': s.end_time,
    }
