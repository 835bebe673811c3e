"""
Doctor endpoints.

The ``/api/doctor/*`` routes act on the signed-in doctor's own profile,
appointments, unavailable slots, messages and medical information
requests.  The ``/api/doctors/*`` routes are public lookups used by the
booking screen: search, profile, schedule and booked times for a day.
"""
from __future__ import annotations

from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_date
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from ..models import (
    Appointment,
    DoctorProfile,
    DoctorUnavailableSlot,
    MedicalInfoRequest,
    PatientProfile,
)
from ..permissions import IsDoctor
from ..serializers.appointments import RescheduleSerializer
from ..serializers.doctors import (
    DoctorMessageSerializer,
    DoctorProfileSerializer,
    InfoRequestSerializer,
    ReportQuerySerializer,
    UnavailableSlotSerializer,
)
from ..services import appointments as appt_svc
from ..services import messaging, reports
from ..services.audit import log_action
from .common import (
    appointment_dict,
    doctor_dict,
    fail,
    doctor_of,
    info_request_dict,
    message_dict,
    slot_dict,
)


def _own_appointment(request, pk) -> Appointment:
    return get_object_or_404(
        Appointment.objects.select_related('doctor__user', 'patient__user'),
        pk=pk, doctor=doctor_of(request),
    )


# ---------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------
@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsDoctor])
def doctor_profile(request):
    doctor = doctor_of(request)
    if request.method == 'GET':
        return Response({'ok': True, 'data': doctor_dict(doctor)})

    s = DoctorProfileSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    user = doctor.user
    if 'fullName' in vd:
        user.full_name = vd['fullName'].strip()
    if 'contactInfo' in vd:
        user.contact_info = vd['contactInfo'].strip()
    user.save(update_fields=['full_name', 'contact_info'])
    for field, key in (('specialization', 'specialization'), ('location', 'location'), ('schedule', 'schedule')):
        if key in vd:
            setattr(doctor, field, vd[key])
    doctor.save()
    return Response({'ok': True, 'data': doctor_dict(doctor)})


# ---------------------------------------------------------------------
# Appointments
# ---------------------------------------------------------------------
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctor])
def doctor_appointments(request):
    doctor = doctor_of(request)
    qs = Appointment.objects.filter(doctor=doctor) \
        .select_related('patient__user', 'doctor__user', 'feedback').order_by('appointment_datetime')
    data = []
    for a in qs:
        row = appointment_dict(a, patient_email=True)
        fb = getattr(a, 'feedback', None)
        row['feedback'] = {'rating': fb.rating, 'comments': fb.comments} if fb else None
        data.append(row)
    return Response({'ok': True, 'data': data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctor])
def doctor_cancel_appointment(request, pk: int):
    appt = _own_appointment(request, pk)
    try:
        appt_svc.cancel_by_doctor(appt)
    except ValueError as e:
        return fail(e)
    return Response({'ok': True, 'message': 'Appointment cancelled and patient notified.'})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctor])
def doctor_complete_appointment(request, pk: int):
    appt = _own_appointment(request, pk)
    try:
        appt_svc.complete(appt)
    except ValueError as e:
        return fail(e)
    return Response({'ok': True, 'message': 'Appointment marked as completed.'})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctor])
def doctor_reschedule_appointment(request, pk: int):
    s = RescheduleSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = _own_appointment(request, pk)
    try:
        appt_svc.reschedule_by_doctor(appt, s.validated_data['newDateTime'])
    except ValueError as e:
        return fail(e)
    return Response({'ok': True, 'message': 'Appointment rescheduled and patient notified.',
                     'data': appointment_dict(appt)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctor])
def doctor_mark_scheduled(request, pk: int):
    appt = _own_appointment(request, pk)
    try:
        appt_svc.mark_scheduled(appt)
    except ValueError as e:
        return fail(e)
    return Response({'ok': True, 'message': 'Appointment marked as scheduled.'})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctor])
def doctor_report(request):
    """CSV of the doctor's appointments between two dates (inclusive)."""
    s = ReportQuerySerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    if vd['format'].lower() not in reports.SUPPORTED_FORMATS:
        return fail('Only csv reports are supported.')
    doctor = doctor_of(request)
    log_action(user=request.user, action='DoctorReport', object_type='doctor', object_id=doctor.id,
               detail={'from': vd['startDate'].isoformat(), 'to': vd['endDate'].isoformat()})
    return reports.doctor_report(doctor, vd['startDate'], vd['endDate'])


# ---------------------------------------------------------------------
# Patients seen by this doctor
# ---------------------------------------------------------------------
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctor])
def doctor_patients(request):
    doctor = doctor_of(request)
    patients = PatientProfile.objects.filter(
        appointments__doctor=doctor, appointments__status=Appointment.STATUS_COMPLETED
    ).select_related('user').distinct().order_by('id')
    data = [{'id': p.id, 'email': p.user.email, 'fullName': p.user.full_name} for p in patients]
    return Response({'ok': True, 'data': data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctor])
def doctor_patient_appointments(request, patient_id: int):
    qs = Appointment.objects.filter(
        doctor=doctor_of(request), patient_id=patient_id, status=Appointment.STATUS_COMPLETED
    ).order_by('appointment_datetime')
    return Response({'ok': True, 'data': [appointment_dict(a) for a in qs]})


# ---------------------------------------------------------------------
# Unavailable slots
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsDoctor])
def unavailable_slots(request):
    doctor = doctor_of(request)
    if request.method == 'GET':
        return Response({'ok': True, 'data': [slot_dict(s) for s in doctor.unavailable_slots.all()]})

    s = UnavailableSlotSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    slot = DoctorUnavailableSlot.objects.create(
        doctor=doctor, date=vd['date'], start_time=vd['startTime'], end_time=vd['endTime']
    )
    return Response({'ok': True, 'message': 'Slot blocked.', 'data': slot_dict(slot)}, status=201)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsDoctor])
def delete_unavailable_slot(request, pk: int):
    slot = get_object_or_404(DoctorUnavailableSlot, pk=pk, doctor=doctor_of(request))
    slot.delete()
    return Response({'ok': True, 'message': 'Slot unblocked.'})


# ---------------------------------------------------------------------
# Messages & medical info requests
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctor])
def doctor_send_message(request):
    s = DoctorMessageSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    doctor = doctor_of(request)
    patient = PatientProfile.objects.select_related('user').filter(pk=vd['patientId']).first()
    if patient is None:
        return fail('Patient not found')
    try:
        msg = messaging.send_message(doctor, patient, from_doctor=True, content=vd['content'],
                                     appointment_id=vd.get('appointmentId'))
    except ValueError as e:
        return fail(e)
    return Response({'ok': True, 'data': message_dict(msg)}, status=201)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctor])
def doctor_messages(request, patient_id: int):
    doctor = doctor_of(request)
    patient = PatientProfile.objects.select_related('user').filter(pk=patient_id).first()
    if patient is None:
        return fail('Patient not found')
    msgs = messaging.conversation(doctor.user, patient.user, request.query_params.get('appointmentId'))
    return Response({'ok': True, 'data': [message_dict(m) for m in msgs]})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsDoctor])
def doctor_info_requests(request):
    doctor = doctor_of(request)
    if request.method == 'GET':
        qs = MedicalInfoRequest.objects.filter(doctor=doctor)
        patient_id = request.query_params.get('patientId')
        if patient_id:
            qs = qs.filter(patient_id=patient_id)
        return Response({'ok': True, 'data': [info_request_dict(r) for r in qs]})

    s = InfoRequestSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = PatientProfile.objects.select_related('user').filter(pk=s.validated_data['patientId']).first()
    if patient is None:
        return fail('Patient not found')
    try:
        req = messaging.create_info_request(doctor, patient, s.validated_data['requestText'])
    except ValueError as e:
        return fail(e)
    return Response({'ok': True, 'data': info_request_dict(req)}, status=201)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctor])
def doctor_cancel_info_request(request, pk: int):
    req = get_object_or_404(MedicalInfoRequest, pk=pk, doctor=doctor_of(request))
    try:
        messaging.cancel_info_request(req)
    except ValueError as e:
        return fail(e)
    return Response({'ok': True, 'data': info_request_dict(req)})


# ---------------------------------------------------------------------
# Public lookups
# ---------------------------------------------------------------------
@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def search_doctors(request):
    qs = DoctorProfile.objects.select_related('user').filter(user__is_active=True)
    name = (request.query_params.get('name') or '').strip()
    specialization = (request.query_params.get('specialization') or '').strip()
    location = (request.query_params.get('location') or '').strip()
    if name:
        qs = qs.filter(Q(user__email__icontains=name) | Q(user__full_name__icontains=name))
    if specialization:
        qs = qs.filter(specialization__icontains=specialization)
    if location:
        qs = qs.filter(location__icontains=location)
    return Response({'ok': True, 'data': [doctor_dict(d) for d in qs.order_by('id')]})


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def doctor_public_profile(request, pk: int):
    doctor = get_object_or_404(DoctorProfile.objects.select_related('user'), pk=pk)
    return Response({'ok': True, 'data': doctor_dict(doctor)})


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def doctor_public_schedule(request, pk: int):
    doctor = get_object_or_404(DoctorProfile, pk=pk)
    return Response({'ok': True, 'id': doctor.id, 'schedule': doctor.schedule or {}})


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def doctor_booked_times(request, pk: int):
    """Non-cancelled appointment times of a doctor on ``?date=YYYY-MM-DD``."""
    day = parse_date(request.query_params.get('date') or '')
    if day is None:
        return fail('date is required (YYYY-MM-DD).')
    times = Appointment.objects.filter(doctor_id=pk, appointment_datetime__date=day) \
        .exclude(status=Appointment.STATUS_CANCELLED) \
        .order_by('appointment_datetime').values_list('appointment_datetime', flat=True)
    return Response({'ok': True, 'data': [t.isoformat() for t in times]})

