"""
Appointment endpoints used by patients (booking and changes) and by any
signed-in user (listing and filtering their own appointments).
"""
from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Appointment, User
from ..permissions import IsPatient
from ..serializers.appointments import (
    AppointmentFilterSerializer,
    BookAppointmentSerializer,
    RescheduleSerializer,
)
from ..services import appointments as svc
from .common import appointment_dict, fail, patient_of


def _own_appointment(request, pk) -> Appointment:
    patient = patient_of(request)
    return get_object_or_404(Appointment.objects.select_related('doctor__user', 'patient__user'),
                             pk=pk, patient=patient)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPatient])
def book_appointment(request):
    s = BookAppointmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    try:
        appt = svc.book(patient_of(request), vd['doctorId'], vd['appointmentDateTime'], vd['isTelehealth'])
    except ValueError as e:
        return fail(e)
    return Response({
        'ok': True,
        'id': appt.id,
        'referenceNumber': appt.reference_number,
        'isTelehealth': appt.is_telehealth,
        'videoLink': appt.video_link,
    }, status=201)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_appointments(request):
    user: User = request.user
    qs = Appointment.objects.select_related('doctor__user', 'patient__user').order_by('appointment_datetime')
    if user.role == User.ROLE_PATIENT:
        data = [appointment_dict(a, doctor_email=True) for a in qs.filter(patient__user=user)]
    elif user.role == User.ROLE_DOCTOR:
        data = [appointment_dict(a, patient_email=True) for a in qs.filter(doctor__user=user)]
    else:
        return fail('Only patients and doctors have appointments.', status=403)
    return Response({'ok': True, 'data': data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPatient])
def cancel_appointment(request, pk: int):
    appt = _own_appointment(request, pk)
    try:
        svc.cancel_by_patient(appt)
    except ValueError as e:
        return fail(e)
    return Response({'ok': True, 'message': 'Appointment cancelled.'})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPatient])
def reschedule_appointment(request, pk: int):
    s = RescheduleSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = _own_appointment(request, pk)
    try:
        svc.reschedule_by_patient(appt, s.validated_data['newDateTime'])
    except ValueError as e:
        return fail(e)
    return Response({'ok': True, 'data': appointment_dict(appt)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPatient])
def confirm_appointment(request, pk: int):
    appt = _own_appointment(request, pk)
    try:
        svc.confirm_by_patient(appt)
    except ValueError as e:
        return fail(e)
    return Response({'ok': True, 'message': 'Appointment confirmed.'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def filter_appointments(request):
    """Filter by ``date``, ``doctorId`` and ``status`` within the caller's own appointments."""
    s = AppointmentFilterSerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    user: User = request.user
    qs = Appointment.objects.select_related('doctor__user', 'patient__user').order_by('appointment_datetime')
    if user.role == User.ROLE_PATIENT:
        qs = qs.filter(patient__user=user)
    elif user.role == User.ROLE_DOCTOR:
        qs = qs.filter(doctor__user=user)
    if vd.get('date'):
        qs = qs.filter(appointment_datetime__date=vd['date'])
    if vd.get('doctorId'):
        qs = qs.filter(doctor_id=vd['doctorId'])
    if vd.get('status'):
        qs = qs.filter(status=vd['status'])
    return Response({'ok': True, 'data': [appointment_dict(a, doctor_email=True, patient_email=True) for a in qs]})
