"""
Patient endpoints: profile with reviewed medical history, appointment
list, messaging with doctors and answering medical information requests.
"""
from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Appointment, DoctorProfile, MedicalInfoRequest, PatientProfile
from ..permissions import IsDoctorOrAdmin, IsPatient
from ..serializers.patients import (
    InfoResponseSerializer,
    PatientMessageSerializer,
    PatientProfileSerializer,
    ReasonSerializer,
)
from ..services import messaging
from ..services import patients as svc
from ..services.audit import log_action
from .common import appointment_dict, fail, info_request_dict, message_dict, patient_dict, patient_of


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsPatient])
def patient_profile(request):
    patient = patient_of(request)
    if request.method == 'GET':
        return Response({'ok': True, 'data': patient_dict(patient)})

    s = PatientProfileSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    svc.update_profile(
        patient,
        full_name=vd.get('fullName'),
        contact_info=vd.get('contactInfo'),
        medical_history=vd.get('medicalHistory'),
    )
    return Response({'ok': True, 'data': patient_dict(patient)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorOrAdmin])
def approve_medical_history(request, patient_id: int):
    patient = get_object_or_404(PatientProfile.objects.select_related('user'), pk=patient_id)
    try:
        svc.approve_history(patient)
    except ValueError as e:
        return fail(e)
    log_action(user=request.user, action='approve_medical_history', object_type='patient', object_id=patient.id)
    return Response({'ok': True, 'message': 'Medical history approved.'})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorOrAdmin])
def reject_medical_history(request, patient_id: int):
    s = ReasonSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = get_object_or_404(PatientProfile.objects.select_related('user'), pk=patient_id)
    try:
        svc.reject_history(patient, s.validated_data['reason'])
    except ValueError as e:
        return fail(e)
    log_action(user=request.user, action='reject_medical_history', object_type='patient', object_id=patient.id,
               detail={'reason': s.validated_data['reason']})
    return Response({'ok': True, 'message': 'Medical history rejected.'})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatient])
def patient_appointments(request):
    qs = Appointment.objects.filter(patient=patient_of(request)) \
        .select_related('doctor__user').order_by('appointment_datetime')
    return Response({'ok': True, 'data': [appointment_dict(a, doctor_email=True) for a in qs]})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPatient])
def patient_send_message(request):
    s = PatientMessageSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    doctor = DoctorProfile.objects.select_related('user').filter(pk=vd['doctorId']).first()
    if doctor is None:
        return fail('Doctor not found')
    try:
        msg = messaging.send_message(doctor, patient_of(request), from_doctor=False, content=vd['content'],
                                     appointment_id=vd.get('appointmentId'))
    except ValueError as e:
        return fail(e)
    return Response({'ok': True, 'data': message_dict(msg)}, status=201)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatient])
def patient_messages(request, doctor_id: int):
    doctor = DoctorProfile.objects.select_related('user').filter(pk=doctor_id).first()
    if doctor is None:
        return fail('Doctor not found')
    msgs = messaging.conversation(request.user, doctor.user, request.query_params.get('appointmentId'))
    return Response({'ok': True, 'data': [message_dict(m) for m in msgs]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatient])
def patient_info_requests(request):
    qs = MedicalInfoRequest.objects.filter(patient=patient_of(request))
    return Response({'ok': True, 'data': [info_request_dict(r) for r in qs]})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPatient])
def respond_info_request(request, pk: int):
    s = InfoResponseSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    req = get_object_or_404(MedicalInfoRequest.objects.select_related('doctor__user'),
                            pk=pk, patient=patient_of(request))
    try:
        messaging.respond_info_request(req, s.validated_data['responseText'], s.validated_data.get('attachmentUrl'))
    except ValueError as e:
        return fail(e)
    return Response({'ok': True, 'data': info_request_dict(req)})
