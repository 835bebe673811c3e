"""
Prescription endpoints.

Doctors issue prescriptions against one of their own appointments and
handle renewal requests and pharmacy dispatch.  Patients list their
prescriptions and ask for renewals.
"""
from __future__ import annotations

import logging

from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Appointment, PatientProfile, Prescription, User
from ..permissions import IsDoctor, IsPatient
from ..serializers.prescriptions import IssuePrescriptionSerializer, PharmacySerializer, RejectRenewalSerializer
from ..services import prescriptions as svc
from .common import doctor_of, fail, patient_of, prescription_dict

logger = logging.getLogger(__name__)

_RELATED = ('doctor__user', 'patient__user')


def _issued_by_me(request, pk) -> Prescription:
    return get_object_or_404(Prescription.objects.select_related(*_RELATED), pk=pk, doctor=doctor_of(request))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctor])
def issue_prescription(request):
    s = IssuePrescriptionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    doctor = doctor_of(request)
    patient = PatientProfile.objects.select_related('user').filter(pk=vd['patientId']).first()
    if patient is None:
        return fail('Patient not found')
    appointment = Appointment.objects.filter(pk=vd['appointmentId']).first()
    if appointment is None:
        return fail('Appointment not found')
    try:
        prescription, warnings = svc.issue(
            doctor, patient, appointment,
            medication_name=vd['medicationName'],
            dosage=vd['dosage'],
            instructions=vd.get('instructions', ''),
            is_renewable=vd.get('isRenewable', False),
            refills_remaining=vd.get('refillsRemaining', 0),
            notes=vd.get('notes'),
            expiry_date=vd.get('expiryDate'),
        )
    except PermissionError as e:
        return fail(e, status=403)
    return Response({'ok': True, 'data': prescription_dict(prescription), 'interactionWarnings': warnings},
                    status=201)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatient])
def my_prescriptions(request):
    qs = Prescription.objects.filter(patient=patient_of(request)).select_related(*_RELATED)
    return Response({'ok': True, 'data': [prescription_dict(p) for p in qs]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctor])
def doctor_prescriptions(request):
    qs = Prescription.objects.filter(doctor=doctor_of(request)).select_related(*_RELATED)
    return Response({'ok': True, 'data': [prescription_dict(p) for p in qs]})


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def prescription_detail(request, pk: int):
    user: User = request.user
    if request.method == 'DELETE':
        if user.role != User.ROLE_DOCTOR:
            return fail('Only the issuing doctor can delete a prescription.', status=403)
        prescription = _issued_by_me(request, pk)
        # notifications go with it (FK cascade)
        prescription.delete()
        return Response({'ok': True, 'message': 'Prescription deleted.'})

    prescription = get_object_or_404(Prescription.objects.select_related(*_RELATED), pk=pk)
    allowed = (
        user.role == User.ROLE_ADMIN
        or prescription.patient.user_id == user.id
        or prescription.doctor.user_id == user.id
    )
    if not allowed:
        return fail('You do not have access to this prescription.', status=403)
    return Response({'ok': True, 'data': prescription_dict(prescription)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPatient])
def request_renewal(request, pk: int):
    prescription = get_object_or_404(Prescription.objects.select_related(*_RELATED),
                                     pk=pk, patient=patient_of(request))
    try:
        svc.request_renewal(prescription)
    except ValueError as e:
        return fail(e)
    return Response({'ok': True, 'message': 'Renewal request submitted.'})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctor])
def approve_renewal(request, pk: int):
    prescription = _issued_by_me(request, pk)
    try:
        svc.approve_renewal(prescription)
    except ValueError as e:
        return fail(e)
    return Response({'ok': True, 'message': 'Renewal approved.', 'data': prescription_dict(prescription)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctor])
def reject_renewal(request, pk: int):
    s = RejectRenewalSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    prescription = _issued_by_me(request, pk)
    try:
        svc.reject_renewal(prescription, s.validated_data['reason'])
    except ValueError as e:
        return fail(e)
    return Response({'ok': True, 'message': 'Renewal rejected.'})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctor])
def send_to_pharmacy(request, pk: int):
    s = PharmacySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    prescription = _issued_by_me(request, pk)
    try:
        svc.send_to_pharmacy(prescription, s.validated_data['pharmacyEmail'])
    except ValueError as e:
        return fail(e)
    except Exception as e:
        logger.exception('Pharmacy email for prescription %s failed', prescription.id)
        return fail(f'Failed to send email: {e}', status=502)
    return Response({'ok': True, 'message': 'Prescription sent to pharmacy.'})
