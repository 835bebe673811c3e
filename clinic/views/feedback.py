"""
Feedback on completed appointments.
"""
from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Appointment, Feedback, User
from ..permissions import IsDoctorOrAdmin, IsPatient
from ..serializers.patients import FeedbackSerializer
from ..services import patients as svc
from .common import fail, feedback_dict, patient_of


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPatient])
def submit_feedback(request):
    s = FeedbackSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    try:
        fb = svc.submit_feedback(patient_of(request), vd['appointmentId'], vd['rating'], vd['comments'])
    except ValueError as e:
        return fail(e)
    return Response({'ok': True, 'message': 'Feedback submitted.', 'data': feedback_dict(fb)}, status=201)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatient])
def my_feedback(request):
    qs = Feedback.objects.filter(patient=patient_of(request))
    return Response({'ok': True, 'data': [feedback_dict(f) for f in qs]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctorOrAdmin])
def doctor_feedback(request, doctor_id: int):
    qs = Feedback.objects.filter(appointment__doctor_id=doctor_id)
    return Response({'ok': True, 'data': [feedback_dict(f) for f in qs]})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def appointment_feedback(request, appointment_id: int):
    user: User = request.user
    appt = get_object_or_404(Appointment.objects.select_related('doctor', 'patient'), pk=appointment_id)
    if user.role != User.ROLE_ADMIN and user.id not in (appt.patient.user_id, appt.doctor.user_id):
        return fail('You do not have access to this appointment.', status=403)
    fb = Feedback.objects.filter(appointment=appt).first()
    if fb is None:
        return fail('No feedback for this appointment.', status=404)
    return Response({'ok': True, 'data': feedback_dict(fb)})
