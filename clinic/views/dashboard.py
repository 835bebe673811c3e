"""
Administrative dashboard endpoint.

Counts users per role and appointments per status, and lists the
appointments of the next seven days alongside pending renewals and the
average feedback rating.
"""
from __future__ import annotations

from datetime import timedelta

from django.db.models import Avg, Count
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Appointment, Feedback, Prescription, User
from ..permissions import IsAdmin
from .common import appointment_dict

UPCOMING_DAYS = 7


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def admin_dashboard(request):
    now = timezone.now()
    users = {role: 0 for role, _ in User.ROLE_CHOICES}
    for row in User.objects.values('role').annotate(n=Count('id')):
        users[row['role']] = row['n']

    statuses = {status: 0 for status, _ in Appointment.STATUS_CHOICES}
    for row in Appointment.objects.values('status').annotate(n=Count('id')):
        statuses[row['status']] = row['n']

    upcoming = Appointment.objects.filter(
        appointment_datetime__gte=now,
        appointment_datetime__lt=now + timedelta(days=UPCOMING_DAYS),
    ).exclude(status=Appointment.STATUS_CANCELLED) \
        .select_related('doctor__user', 'patient__user').order_by('appointment_datetime')

    pending_renewals = Prescription.objects.filter(renewal_status=Prescription.RENEWAL_PENDING).count()
    average = Feedback.objects.aggregate(avg=Avg('rating'))['avg']

    return Response({
        'ok': True,
        'users': users,
        'appointments': statuses,
        'upcoming': [appointment_dict(a, doctor_email=True, patient_email=True) for a in upcoming],
        'pendingRenewals': pending_renewals,
        'averageRating': round(average, 2) if average is not None else None,
    })
