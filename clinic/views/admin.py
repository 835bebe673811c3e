"""
Administrator endpoints.

User management, the global appointment list with admin overrides,
doctor schedules, CSV exports, the system log and bulk clean-up.  Every
state change made here is written to the system log.
"""
from __future__ import annotations

from django.conf import settings
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_date
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..authentication import QueryParamJWTAuthentication
from ..models import Appointment, DoctorProfile, Notification, PatientProfile, Prescription, SystemLog, User
from ..permissions import IsAdmin
from ..serializers.admin import AdminProfileSerializer, CreateUserSerializer, NameSerializer, RoleSerializer
from ..serializers.appointments import AdminCancelSerializer, RescheduleSerializer, StatusSerializer
from ..serializers.doctors import ScheduleSerializer
from ..services import accounts, reports
from ..services import appointments as appt_svc
from ..services.audit import log_action
from .common import _iso, appointment_dict, doctor_dict, fail, patient_dict, user_dict

_TRUTHY = {'1', 'true', 'yes'}


# ---------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def users(request):
    if request.method == 'GET':
        qs = User.objects.order_by('id')
        params = request.query_params
        if params.get('email'):
            qs = qs.filter(email__icontains=params['email'].strip())
        if params.get('name'):
            qs = qs.filter(full_name__icontains=params['name'].strip())
        if params.get('role'):
            qs = qs.filter(role=params['role'].strip().lower())
        if params.get('isActive'):
            qs = qs.filter(is_active=params['isActive'].strip().lower() in _TRUTHY)
        return Response({'ok': True, 'data': [user_dict(u) for u in qs]})

    s = CreateUserSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    try:
        user = accounts.create_account(
            vd['email'], vd['password'], vd['role'],
            full_name=vd.get('fullName', ''), specialization=vd.get('specialization'),
        )
    except ValueError as e:
        return fail(e)
    log_action(user=request.user, action='create_user', object_type='user', object_id=user.id,
               detail={'email': user.email, 'role': user.role})
    return Response({'ok': True, 'data': user_dict(user)}, status=201)


def _target(pk) -> User:
    return get_object_or_404(User, pk=pk)


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdmin])
def rename_user(request, pk: int):
    s = NameSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = _target(pk)
    user.full_name = s.validated_data['name'].strip()
    user.save(update_fields=['full_name'])
    log_action(user=request.user, action='rename_user', object_type='user', object_id=user.id,
               detail={'name': user.full_name})
    return Response({'ok': True, 'data': user_dict(user)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdmin])
def change_user_role(request, pk: int):
    s = RoleSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = _target(pk)
    previous = user.role
    try:
        accounts.change_role(user, s.validated_data['role'])
    except ValueError as e:
        return fail(e)
    log_action(user=request.user, action='change_role', object_type='user', object_id=user.id,
               detail={'from': previous, 'to': user.role})
    return Response({'ok': True, 'data': user_dict(user)})


def _set_active(request, pk, active: bool):
    user = _target(pk)
    if not active and user.pk == request.user.pk:
        return fail('You cannot deactivate your own account.')
    user.is_active = active
    user.save(update_fields=['is_active'])
    log_action(user=request.user, action='activate_user' if active else 'deactivate_user',
               object_type='user', object_id=user.id)
    return Response({'ok': True, 'data': user_dict(user)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdmin])
def deactivate_user(request, pk: int):
    return _set_active(request, pk, False)


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdmin])
def activate_user(request, pk: int):
    return _set_active(request, pk, True)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsAdmin])
def delete_user(request, pk: int):
    user = _target(pk)
    if user.pk == request.user.pk:
        return fail('You cannot delete your own account.')
    email = user.email
    user.delete()
    log_action(user=request.user, action='delete_user', object_type='user', object_id=pk, detail={'email': email})
    return Response({'ok': True, 'message': 'User deleted.'})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def list_doctors(request):
    qs = DoctorProfile.objects.select_related('user').order_by('id')
    return Response({'ok': True, 'data': [doctor_dict(d) for d in qs]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def list_patients(request):
    qs = PatientProfile.objects.select_related('user').order_by('id')
    return Response({'ok': True, 'data': [patient_dict(p) for p in qs]})


# ---------------------------------------------------------------------
# Appointments
# ---------------------------------------------------------------------
def _appointment(pk) -> Appointment:
    return get_object_or_404(Appointment.objects.select_related('doctor__user', 'patient__user'), pk=pk)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def appointments(request):
    params = request.query_params
    qs = Appointment.objects.select_related('doctor__user', 'patient__user').order_by('-appointment_datetime')
    doctor = (params.get('doctor') or '').strip()
    patient = (params.get('patient') or '').strip()
    if doctor:
        qs = qs.filter(Q(doctor__user__email__icontains=doctor) | Q(doctor__user__full_name__icontains=doctor))
    if patient:
        qs = qs.filter(Q(patient__user__email__icontains=patient) | Q(patient__user__full_name__icontains=patient))
    if params.get('doctorId'):
        qs = qs.filter(doctor_id=params['doctorId'])
    if params.get('patientId'):
        qs = qs.filter(patient_id=params['patientId'])
    if params.get('status'):
        qs = qs.filter(status=params['status'])
    day = parse_date(params.get('date') or '')
    if day:
        qs = qs.filter(appointment_datetime__date=day)

    rows = list(qs)
    notes = appt_svc.cancellation_notes(a.id for a in rows if a.status == Appointment.STATUS_CANCELLED)
    data = []
    for a in rows:
        row = appointment_dict(a, doctor_email=True, patient_email=True)
        if a.status == Appointment.STATUS_CANCELLED:
            row['justification'] = notes.get(a.id)
        data.append(row)
    return Response({'ok': True, 'data': data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def cancel_appointment(request, pk: int):
    s = AdminCancelSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = _appointment(pk)
    justification = s.validated_data.get('justification')
    try:
        is_override = appt_svc.cancel_by_admin(appt, justification)
    except ValueError as e:
        return fail(e)
    log_action(user=request.user, action='cancel_appointment_override' if is_override else 'cancel_appointment',
               object_type='appointment', object_id=appt.id, detail={'justification': justification or ''})
    return Response({'ok': True, 'message': 'Appointment cancelled.', 'override': is_override})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdmin])
def appointment_status(request, pk: int):
    s = StatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = _appointment(pk)
    previous = appt.status
    try:
        appt_svc.set_status(appt, s.validated_data['status'])
    except ValueError as e:
        return fail(e)
    log_action(user=request.user, action='change_appointment_status', object_type='appointment',
               object_id=appt.id, detail={'from': previous, 'to': appt.status})
    return Response({'ok': True, 'data': appointment_dict(appt)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdmin])
def reschedule_appointment(request, pk: int):
    s = RescheduleSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = _appointment(pk)
    previous = _iso(appt.appointment_datetime)
    try:
        appt_svc.reschedule_by_admin(appt, s.validated_data['newDateTime'])
    except ValueError as e:
        return fail(e)
    log_action(user=request.user, action='reschedule_appointment', object_type='appointment', object_id=appt.id,
               detail={'from': previous, 'to': _iso(appt.appointment_datetime)})
    return Response({'ok': True, 'data': appointment_dict(appt)})


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsAdmin])
def doctor_schedule(request, doctor_id: int):
    doctor = get_object_or_404(DoctorProfile, pk=doctor_id)
    if request.method == 'PUT':
        s = ScheduleSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        doctor.schedule = s.validated_data['schedule']
        doctor.save(update_fields=['schedule'])
        log_action(user=request.user, action='update_schedule', object_type='doctor', object_id=doctor.id)
    return Response({'ok': True, 'id': doctor.id, 'schedule': doctor.schedule or {}})


# ---------------------------------------------------------------------
# Exports and logs
# ---------------------------------------------------------------------
def _export(request, action, build):
    fmt = (request.query_params.get('format') or 'csv').lower()
    if fmt not in reports.SUPPORTED_FORMATS:
        return fail('Only csv exports are supported.')
    log_action(user=request.user, action=action, object_type='export', detail={'format': fmt})
    return build()


@api_view(['GET'])
@authentication_classes([QueryParamJWTAuthentication])
@permission_classes([IsAuthenticated, IsAdmin])
def export_appointments(request):
    return _export(request, 'ExportAppointments', reports.appointments_export)


@api_view(['GET'])
@authentication_classes([QueryParamJWTAuthentication])
@permission_classes([IsAuthenticated, IsAdmin])
def export_users(request):
    return _export(request, 'ExportUsers', reports.users_export)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def system_logs(request):
    params = request.query_params
    qs = SystemLog.objects.select_related('user').order_by('-timestamp', '-id')
    if params.get('userId'):
        qs = qs.filter(user_id=params['userId'])
    if params.get('action'):
        qs = qs.filter(action__icontains=params['action'].strip())
    start = parse_date(params.get('from') or '')
    end = parse_date(params.get('to') or '')
    if start:
        qs = qs.filter(timestamp__date__gte=start)
    if end:
        qs = qs.filter(timestamp__date__lte=end)
    data = [
        {
            'id': log.id,
            'userId': log.user_id,
            'userEmail': log.user.email if log.user else None,
            'action': log.action,
            'objectType': log.object_type,
            'objectId': log.object_id,
            'detail': log.detail,
            'timestamp': _iso(log.timestamp),
        }
        for log in qs[:settings.SYSTEM_LOG_LIMIT]
    ]
    return Response({'ok': True, 'data': data})


# ---------------------------------------------------------------------
# Bulk clean-up
# ---------------------------------------------------------------------
def _purge(request, model, action):
    qs = model.objects.all()
    count = qs.count()
    qs.delete()
    log_action(user=request.user, action=action, object_type=model.__name__.lower(), detail={'deleted': count})
    return Response({'ok': True, 'deleted': count})


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsAdmin])
def delete_all_appointments(request):
    return _purge(request, Appointment, 'delete_all_appointments')


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsAdmin])
def delete_all_prescriptions(request):
    return _purge(request, Prescription, 'delete_all_prescriptions')


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsAdmin])
def delete_all_notifications(request):
    return _purge(request, Notification, 'delete_all_notifications')


# ---------------------------------------------------------------------
# Own profile
# ---------------------------------------------------------------------
@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsAdmin])
def admin_profile(request):
    user: User = request.user
    if request.method == 'PUT':
        s = AdminProfileSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        user.full_name = s.validated_data['fullName'].strip()
        if 'contactInfo' in s.validated_data:
            user.contact_info = s.validated_data['contactInfo'].strip()
        user.save(update_fields=['full_name', 'contact_info'])
        accounts.ensure_profile(user)
    return Response({'ok': True, 'data': user_dict(user)})
