"""
CSV exports for admins and doctors.
"""
import csv
from datetime import date
from typing import Iterable, Sequence

from django.http import HttpResponse
from django.utils import timezone

from clinic.models import Appointment, User

SUPPORTED_FORMATS = {'csv'}


def csv_response(filename: str, header: Sequence[str], rows: Iterable[Sequence]) -> HttpResponse:
    response = HttpResponse(content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    writer = csv.writer(response)
    writer.writerow(header)
    writer.writerows(rows)
    return response


def _split(dt):
    local = timezone.localtime(dt)
    return local.strftime('%Y-%m-%d'), local.strftime('%H:%M')


def doctor_report(doctor, start: date, end: date) -> HttpResponse:
    qs = Appointment.objects.filter(
        doctor=doctor,
        appointment_datetime__date__gte=start,
        appointment_datetime__date__lte=end,
    ).select_related('patient__user').order_by('appointment_datetime')
    rows = []
    for a in qs:
        day, time = _split(a.appointment_datetime)
        rows.append([day, time, a.patient.user.display_name(), a.status, a.reference_number])
    return csv_response(
        f'appointments_{start:%Y%m%d}_{end:%Y%m%d}.csv',
        ['Date', 'Time', 'Patient', 'Status', 'Reference'],
        rows,
    )


def appointments_export() -> HttpResponse:
    qs = Appointment.objects.select_related('patient__user', 'doctor__user').order_by('appointment_datetime')
    rows = []
    for a in qs:
        day, time = _split(a.appointment_datetime)
        rows.append([day, time, a.patient.user.email, a.doctor.user.email, a.status, a.reference_number])
    return csv_response(
        'appointments.csv',
        ['Date', 'Time', 'Patient', 'Doctor', 'Status', 'Reference'],
        rows,
    )


def users_export() -> HttpResponse:
    rows = [
        [u.email, u.full_name, u.get_role_display(), 'Yes' if u.is_active else 'No']
        for u in User.objects.order_by('email')
    ]
    return csv_response('users.csv', ['Email', 'Name', 'Role', 'Active'], rows)
