from typing import Optional

from django.db.models import Q

from clinic.models import Notification, User


def notify_appointment(appointment, message: str) -> Notification:
    return Notification.objects.create(appointment=appointment, message=message)


def notify_prescription(prescription, message: str) -> Notification:
    return Notification.objects.create(prescription=prescription, message=message)


def notify_user(user, message: str, *, appointment=None, prescription=None) -> Notification:
    return Notification.objects.create(
        user=user, appointment=appointment, prescription=prescription, message=message
    )


def notify_admins(message: str) -> int:
    admins = User.objects.filter(role=User.ROLE_ADMIN, is_active=True)
    Notification.objects.bulk_create([Notification(user=u, message=message) for u in admins])
    return len(admins)


def broadcast(message: str, role: Optional[str] = None) -> int:
    """One user-targeted notification per matching user (all users without a role)."""
    users = User.objects.all()
    if role:
        users = users.filter(role=role)
    rows = [Notification(user=u, message=message) for u in users.only('id')]
    Notification.objects.bulk_create(rows)
    return len(rows)


def visible_to(user):
    """Notifications addressed to ``user`` or attached to their appointments and prescriptions."""
    cond = Q(user=user)
    if user.role == User.ROLE_PATIENT:
        cond |= Q(appointment__patient__user=user) | Q(prescription__patient__user=user)
    elif user.role == User.ROLE_DOCTOR:
        cond |= Q(appointment__doctor__user=user) | Q(prescription__doctor__user=user)
    return Notification.objects.filter(cond).distinct().order_by('-created_at', '-id')
