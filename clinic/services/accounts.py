"""
Account creation, role changes and password handling.

A user always has exactly the profile that matches their role; these
helpers keep the two in step.
"""
from typing import Optional

from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError
from django.db import transaction

from clinic.models import AdminProfile, DoctorProfile, PatientProfile, User

ROLES = dict(User.ROLE_CHOICES)


def _password_errors(password: str, user=None):
    try:
        validate_password(password, user=user)
    except ValidationError as exc:
        return list(exc.messages)
    return []


def ensure_profile(user: User, specialization: Optional[str] = None):
    if user.role == User.ROLE_PATIENT:
        return PatientProfile.objects.get_or_create(user=user)[0]
    if user.role == User.ROLE_DOCTOR:
        return DoctorProfile.objects.get_or_create(
            user=user, defaults={'specialization': specialization or 'General', 'schedule': {}}
        )[0]
    return AdminProfile.objects.get_or_create(user=user)[0]


@transaction.atomic
def create_account(email: str, password: str, role: str, *, full_name: str = '',
                   specialization: Optional[str] = None, contact_info: str = '') -> User:
    email = (email or '').strip().lower()
    if role not in ROLES:
        raise ValueError('Invalid role.')
    if User.objects.filter(email__iexact=email).exists():
        raise ValueError('User already exists.')
    errors = _password_errors(password, User(email=email, username=email, full_name=full_name))
    if errors:
        raise ValueError(' '.join(errors))
    user = User.objects.create_user(
        email=email, password=password, role=role,
        full_name=(full_name or '').strip(), contact_info=(contact_info or '').strip(),
        is_staff=(role == User.ROLE_ADMIN),
    )
    ensure_profile(user, specialization)
    return user


@transaction.atomic
def change_role(user: User, role: str) -> User:
    if role not in ROLES:
        raise ValueError('Invalid role.')
    user.role = role
    user.is_staff = role == User.ROLE_ADMIN
    user.save(update_fields=['role', 'is_staff'])
    ensure_profile(user)
    return user


def change_password(user: User, current: str, new: str) -> None:
    if not user.check_password(current or ''):
        raise ValueError('Current password is incorrect.')
    errors = _password_errors(new, user)
    if errors:
        raise ValueError(' '.join(errors))
    user.set_password(new)
    user.save(update_fields=['password'])
