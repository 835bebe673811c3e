"""
Password validators plugged into ``AUTH_PASSWORD_VALIDATORS``.
"""
from django.core.exceptions import ValidationError


class PasswordComplexityValidator:
    """Require at least one digit, one lowercase and one uppercase letter."""

    def validate(self, password, user=None):
        errors = []
        if not any(c.isdigit() for c in password):
            errors.append(ValidationError('Password must contain at least one digit.', code='password_no_digit'))
        if not any(c.islower() for c in password):
            errors.append(ValidationError('Password must contain at least one lowercase letter.', code='password_no_lower'))
        if not any(c.isupper() for c in password):
            errors.append(ValidationError('Password must contain at least one uppercase letter.', code='password_no_upper'))
        if errors:
            raise ValidationError(errors)

    def get_help_text(self):
        return 'Your password must contain a digit, a lowercase and an uppercase letter.'
