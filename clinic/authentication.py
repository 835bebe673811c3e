"""
JWT authentication classes.

The header based class is the project default.  Export endpoints also
accept the access token as a ``?token=`` query parameter so that a
browser can download a file from a plain link.  Keeping these classes
apart from any view module avoids circular imports when Django REST
framework initialises authentication classes.
"""
from __future__ import annotations

from rest_framework import exceptions
from rest_framework_simplejwt import authentication


class JWTAuthentication(authentication.JWTAuthentication):
    """Bearer token authentication that refuses deactivated accounts."""

    www_authenticate_realm = 'api'

    def get_user(self, validated_token):
        try:
            return super().get_user(validated_token)
        except exceptions.AuthenticationFailed as exc:
            if exc.get_codes() == 'user_inactive':
                raise exceptions.AuthenticationFailed(
                    'Account is deactivated. Please contact admin.', code='user_inactive'
                ) from exc
            raise


class QueryParamJWTAuthentication(JWTAuthentication):
    """Fall back to ``?token=`` when no Authorization header is sent."""

    def authenticate(self, request):
        if self.get_header(request) is not None:
            return super().authenticate(request)
        raw_token = request.query_params.get('token')
        if not raw_token:
            return None
        validated_token = self.get_validated_token(raw_token.encode())
        return self.get_user(validated_token), validated_token
