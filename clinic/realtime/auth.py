"""
WebSocket authentication from a ``?token=<access JWT>`` query string.

Browsers cannot set an Authorization header on a WebSocket handshake, so
the access token travels in the query string instead.  An invalid or
missing token leaves ``scope["user"]`` anonymous.
"""
from urllib.parse import parse_qs

from asgiref.sync import sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth.models import AnonymousUser
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken

from clinic.models import User


def _user_for(raw: str):
    try:
        token = AccessToken(raw)
    except TokenError:
        return AnonymousUser()
    user_id = token.get(api_settings.USER_ID_CLAIM)
    user = User.objects.filter(**{api_settings.USER_ID_FIELD: user_id}, is_active=True).first()
    return user or AnonymousUser()


class QueryStringJWTAuthMiddleware(BaseMiddleware):
    async def __call__(self, scope, receive, send):
        params = parse_qs(scope.get("query_string", b"").decode())
        raw = (params.get("token") or [""])[0]
        scope = dict(scope)
        scope["user"] = await sync_to_async(_user_for)(raw) if raw else AnonymousUser()
        return await super().__call__(scope, receive, send)
