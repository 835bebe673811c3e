"""
Authentication views: registration, login, token refresh, logout and
password change.

Login is by email.  The issued JWT pair carries the user's ``email`` and
``role`` as extra claims so that clients can route without another
round trip.  Keeping these views apart from ``clinic.authentication``
avoids circular imports when Django REST framework initialises its
authentication classes.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView

from clinic.models import User
from clinic.serializers.auth import ChangePasswordSerializer, LoginSerializer, RegisterSerializer
from clinic.services import accounts
from clinic.services.audit import log_action


def issue_tokens(user: User) -> RefreshToken:
    refresh = RefreshToken.for_user(user)
    # copied into the access token as well
    refresh['email'] = user.email
    refresh['role'] = user.role
    return refresh


def user_payload(user: User) -> dict:
    return {
        'id': user.id,
        'email': user.email,
        'fullName': user.full_name,
        'role': user.role,
    }


@api_view(['POST'])
@permission_classes([AllowAny])
def register_view(request):
    """Self-service sign up.  Always creates a patient account."""
    s = RegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    try:
        user = accounts.create_account(
            vd['email'], vd['password'], User.ROLE_PATIENT,
            full_name=vd.get('fullName', ''), contact_info=vd.get('contactInfo', ''),
        )
    except ValueError as e:
        return Response({'ok': False, 'detail': str(e)}, status=400)
    log_action(user=user, action='register', object_type='user', object_id=user.id,
               detail={'ip': request.META.get('REMOTE_ADDR')})
    return Response({'ok': True, 'message': 'User registered successfully', 'user': user_payload(user)}, status=201)

register_view.cls.throttle_scope = 'register'


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """Email/password login.  Any ``role`` sent by the client is ignored."""
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    email = s.validated_data['email']
    password = s.validated_data['password']
    ip = request.META.get('REMOTE_ADDR')

    user = User.objects.filter(email__iexact=email).first()
    if user is None or not user.check_password(password):
        log_action(user=None, action='login', object_type='user', object_id=None,
                   detail={'result': 'fail', 'email': email, 'ip': ip})
        return Response({'ok': False, 'detail': 'Invalid credentials'}, status=401)
    if not user.is_active:
        log_action(user=user, action='login', object_type='user', object_id=user.id,
                   detail={'result': 'inactive', 'ip': ip})
        return Response({'ok': False, 'detail': 'Account is deactivated. Please contact admin.'}, status=401)

    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': ip})
    refresh = issue_tokens(user)
    return Response({
        'ok': True,
        'access': str(refresh.access_token),
        'refresh': str(refresh),
        'role': user.role,
        'user': user_payload(user),
    }, status=200)

# ScopedRateThrottle reads throttle_scope from the generated view class
login_view.cls.throttle_scope = 'login'


@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from a refresh token."""
    view = TokenRefreshView.as_view()
    resp = view(request._request)
    if isinstance(resp, Response) and resp.status_code == 200:
        return Response({'ok': True, **resp.data}, status=200)
    return resp


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist the given refresh token, or every outstanding token of the user."""
    refresh = request.data.get('refresh')
    count = 0
    if refresh:
        try:
            token = RefreshToken(refresh)
        except TokenError as e:
            return Response({'ok': False, 'detail': str(e)}, status=400)
        if token.get('user_id') not in (request.user.id, str(request.user.id)):
            return Response({'ok': False, 'detail': 'Token does not belong to this user.'}, status=400)
        token.blacklist()
        count = 1
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    return Response({'ok': True, 'blacklisted': count})


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def change_password_view(request):
    s = ChangePasswordSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    try:
        accounts.change_password(request.user, s.validated_data['currentPassword'], s.validated_data['newPassword'])
    except ValueError as e:
        return Response({'ok': False, 'detail': str(e)}, status=400)
    log_action(user=request.user, action='change_password', object_type='user', object_id=request.user.id)
    return Response({'ok': True, 'message': 'Password changed successfully.'})
