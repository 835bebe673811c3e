from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..permissions import IsAdmin
from ..serializers.admin import BroadcastSerializer
from ..services import notifications as svc
from ..services.audit import log_action
from .common import notification_dict


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_notifications(request):
    qs = svc.visible_to(request.user)
    return Response({'ok': True, 'data': [notification_dict(n) for n in qs]})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def mark_notification_read(request, pk: int):
    notification = get_object_or_404(svc.visible_to(request.user), pk=pk)
    if not notification.is_read:
        notification.is_read = True
        notification.save(update_fields=['is_read'])
    return Response({'ok': True})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def broadcast_notification(request):
    s = BroadcastSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    role = s.validated_data.get('role')
    count = svc.broadcast(s.validated_data['message'], role)
    log_action(user=request.user, action='broadcast', object_type='notification',
               detail={'role': role, 'recipients': count})
    return Response({'ok': True, 'message': f"Notification sent to {role or 'all users'}.", 'recipients': count})
