"""
Notification queue publisher.

Messages go to a channel-layer group (``settings.NOTIFICATION_QUEUE``).
The WebSocket consumer in ``clinic.realtime.consumers`` relays them to
connected admin dashboards.  Publishing is fire and forget: a failure
is logged and never raised to the request that triggered it.
"""
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings

logger = logging.getLogger(__name__)


def publish(message: str) -> bool:
    try:
        channel_layer = get_channel_layer()
        if channel_layer is None:
            logger.warning('No channel layer configured; dropped queue message: %s', message)
            return False
        async_to_sync(channel_layer.group_send)(
            settings.NOTIFICATION_QUEUE, {'type': 'queue.message', 'message': message}
        )
    except Exception:
        logger.exception('Failed to publish queue message: %s', message)
        return False
    logger.info('Published to %s: %s', settings.NOTIFICATION_QUEUE, message)
    return True
