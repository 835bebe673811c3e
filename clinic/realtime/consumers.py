import json

from channels.generic.websocket import AsyncWebsocketConsumer
from django.conf import settings


class NotificationQueueConsumer(AsyncWebsocketConsumer):
    """Relays messages published to the notification queue to connected admins."""

    async def connect(self):
        user = self.scope.get("user")
        if not (user and user.is_authenticated and getattr(user, "role", None) == "admin"):
            await self.close(code=4003)
            return
        self.group_name = settings.NOTIFICATION_QUEUE
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        # read-only stream
        return

    async def queue_message(self, event):
        # event: {"type": "queue.message", "message": "..."}
        await self.send(json.dumps({"type": "notification", "message": event.get("message", "")}))
