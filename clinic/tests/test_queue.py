import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from django.conf import settings

from clinic.auth_views import issue_tokens
from clinic.realtime.auth import _user_for
from clinic.realtime.consumers import NotificationQueueConsumer
from clinic.services.queue import publish


class RecordingLayer:
    def __init__(self):
        self.sent = []

    async def group_send(self, group, message):
        self.sent.append((group, message))


class BrokenLayer:
    async def group_send(self, group, message):
        raise ConnectionError('broker unavailable')


def test_publish_sends_to_queue_group(monkeypatch):
    layer = RecordingLayer()
    monkeypatch.setattr('clinic.services.queue.get_channel_layer', lambda: layer)
    assert publish('Appointment booked: abc') is True
    assert layer.sent == [
        (settings.NOTIFICATION_QUEUE, {'type': 'queue.message', 'message': 'Appointment booked: abc'}),
    ]


def test_publish_failure_is_not_raised(monkeypatch):
    monkeypatch.setattr('clinic.services.queue.get_channel_layer', lambda: BrokenLayer())
    assert publish('hello') is False


def test_publish_without_layer(monkeypatch):
    monkeypatch.setattr('clinic.services.queue.get_channel_layer', lambda: None)
    assert publish('hello') is False


@pytest.mark.django_db
def test_websocket_token_resolves_active_user(admin_user):
    token = str(issue_tokens(admin_user).access_token)
    assert _user_for(token) == admin_user

    admin_user.is_active = False
    admin_user.save()
    assert not _user_for(token).is_authenticated
    assert not _user_for('not-a-jwt').is_authenticated


@pytest.mark.django_db
def test_consumer_relays_queue_messages_to_admins(admin_user):
    async def run():
        communicator = WebsocketCommunicator(NotificationQueueConsumer.as_asgi(), '/ws/notifications/')
        communicator.scope['user'] = admin_user
        connected, _ = await communicator.connect()
        assert connected
        await get_channel_layer().group_send(
            settings.NOTIFICATION_QUEUE, {'type': 'queue.message', 'message': 'Appointment booked: abc'}
        )
        received = await communicator.receive_json_from()
        await communicator.disconnect()
        return received

    assert async_to_sync(run)() == {'type': 'notification', 'message': 'Appointment booked: abc'}


@pytest.mark.django_db
def test_consumer_rejects_non_admins(patient):
    async def run():
        communicator = WebsocketCommunicator(NotificationQueueConsumer.as_asgi(), '/ws/notifications/')
        communicator.scope['user'] = patient.user
        return await communicator.connect()

    connected, code = async_to_sync(run)()
    assert connected is False
    assert code == 4003
