from types import SimpleNamespace

import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator

from healthcare.realtime.consumers import NotificationConsumer
from healthcare.services.notifications import email_user, notify_on_commit, notify_user, user_group


@pytest.fixture
def listener():
    layer = get_channel_layer()
    channel = async_to_sync(layer.new_channel)()
    async_to_sync(layer.group_add)(user_group(7), channel)
    yield lambda: async_to_sync(layer.receive)(channel)
    async_to_sync(layer.group_discard)(user_group(7), channel)


def test_notify_user_reaches_user_group(listener):
    notify_user(7, 'payment.completed', {'paymentId': 'PAY000001'})
    message = listener()
    assert message['type'] == 'notify.event'
    assert message['event'] == 'payment.completed'
    assert message['payload'] == {'paymentId': 'PAY000001'}


@pytest.mark.django_db
def test_notify_on_commit_waits_for_commit(listener, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        notify_on_commit(7, 'appointment.booked', {'appointmentId': 'APT000001'})
    assert len(callbacks) == 1
    assert listener()['event'] == 'appointment.booked'


def test_consumer_rejects_anonymous_connections():
    async def scenario():
        communicator = WebsocketCommunicator(NotificationConsumer.as_asgi(), '/ws/notifications/')
        return await communicator.connect()

    connected, code = async_to_sync(scenario)()
    assert connected is False
    assert code == 4001


@pytest.mark.django_db
def test_consumer_forwards_user_events():
    async def scenario():
        communicator = WebsocketCommunicator(NotificationConsumer.as_asgi(), '/ws/notifications/')
        communicator.scope['user'] = SimpleNamespace(pk=8, is_authenticated=True)
        connected, _ = await communicator.connect()
        assert connected
        welcome = await communicator.receive_json_from()
        await get_channel_layer().group_send(user_group(8), {
            'type': 'notify.event', 'event': 'payment.refunded', 'payload': {'paymentId': 'PAY000002'},
        })
        event = await communicator.receive_json_from()
        await communicator.disconnect()
        return welcome, event

    welcome, event = async_to_sync(scenario)()
    assert welcome['type'] == 'welcome'
    assert event == {'type': 'payment.refunded', 'payload': {'paymentId': 'PAY000002'}}


@pytest.mark.django_db
def test_email_user(patient, mailoutbox, settings):
    settings.DEFAULT_FROM_EMAIL = 'clinic@hms.test'
    assert email_user(patient.pk, 'Hello', 'Body text') is True
    assert mailoutbox[0].to == [patient.email]
    assert mailoutbox[0].from_email == 'clinic@hms.test'

    # unknown users and users without an address are skipped
    assert email_user(999999, 'Hello', 'Body text') is False
    patient.email = ''
    patient.save(update_fields=['email'])
    assert email_user(patient.pk, 'Hello', 'Body text') is False
    assert len(mailoutbox) == 1
