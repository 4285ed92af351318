"""Delivery orchestration across channels."""

from __future__ import annotations

import threading

import anyio
import pytest

from servicedesk.domain.entities import (
    DeliveryChannel,
    DeliveryStatus,
    Notification,
    NotificationStatus,
)
from servicedesk.domain.errors import ChannelDeliveryError
from servicedesk.infrastructure.notifications import DeliveryOrchestrator, summarize_outcomes
from servicedesk.infrastructure.notifications.channels import (
    DeliveryOutcome,
    EmailChannel,
    InAppChannel,
    NotificationChannel,
    OutcomeStatus,
    SmsChannel,
)
from servicedesk.infrastructure.notifications.worker import DeliveryWorker
from servicedesk.utils import now_in_app_timezone

pytestmark = pytest.mark.anyio


class StaticChannel(NotificationChannel):
    def __init__(self, channel: DeliveryChannel, *, error: Exception | None = None, delay: float = 0):
        self._channel = channel
        self._error = error
        self._delay = delay
        self.calls: list[int] = []

    @property
    def channel(self) -> DeliveryChannel:
        return self._channel

    async def send(self, notification, recipient):
        self.calls.append(recipient.id)
        if self._delay:
            await anyio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return DeliveryOutcome.sent(self._channel)


class RecordingSmsGateway:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    async def send_sms(self, phone_number: str, text: str) -> None:
        self.messages.append((phone_number, text))


async def _stored(store, recipient_id: int, channels) -> Notification:
    return await store.create(
        Notification(
            id=None,
            recipient_id=recipient_id,
            title="Disk almost full",
            message="Server srv-01 has less than 5% free space.",
            channels=tuple(channels),
            created_at=now_in_app_timezone(),
        )
    )


def test_summarize_deferred_only_is_delivered():
    status, errors = summarize_outcomes([DeliveryOutcome.deferred(DeliveryChannel.IN_APP)])

    assert status is DeliveryStatus.DELIVERED
    assert errors == {}


def test_summarize_any_success_is_delivered_with_errors_kept():
    status, errors = summarize_outcomes(
        [
            DeliveryOutcome.sent(DeliveryChannel.EMAIL),
            DeliveryOutcome.failed(DeliveryChannel.SMS, "no phone"),
        ]
    )

    assert status is DeliveryStatus.DELIVERED
    assert errors == {"SMS": "no phone"}


def test_summarize_failure_with_only_deferred_is_failed():
    status, errors = summarize_outcomes(
        [
            DeliveryOutcome.deferred(DeliveryChannel.IN_APP),
            DeliveryOutcome.failed(DeliveryChannel.EMAIL, "no email"),
        ]
    )

    assert status is DeliveryStatus.FAILED
    assert errors == {"EMAIL": "no email"}


async def test_failing_channel_does_not_stop_others(store, directory, users):
    failing = StaticChannel(DeliveryChannel.EMAIL, error=ChannelDeliveryError("smtp down"))
    working = StaticChannel(DeliveryChannel.PUSH)
    orchestrator = DeliveryOrchestrator(store, directory, [failing, working])
    notification = await _stored(store, users.bob.id, [DeliveryChannel.EMAIL, DeliveryChannel.PUSH])

    updated = await orchestrator.deliver(notification)

    assert failing.calls == [users.bob.id]
    assert working.calls == [users.bob.id]
    assert updated.delivery_status is DeliveryStatus.DELIVERED
    assert updated.metadata["delivery_errors"] == {"EMAIL": "smtp down"}
    assert updated.status is NotificationStatus.UNREAD


async def test_slow_channel_times_out_without_blocking_others(store, directory, users):
    slow = StaticChannel(DeliveryChannel.EMAIL, delay=5)
    fast = StaticChannel(DeliveryChannel.PUSH)
    orchestrator = DeliveryOrchestrator(store, directory, [slow, fast], timeout_seconds=0.05)
    notification = await _stored(store, users.bob.id, [DeliveryChannel.EMAIL, DeliveryChannel.PUSH])

    with anyio.fail_after(2):
        updated = await orchestrator.deliver(notification)

    assert updated.delivery_status is DeliveryStatus.DELIVERED
    assert "timed out" in updated.metadata["delivery_errors"]["EMAIL"]


async def test_hung_email_sender_times_out(store, directory, users):
    release = threading.Event()

    def hung_sender(subject, html, recipient):
        release.wait(5)
        return True

    orchestrator = DeliveryOrchestrator(
        store, directory, [EmailChannel(hung_sender)], timeout_seconds=0.1
    )
    notification = await _stored(store, users.bob.id, [DeliveryChannel.EMAIL])

    try:
        with anyio.fail_after(2):
            updated = await orchestrator.deliver(notification)
    finally:
        release.set()

    assert updated.delivery_status is DeliveryStatus.FAILED
    assert updated.metadata["delivery_errors"] == {"EMAIL": "timed out after 0.1s"}


async def test_unexpected_channel_error_is_recorded(store, directory, users):
    broken = StaticChannel(DeliveryChannel.EMAIL, error=RuntimeError("boom"))
    orchestrator = DeliveryOrchestrator(store, directory, [broken])
    notification = await _stored(store, users.bob.id, [DeliveryChannel.EMAIL])

    updated = await orchestrator.deliver(notification)

    assert updated.delivery_status is DeliveryStatus.FAILED
    assert "boom" in updated.metadata["delivery_errors"]["EMAIL"]


async def test_unconfigured_channel_fails(store, directory, users):
    orchestrator = DeliveryOrchestrator(store, directory, [])
    notification = await _stored(store, users.bob.id, [DeliveryChannel.PUSH])

    updated = await orchestrator.deliver(notification)

    assert updated.delivery_status is DeliveryStatus.FAILED
    assert updated.metadata["delivery_errors"] == {"PUSH": "channel not configured"}


async def test_existing_metadata_is_preserved(store, directory, users):
    orchestrator = DeliveryOrchestrator(store, directory, [])
    notification = await store.create(
        Notification(
            id=None,
            recipient_id=users.bob.id,
            title="Backup failed",
            message="Nightly backup did not complete.",
            channels=(DeliveryChannel.SMS,),
            metadata={"job": "nightly"},
            created_at=now_in_app_timezone(),
        )
    )

    updated = await orchestrator.deliver(notification)

    assert updated.metadata["job"] == "nightly"
    assert "SMS" in updated.metadata["delivery_errors"]


async def test_in_app_transport_failure_is_a_channel_failure(
    store, directory, users, presence, transport
):
    presence.register(users.alice.id, object(), "user")
    transport.fail = True
    orchestrator = DeliveryOrchestrator(store, directory, [InAppChannel(presence, transport)])
    notification = await _stored(store, users.alice.id, [DeliveryChannel.IN_APP])

    updated = await orchestrator.deliver(notification)

    assert updated.delivery_status is DeliveryStatus.FAILED
    assert "socket closed" in updated.metadata["delivery_errors"]["IN_APP"]


async def test_email_and_sms_channels_use_contact_data(store, directory, users, email_sender):
    gateway = RecordingSmsGateway()
    orchestrator = DeliveryOrchestrator(
        store, directory, [EmailChannel(email_sender), SmsChannel(gateway)]
    )
    notification = await _stored(store, users.bob.id, [DeliveryChannel.EMAIL, DeliveryChannel.SMS])

    updated = await orchestrator.deliver(notification)

    assert updated.delivery_status is DeliveryStatus.DELIVERED
    assert email_sender.calls[0][2] == "bob@example.com"
    assert gateway.messages == [
        ("+15551234567", "Disk almost full: Server srv-01 has less than 5% free space.")
    ]


async def test_sms_channel_rejects_malformed_numbers(users):
    bob = users.bob
    bob.phone_number = "555-1234"
    channel = SmsChannel(RecordingSmsGateway())

    with pytest.raises(ChannelDeliveryError) as excinfo:
        await channel.send(
            Notification(id=1, recipient_id=bob.id, title="t", message="m"), bob
        )

    assert excinfo.value.code == "INVALID_PHONE"


async def test_in_app_channel_defers_for_offline_user(users, presence, transport):
    outcome = await InAppChannel(presence, transport).send(
        Notification(id=1, recipient_id=users.alice.id, title="t", message="m"), users.alice
    )

    assert outcome.status is OutcomeStatus.DEFERRED
    assert transport.sent == []


async def test_worker_writes_status_back(store, directory, users):
    orchestrator = DeliveryOrchestrator(store, directory, [StaticChannel(DeliveryChannel.PUSH)])
    worker = DeliveryWorker(orchestrator)
    notification = await _stored(store, users.bob.id, [DeliveryChannel.PUSH])

    worker.submit(notification)
    assert worker.pending == 1
    await worker.drain()

    assert worker.pending == 0
    assert (await store.get(notification.id)).delivery_status is DeliveryStatus.DELIVERED


async def test_worker_ignores_notifications_deleted_before_delivery(store, directory, users):
    orchestrator = DeliveryOrchestrator(
        store, directory, [StaticChannel(DeliveryChannel.PUSH, delay=0.05)]
    )
    worker = DeliveryWorker(orchestrator)
    notification = await _stored(store, users.bob.id, [DeliveryChannel.PUSH])

    worker.submit(notification)
    await store.delete(notification.id)
    await worker.drain()

    assert worker.pending == 0
