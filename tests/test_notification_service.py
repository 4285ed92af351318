"""Behaviour of the notification service facade."""

from __future__ import annotations

from datetime import timedelta

import pytest

from servicedesk.domain.entities import (
    Audience,
    DeliveryChannel,
    DeliveryStatus,
    NotificationCategory,
    NotificationDraft,
    NotificationFilters,
    NotificationStatus,
    PageRequest,
    RelatedEntityKind,
)
from servicedesk.domain.errors import (
    NotificationAccessDenied,
    NotificationNotFoundError,
    NotificationPreconditionFailed,
    NotificationValidationError,
)
from servicedesk.infrastructure.notifications.orchestrator import DELIVERY_ERRORS_KEY
from servicedesk.infrastructure.stores import SqlUserDirectory

pytestmark = pytest.mark.anyio


def _draft(**overrides) -> NotificationDraft:
    values = {"title": "Printer offline", "message": "The 3rd floor printer is offline."}
    values.update(overrides)
    return NotificationDraft(**values)


async def _delivered(service, store, notification):
    await service.wait_for_deliveries()
    return await store.get(notification.id)


async def test_create_returns_pending_record_before_delivery(service, users):
    notification = await service.create(users.bob.id, _draft())

    assert notification.id is not None
    assert notification.status is NotificationStatus.UNREAD
    assert notification.delivery_status is DeliveryStatus.PENDING
    assert notification.is_system_generated
    await service.wait_for_deliveries()


async def test_create_sets_default_expiry(service, users, clock):
    notification = await service.create(users.bob.id, _draft())

    assert notification.expires_at == clock.now + timedelta(days=30)
    await service.wait_for_deliveries()


async def test_create_rejects_missing_recipient(service):
    with pytest.raises(NotificationValidationError):
        await service.create(None, _draft())


async def test_create_rejects_unknown_recipient(service):
    with pytest.raises(NotificationNotFoundError):
        await service.create(9999, _draft())


async def test_create_rejects_inactive_recipient(service, users):
    with pytest.raises(NotificationValidationError):
        await service.create(users.inactive_tech.id, _draft())


@pytest.mark.parametrize(
    "overrides",
    [
        {"title": "   "},
        {"title": "x" * 101},
        {"message": "y" * 501},
        {"related_entity_kind": RelatedEntityKind.INCIDENT},
        {"related_entity_id": "42"},
        {"channels": ()},
    ],
)
async def test_create_rejects_invalid_drafts(service, users, overrides):
    with pytest.raises(NotificationValidationError):
        await service.create(users.bob.id, _draft(**overrides))


async def test_create_rejects_past_expiry(service, users, clock):
    with pytest.raises(NotificationValidationError):
        await service.create(users.bob.id, _draft(expires_at=clock.now - timedelta(minutes=1)))
    with pytest.raises(NotificationValidationError):
        await service.create(users.bob.id, _draft(expires_at=clock.now))


async def test_related_entity_pair_is_stored(service, store, users):
    notification = await service.create(
        users.bob.id,
        _draft(related_entity_kind=RelatedEntityKind.INCIDENT, related_entity_id="42"),
    )

    stored = await _delivered(service, store, notification)
    assert stored.related_entity.kind is RelatedEntityKind.INCIDENT
    assert stored.related_entity.entity_id == "42"


async def test_mark_read_is_idempotent(service, users, clock):
    notification = await service.create(users.bob.id, _draft())
    await service.wait_for_deliveries()

    first = await service.mark_read(notification.id, users.bob.id)
    clock.advance(minutes=5)
    second = await service.mark_read(notification.id, users.bob.id)

    assert first.status is NotificationStatus.READ
    assert first.read_at is not None
    assert second.read_at == first.read_at


async def test_archive_requires_read(service, users):
    notification = await service.create(users.bob.id, _draft())
    await service.wait_for_deliveries()

    with pytest.raises(NotificationPreconditionFailed):
        await service.archive(notification.id, users.bob.id)

    await service.mark_read(notification.id, users.bob.id)
    archived = await service.archive(notification.id, users.bob.id)
    assert archived.status is NotificationStatus.ARCHIVED


async def test_archived_notification_never_returns_to_read(service, users):
    notification = await service.create(users.bob.id, _draft())
    await service.wait_for_deliveries()
    await service.mark_read(notification.id, users.bob.id)
    archived = await service.archive(notification.id, users.bob.id)

    again = await service.mark_read(notification.id, users.bob.id)
    assert again.status is NotificationStatus.ARCHIVED
    assert again.read_at == archived.read_at

    assert (await service.archive(notification.id, users.bob.id)).status is NotificationStatus.ARCHIVED
    assert await service.mark_all_read(users.bob.id) == 0
    assert (await service.get(notification.id, users.bob.id)).status is NotificationStatus.ARCHIVED


async def test_other_users_cannot_touch_notification(service, users):
    notification = await service.create(users.bob.id, _draft())
    await service.wait_for_deliveries()
    intruder = users.alice.id

    for operation in (service.get, service.mark_read, service.archive, service.delete):
        with pytest.raises(NotificationAccessDenied):
            await operation(notification.id, intruder)

    page = await service.get_for_user(intruder)
    assert page.total == 0
    assert notification.id not in [item.id for item in page.items]
    assert await service.delete_all(intruder) == 0
    assert (await service.get(notification.id, users.bob.id)).status is NotificationStatus.UNREAD


async def test_unknown_notification_is_not_found(service, users):
    with pytest.raises(NotificationNotFoundError):
        await service.mark_read(12345, users.bob.id)


async def test_broadcast_to_role_creates_one_record_per_active_member(service, users):
    result = await service.broadcast(_draft(), Audience.for_role("technician"))
    await service.wait_for_deliveries()

    recipients = sorted(notification.recipient_id for notification in result.created)
    assert recipients == sorted([users.tech_one.id, users.tech_two.id])
    assert result.unresolved == []
    assert result.failed == {}

    first, second = result.created
    await service.mark_read(first.id, first.recipient_id)
    assert (await service.get(second.id, second.recipient_id)).status is NotificationStatus.UNREAD


async def test_broadcast_reports_unresolved_recipients(service, users):
    audience = Audience.for_users([users.bob.id, users.bob.id, users.inactive_tech.id, 4242])

    result = await service.broadcast(_draft(), audience)
    await service.wait_for_deliveries()

    assert [notification.recipient_id for notification in result.created] == [users.bob.id]
    assert result.unresolved == [users.inactive_tech.id, 4242]


async def test_broadcast_survives_a_failed_user_lookup(service, users, monkeypatch):
    original_get_user = SqlUserDirectory.get_user

    async def get_user(self, user_id):
        if user_id == users.alice.id:
            raise RuntimeError("directory timeout")
        return await original_get_user(self, user_id)

    monkeypatch.setattr(SqlUserDirectory, "get_user", get_user)

    result = await service.broadcast(_draft(), Audience.for_users([users.bob.id, users.alice.id]))
    await service.wait_for_deliveries()

    assert [notification.recipient_id for notification in result.created] == [users.bob.id]
    assert result.unresolved == [users.alice.id]


async def test_broadcast_to_empty_role_is_not_an_error(service, users):
    result = await service.broadcast(_draft(), Audience.for_role("auditor"))

    assert result.created == []
    assert result.unresolved == []


async def test_broadcast_to_everyone_skips_inactive_users(service, users):
    result = await service.broadcast(_draft(), Audience.everyone())
    await service.wait_for_deliveries()

    recipients = {notification.recipient_id for notification in result.created}
    assert users.inactive_tech.id not in recipients
    assert len(recipients) == 5


async def test_all_channels_failing_still_persists_record(service, store, users, email_sender):
    email_sender.result = False
    notification = await service.create(
        users.bob.id,
        _draft(channels=(DeliveryChannel.EMAIL, DeliveryChannel.PUSH, DeliveryChannel.SMS)),
    )

    stored = await _delivered(service, store, notification)
    assert stored.delivery_status is DeliveryStatus.FAILED
    assert set(stored.metadata[DELIVERY_ERRORS_KEY]) == {"EMAIL", "PUSH", "SMS"}
    page = await service.get_for_user(users.bob.id)
    assert [item.id for item in page.items] == [notification.id]


async def test_in_app_to_offline_user_is_delivered(service, store, users, transport):
    notification = await service.create(users.alice.id, _draft(channels=(DeliveryChannel.IN_APP,)))

    stored = await _delivered(service, store, notification)
    assert stored.delivery_status is DeliveryStatus.DELIVERED
    assert transport.sent == []


async def test_in_app_to_online_user_sends_once(service, store, users, presence, transport):
    handle = object()
    presence.register(users.alice.id, handle, "user")

    notification = await service.create(users.alice.id, _draft(channels=(DeliveryChannel.IN_APP,)))
    stored = await _delivered(service, store, notification)

    pushed = transport.payloads("notification")
    assert len(pushed) == 1
    assert transport.sent[0][0] is handle
    assert pushed[0]["data"]["id"] == notification.id
    assert stored.delivery_status is DeliveryStatus.DELIVERED


async def test_email_is_sent_to_recipient_address(service, store, users, email_sender):
    notification = await service.create(users.bob.id, _draft(channels=(DeliveryChannel.EMAIL,)))

    stored = await _delivered(service, store, notification)
    assert stored.delivery_status is DeliveryStatus.DELIVERED
    subject, html, recipient = email_sender.calls[0]
    assert recipient == "bob@example.com"
    assert "Printer offline" in subject
    assert DELIVERY_ERRORS_KEY not in stored.metadata


async def test_expired_notifications_are_hidden_by_default(service, users, clock):
    notification = await service.create(
        users.bob.id, _draft(expires_at=clock.now + timedelta(hours=1))
    )
    await service.wait_for_deliveries()
    clock.advance(hours=2)

    default_page = await service.get_for_user(users.bob.id)
    full_page = await service.get_for_user(
        users.bob.id, NotificationFilters(include_expired=True)
    )

    assert notification.id not in [item.id for item in default_page.items]
    assert notification.id in [item.id for item in full_page.items]
    assert await service.count_unread(users.bob.id) == 0


async def test_listing_is_newest_first_with_unread_count(service, users, clock):
    created = []
    for index in range(3):
        created.append(await service.create(users.bob.id, _draft(title=f"Event {index}")))
        clock.advance(minutes=1)
    await service.wait_for_deliveries()
    await service.mark_read(created[0].id, users.bob.id)

    page = await service.get_for_user(users.bob.id, page=PageRequest(page=1, size=2))

    assert [item.title for item in page.items] == ["Event 2", "Event 1"]
    assert page.total == 3
    assert page.pages == 2
    assert page.unread_count == 2

    unread_only = await service.get_for_user(
        users.bob.id, NotificationFilters(status=NotificationStatus.UNREAD)
    )
    assert unread_only.total == 2


async def test_get_for_user_filters_by_category(service, users):
    await service.create(users.bob.id, _draft(category=NotificationCategory.INCIDENT))
    await service.create(users.bob.id, _draft(category=NotificationCategory.EQUIPMENT))
    await service.wait_for_deliveries()

    page = await service.get_for_user(
        users.bob.id, NotificationFilters(category=NotificationCategory.EQUIPMENT)
    )

    assert [item.category for item in page.items] == [NotificationCategory.EQUIPMENT]


async def test_mark_all_read_and_archive_all_read(service, users):
    for _ in range(3):
        await service.create(users.bob.id, _draft())
    await service.wait_for_deliveries()

    assert await service.mark_all_read(users.bob.id) == 3
    assert await service.count_unread(users.bob.id) == 0
    assert await service.archive_all_read(users.bob.id) == 3

    page = await service.get_for_user(
        users.bob.id, NotificationFilters(status=NotificationStatus.ARCHIVED)
    )
    assert page.total == 3


async def test_stats_summarize_counts(service, users):
    first = await service.create(users.bob.id, _draft(category=NotificationCategory.INCIDENT))
    await service.create(users.bob.id, _draft(category=NotificationCategory.INCIDENT))
    await service.create(users.bob.id, _draft(category=NotificationCategory.REPORT))
    await service.wait_for_deliveries()
    await service.mark_read(first.id, users.bob.id)

    stats = await service.stats(users.bob.id)

    assert stats.total == 3
    assert stats.unread == 2
    assert stats.read == 1
    assert stats.read_percentage == pytest.approx(33.33)
    assert stats.by_category == {
        NotificationCategory.INCIDENT: 2,
        NotificationCategory.REPORT: 1,
    }


async def test_stats_keep_expired_unread_notifications_unread(service, users, clock):
    await service.create(users.bob.id, _draft())
    await service.wait_for_deliveries()
    clock.advance(days=31)

    stats = await service.stats(users.bob.id)

    assert stats.total == 1
    assert stats.unread == 1
    assert stats.read == 0
    assert stats.read_percentage == 0.0


async def test_delete_and_delete_all(service, users):
    first = await service.create(users.bob.id, _draft())
    await service.create(users.bob.id, _draft())
    await service.wait_for_deliveries()

    await service.delete(first.id, users.bob.id)
    with pytest.raises(NotificationNotFoundError):
        await service.get(first.id, users.bob.id)

    assert await service.delete_all(users.bob.id) == 1
    assert (await service.get_for_user(users.bob.id)).total == 0


async def test_cleanup_removes_only_settled_notifications_past_retention(service, users, clock):
    old_read = await service.create(users.bob.id, _draft(expires_at=clock.now + timedelta(days=365)))
    old_unread = await service.create(users.bob.id, _draft(expires_at=clock.now + timedelta(days=365)))
    await service.wait_for_deliveries()
    await service.mark_read(old_read.id, users.bob.id)

    clock.advance(days=91)
    recent = await service.create(users.bob.id, _draft())
    await service.wait_for_deliveries()
    await service.mark_read(recent.id, users.bob.id)

    assert await service.cleanup_expired() == 1

    remaining = await service.get_for_user(
        users.bob.id, NotificationFilters(include_expired=True)
    )
    assert sorted(item.id for item in remaining.items) == sorted([old_unread.id, recent.id])


async def test_cleanup_rejects_non_positive_retention(service):
    with pytest.raises(NotificationValidationError):
        await service.cleanup_expired(0)


async def test_purge_expired_deletes_past_expiry(service, users, clock):
    await service.create(users.bob.id, _draft(expires_at=clock.now + timedelta(hours=1)))
    keep = await service.create(users.bob.id, _draft())
    await service.wait_for_deliveries()
    clock.advance(hours=2)

    assert await service.purge_expired() == 1
    page = await service.get_for_user(users.bob.id, NotificationFilters(include_expired=True))
    assert [item.id for item in page.items] == [keep.id]


async def test_lifecycle_events_reach_online_owner(service, users, presence, transport):
    notification = await service.create(users.bob.id, _draft(channels=(DeliveryChannel.EMAIL,)))
    await service.wait_for_deliveries()
    presence.register(users.bob.id, object(), "user")

    await service.mark_read(notification.id, users.bob.id)
    await service.delete(notification.id, users.bob.id)

    assert [payload["type"] for payload in transport.sent[-2:]] == [
        "notification.updated",
        "notification.deleted",
    ]
    assert transport.payloads("notification.updated")[0]["data"]["status"] == "READ"


async def test_end_to_end_ticket_assignment(service, store, users):
    notification = await service.create(
        users.alice.id,
        _draft(
            title="Ticket #42 assigned",
            category=NotificationCategory.INCIDENT,
            channels=(DeliveryChannel.IN_APP, DeliveryChannel.EMAIL),
        ),
    )
    stored = await _delivered(service, store, notification)

    assert stored.delivery_status is DeliveryStatus.FAILED
    assert stored.status is NotificationStatus.UNREAD
    assert "EMAIL" in stored.metadata[DELIVERY_ERRORS_KEY]
    visible = await service.get_for_user(users.alice.id)
    assert [item.id for item in visible.items] == [notification.id]

    read = await service.mark_read(notification.id, users.alice.id)
    assert read.status is NotificationStatus.READ
    assert read.read_at is not None

    archived = await service.archive(notification.id, users.alice.id)
    assert archived.status is NotificationStatus.ARCHIVED

    await service.delete(notification.id, users.alice.id)
    assert (await service.get_for_user(users.alice.id, NotificationFilters(include_expired=True))).items == []
