"""Utility helpers to generate notifications from incident and equipment workflows."""

from __future__ import annotations

from servicedesk.domain.entities import (
    Audience,
    DeliveryChannel,
    Notification,
    NotificationAction,
    NotificationCategory,
    NotificationDraft,
    NotificationPriority,
    RelatedEntityKind,
)

from .service import NotificationService
from .validators import MESSAGE_MAX_LENGTH

INCIDENT_TRIAGE_ROLES = ("admin", "technician")


def _incident_draft(
    *,
    incident_id: int | str,
    title: str,
    message: str,
    priority: NotificationPriority,
    sender_id: int | None,
    channels: tuple[DeliveryChannel, ...],
    metadata: dict | None = None,
) -> NotificationDraft:
    link = f"/incidents/{incident_id}"
    return NotificationDraft(
        title=title,
        message=message[:MESSAGE_MAX_LENGTH],
        category=NotificationCategory.INCIDENT,
        priority=priority,
        channels=channels,
        sender_id=sender_id,
        related_entity_kind=RelatedEntityKind.INCIDENT,
        related_entity_id=str(incident_id),
        link=link,
        actions=[NotificationAction(label="View incident", url=link)],
        metadata={"incident_id": str(incident_id), **(metadata or {})},
    )


async def notify_incident_created(
    service: NotificationService,
    *,
    incident_id: int | str,
    incident_title: str,
    reported_by: int | None = None,
    priority: NotificationPriority = NotificationPriority.MEDIUM,
) -> list[Notification]:
    """Tell administrators and technicians that a new incident needs triage."""

    draft = _incident_draft(
        incident_id=incident_id,
        title=f"New incident #{incident_id}",
        message=f"A new incident was reported: {incident_title}",
        priority=priority,
        sender_id=reported_by,
        channels=(DeliveryChannel.IN_APP,),
    )
    created: list[Notification] = []
    for role in INCIDENT_TRIAGE_ROLES:
        result = await service.broadcast(draft, Audience.for_role(role))
        created.extend(result.created)
    return created


async def notify_incident_assigned(
    service: NotificationService,
    *,
    incident_id: int | str,
    incident_title: str,
    assignee_id: int,
    assigned_by: int | None = None,
    priority: NotificationPriority = NotificationPriority.HIGH,
) -> Notification:
    """Tell the assignee that an incident is now theirs."""

    draft = _incident_draft(
        incident_id=incident_id,
        title=f"Ticket #{incident_id} assigned",
        message=f"You have been assigned the incident: {incident_title}",
        priority=priority,
        sender_id=assigned_by,
        channels=(DeliveryChannel.IN_APP, DeliveryChannel.EMAIL),
    )
    return await service.create(assignee_id, draft)


async def notify_incident_updated(
    service: NotificationService,
    *,
    incident_id: int | str,
    incident_title: str,
    reporter_id: int,
    assignee_id: int | None = None,
    updated_by: int | None = None,
) -> list[Notification]:
    """Tell the reporter and assignee about a change, skipping whoever made it."""

    recipients = {reporter_id}
    if assignee_id is not None:
        recipients.add(assignee_id)
    recipients.discard(updated_by)
    if not recipients:
        return []

    draft = _incident_draft(
        incident_id=incident_id,
        title=f"Incident #{incident_id} updated",
        message=f"Incident updated: {incident_title}",
        priority=NotificationPriority.MEDIUM,
        sender_id=updated_by,
        channels=(DeliveryChannel.IN_APP,),
    )
    result = await service.broadcast(draft, Audience.for_users(sorted(recipients)))
    return result.created


async def notify_incident_resolved(
    service: NotificationService,
    *,
    incident_id: int | str,
    incident_title: str,
    reporter_id: int,
    resolved_by: int | None = None,
    resolution: str | None = None,
) -> Notification:
    """Tell the reporter that their incident has been resolved."""

    message = f"Your incident '{incident_title}' has been resolved."
    if resolution:
        message = f"{message} {resolution}"
    draft = _incident_draft(
        incident_id=incident_id,
        title=f"Incident #{incident_id} resolved",
        message=message,
        priority=NotificationPriority.MEDIUM,
        sender_id=resolved_by,
        channels=(DeliveryChannel.IN_APP, DeliveryChannel.EMAIL),
        metadata={"resolution": resolution} if resolution else None,
    )
    return await service.create(reporter_id, draft)


async def notify_equipment_assigned(
    service: NotificationService,
    *,
    equipment_id: int | str,
    equipment_name: str,
    holder_id: int,
    assigned_by: int | None = None,
) -> Notification:
    """Tell a user that a piece of equipment has been assigned to them."""

    link = f"/equipment/{equipment_id}"
    draft = NotificationDraft(
        title="Equipment assigned",
        message=f"Equipment {equipment_name} has been assigned to you"[:MESSAGE_MAX_LENGTH],
        category=NotificationCategory.EQUIPMENT,
        priority=NotificationPriority.MEDIUM,
        channels=(DeliveryChannel.IN_APP, DeliveryChannel.EMAIL),
        sender_id=assigned_by,
        related_entity_kind=RelatedEntityKind.EQUIPMENT,
        related_entity_id=str(equipment_id),
        link=link,
        actions=[NotificationAction(label="View equipment", url=link)],
        metadata={"equipment_id": str(equipment_id), "equipment_name": equipment_name},
    )
    return await service.create(holder_id, draft)


__all__ = [
    "notify_equipment_assigned",
    "notify_incident_assigned",
    "notify_incident_created",
    "notify_incident_resolved",
    "notify_incident_updated",
]
