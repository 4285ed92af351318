"""Endpoints and websocket handler for notifications."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Query,
    Response,
    WebSocket,
    WebSocketDisconnect,
    status,
)

from servicedesk.application.use_cases.notifications import NotificationService
from servicedesk.domain.entities import (
    Audience,
    AudienceKind,
    NotificationCategory,
    NotificationFilters,
    NotificationPriority,
    NotificationStatus,
    PageRequest,
    User,
)
from servicedesk.domain.errors import NotificationError
from servicedesk.infrastructure.database import SessionLocal
from servicedesk.infrastructure.notifications import PresenceRegistry, serialize_notification
from servicedesk.interfaces.api.dependencies import (
    get_current_active_user,
    get_notification_service,
    get_presence,
    require_admin,
    resolve_current_user,
)
from servicedesk.interfaces.api.schemas import (
    BroadcastResultRead,
    BulkOperationRead,
    CleanupResultRead,
    NotificationBroadcast,
    NotificationCreate,
    NotificationPageRead,
    NotificationRead,
    NotificationStatsRead,
    PresenceRead,
    UnreadCountRead,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])
logger = logging.getLogger(__name__)

_BACKLOG_LIMIT = 100


@router.get("/", response_model=NotificationPageRead)
async def list_notifications(
    status_filter: NotificationStatus | None = Query(default=None, alias="status"),
    category: NotificationCategory | None = None,
    priority: NotificationPriority | None = None,
    include_expired: bool = False,
    page: int = Query(default=1, ge=1),
    size: int | None = Query(default=None, ge=1),
    current_user: User = Depends(get_current_active_user),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationPageRead:
    """Return the authenticated user's notifications, newest first."""

    filters = NotificationFilters(
        status=status_filter,
        category=category,
        priority=priority,
        include_expired=include_expired,
    )
    result = await service.get_for_user(
        current_user.id, filters, service.page_request(page=page, size=size)
    )
    return NotificationPageRead(
        items=[NotificationRead.from_entity(item) for item in result.items],
        total=result.total,
        page=result.page,
        size=result.size,
        pages=result.pages,
        unread_count=result.unread_count,
    )


@router.get("/unread-count", response_model=UnreadCountRead)
async def unread_count(
    current_user: User = Depends(get_current_active_user),
    service: NotificationService = Depends(get_notification_service),
) -> UnreadCountRead:
    return UnreadCountRead(unread_count=await service.count_unread(current_user.id))


@router.get("/stats", response_model=NotificationStatsRead)
async def notification_stats(
    current_user: User = Depends(get_current_active_user),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationStatsRead:
    stats = await service.stats(current_user.id)
    return NotificationStatsRead(
        total=stats.total,
        unread=stats.unread,
        read=stats.read,
        read_percentage=stats.read_percentage,
        by_category={category.value: count for category, count in stats.by_category.items()},
    )


@router.get("/presence", response_model=PresenceRead)
def online_users(
    _: User = Depends(require_admin),
    presence: PresenceRegistry = Depends(get_presence),
) -> PresenceRead:
    """Return how many users currently hold a realtime connection."""

    return PresenceRead(**presence.online_counts())


@router.post("/", response_model=NotificationRead, status_code=status.HTTP_201_CREATED)
async def create_notification(
    payload: NotificationCreate,
    current_user: User = Depends(require_admin),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationRead:
    """Create a notification for one user; delivery continues in the background."""

    notification = await service.create(
        payload.recipient_id, payload.to_draft(sender_id=current_user.id)
    )
    return NotificationRead.from_entity(notification)


@router.post(
    "/broadcast", response_model=BroadcastResultRead, status_code=status.HTTP_201_CREATED
)
async def broadcast_notification(
    payload: NotificationBroadcast,
    current_user: User = Depends(require_admin),
    service: NotificationService = Depends(get_notification_service),
) -> BroadcastResultRead:
    """Fan a notification out to a list of users, a role or every active user."""

    result = await service.broadcast(
        payload.to_draft(sender_id=current_user.id), _audience_from(payload)
    )
    return BroadcastResultRead(
        created=result.created_count,
        notification_ids=[notification.id for notification in result.created],
        unresolved=result.unresolved,
        failed=result.failed,
    )


def _audience_from(payload: NotificationBroadcast) -> Audience:
    if payload.audience is AudienceKind.ROLE:
        if not payload.role:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="role is required when audience is 'role'",
            )
        return Audience.for_role(payload.role)
    if payload.audience in (AudienceKind.USER, AudienceKind.USERS):
        if not payload.user_ids:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="user_ids is required for user audiences",
            )
        return Audience.for_users(payload.user_ids)
    return Audience.everyone()


@router.post("/cleanup", response_model=CleanupResultRead)
async def cleanup_notifications(
    retention_days: int | None = Query(default=None, ge=1),
    _: User = Depends(require_admin),
    service: NotificationService = Depends(get_notification_service),
) -> CleanupResultRead:
    """Remove settled notifications past retention and every expired notification."""

    settled = await service.cleanup_expired(retention_days)
    expired = await service.purge_expired()
    return CleanupResultRead(
        settled_removed=settled,
        expired_removed=expired,
        retention_days=retention_days or service.retention_days,
    )


@router.put("/read-all", response_model=BulkOperationRead)
async def mark_all_read(
    current_user: User = Depends(get_current_active_user),
    service: NotificationService = Depends(get_notification_service),
) -> BulkOperationRead:
    return BulkOperationRead(count=await service.mark_all_read(current_user.id))


@router.put("/archive-read", response_model=BulkOperationRead)
async def archive_all_read(
    current_user: User = Depends(get_current_active_user),
    service: NotificationService = Depends(get_notification_service),
) -> BulkOperationRead:
    return BulkOperationRead(count=await service.archive_all_read(current_user.id))


@router.delete("/", response_model=BulkOperationRead)
async def delete_all_notifications(
    current_user: User = Depends(get_current_active_user),
    service: NotificationService = Depends(get_notification_service),
) -> BulkOperationRead:
    return BulkOperationRead(count=await service.delete_all(current_user.id))


@router.get("/{notification_id}", response_model=NotificationRead)
async def get_notification(
    notification_id: int,
    current_user: User = Depends(get_current_active_user),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationRead:
    return NotificationRead.from_entity(await service.get(notification_id, current_user.id))


@router.put("/{notification_id}/read", response_model=NotificationRead)
async def mark_notification_read(
    notification_id: int,
    current_user: User = Depends(get_current_active_user),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationRead:
    notification = await service.mark_read(notification_id, current_user.id)
    return NotificationRead.from_entity(notification)


@router.put("/{notification_id}/archive", response_model=NotificationRead)
async def archive_notification(
    notification_id: int,
    current_user: User = Depends(get_current_active_user),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationRead:
    notification = await service.archive(notification_id, current_user.id)
    return NotificationRead.from_entity(notification)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: int,
    current_user: User = Depends(get_current_active_user),
    service: NotificationService = Depends(get_notification_service),
) -> Response:
    await service.delete(notification_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams notifications to the authenticated user."""

    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=1008)
        return

    session = SessionLocal()
    try:
        user = resolve_current_user(token, session)
    except HTTPException:
        await websocket.close(code=1008)
        return
    finally:
        session.close()

    if not user.can_receive:
        await websocket.close(code=1008)
        return

    service: NotificationService = websocket.app.state.notification_service
    presence: PresenceRegistry = websocket.app.state.presence

    await websocket.accept()
    presence.register(user.id, websocket, user.role.alias)
    try:
        backlog = await service.get_for_user(
            user.id,
            NotificationFilters(status=NotificationStatus.UNREAD),
            PageRequest(page=1, size=_BACKLOG_LIMIT),
        )
        if backlog.items:
            await websocket.send_json(
                {"type": "init", "data": [serialize_notification(n) for n in backlog.items]}
            )
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                continue

            if not isinstance(message, dict):
                continue

            message_type = message.get("type")
            if message_type == "ping":
                await websocket.send_json({"type": "pong"})
                continue

            if message_type == "ack":
                await _acknowledge(service, user.id, message.get("ids"))
    except WebSocketDisconnect:
        pass
    finally:
        presence.unregister(user.id, websocket)


async def _acknowledge(service: NotificationService, user_id: int, ids: Any) -> None:
    if not isinstance(ids, list):
        return
    for notification_id in ids:
        if not isinstance(notification_id, int):
            continue
        try:
            await service.mark_read(notification_id, user_id)
        except NotificationError as exc:
            logger.debug("Ignoring ack for notification %s: %s", notification_id, exc)
