"""Background scheduling of notification deliveries."""

from __future__ import annotations

import asyncio
import logging

from servicedesk.domain.entities import DeliveryStatus, Notification
from servicedesk.domain.errors import NotificationNotFoundError

from .orchestrator import DeliveryOrchestrator

logger = logging.getLogger(__name__)


class DeliveryWorker:
    """Run deliveries as tasks detached from the request that created them.

    Callers never await a delivery; they poll the record's delivery status.
    ``drain`` exists for shutdown and tests.
    """

    def __init__(self, orchestrator: DeliveryOrchestrator) -> None:
        self._orchestrator = orchestrator
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, notification: Notification) -> asyncio.Task:
        """Schedule delivery of ``notification`` on the running event loop."""

        loop = asyncio.get_running_loop()
        task = loop.create_task(
            self._run(notification), name=f"deliver-notification-{notification.id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self, timeout: float | None = None) -> None:
        """Wait until every scheduled delivery has finished."""

        while self._tasks:
            pending = list(self._tasks)
            _, not_done = await asyncio.wait(pending, timeout=timeout)
            if not_done:
                logger.warning("%s deliveries still running after %ss", len(not_done), timeout)
                return

    async def _run(self, notification: Notification) -> None:
        try:
            await self._orchestrator.deliver(notification)
        except NotificationNotFoundError:
            logger.info("Notification %s was removed before delivery finished", notification.id)
        except Exception:
            logger.exception("Delivery of notification %s crashed", notification.id)
            await self._mark_failed(notification)

    async def _mark_failed(self, notification: Notification) -> None:
        store = self._orchestrator.store
        try:
            await store.update(notification.id, {"delivery_status": DeliveryStatus.FAILED})
        except Exception:
            logger.exception("Could not record failed delivery for notification %s", notification.id)


__all__ = ["DeliveryWorker"]
