"""Dispatch a stored notification to its channels and record the outcome."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

import anyio

from servicedesk.application.ports import NotificationStore, UserDirectory
from servicedesk.domain.entities import DeliveryChannel, DeliveryStatus, Notification, User
from servicedesk.domain.errors import ChannelDeliveryError

from .channels import DeliveryOutcome, NotificationChannel, OutcomeStatus

logger = logging.getLogger(__name__)

DELIVERY_ERRORS_KEY = "delivery_errors"


def summarize_outcomes(
    outcomes: Sequence[DeliveryOutcome],
) -> tuple[DeliveryStatus, dict[str, str]]:
    """Fold per-channel outcomes into a delivery status plus error details.

    Deferred outcomes are neutral: the status is FAILED only when at least one
    channel failed and none actually sent the message.
    """

    errors = {
        outcome.channel.value: outcome.detail or "delivery failed"
        for outcome in outcomes
        if outcome.is_failure
    }
    sent = any(outcome.status is OutcomeStatus.SENT for outcome in outcomes)
    if errors and not sent:
        return DeliveryStatus.FAILED, errors
    return DeliveryStatus.DELIVERED, errors


class DeliveryOrchestrator:
    """Invoke every requested channel concurrently and write back the status."""

    def __init__(
        self,
        store: NotificationStore,
        directory: UserDirectory,
        channels: Iterable[NotificationChannel],
        *,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._store = store
        self._directory = directory
        self._channels: Mapping[DeliveryChannel, NotificationChannel] = {
            channel.channel: channel for channel in channels
        }
        self._timeout_seconds = timeout_seconds

    @property
    def store(self) -> NotificationStore:
        return self._store

    async def deliver(
        self,
        notification: Notification,
        channels: Iterable[DeliveryChannel] | None = None,
    ) -> Notification:
        """Attempt delivery and persist the aggregated delivery status."""

        requested = list(dict.fromkeys(channels or notification.channels))
        recipient = await self._directory.get_user(notification.recipient_id)
        outcomes = await self.dispatch(notification, recipient, requested)
        status, errors = summarize_outcomes(outcomes)

        changes: dict[str, object] = {"delivery_status": status}
        if errors:
            changes["metadata"] = {**notification.metadata, DELIVERY_ERRORS_KEY: errors}
            logger.warning(
                "Notification %s delivery %s; channel errors: %s",
                notification.id,
                status.value,
                errors,
            )
        return await self._store.update(notification.id, changes)

    async def dispatch(
        self,
        notification: Notification,
        recipient: User | None,
        requested: Sequence[DeliveryChannel],
    ) -> list[DeliveryOutcome]:
        results: dict[DeliveryChannel, DeliveryOutcome] = {}

        async def attempt(channel: DeliveryChannel) -> None:
            results[channel] = await self._attempt(notification, recipient, channel)

        async with anyio.create_task_group() as group:
            for channel in requested:
                group.start_soon(attempt, channel)
        return [results[channel] for channel in requested]

    async def _attempt(
        self,
        notification: Notification,
        recipient: User | None,
        channel: DeliveryChannel,
    ) -> DeliveryOutcome:
        sender = self._channels.get(channel)
        if sender is None:
            return DeliveryOutcome.failed(channel, "channel not configured")
        if recipient is None:
            return DeliveryOutcome.failed(channel, "recipient not found")

        try:
            with anyio.fail_after(self._timeout_seconds):
                return await sender.send(notification, recipient)
        except ChannelDeliveryError as exc:
            return DeliveryOutcome.failed(channel, str(exc))
        except TimeoutError:
            return DeliveryOutcome.failed(
                channel, f"timed out after {self._timeout_seconds:g}s"
            )
        except Exception as exc:
            logger.exception(
                "Unexpected error delivering notification %s via %s",
                notification.id,
                channel.value,
            )
            return DeliveryOutcome.failed(channel, f"unexpected error: {exc}")


__all__ = ["DELIVERY_ERRORS_KEY", "DeliveryOrchestrator", "summarize_outcomes"]
