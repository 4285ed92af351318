"""Realtime presence and multi-channel delivery for notifications."""

from .factory import build_notification_service
from .orchestrator import DeliveryOrchestrator, summarize_outcomes
from .presence import PresenceEntry, PresenceRegistry
from .publisher import RealtimePublisher, serialize_notification
from .transport import WebSocketTransport
from .worker import DeliveryWorker

__all__ = [
    "DeliveryOrchestrator",
    "DeliveryWorker",
    "PresenceEntry",
    "PresenceRegistry",
    "RealtimePublisher",
    "WebSocketTransport",
    "build_notification_service",
    "serialize_notification",
    "summarize_outcomes",
]
