"""Delivery channel implementations."""

from .base import DeliveryOutcome, NotificationChannel, OutcomeStatus
from .email import EmailChannel
from .in_app import InAppChannel
from .push import PushChannel, PushGateway
from .sms import SmsChannel, SmsGateway

__all__ = [
    "DeliveryOutcome",
    "EmailChannel",
    "InAppChannel",
    "NotificationChannel",
    "OutcomeStatus",
    "PushChannel",
    "PushGateway",
    "SmsChannel",
    "SmsGateway",
]
