"""Notification tokens, dispatcher, and inbound lifecycle event ingestion."""

from allowgate.notifications.dispatcher import NotificationDispatcher, SendResult, SendStatus
from allowgate.notifications.events import (
    MiniAppAdded,
    MiniAppRemoved,
    NotificationsDisabled,
    NotificationsEnabled,
    WebhookEvent,
    parse_event,
)
from allowgate.notifications.ingestion import EventIngestor
from allowgate.notifications.signature import neynar_app_key_check, verify_envelope, verify_signed_event
from allowgate.notifications.tokens import NotificationDetails, SendLedger, TokenStore

__all__ = [
    "EventIngestor",
    "MiniAppAdded",
    "MiniAppRemoved",
    "NotificationDetails",
    "NotificationDispatcher",
    "NotificationsDisabled",
    "NotificationsEnabled",
    "SendLedger",
    "SendResult",
    "SendStatus",
    "TokenStore",
    "WebhookEvent",
    "neynar_app_key_check",
    "parse_event",
    "verify_envelope",
    "verify_signed_event",
]
