"""
Event ingestion: verify, parse, and apply lifecycle events to the token store.

added (with details) / enabled -> save token
removed / disabled             -> delete token
"""

from __future__ import annotations

import asyncio
from typing import Any

from allowgate.allowgate_logging import get_logger
from allowgate.notifications.events import (
    MiniAppAdded,
    MiniAppRemoved,
    NotificationsDisabled,
    NotificationsEnabled,
    WebhookEvent,
    parse_event,
)
from allowgate.notifications.signature import AppKeyCheck, verify_signed_event
from allowgate.notifications.tokens import TokenStore

logger = get_logger(__name__)


class EventIngestor:
    def __init__(self, tokens: TokenStore, is_active_app_key: AppKeyCheck) -> None:
        self._tokens = tokens
        self._is_active_app_key = is_active_app_key

    async def ingest(self, body: Any) -> tuple[int, WebhookEvent]:
        signed = await verify_signed_event(body, self._is_active_app_key)
        event = parse_event(signed.payload)
        await asyncio.to_thread(self.apply, signed.fid, event)
        logger.info("webhook_event_ingested", fid=signed.fid, webhook_event=event.event)
        return signed.fid, event

    def apply(self, fid: int, event: WebhookEvent) -> None:
        if isinstance(event, (MiniAppAdded, NotificationsEnabled)):
            if event.notification_details is not None:
                self._tokens.save(fid, event.notification_details.to_details())
        elif isinstance(event, (MiniAppRemoved, NotificationsDisabled)):
            self._tokens.delete(fid)
