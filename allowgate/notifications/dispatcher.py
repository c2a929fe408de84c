"""
Notification Dispatcher.

Delivers (notification_id, title, body, target_url) to a recipient's stored
callback URL. Guarantees:
- at most one effective delivery per (notification_id, recipient) inside the
  dedup window, enforced by an atomic ledger claim;
- a token the callback reports invalid is deleted before send() returns;
- rate limiting is reported to the caller and never retried here.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import httpx

from allowgate.allowgate_logging import get_logger
from allowgate.notifications.tokens import SendLedger, TokenStore

logger = get_logger(__name__)

MAX_NOTIFICATION_ID_LENGTH = 128
MAX_TITLE_LENGTH = 32
MAX_BODY_LENGTH = 128
MAX_TARGET_URL_LENGTH = 1024


class SendStatus(str, Enum):
    DELIVERED = "delivered"
    TOKEN_INVALID = "token_invalid"
    RATE_LIMITED = "rate_limited"
    NO_TOKEN = "no_token"
    DUPLICATE = "duplicate"
    FAILED = "failed"


@dataclass(frozen=True)
class SendResult:
    status: SendStatus
    error: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return self.status is SendStatus.DELIVERED

    @property
    def token_invalid(self) -> bool:
        return self.status is SendStatus.TOKEN_INVALID

    @property
    def rate_limited(self) -> bool:
        return self.status is SendStatus.RATE_LIMITED

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "delivered": self.delivered,
            "tokenInvalid": self.token_invalid,
            "rateLimited": self.rate_limited,
            "error": self.error,
        }


def _validate(notification_id: str, title: str, body: str, target_url: str) -> None:
    if not notification_id or len(notification_id) > MAX_NOTIFICATION_ID_LENGTH:
        raise ValueError(f"notification_id must be 1-{MAX_NOTIFICATION_ID_LENGTH} characters")
    if not title or len(title) > MAX_TITLE_LENGTH:
        raise ValueError(f"title must be 1-{MAX_TITLE_LENGTH} characters")
    if not body or len(body) > MAX_BODY_LENGTH:
        raise ValueError(f"body must be 1-{MAX_BODY_LENGTH} characters")
    if not target_url or len(target_url) > MAX_TARGET_URL_LENGTH:
        raise ValueError(f"target_url must be 1-{MAX_TARGET_URL_LENGTH} characters")


class NotificationDispatcher:
    def __init__(
        self,
        http: httpx.AsyncClient,
        tokens: TokenStore | None = None,
        ledger: SendLedger | None = None,
        dedup_window_sec: int = 86400,
        target_url: str = "",
    ) -> None:
        self._http = http
        self._tokens = tokens or TokenStore()
        self._ledger = ledger or SendLedger()
        self._window = dedup_window_sec
        self._target_url = target_url

    async def send(
        self,
        recipient_id: int,
        notification_id: str,
        title: str,
        body: str,
        target_url: str,
    ) -> SendResult:
        _validate(notification_id, title, body, target_url)

        details = await asyncio.to_thread(self._tokens.get, recipient_id)
        if details is None:
            logger.info("notification_no_token", recipient_id=recipient_id, notification_id=notification_id)
            return SendResult(SendStatus.NO_TOKEN)

        claimed_at = await asyncio.to_thread(self._ledger.claim, notification_id, recipient_id, self._window)
        if claimed_at is None:
            logger.info("notification_duplicate", recipient_id=recipient_id, notification_id=notification_id)
            return SendResult(SendStatus.DUPLICATE)

        result = SendResult(SendStatus.FAILED, error="not sent")
        try:
            result = await self._post(details.url, details.token, notification_id, title, body, target_url)
            if result.token_invalid:
                await asyncio.to_thread(self._tokens.delete, recipient_id)
        finally:
            # Undelivered: release the claim.
            if not result.delivered:
                await asyncio.to_thread(self._ledger.release, notification_id, recipient_id, claimed_at)

        logger.info(
            "notification_sent",
            recipient_id=recipient_id,
            notification_id=notification_id,
            status=result.status.value,
        )
        return result

    async def _post(
        self,
        url: str,
        token: str,
        notification_id: str,
        title: str,
        body: str,
        target_url: str,
    ) -> SendResult:
        payload = {
            "notificationId": notification_id,
            "title": title,
            "body": body,
            "targetUrl": target_url,
            "tokens": [token],
        }
        try:
            response = await self._http.post(url, json=payload)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("notification_transport_error", notification_id=notification_id, error=str(e))
            return SendResult(SendStatus.FAILED, error=f"transport error ({type(e).__name__})")

        if not response.is_success:
            logger.warning(
                "notification_http_error",
                notification_id=notification_id,
                status_code=response.status_code,
            )
            return SendResult(SendStatus.FAILED, error=f"HTTP {response.status_code}")

        try:
            data = response.json()
            result = data.get("result", data)
            successful = set(result.get("successfulTokens") or [])
            invalid = set(result.get("invalidTokens") or [])
            rate_limited = set(result.get("rateLimitedTokens") or [])
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning("notification_malformed_response", notification_id=notification_id, error=str(e))
            return SendResult(SendStatus.FAILED, error="malformed response")

        if token in invalid:
            return SendResult(SendStatus.TOKEN_INVALID)
        if token in rate_limited:
            return SendResult(SendStatus.RATE_LIMITED)
        if token in successful:
            return SendResult(SendStatus.DELIVERED)
        return SendResult(SendStatus.FAILED, error="token missing from response")

    # -------------------------------------------------------------------------
    # Application notifications
    # -------------------------------------------------------------------------

    async def send_eligibility_notification(self, fid: int) -> SendResult:
        return await self.send(
            fid,
            f"eligible-{fid}",
            "You're eligible!",
            "You meet the requirements. Join the allowlist now.",
            self._target_url,
        )

    async def send_allowlist_notification(self, fid: int) -> SendResult:
        return await self.send(
            fid,
            f"allowlisted-{fid}",
            "You're on the allowlist!",
            "Your wallet has been added to the allowlist.",
            self._target_url,
        )
