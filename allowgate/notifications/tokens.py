"""
Notification token store and send ledger (SQLAlchemy).

TokenStore is a narrow key-value store: recipient id -> (token, callback url).
SendLedger records claims on (notification_id, recipient_id) so the same
notification reaches a recipient at most once per dedup window.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from allowgate.allowgate_logging import get_logger
from allowgate.core.exceptions import StorageUnavailable
from allowgate.database import NotificationSend, NotificationToken, session_scope

logger = get_logger(__name__)


@dataclass(frozen=True)
class NotificationDetails:
    """Per-recipient delivery target: opaque token plus the callback URL that accepts it."""

    token: str
    url: str


class TokenStore:
    def __init__(self, database_url: str | None = None) -> None:
        self._url = database_url

    def save(self, recipient_id: int, details: NotificationDetails) -> None:
        """Insert or replace the token for recipient_id."""
        try:
            with session_scope(self._url) as session:
                session.merge(
                    NotificationToken(
                        recipient_id=recipient_id,
                        token=details.token,
                        url=details.url,
                        saved_at=int(time.time()),
                    )
                )
            logger.info("notification_token_saved", recipient_id=recipient_id)
        except SQLAlchemyError as e:
            logger.exception("notification_token_save_failed", recipient_id=recipient_id, error=str(e))
            raise StorageUnavailable("Failed to save notification token") from e

    def get(self, recipient_id: int) -> NotificationDetails | None:
        try:
            with session_scope(self._url) as session:
                row = session.get(NotificationToken, recipient_id)
                if row is None:
                    return None
                return NotificationDetails(token=row.token, url=row.url)
        except SQLAlchemyError as e:
            logger.exception("notification_token_get_failed", recipient_id=recipient_id, error=str(e))
            raise StorageUnavailable("Failed to read notification token") from e

    def delete(self, recipient_id: int) -> bool:
        """Remove the token. Returns True if one existed."""
        try:
            with session_scope(self._url) as session:
                deleted = (
                    session.query(NotificationToken)
                    .filter(NotificationToken.recipient_id == recipient_id)
                    .delete(synchronize_session=False)
                )
            if deleted:
                logger.info("notification_token_deleted", recipient_id=recipient_id)
            return bool(deleted)
        except SQLAlchemyError as e:
            logger.exception("notification_token_delete_failed", recipient_id=recipient_id, error=str(e))
            raise StorageUnavailable("Failed to delete notification token") from e

    def exists(self, recipient_id: int) -> bool:
        return self.get(recipient_id) is not None


class SendLedger:
    """Claims on (notification_id, recipient_id), one row per pair."""

    def __init__(self, database_url: str | None = None) -> None:
        self._url = database_url

    def claim(self, notification_id: str, recipient_id: int, window_sec: int, now: int | None = None) -> int | None:
        """
        Atomically claim a send. Returns the claim timestamp, or None when the
        pair was already claimed inside the window.
        """
        now = int(time.time()) if now is None else now
        try:
            try:
                with session_scope(self._url) as session:
                    session.add(NotificationSend(notification_id=notification_id, recipient_id=recipient_id, sent_at=now))
                    session.flush()
                return now
            except IntegrityError:
                pass
            # Existing claim: take it over only if it fell out of the window.
            with session_scope(self._url) as session:
                updated = (
                    session.query(NotificationSend)
                    .filter(
                        NotificationSend.notification_id == notification_id,
                        NotificationSend.recipient_id == recipient_id,
                        NotificationSend.sent_at <= now - window_sec,
                    )
                    .update({NotificationSend.sent_at: now}, synchronize_session=False)
                )
            return now if updated == 1 else None
        except SQLAlchemyError as e:
            logger.exception("notification_claim_failed", notification_id=notification_id, error=str(e))
            raise StorageUnavailable("Failed to record notification send") from e

    def release(self, notification_id: str, recipient_id: int, claimed_at: int) -> None:
        """Drop a claim whose delivery did not happen; a newer claim is left alone."""
        try:
            with session_scope(self._url) as session:
                session.query(NotificationSend).filter(
                    NotificationSend.notification_id == notification_id,
                    NotificationSend.recipient_id == recipient_id,
                    NotificationSend.sent_at == claimed_at,
                ).delete(synchronize_session=False)
        except SQLAlchemyError as e:
            logger.exception("notification_release_failed", notification_id=notification_id, error=str(e))
            raise StorageUnavailable("Failed to release notification claim") from e
