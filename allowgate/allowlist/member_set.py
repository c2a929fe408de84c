"""
Durable Allowlist Set: SQLAlchemy-backed, append-only.

The authoritative collection of member addresses. add_if_absent relies on the
unique constraint on allowlist_members.address, so two concurrent adds of the
same address cannot both report "newly added". Every database failure other
than that constraint surfaces as StorageUnavailable.
"""

from __future__ import annotations

import time

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from allowgate.allowgate_logging import get_logger, short_address
from allowgate.core.exceptions import StorageUnavailable
from allowgate.database import AllowlistMember, session_scope

logger = get_logger(__name__)


class MemberSet:
    """Set semantics over allowlist_members. Callers pass canonical addresses."""

    def __init__(self, database_url: str | None = None) -> None:
        self._url = database_url

    def contains(self, address: str) -> bool:
        try:
            with session_scope(self._url) as session:
                row = (
                    session.query(AllowlistMember.id)
                    .filter(AllowlistMember.address == address)
                    .first()
                )
                return row is not None
        except SQLAlchemyError as e:
            logger.exception("member_set_contains_failed", address=short_address(address), error=str(e))
            raise StorageUnavailable("Failed to check allowlist status") from e

    def add_if_absent(self, address: str) -> bool:
        """Insert address. Returns True if newly added, False if it was already present."""
        try:
            with session_scope(self._url) as session:
                session.add(AllowlistMember(address=address, added_at=int(time.time())))
                session.flush()
            return True
        except IntegrityError:
            return False
        except SQLAlchemyError as e:
            logger.exception("member_set_add_failed", address=short_address(address), error=str(e))
            raise StorageUnavailable("Failed to add address to allowlist") from e

    def members(self) -> list[str]:
        try:
            with session_scope(self._url) as session:
                rows = session.query(AllowlistMember.address).order_by(AllowlistMember.id).all()
                return [r[0] for r in rows]
        except SQLAlchemyError as e:
            logger.exception("member_set_list_failed", error=str(e))
            raise StorageUnavailable("Failed to fetch allowlist") from e

    def version(self) -> int:
        """
        Set-version counter. The set only grows, so its size increases by
        exactly one on every successful add and is shared by all processes.
        """
        try:
            with session_scope(self._url) as session:
                return int(session.query(func.count(AllowlistMember.id)).scalar() or 0)
        except SQLAlchemyError as e:
            logger.exception("member_set_version_failed", error=str(e))
            raise StorageUnavailable("Failed to read allowlist version") from e
