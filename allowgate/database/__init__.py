"""
Database layer: durable allowlist set, notification tokens, notification send ledger.

SQLAlchemy-backed; uses ALLOWGATE_DB_URL / DATABASE_URL for PostgreSQL when set,
otherwise falls back to a local SQLite file.
"""

from allowgate.database.engine import (
    get_engine,
    init_db,
    reset_engine_for_test,
    session_scope,
)
from allowgate.database.models import AllowlistMember, Base, NotificationSend, NotificationToken

__all__ = [
    "AllowlistMember",
    "Base",
    "NotificationSend",
    "NotificationToken",
    "get_engine",
    "init_db",
    "reset_engine_for_test",
    "session_scope",
]
