"""
SQLAlchemy models for the durable stores.

No business logic here; the allowlist store and notification modules own semantics.
"""

from __future__ import annotations

from sqlalchemy import Column, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class AllowlistMember(Base):
    """
    One row per allowlisted address (canonical lower-hex). Append-only; the
    unique constraint is what makes add-if-absent atomic.
    """

    __tablename__ = "allowlist_members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    address = Column(String(42), unique=True, nullable=False, index=True)
    added_at = Column(Integer, nullable=False)  # Unix


class NotificationToken(Base):
    """Push notification token per recipient (platform user id)."""

    __tablename__ = "notification_tokens"

    recipient_id = Column(Integer, primary_key=True, autoincrement=False)
    token = Column(String(512), nullable=False)
    url = Column(Text, nullable=False)
    saved_at = Column(Integer, nullable=False)  # Unix


class NotificationSend(Base):
    """
    Ledger of claimed sends per (notification_id, recipient_id). A row is a
    claim on the dedup window; it is released when the delivery does not happen.
    """

    __tablename__ = "notification_sends"
    __table_args__ = (UniqueConstraint("notification_id", "recipient_id", name="uq_notification_recipient"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    notification_id = Column(String(128), nullable=False, index=True)
    recipient_id = Column(Integer, nullable=False, index=True)
    sent_at = Column(Integer, nullable=False)  # Unix
