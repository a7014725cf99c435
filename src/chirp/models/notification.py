"""Notifications derived from interaction events."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chirp.db.session import Base
from chirp.db.time import utcnow

if TYPE_CHECKING:
    from .user import User


class NotificationType(str, enum.Enum):
    """Event that produced a notification."""

    FOLLOW = "FOLLOW"
    LIKE = "LIKE"
    REPOST = "REPOST"
    REPLY = "REPLY"


class Notification(Base):
    """Message to ``user_id`` about something ``related_user_id`` did.

    A notification is never authoritative on its own: it is created together
    with the relation (or reply) that triggered it and removed with it.
    """

    __tablename__ = "notification"
    __table_args__ = (
        Index("ix_notification_recipient", "user_id", "created_at"),
        Index("ix_notification_event", "user_id", "type", "related_user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType, name="notification_type", native_enum=False), nullable=False
    )
    related_user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False
    )
    post_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("post.id", ondelete="CASCADE"), nullable=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    related_user: Mapped[User] = relationship("User", foreign_keys=[related_user_id])
