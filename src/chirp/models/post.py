"""SQLAlchemy models for posts and their attached media."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chirp.db.session import Base
from chirp.db.time import utcnow

if TYPE_CHECKING:
    from .interaction import Bookmark, Like, Repost
    from .notification import Notification
    from .user import User


class MediaType(str, enum.Enum):
    """Kind of media attached to a post."""

    IMAGE = "IMAGE"
    GIF = "GIF"


class Post(Base):
    """Primary content entity produced by users.

    Top-level posts have ``parent_id = NULL``; replies point at their parent.
    Deleting a post removes its media rows, interactions, notifications and
    the whole reply subtree.
    """

    __tablename__ = "post"
    __table_args__ = (
        Index("ix_post_parent_created", "parent_id", "created_at"),
        Index("ix_post_author_id", "author_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    author_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False
    )
    parent_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("post.id", ondelete="CASCADE"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    author: Mapped[User] = relationship("User")
    parent: Mapped[Post | None] = relationship(
        "Post", remote_side=[id], back_populates="replies"
    )
    replies: Mapped[list[Post]] = relationship(
        "Post", back_populates="parent", cascade="all, delete-orphan"
    )
    media: Mapped[list[Media]] = relationship(
        "Media",
        back_populates="post",
        cascade="all, delete-orphan",
        order_by="Media.id",
    )
    likes: Mapped[list[Like]] = relationship("Like", cascade="all, delete-orphan")
    reposts: Mapped[list[Repost]] = relationship("Repost", cascade="all, delete-orphan")
    bookmarks: Mapped[list[Bookmark]] = relationship("Bookmark", cascade="all, delete-orphan")
    notifications: Mapped[list[Notification]] = relationship(
        "Notification", cascade="all, delete-orphan"
    )


class Media(Base):
    """Image or GIF attached to exactly one post."""

    __tablename__ = "media"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("post.id", ondelete="CASCADE"), nullable=False, index=True
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    # Identifier in the storage service; NULL for externally hosted GIFs.
    storage_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[MediaType] = mapped_column(
        Enum(MediaType, name="media_type", native_enum=False), nullable=False
    )

    post: Mapped[Post] = relationship("Post", back_populates="media")
