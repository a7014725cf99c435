# src/chirp/models/__init__.py
"""SQLAlchemy models for the Chirp application."""

from .follow import Follow
from .interaction import Bookmark, Like, Repost
from .notification import Notification, NotificationType
from .post import Media, MediaType, Post
from .user import User

__all__ = [
    "Bookmark", "Like", "Repost",
    "Follow",
    "Media", "MediaType", "Post",
    "Notification", "NotificationType",
    "User",
]
