"""Notification schemas."""

from datetime import datetime

from chirp.models.notification import NotificationType

from .common import ApiModel, SuccessResponse
from .user import UserSummary


class NotificationResponse(ApiModel):
    """A notification together with the user who caused it."""

    id: int
    type: NotificationType
    content: str
    read: bool
    post_id: int | None = None
    related_user_id: int
    related_user: UserSummary
    created_at: datetime


class MarkReadResponse(SuccessResponse):
    """Number of notifications switched to read."""

    updated: int
