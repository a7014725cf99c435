"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .common import ApiModel, Page, SuccessResponse, ToggleResponse
from .notification import MarkReadResponse, NotificationResponse
from .post import (
    FeedPage,
    FeedPost,
    MediaResponse,
    PostCounts,
    PostResponse,
    RepliesPage,
    TimelinePage,
    TimelinePost,
)
from .user import (
    LoginRequest,
    ProfileResponse,
    PublicProfile,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserListItem,
    UserSummary,
)

__all__ = [
    "ApiModel", "Page", "SuccessResponse", "ToggleResponse",
    "MarkReadResponse", "NotificationResponse",
    "FeedPage", "FeedPost", "MediaResponse", "PostCounts", "PostResponse",
    "RepliesPage", "TimelinePage", "TimelinePost",
    "LoginRequest", "ProfileResponse", "PublicProfile", "RegisterRequest",
    "RegisterResponse", "TokenResponse", "UserListItem", "UserSummary",
]
