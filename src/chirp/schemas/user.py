"""User-related Pydantic schemas."""

import re

from pydantic import BaseModel, EmailStr, Field, field_validator

from chirp.core.security import MAX_PASSWORD_BYTES

from .common import ApiModel, SuccessResponse

HANDLER_PATTERN = re.compile(r"^[A-Za-z0-9_]{1,30}$")


class RegisterRequest(BaseModel):
    """Schema for account registration."""

    email: EmailStr
    password: str = Field(..., min_length=8)
    username: str = Field(..., min_length=1, max_length=15)
    handler: str = Field(..., description="Unique public @-name")

    @field_validator("handler")
    @classmethod
    def validate_handler(cls, v: str) -> str:
        """Accept an optional leading ``@`` and require word characters only."""
        v = v.strip().removeprefix("@")
        if not HANDLER_PATTERN.match(v):
            raise ValueError("Handler must be 1-30 letters, digits or underscores")
        return v

    @field_validator("password")
    @classmethod
    def validate_password_bytes(cls, v: str) -> str:
        """Bound the UTF-8 length, not the character count."""
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return v


class LoginRequest(BaseModel):
    """Schema for login submissions."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    """Bearer token returned after a successful login."""

    token: str


class UserSummary(ApiModel):
    """Minimal author/actor fields embedded in posts and notifications."""

    id: int
    username: str
    avatar: str | None = None
    handler: str


class ProfileResponse(UserSummary):
    """The caller's own profile."""

    email: str
    banner: str | None = None
    bio: str | None = None


class UserListItem(UserSummary):
    """Another user as seen by the caller."""

    bio: str | None = None
    is_following: bool = False


class PublicProfile(UserSummary):
    """Profile header shown above a user's timeline."""

    bio: str | None = None
    banner: str | None = None
    followers: int = 0
    following: int = 0


class RegisterResponse(SuccessResponse):
    """Registration acknowledgement."""
