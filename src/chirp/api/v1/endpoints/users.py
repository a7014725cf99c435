# src/chirp/api/v1/endpoints/users.py
"""User directory, follow, notification and profile endpoints."""

from typing import Annotated

from fastapi import APIRouter, File, Form, UploadFile

from chirp.models import Notification, User
from chirp.schemas.common import ToggleResponse
from chirp.schemas.notification import MarkReadResponse, NotificationResponse
from chirp.schemas.user import ProfileResponse, UserListItem
from chirp.services import profiles
from chirp.services.interactions import RelationKind, toggle_relation

from ..dependencies import CurrentUserDep, SessionDep, StorageDep

router = APIRouter(prefix="/user", tags=["users"])


@router.get("", response_model=list[UserListItem])
async def get_all_users(current_user: CurrentUserDep, db: SessionDep) -> list[UserListItem]:
    """List every other user with whether the caller follows them."""
    return profiles.list_users(db, current_user)


@router.get("/notifications", response_model=list[NotificationResponse])
async def get_notifications(current_user: CurrentUserDep, db: SessionDep) -> list[Notification]:
    """List the caller's notifications, newest first."""
    return profiles.list_notifications(db, current_user)


@router.post("/notifications", response_model=MarkReadResponse)
async def mark_all_notifications(current_user: CurrentUserDep, db: SessionDep) -> MarkReadResponse:
    """Mark all of the caller's notifications as read."""
    updated = profiles.mark_notifications_read(db, current_user)
    return MarkReadResponse(updated=updated)


@router.post("/{user_id}/follow", response_model=ToggleResponse)
async def toggle_follow(user_id: int, current_user: CurrentUserDep, db: SessionDep) -> ToggleResponse:
    """Follow the user, or unfollow if already following."""
    result = toggle_relation(db, RelationKind.FOLLOW, current_user, user_id)
    return ToggleResponse(active=result.active)


@router.post("/edit", response_model=ProfileResponse)
async def edit_profile(
    current_user: CurrentUserDep,
    db: SessionDep,
    storage: StorageDep,
    username: Annotated[str | None, Form()] = None,
    bio: Annotated[str | None, Form()] = None,
    avatar: Annotated[UploadFile | None, File()] = None,
    banner: Annotated[UploadFile | None, File()] = None,
) -> User:
    """Update username, bio, avatar or banner; unchanged fields are left alone."""
    return await profiles.edit_profile(
        db,
        storage,
        current_user,
        username=username,
        bio=bio,
        avatar=avatar,
        banner=banner,
    )
