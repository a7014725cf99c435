"""Profile editing and viewer-scoped projections of users and notifications."""
from __future__ import annotations

import logging

from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from chirp.core.errors import ChirpError, ValidationError
from chirp.core.settings import settings
from chirp.models import Follow, Notification, User
from chirp.schemas.user import UserListItem
from chirp.services.media import discard_uploaded, has_file, upload_image
from chirp.services.storage import MediaStorageClient, StoredMedia

logger = logging.getLogger(__name__)

__all__ = [
    "edit_profile",
    "list_notifications",
    "list_users",
    "mark_notifications_read",
]

USERNAME_MAX_LENGTH = 15


async def edit_profile(
    db: Session,
    storage: MediaStorageClient,
    user: User,
    *,
    username: str | None = None,
    bio: str | None = None,
    avatar: UploadFile | None = None,
    banner: UploadFile | None = None,
) -> User:
    """Apply the changed profile fields and swap avatar/banner images.

    New images are uploaded outside any transaction, before anything is
    written. Previous images are destroyed only after the new ones are
    committed; if the commit fails the new uploads are destroyed instead.
    """
    changes: dict[str, str] = {}
    if username is not None:
        username = username.strip()
        if len(username) > USERNAME_MAX_LENGTH:
            raise ValidationError(f"Username must be at most {USERNAME_MAX_LENGTH} characters")
        if username and username != user.username:
            changes["username"] = username
    if bio and bio != user.bio:
        changes["bio"] = bio

    uploads: dict[str, StoredMedia] = {}
    previous_ids = {"avatar": user.avatar_storage_id, "banner": user.banner_storage_id}
    if has_file(avatar) or has_file(banner):
        # End the read transaction; no lock is held across the uploads.
        db.commit()
    try:
        if has_file(avatar):
            uploads["avatar"] = await upload_image(
                storage, avatar, folder=settings.storage_profile_folder
            )
        if has_file(banner):
            uploads["banner"] = await upload_image(
                storage, banner, folder=settings.storage_profile_folder
            )
    except ChirpError:
        for stored in uploads.values():
            await discard_uploaded(storage, stored.storage_id)
        raise

    replaced: list[str] = []
    for field_name, stored in uploads.items():
        previous = previous_ids[field_name]
        if previous:
            replaced.append(previous)
        changes[field_name] = stored.url
        changes[f"{field_name}_storage_id"] = stored.storage_id

    if not changes:
        return user

    for field_name, value in changes.items():
        setattr(user, field_name, value)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        for stored in uploads.values():
            await discard_uploaded(storage, stored.storage_id)
        raise

    for storage_id in replaced:
        await discard_uploaded(storage, storage_id)

    db.refresh(user)
    logger.info("User %s updated profile fields: %s", user.id, ", ".join(sorted(changes)))
    return user


def list_users(db: Session, viewer: User) -> list[UserListItem]:
    """Return every other user, flagged when the viewer follows them."""
    users = db.query(User).filter(User.id != viewer.id).order_by(User.username, User.id).all()
    followed = {
        following_id
        for (following_id,) in db.query(Follow.following_id).filter(
            Follow.follower_id == viewer.id
        )
    }
    return [
        UserListItem(
            id=user.id,
            username=user.username,
            avatar=user.avatar,
            handler=user.handler,
            bio=user.bio,
            is_following=user.id in followed,
        )
        for user in users
    ]


def list_notifications(db: Session, user: User) -> list[Notification]:
    """Return the user's notifications, newest first."""
    return (
        db.query(Notification)
        .options(selectinload(Notification.related_user))
        .filter(Notification.user_id == user.id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .all()
    )


def mark_notifications_read(db: Session, user: User) -> int:
    """Mark all unread notifications of ``user`` as read; return how many changed."""
    try:
        updated = (
            db.query(Notification)
            .filter(Notification.user_id == user.id, Notification.read.is_(False))
            .update({Notification.read: True}, synchronize_session="fetch")
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    return int(updated)
