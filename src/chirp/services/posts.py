"""Service-level helpers for creating and deleting posts."""
from __future__ import annotations

import logging

from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from chirp.core.errors import NotFoundError, ValidationError
from chirp.core.settings import settings
from chirp.models import Media, MediaType, Notification, NotificationType, Post, User
from chirp.services.media import discard_uploaded, has_file, upload_image
from chirp.services.storage import MediaStorageClient, StoredMedia

logger = logging.getLogger(__name__)

__all__ = ["create_post", "delete_post"]


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


async def create_post(
    db: Session,
    storage: MediaStorageClient,
    author: User,
    *,
    content: str | None = None,
    gif: str | None = None,
    parent_id: int | None = None,
    image: UploadFile | None = None,
) -> Post:
    """Create a post, optionally as a reply and with one image or GIF.

    Lookups finish and their transaction ends before the image is uploaded,
    so no database lock is held during the network call. If the post cannot
    be committed afterwards, the uploaded object is destroyed again.

    Raises:
        ValidationError: If there is no content, image or GIF, or the image is invalid.
        NotFoundError: If ``parent_id`` does not reference an existing post.
        ExternalServiceError: If the image upload fails.
    """
    content = _clean(content)
    gif = _clean(gif)
    with_image = has_file(image)
    if not content and not with_image and not gif:
        raise ValidationError("Content or image required")

    author_id, author_name = author.id, author.username
    parent_author_id: int | None = None
    if parent_id is not None:
        parent = db.get(Post, parent_id)
        if parent is None:
            raise NotFoundError("Parent post not found")
        parent_author_id = parent.author_id

    uploaded: StoredMedia | None = None
    if with_image:
        # End the read transaction; no lock is held across the upload.
        db.commit()
        uploaded = await upload_image(storage, image, folder=settings.storage_post_folder)

    post = Post(content=content, author_id=author_id, parent_id=parent_id)
    if uploaded is not None:
        post.media.append(
            Media(url=uploaded.url, storage_id=uploaded.storage_id, type=MediaType.IMAGE)
        )
    elif gif:
        post.media.append(Media(url=gif, type=MediaType.GIF))

    if parent_author_id is not None and parent_author_id != author_id:
        post.notifications.append(
            Notification(
                user_id=parent_author_id,
                type=NotificationType.REPLY,
                related_user_id=author_id,
                content=f"{author_name} replied to your post",
            )
        )

    db.add(post)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        if uploaded is not None:
            await discard_uploaded(storage, uploaded.storage_id)
        raise

    db.refresh(post)
    logger.info("User %s created post %s", author_id, post.id)
    return post


def _thread_storage_ids(post: Post) -> list[str]:
    """Storage ids of uploaded images in ``post`` and every reply below it."""
    storage_ids: list[str] = []
    pending = [post]
    while pending:
        current = pending.pop()
        storage_ids.extend(
            media.storage_id
            for media in current.media
            if media.type is MediaType.IMAGE and media.storage_id
        )
        pending.extend(current.replies)
    return storage_ids


async def delete_post(
    db: Session,
    storage: MediaStorageClient,
    user: User,
    post_id: int,
) -> None:
    """Delete one of the caller's posts together with its thread and media.

    The rows are deleted and committed first. Stored images are destroyed
    afterwards, outside any transaction; an image that cannot be destroyed is
    logged for reconciliation and does not fail the request.

    Raises:
        NotFoundError: If the post does not exist or belongs to someone else.
    """
    user_id = user.id
    post = db.query(Post).filter(Post.id == post_id, Post.author_id == user_id).first()
    if post is None:
        raise NotFoundError("Post not found or user does not own the post")

    storage_ids = _thread_storage_ids(post)
    try:
        db.delete(post)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    for storage_id in storage_ids:
        await discard_uploaded(storage, storage_id)

    logger.info(
        "User %s deleted post %s (%d stored images released)",
        user_id,
        post_id,
        len(storage_ids),
    )
