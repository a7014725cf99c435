"""Toggle protocol for user relations: likes, reposts, bookmarks and follows.

A toggle flips the presence of one ``(actor, target)`` relation row and keeps
the dependent notification in step, inside a single transaction:

* the delete is attempted first and its row count decides the direction, so
  no separate existence read can go stale;
* when nothing was deleted the row is inserted inside a SAVEPOINT; a unique
  key violation there means a concurrent caller created the same row, which
  leaves the relation present and is reported as success;
* notifications are written or pruned in the same transaction as the row.

Notification policy: FOLLOW notifies the followed user; LIKE and REPOST notify
the post author unless the actor is the author; BOOKMARK is private and never
notifies.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from chirp.core.errors import NotFoundError, ValidationError
from chirp.db.session import Base
from chirp.models import (
    Bookmark,
    Follow,
    Like,
    Notification,
    NotificationType,
    Post,
    Repost,
    User,
)

logger = logging.getLogger(__name__)


class RelationKind(str, enum.Enum):
    """Relations that can be toggled."""

    LIKE = "LIKE"
    REPOST = "REPOST"
    BOOKMARK = "BOOKMARK"
    FOLLOW = "FOLLOW"


@dataclass(frozen=True)
class ToggleResult:
    """Outcome of a toggle; ``active`` is the relation state after the call."""

    kind: RelationKind
    active: bool


@dataclass(frozen=True)
class _RelationSpec:
    model: type[Base]
    actor_column: str
    target_column: str
    notification_type: NotificationType | None = None
    message: str | None = None


_RELATIONS: dict[RelationKind, _RelationSpec] = {
    RelationKind.LIKE: _RelationSpec(
        Like, "user_id", "post_id", NotificationType.LIKE, "{actor} liked your post"
    ),
    RelationKind.REPOST: _RelationSpec(
        Repost, "user_id", "post_id", NotificationType.REPOST, "{actor} reposted your post"
    ),
    RelationKind.BOOKMARK: _RelationSpec(Bookmark, "user_id", "post_id"),
    RelationKind.FOLLOW: _RelationSpec(
        Follow,
        "follower_id",
        "following_id",
        NotificationType.FOLLOW,
        "{actor} started following you",
    ),
}


def _resolve_target(
    db: Session, kind: RelationKind, actor: User, target_id: int
) -> tuple[int, int | None]:
    """Check the target exists; return (notification recipient, post id)."""
    if kind is RelationKind.FOLLOW:
        if target_id == actor.id:
            raise ValidationError("You cannot follow yourself")
        if db.get(User, target_id) is None:
            raise NotFoundError("User not found")
        return target_id, None

    post = db.get(Post, target_id)
    if post is None:
        raise NotFoundError("Post not found")
    return post.author_id, post.id


def _notification_filter(
    db: Session,
    notification_type: NotificationType,
    recipient_id: int,
    actor_id: int,
    post_id: int | None,
):
    query = db.query(Notification).filter(
        Notification.user_id == recipient_id,
        Notification.type == notification_type,
        Notification.related_user_id == actor_id,
    )
    if post_id is None:
        return query.filter(Notification.post_id.is_(None))
    return query.filter(Notification.post_id == post_id)


def _insert_relation(db: Session, row: Base) -> bool:
    """Insert ``row`` in a savepoint; False when the unique key already holds it."""
    try:
        with db.begin_nested():
            db.add(row)
    except IntegrityError:
        logger.info("Concurrent toggle already created %s; keeping it", type(row).__name__)
        return False
    return True


def toggle_relation(
    db: Session,
    kind: RelationKind,
    actor: User,
    target_id: int,
) -> ToggleResult:
    """Create the relation if absent, delete it if present, and commit.

    Raises:
        ValidationError: On an attempt to follow oneself.
        NotFoundError: If the target post or user does not exist.
    """
    spec = _RELATIONS[kind]
    recipient_id, post_id = _resolve_target(db, kind, actor, target_id)
    keys = {spec.actor_column: actor.id, spec.target_column: target_id}
    notify = spec.notification_type is not None and recipient_id != actor.id

    try:
        deleted = db.query(spec.model).filter_by(**keys).delete(synchronize_session="fetch")
        if deleted:
            active = False
            if notify:
                _notification_filter(
                    db, spec.notification_type, recipient_id, actor.id, post_id
                ).delete(synchronize_session="fetch")
        else:
            active = True
            created = _insert_relation(db, spec.model(**keys))
            if created and notify:
                db.add(
                    Notification(
                        user_id=recipient_id,
                        type=spec.notification_type,
                        related_user_id=actor.id,
                        post_id=post_id,
                        content=spec.message.format(actor=actor.username),
                    )
                )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info(
        "User %s %s %s %s",
        actor.id,
        "added" if active else "removed",
        kind.value.lower(),
        target_id,
    )
    return ToggleResult(kind=kind, active=active)
