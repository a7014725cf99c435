"""Feed assembly: paginated post listings annotated for the viewer."""
from __future__ import annotations

import math
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session, selectinload

from chirp.core.errors import NotFoundError
from chirp.models import Bookmark, Follow, Like, Post, Repost, User
from chirp.schemas.post import (
    FeedPage,
    FeedPost,
    MediaResponse,
    PostCounts,
    RepliesPage,
    TimelinePage,
    TimelinePost,
)
from chirp.schemas.user import PublicProfile, UserSummary

__all__ = [
    "FEED_PAGE_SIZE",
    "REPLY_PAGE_SIZE",
    "annotate_posts",
    "list_feed",
    "list_replies",
    "list_user_timeline",
]

FEED_PAGE_SIZE = 20
REPLY_PAGE_SIZE = 10


@dataclass
class _Annotations:
    """Counts and viewer flags for one page of posts."""

    likes: dict[int, int] = field(default_factory=dict)
    replies: dict[int, int] = field(default_factory=dict)
    reposts: dict[int, int] = field(default_factory=dict)
    bookmarks: dict[int, int] = field(default_factory=dict)
    liked: set[int] = field(default_factory=set)
    reposted: set[int] = field(default_factory=set)
    bookmarked: set[int] = field(default_factory=set)


def _count_by_post(db: Session, column, post_ids: Sequence[int]) -> dict[int, int]:
    rows = (
        db.query(column, func.count())
        .filter(column.in_(post_ids))
        .group_by(column)
        .all()
    )
    return {post_id: int(count) for post_id, count in rows}


def _viewer_post_ids(db: Session, model, viewer_id: int, post_ids: Sequence[int]) -> set[int]:
    rows = (
        db.query(model.post_id)
        .filter(model.user_id == viewer_id, model.post_id.in_(post_ids))
        .all()
    )
    return {post_id for (post_id,) in rows}


def _annotate(db: Session, posts: Sequence[Post], viewer_id: int) -> _Annotations:
    post_ids = [post.id for post in posts]
    if not post_ids:
        return _Annotations()
    return _Annotations(
        likes=_count_by_post(db, Like.post_id, post_ids),
        replies=_count_by_post(db, Post.parent_id, post_ids),
        reposts=_count_by_post(db, Repost.post_id, post_ids),
        bookmarks=_count_by_post(db, Bookmark.post_id, post_ids),
        liked=_viewer_post_ids(db, Like, viewer_id, post_ids),
        reposted=_viewer_post_ids(db, Repost, viewer_id, post_ids),
        bookmarked=_viewer_post_ids(db, Bookmark, viewer_id, post_ids),
    )


def _to_feed_post(post: Post, notes: _Annotations) -> FeedPost:
    return FeedPost(
        id=post.id,
        content=post.content,
        author_id=post.author_id,
        parent_id=post.parent_id,
        created_at=post.created_at,
        author=UserSummary.model_validate(post.author),
        media=[MediaResponse.model_validate(media) for media in post.media],
        counts=PostCounts(
            likes=notes.likes.get(post.id, 0),
            replies=notes.replies.get(post.id, 0),
            reposts=notes.reposts.get(post.id, 0),
            bookmarks=notes.bookmarks.get(post.id, 0),
        ),
        liked=post.id in notes.liked,
        reposted=post.id in notes.reposted,
        bookmarked=post.id in notes.bookmarked,
    )


def annotate_posts(db: Session, posts: Sequence[Post], viewer_id: int) -> list[FeedPost]:
    """Attach counts and the viewer's like/repost/bookmark flags to ``posts``."""
    notes = _annotate(db, posts, viewer_id)
    return [_to_feed_post(post, notes) for post in posts]


def _paginate(query: Query, page: int, limit: int) -> tuple[list[Post], int]:
    """Return one newest-first page of ``query`` and the total page count."""
    total = query.order_by(None).count()
    posts = (
        query.options(selectinload(Post.author), selectinload(Post.media))
        .order_by(Post.created_at.desc(), Post.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return posts, math.ceil(total / limit)


def list_feed(
    db: Session,
    viewer_id: int,
    *,
    page: int = 1,
    limit: int = FEED_PAGE_SIZE,
    author_id: int | None = None,
) -> FeedPage:
    """Return a page of top-level posts, optionally from one author."""
    query = db.query(Post).filter(Post.parent_id.is_(None))
    if author_id is not None:
        query = query.filter(Post.author_id == author_id)

    posts, total_pages = _paginate(query, page, limit)
    return FeedPage(
        posts=annotate_posts(db, posts, viewer_id),
        total_pages=total_pages,
        current_page=page,
    )


def list_replies(
    db: Session,
    viewer_id: int,
    post_id: int,
    *,
    page: int = 1,
    limit: int = REPLY_PAGE_SIZE,
) -> RepliesPage:
    """Return a page of direct replies together with their parent post.

    Raises:
        NotFoundError: If the parent post does not exist.
    """
    parent = (
        db.query(Post)
        .options(selectinload(Post.author), selectinload(Post.media))
        .filter(Post.id == post_id)
        .first()
    )
    if parent is None:
        raise NotFoundError("Post not found")

    replies, total_pages = _paginate(db.query(Post).filter(Post.parent_id == post_id), page, limit)
    notes = _annotate(db, [parent, *replies], viewer_id)
    return RepliesPage(
        parent_post=_to_feed_post(parent, notes),
        posts=[_to_feed_post(reply, notes) for reply in replies],
        total_pages=total_pages,
        current_page=page,
    )


def _public_profile(db: Session, user: User) -> PublicProfile:
    followers = db.query(func.count()).select_from(Follow).filter(
        Follow.following_id == user.id
    ).scalar() or 0
    following = db.query(func.count()).select_from(Follow).filter(
        Follow.follower_id == user.id
    ).scalar() or 0
    return PublicProfile(
        id=user.id,
        username=user.username,
        avatar=user.avatar,
        handler=user.handler,
        bio=user.bio,
        banner=user.banner,
        followers=int(followers),
        following=int(following),
    )


def _reposters_by_post(db: Session, post_ids: Sequence[int]) -> dict[int, list[UserSummary]]:
    reposters: dict[int, list[UserSummary]] = defaultdict(list)
    if not post_ids:
        return reposters
    rows = (
        db.query(Repost)
        .options(selectinload(Repost.user))
        .filter(Repost.post_id.in_(post_ids))
        .order_by(Repost.created_at.desc())
        .all()
    )
    for repost in rows:
        reposters[repost.post_id].append(UserSummary.model_validate(repost.user))
    return reposters


def list_user_timeline(
    db: Session,
    viewer_id: int,
    handler: str,
    *,
    page: int = 1,
    limit: int = FEED_PAGE_SIZE,
) -> TimelinePage:
    """Return top-level posts a user authored or reposted, newest first.

    Raises:
        NotFoundError: If no user has ``handler``.
    """
    user = db.query(User).filter(User.handler == handler.removeprefix("@")).first()
    if user is None:
        raise NotFoundError("User not found")

    query = db.query(Post).filter(
        Post.parent_id.is_(None),
        or_(
            Post.author_id == user.id,
            Post.reposts.any(Repost.user_id == user.id),
        ),
    )
    posts, total_pages = _paginate(query, page, limit)
    reposters = _reposters_by_post(db, [post.id for post in posts])
    timeline = [
        TimelinePost(**feed_post.model_dump(), reposted_by=reposters.get(feed_post.id, []))
        for feed_post in annotate_posts(db, posts, viewer_id)
    ]
    return TimelinePage(
        user=_public_profile(db, user),
        posts=timeline,
        total_pages=total_pages,
        current_page=page,
    )
