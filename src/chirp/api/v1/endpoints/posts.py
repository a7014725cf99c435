# src/chirp/api/v1/endpoints/posts.py
"""Post, feed and interaction endpoints for the Chirp API."""

from typing import Annotated

from fastapi import APIRouter, File, Form, Query, UploadFile, status

from chirp.models import Post
from chirp.schemas.common import SuccessResponse, ToggleResponse
from chirp.schemas.post import FeedPage, PostResponse, RepliesPage, TimelinePage
from chirp.services import feed, posts
from chirp.services.interactions import RelationKind, toggle_relation

from ..dependencies import CurrentUserDep, SessionDep, StorageDep

router = APIRouter(prefix="/post", tags=["posts"])

PageQuery = Annotated[int, Query(ge=1, description="1-based page number")]
LimitQuery = Annotated[int, Query(ge=1, le=100, description="Page size")]


@router.get("", response_model=FeedPage)
async def get_home_feed(
    current_user: CurrentUserDep,
    db: SessionDep,
    page: PageQuery = 1,
    limit: LimitQuery = feed.FEED_PAGE_SIZE,
    user_id: Annotated[int | None, Query(alias="userId", description="Only posts by this author")] = None,
) -> FeedPage:
    """List top-level posts newest first, annotated for the caller."""
    return feed.list_feed(db, current_user.id, page=page, limit=limit, author_id=user_id)


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    current_user: CurrentUserDep,
    db: SessionDep,
    storage: StorageDep,
    content: Annotated[str | None, Form()] = None,
    gif: Annotated[str | None, Form(description="URL of an externally hosted GIF")] = None,
    parent_id: Annotated[int | None, Form(alias="parentId")] = None,
    image: Annotated[UploadFile | None, File()] = None,
) -> Post:
    """Create a post or reply from text, an uploaded image, or a GIF reference."""
    return await posts.create_post(
        db,
        storage,
        current_user,
        content=content,
        gif=gif,
        parent_id=parent_id,
        image=image,
    )


@router.get("/user/{handler}", response_model=TimelinePage)
async def get_user_timeline(
    handler: str,
    current_user: CurrentUserDep,
    db: SessionDep,
    page: PageQuery = 1,
    limit: LimitQuery = feed.FEED_PAGE_SIZE,
) -> TimelinePage:
    """List the posts a user authored or reposted."""
    return feed.list_user_timeline(db, current_user.id, handler, page=page, limit=limit)


@router.post("/{post_id}/likes", response_model=ToggleResponse)
async def like_post(post_id: int, current_user: CurrentUserDep, db: SessionDep) -> ToggleResponse:
    """Like the post, or remove an existing like."""
    result = toggle_relation(db, RelationKind.LIKE, current_user, post_id)
    return ToggleResponse(active=result.active)


@router.post("/{post_id}/reposts", response_model=ToggleResponse)
async def repost_post(post_id: int, current_user: CurrentUserDep, db: SessionDep) -> ToggleResponse:
    """Repost the post, or undo an existing repost."""
    result = toggle_relation(db, RelationKind.REPOST, current_user, post_id)
    return ToggleResponse(active=result.active)


@router.post("/{post_id}/bookmarks", response_model=ToggleResponse)
async def bookmark_post(
    post_id: int, current_user: CurrentUserDep, db: SessionDep
) -> ToggleResponse:
    """Bookmark the post, or remove an existing bookmark."""
    result = toggle_relation(db, RelationKind.BOOKMARK, current_user, post_id)
    return ToggleResponse(active=result.active)


@router.delete("/{post_id}/delete", response_model=SuccessResponse)
async def delete_post(
    post_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    storage: StorageDep,
) -> SuccessResponse:
    """Delete one of the caller's posts with its replies and media."""
    await posts.delete_post(db, storage, current_user, post_id)
    return SuccessResponse()


@router.get("/{post_id}/replies", response_model=RepliesPage)
async def get_post_replies(
    post_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    page: PageQuery = 1,
    limit: LimitQuery = feed.REPLY_PAGE_SIZE,
) -> RepliesPage:
    """List replies to a post, with the parent post itself."""
    return feed.list_replies(db, current_user.id, post_id, page=page, limit=limit)
