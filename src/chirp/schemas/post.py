"""Post and feed schemas."""

from datetime import datetime

from chirp.models.post import MediaType

from .common import ApiModel, Page
from .user import PublicProfile, UserSummary


class MediaResponse(ApiModel):
    """Media attached to a post."""

    id: int
    url: str
    type: MediaType


class PostCounts(ApiModel):
    """Aggregate interaction counts for one post."""

    likes: int = 0
    replies: int = 0
    reposts: int = 0
    bookmarks: int = 0


class PostResponse(ApiModel):
    """A post as returned right after creation."""

    id: int
    content: str | None = None
    author_id: int
    parent_id: int | None = None
    created_at: datetime
    author: UserSummary
    media: list[MediaResponse] = []


class FeedPost(PostResponse):
    """A post annotated for the requesting viewer."""

    counts: PostCounts
    liked: bool = False
    reposted: bool = False
    bookmarked: bool = False


class TimelinePost(FeedPost):
    """Feed post on a user timeline, with everyone who reposted it."""

    reposted_by: list[UserSummary] = []


class FeedPage(Page):
    """A page of the home feed."""

    posts: list[FeedPost]


class RepliesPage(Page):
    """A page of replies below their parent post."""

    parent_post: FeedPost
    posts: list[FeedPost]


class TimelinePage(Page):
    """A page of a user's authored and reposted posts."""

    user: PublicProfile
    posts: list[TimelinePost]
