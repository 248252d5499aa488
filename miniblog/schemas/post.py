"""
Post request/response schemas.
"""

import uuid
from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import StringConstraints, model_validator

from miniblog.models.post import CONTENT_MAX_LENGTH, TITLE_MAX_LENGTH, Post
from miniblog.schemas.common import CamelModel, PaginatedResponse, PaginationMeta
from miniblog.schemas.user import UserResponse
from miniblog.services.mention_service import MentionInfo
from miniblog.services.pagination import Page

Title = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=TITLE_MAX_LENGTH)
]
PostContent = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=CONTENT_MAX_LENGTH)
]


class PostCreate(CamelModel):
    title: Title
    content: PostContent


class PostUpdate(CamelModel):
    """Only title and content are mutable; omitted fields stay as they are."""

    title: Optional[Title] = None
    content: Optional[PostContent] = None

    @model_validator(mode="after")
    def require_a_field(self) -> "PostUpdate":
        if self.title is None and self.content is None:
            raise ValueError("Provide a title or content to update")
        return self


class PostResponse(CamelModel):
    id: uuid.UUID
    title: str
    content: str
    author: UserResponse
    likes: List[uuid.UUID]
    comments: List[uuid.UUID]
    re_posts: List[uuid.UUID]
    mentions: List[uuid.UUID]
    original_post: Optional[uuid.UUID] = None
    # Only on creation: the @names as typed, duplicates and unknown names kept
    mention_usernames: Optional[List[str]] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, post: Post, mention_info: Optional[MentionInfo] = None) -> "PostResponse":
        """mention_info is given on creation: ids in first-mention order plus the raw names."""
        if mention_info is not None:
            mentions = mention_info.user_ids
            mention_usernames = mention_info.usernames
        else:
            mentions = [user.id for user in post.mentions]
            mention_usernames = None
        return cls(
            id=post.id,
            title=post.title,
            content=post.content,
            author=UserResponse.model_validate(post.author),
            likes=[user.id for user in post.liked_by],
            comments=[comment.id for comment in post.comments],
            re_posts=[user.id for user in post.reposted_by],
            mentions=mentions,
            original_post=post.original_post_id,
            mention_usernames=mention_usernames,
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


class PostData(CamelModel):
    post: PostResponse


def post_page(message: str, page: Page[Post]) -> PaginatedResponse[PostResponse]:
    """Envelope for any paginated post feed."""
    return PaginatedResponse(
        message=message,
        data=[PostResponse.from_model(post) for post in page.items],
        pagination=PaginationMeta.from_window(page.window),
    )
