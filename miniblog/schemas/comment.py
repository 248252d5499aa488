"""
Comment request/response schemas.
"""

import uuid
from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import StringConstraints

from miniblog.models.comment import CONTENT_MAX_LENGTH, Comment
from miniblog.schemas.common import CamelModel
from miniblog.schemas.user import UserResponse
from miniblog.services.mention_service import MentionInfo

CommentContent = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=CONTENT_MAX_LENGTH)
]


class CommentCreate(CamelModel):
    post_id: uuid.UUID
    content: CommentContent
    parent_comment_id: Optional[uuid.UUID] = None


class CommentResponse(CamelModel):
    id: uuid.UUID
    content: str
    author: UserResponse
    post: uuid.UUID
    parent_comment: Optional[uuid.UUID] = None
    mentions: List[uuid.UUID]
    likes: List[uuid.UUID]
    mention_usernames: Optional[List[str]] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(
        cls, comment: Comment, mention_info: Optional[MentionInfo] = None
    ) -> "CommentResponse":
        if mention_info is not None:
            mentions = mention_info.user_ids
            mention_usernames = mention_info.usernames
        else:
            mentions = [user.id for user in comment.mentions]
            mention_usernames = None
        return cls(
            id=comment.id,
            content=comment.content,
            author=UserResponse.model_validate(comment.author),
            post=comment.post_id,
            parent_comment=comment.parent_comment_id,
            mentions=mentions,
            likes=[user.id for user in comment.liked_by],
            mention_usernames=mention_usernames,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )


class CommentData(CamelModel):
    comment: CommentResponse
