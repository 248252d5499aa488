"""
ORM models. Importing this package registers every table with Base.metadata.
"""

from miniblog.models.associations import (
    comment_likes,
    comment_mentions,
    post_likes,
    post_mentions,
    post_reposts,
)
from miniblog.models.comment import Comment
from miniblog.models.post import Post
from miniblog.models.user import User

__all__ = [
    "User",
    "Post",
    "Comment",
    "post_likes",
    "post_reposts",
    "post_mentions",
    "comment_likes",
    "comment_mentions",
]
