"""
Comment ORM model.

A comment always belongs to one post (post_id) and may reply to another
comment of the same post (parent_comment_id, any depth). Top-level comments
have parent_comment_id = NULL.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from miniblog.database import Base
from miniblog.models.associations import comment_likes, comment_mentions
from miniblog.models.user import User, utcnow

CONTENT_MAX_LENGTH = 500


class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    parent_comment_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    author: Mapped[User] = relationship(User, lazy="selectin")
    liked_by: Mapped[List[User]] = relationship(
        User, secondary=comment_likes, lazy="selectin", order_by=User.username
    )
    mentions: Mapped[List[User]] = relationship(
        User, secondary=comment_mentions, lazy="selectin", order_by=User.username
    )

    __table_args__ = (
        Index("idx_comments_post_created_at", post_id, created_at.desc()),
        Index("idx_comments_author_created_at", author_id, created_at.desc()),
        Index("idx_comments_parent_created_at", parent_comment_id, created_at.desc()),
    )

    def is_authored_by(self, user_id: uuid.UUID) -> bool:
        return self.author_id == user_id

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, post_id={self.post_id}, author_id={self.author_id})>"
