"""
Mini-Blog Backend — Post SQLAlchemy Model
===========================================

What:  ORM model for the `posts` table and its membership collections.
How:   Scalar columns live on the row; likes, re-posters and mentions are
       many-to-many collections through the tables in associations.py.
       `comments` is a read-only join on comments.post_id, so the comment
       list cannot drift from the comments that actually reference the post.

Loading:
    Every relationship uses lazy="selectin". AsyncSession cannot lazy-load on
    attribute access, so anything a response needs must be loaded with the
    row. PostService re-selects with populate_existing after each write.

Invariants:
    - author_id is set once at creation; no code path assigns it afterwards.
    - Re-posts point at their origin through original_post_id. Deleting the
      origin clears the pointer (ON DELETE SET NULL) and keeps the re-post.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from miniblog.database import Base
from miniblog.models.associations import post_likes, post_mentions, post_reposts
from miniblog.models.user import User, utcnow

if TYPE_CHECKING:
    from miniblog.models.comment import Comment

TITLE_MAX_LENGTH = 100
CONTENT_MAX_LENGTH = 1000


class Post(Base):
    __tablename__ = "posts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    original_post_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    # ── Relationships ─────────────────────────────────────────────────────
    author: Mapped[User] = relationship(User, lazy="selectin")

    liked_by: Mapped[List[User]] = relationship(
        User, secondary=post_likes, lazy="selectin", order_by=User.username
    )
    reposted_by: Mapped[List[User]] = relationship(
        User, secondary=post_reposts, lazy="selectin", order_by=User.username
    )
    mentions: Mapped[List[User]] = relationship(
        User, secondary=post_mentions, lazy="selectin", order_by=User.username
    )

    comments: Mapped[List["Comment"]] = relationship(
        "Comment",
        primaryjoin="Post.id == foreign(Comment.post_id)",
        viewonly=True,
        lazy="selectin",
        order_by="Comment.created_at",
    )

    __table_args__ = (
        Index("idx_posts_author_created_at", author_id, created_at.desc()),
        Index("idx_posts_created_at", created_at.desc()),
        Index("idx_posts_original_post_id", original_post_id),
    )

    def is_authored_by(self, user_id: uuid.UUID) -> bool:
        return self.author_id == user_id

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, title='{self.title}', author_id={self.author_id})>"
