"""Create users, posts, comments and membership tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  The complete initial schema.
       users     unique username / email
       posts     author FK, optional original_post_id (SET NULL on delete)
       comments  post FK and optional parent comment FK (both CASCADE)
       post_likes, post_reposts, post_mentions, comment_likes,
       comment_mentions: (owner_id, user_id) composite primary keys

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MEMBERSHIP_TABLES = (
    ("post_likes", "posts", "post_id"),
    ("post_reposts", "posts", "post_id"),
    ("post_mentions", "posts", "post_id"),
    ("comment_likes", "comments", "comment_id"),
    ("comment_mentions", "comments", "comment_id"),
)


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(30), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False, comment="bcrypt hash"),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "posts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("author_id", sa.Uuid(), nullable=False),
        sa.Column("original_post_id", sa.Uuid(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["original_post_id"], ["posts.id"], ondelete="SET NULL"),
    )
    op.create_index(
        "idx_posts_author_created_at", "posts", ["author_id", sa.text("created_at DESC")]
    )
    op.create_index("idx_posts_created_at", "posts", [sa.text("created_at DESC")])
    op.create_index("idx_posts_original_post_id", "posts", ["original_post_id"])

    op.create_table(
        "comments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("author_id", sa.Uuid(), nullable=False),
        sa.Column("post_id", sa.Uuid(), nullable=False),
        sa.Column("parent_comment_id", sa.Uuid(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["post_id"], ["posts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["parent_comment_id"], ["comments.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "idx_comments_post_created_at", "comments", ["post_id", sa.text("created_at DESC")]
    )
    op.create_index(
        "idx_comments_author_created_at", "comments", ["author_id", sa.text("created_at DESC")]
    )
    op.create_index(
        "idx_comments_parent_created_at",
        "comments",
        ["parent_comment_id", sa.text("created_at DESC")],
    )

    for name, owner_table, owner_column in MEMBERSHIP_TABLES:
        op.create_table(
            name,
            sa.Column(owner_column, sa.Uuid(), nullable=False),
            sa.Column("user_id", sa.Uuid(), nullable=False),
            sa.PrimaryKeyConstraint(owner_column, "user_id"),
            sa.ForeignKeyConstraint([owner_column], [f"{owner_table}.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        )
        op.create_index(f"ix_{name}_user_id", name, ["user_id"])


def downgrade() -> None:
    for name, _, _ in reversed(MEMBERSHIP_TABLES):
        op.drop_index(f"ix_{name}_user_id", table_name=name)
        op.drop_table(name)

    op.drop_index("idx_comments_parent_created_at", table_name="comments")
    op.drop_index("idx_comments_author_created_at", table_name="comments")
    op.drop_index("idx_comments_post_created_at", table_name="comments")
    op.drop_table("comments")

    op.drop_index("idx_posts_original_post_id", table_name="posts")
    op.drop_index("idx_posts_created_at", table_name="posts")
    op.drop_index("idx_posts_author_created_at", table_name="posts")
    op.drop_table("posts")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
