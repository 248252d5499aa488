"""
Membership tables for the set-valued reference fields.

Each table's composite primary key is the membership pair, so a user can
appear at most once in a post's likes, re-posts or mentions (and likewise for
comments). Rows cascade away with either side at the database level.
"""

from sqlalchemy import Column, ForeignKey, Table, Uuid

from miniblog.database import Base


def _membership_table(name: str, owner_table: str, owner_column: str) -> Table:
    return Table(
        name,
        Base.metadata,
        Column(
            owner_column,
            Uuid,
            ForeignKey(f"{owner_table}.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        Column(
            "user_id",
            Uuid,
            ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
            index=True,
        ),
    )


post_likes = _membership_table("post_likes", "posts", "post_id")
post_reposts = _membership_table("post_reposts", "posts", "post_id")
post_mentions = _membership_table("post_mentions", "posts", "post_id")

comment_likes = _membership_table("comment_likes", "comments", "comment_id")
comment_mentions = _membership_table("comment_mentions", "comments", "comment_id")
