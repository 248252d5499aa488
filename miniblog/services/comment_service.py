"""
Mini-Blog Backend — Comment Service
=====================================

What:  Comment creation, listing per post, like toggling and deletion.
How:   Stateless service; every method receives the request's AsyncSession.
       A comment's membership in its post's comment list is the comments.post_id
       column itself, so creating or deleting a comment updates the list in the
       same statement.

Nesting:
    parent_comment_id may point at any comment of the same post, at any depth.
    Deleting a comment deletes its whole reply subtree with it.

Listing:
    GET /comments/post/{postId} returns top-level comments only. An unknown
    post id gives an empty page.
"""

import logging
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from miniblog.exceptions import AuthorizationError, NotFoundError, ValidationError
from miniblog.models.associations import comment_likes, comment_mentions
from miniblog.models.comment import Comment
from miniblog.models.post import Post
from miniblog.models.user import User
from miniblog.services.mention_service import MentionInfo, MentionResolver
from miniblog.services.pagination import Page, PageRequest, paginate

logger = logging.getLogger(__name__)

COMMENT_SORTABLE = {
    "created_at": Comment.created_at,
    "updated_at": Comment.updated_at,
}


async def collect_reply_tree(db: AsyncSession, root_ids: Iterable[UUID]) -> List[UUID]:
    """
    Returns root_ids plus the ids of every reply below them, breadth first.

    One SELECT per nesting level.
    """
    collected: List[UUID] = list(dict.fromkeys(root_ids))
    seen = set(collected)
    frontier = list(collected)
    while frontier:
        result = await db.execute(
            select(Comment.id).where(Comment.parent_comment_id.in_(frontier))
        )
        frontier = [cid for cid in result.scalars().all() if cid not in seen]
        seen.update(frontier)
        collected.extend(frontier)
    return collected


async def purge_comments(db: AsyncSession, comment_ids: List[UUID]) -> int:
    """Hard-deletes comments and their like/mention rows. Returns the count."""
    if not comment_ids:
        return 0
    await db.execute(delete(comment_likes).where(comment_likes.c.comment_id.in_(comment_ids)))
    await db.execute(
        delete(comment_mentions).where(comment_mentions.c.comment_id.in_(comment_ids))
    )
    await db.execute(
        delete(Comment)
        .where(Comment.id.in_(comment_ids))
        .execution_options(synchronize_session="fetch")
    )
    return len(comment_ids)


class CommentService:
    """
    Business logic for comments.

    Error Handling:
        Missing post or parent → NotFoundError (404)
        Parent on another post → ValidationError (400)
        Deleting someone else's comment → AuthorizationError (403)
    """

    async def _load(self, db: AsyncSession, comment_id: UUID) -> Optional[Comment]:
        stmt = (
            select(Comment)
            .where(Comment.id == comment_id)
            .execution_options(populate_existing=True)
        )
        return (await db.execute(stmt)).scalars().first()

    async def create_comment(
        self,
        db: AsyncSession,
        author: User,
        post_id: UUID,
        content: str,
        parent_comment_id: Optional[UUID] = None,
    ) -> Tuple[Comment, MentionInfo]:
        """
        Adds a comment (or a reply) to a post.

        Returns:
            The stored comment and the mentions found in its content.

        Raises:
            NotFoundError: unknown post, or unknown parent comment
            ValidationError: the parent comment belongs to a different post
        """
        post = await db.get(Post, post_id)
        if post is None:
            raise NotFoundError("Post", post_id)

        if parent_comment_id is not None:
            parent = await db.get(Comment, parent_comment_id)
            if parent is None:
                raise NotFoundError("Parent comment", parent_comment_id)
            if parent.post_id != post.id:
                raise ValidationError(
                    "Parent comment belongs to a different post",
                    field="parentCommentId",
                )

        mentions = await MentionResolver(db).resolve(content)
        comment = Comment(
            content=content,
            author_id=author.id,
            post_id=post.id,
            parent_comment_id=parent_comment_id,
        )
        comment.mentions = mentions.users
        db.add(comment)
        await db.flush()

        logger.info(
            "Comment %s created on post %s by %s (reply_to=%s)",
            comment.id, post.id, author.username, parent_comment_id,
        )
        return await self._load(db, comment.id), mentions

    async def list_for_post(
        self, db: AsyncSession, post_id: UUID, request: PageRequest
    ) -> Page[Comment]:
        stmt = select(Comment).where(
            Comment.post_id == post_id,
            Comment.parent_comment_id.is_(None),
        )
        return await paginate(db, stmt, request, COMMENT_SORTABLE, tiebreaker=Comment.id)

    async def toggle_like(self, db: AsyncSession, comment_id: UUID, user: User) -> Comment:
        """Adds the user to the comment's likes, or removes them if present."""
        comment = await self._load(db, comment_id)
        if comment is None:
            raise NotFoundError("Comment", comment_id)

        if user in comment.liked_by:
            comment.liked_by.remove(user)
            logger.debug("User %s unliked comment %s", user.id, comment.id)
        else:
            comment.liked_by.append(user)
            logger.debug("User %s liked comment %s", user.id, comment.id)
        await db.flush()
        return await self._load(db, comment.id)

    async def delete_comment(self, db: AsyncSession, comment_id: UUID, user: User) -> int:
        """
        Deletes a comment and every reply below it.

        Returns:
            Number of comments removed (1 + descendants).

        Raises:
            NotFoundError: unknown comment
            AuthorizationError: caller is not the comment's author
        """
        comment = await db.get(Comment, comment_id)
        if comment is None:
            raise NotFoundError("Comment", comment_id)
        if not comment.is_authored_by(user.id):
            raise AuthorizationError("You can only delete your own comments")

        ids = await collect_reply_tree(db, [comment.id])
        removed = await purge_comments(db, ids)
        logger.info(
            "Comment %s deleted by %s (%d including replies)", comment_id, user.username, removed
        )
        return removed


comment_service = CommentService()
