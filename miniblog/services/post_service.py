"""
Mini-Blog Backend — Post Service
==================================

What:  Post CRUD, like toggling, re-posting, per-author listing and the
       mention search.
How:   Stateless service; each method receives the request's AsyncSession and
       the authenticated User where one is needed. Writes are flushed, then the
       post is re-selected with populate_existing so every relationship the
       response needs is loaded before the session is handed back.

Ownership:
    update/delete check existence first (404), then authorship (403).
    author_id is never assigned outside create_post().

Deletion:
    Deleting a post deletes its comments (and their replies, likes and mention
    rows) in the same transaction. Re-posts of it survive with
    original_post_id cleared.
"""

import logging
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from miniblog.database import LIKE_ESCAPE, escape_like
from miniblog.exceptions import AuthorizationError, NotFoundError
from miniblog.models.comment import Comment
from miniblog.models.post import TITLE_MAX_LENGTH, Post
from miniblog.models.user import User
from miniblog.services.comment_service import purge_comments
from miniblog.services.mention_service import MentionInfo, MentionResolver
from miniblog.services.pagination import Page, PageRequest, paginate

logger = logging.getLogger(__name__)

POST_SORTABLE = {
    "created_at": Post.created_at,
    "updated_at": Post.updated_at,
    "title": Post.title,
}

REPOST_TITLE_PREFIX = "Re-post: "


def repost_title(title: str) -> str:
    return (REPOST_TITLE_PREFIX + title)[:TITLE_MAX_LENGTH]


class PostService:
    """
    Business logic for posts.

    Responsibilities:
        - create_post / update_post / delete_post
        - get_post / list_posts / list_by_author / list_by_mention
        - toggle_like / repost
    """

    async def _load(self, db: AsyncSession, post_id: UUID) -> Optional[Post]:
        stmt = (
            select(Post)
            .where(Post.id == post_id)
            .execution_options(populate_existing=True)
        )
        return (await db.execute(stmt)).scalars().first()

    async def _load_owned(self, db: AsyncSession, post_id: UUID, user: User, action: str) -> Post:
        post = await self._load(db, post_id)
        if post is None:
            raise NotFoundError("Post", post_id)
        if not post.is_authored_by(user.id):
            logger.warning("User %s tried to %s post %s", user.id, action, post_id)
            raise AuthorizationError(f"You can only {action} your own posts")
        return post

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_post(self, db: AsyncSession, post_id: UUID) -> Optional[Post]:
        """None for an unknown id; the route decides how to report it."""
        return await self._load(db, post_id)

    async def list_posts(self, db: AsyncSession, request: PageRequest) -> Page[Post]:
        return await paginate(db, select(Post), request, POST_SORTABLE, tiebreaker=Post.id)

    async def list_by_author(
        self, db: AsyncSession, author_id: UUID, request: PageRequest
    ) -> Page[Post]:
        stmt = select(Post).where(Post.author_id == author_id)
        return await paginate(db, stmt, request, POST_SORTABLE, tiebreaker=Post.id)

    async def list_by_mention(
        self, db: AsyncSession, username: str, request: PageRequest
    ) -> Page[Post]:
        """
        Posts whose content contains "@username", case-insensitively.

        A plain substring search: "@bob" also matches "@bobby".
        """
        pattern = f"%@{escape_like(username)}%"
        stmt = select(Post).where(Post.content.ilike(pattern, escape=LIKE_ESCAPE))
        return await paginate(db, stmt, request, POST_SORTABLE, tiebreaker=Post.id)

    # ── Writes ────────────────────────────────────────────────────────────

    async def create_post(
        self, db: AsyncSession, author: User, title: str, content: str
    ) -> Tuple[Post, MentionInfo]:
        """
        Stores a new post authored by `author`.

        Mentions are resolved from the content once, here; later edits do not
        change them.

        Returns:
            The stored post and the mentions found in its content.
        """
        mentions = await MentionResolver(db).resolve(content)
        post = Post(title=title, content=content, author_id=author.id)
        post.mentions = mentions.users
        db.add(post)
        await db.flush()

        logger.info(
            "Post %s created by %s (%d mention(s) resolved)",
            post.id, author.username, len(mentions.users),
        )
        return await self._load(db, post.id), mentions

    async def update_post(
        self,
        db: AsyncSession,
        post_id: UUID,
        user: User,
        title: Optional[str] = None,
        content: Optional[str] = None,
    ) -> Post:
        """
        Changes title and/or content. Fields left as None are untouched.

        Raises:
            NotFoundError: unknown post
            AuthorizationError: caller is not the author
        """
        post = await self._load_owned(db, post_id, user, "update")
        if title is not None:
            post.title = title
        if content is not None:
            post.content = content
        await db.flush()

        logger.info("Post %s updated by %s", post.id, user.username)
        return await self._load(db, post.id)

    async def delete_post(self, db: AsyncSession, post_id: UUID, user: User) -> None:
        """
        Raises:
            NotFoundError: unknown post
            AuthorizationError: caller is not the author
        """
        post = await self._load_owned(db, post_id, user, "delete")

        comment_ids = list(
            (await db.execute(select(Comment.id).where(Comment.post_id == post.id)))
            .scalars()
            .all()
        )
        removed = await purge_comments(db, comment_ids)

        await db.execute(
            update(Post)
            .where(Post.original_post_id == post.id)
            .values(original_post_id=None)
            .execution_options(synchronize_session="fetch")
        )
        await db.delete(post)
        await db.flush()

        logger.info(
            "Post %s deleted by %s (%d comment(s) removed)", post_id, user.username, removed
        )

    async def toggle_like(self, db: AsyncSession, post_id: UUID, user: User) -> Post:
        """Adds the user to the post's likes, or removes them if present."""
        post = await self._load(db, post_id)
        if post is None:
            raise NotFoundError("Post", post_id)

        if user in post.liked_by:
            post.liked_by.remove(user)
            logger.debug("User %s unliked post %s", user.id, post.id)
        else:
            post.liked_by.append(user)
            logger.debug("User %s liked post %s", user.id, post.id)
        await db.flush()
        return await self._load(db, post.id)

    async def repost(self, db: AsyncSession, post_id: UUID, user: User) -> Post:
        """
        Creates a copy of a post owned by `user` and linked to the original.

        The re-poster joins the original's rePosts once, however many times
        they re-post it. Re-posts carry no mentions of their own.

        Raises:
            NotFoundError: unknown original post
        """
        original = await self._load(db, post_id)
        if original is None:
            raise NotFoundError("Post", post_id)

        copy = Post(
            title=repost_title(original.title),
            content=original.content,
            author_id=user.id,
            original_post_id=original.id,
        )
        db.add(copy)
        if user not in original.reposted_by:
            original.reposted_by.append(user)
        await db.flush()

        logger.info("Post %s re-posted by %s as %s", original.id, user.username, copy.id)
        return await self._load(db, copy.id)


post_service = PostService()
