"""
User lookups: directory listing, profile reads, username autocomplete and
the per-user post feeds.

Users are read-only here; signup lives in AuthService.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from miniblog.database import LIKE_ESCAPE, escape_like
from miniblog.exceptions import NotFoundError
from miniblog.models.post import Post
from miniblog.models.user import User
from miniblog.services.pagination import Page, PageRequest, clamp_limit, paginate
from miniblog.services.post_service import post_service

logger = logging.getLogger(__name__)

USER_SORTABLE = {
    "created_at": User.created_at,
    "username": User.username,
    "email": User.email,
}

SEARCH_DEFAULT_LIMIT = 10


class UserService:

    async def list_users(self, db: AsyncSession, request: PageRequest) -> Page[User]:
        return await paginate(db, select(User), request, USER_SORTABLE, tiebreaker=User.id)

    async def get_by_id(self, db: AsyncSession, user_id: UUID) -> Optional[User]:
        return await db.get(User, user_id)

    async def get_by_username(self, db: AsyncSession, username: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.username == username))
        return result.scalars().first()

    async def search(
        self, db: AsyncSession, query: str, limit: Optional[int] = None
    ) -> List[User]:
        """
        Case-insensitive substring match on username, alphabetical.

        `limit` follows the same [1, 50] clamp as page sizes.
        """
        limit = clamp_limit(limit, default=SEARCH_DEFAULT_LIMIT)
        pattern = f"%{escape_like(query)}%"
        stmt = (
            select(User)
            .where(User.username.ilike(pattern, escape=LIKE_ESCAPE))
            .order_by(User.username)
            .limit(limit)
        )
        users = list((await db.execute(stmt)).scalars().all())
        logger.debug("User search %r returned %d result(s)", query, len(users))
        return users

    async def posts_by_user_id(
        self, db: AsyncSession, user_id: UUID, request: PageRequest
    ) -> Page[Post]:
        """
        Raises:
            NotFoundError: no user with that id
        """
        if await self.get_by_id(db, user_id) is None:
            raise NotFoundError("User", user_id)
        return await post_service.list_by_author(db, user_id, request)

    async def posts_by_username(
        self, db: AsyncSession, username: str, request: PageRequest
    ) -> Page[Post]:
        """An unknown username yields an empty page rather than an error."""
        user = await self.get_by_username(db, username)
        if user is None:
            return Page.empty(request)
        return await post_service.list_by_author(db, user.id, request)


user_service = UserService()
