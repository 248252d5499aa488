"""
Mention extraction and resolution.

    >>> extract_mentions("hi @alice and @bob and @alice")
    ['alice', 'bob', 'alice']

The display list keeps every match in order (duplicates and unknown names
included). The resolved list holds one user per distinct existing username,
in first-mention order, looked up with a single IN query.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from miniblog.models.user import User

logger = logging.getLogger(__name__)

# ASCII word characters only: "@josé" mentions "jos".
MENTION_PATTERN = re.compile(r"@(\w+)", re.ASCII)


def extract_mentions(text: str) -> List[str]:
    """Raw @username tokens in order of appearance, without the '@'."""
    if not text:
        return []
    return MENTION_PATTERN.findall(text)


@dataclass
class MentionInfo:
    usernames: List[str] = field(default_factory=list)
    users: List[User] = field(default_factory=list)

    @property
    def user_ids(self) -> List[UUID]:
        return [user.id for user in self.users]


class MentionResolver:
    """Resolves @username tokens against the users table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve(self, text: str) -> MentionInfo:
        usernames = extract_mentions(text)
        if not usernames:
            return MentionInfo()

        distinct = list(dict.fromkeys(usernames))
        result = await self.db.execute(select(User).where(User.username.in_(distinct)))
        by_name = {user.username: user for user in result.scalars().all()}

        users = [by_name[name] for name in distinct if name in by_name]
        if len(users) < len(distinct):
            logger.debug(
                "Dropped %d unknown mention(s): %s",
                len(distinct) - len(users),
                [name for name in distinct if name not in by_name],
            )
        return MentionInfo(usernames=usernames, users=users)
