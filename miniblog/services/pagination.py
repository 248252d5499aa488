"""
Mini-Blog Backend — Pagination Engine
=======================================

What:  The single page/limit/sort routine used by every list endpoint
       (users, posts, comments, user posts, mention search).
How:   PageRequest normalizes raw query values, compute_window() derives the
       pagination metadata from (page, limit, total), and paginate() runs the
       COUNT and the windowed SELECT for any SQLAlchemy select().

Contract:
    page    default 1, floor-clamped to >= 1
    limit   default 10, clamped to [1, 50]
    sort    default created_at DESC; sortOrder "asc" or anything else → desc
    skip    = (page - 1) * limit
    totalPages = ceil(total / limit), hasNext = page < totalPages, hasPrev = page > 1

    A page past the end is not an error: it returns no items and the same
    totals as any other page.

Example:
    >>> compute_window(page=3, limit=10, total=25)
    PageWindow(page=3, limit=10, total=25, total_pages=3, has_next=False, has_prev=True)
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Generic, List, Mapping, Optional, TypeVar

from sqlalchemy import Select, asc, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from miniblog.exceptions import ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MIN_LIMIT = 1
MAX_LIMIT = 50

SORT_ASC = "asc"
SORT_DESC = "desc"


def clamp_limit(limit: Optional[int], default: int = DEFAULT_LIMIT) -> int:
    """limit → [MIN_LIMIT, MAX_LIMIT]; None means the default."""
    if limit is None:
        return default
    return max(MIN_LIMIT, min(MAX_LIMIT, limit))


def clamp_page(page: Optional[int]) -> int:
    if page is None:
        return DEFAULT_PAGE
    return max(DEFAULT_PAGE, page)


@dataclass(frozen=True)
class PageRequest:
    """Normalized pagination input. Build with from_query() for raw values."""

    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    sort_by: Optional[str] = None
    sort_order: str = SORT_DESC

    @classmethod
    def from_query(
        cls,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> "PageRequest":
        order = SORT_ASC if (sort_order or "").strip().lower() == SORT_ASC else SORT_DESC
        sort_by = (sort_by or "").strip() or None
        return cls(
            page=clamp_page(page),
            limit=clamp_limit(limit),
            sort_by=sort_by,
            sort_order=order,
        )

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class PageWindow:
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


def compute_window(page: int, limit: int, total: int) -> PageWindow:
    total_pages = math.ceil(total / limit) if limit > 0 else 0
    return PageWindow(
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )


@dataclass
class Page(Generic[T]):
    items: List[T]
    window: PageWindow

    @classmethod
    def empty(cls, request: PageRequest) -> "Page[T]":
        return cls(items=[], window=compute_window(request.page, request.limit, 0))


def _normalize_key(key: str) -> str:
    # createdAt, created_at and CreatedAt all name the same field
    return key.replace("_", "").lower()


def resolve_sort(
    request: PageRequest,
    sortable: Mapping[str, Any],
    default_key: str = "created_at",
):
    """
    Picks the ORDER BY column for a request.

    Args:
        sortable: snake_case field name → column. Lookup ignores case and
                  underscores, so camelCase sortBy values match.

    Raises:
        ValidationError: sortBy names a field the endpoint does not sort on.
    """
    lookup = {_normalize_key(name): column for name, column in sortable.items()}
    key = request.sort_by or default_key
    column = lookup.get(_normalize_key(key))
    if column is None:
        raise ValidationError(
            message=(
                f"Cannot sort by '{request.sort_by}'. "
                f"Allowed: {', '.join(sorted(sortable))}"
            ),
            field="sortBy",
        )
    return asc(column) if request.sort_order == SORT_ASC else desc(column)


async def paginate(
    db: AsyncSession,
    stmt: Select,
    request: PageRequest,
    sortable: Mapping[str, Any],
    tiebreaker: Any = None,
    default_key: str = "created_at",
) -> Page:
    """
    Runs the COUNT and the windowed SELECT for `stmt`.

    Args:
        db:         Session to query with
        stmt:       select() of a single ORM entity, already filtered, unordered
        request:    Normalized page request
        sortable:   Allowed sort fields for this endpoint
        tiebreaker: Secondary order column (usually the primary key) so rows
                    with equal sort values keep a stable order across pages

    Returns:
        Page with the ORM objects for this window and the computed metadata.
    """
    order = resolve_sort(request, sortable, default_key=default_key)

    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar_one()

    ordering = [order]
    if tiebreaker is not None:
        ordering.append(asc(tiebreaker) if request.sort_order == SORT_ASC else desc(tiebreaker))

    window_stmt = stmt.order_by(*ordering).offset(request.skip).limit(request.limit)
    items = list((await db.execute(window_stmt)).scalars().all())

    window = compute_window(request.page, request.limit, total)
    logger.debug(
        "Paginated page=%d limit=%d total=%d returned=%d",
        window.page, window.limit, window.total, len(items),
    )
    return Page(items=items, window=window)
