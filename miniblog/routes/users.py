"""
Mini-Blog Backend — User Route Handlers
=========================================

What:  Public user directory, profile lookups, username autocomplete and the
       per-user post feeds.

Route order matters: /users/search and /users/username/... are declared
before /users/{user_id} so "search" and "username" are never parsed as ids.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from miniblog.database import get_db_session
from miniblog.dependencies import get_page_request
from miniblog.exceptions import NotFoundError, ValidationError
from miniblog.schemas.common import ApiResponse, ErrorResponse, PaginatedResponse, PaginationMeta
from miniblog.schemas.post import PostResponse, post_page
from miniblog.schemas.user import UserData, UserResponse
from miniblog.services.pagination import PageRequest
from miniblog.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


@router.get(
    "",
    response_model=PaginatedResponse[UserResponse],
    responses={400: {"description": "Bad page parameters", "model": ErrorResponse}},
    summary="List users",
)
async def list_users(
    page_request: PageRequest = Depends(get_page_request),
    db: AsyncSession = Depends(get_db_session),
) -> PaginatedResponse[UserResponse]:
    page = await user_service.list_users(db, page_request)
    return PaginatedResponse(
        message="Users retrieved successfully",
        data=[UserResponse.model_validate(user) for user in page.items],
        pagination=PaginationMeta.from_window(page.window),
    )


@router.get(
    "/search",
    response_model=ApiResponse[List[UserResponse]],
    responses={400: {"description": "Missing q", "model": ErrorResponse}},
    summary="Autocomplete users by username",
)
async def search_users(
    q: Optional[str] = Query(default=None, description="Case-insensitive username fragment"),
    limit: Optional[int] = Query(default=None, description="Max results, clamped to 1..50"),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[List[UserResponse]]:
    if q is None or not q.strip():
        raise ValidationError('Query parameter "q" is required', field="q")
    users = await user_service.search(db, q.strip(), limit)
    return ApiResponse(
        message="Users found successfully",
        data=[UserResponse.model_validate(user) for user in users],
    )


@router.get(
    "/username/{username}",
    response_model=ApiResponse[UserData],
    responses={404: {"description": "No such user", "model": ErrorResponse}},
    summary="Get a user by username",
)
async def get_user_by_username(
    username: str,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[UserData]:
    user = await user_service.get_by_username(db, username)
    if user is None:
        raise NotFoundError("User")
    return ApiResponse(
        message="User retrieved successfully",
        data=UserData(user=UserResponse.model_validate(user)),
    )


@router.get(
    "/username/{username}/posts",
    response_model=PaginatedResponse[PostResponse],
    summary="Posts written by a username (empty page for unknown usernames)",
)
async def get_posts_by_username(
    username: str,
    page_request: PageRequest = Depends(get_page_request),
    db: AsyncSession = Depends(get_db_session),
) -> PaginatedResponse[PostResponse]:
    page = await user_service.posts_by_username(db, username, page_request)
    return post_page("User posts retrieved successfully", page)


@router.get(
    "/{user_id}",
    response_model=ApiResponse[UserData],
    responses={404: {"description": "No such user", "model": ErrorResponse}},
    summary="Get a user by id",
)
async def get_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[UserData]:
    user = await user_service.get_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return ApiResponse(
        message="User retrieved successfully",
        data=UserData(user=UserResponse.model_validate(user)),
    )


@router.get(
    "/{user_id}/posts",
    response_model=PaginatedResponse[PostResponse],
    responses={404: {"description": "No such user", "model": ErrorResponse}},
    summary="Posts written by a user",
)
async def get_user_posts(
    user_id: UUID,
    page_request: PageRequest = Depends(get_page_request),
    db: AsyncSession = Depends(get_db_session),
) -> PaginatedResponse[PostResponse]:
    page = await user_service.posts_by_user_id(db, user_id, page_request)
    return post_page("User posts retrieved successfully", page)
