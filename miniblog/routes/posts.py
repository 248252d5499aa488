"""
Mini-Blog Backend — Post Route Handlers
=========================================

What:  Post feed, single post, mention search, and the authenticated writes
       (create, update, delete, like, re-post).

Route order matters: /posts/mention/{username} is declared before
/posts/{post_id}.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from miniblog.database import get_db_session
from miniblog.dependencies import get_current_user, get_page_request
from miniblog.exceptions import NotFoundError
from miniblog.models.user import User
from miniblog.schemas.common import ApiResponse, ErrorResponse, PaginatedResponse
from miniblog.schemas.post import PostCreate, PostData, PostResponse, PostUpdate, post_page
from miniblog.services.pagination import PageRequest
from miniblog.services.post_service import post_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["Posts"])

AUTH_RESPONSES = {
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
}
OWNER_RESPONSES = {
    **AUTH_RESPONSES,
    403: {"description": "Not the author", "model": ErrorResponse},
    404: {"description": "No such post", "model": ErrorResponse},
}


# ── Reads ─────────────────────────────────────────────────────────────────

@router.get(
    "",
    response_model=PaginatedResponse[PostResponse],
    responses={400: {"description": "Bad page or sort parameters", "model": ErrorResponse}},
    summary="List posts, newest first by default",
)
async def list_posts(
    page_request: PageRequest = Depends(get_page_request),
    db: AsyncSession = Depends(get_db_session),
) -> PaginatedResponse[PostResponse]:
    page = await post_service.list_posts(db, page_request)
    return post_page("Posts retrieved successfully", page)


@router.get(
    "/mention/{username}",
    response_model=PaginatedResponse[PostResponse],
    summary="Posts whose content mentions @username",
)
async def list_posts_by_mention(
    username: str,
    page_request: PageRequest = Depends(get_page_request),
    db: AsyncSession = Depends(get_db_session),
) -> PaginatedResponse[PostResponse]:
    page = await post_service.list_by_mention(db, username, page_request)
    return post_page("Posts by mention retrieved successfully", page)


@router.get(
    "/{post_id}",
    response_model=ApiResponse[PostData],
    responses={404: {"description": "No such post", "model": ErrorResponse}},
    summary="Get a single post",
)
async def get_post(
    post_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[PostData]:
    post = await post_service.get_post(db, post_id)
    if post is None:
        raise NotFoundError("Post", post_id)
    return ApiResponse(
        message="Post retrieved successfully",
        data=PostData(post=PostResponse.from_model(post)),
    )


# ── Writes ────────────────────────────────────────────────────────────────

@router.post(
    "",
    response_model=ApiResponse[PostData],
    status_code=status.HTTP_201_CREATED,
    responses={
        **AUTH_RESPONSES,
        400: {"description": "Invalid title or content", "model": ErrorResponse},
    },
    summary="Create a post",
)
async def create_post(
    body: PostCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[PostData]:
    post, mentions = await post_service.create_post(db, current_user, body.title, body.content)
    return ApiResponse(
        message="Post created successfully",
        data=PostData(post=PostResponse.from_model(post, mentions)),
    )


@router.put(
    "/{post_id}",
    response_model=ApiResponse[PostData],
    responses={
        **OWNER_RESPONSES,
        400: {"description": "Invalid title or content", "model": ErrorResponse},
    },
    summary="Update a post's title and/or content (author only)",
)
async def update_post(
    post_id: UUID,
    body: PostUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[PostData]:
    post = await post_service.update_post(
        db, post_id, current_user, title=body.title, content=body.content
    )
    return ApiResponse(
        message="Post updated successfully",
        data=PostData(post=PostResponse.from_model(post)),
    )


@router.delete(
    "/{post_id}",
    response_model=ApiResponse[None],
    responses=OWNER_RESPONSES,
    summary="Delete a post and its comments (author only)",
)
async def delete_post(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[None]:
    await post_service.delete_post(db, post_id, current_user)
    return ApiResponse(message="Post deleted successfully")


@router.post(
    "/{post_id}/like",
    response_model=ApiResponse[PostData],
    responses={
        **AUTH_RESPONSES,
        404: {"description": "No such post", "model": ErrorResponse},
    },
    summary="Like the post, or remove an existing like",
)
async def toggle_like(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[PostData]:
    post = await post_service.toggle_like(db, post_id, current_user)
    return ApiResponse(
        message="Like toggled successfully",
        data=PostData(post=PostResponse.from_model(post)),
    )


@router.post(
    "/{post_id}/repost",
    response_model=ApiResponse[PostData],
    status_code=status.HTTP_201_CREATED,
    responses={
        **AUTH_RESPONSES,
        404: {"description": "No such post", "model": ErrorResponse},
    },
    summary="Re-post a post under the caller's name",
)
async def repost(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[PostData]:
    post = await post_service.repost(db, post_id, current_user)
    return ApiResponse(
        message="Post re-posted successfully",
        data=PostData(post=PostResponse.from_model(post)),
    )
