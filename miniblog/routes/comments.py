"""
Mini-Blog Backend — Comment Route Handlers
============================================

What:  Comment creation (top-level or reply), per-post listing, like toggle
       and author-only deletion.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from miniblog.database import get_db_session
from miniblog.dependencies import get_current_user, get_page_request
from miniblog.models.user import User
from miniblog.schemas.comment import CommentCreate, CommentData, CommentResponse
from miniblog.schemas.common import ApiResponse, ErrorResponse, PaginatedResponse, PaginationMeta
from miniblog.services.comment_service import comment_service
from miniblog.services.pagination import PageRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/comments", tags=["Comments"])


@router.post(
    "",
    response_model=ApiResponse[CommentData],
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid content, or parent on another post", "model": ErrorResponse},
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        404: {"description": "No such post or parent comment", "model": ErrorResponse},
    },
    summary="Comment on a post, or reply to a comment",
)
async def create_comment(
    body: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[CommentData]:
    comment, mentions = await comment_service.create_comment(
        db,
        current_user,
        post_id=body.post_id,
        content=body.content,
        parent_comment_id=body.parent_comment_id,
    )
    return ApiResponse(
        message="Comment created successfully",
        data=CommentData(comment=CommentResponse.from_model(comment, mentions)),
    )


@router.get(
    "/post/{post_id}",
    response_model=PaginatedResponse[CommentResponse],
    summary="Top-level comments of a post",
)
async def list_post_comments(
    post_id: UUID,
    page_request: PageRequest = Depends(get_page_request),
    db: AsyncSession = Depends(get_db_session),
) -> PaginatedResponse[CommentResponse]:
    page = await comment_service.list_for_post(db, post_id, page_request)
    return PaginatedResponse(
        message="Comments retrieved successfully",
        data=[CommentResponse.from_model(comment) for comment in page.items],
        pagination=PaginationMeta.from_window(page.window),
    )


@router.post(
    "/{comment_id}/like",
    response_model=ApiResponse[CommentData],
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        404: {"description": "No such comment", "model": ErrorResponse},
    },
    summary="Like the comment, or remove an existing like",
)
async def toggle_comment_like(
    comment_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[CommentData]:
    comment = await comment_service.toggle_like(db, comment_id, current_user)
    return ApiResponse(
        message="Comment like toggled successfully",
        data=CommentData(comment=CommentResponse.from_model(comment)),
    )


@router.delete(
    "/{comment_id}",
    response_model=ApiResponse[None],
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        403: {"description": "Not the author", "model": ErrorResponse},
        404: {"description": "No such comment", "model": ErrorResponse},
    },
    summary="Delete a comment and its replies (author only)",
)
async def delete_comment(
    comment_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[None]:
    await comment_service.delete_comment(db, comment_id, current_user)
    return ApiResponse(message="Comment deleted successfully")
