"""
Mini-Blog Backend — Shared Route Dependencies
===============================================

What:  FastAPI dependencies used across routers: application settings, the
       per-request AuthService, bearer-token authentication and the common
       page/limit/sortBy/sortOrder query parameters.
How:   Settings and the Database live on app.state (set by create_app()).
       The bearer scheme is declared with auto_error=False so a missing header
       reaches our own AuthenticationError and the standard error envelope
       instead of FastAPI's default 403.
"""

import logging
from typing import Optional

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from miniblog.config import Settings
from miniblog.database import get_db_session
from miniblog.exceptions import AuthenticationError
from miniblog.models.user import User
from miniblog.services.auth_service import AuthService
from miniblog.services.pagination import PageRequest

logger = logging.getLogger(__name__)

NO_TOKEN = "Access denied. No token provided."

bearer_scheme = HTTPBearer(auto_error=False, description="JWT from /auth/signup or /auth/login")


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_auth_service(
    db: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> AuthService:
    return AuthService(db, settings)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> User:
    """
    Resolves `Authorization: Bearer <token>` to the calling user.

    Raises:
        AuthenticationError: header missing, token invalid or expired, or the
            token's user no longer exists
    """
    if credentials is None or not credentials.credentials:
        logger.info("Rejected %s %s: no bearer token", request.method, request.url.path)
        raise AuthenticationError(NO_TOKEN)

    user = await auth_service.user_from_token(credentials.credentials)
    request.state.user_id = str(user.id)
    return user


def get_page_request(
    page: Optional[int] = Query(default=None, description="1-based page number"),
    limit: Optional[int] = Query(default=None, description="Items per page, clamped to 1..50"),
    sort_by: Optional[str] = Query(
        default=None, alias="sortBy", description="Field to sort on (default createdAt)"
    ),
    sort_order: Optional[str] = Query(
        default=None, alias="sortOrder", description="asc or desc (default desc)"
    ),
) -> PageRequest:
    return PageRequest.from_query(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)
