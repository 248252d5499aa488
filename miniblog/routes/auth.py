"""
Mini-Blog Backend — Auth Route Handlers
=========================================

What:  Signup, login and the current-user profile.
How:   Request bodies are validated by SignupRequest/LoginRequest (400 on
       failure); AuthService does the rest. Both signup and login answer with
       the public profile and a fresh bearer token.
"""

import logging

from fastapi import APIRouter, Depends, status

from miniblog.dependencies import get_auth_service, get_current_user
from miniblog.models.user import User
from miniblog.schemas.common import ApiResponse, ErrorResponse
from miniblog.schemas.user import (
    AuthPayload,
    LoginRequest,
    SignupRequest,
    UserData,
    UserResponse,
)
from miniblog.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def _auth_payload(auth_service: AuthService, user: User) -> AuthPayload:
    return AuthPayload(
        user=UserResponse.model_validate(user),
        token=auth_service.issue_token(user.id),
    )


@router.post(
    "/signup",
    response_model=ApiResponse[AuthPayload],
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid username, email or password", "model": ErrorResponse},
        409: {"description": "Username or email already registered", "model": ErrorResponse},
    },
    summary="Register a new user",
)
async def signup(
    body: SignupRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[AuthPayload]:
    user = await auth_service.create_user(body.username, body.email, body.password)
    return ApiResponse(
        message="User created successfully",
        data=_auth_payload(auth_service, user),
    )


@router.post(
    "/login",
    response_model=ApiResponse[AuthPayload],
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Exchange email and password for a bearer token",
)
async def login(
    body: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[AuthPayload]:
    user = await auth_service.authenticate(body.email, body.password)
    return ApiResponse(
        message="Login successful",
        data=_auth_payload(auth_service, user),
    )


@router.get(
    "/me",
    response_model=ApiResponse[UserData],
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="Profile of the authenticated user",
)
async def me(current_user: User = Depends(get_current_user)) -> ApiResponse[UserData]:
    return ApiResponse(
        message="User retrieved successfully",
        data=UserData(user=UserResponse.model_validate(current_user)),
    )
