"""
User request/response schemas.

Public profiles never carry the password hash; UserResponse simply has no
field for it.
"""

import re
import uuid
from datetime import datetime
from typing import Annotated

from pydantic import EmailStr, Field, StringConstraints, field_validator

from miniblog.schemas.common import CamelModel

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
PASSWORD_MIN_LENGTH = 6

Username = Annotated[
    str,
    StringConstraints(
        strip_whitespace=True,
        min_length=USERNAME_MIN_LENGTH,
        max_length=USERNAME_MAX_LENGTH,
        pattern=USERNAME_PATTERN.pattern,
    ),
]


class SignupRequest(CamelModel):
    username: Username = Field(description="3-30 letters, digits or underscores")
    email: EmailStr
    password: str = Field(min_length=PASSWORD_MIN_LENGTH, max_length=128)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.strip().lower()


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.strip().lower()


class UserResponse(CamelModel):
    id: uuid.UUID
    username: str
    email: str
    created_at: datetime


class AuthPayload(CamelModel):
    user: UserResponse
    token: str


class UserData(CamelModel):
    user: UserResponse
