"""
Mini-Blog Backend — Error Kinds and Application Exceptions
============================================================

What:  The closed set of error kinds the API can report, and the exception
       type that carries one of them from a service to the HTTP boundary.
How:   Every MiniBlogError is tagged with an ErrorKind. The kind owns the HTTP
       status code and the log severity; a single handler registered in
       main.py turns any MiniBlogError into the JSON error envelope.
       The subclasses below only fix the kind and a default message.

Kinds:
    VALIDATION      → 400 Bad Request
    AUTHENTICATION  → 401 Unauthorized
    AUTHORIZATION   → 403 Forbidden
    NOT_FOUND       → 404 Not Found
    CONFLICT        → 409 Conflict
    INTERNAL        → 500 Internal Server Error
"""

import enum
import logging
import re
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError


class ErrorKind(enum.Enum):
    """Tag for every error the API can surface, paired with its status code."""

    VALIDATION = (400, "Validation failed")
    AUTHENTICATION = (401, "Authentication failed")
    AUTHORIZATION = (403, "Access denied")
    NOT_FOUND = (404, "Resource not found")
    CONFLICT = (409, "Resource already exists")
    INTERNAL = (500, "Internal server error")

    def __init__(self, status_code: int, default_message: str):
        self.status_code = status_code
        self.default_message = default_message

    @property
    def log_level(self) -> int:
        # Client mistakes are routine; only internal faults page someone.
        return logging.ERROR if self.status_code >= 500 else logging.WARNING


class MiniBlogError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        kind:     ErrorKind tag (decides status code and log level)
        message:  Client-safe description
        field:    Offending input field, when one can be named
        context:  Extra debug info (logged, never returned to the client)
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: Optional[str] = None,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        kind: Optional[ErrorKind] = None,
    ):
        if kind is not None:
            self.kind = kind
        self.message = message or self.kind.default_message
        self.field = field
        self.context = context or {}
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def errors(self) -> Optional[List[Dict[str, str]]]:
        """Field-level error list for the response envelope, if a field is known."""
        if self.field is None:
            return None
        return [{"field": self.field, "message": self.message}]

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(kind={self.kind.name}, message={self.message!r})>"


class ValidationError(MiniBlogError):
    """Client input failed a business rule the schema could not express."""

    kind = ErrorKind.VALIDATION


class AuthenticationError(MiniBlogError):
    """Missing, malformed or expired credential, or bad login."""

    kind = ErrorKind.AUTHENTICATION


class AuthorizationError(MiniBlogError):
    """Authenticated, but not allowed to touch this record."""

    kind = ErrorKind.AUTHORIZATION


class NotFoundError(MiniBlogError):
    """A referenced entity does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[Any] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=message or f"{resource} not found", context=ctx)


class ConflictError(MiniBlogError):
    """A uniqueness rule was violated."""

    kind = ErrorKind.CONFLICT


# ── Duplicate-key translation ─────────────────────────────────────────────

# PostgreSQL: Key (email)=(a@b.c) already exists. / constraint "users_email_key"
# SQLite:     UNIQUE constraint failed: users.email
_PG_KEY_RE = re.compile(r"Key \((?P<field>[^)]+)\)=")
_SQLITE_KEY_RE = re.compile(r"UNIQUE constraint failed: \w+\.(?P<field>\w+)")
_KNOWN_UNIQUE_FIELDS = ("username", "email")

# Set-membership tables (likes, re-posts, mentions). A duplicate pair there means
# two toggles by the same user raced; the client did not send the key columns.
MEMBERSHIP_TABLES = (
    "post_likes",
    "post_reposts",
    "post_mentions",
    "comment_likes",
    "comment_mentions",
)
CONCURRENT_UPDATE = "Request conflicted with a concurrent update, please retry"


def _error_text(exc: IntegrityError) -> str:
    return str(exc.orig) if exc.orig is not None else str(exc)


def duplicate_field(exc: IntegrityError) -> Optional[str]:
    """Best-effort extraction of the column a unique violation fired on."""
    text = _error_text(exc)
    for pattern in (_PG_KEY_RE, _SQLITE_KEY_RE):
        match = pattern.search(text)
        if match:
            return match.group("field").split(",")[0].strip()
    lowered = text.lower()
    for name in _KNOWN_UNIQUE_FIELDS:
        if name in lowered:
            return name
    return None


def is_unique_violation(exc: IntegrityError) -> bool:
    lowered = _error_text(exc).lower()
    return "unique" in lowered or "duplicate key" in lowered


def conflict_from_integrity_error(exc: IntegrityError) -> ConflictError:
    """Maps a storage-level duplicate-key fault to the Conflict kind."""
    context = {"original_error": type(exc.orig).__name__ if exc.orig else "IntegrityError"}
    text = _error_text(exc)
    table = next((name for name in MEMBERSHIP_TABLES if name in text), None)
    if table is not None:
        context["table"] = table
        return ConflictError(message=CONCURRENT_UPDATE, context=context)

    field = duplicate_field(exc)
    if field == "email":
        message = "Email already registered"
    elif field == "username":
        message = "Username already taken"
    elif field:
        message = f"{field} already exists"
    else:
        message = "Duplicate field value"
    return ConflictError(
        message=message,
        field=field,
        context=context,
    )
