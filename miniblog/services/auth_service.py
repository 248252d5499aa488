"""
Mini-Blog Backend — Identity & Credential Service
===================================================

What:  Signup, login, password hashing and bearer-token issue/verification.
How:   Passwords are hashed with bcrypt through passlib's CryptContext.
       Tokens are HS256 JWTs (python-jose) carrying the user id in `sub`.

Security rules:
    - The plaintext password is never stored or logged.
    - Unknown email and wrong password fail with the same message and status.
    - Expired vs malformed tokens are told apart in the logs only; the client
      always sees the same generic 401.

Audit:
    Successful signups and logins are written to the `miniblog.audit` logger.
"""

import logging
from functools import lru_cache
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from miniblog.config import Settings
from miniblog.exceptions import (
    AuthenticationError,
    ConflictError,
    conflict_from_integrity_error,
    is_unique_violation,
)
from miniblog.models.user import User

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("miniblog.audit")

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_TOKEN = "Invalid or expired token"


@lru_cache(maxsize=None)
def build_password_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


class TokenService:
    """Issues and verifies signed, time-bounded bearer tokens."""

    def __init__(self, secret: str, algorithm: str = "HS256", expire_minutes: int = 60 * 24 * 7):
        self._secret = secret
        self._algorithm = algorithm
        self.expires_in = timedelta(minutes=expire_minutes)

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            expire_minutes=settings.jwt_expire_minutes,
        )

    def issue(self, user_id: UUID, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int((now + self.expires_in).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> UUID:
        """
        Returns the user id embedded in a valid token.

        Raises:
            AuthenticationError: expired, badly signed or malformed token
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError:
            logger.info("Rejected bearer token: expired")
            raise AuthenticationError(INVALID_TOKEN, context={"reason": "expired"})
        except JWTError as e:
            logger.warning("Rejected bearer token: invalid (%s)", str(e))
            raise AuthenticationError(INVALID_TOKEN, context={"reason": "invalid"})

        subject = payload.get("sub")
        try:
            return UUID(str(subject))
        except (TypeError, ValueError):
            logger.warning("Rejected bearer token: subject %r is not a user id", subject)
            raise AuthenticationError(INVALID_TOKEN, context={"reason": "bad_subject"})


class AuthService:
    """
    Signup and login against the users table.

    One instance per request; it shares the request's session so the user
    insert commits with everything else the request does.
    """

    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.tokens = TokenService.from_settings(settings)
        self.pwd_context = build_password_context(settings.bcrypt_rounds)

    # ── Passwords ─────────────────────────────────────────────────────────

    def hash_password(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def verify_password(self, password: str, password_hash: str) -> bool:
        return self.pwd_context.verify(password, password_hash)

    # ── Users ─────────────────────────────────────────────────────────────

    async def create_user(self, username: str, email: str, password: str) -> User:
        """
        Registers a new user.

        Raises:
            ConflictError: username or email already registered, either seen
                by the pre-check or raised by the unique index on insert
        """
        existing = (
            await self.db.execute(
                select(User).where(or_(User.email == email, User.username == username))
            )
        ).scalars().first()
        if existing is not None:
            if existing.email == email:
                raise ConflictError("Email already registered", field="email")
            raise ConflictError("Username already taken", field="username")

        user = User(
            username=username,
            email=email,
            password_hash=await run_in_threadpool(self.hash_password, password),
        )
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError as e:
            if not is_unique_violation(e):
                raise
            conflict = conflict_from_integrity_error(e)
            logger.warning("Signup lost a uniqueness race on %s", conflict.field)
            raise conflict

        audit_logger.info("user.created id=%s username=%s", user.id, user.username)
        return user

    async def authenticate(self, email: str, password: str) -> User:
        """
        Raises:
            AuthenticationError: "Invalid credentials" for an unknown email
                and for a wrong password alike
        """
        user = (
            await self.db.execute(select(User).where(User.email == email))
        ).scalars().first()

        if user is None or not await run_in_threadpool(
            self.verify_password, password, user.password_hash
        ):
            logger.warning("Failed login attempt for %s", email)
            raise AuthenticationError(INVALID_CREDENTIALS)

        audit_logger.info("user.authenticated id=%s username=%s", user.id, user.username)
        return user

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        return await self.db.get(User, user_id)

    # ── Tokens ────────────────────────────────────────────────────────────

    def issue_token(self, user_id: UUID) -> str:
        return self.tokens.issue(user_id)

    def verify_token(self, token: str) -> UUID:
        return self.tokens.verify(token)

    async def user_from_token(self, token: str) -> User:
        """
        Resolves a bearer token to its user.

        Raises:
            AuthenticationError: invalid token, or the user no longer exists
        """
        user_id = self.verify_token(token)
        user = await self.get_user_by_id(user_id)
        if user is None:
            logger.warning("Valid token for unknown user %s", user_id)
            raise AuthenticationError(INVALID_TOKEN, context={"reason": "unknown_user"})
        return user
