"""
Mini-Blog Backend — Identity & Credential Service Tests
=========================================================

What we test:
    ✅ Passwords are stored hashed and verify against the plaintext
    ✅ Duplicate email / username → ConflictError naming the field
    ✅ A duplicate-key error at flush is translated to the same ConflictError
    ✅ Unknown email and wrong password fail identically
    ✅ Tokens round-trip; expired, forged, malformed tokens are rejected
"""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from jose import jwt
from sqlalchemy.exc import IntegrityError

from miniblog.exceptions import AuthenticationError, ConflictError
from miniblog.services.auth_service import (
    INVALID_CREDENTIALS,
    INVALID_TOKEN,
    AuthService,
    TokenService,
)

SECRET = "unit-test-secret"


class TestSignup:

    @pytest.mark.asyncio
    async def test_password_is_hashed(self, db_session, test_settings):
        service = AuthService(db_session, test_settings)

        user = await service.create_user("alice", "alice@example.com", "secret123")

        assert user.id is not None
        assert user.password_hash != "secret123"
        assert user.password_hash.startswith("$2")
        assert service.verify_password("secret123", user.password_hash)
        assert not service.verify_password("wrong", user.password_hash)

    @pytest.mark.asyncio
    async def test_duplicate_email(self, db_session, test_settings):
        service = AuthService(db_session, test_settings)
        await service.create_user("alice", "alice@example.com", "secret123")

        with pytest.raises(ConflictError) as exc_info:
            await service.create_user("alice2", "alice@example.com", "secret123")

        assert exc_info.value.field == "email"
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_duplicate_username(self, db_session, test_settings):
        service = AuthService(db_session, test_settings)
        await service.create_user("alice", "alice@example.com", "secret123")

        with pytest.raises(ConflictError) as exc_info:
            await service.create_user("alice", "other@example.com", "secret123")

        assert exc_info.value.field == "username"
        assert exc_info.value.message == "Username already taken"

    @pytest.mark.asyncio
    async def test_race_on_insert_becomes_conflict(self, db_session, test_settings):
        """The pre-check passed, but a concurrent signup won the unique index."""
        service = AuthService(db_session, test_settings)
        race = IntegrityError(
            "INSERT INTO users ...", {}, Exception("UNIQUE constraint failed: users.email")
        )

        with patch.object(db_session, "flush", AsyncMock(side_effect=race)):
            with pytest.raises(ConflictError) as exc_info:
                await service.create_user("bob", "bob@example.com", "secret123")

        assert exc_info.value.field == "email"
        assert exc_info.value.message == "Email already registered"


class TestLogin:

    @pytest.mark.asyncio
    async def test_valid_credentials(self, db_session, test_settings):
        service = AuthService(db_session, test_settings)
        created = await service.create_user("alice", "alice@example.com", "secret123")

        user = await service.authenticate("alice@example.com", "secret123")

        assert user.id == created.id

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_look_the_same(
        self, db_session, test_settings
    ):
        service = AuthService(db_session, test_settings)
        await service.create_user("alice", "alice@example.com", "secret123")

        with pytest.raises(AuthenticationError) as wrong_password:
            await service.authenticate("alice@example.com", "nope-nope")
        with pytest.raises(AuthenticationError) as unknown_email:
            await service.authenticate("nobody@example.com", "secret123")

        assert wrong_password.value.message == unknown_email.value.message == INVALID_CREDENTIALS
        assert wrong_password.value.status_code == unknown_email.value.status_code == 401


class TestTokens:

    def test_round_trip(self):
        tokens = TokenService(SECRET)
        user_id = uuid.uuid4()

        assert tokens.verify(tokens.issue(user_id)) == user_id

    def test_expired(self):
        tokens = TokenService(SECRET, expire_minutes=5)
        issued_at = datetime.now(timezone.utc) - timedelta(hours=1)
        token = tokens.issue(uuid.uuid4(), now=issued_at)

        with pytest.raises(AuthenticationError) as exc_info:
            tokens.verify(token)

        assert exc_info.value.message == INVALID_TOKEN
        assert exc_info.value.context["reason"] == "expired"

    def test_wrong_secret(self):
        token = TokenService("another-secret").issue(uuid.uuid4())

        with pytest.raises(AuthenticationError) as exc_info:
            TokenService(SECRET).verify(token)

        assert exc_info.value.context["reason"] == "invalid"

    def test_garbage(self):
        with pytest.raises(AuthenticationError) as exc_info:
            TokenService(SECRET).verify("not-a-token")
        assert exc_info.value.message == INVALID_TOKEN

    def test_subject_must_be_a_user_id(self):
        exp = int((datetime.now(timezone.utc) + timedelta(minutes=5)).timestamp())
        token = jwt.encode({"sub": "alice", "exp": exp}, SECRET, algorithm="HS256")

        with pytest.raises(AuthenticationError) as exc_info:
            TokenService(SECRET).verify(token)

        assert exc_info.value.context["reason"] == "bad_subject"

    @pytest.mark.asyncio
    async def test_token_for_deleted_user(self, db_session, test_settings):
        service = AuthService(db_session, test_settings)
        token = service.issue_token(uuid.uuid4())

        with pytest.raises(AuthenticationError) as exc_info:
            await service.user_from_token(token)

        assert exc_info.value.context["reason"] == "unknown_user"

    @pytest.mark.asyncio
    async def test_user_from_token(self, db_session, test_settings):
        service = AuthService(db_session, test_settings)
        user = await service.create_user("alice", "alice@example.com", "secret123")

        resolved = await service.user_from_token(service.issue_token(user.id))

        assert resolved.id == user.id
