"""Unit tests for password hashing, tokens and the auth dependencies."""

import uuid
from types import SimpleNamespace
from unittest.mock import MagicMock

import jwt
import pytest
from fastapi.security import HTTPAuthorizationCredentials

from app.core.config import settings
from app.core.dependencies import get_current_user, validate_token
from app.core.security import (
    TokenAuthenticator,
    create_access_token,
    generate_token,
    hash_password,
    hash_token,
    verify_password,
)
from app.exceptions.base import UnauthenticatedError


def bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestPasswords:
    def test_hash_round_trip(self):
        hashed = hash_password("password123")

        assert hashed.startswith("pbkdf2_sha256$")
        assert verify_password("password123", hashed)
        assert not verify_password("password124", hashed)

    def test_hashes_are_salted(self):
        assert hash_password("same") != hash_password("same")

    @pytest.mark.parametrize("stored", ["", "plain", "md5$1$salt$abc", None])
    def test_malformed_hash_never_verifies(self, stored):
        assert verify_password("anything", stored) is False


class TestTokens:
    def test_generate_token_is_unique_and_url_safe(self):
        tokens = {generate_token() for _ in range(20)}

        assert len(tokens) == 20
        assert all("/" not in token and "+" not in token for token in tokens)

    def test_hash_token_is_stable(self):
        assert hash_token("abc") == hash_token("abc")
        assert hash_token("abc") != hash_token("abd")

    def test_access_token_carries_profile_claims(self):
        user = SimpleNamespace(id=uuid.uuid4(), name="Alice", email="a@x.io", role="user")

        payload = jwt.decode(create_access_token(user), settings.secret_key, algorithms=["HS256"])

        assert payload["sub"] == str(user.id)
        assert payload["name"] == "Alice"
        assert payload["email"] == "a@x.io"

    def test_expired_token(self):
        authenticator = TokenAuthenticator(secret_key="k" * 32)
        token = authenticator.create_access_token("user-1", expires_minutes=-1)

        with pytest.raises(UnauthenticatedError) as exc_info:
            authenticator.verify_token(token)
        assert exc_info.value.message == "Token has expired"

    def test_foreign_signature(self):
        token = TokenAuthenticator(secret_key="a" * 32).create_access_token("user-1")

        with pytest.raises(UnauthenticatedError):
            TokenAuthenticator(secret_key="b" * 32).verify_token(token)

    def test_missing_subject(self):
        authenticator = TokenAuthenticator(secret_key="k" * 32)
        token = jwt.encode({"name": "nobody"}, "k" * 32, algorithm="HS256")

        with pytest.raises(UnauthenticatedError) as exc_info:
            authenticator.verify_token(token)
        assert "missing user ID" in exc_info.value.message


class TestDependencies:
    @pytest.mark.asyncio
    async def test_validate_token_success(self, test_user):
        payload = await validate_token(bearer(create_access_token(test_user)))

        assert payload["sub"] == str(test_user.id)

    @pytest.mark.asyncio
    async def test_validate_token_no_credentials(self):
        with pytest.raises(UnauthenticatedError) as exc_info:
            await validate_token(None)
        assert exc_info.value.message == "Authentication token is required"

    @pytest.mark.asyncio
    async def test_get_current_user_success(self, fresh_db, test_user):
        request = MagicMock()
        request.state = SimpleNamespace()

        user = await get_current_user(request, {"sub": str(test_user.id)}, fresh_db)

        assert user.id == test_user.id
        assert request.state.user_id == test_user.id

    @pytest.mark.asyncio
    async def test_get_current_user_malformed_subject(self, fresh_db):
        with pytest.raises(UnauthenticatedError):
            await get_current_user(MagicMock(), {"sub": "not-a-uuid"}, fresh_db)

    @pytest.mark.asyncio
    async def test_get_current_user_no_user_found(self, fresh_db):
        with pytest.raises(UnauthenticatedError) as exc_info:
            await get_current_user(MagicMock(), {"sub": str(uuid.uuid4())}, fresh_db)
        assert exc_info.value.message == "User belonging to this token no longer exists"

    @pytest.mark.asyncio
    async def test_get_current_user_inactive_user(self, test_db, fresh_db, test_user):
        test_user.is_active = False
        await test_db.commit()

        with pytest.raises(UnauthenticatedError) as exc_info:
            await get_current_user(MagicMock(), {"sub": str(test_user.id)}, fresh_db)
        assert exc_info.value.message == "Your account has been deactivated"
