"""
Unit tests for UserService.

Account lifecycle against a real session: registration, credentials,
one-time tokens and profile updates.
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.core.security import hash_token, verify_password
from app.domains.user.service import UserService
from app.exceptions.auth import (
    AccountDeactivatedError,
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    InvalidTokenError,
)
from app.exceptions.base import BadRequestError, NotFoundError
from app.schemas.user import UserProfile, UserRegisterRequest, UserUpdateRequest
from models import User
from models.base import utcnow
from tests.conftest import fetch
from tests.factories import DEFAULT_PASSWORD


@pytest.fixture
def service(fresh_db):
    return UserService(fresh_db)


@pytest.fixture
def sent_emails():
    outbox = []

    def capture(to_email, message):
        outbox.append((to_email, message))
        return True

    with patch("app.domains.user.service.queue_email", side_effect=capture):
        yield outbox


class TestRegistration:
    @pytest.mark.asyncio
    async def test_register_hashes_password_and_sends_verification(self, service, sent_emails):
        """New accounts start unverified with a hashed token and one queued email."""
        with patch("app.domains.user.service.generate_token", return_value="verify-me"):
            user = await service.register(
                UserRegisterRequest(name="Dana Scully", email="Dana@Example.com", password="trustno1")
            )

        assert user.email == "dana@example.com"
        assert user.role == "user"
        assert user.is_email_verified is False
        assert user.password_hash != "trustno1"
        assert verify_password("trustno1", user.password_hash)
        assert user.email_verification_token == hash_token("verify-me")
        assert [to for to, _ in sent_emails] == ["dana@example.com"]

    @pytest.mark.asyncio
    async def test_duplicate_email(self, service, test_user, sent_emails):
        with pytest.raises(EmailAlreadyRegisteredError):
            await service.register(
                UserRegisterRequest(name="Alice Again", email="ALICE@example.com", password="secret1")
            )

        assert sent_emails == []


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_stamps_last_login(self, service, test_user):
        user = await service.login("alice@example.com", DEFAULT_PASSWORD)

        assert user.id == test_user.id
        assert user.last_login is not None

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email(self, service, test_user):
        with pytest.raises(InvalidCredentialsError):
            await service.login("alice@example.com", "not-it")
        with pytest.raises(InvalidCredentialsError):
            await service.login("nobody@example.com", DEFAULT_PASSWORD)

    @pytest.mark.asyncio
    async def test_deactivated_account(self, service, test_user):
        user = await service.get_user_by_id(test_user.id)
        await service.deactivate(user)

        with pytest.raises(AccountDeactivatedError):
            await service.login("alice@example.com", DEFAULT_PASSWORD)

        reactivated = await service.reactivate("alice@example.com", DEFAULT_PASSWORD)
        assert reactivated.is_active is True


class TestTokens:
    @pytest.mark.asyncio
    async def test_verify_email_consumes_token(self, service, sent_emails):
        with patch("app.domains.user.service.generate_token", return_value="once"):
            user = await service.register(
                UserRegisterRequest(name="Fox Mulder", email="fox@example.com", password="believe")
            )

        verified = await service.verify_email("once")

        assert verified.id == user.id
        assert verified.is_email_verified is True
        assert verified.email_verification_token is None
        with pytest.raises(InvalidTokenError):
            await service.verify_email("once")

    @pytest.mark.asyncio
    async def test_expired_verification_token(self, service, test_db, test_user):
        test_user.email_verification_token = hash_token("stale")
        test_user.email_verification_expires = utcnow() - timedelta(minutes=1)
        await test_db.commit()

        with pytest.raises(InvalidTokenError):
            await service.verify_email("stale")

    @pytest.mark.asyncio
    async def test_resend_for_verified_user(self, service, test_db, test_user):
        test_user.is_email_verified = True
        await test_db.commit()
        user = await service.get_user_by_id(test_user.id)

        with pytest.raises(BadRequestError):
            await service.resend_verification(user)

    @pytest.mark.asyncio
    async def test_password_reset_flow(self, service, test_user, sent_emails):
        with patch("app.domains.user.service.generate_token", return_value="reset-token"):
            await service.forgot_password("alice@example.com")

        assert len(sent_emails) == 1
        stored = await fetch(User, id=test_user.id)
        assert stored.password_reset_token == hash_token("reset-token")
        assert stored.password_reset_expires > utcnow()

        user = await service.reset_password("reset-token", "brand-new-pass")

        assert verify_password("brand-new-pass", user.password_hash)
        assert user.password_reset_token is None
        with pytest.raises(InvalidTokenError):
            await service.reset_password("reset-token", "again-again")

    @pytest.mark.asyncio
    async def test_forgot_password_unknown_email(self, service):
        with pytest.raises(NotFoundError):
            await service.forgot_password("ghost@example.com")


class TestAccountUpdates:
    @pytest.mark.asyncio
    async def test_update_rejects_taken_email(self, service, test_user, test_user_2):
        user = await service.get_user_by_id(test_user.id)

        with pytest.raises(EmailAlreadyRegisteredError):
            await service.update_user(user, UserUpdateRequest(email="b@example.com"))

    @pytest.mark.asyncio
    async def test_update_profile_merges(self, service, test_user):
        user = await service.get_user_by_id(test_user.id)

        await service.update_profile(user, UserProfile(bio="Agent", skills=["python"]))
        updated = await service.update_profile(user, UserProfile(location="Washington"))

        assert updated.profile["bio"] == "Agent"
        assert updated.profile["skills"] == ["python"]
        assert updated.profile["location"] == "Washington"

    @pytest.mark.asyncio
    async def test_change_password(self, service, test_user):
        user = await service.get_user_by_id(test_user.id)

        with pytest.raises(InvalidCredentialsError) as exc_info:
            await service.change_password(user, "wrong", "whatever1")
        assert exc_info.value.message == "Current password is incorrect"

        changed = await service.change_password(user, DEFAULT_PASSWORD, "whatever1")
        assert verify_password("whatever1", changed.password_hash)

    @pytest.mark.asyncio
    async def test_database_error_is_reported(self, service, test_user):
        user = await service.get_user_by_id(test_user.id)

        with patch.object(service.db, "commit", side_effect=SQLAlchemyError("Database error")):
            with pytest.raises(BadRequestError) as exc_info:
                await service.deactivate(user)

        assert exc_info.value.message == "Failed to deactivate user"
