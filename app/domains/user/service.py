# app/domains/user/service.py
import logging
from datetime import timedelta
from typing import Optional
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import generate_token, hash_password, hash_token, verify_password
from app.exceptions.auth import (
    AccountDeactivatedError,
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    InvalidTokenError,
)
from app.exceptions.base import BadRequestError, NotFoundError
from app.schemas.user import UserProfile, UserRegisterRequest, UserUpdateRequest
from app.services.email_service import email_service, queue_email
from app.services.storage_service import PUBLIC_PREFIX, StorageService
from models import User
from models.base import utcnow

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        """Get a user by ID."""
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    async def register(self, data: UserRegisterRequest) -> User:
        """Create an account and email a verification link."""
        if await self.get_user_by_email(data.email):
            raise EmailAlreadyRegisteredError()

        token = generate_token()
        user = User(
            name=data.name,
            email=data.email,
            password_hash=hash_password(data.password),
            role="user",
            profile={},
            email_verification_token=hash_token(token),
            email_verification_expires=utcnow()
            + timedelta(hours=settings.email_verification_expire_hours),
        )
        await self._save(user, "register user", add=True)
        logger.info(f"👤 Registered user {user.id}")

        queue_email(user.email, email_service.build_verification_email(user.name, token))
        return user

    async def login(self, email: str, password: str) -> User:
        user = await self.get_user_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()
        if not user.is_active:
            raise AccountDeactivatedError()

        user.last_login = utcnow()
        await self._save(user, "record login")
        return user

    async def verify_email(self, token: str) -> User:
        result = await self.db.execute(
            select(User).where(User.email_verification_token == hash_token(token))
        )
        user = result.scalar_one_or_none()
        if not user or not user.email_verification_expires or user.email_verification_expires < utcnow():
            raise InvalidTokenError("Verification token is invalid or has expired")

        user.is_email_verified = True
        user.email_verification_token = None
        user.email_verification_expires = None
        await self._save(user, "verify email")
        return user

    async def resend_verification(self, user: User) -> None:
        if user.is_email_verified:
            raise BadRequestError("Email is already verified")

        token = generate_token()
        user.email_verification_token = hash_token(token)
        user.email_verification_expires = utcnow() + timedelta(
            hours=settings.email_verification_expire_hours
        )
        await self._save(user, "reissue verification token")
        queue_email(user.email, email_service.build_verification_email(user.name, token))

    async def forgot_password(self, email: str) -> None:
        """Issue a short-lived password reset token and email it."""
        user = await self.get_user_by_email(email)
        if not user:
            raise NotFoundError("There is no user with that email address")

        token = generate_token()
        user.password_reset_token = hash_token(token)
        user.password_reset_expires = utcnow() + timedelta(
            minutes=settings.password_reset_expire_minutes
        )
        await self._save(user, "issue password reset token")
        queue_email(user.email, email_service.build_password_reset_email(user.name, token))

    async def reset_password(self, token: str, password: str) -> User:
        result = await self.db.execute(
            select(User).where(User.password_reset_token == hash_token(token))
        )
        user = result.scalar_one_or_none()
        if not user or not user.password_reset_expires or user.password_reset_expires < utcnow():
            raise InvalidTokenError("Reset token is invalid or has expired")

        user.password_hash = hash_password(password)
        user.password_reset_token = None
        user.password_reset_expires = None
        await self._save(user, "reset password")
        return user

    async def update_user(self, user: User, data: UserUpdateRequest) -> User:
        """Update name, email or avatar of the account."""
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        email = update_data.get("email")
        if email and email.lower() != user.email:
            existing = await self.get_user_by_email(email)
            if existing and existing.id != user.id:
                raise EmailAlreadyRegisteredError()

        for field, value in update_data.items():
            setattr(user, field, value)
        await self._save(user, "update user")
        return user

    async def update_profile(self, user: User, profile: UserProfile) -> User:
        """Merge the sent profile fields into the stored profile document."""
        merged = dict(user.profile or {})
        merged.update(profile.model_dump(mode="json", exclude_unset=True))
        user.profile = merged
        await self._save(user, "update profile")
        return user

    async def change_password(self, user: User, current_password: str, new_password: str) -> User:
        if not verify_password(current_password, user.password_hash):
            raise InvalidCredentialsError("Current password is incorrect")
        user.password_hash = hash_password(new_password)
        await self._save(user, "change password")
        return user

    async def update_avatar(self, user: User, upload: UploadFile, storage: StorageService) -> User:
        """Store a new avatar image and remove the previous uploaded one."""
        stored = await storage.save_upload(upload, image_only=True)
        previous = user.avatar
        user.avatar = stored["path"]
        try:
            await self._save(user, "update avatar")
        except BadRequestError:
            storage.delete_file(stored["path"])
            raise

        if previous and previous.startswith(f"{PUBLIC_PREFIX}/"):
            storage.delete_file(previous)
        return user

    async def deactivate(self, user: User) -> None:
        user.is_active = False
        await self._save(user, "deactivate user")
        logger.info(f"User {user.id} deactivated")

    async def reactivate(self, email: str, password: str) -> User:
        user = await self.get_user_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()
        user.is_active = True
        user.last_login = utcnow()
        await self._save(user, "reactivate user")
        logger.info(f"User {user.id} reactivated")
        return user

    async def _save(self, user: User, action: str, add: bool = False) -> None:
        try:
            if add:
                self.db.add(user)
            await self.db.commit()
            await self.db.refresh(user)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"❌ Failed to {action}: {str(e)}")
            raise BadRequestError(f"Failed to {action}")
