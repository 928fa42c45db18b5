# app/core/dependencies.py
import logging
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import token_authenticator
from app.database import get_db
from app.exceptions.base import UnauthenticatedError
from app.realtime.events import EventBus
from app.services.storage_service import StorageService
from models import User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


async def validate_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> dict:
    """Validate and decode the bearer JWT.

    Returns:
        dict: Decoded token payload

    Raises:
        UnauthenticatedError: If the token is missing, invalid or expired
    """
    if not credentials or not credentials.credentials:
        raise UnauthenticatedError("Authentication token is required")
    return token_authenticator.verify_token(credentials.credentials)


async def get_current_user(
    request: Request,
    payload: dict = Depends(validate_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get current authenticated user from JWT payload.

    Returns:
        User: Current authenticated user

    Raises:
        UnauthenticatedError: If the user no longer exists or is inactive
    """
    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise UnauthenticatedError("Invalid token payload - malformed user ID")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise UnauthenticatedError("User belonging to this token no longer exists")

    if not user.is_active:
        raise UnauthenticatedError("Your account has been deactivated")

    # Add user info to request state for logging
    request.state.user_id = user.id

    return user


def get_event_bus(request: Request) -> EventBus:
    """Realtime event registry owned by the running application."""
    return request.app.state.event_bus


def get_storage() -> StorageService:
    return StorageService()
