"""Token lifecycle shared by team and shared-list invitations.

An invitation moves ``pending -> accepted | declined | expired``. Tokens are
looked up globally, so generation guarantees uniqueness across every
invitation of the same kind.
"""

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import generate_token
from app.exceptions.invitation import InvitationExpiredError, InvitationNotFoundError
from models.base import utcnow

logger = logging.getLogger(__name__)


async def generate_unique_token(db: AsyncSession, invitation_model) -> str:
    while True:
        token = generate_token()
        existing = await db.execute(
            select(invitation_model.id).where(invitation_model.token == token)
        )
        if existing.scalar_one_or_none() is None:
            return token


def invitation_expiry(now: datetime | None = None) -> datetime:
    return (now or utcnow()) + timedelta(days=settings.invitation_expire_days)


async def upsert_invitation(
    db: AsyncSession,
    invitations: list,
    invitation_model,
    email: str,
    invited_by,
    **fields: Any,
):
    """
    Create a pending invitation for ``email`` or refresh the existing one.

    A pending invitation to the same email gets a new token, expiry and the
    supplied fields (role or permissions) instead of a duplicate row.
    """
    email = email.strip().lower()
    token = await generate_unique_token(db, invitation_model)
    expires_at = invitation_expiry()

    for invitation in invitations:
        if invitation.email == email and invitation.status == "pending":
            invitation.token = token
            invitation.expires_at = expires_at
            invitation.invited_by = invited_by
            for name, value in fields.items():
                setattr(invitation, name, value)
            return invitation

    invitation = invitation_model(
        email=email,
        token=token,
        expires_at=expires_at,
        invited_by=invited_by,
        status="pending",
        **fields,
    )
    invitations.append(invitation)
    return invitation


async def find_pending_invitation(db: AsyncSession, invitation_model, token: str):
    result = await db.execute(
        select(invitation_model).where(
            invitation_model.token == token, invitation_model.status == "pending"
        )
    )
    invitation = result.scalar_one_or_none()
    if invitation is None:
        raise InvitationNotFoundError()
    return invitation


async def claim_invitation(db: AsyncSession, invitation_model, token: str):
    """
    Return the pending invitation for ``token`` so it can be accepted.

    An invitation past its expiry is marked ``expired`` and committed before
    the request fails, so a retry with the same token reports it as unknown.
    """
    invitation = await find_pending_invitation(db, invitation_model, token)
    if invitation.expires_at < utcnow():
        invitation.status = "expired"
        await db.commit()
        logger.info(f"Invitation {invitation.id} expired before acceptance")
        raise InvitationExpiredError()
    return invitation
