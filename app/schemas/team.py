"""Team schemas."""

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import EmailStr, Field

from .base import BaseModelSchema, BaseSchema, RequestSchema
from .user import UserSummary

MemberRole = Literal["admin", "member", "guest"]


class TeamCreate(RequestSchema):
    name: str = Field(..., min_length=2, max_length=50)
    description: str = Field(default="", max_length=500)
    avatar: Optional[str] = Field(None, max_length=500)


class TeamUpdate(RequestSchema):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    description: Optional[str] = Field(None, max_length=500)
    avatar: Optional[str] = Field(None, max_length=500)


class TeamMemberAdd(RequestSchema):
    user_id: UUID
    role: MemberRole = "member"


class TeamMemberRoleUpdate(RequestSchema):
    role: MemberRole


class TeamInvite(RequestSchema):
    email: EmailStr
    role: MemberRole = "member"


class InvitationToken(RequestSchema):
    token: str = Field(..., min_length=1)


class TeamMemberResponse(BaseSchema):
    user: UserSummary
    role: str
    permissions: dict
    joined_at: datetime
    invited_by: Optional[UUID] = None


class TeamInvitationResponse(BaseSchema):
    id: UUID
    email: str
    role: str
    status: str
    expires_at: datetime
    invited_by: Optional[UUID] = None
    created_at: datetime


class TeamResponse(BaseModelSchema):
    name: str
    description: str
    avatar: str
    owner_id: UUID
    is_active: bool
    members: list[TeamMemberResponse]
