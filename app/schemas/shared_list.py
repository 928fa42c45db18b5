"""Shared list schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import EmailStr, Field

from .base import BaseModelSchema, BaseSchema, RequestSchema
from .user import UserSummary


class ListPermissions(RequestSchema):
    """Partial permission bag; omitted capabilities keep their current value."""

    view: Optional[bool] = None
    create: Optional[bool] = None
    update: Optional[bool] = None
    delete: Optional[bool] = None
    share: Optional[bool] = None


class SharedListCreate(RequestSchema):
    name: str = Field(..., min_length=2, max_length=100)
    description: str = Field(default="", max_length=500)
    team_id: Optional[UUID] = None
    is_public: bool = False
    tasks: list[UUID] = Field(default_factory=list)


class SharedListUpdate(RequestSchema):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    is_public: Optional[bool] = None


class SharedListMemberAdd(RequestSchema):
    user_id: UUID
    permissions: Optional[ListPermissions] = None


class SharedListPermissionsUpdate(RequestSchema):
    permissions: ListPermissions


class SharedListInvite(RequestSchema):
    email: EmailStr
    permissions: Optional[ListPermissions] = None


class SharedListTaskAdd(RequestSchema):
    task_id: UUID


class SharedListMemberResponse(BaseSchema):
    user: UserSummary
    permissions: dict
    added_at: datetime
    added_by: Optional[UUID] = None


class SharedListInvitationResponse(BaseSchema):
    id: UUID
    email: str
    permissions: dict
    status: str
    expires_at: datetime
    created_at: datetime


class SharedListPublicResponse(BaseModelSchema):
    """What anonymous callers may see: no members, no invitations."""

    name: str
    description: str
    owner: UserSummary
    is_public: bool
    public_access_code: Optional[str] = None
    tasks: list[UUID]


class SharedListResponse(SharedListPublicResponse):
    owner_id: UUID
    team_id: Optional[UUID] = None
    is_team_list: bool
    members: list[SharedListMemberResponse]
