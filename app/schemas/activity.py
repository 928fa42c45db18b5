"""Activity, notification and preference schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, field_validator

from models.activity import ACTIVITY_TYPES

from .base import BaseSchema, RequestSchema
from .user import UserSummary


class ActivityResponse(BaseSchema):
    id: UUID
    type: str
    user_id: UUID
    actor: Optional[UserSummary] = None
    task_id: Optional[UUID] = None
    team_id: Optional[UUID] = None
    shared_list_id: Optional[UUID] = None
    comment_id: Optional[UUID] = None
    target_user_id: Optional[UUID] = None
    metadata: dict = Field(default_factory=dict, validation_alias="details")
    created_at: datetime


class NotificationResponse(BaseSchema):
    id: UUID
    recipient_id: UUID
    read: bool
    read_at: Optional[datetime] = None
    created_at: datetime
    activity: ActivityResponse


class ChannelPreference(RequestSchema):
    in_app: Optional[bool] = None
    email: Optional[bool] = None
    push: Optional[bool] = None


class PreferencesUpdate(RequestSchema):
    preferences: dict[str, ChannelPreference]

    @field_validator("preferences")
    @classmethod
    def known_types(cls, v):
        unknown = [key for key in v if key not in ACTIVITY_TYPES]
        if unknown:
            raise ValueError(f"Unknown activity types: {', '.join(sorted(unknown))}")
        return v
