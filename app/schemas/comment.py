"""Comment and reaction schemas."""

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import Field

from .base import BaseModelSchema, BaseSchema, RequestSchema
from .user import UserSummary

Reaction = Literal["👍", "👎", "❤️", "😂", "😮", "😢", "🎉"]


class CommentCreate(RequestSchema):
    task_id: UUID
    content: str = Field(..., min_length=1, max_length=2000)
    parent_comment_id: Optional[UUID] = None
    mentions: list[UUID] = Field(default_factory=list)


class CommentUpdate(RequestSchema):
    content: str = Field(..., min_length=1, max_length=2000)
    mentions: Optional[list[UUID]] = None


class ReactionCreate(RequestSchema):
    reaction: Reaction


class ReactionResponse(BaseSchema):
    id: UUID
    comment_id: UUID
    user_id: UUID
    reaction: str
    created_at: datetime


class CommentResponse(BaseModelSchema):
    content: str
    task_id: UUID
    user_id: UUID
    author: UserSummary
    parent_comment_id: Optional[UUID] = None
    attachments: list[dict]
    mentions: list[UUID]
    is_edited: bool
    edited_at: Optional[datetime] = None
    reactions: list[ReactionResponse] = []
