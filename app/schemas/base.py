"""Base schemas for the application."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema class with common configuration."""
    model_config = ConfigDict(from_attributes=True)


class RequestSchema(BaseModel):
    """Base schema for request bodies; unknown fields are rejected."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class BaseModelSchema(BaseSchema):
    """Base schema for database models."""
    id: UUID
    created_at: datetime
    updated_at: datetime


class ResponseSchema(BaseSchema):
    """Standard API response schema."""
    status: str
    message: Optional[str] = None
    data: Optional[Any] = None


def success(message: str, data: Any = None) -> ResponseSchema:
    return ResponseSchema(status="success", message=message, data=data)
