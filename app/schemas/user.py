"""User-related Pydantic schemas for request/response validation."""

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, HttpUrl, field_validator

from .base import BaseModelSchema, BaseSchema, RequestSchema


class SocialLinks(RequestSchema):
    twitter: Optional[str] = None
    linkedin: Optional[str] = None
    github: Optional[str] = None
    facebook: Optional[str] = None
    instagram: Optional[str] = None


class UserProfile(RequestSchema):
    """Free-form profile document stored on the user."""

    bio: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = Field(None, max_length=100)
    website: Optional[HttpUrl] = None
    company: Optional[str] = Field(None, max_length=100)
    position: Optional[str] = Field(None, max_length=100)
    skills: Optional[list[str]] = Field(None, max_length=20)
    phone_number: Optional[str] = Field(None, max_length=30)
    date_of_birth: Optional[datetime] = None
    social_links: Optional[SocialLinks] = None


class UserRegisterRequest(RequestSchema):
    """Schema for user registration."""

    name: str = Field(..., min_length=3, max_length=50)
    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=6, max_length=128)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class UserLoginRequest(RequestSchema):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ForgotPasswordRequest(RequestSchema):
    email: EmailStr


class ResetPasswordRequest(RequestSchema):
    password: str = Field(..., min_length=6, max_length=128)


class ChangePasswordRequest(RequestSchema):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


class ReactivateRequest(RequestSchema):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserUpdateRequest(RequestSchema):
    """Schema for updating basic account fields."""

    name: Optional[str] = Field(None, min_length=3, max_length=50)
    email: Optional[EmailStr] = None
    avatar: Optional[str] = Field(None, max_length=500)


class UserResponse(BaseModelSchema):
    """Schema for user response data."""

    name: str
    email: str
    role: str
    avatar: str
    profile: dict
    is_email_verified: bool
    is_active: bool
    last_login: Optional[datetime] = None


class UserSummary(BaseSchema):
    id: str
    name: str
    email: str
    avatar: str

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v) -> str:
        return str(v)


class AuthResponse(BaseSchema):
    """Schema for authentication response."""

    user: UserResponse
    token: str
