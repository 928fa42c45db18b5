"""
Provides the User model for the application's database schema.

A user authenticates with an email and password, owns tasks, teams, shared
lists and saved reports, and carries a free-form profile document.

Attributes
----------
name : sqlalchemy.Column
    Display name of the user (3-50 characters).
email : sqlalchemy.Column
    Unique, lower-cased email address used to log in.
password_hash : sqlalchemy.Column
    Salted PBKDF2 hash of the password; the clear password is never stored.
profile : sqlalchemy.Column
    JSON document with bio, location, website, company, position, skills,
    phone number, date of birth and social links.
is_email_verified : sqlalchemy.Column
    Set once the emailed verification token has been confirmed.
is_active : sqlalchemy.Column
    Deactivated users cannot authenticate until they reactivate.
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, String
from sqlalchemy.orm import relationship, validates

from .base import BaseModel, ModelValidationError

USER_ROLES = ("user", "admin")
MAX_PROFILE_SKILLS = 20


class User(BaseModel):
    """
    Represents a user entity in the application.

    :ivar name: Display name.
    :type name: str
    :ivar email: Email address of the user. It must be unique.
    :type email: str
    :ivar role: Either ``user`` or ``admin``.
    :type role: str
    :ivar avatar: Public path of the uploaded avatar image.
    :type avatar: str
    """

    __tablename__ = "users"

    name = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="user")
    avatar = Column(String(500), nullable=False, default="default-avatar.png")
    profile = Column(JSON, nullable=False, default=dict)

    is_email_verified = Column(Boolean, nullable=False, default=False)
    email_verification_token = Column(String(64), index=True)
    email_verification_expires = Column(DateTime)
    password_reset_token = Column(String(64), index=True)
    password_reset_expires = Column(DateTime)

    last_login = Column(DateTime)
    is_active = Column(Boolean, nullable=False, default=True)

    # Relationships
    tasks = relationship(
        "Task",
        back_populates="creator",
        foreign_keys="Task.created_by",
        cascade="all, delete-orphan",
    )
    notification_preference = relationship(
        "NotificationPreference",
        back_populates="user",
        cascade="all, delete-orphan",
        uselist=False,
    )

    @validates("email")
    def normalize_email(self, _key, value):
        return value.strip().lower() if value else value

    @validates("role")
    def validate_role(self, _key, value):
        if value not in USER_ROLES:
            raise ModelValidationError("role", f"Role must be one of: {', '.join(USER_ROLES)}")
        return value

    @validates("profile")
    def validate_profile(self, _key, value):
        skills = (value or {}).get("skills") or []
        if len(skills) > MAX_PROFILE_SKILLS:
            raise ModelValidationError("profile.skills", "Cannot have more than 20 skills")
        return value or {}
