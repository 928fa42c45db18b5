"""
Team collaboration models.

The team owner is tracked by ``Team.owner_id`` and is never stored as a
``TeamMember`` row. Member rows carry the permission bag that was expanded from
their role when it was assigned.
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship, validates

from .base import UUID, BaseModel, ModelValidationError, utcnow

TEAM_MEMBER_ROLES = ("admin", "member", "guest")
INVITATION_STATUSES = ("pending", "accepted", "declined", "expired")


class Team(BaseModel):
    __tablename__ = "teams"

    name = Column(String(50), nullable=False)
    description = Column(Text, nullable=False, default="")
    avatar = Column(String(500), nullable=False, default="default-team-avatar.png")
    owner_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    owner = relationship("User", lazy="selectin")
    members = relationship(
        "TeamMember",
        back_populates="team",
        cascade="all, delete-orphan",
        order_by="TeamMember.joined_at",
        lazy="selectin",
    )
    invitations = relationship(
        "TeamInvitation",
        back_populates="team",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def get_member(self, user_id):
        for member in self.members:
            if member.user_id == user_id:
                return member
        return None

    def is_member(self, user_id) -> bool:
        return self.owner_id == user_id or self.get_member(user_id) is not None

    @property
    def member_ids(self) -> list:
        return [self.owner_id] + [member.user_id for member in self.members]


class TeamMember(BaseModel):
    __tablename__ = "team_members"
    __table_args__ = (UniqueConstraint("team_id", "user_id", name="uq_team_member"),)

    team_id = Column(UUID(), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False, default="member")
    permissions = Column(JSON, nullable=False, default=dict)
    joined_at = Column(DateTime, nullable=False, default=utcnow)
    invited_by = Column(UUID(), ForeignKey("users.id", ondelete="SET NULL"))

    team = relationship("Team", back_populates="members")
    user = relationship("User", foreign_keys=[user_id], lazy="selectin")

    @validates("role")
    def validate_role(self, _key, value):
        if value not in TEAM_MEMBER_ROLES:
            raise ModelValidationError("role", "Role must be one of: admin, member, guest")
        return value


class TeamInvitation(BaseModel):
    __tablename__ = "team_invitations"

    team_id = Column(UUID(), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    role = Column(String(20), nullable=False, default="member")
    token = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime, nullable=False)
    invited_by = Column(UUID(), ForeignKey("users.id", ondelete="SET NULL"))
    status = Column(String(20), nullable=False, default="pending")

    team = relationship("Team", back_populates="invitations")

    @validates("email")
    def normalize_email(self, _key, value):
        return value.strip().lower()

    @validates("role")
    def validate_role(self, _key, value):
        if value not in TEAM_MEMBER_ROLES:
            raise ModelValidationError("role", "Role must be one of: admin, member, guest")
        return value

    @validates("status")
    def validate_status(self, _key, value):
        if value not in INVITATION_STATUSES:
            raise ModelValidationError("status", "Invalid invitation status")
        return value
