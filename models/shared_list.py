"""
Shared list models.

Permissions on a shared list are an explicit boolean bag per member and are
independent of team roles. The owner is tracked by ``SharedList.owner_id`` and
implicitly holds every permission.
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship, validates

from .base import UUID, BaseModel, ModelValidationError, utcnow
from .team import INVITATION_STATUSES


class SharedList(BaseModel):
    __tablename__ = "shared_lists"

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    owner_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    team_id = Column(UUID(), ForeignKey("teams.id", ondelete="SET NULL"), index=True)
    is_team_list = Column(Boolean, nullable=False, default=False)
    is_public = Column(Boolean, nullable=False, default=False)
    public_access_code = Column(String(8), unique=True, index=True)

    owner = relationship("User", lazy="selectin")
    members = relationship(
        "SharedListMember",
        back_populates="shared_list",
        cascade="all, delete-orphan",
        order_by="SharedListMember.added_at",
        lazy="selectin",
    )
    invitations = relationship(
        "SharedListInvitation",
        back_populates="shared_list",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    task_links = relationship(
        "SharedListTask",
        back_populates="shared_list",
        cascade="all, delete-orphan",
        order_by="SharedListTask.added_at",
        lazy="selectin",
    )

    @property
    def tasks(self) -> list:
        return [link.task_id for link in self.task_links]

    @property
    def member_ids(self) -> list:
        return [self.owner_id] + [member.user_id for member in self.members]

    def get_member(self, user_id):
        for member in self.members:
            if member.user_id == user_id:
                return member
        return None


class SharedListMember(BaseModel):
    __tablename__ = "shared_list_members"
    __table_args__ = (UniqueConstraint("list_id", "user_id", name="uq_shared_list_member"),)

    list_id = Column(
        UUID(), ForeignKey("shared_lists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    permissions = Column(JSON, nullable=False, default=dict)
    added_at = Column(DateTime, nullable=False, default=utcnow)
    added_by = Column(UUID(), ForeignKey("users.id", ondelete="SET NULL"))

    shared_list = relationship("SharedList", back_populates="members")
    user = relationship("User", foreign_keys=[user_id], lazy="selectin")


class SharedListInvitation(BaseModel):
    __tablename__ = "shared_list_invitations"

    list_id = Column(
        UUID(), ForeignKey("shared_lists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    email = Column(String(255), nullable=False, index=True)
    permissions = Column(JSON, nullable=False, default=dict)
    token = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime, nullable=False)
    invited_by = Column(UUID(), ForeignKey("users.id", ondelete="SET NULL"))
    status = Column(String(20), nullable=False, default="pending")

    shared_list = relationship("SharedList", back_populates="invitations")

    @validates("email")
    def normalize_email(self, _key, value):
        return value.strip().lower()

    @validates("status")
    def validate_status(self, _key, value):
        if value not in INVITATION_STATUSES:
            raise ModelValidationError("status", "Invalid invitation status")
        return value


class SharedListTask(BaseModel):
    __tablename__ = "shared_list_tasks"
    __table_args__ = (UniqueConstraint("list_id", "task_id", name="uq_shared_list_task"),)

    list_id = Column(
        UUID(), ForeignKey("shared_lists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    task_id = Column(UUID(), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    added_at = Column(DateTime, nullable=False, default=utcnow)
    added_by = Column(UUID(), ForeignKey("users.id", ondelete="SET NULL"))

    shared_list = relationship("SharedList", back_populates="task_links")
