"""
Activity log and notification models.

``Activity`` rows are immutable records of domain events. ``Notification``
rows point a recipient at an activity, and ``NotificationPreference`` holds
per-user channel routing for every activity type.
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship, validates

from .base import UUID, BaseModel, ModelValidationError

TASK_ACTIVITY_TYPES = (
    "task_created",
    "task_updated",
    "task_deleted",
    "task_completed",
    "task_reopened",
    "task_assigned",
    "task_unassigned",
    "task_due_date_changed",
    "task_priority_changed",
    "task_category_changed",
    "task_attachment_added",
    "task_attachment_removed",
    "task_comment_added",
    "task_comment_updated",
    "task_comment_deleted",
    "task_subtask_added",
    "task_subtask_updated",
    "task_subtask_deleted",
    "task_subtask_completed",
    "task_subtask_reopened",
)

TEAM_ACTIVITY_TYPES = (
    "team_created",
    "team_updated",
    "team_deleted",
    "team_member_added",
    "team_member_removed",
    "team_member_role_changed",
    "team_invitation_sent",
    "team_invitation_accepted",
    "team_invitation_declined",
)

SHARED_LIST_ACTIVITY_TYPES = (
    "shared_list_created",
    "shared_list_updated",
    "shared_list_deleted",
    "shared_list_member_added",
    "shared_list_member_removed",
    "shared_list_permissions_changed",
    "shared_list_task_added",
    "shared_list_task_removed",
)

ACTIVITY_TYPES = TASK_ACTIVITY_TYPES + TEAM_ACTIVITY_TYPES + SHARED_LIST_ACTIVITY_TYPES

_EMAIL_BY_DEFAULT = {
    "task_assigned",
    "task_due_date_changed",
    "team_deleted",
    "team_member_removed",
    "team_member_role_changed",
    "team_invitation_sent",
    "shared_list_deleted",
    "shared_list_member_removed",
    "shared_list_permissions_changed",
}
_PUSH_BY_DEFAULT = {"task_assigned", "task_comment_added"}


def default_notification_preferences() -> dict:
    """Channel routing applied when a user has never changed their preferences."""
    return {
        activity_type: {
            "in_app": True,
            "email": activity_type in _EMAIL_BY_DEFAULT,
            "push": activity_type in _PUSH_BY_DEFAULT,
        }
        for activity_type in ACTIVITY_TYPES
    }


class Activity(BaseModel):
    __tablename__ = "activities"

    type = Column(String(50), nullable=False, index=True)
    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(UUID(), ForeignKey("tasks.id", ondelete="SET NULL"), index=True)
    team_id = Column(UUID(), ForeignKey("teams.id", ondelete="SET NULL"), index=True)
    shared_list_id = Column(UUID(), ForeignKey("shared_lists.id", ondelete="SET NULL"), index=True)
    comment_id = Column(UUID(), ForeignKey("comments.id", ondelete="SET NULL"))
    target_user_id = Column(UUID(), ForeignKey("users.id", ondelete="SET NULL"), index=True)
    details = Column("metadata", JSON, nullable=False, default=dict)

    actor = relationship("User", foreign_keys=[user_id], lazy="selectin")

    @validates("type")
    def validate_type(self, _key, value):
        if value not in ACTIVITY_TYPES:
            raise ModelValidationError("type", f"Unknown activity type: {value}")
        return value


class Notification(BaseModel):
    __tablename__ = "notifications"

    recipient_id = Column(
        UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    activity_id = Column(
        UUID(), ForeignKey("activities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    read = Column(Boolean, nullable=False, default=False, index=True)
    read_at = Column(DateTime)

    activity = relationship("Activity", lazy="selectin")


class NotificationPreference(BaseModel):
    __tablename__ = "notification_preferences"

    user_id = Column(
        UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    preferences = Column(JSON, nullable=False, default=default_notification_preferences)

    user = relationship("User", back_populates="notification_preference")
