"""
Models package initialization.
"""

from .activity import ACTIVITY_TYPES, Activity, Notification, NotificationPreference
from .base import Base, BaseModel, ModelValidationError
from .comment import REACTIONS, Comment, CommentMention, CommentReaction
from .report import REPORT_TYPES, SavedReport
from .shared_list import SharedList, SharedListInvitation, SharedListMember, SharedListTask
from .task import Subtask, Task, TaskAssignee, TaskAttachment, TaskDependency
from .team import Team, TeamInvitation, TeamMember
from .user import User

__all__ = [
    "Base",
    "BaseModel",
    "ModelValidationError",
    "User",
    # Tasks
    "Task",
    "Subtask",
    "TaskAttachment",
    "TaskAssignee",
    "TaskDependency",
    # Comments
    "Comment",
    "CommentMention",
    "CommentReaction",
    "REACTIONS",
    # Collaboration
    "Team",
    "TeamMember",
    "TeamInvitation",
    "SharedList",
    "SharedListMember",
    "SharedListInvitation",
    "SharedListTask",
    # Activity
    "Activity",
    "Notification",
    "NotificationPreference",
    "ACTIVITY_TYPES",
    # Analytics
    "SavedReport",
    "REPORT_TYPES",
]
