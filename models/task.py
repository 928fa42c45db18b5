"""
Task aggregate ORM models.

A ``Task`` owns its subtasks, attachments, assignee links and dependency
links; none of them has a lifecycle of its own. Caps on tags, subtasks and
attachments are enforced here so every write path honours them.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship, validates

from .base import UUID, BaseModel, ModelValidationError, utcnow

TASK_PRIORITIES = ("low", "medium", "high")
TASK_STATUSES = ("todo", "in_progress", "done")
RECURRENCE_FREQUENCIES = ("daily", "weekly", "monthly", "yearly")

MAX_TAGS = 10
MAX_SUBTASKS = 20
MAX_ATTACHMENTS = 10


class Task(BaseModel):
    __tablename__ = "tasks"

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime)
    priority = Column(String(10), nullable=False, default="medium")
    status = Column(String(20), nullable=False, default="todo")
    category = Column(String(50), nullable=False, default="uncategorized")
    tags = Column(JSON, nullable=False, default=list)

    due_date = Column(DateTime, index=True)
    start_date = Column(DateTime)
    estimated_time = Column(Integer)  # minutes
    actual_time = Column(Integer)  # minutes
    is_markdown = Column(Boolean, nullable=False, default=False)

    created_by = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_task_id = Column(UUID(), ForeignKey("tasks.id", ondelete="SET NULL"))

    is_recurring = Column(Boolean, nullable=False, default=False)
    recurrence_rule = Column(JSON)

    # Relationships
    creator = relationship("User", back_populates="tasks", foreign_keys=[created_by])
    subtasks = relationship(
        "Subtask",
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="Subtask.created_at",
        lazy="selectin",
    )
    attachments = relationship(
        "TaskAttachment",
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="TaskAttachment.uploaded_at",
        lazy="selectin",
    )
    assignee_links = relationship(
        "TaskAssignee",
        back_populates="task",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    dependency_links = relationship(
        "TaskDependency",
        back_populates="task",
        foreign_keys="TaskDependency.task_id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def assigned_to(self) -> list:
        return [link.user_id for link in self.assignee_links]

    @property
    def dependencies(self) -> list:
        return [link.depends_on_id for link in self.dependency_links]

    def is_participant(self, user_id) -> bool:
        """Owner or assignee."""
        return self.created_by == user_id or user_id in self.assigned_to

    @validates("tags")
    def validate_tags(self, _key, value):
        value = value or []
        if len(value) > MAX_TAGS:
            raise ModelValidationError("tags", f"Cannot have more than {MAX_TAGS} tags")
        return value

    @validates("priority")
    def validate_priority(self, _key, value):
        if value not in TASK_PRIORITIES:
            raise ModelValidationError("priority", "Priority must be one of: low, medium, high")
        return value

    @validates("status")
    def validate_status(self, _key, value):
        if value not in TASK_STATUSES:
            raise ModelValidationError("status", "Status must be one of: todo, in_progress, done")
        return value

    @validates("subtasks")
    def validate_subtask_cap(self, _key, subtask):
        if len(self.subtasks) >= MAX_SUBTASKS:
            raise ModelValidationError("subtasks", f"Cannot have more than {MAX_SUBTASKS} subtasks")
        return subtask

    @validates("attachments")
    def validate_attachment_cap(self, _key, attachment):
        if len(self.attachments) >= MAX_ATTACHMENTS:
            raise ModelValidationError(
                "attachments", f"Cannot have more than {MAX_ATTACHMENTS} attachments"
            )
        return attachment


class Subtask(BaseModel):
    __tablename__ = "subtasks"

    task_id = Column(UUID(), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime)

    task = relationship("Task", back_populates="subtasks")


class TaskAttachment(BaseModel):
    __tablename__ = "task_attachments"

    task_id = Column(UUID(), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    filename = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=False)
    mime_type = Column(String(100), nullable=False)
    size = Column(Integer, nullable=False)
    path = Column(String(500), nullable=False)
    uploaded_at = Column(DateTime, nullable=False, default=utcnow)

    task = relationship("Task", back_populates="attachments")


class TaskAssignee(BaseModel):
    __tablename__ = "task_assignees"
    __table_args__ = (UniqueConstraint("task_id", "user_id", name="uq_task_assignee"),)

    task_id = Column(UUID(), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    task = relationship("Task", back_populates="assignee_links")


class TaskDependency(BaseModel):
    """Directed edge: ``task_id`` depends on ``depends_on_id``."""

    __tablename__ = "task_dependencies"
    __table_args__ = (UniqueConstraint("task_id", "depends_on_id", name="uq_task_dependency"),)

    task_id = Column(UUID(), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    depends_on_id = Column(
        UUID(), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True
    )

    task = relationship("Task", back_populates="dependency_links", foreign_keys=[task_id])
