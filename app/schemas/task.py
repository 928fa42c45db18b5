"""Task schemas for request/response serialization."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import Field, field_validator

from .base import BaseModelSchema, BaseSchema, RequestSchema

Priority = Literal["low", "medium", "high"]
Status = Literal["todo", "in_progress", "done"]
Frequency = Literal["daily", "weekly", "monthly", "yearly"]
DueDateBucket = Literal["today", "tomorrow", "week", "overdue"]


class RecurrenceRule(RequestSchema):
    """How a recurring task repeats. ``frequency`` and ``interval`` are required."""

    frequency: Frequency
    interval: int = Field(..., ge=1)
    end_date: Optional[datetime] = None
    count: Optional[int] = Field(None, ge=0)
    days_of_week: Optional[list[int]] = None
    day_of_month: Optional[int] = Field(None, ge=1, le=31)
    month_of_year: Optional[int] = Field(None, ge=0, le=11)

    @field_validator("days_of_week")
    @classmethod
    def validate_days_of_week(cls, v):
        if v is not None and any(day < 0 or day > 6 for day in v):
            raise ValueError("days_of_week values must be between 0 and 6")
        return v


class TaskCreate(RequestSchema):
    """Schema for creating a new task."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=5000)
    completed: bool = False
    priority: Priority = "medium"
    status: Optional[Status] = None
    category: str = Field(default="uncategorized", max_length=50)
    tags: list[str] = Field(default_factory=list, max_length=10)
    due_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    estimated_time: Optional[int] = Field(None, ge=0)
    actual_time: Optional[int] = Field(None, ge=0)
    is_markdown: bool = False
    assigned_to: list[UUID] = Field(default_factory=list)
    dependencies: list[UUID] = Field(default_factory=list)
    is_recurring: bool = False
    recurrence_rule: Optional[RecurrenceRule] = None
    parent_task_id: Optional[UUID] = None


class TaskUpdate(RequestSchema):
    """Schema for updating a task. Only the fields sent are changed."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=5000)
    completed: Optional[bool] = None
    priority: Optional[Priority] = None
    status: Optional[Status] = None
    category: Optional[str] = Field(None, max_length=50)
    tags: Optional[list[str]] = Field(None, max_length=10)
    due_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    estimated_time: Optional[int] = Field(None, ge=0)
    actual_time: Optional[int] = Field(None, ge=0)
    is_markdown: Optional[bool] = None
    assigned_to: Optional[list[UUID]] = None
    dependencies: Optional[list[UUID]] = None
    is_recurring: Optional[bool] = None
    recurrence_rule: Optional[RecurrenceRule] = None


class SubtaskCreate(RequestSchema):
    name: str = Field(..., min_length=1, max_length=100)


class SubtaskUpdate(RequestSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    completed: Optional[bool] = None


class DependencyCreate(RequestSchema):
    dependency_id: UUID


class SubtaskResponse(BaseSchema):
    id: UUID
    name: str
    completed: bool
    created_at: datetime
    completed_at: Optional[datetime] = None


class AttachmentResponse(BaseSchema):
    id: UUID
    filename: str
    original_name: str
    mime_type: str
    size: int
    path: str
    uploaded_at: datetime


class TaskResponse(BaseModelSchema):
    """Schema for task response."""

    name: str
    description: str
    completed: bool
    completed_at: Optional[datetime] = None
    priority: str
    status: str
    category: str
    tags: list[str]
    due_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    estimated_time: Optional[int] = None
    actual_time: Optional[int] = None
    is_markdown: bool
    created_by: UUID
    assigned_to: list[UUID]
    subtasks: list[SubtaskResponse]
    attachments: list[AttachmentResponse]
    dependencies: list[UUID]
    is_recurring: bool
    recurrence_rule: Optional[dict] = None
    parent_task_id: Optional[UUID] = None


class TaskFilter(BaseSchema):
    """Schema for filtering tasks."""

    category: Optional[str] = None
    completed: Optional[bool] = None
    priority: Optional[Priority] = None
    is_recurring: Optional[bool] = None
    due_date: Optional[DueDateBucket] = None
    has_attachments: Optional[bool] = None
    has_subtasks: Optional[bool] = None
    search: Optional[str] = None
    assigned: bool = False
    sort: Optional[str] = None
    fields: Optional[str] = None


class TaskListResponse(BaseSchema):
    """Schema for task list response."""

    tasks: list[dict]
    count: int
    total: int
    page: int
    limit: int
    pages: int


class TaskStats(BaseSchema):
    total: int
    completed: int
    pending: int
    high_priority: int
    medium_priority: int
    low_priority: int
    with_attachments: int
    with_subtasks: int
    recurring: int
    overdue: int
