"""Analytics and saved report schemas."""

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import Field, model_validator

from .base import BaseModelSchema, BaseSchema, RequestSchema

Period = Literal["day", "week", "month", "quarter", "year"]
ReportType = Literal[
    "task_completion",
    "category_analysis",
    "priority_analysis",
    "user_productivity",
    "team_productivity",
    "time_tracking",
    "custom",
]


class DateRange(BaseSchema):
    start_date: datetime
    end_date: datetime


class TaskCompletionStats(BaseSchema):
    total_tasks: int
    completed_tasks: int
    completion_rate: float
    average_completion_time: float
    on_time_completions: int
    late_completions: int
    on_time_rate: float


class GroupStats(BaseSchema):
    count: int
    completed_count: int
    completion_rate: float
    average_completion_time: float


class UserProductivityStats(BaseSchema):
    user_id: UUID
    name: str
    tasks_created: int
    tasks_assigned: int
    tasks_completed: int
    completion_rate: float
    average_completion_time: float
    on_time_rate: float
    comments_written: int


class ReportFilters(RequestSchema):
    date_range: Optional[DateRange] = None
    categories: Optional[list[str]] = None
    priorities: Optional[list[Literal["low", "medium", "high"]]] = None
    tags: Optional[list[str]] = None
    users: Optional[list[UUID]] = None
    teams: Optional[list[UUID]] = None
    completed: Optional[bool] = None
    group_by: Optional[Literal["day", "week", "month", "category", "priority", "user"]] = None
    sort_by: Optional[str] = None
    sort_order: Optional[Literal["asc", "desc"]] = None


class ReportSchedule(RequestSchema):
    frequency: Literal["daily", "weekly", "monthly"]
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    day_of_month: Optional[int] = Field(None, ge=1, le=31)
    time: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")
    recipients: list[str] = Field(default_factory=list)
    is_active: bool = True


class SavedReportCreate(RequestSchema):
    name: str = Field(..., min_length=2, max_length=100)
    description: str = Field(default="", max_length=500)
    report_type: ReportType
    team_id: Optional[UUID] = None
    is_public: bool = False
    filters: ReportFilters = Field(default_factory=ReportFilters)
    schedule: Optional[ReportSchedule] = None


class SavedReportUpdate(RequestSchema):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    report_type: Optional[ReportType] = None
    is_public: Optional[bool] = None
    filters: Optional[ReportFilters] = None
    schedule: Optional[ReportSchedule] = None

    @model_validator(mode="after")
    def not_empty(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


class SavedReportResponse(BaseModelSchema):
    name: str
    description: str
    owner_id: UUID
    team_id: Optional[UUID] = None
    is_team_report: bool
    is_public: bool
    report_type: str
    filters: dict
    schedule: Optional[dict] = None
    last_generated: Optional[dict] = None
    last_generated_at: Optional[datetime] = None
