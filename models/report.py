"""Saved analytics report definitions."""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import validates

from .base import UUID, BaseModel, ModelValidationError

REPORT_TYPES = (
    "task_completion",
    "category_analysis",
    "priority_analysis",
    "user_productivity",
    "team_productivity",
    "time_tracking",
    "custom",
)


class SavedReport(BaseModel):
    """
    A named, reusable report definition.

    ``filters`` narrows the tasks the report looks at and ``schedule`` records
    when the report should be regenerated. The most recent result is kept in
    ``last_generated`` together with ``last_generated_at``.
    """

    __tablename__ = "saved_reports"

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    owner_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    team_id = Column(UUID(), ForeignKey("teams.id", ondelete="SET NULL"), index=True)
    is_team_report = Column(Boolean, nullable=False, default=False)
    is_public = Column(Boolean, nullable=False, default=False)
    report_type = Column(String(30), nullable=False)
    filters = Column(JSON, nullable=False, default=dict)
    schedule = Column(JSON)
    last_generated = Column(JSON)
    last_generated_at = Column(DateTime)

    @validates("report_type")
    def validate_report_type(self, _key, value):
        if value not in REPORT_TYPES:
            raise ModelValidationError("report_type", f"Unknown report type: {value}")
        return value
