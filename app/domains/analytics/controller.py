"""Analytics and saved report endpoints."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, get_db, validate_token
from app.domains.analytics.service import AnalyticsService, resolve_date_range, serialize_report
from app.schemas.analytics import DateRange, Period, SavedReportCreate, SavedReportUpdate
from app.schemas.base import ResponseSchema
from models.user import User

router = APIRouter(
    prefix="/analytics",
    tags=["analytics"],
    dependencies=[Depends(validate_token)],
)


def get_analytics_service(db: AsyncSession = Depends(get_db)) -> AnalyticsService:
    return AnalyticsService(db)


def get_date_range(
    period: Optional[Period] = Query(None, description="day, week, month, quarter or year"),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
) -> DateRange:
    return resolve_date_range(period, start_date, end_date)


@router.get("/dashboard", response_model=ResponseSchema)
async def get_dashboard(
    date_range: DateRange = Depends(get_date_range),
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Completion, breakdowns, productivity, upcoming tasks and recent activity."""
    data = await service.dashboard(current_user.id, date_range)
    return ResponseSchema(status="success", message="Dashboard retrieved successfully", data=data)


@router.get("/tasks/completion", response_model=ResponseSchema)
async def get_completion_stats(
    date_range: DateRange = Depends(get_date_range),
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    data = await service.task_completion(current_user.id, date_range)
    return ResponseSchema(status="success", message="Completion stats retrieved", data=data)


@router.get("/productivity", response_model=ResponseSchema)
async def get_productivity(
    date_range: DateRange = Depends(get_date_range),
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    data = await service.user_productivity(current_user.id, date_range)
    return ResponseSchema(status="success", message="Productivity stats retrieved", data=data)


@router.get("/categories", response_model=ResponseSchema)
async def get_category_stats(
    date_range: DateRange = Depends(get_date_range),
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    data = await service.category_breakdown(current_user.id, date_range)
    return ResponseSchema(status="success", message="Category stats retrieved", data=data)


@router.get("/priorities", response_model=ResponseSchema)
async def get_priority_stats(
    date_range: DateRange = Depends(get_date_range),
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    data = await service.priority_breakdown(current_user.id, date_range)
    return ResponseSchema(status="success", message="Priority stats retrieved", data=data)


@router.get("/teams/{team_id}/productivity", response_model=ResponseSchema)
async def get_team_productivity(
    team_id: UUID = Path(..., description="Team ID"),
    date_range: DateRange = Depends(get_date_range),
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    data = await service.team_productivity(team_id, current_user.id, date_range)
    return ResponseSchema(status="success", message="Team productivity retrieved", data=data)


@router.get("/reports", response_model=ResponseSchema)
async def get_reports(
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    reports = await service.get_reports(current_user.id)
    return ResponseSchema(
        status="success",
        message="Reports retrieved successfully",
        data={"reports": [serialize_report(r) for r in reports], "count": len(reports)},
    )


@router.post("/reports", response_model=ResponseSchema, status_code=201)
async def create_report(
    report_data: SavedReportCreate,
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    report = await service.create_report(report_data, current_user.id)
    return ResponseSchema(
        status="success", message="Report created successfully", data=serialize_report(report)
    )


@router.get("/reports/{report_id}", response_model=ResponseSchema)
async def get_report(
    report_id: UUID = Path(..., description="Report ID"),
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    report = await service.get_report(report_id, current_user.id)
    return ResponseSchema(
        status="success", message="Report retrieved successfully", data=serialize_report(report)
    )


@router.patch("/reports/{report_id}", response_model=ResponseSchema)
async def update_report(
    report_id: UUID = Path(..., description="Report ID"),
    report_data: SavedReportUpdate = Body(...),
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    report = await service.update_report(report_id, report_data, current_user.id)
    return ResponseSchema(
        status="success", message="Report updated successfully", data=serialize_report(report)
    )


@router.delete("/reports/{report_id}", response_model=ResponseSchema)
async def delete_report(
    report_id: UUID = Path(..., description="Report ID"),
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    await service.delete_report(report_id, current_user.id)
    return ResponseSchema(status="success", message="Report deleted successfully", data=None)


@router.post("/reports/{report_id}/generate", response_model=ResponseSchema)
async def generate_report(
    report_id: UUID = Path(..., description="Report ID"),
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Run the report now and store the result as its latest snapshot."""
    report = await service.generate_report(report_id, current_user.id)
    return ResponseSchema(
        status="success", message="Report generated successfully", data=serialize_report(report)
    )
