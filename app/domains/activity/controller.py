"""Activity feed and notification endpoints."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, get_db, validate_token
from app.domains.activity.service import ActivityService, FeedFilters, serialize_notification
from app.schemas.activity import PreferencesUpdate
from app.schemas.base import ResponseSchema
from app.shared.pagination import PaginationParams
from models.user import User

router = APIRouter(
    prefix="/activity",
    tags=["activity"],
    dependencies=[Depends(validate_token)],
)


def get_activity_service(db: AsyncSession = Depends(get_db)) -> ActivityService:
    return ActivityService(db)


def get_pagination(
    page: int = Query(1, ge=1), limit: int = Query(20, ge=1, le=100)
) -> PaginationParams:
    return PaginationParams(page=page, limit=limit)


@router.get("/", response_model=ResponseSchema)
async def get_feed(
    type: Optional[str] = Query(None, description="Activity type"),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    pagination: PaginationParams = Depends(get_pagination),
    current_user: User = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    """Activities the current user performed or was targeted by."""
    filters = FeedFilters(type=type, start_date=start_date, end_date=end_date)
    result = await service.get_feed(current_user.id, filters, pagination)
    return ResponseSchema(status="success", message="Activity retrieved successfully", data=result)


@router.get("/task/{task_id}", response_model=ResponseSchema)
async def get_task_feed(
    task_id: UUID = Path(..., description="Task ID"),
    pagination: PaginationParams = Depends(get_pagination),
    current_user: User = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    result = await service.get_task_feed(task_id, current_user.id, pagination)
    return ResponseSchema(status="success", message="Activity retrieved successfully", data=result)


@router.get("/team/{team_id}", response_model=ResponseSchema)
async def get_team_feed(
    team_id: UUID = Path(..., description="Team ID"),
    pagination: PaginationParams = Depends(get_pagination),
    current_user: User = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    result = await service.get_team_feed(team_id, current_user.id, pagination)
    return ResponseSchema(status="success", message="Activity retrieved successfully", data=result)


@router.get("/notifications", response_model=ResponseSchema)
async def get_notifications(
    read: Optional[bool] = Query(None, description="Filter by read state"),
    pagination: PaginationParams = Depends(get_pagination),
    current_user: User = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    result = await service.get_notifications(current_user.id, read, pagination)
    return ResponseSchema(
        status="success", message="Notifications retrieved successfully", data=result
    )


@router.get("/notifications/unread/count", response_model=ResponseSchema)
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    count = await service.unread_count(current_user.id)
    return ResponseSchema(status="success", message="Unread count retrieved", data={"count": count})


@router.patch("/notifications/read-all", response_model=ResponseSchema)
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    updated = await service.mark_all_read(current_user.id)
    return ResponseSchema(
        status="success", message="All notifications marked as read", data={"updated": updated}
    )


@router.patch("/notifications/{notification_id}/read", response_model=ResponseSchema)
async def mark_read(
    notification_id: UUID = Path(..., description="Notification ID"),
    current_user: User = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    notification = await service.mark_read(notification_id, current_user.id)
    return ResponseSchema(
        status="success",
        message="Notification marked as read",
        data=serialize_notification(notification),
    )


@router.delete("/notifications/{notification_id}", response_model=ResponseSchema)
async def delete_notification(
    notification_id: UUID = Path(..., description="Notification ID"),
    current_user: User = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    await service.delete_notification(notification_id, current_user.id)
    return ResponseSchema(status="success", message="Notification deleted", data=None)


@router.get("/preferences", response_model=ResponseSchema)
async def get_preferences(
    current_user: User = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    preferences = await service.get_preferences(current_user.id)
    return ResponseSchema(
        status="success",
        message="Preferences retrieved successfully",
        data={"preferences": preferences},
    )


@router.patch("/preferences", response_model=ResponseSchema)
async def update_preferences(
    data: PreferencesUpdate,
    current_user: User = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    """Merge channel switches per activity type; unknown types are rejected."""
    preferences = await service.update_preferences(current_user.id, data)
    return ResponseSchema(
        status="success",
        message="Preferences updated successfully",
        data={"preferences": preferences},
    )
