"""Activity feeds, in-app notifications and notification preferences."""

import logging
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import delete, func, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.exceptions.base import BadRequestError, ForbiddenError, NotFoundError
from app.exceptions.task import TaskNotFoundError, TaskPermissionError
from app.exceptions.team import TeamNotFoundError, TeamPermissionError
from app.schemas.activity import ActivityResponse, NotificationResponse, PreferencesUpdate
from app.services.notification_service import channels_for, load_preferences
from app.shared.pagination import PaginationParams, paginate
from models import Activity, Notification, Task, Team
from models.activity import ACTIVITY_TYPES
from models.base import to_naive_utc, utcnow

logger = logging.getLogger(__name__)


class FeedFilters(BaseModel):
    type: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


def serialize_activity(activity: Activity) -> Dict[str, Any]:
    return ActivityResponse.model_validate(activity).model_dump(mode="json")


def serialize_notification(notification: Notification) -> Dict[str, Any]:
    return NotificationResponse.model_validate(notification).model_dump(mode="json")


class ActivityService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ----- Feeds ------------------------------------------------------------

    async def get_feed(
        self, user_id: UUID, filters: FeedFilters, pagination: PaginationParams
    ) -> Dict[str, Any]:
        """Activities the user performed or was the target of, newest first."""
        query = select(Activity).where(
            or_(Activity.user_id == user_id, Activity.target_user_id == user_id)
        )
        return await self._page(_apply_filters(query, filters), pagination)

    async def get_task_feed(
        self, task_id: UUID, user_id: UUID, pagination: PaginationParams
    ) -> Dict[str, Any]:
        task = (await self.db.execute(select(Task).where(Task.id == task_id))).scalar_one_or_none()
        if not task:
            raise TaskNotFoundError(f"No task found with id {task_id}")
        if not task.is_participant(user_id):
            raise TaskPermissionError()
        return await self._page(select(Activity).where(Activity.task_id == task_id), pagination)

    async def get_team_feed(
        self, team_id: UUID, user_id: UUID, pagination: PaginationParams
    ) -> Dict[str, Any]:
        team = (
            await self.db.execute(select(Team).where(Team.id == team_id, Team.is_active.is_(True)))
        ).scalar_one_or_none()
        if not team:
            raise TeamNotFoundError(f"No team found with id {team_id}")
        if not team.is_member(user_id):
            raise TeamPermissionError("Not authorized to view this team's activity")
        return await self._page(select(Activity).where(Activity.team_id == team_id), pagination)

    # ----- Notifications ----------------------------------------------------

    async def get_notifications(
        self, user_id: UUID, read: Optional[bool], pagination: PaginationParams
    ) -> Dict[str, Any]:
        query = select(Notification).where(Notification.recipient_id == user_id)
        if read is not None:
            query = query.where(Notification.read.is_(read))
        page = await paginate(self.db, query.order_by(Notification.created_at.desc()), pagination)
        items = page.pop("items")
        return {
            "notifications": [serialize_notification(n) for n in items],
            "count": len(items),
            "unread_count": await self.unread_count(user_id),
            **page,
        }

    async def unread_count(self, user_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count(Notification.id)).where(
                Notification.recipient_id == user_id, Notification.read.is_(False)
            )
        )
        return result.scalar() or 0

    async def mark_read(self, notification_id: UUID, user_id: UUID) -> Notification:
        """Mark one notification read. Already-read notifications stay untouched."""
        notification = await self._get_notification(notification_id, user_id)
        if not notification.read:
            notification.read = True
            notification.read_at = utcnow()
            await self._commit("mark notification as read")
        return notification

    async def mark_all_read(self, user_id: UUID) -> int:
        try:
            result = await self.db.execute(
                update(Notification)
                .where(Notification.recipient_id == user_id, Notification.read.is_(False))
                .values(read=True, read_at=utcnow())
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise BadRequestError(f"Failed to mark notifications as read: {str(e)}")
        logger.info(f"🔔 Marked {result.rowcount} notifications read for user {user_id}")
        return result.rowcount

    async def delete_notification(self, notification_id: UUID, user_id: UUID) -> None:
        await self._get_notification(notification_id, user_id)
        try:
            await self.db.execute(delete(Notification).where(Notification.id == notification_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise BadRequestError(f"Failed to delete notification: {str(e)}")

    # ----- Preferences ------------------------------------------------------

    async def get_preferences(self, user_id: UUID) -> Dict[str, Dict[str, bool]]:
        """Channel routing for every activity type; defaults are stored on first read."""
        preference = await load_preferences(self.db, user_id)
        await self._commit("store notification preferences")
        return {t: channels_for(preference, t) for t in ACTIVITY_TYPES}

    async def update_preferences(
        self, user_id: UUID, data: PreferencesUpdate
    ) -> Dict[str, Dict[str, bool]]:
        preference = await load_preferences(self.db, user_id)
        merged = {t: channels_for(preference, t) for t in ACTIVITY_TYPES}
        for activity_type, channels in data.preferences.items():
            merged[activity_type].update(channels.model_dump(exclude_none=True))
        preference.preferences = merged
        await self._commit("update notification preferences")
        return merged

    # Private helper methods

    async def _page(self, query, pagination: PaginationParams) -> Dict[str, Any]:
        page = await paginate(self.db, query.order_by(Activity.created_at.desc()), pagination)
        items = page.pop("items")
        return {"activities": [serialize_activity(a) for a in items], "count": len(items), **page}

    async def _get_notification(self, notification_id: UUID, user_id: UUID) -> Notification:
        result = await self.db.execute(
            select(Notification).where(Notification.id == notification_id)
        )
        notification = result.scalar_one_or_none()
        if not notification:
            raise NotFoundError(f"No notification found with id {notification_id}")
        if notification.recipient_id != user_id:
            raise ForbiddenError("Not authorized to access this notification")
        return notification

    async def _commit(self, action: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise BadRequestError(f"Failed to {action}: {str(e)}")


def _apply_filters(query, filters: FeedFilters):
    if filters.type:
        query = query.where(Activity.type == filters.type)
    if filters.start_date:
        query = query.where(Activity.created_at >= to_naive_utc(filters.start_date))
    if filters.end_date:
        query = query.where(Activity.created_at <= to_naive_utc(filters.end_date))
    return query
