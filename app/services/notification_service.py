"""Activity recording and notification fan-out.

Every significant mutation appends one ``Activity``. Recipients are derived
from the activity type, and each recipient's ``NotificationPreference``
routes the event to in-app notifications, email and realtime push.
Recording runs after the caller's own commit, in a session of its own, so a
failure here never undoes the mutation that triggered it.
"""

import logging
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.realtime.events import EventBus, user_room
from models import Activity, ModelValidationError, Notification, NotificationPreference
from models.activity import default_notification_preferences

logger = logging.getLogger(__name__)

_TARGET_USER_TYPES = {
    "task_assigned",
    "task_unassigned",
    "team_member_added",
    "team_member_removed",
    "team_member_role_changed",
    "shared_list_member_added",
    "shared_list_member_removed",
    "shared_list_permissions_changed",
}
_TEAM_OWNER_TYPES = {"team_invitation_accepted", "team_invitation_declined"}
_TEAM_WIDE_TYPES = {"team_updated", "team_deleted"}
_LIST_WIDE_TYPES = {
    "shared_list_updated",
    "shared_list_deleted",
    "shared_list_task_added",
    "shared_list_task_removed",
}
_SILENT_TYPES = {"team_created", "shared_list_created"}


def notification_recipients(
    activity_type: str,
    actor_id: UUID,
    task=None,
    team=None,
    shared_list=None,
    target_user_id: UUID | None = None,
    extra: Iterable[UUID] = (),
) -> list[UUID]:
    """Users who should hear about an activity; the actor is never included."""
    candidates: list[UUID] = []

    if activity_type in _SILENT_TYPES:
        return []
    if activity_type in _TARGET_USER_TYPES:
        candidates = [target_user_id] if target_user_id else []
    elif activity_type in _TEAM_OWNER_TYPES:
        candidates = [team.owner_id] if team is not None else []
    elif activity_type in _TEAM_WIDE_TYPES:
        candidates = team.member_ids if team is not None else []
    elif activity_type in _LIST_WIDE_TYPES:
        candidates = shared_list.member_ids if shared_list is not None else []
    elif activity_type.startswith("task_") and task is not None:
        candidates = [task.created_by] + list(task.assigned_to)

    candidates = candidates + list(extra)

    recipients: list[UUID] = []
    for user_id in candidates:
        if user_id and user_id != actor_id and user_id not in recipients:
            recipients.append(user_id)
    return recipients


async def load_preferences(db: AsyncSession, user_id: UUID) -> NotificationPreference:
    """Get a user's preferences, adding the defaults on first read (flushed, not committed)."""
    result = await db.execute(
        select(NotificationPreference).where(NotificationPreference.user_id == user_id)
    )
    preference = result.scalar_one_or_none()
    if preference is None:
        preference = NotificationPreference(
            user_id=user_id, preferences=default_notification_preferences()
        )
        db.add(preference)
        await db.flush()
    return preference


def channels_for(preference: NotificationPreference, activity_type: str) -> dict[str, bool]:
    defaults = default_notification_preferences()[activity_type]
    stored = (preference.preferences or {}).get(activity_type) or {}
    return {channel: bool(stored.get(channel, default)) for channel, default in defaults.items()}


class NotificationService:
    """Records activities and delivers the resulting notifications."""

    def __init__(self, db: AsyncSession, events: EventBus | None = None):
        self.db = db
        self.events = events

    async def record(
        self,
        activity_type: str,
        user_id: UUID,
        *,
        task=None,
        team=None,
        shared_list=None,
        comment_id: UUID | None = None,
        target_user_id: UUID | None = None,
        metadata: dict[str, Any] | None = None,
        extra_recipients: Iterable[UUID] = (),
    ) -> Activity | None:
        """Append an activity and fan it out. Returns ``None`` if recording failed."""
        recipients = notification_recipients(
            activity_type,
            user_id,
            task=task,
            team=team,
            shared_list=shared_list,
            target_user_id=target_user_id,
            extra=extra_recipients,
        )
        push_to: list[UUID] = []
        email_to: list[UUID] = []

        try:
            async with AsyncSession(self.db.bind, expire_on_commit=False) as session:
                activity = Activity(
                    type=activity_type,
                    user_id=user_id,
                    task_id=task.id if task is not None else None,
                    team_id=team.id if team is not None else getattr(shared_list, "team_id", None),
                    shared_list_id=shared_list.id if shared_list is not None else None,
                    comment_id=comment_id,
                    target_user_id=target_user_id,
                    details=metadata or {},
                )
                session.add(activity)
                await session.flush()

                for recipient_id in recipients:
                    preference = await load_preferences(session, recipient_id)
                    channels = channels_for(preference, activity_type)
                    if channels["in_app"]:
                        session.add(Notification(recipient_id=recipient_id, activity_id=activity.id))
                    if channels["email"]:
                        email_to.append(recipient_id)
                    if channels["push"]:
                        push_to.append(recipient_id)

                await session.commit()

                if email_to:
                    await self._send_emails(activity, email_to)
        except (SQLAlchemyError, ModelValidationError) as e:
            logger.warning(f"⚠️ Failed to record activity {activity_type}: {str(e)}")
            return None

        await self._push(activity, push_to)
        return activity

    async def _push(self, activity: Activity, recipients: list[UUID]) -> None:
        if self.events is None or not recipients:
            return
        data = {
            "activity_id": str(activity.id),
            "type": activity.type,
            "task_id": str(activity.task_id) if activity.task_id else None,
            "team_id": str(activity.team_id) if activity.team_id else None,
            "shared_list_id": str(activity.shared_list_id) if activity.shared_list_id else None,
            "metadata": activity.details,
        }
        await self.events.emit(
            "notification:created",
            data,
            rooms=[user_room(recipient_id) for recipient_id in recipients],
            user_id=activity.user_id,
        )

    async def _send_emails(self, activity: Activity, recipients: list[UUID]):
        if not settings.has_email_enabled:
            return
        try:
            from app.tasks.notification_tasks import send_notification_email_task

            for recipient_id in recipients:
                send_notification_email_task.delay(str(activity.id), str(recipient_id))
        except Exception as e:
            logger.error(f"❌ Failed to queue notification emails for {activity.type}: {str(e)}")


def summarize_activity(activity: Activity) -> str:
    details = activity.details or {}
    subject = details.get("task_name") or details.get("team_name") or details.get("list_name")
    action = activity.type.replace("_", " ")
    return f"Activity: {action}" + (f" ({subject})" if subject else "")
