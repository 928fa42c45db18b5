"""Celery tasks for email delivery and periodic maintenance."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import all models to ensure they're registered before creating session
import models  # noqa: F401

from app.celery_app import celery_app
from app.core.config import settings
from app.services.email_service import email_service
from app.services.notification_service import summarize_activity
from app.services.storage_service import PUBLIC_PREFIX, StorageService
from models import Activity, SharedListInvitation, TaskAttachment, TeamInvitation, User
from models.base import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

# Files younger than this may belong to an upload whose row is not committed yet
ORPHAN_MIN_AGE = timedelta(hours=1)


async def _with_session(work: Callable[[AsyncSession], Awaitable[Any]]) -> Any:
    """Run ``work`` in a session bound to a short-lived engine owned by this task run."""
    engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    session_maker = async_sessionmaker(engine, expire_on_commit=False)
    try:
        async with session_maker() as session:
            return await work(session)
    finally:
        await engine.dispose()


# ----- Email ----------------------------------------------------------------


@celery_app.task(name="app.tasks.notification_tasks.send_email_task", bind=True)
def send_email_task(
    self, to_email: str, subject: str, html_content: str, text_content: str | None = None
) -> dict[str, Any]:
    """Deliver one transactional email (verification, reset, invitation)."""
    sent = email_service.send_email(to_email, subject, html_content, text_content)
    if not sent:
        logger.error(f"❌ Email '{subject}' to {to_email} was not delivered")
    return {"success": sent, "email": to_email}


async def deliver_notification_email(
    session: AsyncSession, activity_id: UUID, recipient_id: UUID
) -> bool:
    activity = (
        await session.execute(select(Activity).where(Activity.id == activity_id))
    ).scalar_one_or_none()
    recipient = (
        await session.execute(select(User).where(User.id == recipient_id))
    ).scalar_one_or_none()
    if activity is None or recipient is None or not recipient.is_active:
        logger.info(f"Skipping notification email for activity {activity_id}")
        return False

    message = email_service.build_notification_email(
        recipient.name, activity.type, summarize_activity(activity)
    )
    return email_service.send_email(
        recipient.email, message["subject"], message["html_content"], message["text_content"]
    )


@celery_app.task(name="app.tasks.notification_tasks.send_notification_email_task", bind=True)
def send_notification_email_task(self, activity_id: str, recipient_id: str) -> dict[str, Any]:
    """Email one recipient about an activity they opted into by email."""
    try:
        sent = asyncio.run(
            _with_session(
                lambda session: deliver_notification_email(
                    session, UUID(activity_id), UUID(recipient_id)
                )
            )
        )
        return {"success": sent, "activity_id": activity_id}
    except Exception as e:
        logger.error(f"❌ Notification email task failed: {str(e)}")
        raise self.retry(exc=e, countdown=60, max_retries=3)


# ----- Maintenance ----------------------------------------------------------


async def reconcile_orphan_attachments(
    session: AsyncSession,
    storage: StorageService | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Delete files in the upload directory that nothing references.

    A file is referenced by a task attachment path or a user avatar path.
    Files modified within ``ORPHAN_MIN_AGE`` are left alone.
    """
    storage = storage or StorageService()
    cutoff = (now or utcnow()) - ORPHAN_MIN_AGE

    referenced = set((await session.execute(select(TaskAttachment.path))).scalars())
    referenced.update(
        (await session.execute(select(User.avatar).where(User.avatar.like(f"{PUBLIC_PREFIX}/%"))))
        .scalars()
    )
    referenced_names = {path.rsplit("/", 1)[-1] for path in referenced}

    removed = []
    for path in storage.list_files():
        if path.name in referenced_names:
            continue
        if to_naive_utc(datetime.fromtimestamp(path.stat().st_mtime, timezone.utc)) > cutoff:
            continue
        try:
            path.unlink()
            removed.append(path.name)
        except OSError as e:
            logger.warning(f"⚠️ Could not remove orphan file {path.name}: {str(e)}")

    logger.info(f"🧹 Removed {len(removed)} orphan upload(s)")
    return {"removed": removed, "count": len(removed)}


@celery_app.task(name="app.tasks.notification_tasks.reconcile_orphan_attachments_task", bind=True)
def reconcile_orphan_attachments_task(self) -> dict[str, Any]:
    logger.info(f"🚀 Starting orphan attachment reconciliation (Task ID: {self.request.id})")
    return asyncio.run(_with_session(reconcile_orphan_attachments))


async def expire_stale_invitations(
    session: AsyncSession, now: datetime | None = None
) -> dict[str, int]:
    """Mark pending team and shared-list invitations past their expiry as expired."""
    now = now or utcnow()
    counts = {}
    for label, model in (("team", TeamInvitation), ("shared_list", SharedListInvitation)):
        result = await session.execute(
            update(model)
            .where(model.status == "pending", model.expires_at < now)
            .values(status="expired")
        )
        counts[label] = result.rowcount
    await session.commit()
    logger.info(f"⌛ Expired invitations: {counts}")
    return counts


@celery_app.task(name="app.tasks.notification_tasks.expire_stale_invitations_task", bind=True)
def expire_stale_invitations_task(self) -> dict[str, int]:
    return asyncio.run(_with_session(expire_stale_invitations))
