"""Unit tests for the background email and maintenance jobs."""

import os
import time
from datetime import timedelta
from unittest.mock import patch

import pytest

from app.services.email_service import email_service
from app.services.storage_service import StorageService
from app.tasks.notification_tasks import (
    deliver_notification_email,
    expire_stale_invitations,
    reconcile_orphan_attachments,
)
from models import Activity, SharedList, SharedListInvitation, TaskAttachment, TeamInvitation
from models.base import utcnow
from tests.conftest import fetch


def _invitation(model, parent_field, parent_id, token, expires_in, status="pending"):
    return model(
        **{parent_field: parent_id},
        email=f"{token}@example.com",
        token=token,
        expires_at=utcnow() + expires_in,
        status=status,
    )


class TestExpireStaleInvitations:
    @pytest.mark.asyncio
    async def test_only_overdue_pending_invitations_expire(self, test_db, fresh_db, test_team, test_user):
        shared_list = SharedList(name="Groceries", owner_id=test_user.id)
        test_db.add(shared_list)
        await test_db.commit()
        test_db.add_all(
            [
                _invitation(TeamInvitation, "team_id", test_team.id, "old", timedelta(days=-1)),
                _invitation(TeamInvitation, "team_id", test_team.id, "fresh", timedelta(days=3)),
                _invitation(
                    TeamInvitation, "team_id", test_team.id, "done", timedelta(days=-1), status="accepted"
                ),
                _invitation(SharedListInvitation, "list_id", shared_list.id, "list-old", timedelta(hours=-2)),
            ]
        )
        await test_db.commit()

        counts = await expire_stale_invitations(fresh_db)

        assert counts == {"team": 1, "shared_list": 1}
        assert (await fetch(TeamInvitation, token="old")).status == "expired"
        assert (await fetch(TeamInvitation, token="fresh")).status == "pending"
        assert (await fetch(TeamInvitation, token="done")).status == "accepted"
        assert (await fetch(SharedListInvitation, token="list-old")).status == "expired"


class TestReconcileOrphanAttachments:
    @pytest.mark.asyncio
    async def test_removes_only_old_unreferenced_files(self, tmp_path, test_db, fresh_db, test_task, test_user):
        storage = StorageService(upload_dir=str(tmp_path))
        for name in ("attached.pdf", "avatar.png", "orphan.txt", "recent.txt"):
            (tmp_path / name).write_bytes(b"data")
        two_hours_ago = time.time() - 2 * 3600
        for name in ("attached.pdf", "avatar.png", "orphan.txt"):
            os.utime(tmp_path / name, (two_hours_ago, two_hours_ago))

        test_db.add(
            TaskAttachment(
                task_id=test_task.id,
                filename="attached.pdf",
                original_name="a.pdf",
                mime_type="application/pdf",
                size=4,
                path="/uploads/attached.pdf",
            )
        )
        test_user.avatar = "/uploads/avatar.png"
        await test_db.commit()

        result = await reconcile_orphan_attachments(fresh_db, storage=storage)

        assert result == {"removed": ["orphan.txt"], "count": 1}
        assert sorted(p.name for p in storage.list_files()) == ["attached.pdf", "avatar.png", "recent.txt"]


class TestNotificationEmail:
    @pytest.mark.asyncio
    async def test_sends_summary_to_recipient(self, test_db, fresh_db, test_user, test_user_2):
        activity = Activity(type="task_assigned", user_id=test_user.id, details={"task_name": "Ship report"})
        test_db.add(activity)
        await test_db.commit()

        with patch.object(email_service, "send_email", return_value=True) as send:
            sent = await deliver_notification_email(fresh_db, activity.id, test_user_2.id)

        assert sent is True
        to_email, subject, html, text = send.call_args[0]
        assert to_email == "b@example.com"
        assert subject == "📋 Task assigned"
        assert "Ship report" in text

    @pytest.mark.asyncio
    async def test_inactive_recipient_is_skipped(self, test_db, fresh_db, test_user, test_user_2):
        activity = Activity(type="task_assigned", user_id=test_user.id, details={})
        test_user_2.is_active = False
        test_db.add(activity)
        await test_db.commit()

        with patch.object(email_service, "send_email") as send:
            assert await deliver_notification_email(fresh_db, activity.id, test_user_2.id) is False
        send.assert_not_called()
