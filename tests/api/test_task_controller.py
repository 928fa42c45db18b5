"""API tests for task endpoints."""

import uuid
from datetime import timedelta

import pytest

from models import Activity, Task, TaskAttachment
from models.base import utcnow
from tests.conftest import fetch, fetch_all
from tests.factories import TaskFactory

TASKS = "/api/v1/tasks"


class TestTaskCrud:
    @pytest.mark.asyncio
    async def test_create_task(self, client, headers, test_user, recorded_events):
        response = await client.post(
            f"{TASKS}/",
            json={
                "name": "Write release notes",
                "priority": "high",
                "category": "work",
                "tags": ["release"],
            },
            headers=headers,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["name"] == "Write release notes"
        assert data["status"] == "todo"
        assert data["completed"] is False
        assert data["created_by"] == str(test_user.id)
        assert data["subtasks"] == [] and data["attachments"] == []
        assert [event.type for event in recorded_events] == ["task:created"]

        activities = await fetch_all(Activity, task_id=uuid.UUID(data["id"]))
        assert [activity.type for activity in activities] == ["task_created"]

    @pytest.mark.asyncio
    async def test_create_completed_task_stamps_completion(self, client, headers):
        response = await client.post(
            f"{TASKS}/", json={"name": "Already done", "completed": True}, headers=headers
        )

        data = response.json()["data"]
        assert data["status"] == "done"
        assert data["completed_at"] is not None

    @pytest.mark.asyncio
    async def test_create_requires_name(self, client, headers):
        response = await client.post(f"{TASKS}/", json={"priority": "low"}, headers=headers)

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "rule",
        [{"interval": 2}, {"frequency": "weekly"}, {"frequency": "hourly", "interval": 1}],
    )
    async def test_malformed_recurrence_rule_is_rejected(self, client, headers, test_user, rule):
        """Nothing is stored when the rule lacks a frequency or interval."""
        response = await client.post(
            f"{TASKS}/",
            json={"name": "Water plants", "is_recurring": True, "recurrence_rule": rule},
            headers=headers,
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"
        assert await fetch_all(Task, created_by=test_user.id) == []

    @pytest.mark.asyncio
    async def test_get_task(self, client, headers, test_task):
        response = await client.get(f"{TASKS}/{test_task.id}", headers=headers)

        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Ship report"

    @pytest.mark.asyncio
    async def test_stranger_cannot_read(self, client, headers_2, test_task):
        response = await client.get(f"{TASKS}/{test_task.id}", headers=headers_2)

        assert response.status_code == 403
        assert response.json()["error_code"] == "TASK_PERMISSION_DENIED"

    @pytest.mark.asyncio
    async def test_missing_task(self, client, headers):
        response = await client.get(f"{TASKS}/{uuid.uuid4()}", headers=headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Task not found"

    @pytest.mark.asyncio
    async def test_complete_and_reopen(self, client, headers, test_task, recorded_events):
        response = await client.patch(
            f"{TASKS}/{test_task.id}", json={"completed": True}, headers=headers
        )

        data = response.json()["data"]
        assert data["status"] == "done"
        assert data["completed_at"] is not None
        assert "task:completed" in [event.type for event in recorded_events]

        response = await client.patch(
            f"{TASKS}/{test_task.id}", json={"status": "in_progress"}, headers=headers
        )

        data = response.json()["data"]
        assert data["completed"] is False
        assert data["completed_at"] is None

        types = [a.type for a in await fetch_all(Activity, task_id=test_task.id)]
        assert "task_completed" in types and "task_reopened" in types

    @pytest.mark.asyncio
    async def test_assignee_can_update_but_not_delete(
        self, client, headers, headers_2, test_task, test_user_2
    ):
        await client.patch(
            f"{TASKS}/{test_task.id}", json={"assigned_to": [str(test_user_2.id)]}, headers=headers
        )

        response = await client.patch(
            f"{TASKS}/{test_task.id}", json={"priority": "low"}, headers=headers_2
        )
        assert response.status_code == 200
        assert response.json()["data"]["assigned_to"] == [str(test_user_2.id)]

        response = await client.delete(f"{TASKS}/{test_task.id}", headers=headers_2)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_delete_task(self, client, headers, test_task, recorded_events):
        response = await client.delete(f"{TASKS}/{test_task.id}", headers=headers)

        assert response.status_code == 200
        assert response.json()["data"] is None
        assert await fetch(Task, id=test_task.id) is None
        assert recorded_events[-1].type == "task:deleted"


class TestTaskListing:
    @pytest.mark.asyncio
    async def test_pagination_envelope(self, client, test_db, headers, test_user):
        for i in range(12):
            TaskFactory(created_by=test_user.id, name=f"Task {i:02d}")
        await test_db.commit()

        response = await client.get(f"{TASKS}/?page=2&limit=5&sort=name", headers=headers)

        data = response.json()["data"]
        assert data["total"] == 12
        assert data["pages"] == 3
        assert data["page"] == 2
        assert data["count"] == 5
        assert [task["name"] for task in data["tasks"]] == [f"Task {i:02d}" for i in range(5, 10)]

    @pytest.mark.asyncio
    async def test_limit_over_maximum_is_rejected(self, client, headers):
        response = await client.get(f"{TASKS}/?limit=500", headers=headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_filters(self, client, test_db, headers, test_user):
        TaskFactory(created_by=test_user.id, name="Buy milk", category="home", priority="low")
        TaskFactory(created_by=test_user.id, name="Plan sprint", category="work", priority="high")
        TaskFactory(
            created_by=test_user.id,
            name="File taxes",
            category="home",
            due_date=utcnow() - timedelta(days=2),
        )
        await test_db.commit()

        home = await client.get(f"{TASKS}/?category=home", headers=headers)
        search = await client.get(f"{TASKS}/?search=sprint", headers=headers)
        overdue = await client.get(f"{TASKS}/?due_date=overdue", headers=headers)

        assert {t["name"] for t in home.json()["data"]["tasks"]} == {"Buy milk", "File taxes"}
        assert [t["name"] for t in search.json()["data"]["tasks"]] == ["Plan sprint"]
        assert [t["name"] for t in overdue.json()["data"]["tasks"]] == ["File taxes"]

    @pytest.mark.asyncio
    async def test_field_projection(self, client, headers, test_task):
        response = await client.get(f"{TASKS}/?fields=name,priority", headers=headers)

        task = response.json()["data"]["tasks"][0]
        assert set(task) == {"id", "name", "priority"}

    @pytest.mark.asyncio
    async def test_unknown_sort_field(self, client, headers):
        response = await client.get(f"{TASKS}/?sort=password", headers=headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_assigned_view(self, client, test_db, headers, headers_2, test_task, test_user_2):
        await client.patch(
            f"{TASKS}/{test_task.id}", json={"assigned_to": [str(test_user_2.id)]}, headers=headers
        )

        mine = await client.get(f"{TASKS}/", headers=headers_2)
        assigned = await client.get(f"{TASKS}/?assigned=true", headers=headers_2)

        assert mine.json()["data"]["total"] == 0
        assert [t["id"] for t in assigned.json()["data"]["tasks"]] == [str(test_task.id)]

    @pytest.mark.asyncio
    async def test_stats(self, client, test_db, headers, test_user):
        TaskFactory(created_by=test_user.id, priority="high")
        TaskFactory(created_by=test_user.id, priority="low", completed=True, status="done")
        await test_db.commit()

        response = await client.get(f"{TASKS}/stats", headers=headers)

        stats = response.json()["data"]
        assert stats["total"] == 2
        assert stats["completed"] == 1
        assert stats["pending"] == 1
        assert stats["high_priority"] == 1


class TestSubtasksAndAttachments:
    @pytest.mark.asyncio
    async def test_subtask_lifecycle(self, client, headers, test_task):
        response = await client.post(
            f"{TASKS}/{test_task.id}/subtasks", json={"name": "Draft"}, headers=headers
        )
        assert response.status_code == 201
        subtask = response.json()["data"]["subtasks"][0]
        assert subtask["completed"] is False

        response = await client.patch(
            f"{TASKS}/{test_task.id}/subtasks/{subtask['id']}",
            json={"completed": True},
            headers=headers,
        )
        assert response.json()["data"]["subtasks"][0]["completed_at"] is not None

        response = await client.delete(
            f"{TASKS}/{test_task.id}/subtasks/{subtask['id']}", headers=headers
        )
        assert response.json()["data"]["subtasks"] == []

    @pytest.mark.asyncio
    async def test_unknown_subtask(self, client, headers, test_task):
        response = await client.delete(
            f"{TASKS}/{test_task.id}/subtasks/{uuid.uuid4()}", headers=headers
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "SUBTASK_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_attachment_upload_and_delete(self, client, headers, test_task):
        response = await client.post(
            f"{TASKS}/{test_task.id}/attachments",
            files={"file": ("notes.txt", b"hello world", "text/plain")},
            headers=headers,
        )

        assert response.status_code == 201
        attachment = response.json()["data"]["attachments"][0]
        assert attachment["original_name"] == "notes.txt"
        assert attachment["size"] == 11
        assert attachment["path"].startswith("/uploads/")

        response = await client.delete(
            f"{TASKS}/{test_task.id}/attachments/{attachment['id']}", headers=headers
        )

        assert response.json()["data"]["attachments"] == []
        assert await fetch_all(TaskAttachment, task_id=test_task.id) == []


class TestDependencies:
    @pytest.mark.asyncio
    async def test_add_and_remove(self, client, test_db, headers, test_task, test_user):
        blocker = TaskFactory(created_by=test_user.id, name="Blocker")
        await test_db.commit()

        response = await client.post(
            f"{TASKS}/{test_task.id}/dependencies",
            json={"dependency_id": str(blocker.id)},
            headers=headers,
        )
        assert response.status_code == 201
        assert response.json()["data"]["dependencies"] == [str(blocker.id)]

        response = await client.delete(
            f"{TASKS}/{test_task.id}/dependencies/{blocker.id}", headers=headers
        )
        assert response.json()["data"]["dependencies"] == []

    @pytest.mark.asyncio
    async def test_cycle_is_rejected(self, client, test_db, headers, test_task, test_user):
        blocker = TaskFactory(created_by=test_user.id, name="Blocker")
        await test_db.commit()
        await client.post(
            f"{TASKS}/{test_task.id}/dependencies",
            json={"dependency_id": str(blocker.id)},
            headers=headers,
        )

        response = await client.post(
            f"{TASKS}/{blocker.id}/dependencies",
            json={"dependency_id": str(test_task.id)},
            headers=headers,
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "CIRCULAR_DEPENDENCY"
