"""
Collaboration workflow tests.

Each test walks a multi-user scenario through the HTTP API and checks the
side effects that span domains: activities, notifications, realtime
delivery and cleanup.
"""

import uuid
from datetime import timedelta

import pytest
import pytest_asyncio

from app.main import app
from app.realtime.events import user_room
from models import (
    Activity,
    Comment,
    CommentReaction,
    Notification,
    SharedListInvitation,
    SharedListTask,
    Task,
    TaskDependency,
    TeamInvitation,
)
from models.base import utcnow
from tests.conftest import auth_headers, fetch, fetch_all

API = "/api/v1"


class RecordingSocket:
    """Stands in for a browser connection registered with the app's manager."""

    def __init__(self):
        self.sent = []

    async def accept(self):
        pass

    async def send_json(self, message):
        self.sent.append(message)

    def event_types(self):
        return [m["payload"]["type"] for m in self.sent if m.get("event") == "realtime:event"]


@pytest_asyncio.fixture
async def bob_socket(test_user_2):
    manager = app.state.connections
    socket = RecordingSocket()
    await manager.connect(socket, test_user_2.id)
    yield socket
    manager.disconnect(socket)


class TestTeamCollaboration:
    @pytest.mark.asyncio
    async def test_invite_assign_comment_complete(
        self, client, headers, headers_2, test_user, test_user_2, bob_socket
    ):
        """A teammate joins by invitation, receives work and reports back."""
        team = (
            await client.post(f"{API}/teams/", json={"name": "Launch Crew"}, headers=headers)
        ).json()["data"]
        await client.post(
            f"{API}/teams/{team['id']}/invite",
            json={"email": "b@example.com", "role": "member"},
            headers=headers,
        )
        token = (await fetch(TeamInvitation, team_id=uuid.UUID(team["id"]))).token
        joined = await client.post(f"{API}/teams/accept-invitation", json={"token": token}, headers=headers_2)
        assert len(joined.json()["data"]["members"]) == 2

        task = (
            await client.post(
                f"{API}/tasks/",
                json={"name": "Prepare demo", "assigned_to": [str(test_user_2.id)]},
                headers=headers,
            )
        ).json()["data"]
        assert "task:assigned" in bob_socket.event_types()

        comment = await client.post(
            f"{API}/comments/",
            json={"task_id": task["id"], "content": "Slides are ready"},
            headers=headers_2,
        )
        assert comment.status_code == 201

        done = await client.patch(f"{API}/tasks/{task['id']}", json={"completed": True}, headers=headers_2)
        assert done.json()["data"]["status"] == "done"

        owner_notifications = await fetch_all(Notification, recipient_id=test_user.id)
        owner_types = set()
        for notification in owner_notifications:
            activity = await fetch(Activity, id=notification.activity_id)
            owner_types.add(activity.type)
        assert {"task_comment_added", "task_completed"} <= owner_types

        report = await client.get(f"{API}/analytics/teams/{team['id']}/productivity", headers=headers)
        totals = report.json()["data"]["totals"]
        assert totals["total_tasks"] == 1
        assert totals["completed_tasks"] == 1

    @pytest.mark.asyncio
    async def test_removed_member_loses_team_access(
        self, client, headers, headers_2, test_user_2, bob_socket
    ):
        team = (
            await client.post(f"{API}/teams/", json={"name": "Short Lived"}, headers=headers)
        ).json()["data"]
        await client.post(
            f"{API}/teams/{team['id']}/members", json={"user_id": str(test_user_2.id)}, headers=headers
        )
        assert (await client.get(f"{API}/teams/{team['id']}", headers=headers_2)).status_code == 200

        await client.delete(f"{API}/teams/{team['id']}/members/{test_user_2.id}", headers=headers)

        assert (await client.get(f"{API}/teams/{team['id']}", headers=headers_2)).status_code == 403
        assert "team:member:removed" in bob_socket.event_types()


class TestSharedListWorkflow:
    @pytest.mark.asyncio
    async def test_invited_editor_curates_public_list(
        self, client, headers, headers_2, test_task, test_user_3, bob_socket
    ):
        shared = (
            await client.post(f"{API}/shared-lists/", json={"name": "Launch checklist"}, headers=headers)
        ).json()["data"]
        await client.post(
            f"{API}/shared-lists/{shared['id']}/invite",
            json={"email": "b@example.com", "permissions": {"create": True, "update": True}},
            headers=headers,
        )
        token = (await fetch(SharedListInvitation, list_id=uuid.UUID(shared["id"]))).token
        await client.post(f"{API}/shared-lists/accept-invitation", json={"token": token}, headers=headers_2)
        assert "list:shared" in bob_socket.event_types()

        added = await client.post(
            f"{API}/shared-lists/{shared['id']}/tasks", json={"task_id": str(test_task.id)}, headers=headers_2
        )
        assert added.json()["data"]["tasks"] == [str(test_task.id)]

        published = await client.patch(
            f"{API}/shared-lists/{shared['id']}", json={"is_public": True}, headers=headers
        )
        code = published.json()["data"]["public_access_code"]

        outsider = await client.post(f"{API}/shared-lists/access/{code}", headers=auth_headers(test_user_3))
        assert outsider.json()["data"]["tasks"] == [str(test_task.id)]
        assert "members" not in outsider.json()["data"]


class TestTaskLifecycle:
    @pytest.mark.asyncio
    async def test_recurring_task_spawns_next_occurrence(self, client, headers, test_user):
        due = utcnow() + timedelta(days=1)

        response = await client.post(
            f"{API}/tasks/",
            json={
                "name": "Water plants",
                "due_date": due.isoformat(),
                "is_recurring": True,
                "recurrence_rule": {"frequency": "daily", "interval": 3},
            },
            headers=headers,
        )

        assert response.status_code == 201
        tasks = await fetch_all(Task, created_by=test_user.id)
        assert len(tasks) == 2
        due_dates = sorted(task.due_date for task in tasks)
        assert due_dates[1] - due_dates[0] == timedelta(days=3)

    @pytest.mark.asyncio
    async def test_delete_cleans_up_everything_attached(
        self, client, test_db, headers, test_task, test_user
    ):
        """Comments, reactions, list links, dependency edges and files go with the task."""
        other = (
            await client.post(f"{API}/tasks/", json={"name": "Follow-up"}, headers=headers)
        ).json()["data"]
        await client.post(
            f"{API}/tasks/{other['id']}/dependencies",
            json={"dependency_id": str(test_task.id)},
            headers=headers,
        )
        comment = (
            await client.post(
                f"{API}/comments/", json={"task_id": str(test_task.id), "content": "Note"}, headers=headers
            )
        ).json()["data"]
        await client.post(
            f"{API}/comments/{comment['id']}/reactions", json={"reaction": "👍"}, headers=headers
        )
        await client.post(
            f"{API}/shared-lists/", json={"name": "Week", "tasks": [str(test_task.id)]}, headers=headers
        )
        upload = await client.post(
            f"{API}/tasks/{test_task.id}/attachments",
            files={"file": ("brief.txt", b"brief", "text/plain")},
            headers=headers,
        )
        path = upload.json()["data"]["attachments"][0]["path"]
        assert (await client.get(path)).status_code == 200

        response = await client.delete(f"{API}/tasks/{test_task.id}", headers=headers)

        assert response.status_code == 200
        assert await fetch(Task, id=test_task.id) is None
        assert await fetch_all(Comment, task_id=test_task.id) == []
        assert await fetch(CommentReaction, comment_id=uuid.UUID(comment["id"])) is None
        assert await fetch_all(SharedListTask, task_id=test_task.id) == []
        assert await fetch_all(TaskDependency, depends_on_id=test_task.id) == []
        assert (await client.get(path)).status_code == 404

        remaining = await client.get(f"{API}/tasks/{other['id']}", headers=headers)
        assert remaining.json()["data"]["dependencies"] == []

    @pytest.mark.asyncio
    async def test_personal_room_receives_own_events(self, client, headers_2, test_user_2, bob_socket):
        await client.post(f"{API}/tasks/", json={"name": "Solo work"}, headers=headers_2)

        assert bob_socket.event_types() == ["task:created"]
        assert app.state.connections.rooms_of(bob_socket) == {user_room(test_user_2.id)}
