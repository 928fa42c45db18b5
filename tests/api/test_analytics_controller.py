"""API tests for analytics and saved reports."""

import uuid

import pytest
import pytest_asyncio

from models import SavedReport
from models.base import utcnow
from tests.conftest import add_team_member, fetch
from tests.factories import TaskFactory

ANALYTICS = "/api/v1/analytics"


@pytest_asyncio.fixture
async def mixed_tasks(test_db, test_user):
    TaskFactory(
        created_by=test_user.id,
        category="work",
        priority="high",
        completed=True,
        status="done",
        completed_at=utcnow(),
    )
    TaskFactory(created_by=test_user.id, category="work", priority="low")
    TaskFactory(created_by=test_user.id, category="home", priority="low")
    await test_db.commit()


class TestStatistics:
    @pytest.mark.asyncio
    async def test_completion(self, client, headers, mixed_tasks):
        response = await client.get(f"{ANALYTICS}/tasks/completion", headers=headers)

        data = response.json()["data"]
        assert data["total_tasks"] == 3
        assert data["completed_tasks"] == 1
        assert data["completion_rate"] == 33.33

    @pytest.mark.asyncio
    async def test_breakdowns(self, client, headers, mixed_tasks):
        categories = await client.get(f"{ANALYTICS}/categories?period=week", headers=headers)
        priorities = await client.get(f"{ANALYTICS}/priorities", headers=headers)

        assert categories.json()["data"]["work"]["count"] == 2
        assert categories.json()["data"]["work"]["completion_rate"] == 50.0
        assert priorities.json()["data"]["low"]["count"] == 2

    @pytest.mark.asyncio
    async def test_productivity(self, client, headers, mixed_tasks, test_user):
        response = await client.get(f"{ANALYTICS}/productivity", headers=headers)

        data = response.json()["data"]
        assert data["user_id"] == str(test_user.id)
        assert data["tasks_created"] == 3
        assert data["tasks_completed"] == 1

    @pytest.mark.asyncio
    async def test_dashboard(self, client, headers, mixed_tasks):
        response = await client.get(f"{ANALYTICS}/dashboard", headers=headers)

        data = response.json()["data"]
        assert set(data) >= {
            "date_range",
            "completion",
            "categories",
            "priorities",
            "productivity",
            "upcoming_tasks",
            "recent_activity",
        }
        assert data["completion"]["total_tasks"] == 3

    @pytest.mark.asyncio
    async def test_inverted_date_range(self, client, headers):
        response = await client.get(
            f"{ANALYTICS}/dashboard?start_date=2024-03-01T00:00:00&end_date=2024-02-01T00:00:00",
            headers=headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "start_date must be before end_date"

    @pytest.mark.asyncio
    async def test_unknown_period(self, client, headers):
        response = await client.get(f"{ANALYTICS}/dashboard?period=decade", headers=headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_team_productivity_permissions(
        self, client, test_db, headers, headers_2, test_team, test_user_2
    ):
        await add_team_member(test_db, test_team, test_user_2, role="member")

        owner_view = await client.get(f"{ANALYTICS}/teams/{test_team.id}/productivity", headers=headers)
        member_view = await client.get(
            f"{ANALYTICS}/teams/{test_team.id}/productivity", headers=headers_2
        )

        assert owner_view.status_code == 200
        assert len(owner_view.json()["data"]["members"]) == 2
        assert member_view.status_code == 403


class TestSavedReports:
    @pytest.mark.asyncio
    async def test_create_generate_and_list(self, client, headers, mixed_tasks):
        created = await client.post(
            f"{ANALYTICS}/reports",
            json={
                "name": "Work priorities",
                "report_type": "priority_analysis",
                "filters": {"categories": ["work"]},
            },
            headers=headers,
        )
        assert created.status_code == 201
        report = created.json()["data"]
        assert report["filters"] == {"categories": ["work"]}
        assert report["last_generated"] is None

        generated = await client.post(f"{ANALYTICS}/reports/{report['id']}/generate", headers=headers)

        snapshot = generated.json()["data"]["last_generated"]
        assert set(snapshot["data"]) == {"high", "low"}
        assert generated.json()["data"]["last_generated_at"] is not None

        listing = await client.get(f"{ANALYTICS}/reports", headers=headers)
        assert listing.json()["data"]["count"] == 1

    @pytest.mark.asyncio
    async def test_public_report_is_visible_but_not_editable(self, client, headers, headers_2):
        created = await client.post(
            f"{ANALYTICS}/reports",
            json={"name": "Shared", "report_type": "task_completion", "is_public": True},
            headers=headers,
        )
        report_id = created.json()["data"]["id"]

        seen = await client.get(f"{ANALYTICS}/reports/{report_id}", headers=headers_2)
        edited = await client.patch(
            f"{ANALYTICS}/reports/{report_id}", json={"name": "Mine now"}, headers=headers_2
        )
        deleted = await client.delete(f"{ANALYTICS}/reports/{report_id}", headers=headers_2)

        assert seen.status_code == 200
        assert edited.status_code == 403
        assert deleted.status_code == 403

    @pytest.mark.asyncio
    async def test_team_report_visible_to_team(
        self, client, test_db, headers, headers_2, test_team, test_user_2
    ):
        await add_team_member(test_db, test_team, test_user_2)
        created = await client.post(
            f"{ANALYTICS}/reports",
            json={"name": "Team pulse", "report_type": "team_productivity", "team_id": str(test_team.id)},
            headers=headers,
        )

        listing = await client.get(f"{ANALYTICS}/reports", headers=headers_2)

        assert created.json()["data"]["is_team_report"] is True
        assert [r["name"] for r in listing.json()["data"]["reports"]] == ["Team pulse"]

    @pytest.mark.asyncio
    async def test_empty_update_is_rejected(self, client, headers):
        created = await client.post(
            f"{ANALYTICS}/reports", json={"name": "Mine", "report_type": "custom"}, headers=headers
        )

        response = await client.patch(
            f"{ANALYTICS}/reports/{created.json()['data']['id']}", json={}, headers=headers
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_and_delete(self, client, headers):
        created = await client.post(
            f"{ANALYTICS}/reports", json={"name": "Mine", "report_type": "custom"}, headers=headers
        )
        report_id = created.json()["data"]["id"]

        updated = await client.patch(
            f"{ANALYTICS}/reports/{report_id}", json={"name": "Renamed"}, headers=headers
        )
        deleted = await client.delete(f"{ANALYTICS}/reports/{report_id}", headers=headers)

        assert updated.json()["data"]["name"] == "Renamed"
        assert deleted.status_code == 200
        assert await fetch(SavedReport, id=uuid.UUID(report_id)) is None

    @pytest.mark.asyncio
    async def test_missing_report(self, client, headers):
        response = await client.get(f"{ANALYTICS}/reports/{uuid.uuid4()}", headers=headers)

        assert response.status_code == 404
