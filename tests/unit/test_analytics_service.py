"""Unit tests for analytics statistics and saved reports."""

from datetime import datetime, timedelta

import pytest

from app.domains.analytics.service import (
    AnalyticsService,
    apply_report_filters,
    completion_stats,
    group_stats,
    resolve_date_range,
)
from app.exceptions.base import BadRequestError, ForbiddenError
from app.exceptions.team import TeamPermissionError
from app.schemas.analytics import ReportFilters, SavedReportCreate
from models import Comment, Task
from models.base import utcnow
from tests.conftest import add_team_member
from tests.factories import TaskFactory

NOW = datetime(2024, 6, 15, 12, 0)


def make_task(created_hours_ago=48, completed_after=None, due_in=None, **fields):
    """Transient task created ``created_hours_ago`` before NOW."""
    created_at = NOW - timedelta(hours=created_hours_ago)
    fields.setdefault("priority", "medium")
    fields.setdefault("category", "work")
    task = Task(name="t", created_at=created_at, **fields)
    if completed_after is not None:
        task.completed = True
        task.completed_at = created_at + timedelta(hours=completed_after)
    else:
        task.completed = False
    if due_in is not None:
        task.due_date = created_at + timedelta(hours=due_in)
    return task


class TestResolveDateRange:
    def test_default_is_thirty_days(self):
        date_range = resolve_date_range(now=NOW)

        assert date_range.end_date == NOW
        assert date_range.start_date == NOW - timedelta(days=30)

    @pytest.mark.parametrize("period, days", [("day", 1), ("week", 7), ("quarter", 90), ("year", 365)])
    def test_named_periods(self, period, days):
        assert resolve_date_range(period, now=NOW).start_date == NOW - timedelta(days=days)

    def test_explicit_bounds_win(self):
        start = datetime(2024, 1, 1)
        end = datetime(2024, 2, 1)

        date_range = resolve_date_range("week", start, end, now=NOW)

        assert (date_range.start_date, date_range.end_date) == (start, end)

    def test_inverted_bounds_are_rejected(self):
        with pytest.raises(BadRequestError):
            resolve_date_range(start_date=datetime(2024, 3, 1), end_date=datetime(2024, 2, 1))


class TestCompletionStats:
    def test_empty(self):
        stats = completion_stats([])

        assert stats.total_tasks == 0
        assert stats.completion_rate == 0.0
        assert stats.on_time_rate == 0.0

    def test_rates_and_timeliness(self):
        tasks = [
            make_task(completed_after=10, due_in=24),  # on time
            make_task(completed_after=30, due_in=24),  # late
            make_task(completed_after=20),  # no due date
            make_task(),
        ]

        stats = completion_stats(tasks)

        assert stats.total_tasks == 4
        assert stats.completed_tasks == 3
        assert stats.completion_rate == 75.0
        assert stats.average_completion_time == 20.0
        assert stats.on_time_completions == 1
        assert stats.late_completions == 1
        assert stats.on_time_rate == 50.0

    def test_completion_exactly_at_due_date_is_on_time(self):
        stats = completion_stats([make_task(completed_after=24, due_in=24)])

        assert stats.on_time_completions == 1

    def test_thirds_are_rounded(self):
        tasks = [make_task(completed_after=1), make_task(), make_task()]

        assert completion_stats(tasks).completion_rate == 33.33


class TestGroupingAndFilters:
    def test_group_by_priority(self):
        tasks = [
            make_task(priority="high", completed_after=2),
            make_task(priority="high"),
            make_task(priority="low"),
        ]

        groups = group_stats(tasks, lambda task: task.priority)

        assert list(groups) == ["high", "low"]
        assert groups["high"].count == 2
        assert groups["high"].completed_count == 1
        assert groups["high"].completion_rate == 50.0
        assert groups["low"].completion_rate == 0.0

    def test_report_filters(self):
        tasks = [
            make_task(category="work", priority="high", tags=["q3"]),
            make_task(category="home", priority="high", tags=["q3"]),
            make_task(category="work", priority="low", tags=[]),
        ]

        selected = apply_report_filters(
            tasks, ReportFilters(categories=["work"], priorities=["high"], tags=["q3"])
        )

        assert selected == [tasks[0]]

    def test_completed_filter(self):
        tasks = [make_task(completed_after=1), make_task()]

        assert apply_report_filters(tasks, ReportFilters(completed=False)) == [tasks[1]]


class TestAnalyticsService:
    @pytest.mark.asyncio
    async def test_task_completion_counts_visible_tasks(self, fresh_db, test_db, test_user, test_user_2):
        TaskFactory(created_by=test_user.id, completed=True, status="done", completed_at=utcnow())
        TaskFactory(created_by=test_user.id)
        TaskFactory(created_by=test_user_2.id)
        await test_db.commit()

        stats = await AnalyticsService(fresh_db).task_completion(test_user.id, resolve_date_range())

        assert stats["total_tasks"] == 2
        assert stats["completed_tasks"] == 1
        assert stats["completion_rate"] == 50.0

    @pytest.mark.asyncio
    async def test_productivity_counts_comments(self, fresh_db, test_db, test_task, test_user):
        test_db.add(Comment(task_id=test_task.id, user_id=test_user.id, content="first"))
        await test_db.commit()

        stats = await AnalyticsService(fresh_db).user_productivity(test_user.id, resolve_date_range())

        assert stats["tasks_created"] == 1
        assert stats["comments_written"] == 1
        assert stats["name"] == "Alice Owner"

    @pytest.mark.asyncio
    async def test_team_productivity_needs_view_reports(self, fresh_db, test_db, test_team, test_user_2):
        await add_team_member(test_db, test_team, test_user_2, role="member")

        with pytest.raises(TeamPermissionError):
            await AnalyticsService(fresh_db).team_productivity(
                test_team.id, test_user_2.id, resolve_date_range()
            )

    @pytest.mark.asyncio
    async def test_team_productivity_for_admin(self, fresh_db, test_db, test_team, test_user, test_user_2):
        await add_team_member(test_db, test_team, test_user_2, role="admin")
        TaskFactory(created_by=test_user.id)
        TaskFactory(created_by=test_user_2.id, completed=True, status="done", completed_at=utcnow())
        await test_db.commit()

        result = await AnalyticsService(fresh_db).team_productivity(
            test_team.id, test_user_2.id, resolve_date_range()
        )

        assert result["team_name"] == "Core Team"
        assert [m["name"] for m in result["members"]] == ["Alice Owner", "Bob Member"]
        assert result["totals"]["total_tasks"] == 2
        assert result["totals"]["completed_tasks"] == 1

    @pytest.mark.asyncio
    async def test_generate_report_stores_snapshot(self, fresh_db, test_db, test_user):
        TaskFactory(created_by=test_user.id, category="work")
        TaskFactory(created_by=test_user.id, category="home")
        await test_db.commit()
        service = AnalyticsService(fresh_db)
        report = await service.create_report(
            SavedReportCreate(
                name="Work only",
                report_type="category_analysis",
                filters={"categories": ["work"]},
            ),
            test_user.id,
        )

        report = await service.generate_report(report.id, test_user.id)

        assert report.last_generated_at is not None
        assert list(report.last_generated["data"]) == ["work"]
        assert report.last_generated["data"]["work"]["count"] == 1

    @pytest.mark.asyncio
    async def test_private_report_is_hidden_from_others(self, fresh_db, test_user, test_user_2):
        service = AnalyticsService(fresh_db)
        report = await service.create_report(
            SavedReportCreate(name="Mine", report_type="task_completion"), test_user.id
        )

        with pytest.raises(ForbiddenError):
            await service.get_report(report.id, test_user_2.id)
        with pytest.raises(ForbiddenError):
            await service.delete_report(report.id, test_user_2.id)

    @pytest.mark.asyncio
    async def test_team_report_needs_a_team(self, fresh_db, test_user):
        service = AnalyticsService(fresh_db)
        report = await service.create_report(
            SavedReportCreate(name="Team", report_type="team_productivity"), test_user.id
        )

        with pytest.raises(BadRequestError) as exc_info:
            await service.generate_report(report.id, test_user.id)

        assert exc_info.value.message == "A team productivity report needs a team"
