"""
Task analytics and saved reports.

Statistics are computed over the tasks a user can see (created by or assigned
to them) that were created inside a date range. Rates are percentages rounded
to two decimals; completion times are in hours.
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.domains.activity.service import serialize_activity
from app.domains.task.service import serialize_task
from app.exceptions.base import BadRequestError, ForbiddenError, NotFoundError
from app.exceptions.team import TeamNotFoundError, TeamPermissionError
from app.schemas.analytics import (
    DateRange,
    GroupStats,
    ReportFilters,
    SavedReportCreate,
    SavedReportResponse,
    SavedReportUpdate,
    TaskCompletionStats,
    UserProductivityStats,
)
from app.shared.permissions import has_team_permission
from models import Activity, Comment, SavedReport, Task, TaskAssignee, Team, TeamMember, User
from models.base import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

PERIOD_DAYS = {"day": 1, "week": 7, "month": 30, "quarter": 90, "year": 365}
DEFAULT_RANGE_DAYS = 30
UPCOMING_DAYS = 7
DASHBOARD_ITEMS = 10


def resolve_date_range(
    period: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> DateRange:
    """Explicit bounds win; otherwise the period (default 30 days) ending now."""
    end = to_naive_utc(end_date) or now or utcnow()
    if start_date:
        start = to_naive_utc(start_date)
    else:
        start = end - timedelta(days=PERIOD_DAYS.get(period, DEFAULT_RANGE_DAYS))
    if start > end:
        raise BadRequestError("start_date must be before end_date")
    return DateRange(start_date=start, end_date=end)


def _rate(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def _completion_hours(tasks: Iterable[Task]) -> float:
    durations = [
        (task.completed_at - task.created_at).total_seconds() / 3600
        for task in tasks
        if task.completed and task.completed_at and task.created_at
    ]
    return round(sum(durations) / len(durations), 2) if durations else 0.0


def completion_stats(tasks: List[Task]) -> TaskCompletionStats:
    completed = [task for task in tasks if task.completed]
    timed = [task for task in completed if task.due_date and task.completed_at]
    on_time = sum(1 for task in timed if task.completed_at <= task.due_date)
    late = len(timed) - on_time
    return TaskCompletionStats(
        total_tasks=len(tasks),
        completed_tasks=len(completed),
        completion_rate=_rate(len(completed), len(tasks)),
        average_completion_time=_completion_hours(completed),
        on_time_completions=on_time,
        late_completions=late,
        on_time_rate=_rate(on_time, len(timed)),
    )


def group_stats(tasks: List[Task], key) -> Dict[str, GroupStats]:
    groups: Dict[str, List[Task]] = defaultdict(list)
    for task in tasks:
        groups[str(key(task))].append(task)
    result = {}
    for name, members in sorted(groups.items()):
        completed = [task for task in members if task.completed]
        result[name] = GroupStats(
            count=len(members),
            completed_count=len(completed),
            completion_rate=_rate(len(completed), len(members)),
            average_completion_time=_completion_hours(completed),
        )
    return result


_GROUP_KEYS = {
    "category": lambda task: task.category,
    "priority": lambda task: task.priority,
    "user": lambda task: task.created_by,
    "day": lambda task: task.created_at.strftime("%Y-%m-%d"),
    "week": lambda task: task.created_at.strftime("%G-W%V"),
    "month": lambda task: task.created_at.strftime("%Y-%m"),
}


def apply_report_filters(tasks: List[Task], filters: ReportFilters) -> List[Task]:
    """Narrow an already visible task set by the saved report filters."""
    selected = tasks
    if filters.categories:
        selected = [t for t in selected if t.category in filters.categories]
    if filters.priorities:
        selected = [t for t in selected if t.priority in filters.priorities]
    if filters.tags:
        wanted = set(filters.tags)
        selected = [t for t in selected if wanted.intersection(t.tags or [])]
    if filters.users:
        users = set(filters.users)
        selected = [t for t in selected if t.created_by in users or users.intersection(t.assigned_to)]
    if filters.completed is not None:
        selected = [t for t in selected if t.completed == filters.completed]
    return selected


def serialize_report(report: SavedReport) -> Dict[str, Any]:
    return SavedReportResponse.model_validate(report).model_dump(mode="json")


class AnalyticsService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ----- Statistics -------------------------------------------------------

    async def task_completion(self, user_id: UUID, date_range: DateRange) -> Dict[str, Any]:
        tasks = await self._visible_tasks([user_id], date_range)
        return completion_stats(tasks).model_dump()

    async def category_breakdown(self, user_id: UUID, date_range: DateRange) -> Dict[str, Any]:
        tasks = await self._visible_tasks([user_id], date_range)
        return _dump_groups(group_stats(tasks, _GROUP_KEYS["category"]))

    async def priority_breakdown(self, user_id: UUID, date_range: DateRange) -> Dict[str, Any]:
        tasks = await self._visible_tasks([user_id], date_range)
        return _dump_groups(group_stats(tasks, _GROUP_KEYS["priority"]))

    async def user_productivity(self, user_id: UUID, date_range: DateRange) -> Dict[str, Any]:
        user = (await self.db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
        if not user:
            raise NotFoundError(f"No user found with id {user_id}")
        tasks = await self._visible_tasks([user_id], date_range)
        return (await self._productivity(user, tasks, date_range)).model_dump(mode="json")

    async def team_productivity(
        self, team_id: UUID, user_id: UUID, date_range: DateRange
    ) -> Dict[str, Any]:
        """Per-member productivity plus totals; requires ``viewReports``."""
        team = (
            await self.db.execute(select(Team).where(Team.id == team_id, Team.is_active.is_(True)))
        ).scalar_one_or_none()
        if not team:
            raise TeamNotFoundError(f"No team found with id {team_id}")
        if not has_team_permission(team, user_id, "viewReports"):
            raise TeamPermissionError("Not authorized to view reports for this team")

        members = [team.owner] + [member.user for member in team.members]
        all_tasks = await self._visible_tasks(team.member_ids, date_range)

        member_stats = []
        for member in members:
            tasks = [t for t in all_tasks if t.is_participant(member.id)]
            member_stats.append(
                (await self._productivity(member, tasks, date_range)).model_dump(mode="json")
            )

        return {
            "team_id": str(team.id),
            "team_name": team.name,
            "members": member_stats,
            "totals": completion_stats(all_tasks).model_dump(),
        }

    async def dashboard(self, user_id: UUID, date_range: DateRange) -> Dict[str, Any]:
        tasks = await self._visible_tasks([user_id], date_range)
        user = (await self.db.execute(select(User).where(User.id == user_id))).scalar_one()
        return {
            "date_range": date_range.model_dump(mode="json"),
            "completion": completion_stats(tasks).model_dump(),
            "categories": _dump_groups(group_stats(tasks, _GROUP_KEYS["category"])),
            "priorities": _dump_groups(group_stats(tasks, _GROUP_KEYS["priority"])),
            "productivity": (await self._productivity(user, tasks, date_range)).model_dump(
                mode="json"
            ),
            "upcoming_tasks": [serialize_task(t) for t in await self._upcoming(user_id)],
            "recent_activity": [serialize_activity(a) for a in await self._recent_activity(user_id)],
        }

    # ----- Saved reports ----------------------------------------------------

    async def create_report(self, data: SavedReportCreate, user_id: UUID) -> SavedReport:
        if data.team_id:
            await self._get_member_team(data.team_id, user_id)

        report = SavedReport(
            name=data.name,
            description=data.description,
            owner_id=user_id,
            team_id=data.team_id,
            is_team_report=data.team_id is not None,
            is_public=data.is_public,
            report_type=data.report_type,
            filters=data.filters.model_dump(mode="json", exclude_none=True),
            schedule=data.schedule.model_dump(mode="json") if data.schedule else None,
        )
        try:
            self.db.add(report)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise BadRequestError(f"Failed to create report: {str(e)}")
        logger.info(f"📊 Saved report {report.id} created by user {user_id}")
        return report

    async def get_reports(self, user_id: UUID) -> List[SavedReport]:
        """Own reports, public ones and reports of teams the user belongs to."""
        team_ids = await self._team_ids(user_id)
        conditions = [SavedReport.owner_id == user_id, SavedReport.is_public.is_(True)]
        if team_ids:
            conditions.append(SavedReport.team_id.in_(team_ids))
        result = await self.db.execute(
            select(SavedReport).where(or_(*conditions)).order_by(SavedReport.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_report(self, report_id: UUID, user_id: UUID) -> SavedReport:
        report = await self._get_report(report_id)
        if report.owner_id == user_id or report.is_public:
            return report
        if report.team_id and report.team_id in await self._team_ids(user_id):
            return report
        raise ForbiddenError("Not authorized to view this report")

    async def update_report(
        self, report_id: UUID, data: SavedReportUpdate, user_id: UUID
    ) -> SavedReport:
        report = await self._get_owned_report(report_id, user_id)
        for field, value in data.model_dump(mode="json", exclude_unset=True).items():
            setattr(report, field, value)
        await self._commit("update report")
        return report

    async def delete_report(self, report_id: UUID, user_id: UUID) -> None:
        report = await self._get_owned_report(report_id, user_id)
        await self.db.delete(report)
        await self._commit("delete report")

    async def generate_report(self, report_id: UUID, user_id: UUID) -> SavedReport:
        """Compute the report and keep the result as its latest snapshot."""
        report = await self.get_report(report_id, user_id)
        filters = ReportFilters.model_validate(report.filters or {})
        if filters.date_range:
            date_range = resolve_date_range(
                start_date=filters.date_range.start_date, end_date=filters.date_range.end_date
            )
        else:
            date_range = resolve_date_range()

        if report.report_type == "team_productivity":
            if not report.team_id:
                raise BadRequestError("A team productivity report needs a team")
            data = await self.team_productivity(report.team_id, user_id, date_range)
        else:
            tasks = apply_report_filters(
                await self._visible_tasks([user_id], date_range), filters
            )
            data = await self._report_data(report.report_type, user_id, tasks, filters, date_range)

        report.last_generated = {"data": data, "date_range": date_range.model_dump(mode="json")}
        report.last_generated_at = utcnow()
        await self._commit("store generated report")
        logger.info(f"📊 Report {report.id} generated for user {user_id}")
        return report

    # Private helper methods

    async def _report_data(
        self,
        report_type: str,
        user_id: UUID,
        tasks: List[Task],
        filters: ReportFilters,
        date_range: DateRange,
    ) -> Dict[str, Any]:
        if report_type == "task_completion":
            return completion_stats(tasks).model_dump()
        if report_type == "category_analysis":
            return _dump_groups(group_stats(tasks, _GROUP_KEYS["category"]))
        if report_type == "priority_analysis":
            return _dump_groups(group_stats(tasks, _GROUP_KEYS["priority"]))
        if report_type == "user_productivity":
            user = (await self.db.execute(select(User).where(User.id == user_id))).scalar_one()
            return (await self._productivity(user, tasks, date_range)).model_dump(mode="json")
        if report_type == "time_tracking":
            return {
                "total_estimated_minutes": sum(t.estimated_time or 0 for t in tasks),
                "total_actual_minutes": sum(t.actual_time or 0 for t in tasks),
                "tracked_tasks": sum(1 for t in tasks if t.actual_time),
                "by_category": _time_by(tasks, _GROUP_KEYS["category"]),
            }
        # custom
        data = {"completion": completion_stats(tasks).model_dump()}
        if filters.group_by:
            data["groups"] = _dump_groups(group_stats(tasks, _GROUP_KEYS[filters.group_by]))
        return data

    async def _visible_tasks(self, user_ids: List[UUID], date_range: DateRange) -> List[Task]:
        query = (
            select(Task)
            .where(
                Task.created_at >= date_range.start_date,
                Task.created_at <= date_range.end_date,
                or_(
                    Task.created_by.in_(user_ids),
                    Task.assignee_links.any(TaskAssignee.user_id.in_(user_ids)),
                ),
            )
            .order_by(Task.created_at.asc())
        )
        return list((await self.db.execute(query)).scalars().all())

    async def _productivity(
        self, user: User, tasks: List[Task], date_range: DateRange
    ) -> UserProductivityStats:
        assigned = [t for t in tasks if user.id in t.assigned_to]
        stats = completion_stats(tasks)
        comments = await self.db.execute(
            select(func.count(Comment.id)).where(
                Comment.user_id == user.id,
                Comment.created_at >= date_range.start_date,
                Comment.created_at <= date_range.end_date,
            )
        )
        return UserProductivityStats(
            user_id=user.id,
            name=user.name,
            tasks_created=sum(1 for t in tasks if t.created_by == user.id),
            tasks_assigned=len(assigned),
            tasks_completed=stats.completed_tasks,
            completion_rate=stats.completion_rate,
            average_completion_time=stats.average_completion_time,
            on_time_rate=stats.on_time_rate,
            comments_written=comments.scalar() or 0,
        )

    async def _upcoming(self, user_id: UUID) -> List[Task]:
        now = utcnow()
        result = await self.db.execute(
            select(Task)
            .where(
                or_(Task.created_by == user_id, Task.assignee_links.any(TaskAssignee.user_id == user_id)),
                Task.completed.is_(False),
                Task.due_date >= now,
                Task.due_date <= now + timedelta(days=UPCOMING_DAYS),
            )
            .order_by(Task.due_date.asc())
            .limit(DASHBOARD_ITEMS)
        )
        return list(result.scalars().all())

    async def _recent_activity(self, user_id: UUID) -> List[Activity]:
        result = await self.db.execute(
            select(Activity)
            .where(or_(Activity.user_id == user_id, Activity.target_user_id == user_id))
            .order_by(Activity.created_at.desc())
            .limit(DASHBOARD_ITEMS)
        )
        return list(result.scalars().all())

    async def _team_ids(self, user_id: UUID) -> List[UUID]:
        result = await self.db.execute(
            select(Team.id).where(
                Team.is_active.is_(True),
                or_(Team.owner_id == user_id, Team.members.any(TeamMember.user_id == user_id)),
            )
        )
        return list(result.scalars().all())

    async def _get_member_team(self, team_id: UUID, user_id: UUID) -> Team:
        team = (
            await self.db.execute(select(Team).where(Team.id == team_id, Team.is_active.is_(True)))
        ).scalar_one_or_none()
        if not team:
            raise TeamNotFoundError(f"No team found with id {team_id}")
        if not team.is_member(user_id):
            raise TeamPermissionError("Not authorized to create reports for this team")
        return team

    async def _get_report(self, report_id: UUID) -> SavedReport:
        result = await self.db.execute(select(SavedReport).where(SavedReport.id == report_id))
        report = result.scalar_one_or_none()
        if not report:
            raise NotFoundError("Report not found")
        return report

    async def _get_owned_report(self, report_id: UUID, user_id: UUID) -> SavedReport:
        report = await self._get_report(report_id)
        if report.owner_id != user_id:
            raise ForbiddenError("Only the owner can modify this report")
        return report

    async def _commit(self, action: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise BadRequestError(f"Failed to {action}: {str(e)}")


def _dump_groups(groups: Dict[str, GroupStats]) -> Dict[str, Any]:
    return {name: stats.model_dump() for name, stats in groups.items()}


def _time_by(tasks: List[Task], key) -> Dict[str, Dict[str, int]]:
    totals: Dict[str, Dict[str, int]] = defaultdict(lambda: {"estimated": 0, "actual": 0})
    for task in tasks:
        bucket = totals[str(key(task))]
        bucket["estimated"] += task.estimated_time or 0
        bucket["actual"] += task.actual_time or 0
    return dict(totals)
