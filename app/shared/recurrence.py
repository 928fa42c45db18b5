"""Next-occurrence arithmetic for recurring tasks."""

import calendar
from datetime import datetime, timedelta
from typing import Any, Mapping

from models.base import utcnow


def add_months(value: datetime, months: int) -> datetime:
    """Shift ``value`` by whole months, clamping the day to the target month's length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def advance(base: datetime, frequency: str, interval: int) -> datetime:
    """Add ``interval`` units of ``frequency`` to ``base``; unknown frequencies count days."""
    if frequency == "weekly":
        return base + timedelta(weeks=interval)
    if frequency == "monthly":
        return add_months(base, interval)
    if frequency == "yearly":
        return add_months(base, 12 * interval)
    return base + timedelta(days=interval)


def next_occurrence(
    rule: Mapping[str, Any] | None,
    base_date: datetime | None = None,
    now: datetime | None = None,
) -> datetime | None:
    """
    Compute the due date of the next occurrence of a recurring task.

    Returns ``None`` when the rule is exhausted: its ``count`` is defined and
    has reached zero, its ``end_date`` has passed, or the next date would fall
    after ``end_date``.
    """
    if not rule:
        return None

    now = now or utcnow()
    end_date = _as_datetime(rule.get("end_date"))
    count = rule.get("count")

    if end_date is not None and end_date < now:
        return None
    if count is not None and count <= 0:
        return None

    interval = int(rule.get("interval") or 1)
    candidate = advance(base_date or now, rule.get("frequency"), interval)

    if end_date is not None and candidate > end_date:
        return None
    return candidate


def decremented_rule(rule: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of ``rule`` for the spawned occurrence, with ``count`` reduced by one."""
    copied = dict(rule)
    if copied.get("count") is not None:
        copied["count"] = max(int(copied["count"]) - 1, 0)
    return copied


def _as_datetime(value) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    # JSON columns hand back ISO strings
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.replace(tzinfo=None) - (parsed.utcoffset() or timedelta(0))
    return parsed
