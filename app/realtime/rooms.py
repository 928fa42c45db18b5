"""Room naming and access checks for the realtime channel."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.shared.permissions import can_view_list
from models import SharedList, Task, Team

ROOM_KINDS = ("task", "team", "list", "user")


def parse_room(room: str) -> tuple[str, UUID] | None:
    """Split ``kind:<uuid>``; anything else is not a room."""
    kind, _, raw_id = (room or "").partition(":")
    if kind not in ROOM_KINDS:
        return None
    try:
        return kind, UUID(raw_id)
    except ValueError:
        return None


async def authorize_room(db: AsyncSession, user_id: UUID, room: str) -> bool:
    """Whether ``user_id`` may listen to ``room`` under the REST access rules."""
    parsed = parse_room(room)
    if parsed is None:
        return False
    kind, target_id = parsed

    if kind == "user":
        return target_id == user_id
    if kind == "task":
        task = (await db.execute(select(Task).where(Task.id == target_id))).scalar_one_or_none()
        return task is not None and task.is_participant(user_id)
    if kind == "team":
        team = (
            await db.execute(select(Team).where(Team.id == target_id, Team.is_active.is_(True)))
        ).scalar_one_or_none()
        return team is not None and team.is_member(user_id)
    shared_list = (
        await db.execute(select(SharedList).where(SharedList.id == target_id))
    ).scalar_one_or_none()
    return shared_list is not None and can_view_list(shared_list, user_id)
