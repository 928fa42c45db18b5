"""Capability checks for teams and shared lists.

Team roles expand into a fixed permission bag when the role is assigned; the
bag is then stored on the membership row. Shared-list members carry an explicit
bag of booleans that is independent of any team role. In both aggregates the
owner is identified by ``owner_id`` and holds every capability.
"""

from typing import Any

TEAM_CAPABILITIES = (
    "createTask",
    "updateTask",
    "deleteTask",
    "assignTask",
    "viewAllTasks",
    "manageTeam",
    "viewReports",
)

LIST_CAPABILITIES = ("view", "create", "update", "delete", "share")

_TEAM_ELEVATED_ROLES = ("owner", "admin")


def team_permissions_for_role(role: str) -> dict[str, bool]:
    """Expand a team role into its permission bag."""
    elevated = role in _TEAM_ELEVATED_ROLES
    return {
        "createTask": True,
        "updateTask": True,
        "deleteTask": elevated,
        "assignTask": True,
        "viewAllTasks": True,
        "manageTeam": elevated,
        "viewReports": elevated,
    }


def default_list_permissions() -> dict[str, bool]:
    """Members added without explicit permissions may only view."""
    return {"view": True, "create": False, "update": False, "delete": False, "share": False}


def full_list_permissions() -> dict[str, bool]:
    return {capability: True for capability in LIST_CAPABILITIES}


def normalize_list_permissions(
    permissions: dict[str, Any] | None, base: dict[str, bool] | None = None
) -> dict[str, bool]:
    """Merge a partial permission bag over ``base`` (view-only by default)."""
    merged = dict(base or default_list_permissions())
    for capability, value in (permissions or {}).items():
        if capability in LIST_CAPABILITIES and value is not None:
            merged[capability] = bool(value)
    return merged


def has_team_permission(team, user_id, capability: str) -> bool:
    if team.owner_id == user_id:
        return True
    member = team.get_member(user_id)
    if member is None:
        return False
    return bool((member.permissions or {}).get(capability, False))


def has_list_permission(shared_list, user_id, capability: str) -> bool:
    if shared_list.owner_id == user_id:
        return True
    member = shared_list.get_member(user_id)
    if member is None:
        return False
    return bool((member.permissions or {}).get(capability, False))


def can_view_list(shared_list, user_id) -> bool:
    """Owner, any member, or anyone when the list is public."""
    if shared_list.is_public:
        return True
    return user_id is not None and (
        shared_list.owner_id == user_id or shared_list.get_member(user_id) is not None
    )
