"""Unit tests for team and shared-list capability checks."""

import uuid
from types import SimpleNamespace

import pytest

from app.shared.permissions import (
    LIST_CAPABILITIES,
    TEAM_CAPABILITIES,
    can_view_list,
    default_list_permissions,
    full_list_permissions,
    has_list_permission,
    has_team_permission,
    normalize_list_permissions,
    team_permissions_for_role,
)


def _aggregate(owner_id, members=(), is_public=False):
    """Stand-in exposing the attributes the checks read."""
    by_user = {member.user_id: member for member in members}
    return SimpleNamespace(
        owner_id=owner_id,
        is_public=is_public,
        get_member=lambda user_id: by_user.get(user_id),
    )


class TestTeamPermissions:
    @pytest.mark.parametrize("role", ["owner", "admin"])
    def test_elevated_roles_get_everything(self, role):
        bag = team_permissions_for_role(role)

        assert set(bag) == set(TEAM_CAPABILITIES)
        assert all(bag.values())

    @pytest.mark.parametrize("role", ["member", "guest"])
    def test_regular_roles_cannot_manage(self, role):
        bag = team_permissions_for_role(role)

        assert bag["manageTeam"] is False
        assert bag["viewReports"] is False
        assert bag["deleteTask"] is False
        assert bag["createTask"] and bag["updateTask"] and bag["assignTask"] and bag["viewAllTasks"]

    def test_owner_is_superset_without_membership_row(self):
        owner = uuid.uuid4()
        team = _aggregate(owner)

        for capability in TEAM_CAPABILITIES:
            assert has_team_permission(team, owner, capability)

    def test_member_uses_stored_bag(self):
        owner, member_id = uuid.uuid4(), uuid.uuid4()
        member = SimpleNamespace(user_id=member_id, permissions=team_permissions_for_role("member"))
        team = _aggregate(owner, [member])

        assert has_team_permission(team, member_id, "createTask")
        assert not has_team_permission(team, member_id, "manageTeam")

    def test_stranger_has_nothing(self):
        team = _aggregate(uuid.uuid4())

        assert not has_team_permission(team, uuid.uuid4(), "createTask")


class TestListPermissions:
    def test_default_is_view_only(self):
        bag = default_list_permissions()

        assert bag == {"view": True, "create": False, "update": False, "delete": False, "share": False}

    def test_full_bag_covers_every_capability(self):
        assert set(full_list_permissions()) == set(LIST_CAPABILITIES)
        assert all(full_list_permissions().values())

    def test_normalize_merges_partial_bag(self):
        merged = normalize_list_permissions({"create": True, "share": None, "bogus": True})

        assert merged["view"] is True
        assert merged["create"] is True
        assert merged["share"] is False
        assert "bogus" not in merged

    def test_normalize_over_existing_bag(self):
        current = {"view": True, "create": True, "update": False, "delete": False, "share": False}

        merged = normalize_list_permissions({"create": False, "update": True}, base=current)

        assert merged["create"] is False
        assert merged["update"] is True

    def test_member_permission_lookup(self):
        owner, member_id = uuid.uuid4(), uuid.uuid4()
        member = SimpleNamespace(user_id=member_id, permissions={"view": True, "create": False})
        shared_list = _aggregate(owner, [member])

        assert has_list_permission(shared_list, owner, "share")
        assert has_list_permission(shared_list, member_id, "view")
        assert not has_list_permission(shared_list, member_id, "create")
        assert not has_list_permission(shared_list, uuid.uuid4(), "view")

    def test_public_list_is_visible_to_anyone(self):
        shared_list = _aggregate(uuid.uuid4(), is_public=True)

        assert can_view_list(shared_list, None)
        assert can_view_list(shared_list, uuid.uuid4())

    def test_private_list_needs_membership(self):
        owner, member_id = uuid.uuid4(), uuid.uuid4()
        member = SimpleNamespace(user_id=member_id, permissions=default_list_permissions())
        shared_list = _aggregate(owner, [member])

        assert can_view_list(shared_list, owner)
        assert can_view_list(shared_list, member_id)
        assert not can_view_list(shared_list, uuid.uuid4())
        assert not can_view_list(shared_list, None)
