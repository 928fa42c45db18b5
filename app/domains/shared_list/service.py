"""Shared list service."""

import logging
import secrets
import string
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.exceptions.base import BadRequestError, NotFoundError
from app.exceptions.shared_list import (
    SharedListMemberNotFoundError,
    SharedListNotFoundError,
    SharedListNotPublicError,
    SharedListPermissionError,
)
from app.exceptions.task import TaskNotFoundError, TaskPermissionError
from app.exceptions.team import TeamNotFoundError, TeamPermissionError
from app.realtime.events import EventBus, list_room, user_room
from app.schemas.shared_list import (
    ListPermissions,
    SharedListCreate,
    SharedListInvitationResponse,
    SharedListPublicResponse,
    SharedListResponse,
    SharedListUpdate,
)
from app.services.email_service import email_service, queue_email
from app.services.notification_service import NotificationService
from app.shared.invitations import claim_invitation, find_pending_invitation, upsert_invitation
from app.shared.permissions import (
    can_view_list,
    has_list_permission,
    has_team_permission,
    normalize_list_permissions,
)
from models import (
    SharedList,
    SharedListInvitation,
    SharedListMember,
    SharedListTask,
    Task,
    Team,
    User,
)

logger = logging.getLogger(__name__)

ACCESS_CODE_LENGTH = 8
ACCESS_CODE_ALPHABET = string.ascii_uppercase + string.digits
PUBLIC_LIST_LIMIT = 50


def generate_access_code() -> str:
    return "".join(secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(ACCESS_CODE_LENGTH))


def serialize_list(shared_list: SharedList) -> Dict[str, Any]:
    return SharedListResponse.model_validate(shared_list).model_dump(mode="json")


def serialize_public_list(shared_list: SharedList) -> Dict[str, Any]:
    return SharedListPublicResponse.model_validate(shared_list).model_dump(mode="json")


def serialize_list_invitation(invitation: SharedListInvitation) -> Dict[str, Any]:
    return SharedListInvitationResponse.model_validate(invitation).model_dump(mode="json")


class SharedListService:
    """Service class for shared list business logic."""

    def __init__(self, db: AsyncSession, events: Optional[EventBus] = None):
        self.db = db
        self.events = events
        self.notifications = NotificationService(db, events)

    async def create_list(self, data: SharedListCreate, user_id: UUID) -> SharedList:
        """
        Create a list owned by the caller.

        A ``team_id`` makes it a team list and requires ``manageTeam`` on that
        team. Initial tasks must be visible to the caller.
        """
        if data.team_id:
            team = (
                await self.db.execute(
                    select(Team).where(Team.id == data.team_id, Team.is_active.is_(True))
                )
            ).scalar_one_or_none()
            if not team:
                raise TeamNotFoundError()
            if not has_team_permission(team, user_id, "manageTeam"):
                raise TeamPermissionError("Not authorized to create lists for this team")

        task_ids = list(dict.fromkeys(data.tasks))
        for task_id in task_ids:
            task = await self._get_task(task_id)
            if not task.is_participant(user_id):
                raise TaskPermissionError(f"Not authorized to share task {task_id}")

        shared_list = SharedList(
            name=data.name,
            description=data.description,
            owner_id=user_id,
            team_id=data.team_id,
            is_team_list=data.team_id is not None,
            is_public=data.is_public,
        )
        if data.is_public:
            shared_list.public_access_code = await self._unique_access_code()
        shared_list.task_links = [
            SharedListTask(task_id=task_id, added_by=user_id) for task_id in task_ids
        ]

        try:
            self.db.add(shared_list)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise BadRequestError(f"Failed to create shared list: {str(e)}")

        list_id = shared_list.id
        logger.info(f"📋 Shared list {list_id} created by user {user_id}")
        await self.notifications.record(
            "shared_list_created", user_id, shared_list=shared_list, metadata=_list_meta(shared_list)
        )
        return await self._reload(list_id)

    async def get_my_lists(self, user_id: UUID) -> List[SharedList]:
        result = await self.db.execute(
            select(SharedList)
            .where(
                or_(
                    SharedList.owner_id == user_id,
                    SharedList.members.any(SharedListMember.user_id == user_id),
                )
            )
            .order_by(SharedList.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_public_lists(self) -> List[SharedList]:
        result = await self.db.execute(
            select(SharedList)
            .where(SharedList.is_public.is_(True))
            .order_by(SharedList.created_at.desc())
            .limit(PUBLIC_LIST_LIMIT)
        )
        return list(result.scalars().all())

    async def get_by_access_code(self, code: str) -> SharedList:
        result = await self.db.execute(
            select(SharedList).where(SharedList.public_access_code == code.upper())
        )
        shared_list = result.scalar_one_or_none()
        if not shared_list:
            raise SharedListNotFoundError("No list found with that access code")
        if not shared_list.is_public:
            raise SharedListNotPublicError()
        return shared_list

    async def get_list(self, list_id: UUID, user_id: UUID) -> SharedList:
        shared_list = await self._get_list(list_id)
        if not can_view_list(shared_list, user_id):
            raise SharedListPermissionError("Not authorized to view this list")
        return shared_list

    async def update_list(self, list_id: UUID, data: SharedListUpdate, user_id: UUID) -> SharedList:
        """Rename or describe (``update``); toggling visibility is owner only."""
        shared_list = await self._get_list_with(list_id, user_id, "update")
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        if not update_data:
            raise BadRequestError("No fields to update")

        if "is_public" in update_data and shared_list.owner_id != user_id:
            raise SharedListPermissionError("Only the list owner can change its visibility")

        for field, value in update_data.items():
            setattr(shared_list, field, value)
        # The code survives unpublishing so old links report "no longer public"
        if shared_list.is_public and not shared_list.public_access_code:
            shared_list.public_access_code = await self._unique_access_code()
        await self._commit("update shared list")

        await self.notifications.record(
            "shared_list_updated", user_id, shared_list=shared_list, metadata=_list_meta(shared_list)
        )
        shared_list = await self._reload(list_id)
        await self._emit("list:updated", shared_list, user_id)
        return shared_list

    async def delete_list(self, list_id: UUID, user_id: UUID) -> None:
        shared_list = await self._get_list(list_id)
        if shared_list.owner_id != user_id:
            raise SharedListPermissionError("Only the list owner can delete the list")

        member_ids = shared_list.member_ids
        metadata = {**_list_meta(shared_list), "shared_list_id": str(list_id)}
        await self.db.delete(shared_list)
        await self._commit("delete shared list")
        logger.info(f"🗑️ Shared list {list_id} deleted by owner {user_id}")

        await self.notifications.record(
            "shared_list_deleted", user_id, metadata=metadata, extra_recipients=member_ids
        )
        if self.events is not None:
            await self.events.emit(
                "list:updated",
                {"id": str(list_id), "deleted": True},
                rooms=[list_room(list_id)],
                user_id=user_id,
            )

    # ----- Members ----------------------------------------------------------

    async def add_member(
        self,
        list_id: UUID,
        member_id: UUID,
        permissions: Optional[ListPermissions],
        user_id: UUID,
    ) -> SharedList:
        shared_list = await self._get_list_with(list_id, user_id, "share")
        if not (await self.db.execute(select(User.id).where(User.id == member_id))).scalar():
            raise NotFoundError(f"No user found with id {member_id}")
        if member_id == shared_list.owner_id:
            raise BadRequestError("The list owner is already part of the list")

        bag = permissions.model_dump(exclude_none=True) if permissions else None
        member = shared_list.get_member(member_id)
        activity_type = "shared_list_member_added"
        if member is not None:
            member.permissions = normalize_list_permissions(bag, base=member.permissions)
            activity_type = "shared_list_permissions_changed"
        else:
            shared_list.members.append(
                SharedListMember(
                    user_id=member_id,
                    permissions=normalize_list_permissions(bag),
                    added_by=user_id,
                )
            )
        await self._commit("add list member")

        await self.notifications.record(
            activity_type,
            user_id,
            shared_list=shared_list,
            target_user_id=member_id,
            metadata=_list_meta(shared_list),
        )
        shared_list = await self._reload(list_id)
        await self._emit("list:shared", shared_list, user_id, extra_users=[member_id])
        return shared_list

    async def remove_member(self, list_id: UUID, member_id: UUID, user_id: UUID) -> SharedList:
        shared_list = await self._get_owned_list(list_id, user_id)
        member = shared_list.get_member(member_id)
        if member is None:
            raise SharedListMemberNotFoundError()

        shared_list.members.remove(member)
        await self._commit("remove list member")

        await self.notifications.record(
            "shared_list_member_removed",
            user_id,
            shared_list=shared_list,
            target_user_id=member_id,
            metadata=_list_meta(shared_list),
        )
        shared_list = await self._reload(list_id)
        await self._emit("list:updated", shared_list, user_id, extra_users=[member_id])
        return shared_list

    async def update_member_permissions(
        self, list_id: UUID, member_id: UUID, permissions: ListPermissions, user_id: UUID
    ) -> SharedList:
        """Merge the sent capabilities into the member's bag. Owner only."""
        shared_list = await self._get_owned_list(list_id, user_id)
        member = shared_list.get_member(member_id)
        if member is None:
            raise SharedListMemberNotFoundError()

        member.permissions = normalize_list_permissions(
            permissions.model_dump(exclude_none=True), base=member.permissions
        )
        await self._commit("update member permissions")

        await self.notifications.record(
            "shared_list_permissions_changed",
            user_id,
            shared_list=shared_list,
            target_user_id=member_id,
            metadata={**_list_meta(shared_list), "permissions": member.permissions},
        )
        shared_list = await self._reload(list_id)
        await self._emit("list:updated", shared_list, user_id, extra_users=[member_id])
        return shared_list

    # ----- Invitations ------------------------------------------------------

    async def invite(
        self, list_id: UUID, email: str, permissions: Optional[ListPermissions], user: User
    ) -> SharedListInvitation:
        shared_list = await self._get_list_with(list_id, user.id, "share")
        email = email.lower()

        invitee_id = (
            await self.db.execute(select(User.id).where(User.email == email))
        ).scalar_one_or_none()
        if invitee_id is not None and (
            invitee_id == shared_list.owner_id or shared_list.get_member(invitee_id)
        ):
            raise BadRequestError("User is already a member of this list")

        bag = normalize_list_permissions(
            permissions.model_dump(exclude_none=True) if permissions else None
        )
        invitation = await upsert_invitation(
            self.db, shared_list.invitations, SharedListInvitation, email, user.id, permissions=bag
        )
        await self._commit("invite to shared list")
        logger.info(f"✉️ Shared list {list_id} invitation issued for {email}")

        queue_email(
            email,
            email_service.build_invitation_email(user.name, "list", shared_list.name, invitation.token),
        )
        return invitation

    async def accept_invitation(self, token: str, user: User) -> SharedList:
        invitation = await claim_invitation(self.db, SharedListInvitation, token)
        shared_list = await self._get_list(invitation.list_id)

        if user.id != shared_list.owner_id:
            member = shared_list.get_member(user.id)
            if member is not None:
                member.permissions = normalize_list_permissions(invitation.permissions)
            else:
                shared_list.members.append(
                    SharedListMember(
                        user_id=user.id,
                        permissions=normalize_list_permissions(invitation.permissions),
                        added_by=invitation.invited_by,
                    )
                )
        invitation.status = "accepted"
        await self._commit("accept invitation")

        list_id = shared_list.id
        await self.notifications.record(
            "shared_list_member_added",
            user.id,
            shared_list=shared_list,
            target_user_id=user.id,
            metadata=_list_meta(shared_list),
            extra_recipients=[shared_list.owner_id],
        )
        shared_list = await self._reload(list_id)
        await self._emit("list:shared", shared_list, user.id, extra_users=[user.id])
        return shared_list

    async def decline_invitation(self, token: str) -> None:
        invitation = await find_pending_invitation(self.db, SharedListInvitation, token)
        invitation.status = "declined"
        await self._commit("decline invitation")

    # ----- Tasks ------------------------------------------------------------

    async def add_task(self, list_id: UUID, task_id: UUID, user_id: UUID) -> SharedList:
        """Link a task the caller can see, or one owned by the list owner."""
        shared_list = await self._get_list_with(list_id, user_id, "create")
        task = await self._get_task(task_id)
        if not task.is_participant(user_id) and task.created_by != shared_list.owner_id:
            raise TaskPermissionError("Not authorized to share this task")
        if task_id in shared_list.tasks:
            raise BadRequestError("Task is already in this list")

        shared_list.task_links.append(SharedListTask(task_id=task_id, added_by=user_id))
        await self._commit("add task to list")

        await self.notifications.record(
            "shared_list_task_added",
            user_id,
            shared_list=shared_list,
            metadata={**_list_meta(shared_list), "task_id": str(task_id), "task_name": task.name},
        )
        shared_list = await self._reload(list_id)
        await self._emit("list:updated", shared_list, user_id)
        return shared_list

    async def remove_task(self, list_id: UUID, task_id: UUID, user_id: UUID) -> SharedList:
        shared_list = await self._get_list_with(list_id, user_id, "delete")
        link = next((lt for lt in shared_list.task_links if lt.task_id == task_id), None)
        if link is None:
            raise NotFoundError("Task is not in this list")

        shared_list.task_links.remove(link)
        await self._commit("remove task from list")

        await self.notifications.record(
            "shared_list_task_removed",
            user_id,
            shared_list=shared_list,
            metadata={**_list_meta(shared_list), "task_id": str(task_id)},
        )
        shared_list = await self._reload(list_id)
        await self._emit("list:updated", shared_list, user_id)
        return shared_list

    # Private helper methods

    async def _get_list(self, list_id: UUID) -> SharedList:
        result = await self.db.execute(select(SharedList).where(SharedList.id == list_id))
        shared_list = result.scalar_one_or_none()
        if not shared_list:
            raise SharedListNotFoundError(f"No shared list found with id {list_id}")
        return shared_list

    async def _get_list_with(self, list_id: UUID, user_id: UUID, capability: str) -> SharedList:
        shared_list = await self._get_list(list_id)
        if not has_list_permission(shared_list, user_id, capability):
            raise SharedListPermissionError()
        return shared_list

    async def _get_owned_list(self, list_id: UUID, user_id: UUID) -> SharedList:
        shared_list = await self._get_list(list_id)
        if shared_list.owner_id != user_id:
            raise SharedListPermissionError("Only the list owner can manage members")
        return shared_list

    async def _get_task(self, task_id: UUID) -> Task:
        result = await self.db.execute(select(Task).where(Task.id == task_id))
        task = result.scalar_one_or_none()
        if not task:
            raise TaskNotFoundError(f"No task found with id {task_id}")
        return task

    async def _unique_access_code(self) -> str:
        while True:
            code = generate_access_code()
            existing = await self.db.execute(
                select(SharedList.id).where(SharedList.public_access_code == code)
            )
            if existing.scalar_one_or_none() is None:
                return code

    async def _reload(self, list_id: UUID) -> SharedList:
        result = await self.db.execute(
            select(SharedList)
            .where(SharedList.id == list_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def _commit(self, action: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise BadRequestError(f"Failed to {action}: {str(e)}")

    async def _emit(
        self,
        event_type: str,
        shared_list: SharedList,
        user_id: UUID,
        extra_users: List[UUID] = (),
    ) -> None:
        if self.events is None:
            return
        await self.events.emit(
            event_type,
            serialize_list(shared_list),
            rooms=[list_room(shared_list.id)] + [user_room(u) for u in extra_users],
            user_id=user_id,
            team_id=shared_list.team_id,
        )


def _list_meta(shared_list: SharedList) -> Dict[str, Any]:
    return {"list_name": shared_list.name}
