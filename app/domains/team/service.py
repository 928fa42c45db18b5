"""Team service: membership, roles and invitations."""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.exceptions.base import BadRequestError, NotFoundError
from app.exceptions.team import (
    TeamMemberNotFoundError,
    TeamNotFoundError,
    TeamOwnerOperationError,
    TeamPermissionError,
)
from app.realtime.events import EventBus, team_room, user_room
from app.schemas.team import (
    TeamCreate,
    TeamInvitationResponse,
    TeamMemberResponse,
    TeamResponse,
    TeamUpdate,
)
from app.schemas.user import UserSummary
from app.services.email_service import email_service, queue_email
from app.services.notification_service import NotificationService
from app.shared.invitations import claim_invitation, find_pending_invitation, upsert_invitation
from app.shared.permissions import has_team_permission, team_permissions_for_role
from models import Team, TeamInvitation, TeamMember, User

logger = logging.getLogger(__name__)


def serialize_team(team: Team) -> Dict[str, Any]:
    """Team with its owner listed first as a synthesized ``owner`` member."""
    owner_entry = TeamMemberResponse(
        user=UserSummary.model_validate(team.owner),
        role="owner",
        permissions=team_permissions_for_role("owner"),
        joined_at=team.created_at,
        invited_by=None,
    )
    members = [owner_entry] + [TeamMemberResponse.model_validate(m) for m in team.members]
    return TeamResponse(
        id=team.id,
        created_at=team.created_at,
        updated_at=team.updated_at,
        name=team.name,
        description=team.description,
        avatar=team.avatar,
        owner_id=team.owner_id,
        is_active=team.is_active,
        members=members,
    ).model_dump(mode="json")


class TeamService:
    """Service class for team business logic."""

    def __init__(self, db: AsyncSession, events: Optional[EventBus] = None):
        self.db = db
        self.events = events
        self.notifications = NotificationService(db, events)

    async def create_team(self, data: TeamCreate, user_id: UUID) -> Team:
        team = Team(
            name=data.name,
            description=data.description,
            owner_id=user_id,
            is_active=True,
        )
        if data.avatar:
            team.avatar = data.avatar

        try:
            self.db.add(team)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise BadRequestError(f"Failed to create team: {str(e)}")

        team_id = team.id
        logger.info(f"👥 Team {team_id} created by user {user_id}")
        await self.notifications.record(
            "team_created", user_id, team=team, metadata=_team_meta(team)
        )
        return await self._reload(team_id)

    async def get_my_teams(self, user_id: UUID) -> List[Team]:
        """Active teams the user owns or belongs to."""
        result = await self.db.execute(
            select(Team)
            .where(
                Team.is_active.is_(True),
                or_(Team.owner_id == user_id, Team.members.any(TeamMember.user_id == user_id)),
            )
            .order_by(Team.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_team(self, team_id: UUID, user_id: UUID) -> Team:
        team = await self._get_team(team_id)
        if not team.is_member(user_id):
            raise TeamPermissionError("Not authorized to access this team")
        return team

    async def update_team(self, team_id: UUID, data: TeamUpdate, user_id: UUID) -> Team:
        team = await self._get_managed_team(team_id, user_id)
        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(team, field, value)
        await self._commit("update team")

        await self.notifications.record(
            "team_updated", user_id, team=team, metadata=_team_meta(team)
        )
        team = await self._reload(team_id)
        await self._emit("team:updated", team, user_id)
        return team

    async def delete_team(self, team_id: UUID, user_id: UUID) -> None:
        """Soft delete; only the owner may do it."""
        team = await self._get_team(team_id)
        if team.owner_id != user_id:
            raise TeamPermissionError("Only the team owner can delete the team")

        team.is_active = False
        await self._commit("delete team")
        logger.info(f"Team {team_id} deactivated by owner {user_id}")

        await self.notifications.record(
            "team_deleted", user_id, team=team, metadata=_team_meta(team)
        )
        await self._emit("team:updated", team, user_id, data={"id": str(team_id), "is_active": False})

    # ----- Members ----------------------------------------------------------

    async def add_member(self, team_id: UUID, member_id: UUID, role: str, user_id: UUID) -> Team:
        """Add a user with ``role``, or re-set the role of an existing member."""
        team = await self._get_managed_team(team_id, user_id)
        await self._get_user(member_id)
        if member_id == team.owner_id:
            raise TeamOwnerOperationError("The team owner is already part of the team")

        member = team.get_member(member_id)
        activity_type = "team_member_added"
        if member is not None:
            member.role = role
            member.permissions = team_permissions_for_role(role)
            activity_type = "team_member_role_changed"
        else:
            team.members.append(
                TeamMember(
                    user_id=member_id,
                    role=role,
                    permissions=team_permissions_for_role(role),
                    invited_by=user_id,
                )
            )
        await self._commit("add team member")

        await self.notifications.record(
            activity_type,
            user_id,
            team=team,
            target_user_id=member_id,
            metadata={**_team_meta(team), "role": role},
        )
        team = await self._reload(team_id)
        if activity_type == "team_member_added":
            await self._emit("team:member:added", team, user_id, extra_users=[member_id])
        else:
            await self._emit("team:updated", team, user_id)
        return team

    async def remove_member(self, team_id: UUID, member_id: UUID, user_id: UUID) -> Team:
        team = await self._get_managed_team(team_id, user_id)
        if member_id == team.owner_id:
            raise TeamOwnerOperationError("Cannot remove the team owner")
        member = team.get_member(member_id)
        if member is None:
            raise TeamMemberNotFoundError()

        team.members.remove(member)
        await self._commit("remove team member")

        await self.notifications.record(
            "team_member_removed",
            user_id,
            team=team,
            target_user_id=member_id,
            metadata=_team_meta(team),
        )
        team = await self._reload(team_id)
        await self._emit("team:member:removed", team, user_id, extra_users=[member_id])
        return team

    async def update_member_role(
        self, team_id: UUID, member_id: UUID, role: str, user_id: UUID
    ) -> Team:
        team = await self._get_managed_team(team_id, user_id)
        if member_id == team.owner_id:
            raise TeamOwnerOperationError("Cannot change the role of the team owner")
        member = team.get_member(member_id)
        if member is None:
            raise TeamMemberNotFoundError()

        previous_role = member.role
        member.role = role
        member.permissions = team_permissions_for_role(role)
        await self._commit("change member role")

        await self.notifications.record(
            "team_member_role_changed",
            user_id,
            team=team,
            target_user_id=member_id,
            metadata={**_team_meta(team), "previous_role": previous_role, "role": role},
        )
        team = await self._reload(team_id)
        await self._emit("team:updated", team, user_id)
        return team

    # ----- Invitations ------------------------------------------------------

    async def invite(self, team_id: UUID, email: str, role: str, user: User) -> TeamInvitation:
        """Invite an email address; a pending invite to the same address is refreshed."""
        team = await self._get_managed_team(team_id, user.id)
        email = email.lower()

        invitee = (
            await self.db.execute(select(User).where(User.email == email))
        ).scalar_one_or_none()
        if invitee is not None and team.is_member(invitee.id):
            raise BadRequestError("User is already a member of this team")

        invitation = await upsert_invitation(
            self.db, team.invitations, TeamInvitation, email, user.id, role=role
        )
        await self._commit("invite to team")
        token = invitation.token
        logger.info(f"✉️ Team {team_id} invitation issued for {email}")

        queue_email(
            email, email_service.build_invitation_email(user.name, "team", team.name, token)
        )
        await self.notifications.record(
            "team_invitation_sent",
            user.id,
            team=team,
            target_user_id=invitee.id if invitee else None,
            metadata={**_team_meta(team), "email": email, "role": role},
            extra_recipients=[invitee.id] if invitee else [],
        )
        return invitation

    async def get_invitations(self, team_id: UUID, user_id: UUID) -> List[TeamInvitation]:
        team = await self._get_managed_team(team_id, user_id)
        return sorted(team.invitations, key=lambda i: i.created_at, reverse=True)

    async def accept_invitation(self, token: str, user: User) -> Team:
        """
        Join the team behind ``token``.

        The membership insert and the status change commit together; an
        existing member gets the invited role instead of a second row.
        """
        invitation = await claim_invitation(self.db, TeamInvitation, token)
        team = await self._get_team(invitation.team_id)

        if user.id != team.owner_id:
            member = team.get_member(user.id)
            if member is not None:
                member.role = invitation.role
                member.permissions = team_permissions_for_role(invitation.role)
            else:
                team.members.append(
                    TeamMember(
                        user_id=user.id,
                        role=invitation.role,
                        permissions=team_permissions_for_role(invitation.role),
                        invited_by=invitation.invited_by,
                    )
                )
        invitation.status = "accepted"
        await self._commit("accept invitation")
        logger.info(f"User {user.id} joined team {team.id} by invitation")

        team_id = team.id
        await self.notifications.record(
            "team_invitation_accepted",
            user.id,
            team=team,
            target_user_id=user.id,
            metadata={**_team_meta(team), "role": invitation.role},
        )
        team = await self._reload(team_id)
        await self._emit("team:member:added", team, user.id, extra_users=[user.id])
        return team

    async def decline_invitation(self, token: str, user: User) -> None:
        invitation = await find_pending_invitation(self.db, TeamInvitation, token)
        team = await self._get_team(invitation.team_id)
        invitation.status = "declined"
        await self._commit("decline invitation")

        await self.notifications.record(
            "team_invitation_declined",
            user.id,
            team=team,
            metadata={**_team_meta(team), "email": invitation.email},
        )

    # Private helper methods

    async def _get_team(self, team_id: UUID) -> Team:
        result = await self.db.execute(
            select(Team).where(Team.id == team_id, Team.is_active.is_(True))
        )
        team = result.scalar_one_or_none()
        if not team:
            raise TeamNotFoundError(f"No team found with id {team_id}")
        return team

    async def _get_managed_team(self, team_id: UUID, user_id: UUID) -> Team:
        team = await self.get_team(team_id, user_id)
        if not has_team_permission(team, user_id, "manageTeam"):
            raise TeamPermissionError()
        return team

    async def _get_user(self, user_id: UUID) -> User:
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if not user:
            raise NotFoundError(f"No user found with id {user_id}")
        return user

    async def _reload(self, team_id: UUID) -> Team:
        result = await self.db.execute(
            select(Team).where(Team.id == team_id).execution_options(populate_existing=True)
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
        team: Team,
        user_id: UUID,
        extra_users: List[UUID] = (),
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        if self.events is None:
            return
        await self.events.emit(
            event_type,
            data if data is not None else serialize_team(team),
            rooms=[team_room(team.id)] + [user_room(u) for u in extra_users],
            user_id=user_id,
            team_id=team.id,
        )


def _team_meta(team: Team) -> Dict[str, Any]:
    return {"team_id": str(team.id), "team_name": team.name}


def serialize_invitation(invitation: TeamInvitation) -> Dict[str, Any]:
    return TeamInvitationResponse.model_validate(invitation).model_dump(mode="json")
