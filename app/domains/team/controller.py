"""Team API controller with FastAPI endpoints."""

from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, get_db, get_event_bus, validate_token
from app.domains.team.service import TeamService, serialize_invitation, serialize_team
from app.realtime.events import EventBus
from app.schemas.base import ResponseSchema
from app.schemas.team import (
    InvitationToken,
    TeamCreate,
    TeamInvite,
    TeamMemberAdd,
    TeamMemberRoleUpdate,
    TeamUpdate,
)
from models.user import User

router = APIRouter(
    prefix="/teams",
    tags=["teams"],
    dependencies=[Depends(validate_token)],
)


def get_team_service(
    db: AsyncSession = Depends(get_db), events: EventBus = Depends(get_event_bus)
) -> TeamService:
    return TeamService(db, events=events)


@router.post("/", response_model=ResponseSchema, status_code=201)
async def create_team(
    team_data: TeamCreate,
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    """Create a team owned by the current user."""
    team = await service.create_team(team_data, current_user.id)
    return ResponseSchema(
        status="success", message="Team created successfully", data=serialize_team(team)
    )


@router.get("/", response_model=ResponseSchema)
async def get_my_teams(
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    teams = await service.get_my_teams(current_user.id)
    return ResponseSchema(
        status="success",
        message="Teams retrieved successfully",
        data={"teams": [serialize_team(t) for t in teams], "count": len(teams)},
    )


@router.post("/accept-invitation", response_model=ResponseSchema)
async def accept_invitation(
    invitation: InvitationToken,
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    team = await service.accept_invitation(invitation.token, current_user)
    return ResponseSchema(
        status="success", message="Invitation accepted successfully", data=serialize_team(team)
    )


@router.post("/decline-invitation", response_model=ResponseSchema)
async def decline_invitation(
    invitation: InvitationToken,
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    await service.decline_invitation(invitation.token, current_user)
    return ResponseSchema(status="success", message="Invitation declined", data=None)


@router.get("/{team_id}", response_model=ResponseSchema)
async def get_team(
    team_id: UUID = Path(..., description="Team ID"),
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    team = await service.get_team(team_id, current_user.id)
    return ResponseSchema(
        status="success", message="Team retrieved successfully", data=serialize_team(team)
    )


@router.patch("/{team_id}", response_model=ResponseSchema)
async def update_team(
    team_id: UUID = Path(..., description="Team ID"),
    team_data: TeamUpdate = Body(...),
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    team = await service.update_team(team_id, team_data, current_user.id)
    return ResponseSchema(
        status="success", message="Team updated successfully", data=serialize_team(team)
    )


@router.delete("/{team_id}", response_model=ResponseSchema)
async def delete_team(
    team_id: UUID = Path(..., description="Team ID"),
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    """Deactivate a team. Only the owner may do this."""
    await service.delete_team(team_id, current_user.id)
    return ResponseSchema(status="success", message="Team deleted successfully", data=None)


@router.post("/{team_id}/members", response_model=ResponseSchema)
async def add_member(
    team_id: UUID = Path(..., description="Team ID"),
    member_data: TeamMemberAdd = Body(...),
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    team = await service.add_member(team_id, member_data.user_id, member_data.role, current_user.id)
    return ResponseSchema(
        status="success", message="Member added successfully", data=serialize_team(team)
    )


@router.delete("/{team_id}/members/{user_id}", response_model=ResponseSchema)
async def remove_member(
    team_id: UUID = Path(..., description="Team ID"),
    user_id: UUID = Path(..., description="Member user ID"),
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    team = await service.remove_member(team_id, user_id, current_user.id)
    return ResponseSchema(
        status="success", message="Member removed successfully", data=serialize_team(team)
    )


@router.patch("/{team_id}/members/{user_id}", response_model=ResponseSchema)
async def update_member_role(
    team_id: UUID = Path(..., description="Team ID"),
    user_id: UUID = Path(..., description="Member user ID"),
    role_data: TeamMemberRoleUpdate = Body(...),
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    team = await service.update_member_role(team_id, user_id, role_data.role, current_user.id)
    return ResponseSchema(
        status="success", message="Member role updated successfully", data=serialize_team(team)
    )


@router.post("/{team_id}/invite", response_model=ResponseSchema, status_code=201)
async def invite(
    team_id: UUID = Path(..., description="Team ID"),
    invite_data: TeamInvite = Body(...),
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    """Email an invitation; the token is only delivered by email."""
    invitation = await service.invite(team_id, invite_data.email, invite_data.role, current_user)
    return ResponseSchema(
        status="success",
        message="Invitation sent successfully",
        data=serialize_invitation(invitation),
    )


@router.get("/{team_id}/invitations", response_model=ResponseSchema)
async def get_invitations(
    team_id: UUID = Path(..., description="Team ID"),
    current_user: User = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    invitations = await service.get_invitations(team_id, current_user.id)
    return ResponseSchema(
        status="success",
        message="Invitations retrieved successfully",
        data={"invitations": [serialize_invitation(i) for i in invitations]},
    )
