"""Shared list API controller with FastAPI endpoints."""

from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, get_db, get_event_bus, validate_token
from app.domains.shared_list.service import (
    SharedListService,
    serialize_list,
    serialize_list_invitation,
    serialize_public_list,
)
from app.realtime.events import EventBus
from app.schemas.base import ResponseSchema
from app.schemas.shared_list import (
    SharedListCreate,
    SharedListInvite,
    SharedListMemberAdd,
    SharedListPermissionsUpdate,
    SharedListTaskAdd,
    SharedListUpdate,
)
from app.schemas.team import InvitationToken
from models.user import User

# Public listing has no token; every other route authenticates per endpoint.
router = APIRouter(prefix="/shared-lists", tags=["shared lists"])


def get_shared_list_service(
    db: AsyncSession = Depends(get_db), events: EventBus = Depends(get_event_bus)
) -> SharedListService:
    return SharedListService(db, events=events)


@router.get("/public", response_model=ResponseSchema)
async def get_public_lists(service: SharedListService = Depends(get_shared_list_service)):
    """Up to 50 public lists, newest first, without member or invitation data."""
    lists = await service.get_public_lists()
    return ResponseSchema(
        status="success",
        message="Public lists retrieved successfully",
        data={"lists": [serialize_public_list(sl) for sl in lists], "count": len(lists)},
    )


@router.post(
    "/access/{code}", response_model=ResponseSchema, dependencies=[Depends(validate_token)]
)
async def access_by_code(
    code: str = Path(..., description="Public access code"),
    service: SharedListService = Depends(get_shared_list_service),
):
    shared_list = await service.get_by_access_code(code)
    return ResponseSchema(
        status="success",
        message="List retrieved successfully",
        data=serialize_public_list(shared_list),
    )


@router.post("/accept-invitation", response_model=ResponseSchema)
async def accept_invitation(
    invitation: InvitationToken,
    current_user: User = Depends(get_current_user),
    service: SharedListService = Depends(get_shared_list_service),
):
    shared_list = await service.accept_invitation(invitation.token, current_user)
    return ResponseSchema(
        status="success",
        message="Invitation accepted successfully",
        data=serialize_list(shared_list),
    )


@router.post(
    "/decline-invitation", response_model=ResponseSchema, dependencies=[Depends(validate_token)]
)
async def decline_invitation(
    invitation: InvitationToken,
    service: SharedListService = Depends(get_shared_list_service),
):
    await service.decline_invitation(invitation.token)
    return ResponseSchema(status="success", message="Invitation declined", data=None)


@router.get("/", response_model=ResponseSchema)
async def get_my_lists(
    current_user: User = Depends(get_current_user),
    service: SharedListService = Depends(get_shared_list_service),
):
    lists = await service.get_my_lists(current_user.id)
    return ResponseSchema(
        status="success",
        message="Lists retrieved successfully",
        data={"lists": [serialize_list(sl) for sl in lists], "count": len(lists)},
    )


@router.post("/", response_model=ResponseSchema, status_code=201)
async def create_list(
    list_data: SharedListCreate,
    current_user: User = Depends(get_current_user),
    service: SharedListService = Depends(get_shared_list_service),
):
    shared_list = await service.create_list(list_data, current_user.id)
    return ResponseSchema(
        status="success", message="List created successfully", data=serialize_list(shared_list)
    )


@router.get("/{list_id}", response_model=ResponseSchema)
async def get_list(
    list_id: UUID = Path(..., description="Shared list ID"),
    current_user: User = Depends(get_current_user),
    service: SharedListService = Depends(get_shared_list_service),
):
    shared_list = await service.get_list(list_id, current_user.id)
    # Outsiders reach public lists only, and never see the roster
    if current_user.id in shared_list.member_ids:
        data = serialize_list(shared_list)
    else:
        data = serialize_public_list(shared_list)
    return ResponseSchema(status="success", message="List retrieved successfully", data=data)


@router.patch("/{list_id}", response_model=ResponseSchema)
async def update_list(
    list_id: UUID = Path(..., description="Shared list ID"),
    list_data: SharedListUpdate = Body(...),
    current_user: User = Depends(get_current_user),
    service: SharedListService = Depends(get_shared_list_service),
):
    shared_list = await service.update_list(list_id, list_data, current_user.id)
    return ResponseSchema(
        status="success", message="List updated successfully", data=serialize_list(shared_list)
    )


@router.delete("/{list_id}", response_model=ResponseSchema)
async def delete_list(
    list_id: UUID = Path(..., description="Shared list ID"),
    current_user: User = Depends(get_current_user),
    service: SharedListService = Depends(get_shared_list_service),
):
    await service.delete_list(list_id, current_user.id)
    return ResponseSchema(status="success", message="List deleted successfully", data=None)


@router.post("/{list_id}/members", response_model=ResponseSchema)
async def add_member(
    list_id: UUID = Path(..., description="Shared list ID"),
    member_data: SharedListMemberAdd = Body(...),
    current_user: User = Depends(get_current_user),
    service: SharedListService = Depends(get_shared_list_service),
):
    """Share the list with a user; without permissions they may only view."""
    shared_list = await service.add_member(
        list_id, member_data.user_id, member_data.permissions, current_user.id
    )
    return ResponseSchema(
        status="success", message="Member added successfully", data=serialize_list(shared_list)
    )


@router.patch("/{list_id}/members/{user_id}", response_model=ResponseSchema)
async def update_member_permissions(
    list_id: UUID = Path(..., description="Shared list ID"),
    user_id: UUID = Path(..., description="Member user ID"),
    permissions_data: SharedListPermissionsUpdate = Body(...),
    current_user: User = Depends(get_current_user),
    service: SharedListService = Depends(get_shared_list_service),
):
    shared_list = await service.update_member_permissions(
        list_id, user_id, permissions_data.permissions, current_user.id
    )
    return ResponseSchema(
        status="success",
        message="Member permissions updated successfully",
        data=serialize_list(shared_list),
    )


@router.delete("/{list_id}/members/{user_id}", response_model=ResponseSchema)
async def remove_member(
    list_id: UUID = Path(..., description="Shared list ID"),
    user_id: UUID = Path(..., description="Member user ID"),
    current_user: User = Depends(get_current_user),
    service: SharedListService = Depends(get_shared_list_service),
):
    shared_list = await service.remove_member(list_id, user_id, current_user.id)
    return ResponseSchema(
        status="success", message="Member removed successfully", data=serialize_list(shared_list)
    )


@router.post("/{list_id}/invite", response_model=ResponseSchema, status_code=201)
async def invite(
    list_id: UUID = Path(..., description="Shared list ID"),
    invite_data: SharedListInvite = Body(...),
    current_user: User = Depends(get_current_user),
    service: SharedListService = Depends(get_shared_list_service),
):
    invitation = await service.invite(
        list_id, invite_data.email, invite_data.permissions, current_user
    )
    return ResponseSchema(
        status="success",
        message="Invitation sent successfully",
        data=serialize_list_invitation(invitation),
    )


@router.post("/{list_id}/tasks", response_model=ResponseSchema)
async def add_task(
    list_id: UUID = Path(..., description="Shared list ID"),
    task_data: SharedListTaskAdd = Body(...),
    current_user: User = Depends(get_current_user),
    service: SharedListService = Depends(get_shared_list_service),
):
    shared_list = await service.add_task(list_id, task_data.task_id, current_user.id)
    return ResponseSchema(
        status="success", message="Task added to list", data=serialize_list(shared_list)
    )


@router.delete("/{list_id}/tasks/{task_id}", response_model=ResponseSchema)
async def remove_task(
    list_id: UUID = Path(..., description="Shared list ID"),
    task_id: UUID = Path(..., description="Task ID"),
    current_user: User = Depends(get_current_user),
    service: SharedListService = Depends(get_shared_list_service),
):
    shared_list = await service.remove_task(list_id, task_id, current_user.id)
    return ResponseSchema(
        status="success", message="Task removed from list", data=serialize_list(shared_list)
    )
