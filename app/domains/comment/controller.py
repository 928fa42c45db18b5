"""Comment API controller with FastAPI endpoints."""

from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, get_db, get_event_bus, validate_token
from app.domains.comment.service import CommentService, serialize_comment
from app.realtime.events import EventBus
from app.schemas.base import ResponseSchema
from app.schemas.comment import CommentCreate, CommentUpdate, ReactionCreate
from app.shared.pagination import PaginationParams
from models.user import User

router = APIRouter(
    prefix="/comments",
    tags=["comments"],
    dependencies=[Depends(validate_token)],
)


def get_comment_service(
    db: AsyncSession = Depends(get_db), events: EventBus = Depends(get_event_bus)
) -> CommentService:
    return CommentService(db, events=events)


@router.post("/", response_model=ResponseSchema, status_code=201)
async def create_comment(
    comment_data: CommentCreate,
    current_user: User = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
):
    """Comment on a task, optionally as a reply to another comment."""
    comment = await service.create_comment(comment_data, current_user.id)
    return ResponseSchema(
        status="success", message="Comment created successfully", data=serialize_comment(comment)
    )


@router.get("/task/{task_id}", response_model=ResponseSchema)
async def get_task_comments(
    task_id: UUID = Path(..., description="Task ID"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
):
    result = await service.get_task_comments(
        task_id, current_user.id, PaginationParams(page=page, limit=limit)
    )
    return ResponseSchema(status="success", message="Comments retrieved successfully", data=result)


@router.get("/{comment_id}", response_model=ResponseSchema)
async def get_comment(
    comment_id: UUID = Path(..., description="Comment ID"),
    current_user: User = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
):
    comment = await service.get_comment(comment_id, current_user.id)
    replies = await service.get_replies(comment.id)
    return ResponseSchema(
        status="success",
        message="Comment retrieved successfully",
        data=serialize_comment(comment, replies),
    )


@router.patch("/{comment_id}", response_model=ResponseSchema)
async def update_comment(
    comment_id: UUID = Path(..., description="Comment ID"),
    comment_data: CommentUpdate = Body(...),
    current_user: User = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
):
    comment = await service.update_comment(comment_id, comment_data, current_user.id)
    return ResponseSchema(
        status="success", message="Comment updated successfully", data=serialize_comment(comment)
    )


@router.delete("/{comment_id}", response_model=ResponseSchema)
async def delete_comment(
    comment_id: UUID = Path(..., description="Comment ID"),
    current_user: User = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
):
    """Delete a comment and its replies."""
    await service.delete_comment(comment_id, current_user.id)
    return ResponseSchema(status="success", message="Comment deleted successfully", data=None)


@router.get("/{comment_id}/reactions", response_model=ResponseSchema)
async def get_reactions(
    comment_id: UUID = Path(..., description="Comment ID"),
    current_user: User = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
):
    result = await service.get_reactions(comment_id, current_user.id)
    return ResponseSchema(status="success", message="Reactions retrieved successfully", data=result)


@router.post("/{comment_id}/reactions", response_model=ResponseSchema)
async def add_reaction(
    comment_id: UUID = Path(..., description="Comment ID"),
    reaction_data: ReactionCreate = Body(...),
    current_user: User = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
):
    comment = await service.add_reaction(comment_id, reaction_data.reaction, current_user.id)
    return ResponseSchema(
        status="success", message="Reaction added successfully", data=serialize_comment(comment)
    )


@router.delete("/{comment_id}/reactions", response_model=ResponseSchema)
async def remove_reaction(
    comment_id: UUID = Path(..., description="Comment ID"),
    current_user: User = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
):
    comment = await service.remove_reaction(comment_id, current_user.id)
    return ResponseSchema(
        status="success", message="Reaction removed successfully", data=serialize_comment(comment)
    )
