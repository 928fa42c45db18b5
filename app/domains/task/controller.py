"""Task API controller with FastAPI endpoints."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, File, Path, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import (
    get_current_user,
    get_db,
    get_event_bus,
    get_storage,
    validate_token,
)
from app.domains.task.service import TaskService, project_fields, serialize_task
from app.realtime.events import EventBus
from app.schemas.base import ResponseSchema
from app.schemas.task import (
    DependencyCreate,
    DueDateBucket,
    Priority,
    SubtaskCreate,
    SubtaskUpdate,
    TaskCreate,
    TaskFilter,
    TaskListResponse,
    TaskStats,
    TaskUpdate,
)
from app.services.storage_service import StorageService
from app.shared.pagination import PaginationParams
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/tasks",
    tags=["tasks"],
    dependencies=[Depends(validate_token)],  # Global token validation for all routes
)


def get_task_service(
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
    storage: StorageService = Depends(get_storage),
) -> TaskService:
    return TaskService(db, events=events, storage=storage)


def _task_response(message: str, task) -> ResponseSchema:
    return ResponseSchema(status="success", message=message, data=serialize_task(task))


@router.post("/", response_model=ResponseSchema, status_code=201)
async def create_task(
    task_data: TaskCreate,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Create a new task."""
    task = await service.create_task(task_data=task_data, user_id=current_user.id)
    return _task_response("Task created successfully", task)


@router.get("/", response_model=ResponseSchema)
async def get_tasks(
    category: Optional[str] = Query(None),
    completed: Optional[bool] = Query(None),
    priority: Optional[Priority] = Query(None),
    is_recurring: Optional[bool] = Query(None),
    due_date: Optional[DueDateBucket] = Query(None),
    has_attachments: Optional[bool] = Query(None),
    has_subtasks: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
    assigned: bool = Query(False, description="List tasks assigned to me instead of mine"),
    sort: Optional[str] = Query(None, description="Comma separated fields, '-' for descending"),
    fields: Optional[str] = Query(None, description="Comma separated fields to return"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Get a paginated, filtered list of tasks."""
    filters = TaskFilter(
        category=category,
        completed=completed,
        priority=priority,
        is_recurring=is_recurring,
        due_date=due_date,
        has_attachments=has_attachments,
        has_subtasks=has_subtasks,
        search=search,
        assigned=assigned,
        sort=sort,
        fields=fields,
    )
    pagination = PaginationParams(page=page, limit=limit)

    result = await service.get_tasks_list(
        user_id=current_user.id, filters=filters, pagination=pagination
    )
    tasks = [project_fields(serialize_task(task), fields) for task in result["items"]]

    return ResponseSchema(
        status="success",
        message="Tasks retrieved successfully",
        data=TaskListResponse(
            tasks=tasks,
            count=len(tasks),
            total=result["total"],
            page=result["page"],
            limit=result["limit"],
            pages=result["pages"],
        ).model_dump(mode="json"),
    )


@router.get("/stats", response_model=ResponseSchema)
async def get_task_stats(
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Get task statistics for the current user."""
    stats = await service.get_task_stats(current_user.id)
    return ResponseSchema(
        status="success",
        message="Task statistics retrieved successfully",
        data=TaskStats(**stats).model_dump(),
    )


@router.get("/{task_id}", response_model=ResponseSchema)
async def get_task(
    task_id: UUID = Path(..., description="Task ID"),
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Get a specific task by ID."""
    task = await service.get_task(task_id, current_user.id)
    return _task_response("Task retrieved successfully", task)


@router.patch("/{task_id}", response_model=ResponseSchema)
async def update_task(
    task_id: UUID = Path(..., description="Task ID"),
    task_data: TaskUpdate = Body(...),
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Update a specific task."""
    task = await service.update_task(task_id, task_data, current_user.id)
    return _task_response("Task updated successfully", task)


@router.delete("/{task_id}", response_model=ResponseSchema)
async def delete_task(
    task_id: UUID = Path(..., description="Task ID"),
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Delete a task together with its subtasks, attachments and comments."""
    await service.delete_task(task_id, current_user.id)
    return ResponseSchema(status="success", message="Task deleted successfully", data=None)


@router.post("/{task_id}/subtasks", response_model=ResponseSchema, status_code=201)
async def add_subtask(
    task_id: UUID = Path(..., description="Task ID"),
    subtask_data: SubtaskCreate = Body(...),
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    task = await service.add_subtask(task_id, subtask_data, current_user.id)
    return _task_response("Subtask added successfully", task)


@router.patch("/{task_id}/subtasks/{subtask_id}", response_model=ResponseSchema)
async def update_subtask(
    task_id: UUID = Path(..., description="Task ID"),
    subtask_id: UUID = Path(..., description="Subtask ID"),
    subtask_data: SubtaskUpdate = Body(...),
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    task = await service.update_subtask(task_id, subtask_id, subtask_data, current_user.id)
    return _task_response("Subtask updated successfully", task)


@router.delete("/{task_id}/subtasks/{subtask_id}", response_model=ResponseSchema)
async def delete_subtask(
    task_id: UUID = Path(..., description="Task ID"),
    subtask_id: UUID = Path(..., description="Subtask ID"),
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    task = await service.delete_subtask(task_id, subtask_id, current_user.id)
    return _task_response("Subtask deleted successfully", task)


@router.post("/{task_id}/attachments", response_model=ResponseSchema, status_code=201)
async def upload_attachment(
    task_id: UUID = Path(..., description="Task ID"),
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Upload a file and attach it to a task."""
    task = await service.add_attachment(task_id, file, current_user.id)
    return _task_response("Attachment uploaded successfully", task)


@router.delete("/{task_id}/attachments/{attachment_id}", response_model=ResponseSchema)
async def delete_attachment(
    task_id: UUID = Path(..., description="Task ID"),
    attachment_id: UUID = Path(..., description="Attachment ID"),
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    task = await service.delete_attachment(task_id, attachment_id, current_user.id)
    return _task_response("Attachment deleted successfully", task)


@router.post("/{task_id}/dependencies", response_model=ResponseSchema, status_code=201)
async def add_dependency(
    task_id: UUID = Path(..., description="Task ID"),
    dependency: DependencyCreate = Body(...),
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    task = await service.add_dependency(task_id, dependency.dependency_id, current_user.id)
    return _task_response("Dependency added successfully", task)


@router.delete("/{task_id}/dependencies/{dependency_id}", response_model=ResponseSchema)
async def remove_dependency(
    task_id: UUID = Path(..., description="Task ID"),
    dependency_id: UUID = Path(..., description="Dependency task ID"),
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    task = await service.remove_dependency(task_id, dependency_id, current_user.id)
    return _task_response("Dependency removed successfully", task)
