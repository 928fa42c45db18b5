"""Task service layer with business logic."""

import logging
from collections import deque
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy import and_, case, delete, func, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.exceptions.base import BadRequestError
from app.exceptions.task import (
    AttachmentNotFoundError,
    CircularDependencyError,
    InvalidTaskOperationError,
    SubtaskNotFoundError,
    TaskNotFoundError,
    TaskPermissionError,
)
from app.realtime.events import EventBus, task_room, user_room
from app.schemas.task import (
    SubtaskCreate,
    SubtaskUpdate,
    TaskCreate,
    TaskFilter,
    TaskResponse,
    TaskUpdate,
)
from app.services.notification_service import NotificationService
from app.services.storage_service import StorageService
from app.shared.pagination import PaginationParams, paginate
from app.shared.recurrence import decremented_rule, next_occurrence
from models import (
    Comment,
    CommentMention,
    CommentReaction,
    ModelValidationError,
    SharedListTask,
    Subtask,
    Task,
    TaskAssignee,
    TaskAttachment,
    TaskDependency,
    User,
)
from models.base import to_naive_utc, utcnow
from models.task import MAX_ATTACHMENTS

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "name": Task.name,
    "priority": Task.priority,
    "status": Task.status,
    "category": Task.category,
    "completed": Task.completed,
    "completed_at": Task.completed_at,
    "due_date": Task.due_date,
    "start_date": Task.start_date,
    "estimated_time": Task.estimated_time,
    "actual_time": Task.actual_time,
    "created_at": Task.created_at,
    "updated_at": Task.updated_at,
}

DEFAULT_SORT = "-created_at"

# Field changes that get their own activity type, checked in this order
_FIELD_ACTIVITIES = (
    ("due_date", "task_due_date_changed"),
    ("priority", "task_priority_changed"),
    ("category", "task_category_changed"),
)


def apply_completion(task: Task, completed: Optional[bool] = None, status: Optional[str] = None):
    """
    Keep ``completed``, ``completed_at`` and ``status`` consistent.

    Completing a task stamps ``completed_at`` and moves it to ``done``;
    reopening clears the timestamp and moves a ``done`` task back to ``todo``.
    Setting ``status`` alone implies the matching completion flag.
    """
    if completed is None and status is not None:
        completed = status == "done"
    if completed is None:
        return

    if completed and not task.completed:
        task.completed_at = utcnow()
    elif not completed and task.completed:
        task.completed_at = None
    task.completed = completed

    if completed:
        task.status = "done"
    elif status not in (None, "done"):
        task.status = status
    elif task.status == "done":
        task.status = "todo"


def build_order_by(sort: Optional[str]) -> list:
    """Translate ``-due_date,name`` into ORDER BY clauses; unknown fields are rejected."""
    clauses = []
    for raw in (sort or DEFAULT_SORT).split(","):
        raw = raw.strip()
        if not raw:
            continue
        descending = raw.startswith("-")
        name = raw.lstrip("-+")
        column = SORTABLE_FIELDS.get(name)
        if column is None:
            raise BadRequestError(
                f"Cannot sort by '{name}'",
                details={"allowed": sorted(SORTABLE_FIELDS)},
            )
        clauses.append(column.desc() if descending else column.asc())
    return clauses


def project_fields(data: Dict[str, Any], fields: Optional[str]) -> Dict[str, Any]:
    """Keep only the requested fields of a serialized task; ``id`` is always kept."""
    if not fields:
        return data
    wanted = {name.strip() for name in fields.split(",") if name.strip()}
    wanted.add("id")
    return {key: value for key, value in data.items() if key in wanted}


def serialize_task(task: Task) -> Dict[str, Any]:
    return TaskResponse.model_validate(task).model_dump(mode="json")


class TaskService:
    """Service class for task business logic."""

    def __init__(
        self,
        db: AsyncSession,
        events: Optional[EventBus] = None,
        storage: Optional[StorageService] = None,
    ):
        self.db = db
        self.events = events
        self.storage = storage or StorageService()
        self.notifications = NotificationService(db, events)

    # ----- CRUD -------------------------------------------------------------

    async def create_task(self, task_data: TaskCreate, user_id: UUID) -> Task:
        """Create a task and, when it recurs, its next occurrence."""
        assignees = _unique(task_data.assigned_to)
        dependencies = _unique(task_data.dependencies)
        await self._ensure_users_exist(assignees)
        await self._ensure_dependencies_accessible(dependencies, user_id)

        if task_data.parent_task_id:
            await self.get_task(task_data.parent_task_id, user_id)

        task = Task(
            name=task_data.name,
            description=task_data.description,
            completed=False,
            status="todo",
            priority=task_data.priority,
            category=task_data.category,
            tags=list(task_data.tags),
            due_date=to_naive_utc(task_data.due_date),
            start_date=to_naive_utc(task_data.start_date),
            estimated_time=task_data.estimated_time,
            actual_time=task_data.actual_time,
            is_markdown=task_data.is_markdown,
            created_by=user_id,
            parent_task_id=task_data.parent_task_id,
            is_recurring=task_data.is_recurring,
            recurrence_rule=_rule_to_json(task_data.recurrence_rule),
        )
        apply_completion(task, task_data.completed or None, task_data.status)
        task.assignee_links = [TaskAssignee(user_id=assignee) for assignee in assignees]
        task.dependency_links = [TaskDependency(depends_on_id=dep) for dep in dependencies]

        try:
            self.db.add(task)
            await self.db.flush()
            spawned = self._spawn_next_occurrence(task)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise InvalidTaskOperationError(f"Failed to create task: {str(e)}")

        task_id = task.id
        spawned_id = spawned.id if spawned is not None else None
        logger.info(f"✅ Task {task_id} created by user {user_id}")

        await self.notifications.record(
            "task_created", user_id, task=task, metadata=_task_meta(task)
        )
        for assignee in assignees:
            await self.notifications.record(
                "task_assigned", user_id, task=task, target_user_id=assignee, metadata=_task_meta(task)
            )

        task = await self._reload(task_id)
        await self._publish("task:created", task, user_id)
        if assignees:
            await self._publish("task:assigned", task, user_id, extra_users=assignees)
        if spawned_id is not None:
            await self._publish("task:created", await self._reload(spawned_id), user_id)
        return task

    async def get_task(self, task_id: UUID, user_id: UUID) -> Task:
        """Get a task the caller owns or is assigned to."""
        task = await self._get_task(task_id)
        if not task.is_participant(user_id):
            raise TaskPermissionError("Not authorized to access this task")
        return task

    async def get_tasks_list(
        self, user_id: UUID, filters: TaskFilter, pagination: PaginationParams
    ) -> Dict[str, Any]:
        """Get a page of the caller's tasks (or tasks assigned to them) matching ``filters``."""
        if filters.assigned:
            query = select(Task).where(Task.assignee_links.any(TaskAssignee.user_id == user_id))
        else:
            query = select(Task).where(Task.created_by == user_id)

        if filters.category:
            query = query.where(Task.category == filters.category)

        if filters.completed is not None:
            query = query.where(Task.completed == filters.completed)

        if filters.priority:
            query = query.where(Task.priority == filters.priority)

        if filters.is_recurring is not None:
            query = query.where(Task.is_recurring == filters.is_recurring)

        if filters.due_date:
            query = query.where(_due_date_clause(filters.due_date))

        if filters.has_attachments is not None:
            exists = Task.attachments.any()
            query = query.where(exists if filters.has_attachments else ~exists)

        if filters.has_subtasks is not None:
            exists = Task.subtasks.any()
            query = query.where(exists if filters.has_subtasks else ~exists)

        if filters.search:
            search_term = f"%{filters.search}%"
            query = query.where(
                or_(Task.name.ilike(search_term), Task.description.ilike(search_term))
            )

        query = query.order_by(*build_order_by(filters.sort))

        return await paginate(self.db, query, pagination)

    async def update_task(self, task_id: UUID, task_data: TaskUpdate, user_id: UUID) -> Task:
        """Update a task as its owner or an assignee."""
        task = await self.get_task(task_id, user_id)
        update_data = task_data.model_dump(exclude_unset=True)

        before = {
            "completed": task.completed,
            "due_date": task.due_date,
            "priority": task.priority,
            "category": task.category,
        }
        previous_assignees = list(task.assigned_to)
        added: List[UUID] = []
        removed: List[UUID] = []
        assignees = dependencies = None

        # Validate everything before touching the task
        if "assigned_to" in update_data:
            assignees = _unique(update_data.pop("assigned_to") or [])
            await self._ensure_users_exist(assignees)
            added = [a for a in assignees if a not in previous_assignees]
            removed = [a for a in previous_assignees if a not in assignees]
        if "dependencies" in update_data:
            dependencies = _unique(update_data.pop("dependencies") or [])
            await self._validate_dependency_set(task, dependencies, user_id)

        if assignees is not None:
            _sync_links(task.assignee_links, "user_id", assignees, lambda a: TaskAssignee(user_id=a))
        if dependencies is not None:
            _sync_links(
                task.dependency_links,
                "depends_on_id",
                dependencies,
                lambda d: TaskDependency(depends_on_id=d),
            )

        completed = update_data.pop("completed", None)
        status = update_data.pop("status", None)
        rule_sent = "recurrence_rule" in update_data
        if rule_sent:
            update_data["recurrence_rule"] = _rule_to_json(task_data.recurrence_rule)

        for field, value in update_data.items():
            if field in ("due_date", "start_date"):
                value = to_naive_utc(value)
            elif field == "tags":
                value = list(value or [])
            setattr(task, field, value)

        apply_completion(task, completed, status)

        spawned = None
        try:
            if rule_sent:
                spawned = self._spawn_next_occurrence(task)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise InvalidTaskOperationError(f"Failed to update task: {str(e)}")

        spawned_id = spawned.id if spawned is not None else None
        logger.info(f"✏️ Task {task_id} updated by user {user_id}")

        await self.notifications.record(
            _update_activity_type(before, task), user_id, task=task, metadata=_task_meta(task)
        )
        for assignee in added:
            await self.notifications.record(
                "task_assigned", user_id, task=task, target_user_id=assignee, metadata=_task_meta(task)
            )
        for assignee in removed:
            await self.notifications.record(
                "task_unassigned", user_id, task=task, target_user_id=assignee, metadata=_task_meta(task)
            )

        just_completed = task.completed and not before["completed"]
        task = await self._reload(task_id)
        await self._publish("task:updated", task, user_id, extra_users=removed)
        if added:
            await self._publish("task:assigned", task, user_id, extra_users=added)
        if just_completed:
            await self._publish("task:completed", task, user_id)
        if spawned_id is not None:
            await self._publish("task:created", await self._reload(spawned_id), user_id)
        return task

    async def delete_task(self, task_id: UUID, user_id: UUID) -> None:
        """
        Delete a task the caller owns, with everything that hangs off it.

        Subtasks, attachment rows, dependency edges in both directions,
        shared-list links, comments and their reactions go in one
        transaction. Attachment files are unlinked afterwards; a file that
        is already gone is logged and ignored.
        """
        task = await self._get_task(task_id)
        if task.created_by != user_id:
            raise TaskPermissionError("Only the task owner can delete this task")

        participants = [task.created_by] + list(task.assigned_to)
        attachment_paths = [attachment.path for attachment in task.attachments]
        meta = _task_meta(task)
        comment_ids = select(Comment.id).where(Comment.task_id == task_id)

        try:
            await self.db.execute(
                delete(CommentReaction).where(CommentReaction.comment_id.in_(comment_ids))
            )
            await self.db.execute(
                delete(CommentMention).where(CommentMention.comment_id.in_(comment_ids))
            )
            await self.db.execute(
                update(Comment)
                .where(Comment.task_id == task_id)
                .values(parent_comment_id=None)
            )
            await self.db.execute(delete(Comment).where(Comment.task_id == task_id))
            await self.db.execute(delete(SharedListTask).where(SharedListTask.task_id == task_id))
            await self.db.execute(
                delete(TaskDependency).where(TaskDependency.depends_on_id == task_id)
            )
            await self.db.execute(
                update(Task).where(Task.parent_task_id == task_id).values(parent_task_id=None)
            )
            await self.db.delete(task)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise InvalidTaskOperationError(f"Failed to delete task: {str(e)}")

        logger.info(f"🗑️ Task {task_id} deleted by user {user_id}")

        for path in attachment_paths:
            self.storage.delete_file(path)

        await self.notifications.record(
            "task_deleted", user_id, metadata=meta, extra_recipients=participants
        )
        if self.events is not None:
            await self.events.emit(
                "task:deleted",
                {"id": str(task_id)},
                rooms=[task_room(task_id)] + [user_room(p) for p in _unique(participants)],
                user_id=user_id,
            )

    async def get_task_stats(self, user_id: UUID) -> Dict[str, int]:
        """Get task statistics for the tasks a user created."""
        now = utcnow()
        has_attachments = Task.attachments.any()
        has_subtasks = Task.subtasks.any()

        def count_if(condition):
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        query = select(
            func.count(Task.id),
            count_if(Task.completed.is_(True)),
            count_if(Task.priority == "high"),
            count_if(Task.priority == "medium"),
            count_if(Task.priority == "low"),
            count_if(has_attachments),
            count_if(has_subtasks),
            count_if(Task.is_recurring.is_(True)),
            count_if(and_(Task.due_date < now, Task.completed.is_(False))),
        ).where(Task.created_by == user_id)

        row = (await self.db.execute(query)).one()
        total, completed, high, medium, low, attachments, subtasks, recurring, overdue = (
            int(value or 0) for value in row
        )
        return {
            "total": total,
            "completed": completed,
            "pending": total - completed,
            "high_priority": high,
            "medium_priority": medium,
            "low_priority": low,
            "with_attachments": attachments,
            "with_subtasks": subtasks,
            "recurring": recurring,
            "overdue": overdue,
        }

    # ----- Subtasks ---------------------------------------------------------

    async def add_subtask(self, task_id: UUID, data: SubtaskCreate, user_id: UUID) -> Task:
        task = await self.get_task(task_id, user_id)
        try:
            task.subtasks.append(Subtask(name=data.name, completed=False))
        except ModelValidationError as e:
            raise BadRequestError(e.message, details={"field": e.field})
        await self._commit(task, "add subtask")
        await self.notifications.record(
            "task_subtask_added", user_id, task=task, metadata={**_task_meta(task), "subtask_name": data.name}
        )
        return await self._after_change(task_id, user_id)

    async def update_subtask(
        self, task_id: UUID, subtask_id: UUID, data: SubtaskUpdate, user_id: UUID
    ) -> Task:
        """Patch a subtask's name or completion; completing it stamps ``completed_at``."""
        task = await self.get_task(task_id, user_id)
        subtask = _find_child(task.subtasks, subtask_id, SubtaskNotFoundError)

        activity_type = "task_subtask_updated"
        if data.name is not None:
            subtask.name = data.name
        if data.completed is not None and data.completed != subtask.completed:
            subtask.completed = data.completed
            subtask.completed_at = utcnow() if data.completed else None
            activity_type = "task_subtask_completed" if data.completed else "task_subtask_reopened"

        await self._commit(task, "update subtask")
        await self.notifications.record(
            activity_type, user_id, task=task, metadata={**_task_meta(task), "subtask_name": subtask.name}
        )
        return await self._after_change(task_id, user_id)

    async def delete_subtask(self, task_id: UUID, subtask_id: UUID, user_id: UUID) -> Task:
        task = await self.get_task(task_id, user_id)
        subtask = _find_child(task.subtasks, subtask_id, SubtaskNotFoundError)
        name = subtask.name
        task.subtasks.remove(subtask)
        await self._commit(task, "delete subtask")
        await self.notifications.record(
            "task_subtask_deleted", user_id, task=task, metadata={**_task_meta(task), "subtask_name": name}
        )
        return await self._after_change(task_id, user_id)

    # ----- Attachments ------------------------------------------------------

    async def add_attachment(self, task_id: UUID, upload: UploadFile, user_id: UUID) -> Task:
        """Store an uploaded file and attach it to the task."""
        task = await self.get_task(task_id, user_id)
        if len(task.attachments) >= MAX_ATTACHMENTS:
            raise BadRequestError(
                f"Cannot have more than {MAX_ATTACHMENTS} attachments",
                details={"field": "attachments"},
            )

        stored = await self.storage.save_upload(upload)
        try:
            task.attachments.append(TaskAttachment(**stored))
            await self.db.commit()
        except (SQLAlchemyError, ModelValidationError) as e:
            await self.db.rollback()
            self.storage.delete_file(stored["path"])
            raise InvalidTaskOperationError(f"Failed to add attachment: {str(e)}")

        await self.notifications.record(
            "task_attachment_added",
            user_id,
            task=task,
            metadata={**_task_meta(task), "filename": stored["original_name"]},
        )
        return await self._after_change(task_id, user_id)

    async def delete_attachment(self, task_id: UUID, attachment_id: UUID, user_id: UUID) -> Task:
        task = await self.get_task(task_id, user_id)
        attachment = _find_child(task.attachments, attachment_id, AttachmentNotFoundError)
        path, original_name = attachment.path, attachment.original_name
        task.attachments.remove(attachment)
        await self._commit(task, "delete attachment")

        self.storage.delete_file(path)
        await self.notifications.record(
            "task_attachment_removed",
            user_id,
            task=task,
            metadata={**_task_meta(task), "filename": original_name},
        )
        return await self._after_change(task_id, user_id)

    # ----- Dependencies -----------------------------------------------------

    async def add_dependency(self, task_id: UUID, dependency_id: UUID, user_id: UUID) -> Task:
        """Make ``task_id`` depend on ``dependency_id`` unless that closes a cycle."""
        task = await self.get_task(task_id, user_id)
        if dependency_id in task.dependencies:
            return task

        await self._validate_dependency_set(task, task.dependencies + [dependency_id], user_id)
        task.dependency_links.append(TaskDependency(depends_on_id=dependency_id))
        await self._commit(task, "add dependency")
        await self.notifications.record(
            "task_updated", user_id, task=task, metadata={**_task_meta(task), "dependency_id": str(dependency_id)}
        )
        return await self._after_change(task_id, user_id)

    async def remove_dependency(self, task_id: UUID, dependency_id: UUID, user_id: UUID) -> Task:
        task = await self.get_task(task_id, user_id)
        link = next(
            (link for link in task.dependency_links if link.depends_on_id == dependency_id), None
        )
        if link is None:
            raise TaskNotFoundError("Dependency not found")
        task.dependency_links.remove(link)
        await self._commit(task, "remove dependency")
        await self.notifications.record(
            "task_updated", user_id, task=task, metadata={**_task_meta(task), "dependency_id": str(dependency_id)}
        )
        return await self._after_change(task_id, user_id)

    async def find_cycle(self, task_id: UUID, dependency_ids: Iterable[UUID]) -> bool:
        """Breadth-first walk of the dependency graph starting at ``dependency_ids``.

        Returns True if ``task_id`` is reachable, i.e. saving these
        dependencies would make the task depend on itself.
        """
        queue = deque(dependency_ids)
        seen = set()
        while queue:
            current = queue.popleft()
            if current == task_id:
                return True
            if current in seen:
                continue
            seen.add(current)
            result = await self.db.execute(
                select(TaskDependency.depends_on_id).where(TaskDependency.task_id == current)
            )
            queue.extend(result.scalars().all())
        return False

    # Private helper methods

    async def _get_task(self, task_id: UUID) -> Task:
        result = await self.db.execute(select(Task).where(Task.id == task_id))
        task = result.scalar_one_or_none()
        if not task:
            raise TaskNotFoundError(f"No task found with id {task_id}")
        return task

    async def _reload(self, task_id: UUID) -> Task:
        result = await self.db.execute(
            select(Task).where(Task.id == task_id).execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def _commit(self, task: Task, action: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise InvalidTaskOperationError(f"Failed to {action}: {str(e)}")
        logger.info(f"Task {task.id}: {action}")

    async def _after_change(self, task_id: UUID, user_id: UUID) -> Task:
        task = await self._reload(task_id)
        await self._publish("task:updated", task, user_id)
        return task

    async def _publish(
        self, event_type: str, task: Task, user_id: UUID, extra_users: Iterable[UUID] = ()
    ) -> None:
        if self.events is None:
            return
        users = _unique([task.created_by] + list(task.assigned_to) + list(extra_users))
        await self.events.emit(
            event_type,
            serialize_task(task),
            rooms=[task_room(task.id)] + [user_room(u) for u in users],
            user_id=user_id,
        )

    async def _ensure_users_exist(self, user_ids: List[UUID]) -> None:
        if not user_ids:
            return
        result = await self.db.execute(select(User.id).where(User.id.in_(user_ids)))
        found = set(result.scalars().all())
        missing = [str(u) for u in user_ids if u not in found]
        if missing:
            raise BadRequestError(
                "Assigned user not found", details={"field": "assigned_to", "missing": missing}
            )

    async def _ensure_dependencies_accessible(self, dependency_ids: List[UUID], user_id: UUID):
        for dependency_id in dependency_ids:
            try:
                await self.get_task(dependency_id, user_id)
            except (TaskNotFoundError, TaskPermissionError):
                raise BadRequestError(
                    f"Dependency task not found: {dependency_id}", details={"field": "dependencies"}
                )

    async def _validate_dependency_set(
        self, task: Task, dependency_ids: List[UUID], user_id: UUID
    ) -> None:
        if task.id in dependency_ids:
            raise CircularDependencyError("A task cannot depend on itself")
        await self._ensure_dependencies_accessible(
            [d for d in dependency_ids if d not in task.dependencies], user_id
        )
        if await self.find_cycle(task.id, dependency_ids):
            raise CircularDependencyError()

    def _spawn_next_occurrence(self, task: Task) -> Optional[Task]:
        """Add the next occurrence of a recurring task to the session, if there is one."""
        if not task.is_recurring or not task.recurrence_rule:
            return None

        due_date = next_occurrence(task.recurrence_rule, base_date=task.due_date)
        if due_date is None:
            return None

        occurrence = Task(
            name=task.name,
            description=task.description,
            completed=False,
            status="todo",
            priority=task.priority,
            category=task.category,
            tags=list(task.tags or []),
            due_date=due_date,
            is_markdown=task.is_markdown,
            created_by=task.created_by,
            is_recurring=True,
            recurrence_rule=decremented_rule(task.recurrence_rule),
            parent_task_id=task.id,
        )
        occurrence.assignee_links = [TaskAssignee(user_id=a) for a in task.assigned_to]
        self.db.add(occurrence)
        logger.info(f"🔁 Scheduled next occurrence of task {task.id} on {due_date.isoformat()}")
        return occurrence


def _unique(values: Iterable) -> list:
    seen: list = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def _sync_links(links: list, attribute: str, wanted: List[UUID], factory) -> None:
    """Make a link collection match ``wanted`` without rewriting rows that stay."""
    for link in list(links):
        if getattr(link, attribute) not in wanted:
            links.remove(link)
    present = {getattr(link, attribute) for link in links}
    for value in wanted:
        if value not in present:
            links.append(factory(value))


def _find_child(children: list, child_id: UUID, not_found):
    for child in children:
        if child.id == child_id:
            return child
    raise not_found()


def _rule_to_json(rule) -> Optional[dict]:
    if rule is None:
        return None
    return rule.model_dump(mode="json", exclude_none=True)


def _task_meta(task: Task) -> Dict[str, Any]:
    return {"task_id": str(task.id), "task_name": task.name}


def _update_activity_type(before: Dict[str, Any], task: Task) -> str:
    if task.completed != before["completed"]:
        return "task_completed" if task.completed else "task_reopened"
    for field, activity_type in _FIELD_ACTIVITIES:
        if getattr(task, field) != before[field]:
            return activity_type
    return "task_updated"


def _due_date_clause(bucket: str):
    now = utcnow()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    tomorrow = today + timedelta(days=1)
    if bucket == "today":
        return and_(Task.due_date >= today, Task.due_date < tomorrow)
    if bucket == "tomorrow":
        return and_(Task.due_date >= tomorrow, Task.due_date < tomorrow + timedelta(days=1))
    if bucket == "week":
        return and_(Task.due_date >= today, Task.due_date < today + timedelta(days=7))
    return and_(Task.due_date < today, Task.completed.is_(False))
