"""Comment service: threaded discussion and reactions on tasks."""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import delete, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.exceptions.base import BadRequestError, NotFoundError
from app.exceptions.comment import (
    CommentNotFoundError,
    CommentPermissionError,
    InvalidParentCommentError,
)
from app.exceptions.task import InvalidTaskOperationError, TaskNotFoundError, TaskPermissionError
from app.realtime.events import EventBus, task_room
from app.schemas.comment import CommentCreate, CommentResponse, CommentUpdate
from app.services.notification_service import NotificationService
from app.shared.pagination import PaginationParams, page_count
from models import Comment, CommentMention, CommentReaction, Task, User
from models.base import utcnow

logger = logging.getLogger(__name__)


def reaction_counts(reactions) -> Dict[str, int]:
    return dict(Counter(reaction.reaction for reaction in reactions))


def serialize_comment(comment: Comment, replies: Optional[List[Comment]] = None) -> Dict[str, Any]:
    data = CommentResponse.model_validate(comment).model_dump(mode="json")
    data["reaction_counts"] = reaction_counts(comment.reactions)
    if replies is not None:
        data["replies"] = [serialize_comment(reply) for reply in replies]
    return data


class CommentService:
    def __init__(self, db: AsyncSession, events: Optional[EventBus] = None):
        self.db = db
        self.events = events
        self.notifications = NotificationService(db, events)

    async def create_comment(self, data: CommentCreate, user_id: UUID) -> Comment:
        task = await self._get_accessible_task(data.task_id, user_id)

        if data.parent_comment_id:
            parent = await self._get_comment(data.parent_comment_id, "Parent comment not found")
            if parent.task_id != task.id:
                raise InvalidParentCommentError()

        mentions = list(dict.fromkeys(data.mentions))
        await self._ensure_users_exist(mentions)

        comment = Comment(
            task_id=task.id,
            user_id=user_id,
            content=data.content,
            parent_comment_id=data.parent_comment_id,
            attachments=[],
            is_edited=False,
        )
        comment.mention_links = [CommentMention(user_id=mentioned) for mentioned in mentions]

        try:
            self.db.add(comment)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise InvalidTaskOperationError(f"Failed to create comment: {str(e)}")

        comment_id = comment.id
        logger.info(f"💬 Comment {comment_id} added to task {task.id} by user {user_id}")

        await self.notifications.record(
            "task_comment_added",
            user_id,
            task=task,
            comment_id=comment_id,
            metadata=_comment_meta(task, data.content),
            extra_recipients=mentions,
        )

        comment = await self._reload(comment_id)
        await self._publish("comment:created", comment, user_id)
        return comment

    async def get_task_comments(
        self, task_id: UUID, user_id: UUID, pagination: PaginationParams
    ) -> Dict[str, Any]:
        """Top-level comments of a task, oldest first, each with its replies."""
        await self._get_accessible_task(task_id, user_id)

        top_level = Comment.task_id == task_id, Comment.parent_comment_id.is_(None)
        total = (
            await self.db.execute(select(func.count(Comment.id)).where(*top_level))
        ).scalar() or 0

        result = await self.db.execute(
            select(Comment)
            .where(*top_level)
            .order_by(Comment.created_at.asc())
            .offset(pagination.offset)
            .limit(pagination.limit)
        )
        comments = result.scalars().all()

        replies: Dict[UUID, List[Comment]] = {comment.id: [] for comment in comments}
        if replies:
            reply_result = await self.db.execute(
                select(Comment)
                .where(Comment.parent_comment_id.in_(list(replies)))
                .order_by(Comment.created_at.asc())
            )
            for reply in reply_result.scalars().all():
                replies[reply.parent_comment_id].append(reply)

        return {
            "comments": [serialize_comment(c, replies[c.id]) for c in comments],
            "count": len(comments),
            "total": total,
            "page": pagination.page,
            "limit": pagination.limit,
            "pages": page_count(total, pagination.limit),
        }

    async def get_comment(self, comment_id: UUID, user_id: UUID) -> Comment:
        comment = await self._get_comment(comment_id)
        await self._get_accessible_task(comment.task_id, user_id)
        return comment

    async def get_replies(self, comment_id: UUID) -> List[Comment]:
        result = await self.db.execute(
            select(Comment)
            .where(Comment.parent_comment_id == comment_id)
            .order_by(Comment.created_at.asc())
        )
        return list(result.scalars().all())

    async def update_comment(self, comment_id: UUID, data: CommentUpdate, user_id: UUID) -> Comment:
        """Edit a comment; only its author may do so."""
        comment = await self._get_comment(comment_id)
        if comment.user_id != user_id:
            raise CommentPermissionError("Not authorized to update this comment")
        task = await self._get_task(comment.task_id)

        new_mentions: List[UUID] = []
        if data.mentions is not None:
            mentions = list(dict.fromkeys(data.mentions))
            await self._ensure_users_exist(mentions)
            new_mentions = [m for m in mentions if m not in comment.mentions]
            for link in list(comment.mention_links):
                if link.user_id not in mentions:
                    comment.mention_links.remove(link)
            for mentioned in new_mentions:
                comment.mention_links.append(CommentMention(user_id=mentioned))

        comment.content = data.content
        comment.is_edited = True
        comment.edited_at = utcnow()

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise InvalidTaskOperationError(f"Failed to update comment: {str(e)}")

        await self.notifications.record(
            "task_comment_updated",
            user_id,
            task=task,
            comment_id=comment_id,
            metadata=_comment_meta(task, data.content),
            extra_recipients=new_mentions,
        )

        comment = await self._reload(comment_id)
        await self._publish("comment:updated", comment, user_id)
        return comment

    async def delete_comment(self, comment_id: UUID, user_id: UUID) -> None:
        """
        Delete a comment with its replies and their reactions.

        The author or the owner of the task may delete. Everything goes in
        one transaction.
        """
        comment = await self._get_comment(comment_id)
        task = await self._get_task(comment.task_id)
        if comment.user_id != user_id and task.created_by != user_id:
            raise CommentPermissionError("Not authorized to delete this comment")

        reply_ids = list(
            (
                await self.db.execute(
                    select(Comment.id).where(Comment.parent_comment_id == comment_id)
                )
            ).scalars()
        )
        all_ids = reply_ids + [comment_id]
        content = comment.content

        try:
            await self.db.execute(
                delete(CommentReaction).where(CommentReaction.comment_id.in_(all_ids))
            )
            await self.db.execute(
                delete(CommentMention).where(CommentMention.comment_id.in_(all_ids))
            )
            if reply_ids:
                await self.db.execute(delete(Comment).where(Comment.id.in_(reply_ids)))
            await self.db.execute(delete(Comment).where(Comment.id == comment_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise InvalidTaskOperationError(f"Failed to delete comment: {str(e)}")

        logger.info(f"🗑️ Comment {comment_id} and {len(reply_ids)} replies deleted by user {user_id}")

        await self.notifications.record(
            "task_comment_deleted",
            user_id,
            task=task,
            metadata={**_comment_meta(task, content), "comment_id": str(comment_id)},
        )
        if self.events is not None:
            await self.events.emit(
                "comment:deleted",
                {"id": str(comment_id), "task_id": str(task.id), "replies": [str(r) for r in reply_ids]},
                rooms=[task_room(task.id)],
                user_id=user_id,
            )

    # ----- Reactions --------------------------------------------------------

    async def add_reaction(self, comment_id: UUID, reaction: str, user_id: UUID) -> Comment:
        """Set the caller's reaction, replacing any previous one."""
        comment = await self.get_comment(comment_id, user_id)

        result = await self.db.execute(
            select(CommentReaction).where(
                CommentReaction.comment_id == comment.id, CommentReaction.user_id == user_id
            )
        )
        existing = result.scalar_one_or_none()

        try:
            if existing is not None:
                existing.reaction = reaction
            else:
                self.db.add(CommentReaction(comment_id=comment.id, user_id=user_id, reaction=reaction))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise InvalidTaskOperationError(f"Failed to add reaction: {str(e)}")

        comment = await self._reload(comment_id)
        await self._publish("comment:updated", comment, user_id)
        return comment

    async def remove_reaction(self, comment_id: UUID, user_id: UUID) -> Comment:
        comment = await self.get_comment(comment_id, user_id)
        result = await self.db.execute(
            select(CommentReaction).where(
                CommentReaction.comment_id == comment.id, CommentReaction.user_id == user_id
            )
        )
        existing = result.scalar_one_or_none()
        if existing is None:
            raise NotFoundError("Reaction not found")

        try:
            await self.db.delete(existing)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise InvalidTaskOperationError(f"Failed to remove reaction: {str(e)}")

        comment = await self._reload(comment_id)
        await self._publish("comment:updated", comment, user_id)
        return comment

    async def get_reactions(self, comment_id: UUID, user_id: UUID) -> Dict[str, Any]:
        comment = await self.get_comment(comment_id, user_id)
        return {
            "reactions": [
                {"user_id": str(r.user_id), "reaction": r.reaction} for r in comment.reactions
            ],
            "counts": reaction_counts(comment.reactions),
        }

    # Private helper methods

    async def _get_task(self, task_id: UUID) -> Task:
        result = await self.db.execute(select(Task).where(Task.id == task_id))
        task = result.scalar_one_or_none()
        if not task:
            raise TaskNotFoundError("Task not found")
        return task

    async def _get_accessible_task(self, task_id: UUID, user_id: UUID) -> Task:
        task = await self._get_task(task_id)
        if not task.is_participant(user_id):
            raise TaskPermissionError("Not authorized to access comments on this task")
        return task

    async def _get_comment(self, comment_id: UUID, message: str = "Comment not found") -> Comment:
        result = await self.db.execute(select(Comment).where(Comment.id == comment_id))
        comment = result.scalar_one_or_none()
        if not comment:
            raise CommentNotFoundError(message)
        return comment

    async def _reload(self, comment_id: UUID) -> Comment:
        result = await self.db.execute(
            select(Comment).where(Comment.id == comment_id).execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def _ensure_users_exist(self, user_ids: List[UUID]) -> None:
        if not user_ids:
            return
        result = await self.db.execute(select(User.id).where(User.id.in_(user_ids)))
        found = set(result.scalars().all())
        missing = [str(u) for u in user_ids if u not in found]
        if missing:
            raise BadRequestError(
                "Mentioned user not found", details={"field": "mentions", "missing": missing}
            )

    async def _publish(self, event_type: str, comment: Comment, user_id: UUID) -> None:
        if self.events is None:
            return
        await self.events.emit(
            event_type,
            serialize_comment(comment),
            rooms=[task_room(comment.task_id)],
            user_id=user_id,
        )


def _comment_meta(task: Task, content: str) -> Dict[str, Any]:
    return {"task_id": str(task.id), "task_name": task.name, "comment_content": content[:100]}
