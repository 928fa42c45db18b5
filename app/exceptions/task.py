"""Task-related exceptions."""

from .base import BadRequestError, ForbiddenError, NotFoundError


class TaskNotFoundError(NotFoundError):
    """Raised when a task is not found."""

    def __init__(self, message: str = "Task not found"):
        super().__init__(message=message, error_code="TASK_NOT_FOUND")


class TaskPermissionError(ForbiddenError):
    """Raised when user doesn't have permission to access a task."""

    def __init__(self, message: str = "You don't have permission to access this task"):
        super().__init__(message=message, error_code="TASK_PERMISSION_DENIED")


class InvalidTaskOperationError(BadRequestError):
    """Raised when an invalid operation is performed on a task."""

    def __init__(self, message: str = "Invalid task operation"):
        super().__init__(message=message, error_code="INVALID_TASK_OPERATION")


class CircularDependencyError(BadRequestError):
    """Raised when a dependency edge would make a task depend on itself."""

    def __init__(self, message: str = "Circular dependency detected"):
        super().__init__(message=message, error_code="CIRCULAR_DEPENDENCY")


class SubtaskNotFoundError(NotFoundError):
    """Raised when a subtask id does not belong to the task."""

    def __init__(self, message: str = "Subtask not found"):
        super().__init__(message=message, error_code="SUBTASK_NOT_FOUND")


class AttachmentNotFoundError(NotFoundError):
    """Raised when an attachment id does not belong to the task."""

    def __init__(self, message: str = "Attachment not found"):
        super().__init__(message=message, error_code="ATTACHMENT_NOT_FOUND")
