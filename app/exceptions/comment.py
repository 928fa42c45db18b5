"""Comment-related exceptions."""

from .base import BadRequestError, ForbiddenError, NotFoundError


class CommentNotFoundError(NotFoundError):
    """Raised when a comment is not found."""

    def __init__(self, message: str = "Comment not found"):
        super().__init__(message=message, error_code="COMMENT_NOT_FOUND")


class CommentPermissionError(ForbiddenError):
    """Raised when the caller may not modify a comment."""

    def __init__(self, message: str = "Not authorized to modify this comment"):
        super().__init__(message=message, error_code="COMMENT_PERMISSION_DENIED")


class InvalidParentCommentError(BadRequestError):
    """Raised when a reply points at a comment of another task."""

    def __init__(self, message: str = "Parent comment does not belong to the same task"):
        super().__init__(message=message, error_code="INVALID_PARENT_COMMENT")
