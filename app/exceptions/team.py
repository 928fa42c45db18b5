"""Team-related exceptions."""

from .base import BadRequestError, ForbiddenError, NotFoundError


class TeamNotFoundError(NotFoundError):
    """Raised when a team is not found or has been deleted."""

    def __init__(self, message: str = "Team not found"):
        super().__init__(message=message, error_code="TEAM_NOT_FOUND")


class TeamPermissionError(ForbiddenError):
    """Raised when the caller lacks a team capability."""

    def __init__(self, message: str = "Not authorized to manage this team"):
        super().__init__(message=message, error_code="TEAM_PERMISSION_DENIED")


class TeamOwnerOperationError(BadRequestError):
    """Raised when an operation would remove or demote the team owner."""

    def __init__(self, message: str = "Cannot change the team owner"):
        super().__init__(message=message, error_code="TEAM_OWNER_OPERATION")


class TeamMemberNotFoundError(NotFoundError):
    """Raised when a user is not a member of the team."""

    def __init__(self, message: str = "User is not a member of this team"):
        super().__init__(message=message, error_code="TEAM_MEMBER_NOT_FOUND")
