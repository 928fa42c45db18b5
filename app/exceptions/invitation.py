"""Invitation lifecycle exceptions shared by teams and shared lists."""

from .base import BadRequestError, NotFoundError


class InvitationNotFoundError(NotFoundError):
    """Raised when no pending invitation carries the token."""

    def __init__(self, message: str = "Invalid or expired invitation"):
        super().__init__(message=message, error_code="INVITATION_NOT_FOUND")


class InvitationExpiredError(BadRequestError):
    """Raised after an expired invitation has been marked as expired."""

    def __init__(self, message: str = "Invitation has expired"):
        super().__init__(message=message, error_code="INVITATION_EXPIRED")
