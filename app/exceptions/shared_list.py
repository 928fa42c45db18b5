"""Shared list exceptions."""

from .base import BadRequestError, ForbiddenError, NotFoundError


class SharedListNotFoundError(NotFoundError):
    """Raised when a shared list is not found."""

    def __init__(self, message: str = "Shared list not found"):
        super().__init__(message=message, error_code="SHARED_LIST_NOT_FOUND")


class SharedListPermissionError(ForbiddenError):
    """Raised when the caller lacks a shared list permission."""

    def __init__(self, message: str = "Not authorized to perform this action on the list"):
        super().__init__(message=message, error_code="SHARED_LIST_PERMISSION_DENIED")


class SharedListNotPublicError(BadRequestError):
    """Raised when a public access code points at a list that is no longer public."""

    def __init__(self, message: str = "This list is no longer public"):
        super().__init__(message=message, error_code="SHARED_LIST_NOT_PUBLIC")


class SharedListMemberNotFoundError(NotFoundError):
    """Raised when a user is not a member of the list."""

    def __init__(self, message: str = "User is not a member of this list"):
        super().__init__(message=message, error_code="SHARED_LIST_MEMBER_NOT_FOUND")
