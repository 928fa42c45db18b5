# ruff: noqa: D107
"""Base exception classes."""

from typing import Any

from fastapi import HTTPException


class BaseAppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}

        super().__init__(
            status_code=status_code,
            detail={"message": message, "error_code": error_code, "details": details},
            headers=headers,
        )


class BadRequestError(BaseAppException):
    """Exception raised for missing or invalid input."""

    def __init__(
        self,
        message: str = "Bad request",
        details: dict[str, Any] | None = None,
        error_code: str = "BAD_REQUEST",
    ):
        super().__init__(message=message, status_code=400, error_code=error_code, details=details)


class ValidationError(BadRequestError):
    """Exception raised when validation fails."""

    def __init__(
        self,
        message: str = "Validation failed",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, details=details, error_code="VALIDATION_ERROR")


class UnauthenticatedError(BaseAppException):
    """Exception raised when the caller is not authenticated."""

    def __init__(
        self,
        message: str = "Not authorized to access this route",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            status_code=401,
            error_code="UNAUTHENTICATED",
            details=details,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenError(BaseAppException):
    """Exception raised when an authenticated user may not act on a resource."""

    def __init__(
        self,
        message: str = "Permission denied",
        details: dict[str, Any] | None = None,
        error_code: str = "PERMISSION_DENIED",
    ):
        super().__init__(message=message, status_code=403, error_code=error_code, details=details)


class NotFoundError(BaseAppException):
    """Exception raised when a resource is not found."""

    def __init__(
        self,
        message: str = "Resource not found",
        details: dict[str, Any] | None = None,
        error_code: str = "NOT_FOUND",
    ):
        super().__init__(message=message, status_code=404, error_code=error_code, details=details)


class ConflictError(BaseAppException):
    """Exception raised on uniqueness violations."""

    def __init__(
        self,
        message: str = "Resource already exists",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, status_code=409, error_code="CONFLICT", details=details)


class PayloadTooLargeError(BaseAppException):
    """Exception raised when an upload exceeds the configured size limit."""

    def __init__(self, message: str = "File too large", details: dict[str, Any] | None = None):
        super().__init__(
            message=message, status_code=413, error_code="PAYLOAD_TOO_LARGE", details=details
        )
