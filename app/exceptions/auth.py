"""Authentication and account exceptions."""

from .base import BadRequestError, ConflictError, UnauthenticatedError


class InvalidCredentialsError(UnauthenticatedError):
    """Raised when email and password do not match an active account."""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message=message)


class AccountDeactivatedError(UnauthenticatedError):
    """Raised when a deactivated account tries to authenticate."""

    def __init__(self, message: str = "Your account has been deactivated"):
        super().__init__(message=message)


class EmailAlreadyRegisteredError(ConflictError):
    """Raised when registering an email that already has an account."""

    def __init__(self, message: str = "Email is already registered"):
        super().__init__(message=message)


class InvalidTokenError(BadRequestError):
    """Raised for unknown or expired verification and reset tokens."""

    def __init__(self, message: str = "Token is invalid or has expired"):
        super().__init__(message=message, error_code="INVALID_TOKEN")
