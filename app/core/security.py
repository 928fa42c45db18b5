"""Security related functions: password hashing, JWT handling and opaque tokens."""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from jwt import ExpiredSignatureError, InvalidTokenError

from app.core.config import settings
from app.exceptions.base import UnauthenticatedError

_HASH_SCHEME = "pbkdf2_sha256"


def hash_password(password: str) -> str:
    """Hash a password with a random salt.

    The result has the form ``pbkdf2_sha256$<iterations>$<salt>$<hex digest>``.
    """
    salt = secrets.token_hex(16)
    iterations = settings.password_hash_iterations
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return f"{_HASH_SCHEME}${iterations}${salt}${digest.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    """Check a clear-text password against a stored hash."""
    try:
        scheme, iterations, salt, expected = password_hash.split("$", 3)
    except (AttributeError, ValueError):
        return False
    if scheme != _HASH_SCHEME:
        return False
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), int(iterations)
    )
    return secrets.compare_digest(digest.hex(), expected)


def generate_token(nbytes: int = 32) -> str:
    """Opaque, URL-safe, cryptographically strong token."""
    return secrets.token_urlsafe(nbytes)


def hash_token(token: str) -> str:
    """Tokens sent by email are only stored as their SHA-256 digest."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class TokenAuthenticator:
    """
    Issues and verifies the bearer tokens used by the REST API and the
    realtime channel.

    :ivar secret_key: The secret key used to sign JWT tokens.
    :type secret_key: str
    :ivar algorithm: Signing algorithm, HS256 by default.
    :type algorithm: str
    """

    def __init__(self, secret_key: str | None = None, algorithm: str | None = None):
        self.secret_key = secret_key or settings.secret_key
        self.algorithm = algorithm or settings.algorithm

    def create_access_token(
        self, subject: str, claims: dict[str, Any] | None = None, expires_minutes: int | None = None
    ) -> str:
        now = datetime.now(timezone.utc)
        expire = now + timedelta(minutes=expires_minutes or settings.access_token_expire_minutes)
        payload = {"sub": str(subject), "iat": now, "exp": expire}
        if claims:
            payload.update(claims)
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> dict:
        """
        Decode and validate a JWT.

        :param token: The JWT token to be verified.
        :return: The decoded payload.
        :raises UnauthenticatedError: If the token is expired, malformed or
            carries no subject.
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise UnauthenticatedError("Token has expired")
        except InvalidTokenError:
            raise UnauthenticatedError("Not authorized to access this route")

        if not payload.get("sub"):
            raise UnauthenticatedError("Invalid token payload - missing user ID")
        return payload


token_authenticator = TokenAuthenticator()


def create_access_token(user) -> str:
    """Issue an access token for a user with the profile claims the clients read."""
    return token_authenticator.create_access_token(
        subject=str(user.id),
        claims={"name": user.name, "email": user.email, "role": user.role},
    )
