"""Typed exceptions for auth failures."""

from clients.postgres_client import StoreError


class AuthError(Exception):
    """Base class for authentication/authorization errors."""


class UnauthenticatedError(AuthError):
    """No session, or the session credential failed verification. Maps to 401."""


class ForbiddenError(AuthError):
    """Authenticated, but the role or ownership doesn't allow the operation. Maps to 403."""


class EmailNotAuthorizedError(AuthError):
    """
    Email isn't on the allow-list for the requested role.

    Raised before any code is issued.
    """


class RateLimitedError(AuthError):
    """Too many attempts. Client should wait before retrying."""

    def __init__(self, retry_after_seconds: int):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(f"Rate limited. Retry after {retry_after_seconds} seconds.")


__all__ = [
    "AuthError",
    "UnauthenticatedError",
    "ForbiddenError",
    "EmailNotAuthorizedError",
    "RateLimitedError",
    "StoreError",
]
