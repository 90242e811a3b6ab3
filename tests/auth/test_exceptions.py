"""Tests for auth/exceptions.py - Typed exceptions for auth failures."""

import pytest

from auth.exceptions import (
    AuthError,
    EmailNotAuthorizedError,
    ForbiddenError,
    RateLimitedError,
    StoreError,
    UnauthenticatedError,
)
from clients.postgres_client import StoreError as ClientStoreError


class TestExceptionInheritance:
    """Auth exceptions inherit from AuthError; StoreError does not."""

    @pytest.mark.parametrize(
        "exc", [UnauthenticatedError, ForbiddenError, EmailNotAuthorizedError, RateLimitedError]
    )
    def test_inherits_auth_error(self, exc):
        assert issubclass(exc, AuthError)

    def test_store_error_is_infrastructure(self):
        assert not issubclass(StoreError, AuthError)

    def test_store_error_is_reexported(self):
        assert StoreError is ClientStoreError


class TestRateLimitedError:

    def test_carries_retry_after(self):
        err = RateLimitedError(retry_after_seconds=42)

        assert err.retry_after_seconds == 42
        assert "42" in str(err)
