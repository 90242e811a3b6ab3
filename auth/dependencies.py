"""
FastAPI dependencies over the session resolved by AuthMiddleware.

- current_session: Session or None, never raises
- authenticated: any valid session (401 otherwise)
- role_at_least(role): rank-based minimum role (401/403)
"""

from fastapi import Depends, Request

from auth.guards import require_authenticated, require_role
from auth.types import Role, Session


def current_session(request: Request) -> Session | None:
    """Session attached by AuthMiddleware, if any."""
    return getattr(request.state, "session", None)


def authenticated(session: Session | None = Depends(current_session)) -> Session:
    """Require any valid session."""
    return require_authenticated(session)


def role_at_least(min_role: Role):
    """Dependency factory: require a session ranked min_role or higher."""

    def dependency(session: Session | None = Depends(current_session)) -> Session:
        return require_role(session, min_role)

    dependency.__name__ = f"role_at_least_{min_role.value}"
    return dependency
