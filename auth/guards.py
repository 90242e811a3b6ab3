"""Request-time authorization checks.

Each guard takes the session resolved for the current request (None when
the request carries no valid credential) and either returns it or raises
UnauthenticatedError / ForbiddenError.
"""

from auth.exceptions import ForbiddenError, UnauthenticatedError
from auth.types import ROLE_RANK, Role, Session


def role_rank(role: Role) -> int:
    """Position of role in the team_member < pro < leader order."""
    return ROLE_RANK[role]


def require_authenticated(session: Session | None) -> Session:
    """Any valid session."""
    if session is None:
        raise UnauthenticatedError("Authentication required")
    return session


def require_role(session: Session | None, min_role: Role) -> Session:
    """A session whose role ranks at least min_role.

    Higher roles satisfy lower requirements: a leader passes a pro check.
    """
    session = require_authenticated(session)
    if role_rank(session.role) < role_rank(min_role):
        raise ForbiddenError(f"Requires {min_role.value} role or higher")
    return session


def check_resource_access(
    session: Session | None,
    resource_owner_email: str,
    allow_pro: bool = True,
    allow_leader: bool = True,
) -> Session:
    """Owner always passes; pro and leader sessions pass only when allowed.

    The role allowances are exact matches, not rank comparisons, so
    allow_pro=False, allow_leader=True admits leaders and owners only.
    """
    session = require_authenticated(session)

    if session.email.lower() == resource_owner_email.strip().lower():
        return session
    if allow_pro and session.role == Role.PRO:
        return session
    if allow_leader and session.role == Role.LEADER:
        return session

    raise ForbiddenError("Access denied")
