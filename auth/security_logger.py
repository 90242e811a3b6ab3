"""Security event logging for auth audit trail.

Append-only log to the security_events table. Codes are recorded only
as a short prefix; session credentials and secrets are never recorded.
"""

from enum import Enum
from typing import Any

from psycopg2.extras import Json

from auth.types import Role
from clients.postgres_client import PostgresClient
from utils.timezone import now_utc

CODE_PREFIX_LENGTH = 6


def code_hint(code: str | None) -> str | None:
    """Loggable prefix of a code."""
    if not code:
        return None
    return code[:CODE_PREFIX_LENGTH]


class SecurityEvent(Enum):
    """Auth security event types."""

    CODE_REQUESTED = "code_requested"
    CODE_ISSUED = "code_issued"
    CODE_REDEEMED = "code_redeemed"
    CODE_REJECTED = "code_rejected"
    EMAIL_NOT_AUTHORIZED = "email_not_authorized"
    NOTIFICATION_FAILED = "notification_failed"
    SESSION_CREATED = "session_created"
    LOGOUT = "logout"
    RATE_LIMITED = "rate_limited"
    SUBMISSION_TRANSITION = "submission_transition"


class SecurityLogger:
    """Append-only security event logger."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def log(
        self,
        event: SecurityEvent,
        email: str | None = None,
        role: Role | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Log security event to database."""
        self._db.execute_returning(
            """INSERT INTO security_events
               (event_type, email, role, ip_address, user_agent, details, created_at)
               VALUES (%s, %s, %s, %s, %s, %s, %s)
               RETURNING id""",
            (
                event.value,
                email,
                role.value if role else None,
                ip_address,
                user_agent,
                Json(details) if details else None,
                now_utc(),
            ),
        )
