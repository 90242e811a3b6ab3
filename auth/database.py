"""Database operations for one-time auth codes.

Owns the auth_codes table; nothing else writes it. Rows are never
deleted: expiry is checked at read time and used rows stay for the
audit trail.
"""

from auth.types import AuthCode
from clients.postgres_client import PostgresClient
from utils.timezone import now_utc


class AuthCodeDatabase:
    """Code Store backed by Postgres."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def store_code(self, auth_code: AuthCode) -> None:
        """Persist a freshly issued code.

        Raises:
            StoreError: If the insert fails (including a code collision).
        """
        self._db.execute_returning(
            """INSERT INTO auth_codes (code, email, role, submission_id, created_at, expires_at, used)
               VALUES (%s, %s, %s, %s, %s, %s, %s)
               RETURNING code""",
            (
                auth_code.code,
                auth_code.email,
                auth_code.role.value,
                auth_code.submission_id,
                auth_code.created_at,
                auth_code.expires_at,
                auth_code.used,
            ),
        )

    def get_code(self, code: str) -> AuthCode | None:
        """Retrieve a code by exact string match."""
        row = self._db.execute_single(
            """SELECT code, email, role, submission_id, created_at, expires_at, used
               FROM auth_codes
               WHERE code = %s""",
            (code,),
        )
        if row is None:
            return None
        return AuthCode.model_validate(row)

    def claim_code(self, code: str) -> bool:
        """Flip used false -> true, only if it is still false and unexpired.

        The WHERE clause is the compare half of the compare-and-swap.
        Postgres row locking makes concurrent claims of the same code
        serialize; the loser re-evaluates the WHERE against the committed
        row, sees used = true and updates nothing.

        Returns:
            True if this call performed the flip, False otherwise.
        """
        now = now_utc()
        rows = self._db.execute_returning(
            """UPDATE auth_codes
               SET used = true, used_at = %s
               WHERE code = %s AND used = false AND expires_at >= %s
               RETURNING code""",
            (now, code, now),
        )
        return len(rows) == 1
