"""
Submission persistence.

The workflow owns which transitions are legal; this service only stores
them. Status updates are conditional on the status the caller observed, so
two actors racing on the same submission can't both move it.
"""

import logging
from typing import Any
from uuid import uuid4

from clients.postgres_client import PostgresClient
from core.models import Submission, SubmissionCreate, SubmissionStatus
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

# Columns a status transition may set alongside status
_TRANSITION_COLUMNS = {"edited_by_pro", "posted_at"}


class SubmissionService:
    """Service for submission storage."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def create(self, submitted_by_email: str, data: SubmissionCreate) -> Submission:
        """Create a new submission in DRAFT status."""
        now = now_utc()
        row = self.postgres.execute_returning(
            """
            INSERT INTO submissions (
                id, submitted_by_email, status, notes, final_post_text,
                created_at, updated_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING *
            """,
            (
                str(uuid4()), submitted_by_email.strip().lower(),
                SubmissionStatus.DRAFT.value, data.notes, data.final_post_text,
                now, now,
            )
        )[0]
        return Submission.model_validate(row)

    def get_by_id(self, submission_id: str) -> Submission | None:
        """Get submission by ID, or None."""
        row = self.postgres.execute_single(
            "SELECT * FROM submissions WHERE id = %s",
            (submission_id,)
        )
        if row is None:
            return None
        return Submission.model_validate(row)

    def list_by_status(self, status: SubmissionStatus | None = None) -> list[Submission]:
        """List submissions, newest first, optionally filtered by status."""
        if status is None:
            rows = self.postgres.execute(
                "SELECT * FROM submissions ORDER BY created_at DESC"
            )
        else:
            rows = self.postgres.execute(
                "SELECT * FROM submissions WHERE status = %s ORDER BY created_at DESC",
                (status.value,)
            )
        return [Submission.model_validate(row) for row in rows]

    def update_status(
        self,
        submission_id: str,
        expected: SubmissionStatus,
        new: SubmissionStatus,
        extra: dict[str, Any] | None = None,
    ) -> Submission | None:
        """
        Move a submission from expected to new status.

        Args:
            submission_id: Submission id
            expected: Status the caller validated the transition against
            new: Target status
            extra: Additional columns to set (edited_by_pro, posted_at)

        Returns:
            The updated submission, or None if its status was no longer
            `expected` (someone else moved it first).

        Raises:
            ValueError: If extra names a column transitions may not set
        """
        extra = extra or {}
        unknown = set(extra) - _TRANSITION_COLUMNS
        if unknown:
            raise ValueError(f"Cannot set {', '.join(sorted(unknown))} during a status change")

        set_parts = ["status = %s", "updated_at = %s"]
        params: list[Any] = [new.value, now_utc()]
        for column, value in sorted(extra.items()):
            set_parts.append(f"{column} = %s")
            params.append(value)
        params.extend([submission_id, expected.value])

        rows = self.postgres.execute_returning(
            f"""
            UPDATE submissions
            SET {', '.join(set_parts)}
            WHERE id = %s AND status = %s
            RETURNING *
            """,
            tuple(params)
        )
        if not rows:
            logger.info(
                f"Submission {submission_id} not in {expected.value}; "
                f"transition to {new.value} skipped"
            )
            return None
        return Submission.model_validate(rows[0])

    def record_leader_approval(
        self,
        submission_id: str,
        expected: SubmissionStatus,
        new: SubmissionStatus,
        approved: bool,
        comment: str | None = None,
    ) -> Submission | None:
        """
        Store a leader decision and move the submission in one statement.

        The approval row is inserted only from the rows the UPDATE returned,
        so either both land or neither does: a lost race leaves no approval
        behind, and a failed insert leaves the status where it was.

        Returns:
            The updated submission, or None if its status was no longer
            `expected`.
        """
        now = now_utc()
        rows = self.postgres.execute_returning(
            """
            WITH moved AS (
                UPDATE submissions
                SET status = %s, updated_at = %s
                WHERE id = %s AND status = %s
                RETURNING *
            ), approval AS (
                INSERT INTO leader_approvals (id, submission_id, approved, comment, created_at)
                SELECT %s, moved.id, %s, %s, %s FROM moved
                RETURNING id
            )
            SELECT * FROM moved
            """,
            (
                new.value, now, submission_id, expected.value,
                str(uuid4()), approved, comment or None, now,
            )
        )
        if not rows:
            logger.info(
                f"Submission {submission_id} not in {expected.value}; "
                f"decision {'approve' if approved else 'reject'} skipped"
            )
            return None
        return Submission.model_validate(rows[0])
