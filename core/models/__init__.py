"""Core domain models."""

from core.models.submission import (
    Submission,
    SubmissionCreate,
    SubmissionStatus,
    LeaderApproval,
)

__all__ = [
    "Submission", "SubmissionCreate", "SubmissionStatus", "LeaderApproval",
]
