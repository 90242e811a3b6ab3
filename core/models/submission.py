"""Submission domain models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, EmailStr, Field


class SubmissionStatus(str, Enum):
    """Submission lifecycle status."""

    DRAFT = "draft"
    AWAITING_PRO = "awaiting_pro"
    AWAITING_LEADER = "awaiting_leader"
    AWAITING_PRO_TO_POST = "awaiting_pro_to_post"
    POSTED = "posted"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (SubmissionStatus.POSTED, SubmissionStatus.REJECTED)


class SubmissionCreate(BaseModel):
    """Data required to create a draft submission."""

    notes: str = Field(..., min_length=1, max_length=10000)
    final_post_text: str | None = Field(None, max_length=10000)


class Submission(BaseModel):
    """Full submission entity as stored."""

    id: str
    submitted_by_email: EmailStr
    status: SubmissionStatus
    notes: str
    final_post_text: str | None = None
    edited_by_pro: str | None = None
    posted_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @property
    def post_text(self) -> str | None:
        """Text that would be published: PRO edits win over the draft."""
        return self.edited_by_pro or self.final_post_text


class LeaderApproval(BaseModel):
    """A team leader's decision on a submission."""

    id: str
    submission_id: str
    approved: bool
    comment: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
