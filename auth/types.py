"""Pydantic models for auth domain."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, EmailStr, Field


class Role(str, Enum):
    """Who a code or session speaks for. Ordered by ROLE_RANK."""

    TEAM_MEMBER = "team_member"
    PRO = "pro"
    LEADER = "leader"


# Strict total order: a higher rank satisfies every lower-rank requirement.
ROLE_RANK: dict[Role, int] = {
    Role.TEAM_MEMBER: 1,
    Role.PRO: 2,
    Role.LEADER: 3,
}


class AuthCode(BaseModel):
    """A one-time magic-link code as stored in auth_codes."""

    code: str = Field(..., min_length=32, description="Alphanumeric one-time code")
    email: EmailStr
    role: Role
    submission_id: str | None = None
    created_at: datetime
    expires_at: datetime
    used: bool  # Required - fail closed, no default

    model_config = {"from_attributes": True}


class Session(BaseModel):
    """Identity asserted by a verified session credential."""

    email: EmailStr
    role: Role
    submission_id: str | None = None
    issued_at: datetime
    expires_at: datetime


class Redemption(BaseModel):
    """
    Outcome of redeeming a code.

    Every failure is the same INVALID value so callers can't tell an
    unknown code from an expired or already used one.
    """

    valid: bool
    email: EmailStr | None = None
    role: Role | None = None
    submission_id: str | None = None

    model_config = {"frozen": True}


INVALID = Redemption(valid=False)


class CodeRequest(BaseModel):
    """Request payload for a magic link."""

    email: EmailStr
    role: Role


class RedeemRequest(BaseModel):
    """Request payload for exchanging a code for a session."""

    code: str = Field(..., min_length=1, max_length=256)
    role: Role | None = None
