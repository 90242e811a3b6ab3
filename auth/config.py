"""Authentication configuration."""

import os

from pydantic import BaseModel, Field, field_validator

from auth.types import Role


def _split_emails(raw: str | None) -> list[str]:
    """Parse a comma-separated address list from the environment."""
    if not raw:
        return []
    return [part for part in (p.strip() for p in raw.split(",")) if part]


class AuthConfig(BaseModel):
    """
    Authentication configuration.

    Durations are in hours for codes and sessions, minutes for rate-limit
    windows. Allow-lists decide who may request a link for which role;
    they are compared case-insensitively.
    """

    # Magic link settings
    code_expiry_hours: int = Field(
        default=4,
        description="How long a one-time code remains redeemable",
        ge=1,
        le=24,
    )
    code_length: int = Field(
        default=32,
        description="Number of alphanumeric characters per code",
        ge=32,
        le=128,
    )

    # Session settings
    session_expiry_hours: int = Field(
        default=24,
        description="Lifetime of a signed session credential",
        ge=1,
        le=168,
    )
    session_cookie_name: str = "dmrt_session"
    cookie_secure: bool = Field(
        default=True,
        description="Set the Secure flag on the session cookie (disable only for local http)",
    )

    # Rate limiting
    rate_limit_attempts: int = Field(
        default=5,
        description="Max code requests/redemptions per key per window",
        ge=1,
        le=20,
    )
    rate_limit_window_minutes: int = Field(
        default=15,
        description="Rate limit window duration",
        ge=1,
        le=60,
    )

    # Allow-lists
    team_member_emails: list[str] = Field(default_factory=list)
    pro_emails: list[str] = Field(default_factory=list)
    leader_emails: list[str] = Field(default_factory=list)

    # Application
    app_base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL for magic link generation",
    )
    app_name: str = Field(
        default="DMRT Social Media",
        description="Application name used in email subjects",
    )

    @field_validator("team_member_emails", "pro_emails", "leader_emails")
    @classmethod
    def _normalize_emails(cls, value: list[str]) -> list[str]:
        return [e.strip().lower() for e in value if e and e.strip()]

    @field_validator("app_base_url")
    @classmethod
    def _normalize_base_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value.startswith(("http://", "https://")):
            value = f"https://{value}"
        return value

    @classmethod
    def from_env(cls, **overrides) -> "AuthConfig":
        """
        Build config from environment variables.

        APPROVED_TEAM_EMAILS, PRO_EMAIL and TEAM_LEADER_EMAIL are
        comma-separated lists. APP_BASE_URL sets the link host.
        """
        values = {
            "team_member_emails": _split_emails(os.getenv("APPROVED_TEAM_EMAILS")),
            "pro_emails": _split_emails(os.getenv("PRO_EMAIL")),
            "leader_emails": _split_emails(os.getenv("TEAM_LEADER_EMAIL")),
        }
        if os.getenv("APP_BASE_URL"):
            values["app_base_url"] = os.environ["APP_BASE_URL"]
        if os.getenv("COOKIE_SECURE"):
            values["cookie_secure"] = os.environ["COOKIE_SECURE"].lower() not in ("0", "false", "no")
        values.update(overrides)
        return cls(**values)

    def recipients_for(self, role: Role) -> list[str]:
        """Allow-listed addresses for a role."""
        if role == Role.PRO:
            return list(self.pro_emails)
        if role == Role.LEADER:
            return list(self.leader_emails)
        return list(self.team_member_emails)

    def is_email_allowed(self, email: str, role: Role) -> bool:
        """Whether email may request a link for role."""
        return email.strip().lower() in self.recipients_for(role)

    def link_for(self, role: Role, code: str, submission_id: str | None = None) -> str:
        """
        Magic-link URL for a role.

        Leader links point at the submission awaiting approval.
        """
        if role == Role.PRO:
            return f"{self.app_base_url}/pro?code={code}"
        if role == Role.LEADER and submission_id:
            return f"{self.app_base_url}/approve/{submission_id}?code={code}"
        return f"{self.app_base_url}/?code={code}"
