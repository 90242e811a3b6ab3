"""One-time code issuance and redemption.

CodeIssuer writes new codes; CodeValidator redeems them exactly once.
Both talk only to the Code Store (AuthCodeDatabase).
"""

import logging
import secrets
import string
from datetime import timedelta

from auth.config import AuthConfig
from auth.database import AuthCodeDatabase
from auth.security_logger import code_hint
from auth.types import AuthCode, Redemption, Role, INVALID
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_letters + string.digits


def generate_code(length: int = 32) -> str:
    """Uniformly random alphanumeric code from the OS CSPRNG."""
    if length < 32:
        raise ValueError("Codes must be at least 32 characters")
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


class CodeIssuer:
    """Creates and persists one-time codes scoped to email, role and optional submission."""

    def __init__(self, codes: AuthCodeDatabase, config: AuthConfig):
        self._codes = codes
        self._config = config

    def issue(self, email: str, role: Role, submission_id: str | None = None) -> str:
        """Issue a code valid for config.code_expiry_hours.

        The record is persisted before the code is returned, so a returned
        code is always redeemable.

        Raises:
            StoreError: If persistence fails. No code is returned.
        """
        now = now_utc()
        auth_code = AuthCode(
            code=generate_code(self._config.code_length),
            email=email.strip().lower(),
            role=role,
            submission_id=submission_id,
            created_at=now,
            expires_at=now + timedelta(hours=self._config.code_expiry_hours),
            used=False,
        )
        self._codes.store_code(auth_code)
        logger.info(
            f"Issued {role.value} code {code_hint(auth_code.code)}"
            + (f" for submission {submission_id}" if submission_id else "")
        )
        return auth_code.code


class CodeValidator:
    """Redeems codes exactly once.

    Every failure returns the shared INVALID result. Only StoreError
    (infrastructure) escapes.
    """

    def __init__(self, codes: AuthCodeDatabase):
        self._codes = codes

    def _reject(self, code: str, reason: str) -> Redemption:
        logger.info(f"Rejected code {code_hint(code)}: {reason}")
        return INVALID

    def redeem(self, code: str, expected_role: Role | None = None) -> Redemption:
        """Exchange a code for the identity it was issued to.

        The read-side checks reject the common cases cheaply; the
        conditional claim is what actually guarantees a single winner when
        the same link is opened twice at once.
        """
        if not code:
            return self._reject(code, "empty")

        record = self._codes.get_code(code)
        if record is None:
            return self._reject(code, "unknown")

        if record.used:
            return self._reject(code, "already used")

        if record.expires_at < now_utc():
            return self._reject(code, "expired")

        if expected_role is not None and record.role != expected_role:
            return self._reject(code, "role mismatch")

        if not self._codes.claim_code(code):
            return self._reject(code, "lost concurrent claim")

        return Redemption(
            valid=True,
            email=record.email,
            role=record.role,
            submission_id=record.submission_id,
        )
