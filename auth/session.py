"""Signed session credentials.

A session is an HS256 JWT carried in a cookie. The credential is the
whole session: nothing is stored server-side, so a session can't be
revoked before it expires. Its lifetime is bounded by
config.session_expiry_hours instead.
"""

import logging
from datetime import timedelta

from jose import JWTError, jwt
from pydantic import ValidationError

from auth.config import AuthConfig
from auth.types import Role, Session
from utils.timezone import now_utc, to_epoch_seconds, from_epoch_seconds

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
MIN_SECRET_LENGTH = 32
MAX_CREDENTIAL_LENGTH = 4096


class SessionManager:
    """Issues and verifies signed, time-limited session credentials."""

    def __init__(self, secret: str, config: AuthConfig):
        if not secret or len(secret) < MIN_SECRET_LENGTH:
            raise ValueError(f"Session secret must be at least {MIN_SECRET_LENGTH} characters")
        self._secret = secret
        self._config = config

    @property
    def max_age_seconds(self) -> int:
        """Cookie max-age matching the credential lifetime."""
        return self._config.session_expiry_hours * 3600

    def create(self, email: str, role: Role, submission_id: str | None = None) -> str:
        """Sign a credential for email/role, valid for session_expiry_hours."""
        issued_at = now_utc()
        expires_at = issued_at + timedelta(hours=self._config.session_expiry_hours)

        claims = {
            "sub": email,
            "role": role.value,
            "iat": to_epoch_seconds(issued_at),
            "exp": to_epoch_seconds(expires_at),
        }
        if submission_id:
            claims["sid"] = submission_id

        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def verify(self, credential: str | None) -> Session | None:
        """Return the session a credential asserts, or None.

        None covers every failure: missing, oversized, malformed, bad
        signature, wrong algorithm, expired, or claims of the wrong shape.
        Nothing raises past this method.
        """
        if not credential or len(credential) > MAX_CREDENTIAL_LENGTH:
            return None

        try:
            claims = jwt.decode(
                credential,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require_exp": True, "require_iat": True, "require_sub": True},
            )
        except JWTError as e:
            logger.debug(f"Session credential rejected: {e.__class__.__name__}")
            return None

        try:
            return Session(
                email=claims["sub"],
                role=Role(claims["role"]),
                submission_id=claims.get("sid"),
                issued_at=from_epoch_seconds(claims["iat"]),
                expires_at=from_epoch_seconds(claims["exp"]),
            )
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            logger.debug(f"Session claims malformed: {e.__class__.__name__}")
            return None
