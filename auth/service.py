"""Authentication service - orchestrates the magic-link flow."""

import logging
from dataclasses import dataclass, field

from auth.codes import CodeIssuer, CodeValidator
from auth.config import AuthConfig
from auth.exceptions import EmailNotAuthorizedError, RateLimitedError, StoreError
from auth.rate_limiter import UNKNOWN_CLIENT, RateLimiter
from auth.security_logger import SecurityLogger, SecurityEvent, code_hint
from auth.session import SessionManager
from auth.types import Redemption, Role, Session
from clients.email_client import EmailGatewayClient, EmailGatewayError

logger = logging.getLogger(__name__)

REQUEST_ACTION = "request"
REDEEM_ACTION = "redeem"


@dataclass
class RedeemResult:
    """Result of a redemption. credential is set only when redemption.valid."""

    redemption: Redemption
    credential: str | None = None


@dataclass
class DispatchResult:
    """Codes issued and links sent to every recipient of a role."""

    role: Role
    sent_to: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def notified(self) -> bool:
        return bool(self.sent_to) and not self.failed


class AuthService:
    """Orchestrates magic-link authentication.

    Handles:
    - Code requests (allow-list, rate limit, issue, notify)
    - Code redemption and session issuance
    - Links for the next actor in the submission workflow
    - Logout
    """

    def __init__(
        self,
        config: AuthConfig,
        issuer: CodeIssuer,
        validator: CodeValidator,
        session_manager: SessionManager,
        rate_limiter: RateLimiter,
        email_client: EmailGatewayClient,
        security_logger: SecurityLogger,
    ):
        self._config = config
        self._issuer = issuer
        self._validator = validator
        self._session_manager = session_manager
        self._rate_limiter = rate_limiter
        self._email_client = email_client
        self._security_logger = security_logger

    @property
    def session_manager(self) -> SessionManager:
        return self._session_manager

    def request_code(
        self,
        email: str,
        role: Role,
        ip_address: str | None,
        user_agent: str | None,
    ) -> None:
        """Issue a login code for email/role and email the link.

        Flow:
        1. Rate limit per IP and per email
        2. Check the role's allow-list
        3. Issue and persist the code
        4. Send the link

        Raises:
            RateLimitedError: If either limit is exceeded.
            EmailNotAuthorizedError: If email isn't allowed for role.
            StoreError: If the code couldn't be persisted.
            EmailGatewayError: If the code was issued but the email failed.
        """
        email = email.strip().lower()

        try:
            self._rate_limiter.check(REQUEST_ACTION, ip_address or UNKNOWN_CLIENT, email)
        except RateLimitedError:
            self._security_logger.log(
                SecurityEvent.RATE_LIMITED,
                email=email,
                role=role,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"action": REQUEST_ACTION},
            )
            raise

        if not self._config.is_email_allowed(email, role):
            self._security_logger.log(
                SecurityEvent.EMAIL_NOT_AUTHORIZED,
                email=email,
                role=role,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            raise EmailNotAuthorizedError(f"Email not authorized for role {role.value}")

        self._security_logger.log(
            SecurityEvent.CODE_REQUESTED,
            email=email,
            role=role,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        code = self._issuer.issue(email, role)
        self._security_logger.log(
            SecurityEvent.CODE_ISSUED,
            email=email,
            role=role,
            ip_address=ip_address,
            details={"code": code_hint(code)},
        )

        try:
            self._email_client.send(
                email,
                f"{self._config.app_name} - Your Login Link",
                self._config.link_for(role, code),
            )
        except EmailGatewayError as e:
            self._security_logger.log(
                SecurityEvent.NOTIFICATION_FAILED,
                email=email,
                role=role,
                details={"code": code_hint(code), "error": str(e)},
            )
            raise

    def redeem_code(
        self,
        code: str,
        expected_role: Role | None,
        ip_address: str | None,
        user_agent: str | None,
    ) -> RedeemResult:
        """Redeem a code and mint a session credential on success.

        Raises:
            RateLimitedError: If the IP or the code prefix has too many attempts.
            StoreError: If the code store is unreachable.
        """
        try:
            self._rate_limiter.check(REDEEM_ACTION, ip_address or UNKNOWN_CLIENT, code_hint(code))
        except RateLimitedError:
            self._security_logger.log(
                SecurityEvent.RATE_LIMITED,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"action": REDEEM_ACTION},
            )
            raise

        redemption = self._validator.redeem(code, expected_role)

        if not redemption.valid:
            self._security_logger.log(
                SecurityEvent.CODE_REJECTED,
                role=expected_role,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"code": code_hint(code)},
            )
            return RedeemResult(redemption=redemption)

        credential = self._session_manager.create(
            redemption.email,
            redemption.role,
            redemption.submission_id,
        )

        self._rate_limiter.reset(REQUEST_ACTION, redemption.email)

        self._security_logger.log(
            SecurityEvent.CODE_REDEEMED,
            email=redemption.email,
            role=redemption.role,
            ip_address=ip_address,
            user_agent=user_agent,
            details={"code": code_hint(code)},
        )
        self._security_logger.log(
            SecurityEvent.SESSION_CREATED,
            email=redemption.email,
            role=redemption.role,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        return RedeemResult(redemption=redemption, credential=credential)

    def dispatch_link(
        self,
        role: Role,
        subject: str,
        submission_id: str | None = None,
    ) -> DispatchResult:
        """Issue a code for every allow-listed address of role and email each its own link.

        A code is single-use, so recipients never share one.
        Store and email failures are collected rather than raised: the
        caller has already committed its state change and must be able to
        report "done, but not notified".
        """
        result = DispatchResult(role=role)
        recipients = self._config.recipients_for(role)
        if not recipients:
            logger.warning(f"No {role.value} recipients configured; nobody notified")
            return result

        for email in recipients:
            try:
                code = self._issuer.issue(email, role, submission_id)
            except StoreError as e:
                logger.error(f"Could not issue {role.value} code: {e}")
                result.failed.append(email)
                continue

            try:
                self._email_client.send(
                    email,
                    subject,
                    self._config.link_for(role, code, submission_id),
                )
            except EmailGatewayError as e:
                logger.error(f"Failed to notify {role.value} recipient: {e}")
                result.failed.append(email)
                self._log_quietly(
                    SecurityEvent.NOTIFICATION_FAILED,
                    email=email,
                    role=role,
                    details={"code": code_hint(code), "submission_id": submission_id},
                )
            else:
                result.sent_to.append(email)

        return result

    def _log_quietly(self, event: SecurityEvent, **fields) -> None:
        """Security log write whose failure must not undo a committed change."""
        try:
            self._security_logger.log(event, **fields)
        except StoreError as e:
            logger.error(f"Could not record {event.value} security event: {e}")

    def verify_session(self, credential: str | None) -> Session | None:
        """Resolve a cookie value to a session, or None."""
        return self._session_manager.verify(credential)

    def logout(self, credential: str | None, ip_address: str | None) -> None:
        """Record a logout.

        Sessions are stateless, so the credential stays valid until it
        expires; clearing the cookie is the boundary's job.
        """
        session = self._session_manager.verify(credential)
        self._security_logger.log(
            SecurityEvent.LOGOUT,
            email=session.email if session else None,
            role=session.role if session else None,
            ip_address=ip_address,
        )
