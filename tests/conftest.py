"""Shared test fixtures for the DMRT workflow test suite.

Postgres and Valkey are replaced by small in-memory stores that honor the
same contracts (conditional claim, conditional status update, fixed-window
counters). Email and the security log are Mocks.
"""

import threading
from pathlib import Path
from unittest.mock import Mock
from uuid import uuid4

import pytest
from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from auth.codes import CodeIssuer, CodeValidator
from auth.config import AuthConfig
from auth.rate_limiter import RateLimiter
from auth.security_logger import SecurityLogger
from auth.service import AuthService
from auth.session import SessionManager
from clients.email_client import EmailGatewayClient
from clients.postgres_client import StoreError
from core.models import LeaderApproval, Submission, SubmissionStatus
from core.workflow import SubmissionWorkflow
from utils.timezone import now_utc


# =============================================================================
# TEST IDENTITIES
# =============================================================================

TEAM_EMAIL = "volunteer@dmrt-rescue.org"
OTHER_TEAM_EMAIL = "second.volunteer@dmrt-rescue.org"
PRO_EMAIL = "pro@dmrt-rescue.org"
LEADER_EMAIL = "leader@dmrt-rescue.org"
SECOND_LEADER_EMAIL = "deputy@dmrt-rescue.org"
OUTSIDER_EMAIL = "someone@elsewhere.org"

SESSION_SECRET = "test-session-secret-that-is-long-enough-0123456789"


# =============================================================================
# IN-MEMORY STORES
# =============================================================================


class FakeValkey:
    """Fixed-window counters with the ValkeyClient surface the rate limiter uses."""

    def __init__(self):
        self._values: dict[str, int] = {}
        self._ttls: dict[str, int] = {}

    def incr_window(self, key: str, window_seconds: int) -> int:
        self._values[key] = self._values.get(key, 0) + 1
        self._ttls.setdefault(key, window_seconds)
        return self._values[key]

    def get(self, key: str) -> str | None:
        value = self._values.get(key)
        return None if value is None else str(value)

    def delete(self, key: str) -> bool:
        self._ttls.pop(key, None)
        return self._values.pop(key, None) is not None

    def ttl(self, key: str) -> int:
        return self._ttls.get(key, -2)

    def keys(self) -> list[str]:
        return list(self._values)


class FakeCodeStore:
    """auth_codes table in memory, with the same conditional claim."""

    def __init__(self):
        self.codes = {}
        self._lock = threading.Lock()

    def store_code(self, auth_code) -> None:
        with self._lock:
            if auth_code.code in self.codes:
                raise StoreError("duplicate code")
            self.codes[auth_code.code] = auth_code.model_copy()

    def get_code(self, code: str):
        with self._lock:
            record = self.codes.get(code)
            return record.model_copy() if record else None

    def claim_code(self, code: str) -> bool:
        with self._lock:
            record = self.codes.get(code)
            if record is None or record.used or record.expires_at < now_utc():
                return False
            self.codes[code] = record.model_copy(update={"used": True})
            return True

    def codes_for(self, email: str) -> list:
        return [c for c in self.codes.values() if c.email == email]


class FakeSubmissionStore:
    """submissions and leader_approvals in memory, conditional on observed status."""

    def __init__(self):
        self.rows: dict[str, Submission] = {}
        self.approvals: list[LeaderApproval] = []
        self._lock = threading.Lock()

    def create(self, submitted_by_email, data) -> Submission:
        now = now_utc()
        submission = Submission(
            id=str(uuid4()),
            submitted_by_email=submitted_by_email.strip().lower(),
            status=SubmissionStatus.DRAFT,
            notes=data.notes,
            final_post_text=data.final_post_text,
            created_at=now,
            updated_at=now,
        )
        self.rows[submission.id] = submission
        return submission

    def get_by_id(self, submission_id):
        return self.rows.get(submission_id)

    def list_by_status(self, status=None):
        items = [s for s in self.rows.values() if status is None or s.status == status]
        return sorted(items, key=lambda s: s.created_at, reverse=True)

    def update_status(self, submission_id, expected, new, extra=None):
        with self._lock:
            current = self.rows.get(submission_id)
            if current is None or current.status != expected:
                return None
            updated = current.model_copy(
                update={"status": new, "updated_at": now_utc(), **(extra or {})}
            )
            self.rows[submission_id] = updated
            return updated

    def record_leader_approval(self, submission_id, expected, new, approved, comment=None):
        with self._lock:
            current = self.rows.get(submission_id)
            if current is None or current.status != expected:
                return None
            now = now_utc()
            updated = current.model_copy(update={"status": new, "updated_at": now})
            self.rows[submission_id] = updated
            self.approvals.append(LeaderApproval(
                id=str(uuid4()),
                submission_id=submission_id,
                approved=approved,
                comment=comment or None,
                created_at=now,
            ))
            return updated

    def put(self, submitted_by_email, status, final_post_text="Rescue at the quarry", **fields) -> Submission:
        """Seed a submission directly in a given status."""
        now = now_utc()
        submission = Submission(
            id=str(uuid4()),
            submitted_by_email=submitted_by_email,
            status=status,
            notes="Call-out notes",
            final_post_text=final_post_text,
            created_at=now,
            updated_at=now,
            **fields,
        )
        self.rows[submission.id] = submission
        return submission


# =============================================================================
# CONFIG & INFRASTRUCTURE FIXTURES
# =============================================================================


@pytest.fixture
def config():
    """Auth config with one address per role and a second leader."""
    return AuthConfig(
        team_member_emails=[TEAM_EMAIL, OTHER_TEAM_EMAIL],
        pro_emails=[PRO_EMAIL],
        leader_emails=[LEADER_EMAIL, SECOND_LEADER_EMAIL],
        app_base_url="https://social.dmrt-rescue.org",
        rate_limit_attempts=5,
        rate_limit_window_minutes=15,
        cookie_secure=False,  # TestClient talks plain http
    )


@pytest.fixture
def valkey():
    return FakeValkey()


@pytest.fixture
def code_store():
    return FakeCodeStore()


@pytest.fixture
def submission_store():
    return FakeSubmissionStore()


@pytest.fixture
def mock_email_client():
    """Mock email client - sends succeed unless a test says otherwise."""
    mock = Mock(spec=EmailGatewayClient)
    mock.send.return_value = None
    return mock


@pytest.fixture
def mock_security_logger():
    return Mock(spec=SecurityLogger)


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def session_manager(config):
    return SessionManager(SESSION_SECRET, config)


@pytest.fixture
def issuer(code_store, config):
    return CodeIssuer(code_store, config)


@pytest.fixture
def validator(code_store):
    return CodeValidator(code_store)


@pytest.fixture
def rate_limiter(valkey, config):
    return RateLimiter(valkey, config)


@pytest.fixture
def auth_service(config, issuer, validator, session_manager, rate_limiter, mock_email_client, mock_security_logger):
    """Real AuthService over in-memory stores, mocked email and security log."""
    return AuthService(
        config=config,
        issuer=issuer,
        validator=validator,
        session_manager=session_manager,
        rate_limiter=rate_limiter,
        email_client=mock_email_client,
        security_logger=mock_security_logger,
    )


@pytest.fixture
def workflow(submission_store, auth_service, mock_security_logger, config):
    return SubmissionWorkflow(
        submission_store, auth_service, mock_security_logger, app_name=config.app_name
    )


# =============================================================================
# HELPERS
# =============================================================================


def sent_links(mock_email_client) -> dict[str, str]:
    """Recipient -> link for every send() call so far."""
    links = {}
    for call in mock_email_client.send.call_args_list:
        to, _subject, link = call.args
        links[to] = link
    return links


def code_from_link(link: str) -> str:
    return link.split("code=", 1)[1]
