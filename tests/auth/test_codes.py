"""Tests for code issuance and single-use redemption."""

import string
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from auth.codes import CODE_ALPHABET, generate_code
from auth.types import INVALID, Role
from clients.postgres_client import StoreError
from utils.timezone import now_utc

from conftest import LEADER_EMAIL, PRO_EMAIL, TEAM_EMAIL


class TestGenerateCode:
    """Code shape."""

    def test_default_length_is_32(self):
        assert len(generate_code()) == 32

    def test_only_alphanumeric(self):
        code = generate_code(64)
        assert len(code) == 64
        assert set(code) <= set(string.ascii_letters + string.digits)

    def test_alphabet_is_62_characters(self):
        assert len(CODE_ALPHABET) == 62

    def test_rejects_short_codes(self):
        with pytest.raises(ValueError):
            generate_code(16)

    def test_codes_are_unique(self):
        codes = {generate_code() for _ in range(1000)}
        assert len(codes) == 1000


class TestIssue:
    """CodeIssuer persists before returning."""

    def test_returned_code_is_stored(self, issuer, code_store):
        code = issuer.issue(TEAM_EMAIL, Role.TEAM_MEMBER)

        record = code_store.get_code(code)
        assert record is not None
        assert record.email == TEAM_EMAIL
        assert record.role == Role.TEAM_MEMBER
        assert record.used is False

    def test_expiry_is_config_hours_after_creation(self, issuer, code_store, config):
        code = issuer.issue(TEAM_EMAIL, Role.TEAM_MEMBER)

        record = code_store.get_code(code)
        assert record.expires_at - record.created_at == timedelta(hours=config.code_expiry_hours)

    def test_email_is_lowercased(self, issuer, code_store):
        code = issuer.issue("Volunteer@DMRT-Rescue.org", Role.TEAM_MEMBER)

        assert code_store.get_code(code).email == TEAM_EMAIL

    def test_submission_scope_is_kept(self, issuer, code_store):
        code = issuer.issue(LEADER_EMAIL, Role.LEADER, submission_id="sub-123")

        assert code_store.get_code(code).submission_id == "sub-123"

    def test_store_failure_returns_no_code(self, issuer, code_store, monkeypatch):
        def broken(_auth_code):
            raise StoreError("down")

        monkeypatch.setattr(code_store, "store_code", broken)

        with pytest.raises(StoreError):
            issuer.issue(TEAM_EMAIL, Role.TEAM_MEMBER)


class TestRedeem:
    """CodeValidator outcomes."""

    def test_valid_code_returns_identity(self, issuer, validator):
        code = issuer.issue(PRO_EMAIL, Role.PRO)

        result = validator.redeem(code)

        assert result.valid is True
        assert result.email == PRO_EMAIL
        assert result.role == Role.PRO
        assert result.submission_id is None

    def test_redeem_marks_code_used(self, issuer, validator, code_store):
        code = issuer.issue(PRO_EMAIL, Role.PRO)

        validator.redeem(code)

        assert code_store.get_code(code).used is True

    def test_second_redemption_is_invalid(self, issuer, validator):
        code = issuer.issue(TEAM_EMAIL, Role.TEAM_MEMBER)

        assert validator.redeem(code).valid is True
        assert validator.redeem(code) == INVALID

    def test_unknown_code_is_invalid(self, validator):
        assert validator.redeem(generate_code()) == INVALID

    def test_empty_code_is_invalid(self, validator):
        assert validator.redeem("") == INVALID

    def test_expired_code_is_invalid(self, issuer, validator, code_store):
        code = issuer.issue(TEAM_EMAIL, Role.TEAM_MEMBER)
        record = code_store.codes[code]
        code_store.codes[code] = record.model_copy(
            update={"expires_at": now_utc() - timedelta(seconds=1)}
        )

        assert validator.redeem(code) == INVALID
        # Still unused: a rejected redemption has no side effects
        assert code_store.get_code(code).used is False

    def test_code_expiring_later_is_valid(self, issuer, validator, code_store):
        code = issuer.issue(TEAM_EMAIL, Role.TEAM_MEMBER)
        record = code_store.codes[code]
        code_store.codes[code] = record.model_copy(
            update={"expires_at": now_utc() + timedelta(minutes=1)}
        )

        assert validator.redeem(code).valid is True

    def test_role_mismatch_is_invalid_and_keeps_code(self, issuer, validator, code_store):
        code = issuer.issue(TEAM_EMAIL, Role.TEAM_MEMBER)

        assert validator.redeem(code, expected_role=Role.LEADER) == INVALID
        assert code_store.get_code(code).used is False
        assert validator.redeem(code, expected_role=Role.TEAM_MEMBER).valid is True

    def test_leader_code_carries_submission(self, issuer, validator):
        code = issuer.issue(LEADER_EMAIL, Role.LEADER, submission_id="sub-9")

        result = validator.redeem(code, expected_role=Role.LEADER)

        assert result.submission_id == "sub-9"

    def test_failures_are_indistinguishable(self, issuer, validator):
        used = issuer.issue(TEAM_EMAIL, Role.TEAM_MEMBER)
        validator.redeem(used)

        outcomes = [
            validator.redeem(used),
            validator.redeem("X" * 32),
            validator.redeem(""),
        ]

        assert all(o == INVALID for o in outcomes)
        assert len({o.model_dump_json() for o in outcomes}) == 1

    def test_lost_claim_is_invalid(self, issuer, validator, code_store, monkeypatch):
        code = issuer.issue(TEAM_EMAIL, Role.TEAM_MEMBER)
        monkeypatch.setattr(code_store, "claim_code", lambda _code: False)

        assert validator.redeem(code) == INVALID


class TestConcurrentRedemption:
    """The same link opened many times at once has exactly one winner."""

    def test_exactly_one_of_many_concurrent_redemptions_succeeds(self, issuer, validator):
        code = issuer.issue(TEAM_EMAIL, Role.TEAM_MEMBER)

        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(lambda _: validator.redeem(code), range(32)))

        winners = [r for r in results if r.valid]
        assert len(winners) == 1
        assert winners[0].email == TEAM_EMAIL
        assert all(r == INVALID for r in results if not r.valid)
