"""Tests for AuthConfig - allow-lists, links and environment parsing."""

import pytest
from pydantic import ValidationError

from auth.config import AuthConfig
from auth.types import Role


class TestDefaults:

    def test_defaults(self):
        config = AuthConfig()

        assert config.code_expiry_hours == 4
        assert config.code_length == 32
        assert config.session_expiry_hours == 24
        assert config.session_cookie_name == "dmrt_session"
        assert config.cookie_secure is True
        assert config.rate_limit_attempts == 5
        assert config.rate_limit_window_minutes == 15

    def test_code_length_below_32_rejected(self):
        with pytest.raises(ValidationError):
            AuthConfig(code_length=16)

    def test_zero_expiry_rejected(self):
        with pytest.raises(ValidationError):
            AuthConfig(code_expiry_hours=0)


class TestAllowLists:

    def test_emails_normalized(self):
        config = AuthConfig(pro_emails=["  PRO@Dmrt-Rescue.org ", ""])

        assert config.pro_emails == ["pro@dmrt-rescue.org"]

    def test_is_email_allowed_case_insensitive(self):
        config = AuthConfig(leader_emails=["leader@dmrt-rescue.org"])

        assert config.is_email_allowed("Leader@DMRT-rescue.org", Role.LEADER)

    def test_allow_lists_are_per_role(self):
        config = AuthConfig(
            team_member_emails=["volunteer@dmrt-rescue.org"],
            pro_emails=["pro@dmrt-rescue.org"],
        )

        assert not config.is_email_allowed("volunteer@dmrt-rescue.org", Role.PRO)
        assert not config.is_email_allowed("pro@dmrt-rescue.org", Role.LEADER)

    def test_recipients_for_returns_copy(self):
        config = AuthConfig(leader_emails=["leader@dmrt-rescue.org"])

        config.recipients_for(Role.LEADER).append("intruder@elsewhere.org")

        assert config.leader_emails == ["leader@dmrt-rescue.org"]


class TestLinks:

    @pytest.fixture
    def config(self):
        return AuthConfig(app_base_url="social.dmrt-rescue.org/")

    def test_base_url_normalized(self, config):
        assert config.app_base_url == "https://social.dmrt-rescue.org"

    def test_team_member_link(self, config):
        assert config.link_for(Role.TEAM_MEMBER, "abc") == "https://social.dmrt-rescue.org/?code=abc"

    def test_pro_link(self, config):
        assert config.link_for(Role.PRO, "abc") == "https://social.dmrt-rescue.org/pro?code=abc"

    def test_leader_link_points_at_submission(self, config):
        link = config.link_for(Role.LEADER, "abc", submission_id="sub-1")

        assert link == "https://social.dmrt-rescue.org/approve/sub-1?code=abc"

    def test_leader_link_without_submission(self, config):
        assert config.link_for(Role.LEADER, "abc") == "https://social.dmrt-rescue.org/?code=abc"


class TestFromEnv:

    def test_reads_allow_lists(self, monkeypatch):
        monkeypatch.setenv("APPROVED_TEAM_EMAILS", "a@dmrt-rescue.org, B@dmrt-rescue.org")
        monkeypatch.setenv("PRO_EMAIL", "pro@dmrt-rescue.org")
        monkeypatch.setenv("TEAM_LEADER_EMAIL", "leader@dmrt-rescue.org,deputy@dmrt-rescue.org")
        monkeypatch.setenv("APP_BASE_URL", "https://social.dmrt-rescue.org")
        monkeypatch.delenv("COOKIE_SECURE", raising=False)

        config = AuthConfig.from_env()

        assert config.team_member_emails == ["a@dmrt-rescue.org", "b@dmrt-rescue.org"]
        assert config.pro_emails == ["pro@dmrt-rescue.org"]
        assert config.leader_emails == ["leader@dmrt-rescue.org", "deputy@dmrt-rescue.org"]
        assert config.app_base_url == "https://social.dmrt-rescue.org"
        assert config.cookie_secure is True

    def test_missing_env_means_empty_lists(self, monkeypatch):
        for name in ("APPROVED_TEAM_EMAILS", "PRO_EMAIL", "TEAM_LEADER_EMAIL"):
            monkeypatch.delenv(name, raising=False)

        config = AuthConfig.from_env()

        assert config.recipients_for(Role.TEAM_MEMBER) == []

    def test_cookie_secure_can_be_disabled(self, monkeypatch):
        monkeypatch.setenv("COOKIE_SECURE", "false")

        assert AuthConfig.from_env().cookie_secure is False

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("PRO_EMAIL", "pro@dmrt-rescue.org")

        config = AuthConfig.from_env(pro_emails=["other@dmrt-rescue.org"])

        assert config.pro_emails == ["other@dmrt-rescue.org"]
