"""
Tests for Settings validation.
"""
import pytest
from pydantic import ValidationError

from diygenie.config import Settings


class TestPosture:
    def test_defaults_to_production(self):
        settings = Settings(_env_file=None)
        assert settings.is_production

    @pytest.mark.parametrize("override", [
        {"free_quota_override": 10},
        {"entitlement_fail_open": True},
        {"dev_user_id": "dev-user"},
    ])
    def test_dev_overrides_rejected_in_production(self, override):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, environment="production", **override)

    def test_dev_overrides_allowed_outside_production(self):
        settings = Settings(
            _env_file=None,
            environment="development",
            free_quota_override=10,
            entitlement_fail_open=True,
            dev_user_id="dev-user",
        )
        assert settings.free_quota_override == 10

    def test_negative_quota_override_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, environment="test", free_quota_override=-1)


class TestProviderModes:
    def test_preview_stub_unless_remote_configured(self):
        assert Settings(_env_file=None, preview_provider="decor8").preview_mode == "stub"
        assert Settings(
            _env_file=None, preview_provider="decor8", decor8_base_url="stub://local"
        ).preview_mode == "stub"
        assert Settings(
            _env_file=None, preview_provider="decor8", decor8_base_url="https://images.example.com"
        ).preview_mode == "live"

    def test_plan_live_only_with_key(self):
        assert Settings(_env_file=None, plan_provider="openai").plan_mode == "stub"
        assert Settings(_env_file=None, plan_provider="openai", openai_api_key="sk-test").plan_mode == "live"
        assert Settings(_env_file=None, plan_provider="stub", openai_api_key="sk-test").plan_mode == "stub"
