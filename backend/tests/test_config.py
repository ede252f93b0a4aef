"""
MacroRelay Backend — Configuration Tests
"""

import pytest

from app.config import Settings


class TestSettings:

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.session_cookie_name == "sessionId"
        assert settings.session_cookie_max_age == 31_536_000

    def test_trailing_slash_stripped(self):
        settings = Settings(trigger_base_url="https://trigger.example/")
        assert settings.trigger_base_url == "https://trigger.example"

    def test_cors_origins_list(self):
        settings = Settings(cors_origins="http://a.test, http://b.test,")
        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]

    def test_log_level_normalized(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValueError):
            Settings(log_level="LOUD")

    def test_supported_urls_pass(self, test_settings):
        test_settings.validate_required_for_production()

    @pytest.mark.parametrize(
        "overrides",
        [
            {"database_url": "postgresql://user@host/db"},
            {"database_url": ""},
            {"redis_url": "memcached://localhost"},
        ],
    )
    def test_unusable_urls_rejected(self, test_settings, overrides):
        settings = test_settings.model_copy(update=overrides)
        with pytest.raises(ValueError):
            settings.validate_required_for_production()
