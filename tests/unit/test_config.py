"""
Unit tests for static Config loading.

Config is process-global, so every test restores it with ``Config.load()``
after changing the environment.
"""

import pytest

from src.core.config import Config, Environment


@pytest.fixture
def reload_config(monkeypatch):
    yield monkeypatch
    monkeypatch.undo()
    Config.load()


@pytest.mark.unit
class TestConfigLoad:

    def test_defaults(self, reload_config):
        # Arrange
        for key in (
            "ANSWER_TOLERANCE_RATIO",
            "DAILY_CHALLENGE_TIMEZONE",
            "DAILY_CHALLENGE_UNLOCK_HOUR",
            "DAILY_CHALLENGE_MAX_ATTEMPTS",
            "DAILY_CHALLENGE_EPISODE_REUSE_DAYS",
        ):
            reload_config.delenv(key, raising=False)

        # Act
        Config.load()

        # Assert
        assert Config.ANSWER_TOLERANCE_RATIO == 0.2
        assert Config.DAILY_CHALLENGE_TIMEZONE == "America/New_York"
        assert Config.DAILY_CHALLENGE_UNLOCK_HOUR == 9
        assert Config.DAILY_CHALLENGE_MAX_ATTEMPTS == 5
        assert Config.DAILY_CHALLENGE_EPISODE_REUSE_DAYS == 365

    def test_reads_environment(self, reload_config):
        reload_config.setenv("ANSWER_TOLERANCE_RATIO", "0.25")
        reload_config.setenv("DAILY_CHALLENGE_UNLOCK_HOUR", "6")

        Config.load()

        assert Config.ANSWER_TOLERANCE_RATIO == 0.25
        assert Config.DAILY_CHALLENGE_UNLOCK_HOUR == 6

    @pytest.mark.parametrize(
        ("key", "raw", "attribute", "default"),
        [
            ("ANSWER_TOLERANCE_RATIO", "1.5", "ANSWER_TOLERANCE_RATIO", 0.2),
            ("ANSWER_TOLERANCE_RATIO", "lots", "ANSWER_TOLERANCE_RATIO", 0.2),
            ("DAILY_CHALLENGE_UNLOCK_HOUR", "24", "DAILY_CHALLENGE_UNLOCK_HOUR", 9),
            ("DAILY_CHALLENGE_MAX_ATTEMPTS", "0", "DAILY_CHALLENGE_MAX_ATTEMPTS", 5),
        ],
    )
    def test_invalid_values_fall_back_to_default(
        self, reload_config, key, raw, attribute, default
    ):
        reload_config.setenv(key, raw)

        Config.load()

        assert getattr(Config, attribute) == default

    @pytest.mark.parametrize(("raw", "expected"), [("yes", True), ("off", False), ("1", True)])
    def test_boolean_spellings(self, reload_config, raw, expected):
        reload_config.setenv("DATABASE_ECHO", raw)
        Config.load()
        assert Config.DATABASE_ECHO is expected

    def test_testing_flag(self):
        assert Config.is_testing() is True

    def test_summary_hides_url(self):
        summary = Config.get_config_summary()
        assert "database_url" not in summary
        assert summary["database_url_set"] is True

    def test_summary_reports_load_sources(self, reload_config):
        reload_config.setenv("DATABASE_ECHO", "yes")
        Config.load()

        load = Config.get_config_summary()["load"]

        assert load["from_environment"] >= 1
        assert load["last_reload"] is not None


@pytest.mark.unit
class TestEnvironment:

    def test_from_string(self):
        assert Environment.from_string("PRODUCTION") is Environment.PRODUCTION
        assert Environment.from_string("mars") is Environment.DEVELOPMENT
