"""Tests for configuration management."""

import pytest
from pydantic import ValidationError

from insiderloom.core.exceptions import ConfigurationError
from insiderloom.utils.config import (
    AppConfig,
    Environment,
    ExtractionConfig,
    Settings,
    get_absolute_path,
    get_config,
    get_project_root,
    get_settings,
)


def test_get_project_root():
    """Test project root detection."""
    root = get_project_root()
    assert (root / "config").exists()
    assert (root / "insiderloom").exists()


def test_settings_defaults():
    """Test Settings default values."""
    settings = Settings()
    assert settings.sec_api.rate_limit_per_second == 9.0
    assert settings.sec_api.max_retries == 5
    assert settings.sec_api.retry_delay == 0.1
    assert settings.extraction.form_types == ["4", "4/A"]
    assert settings.processing.max_workers == 1


def test_quarter_validation():
    with pytest.raises(ValidationError):
        ExtractionConfig(quarter=5)


def test_get_settings_caches():
    """Test that get_settings caches result."""
    assert get_settings() is get_settings()
    assert get_config() is get_config()


def test_absolute_path_passthrough(tmp_path):
    assert get_absolute_path(str(tmp_path)) == tmp_path
    assert get_absolute_path("data/x").is_relative_to(get_project_root())


class TestAppConfig:
    """Tests for AppConfig loading and overrides."""

    def test_test_overlay(self):
        config = AppConfig(env="test")

        assert config.environment == Environment.TEST
        assert config.settings.sec_api.retry_delay == 0.0
        assert config.settings.processing.show_progress is False
        assert config.settings.sec_api.max_retries == 5

    def test_unknown_env_falls_back(self):
        assert AppConfig(env="staging").environment == Environment.DEVELOPMENT

    def test_custom_config_dir(self, tmp_path):
        (tmp_path / "settings.yaml").write_text(
            "extraction:\n  year: 2021\n  quarter: 4\n"
        )
        (tmp_path / "settings.production.yaml").write_text(
            "processing:\n  max_workers: 6\n"
        )

        config = AppConfig(env="production", config_dir=tmp_path)

        assert config.environment == Environment.PRODUCTION
        assert config.settings.extraction.year == 2021
        assert config.settings.extraction.quarter == 4
        assert config.settings.processing.max_workers == 6

    def test_env_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("INSIDERLOOM_SEC_RATE_LIMIT", "5")
        monkeypatch.setenv("INSIDERLOOM_CACHE_DIR", str(tmp_path))
        monkeypatch.setenv("INSIDERLOOM_MAX_WORKERS", "4")
        monkeypatch.setenv("SEC_USER_AGENT", "Research Desk {token}@example.org")

        config = AppConfig(env="test")

        assert config.settings.sec_api.rate_limit_per_second == 5.0
        assert config.settings.processing.max_workers == 4
        assert config.settings.sec_api.user_agent_template == "Research Desk {token}@example.org"
        assert config.index_cache_path == tmp_path / "masterfiles"
        assert config.document_cache_path == tmp_path / "form4_xml"

    def test_valid(self):
        assert AppConfig(env="test").validate() == []

    @pytest.mark.parametrize(
        "section,key,value",
        [
            ("sec_api", "rate_limit_per_second", 11.0),
            ("sec_api", "rate_limit_per_second", 0.0),
            ("sec_api", "rate_limit_burst", 0),
            ("sec_api", "max_retries", -1),
            ("sec_api", "timeout", 0.0),
            ("sec_api", "user_agent_template", "Static Agent"),
            ("extraction", "form_types", []),
            ("processing", "max_workers", 0),
        ],
    )
    def test_invalid(self, section, key, value):
        config = AppConfig(env="test")
        setattr(getattr(config.settings, section), key, value)

        assert len(config.validate()) == 1

    def test_sec_api_config(self):
        sec = AppConfig(env="test").get_sec_api_config()
        assert sec["rate_limit"] == 9.0
        assert "{token}" in sec["user_agent_template"]

    def test_dotenv_file(self, tmp_path, monkeypatch):
        """Overrides in .env apply like real environment variables."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("INSIDERLOOM_MAX_WORKERS", raising=False)
        (tmp_path / ".env").write_text("INSIDERLOOM_MAX_WORKERS=3\nINSIDERLOOM_SEC_RATE_LIMIT=6\n")

        config = AppConfig(env="test")

        assert config.settings.processing.max_workers == 3
        assert config.settings.sec_api.rate_limit_per_second == 6.0

    def test_bad_env_value_raises_configuration_error(self, monkeypatch):
        monkeypatch.setenv("INSIDERLOOM_MAX_WORKERS", "lots")

        with pytest.raises(ConfigurationError) as exc_info:
            AppConfig(env="test")

        assert "insiderloom_max_workers" in str(exc_info.value)

    def test_bad_yaml_value_raises_configuration_error(self, tmp_path):
        """A value rejected by the settings models names its key."""
        (tmp_path / "settings.yaml").write_text("extraction:\n  quarter: 5\n")

        with pytest.raises(ConfigurationError) as exc_info:
            AppConfig(env="test", config_dir=tmp_path)

        assert "extraction.quarter" in str(exc_info.value)
        assert exc_info.value.context["environment"] == "test"
