"""
Unified configuration management for InsiderLoom.

This module provides:
- Environment-aware configuration (development, production, test)
- YAML config loading with environment-specific overlays
- Environment variable overrides
- Pydantic models for type-safe access

Usage:
    from insiderloom.utils.config import get_config

    config = get_config()
    rate = config.settings.sec_api.rate_limit_per_second
    index_dir = config.index_cache_path
"""

from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.exceptions import ConfigurationError


# =============================================================================
# Environment Definition
# =============================================================================

class Environment(Enum):
    """Environment types."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TEST = "test"


# =============================================================================
# Pydantic Config Models (for type-safe access)
# =============================================================================

class SECApiConfig(BaseModel):
    """Configuration for SEC EDGAR archive access."""
    base_url: str = Field(default="https://www.sec.gov/Archives/")
    daily_index_url: str = Field(
        default="https://www.sec.gov/Archives/edgar/daily-index/{year}/QTR{quarter}/"
    )
    rate_limit_per_second: float = Field(default=9.0)
    rate_limit_burst: int = Field(default=1)
    max_retries: int = Field(default=5)
    retry_delay: float = Field(default=0.1)
    timeout: float = Field(default=30.0)
    user_agent_template: str = Field(default="InsiderLoom Research {token}@example.com")
    accept_language: str = Field(default="en-US,en;q=0.9")


class ExtractionConfig(BaseModel):
    """Configuration for the filing period and form filter."""
    year: int = Field(default=2022)
    quarter: int = Field(default=2)
    form_types: list[str] = Field(default=["4", "4/A"])

    @field_validator("quarter")
    @classmethod
    def validate_quarter(cls, v: int) -> int:
        """Quarter must be 1-4."""
        if v not in (1, 2, 3, 4):
            raise ValueError(f"Quarter must be between 1 and 4, got {v}")
        return v


class StorageConfig(BaseModel):
    """Configuration for cache directories and output."""
    index_cache_path: str = Field(default="data/masterfiles")
    document_cache_path: str = Field(default="data/form4_xml")
    output_path: str = Field(default="data/form4_transactions.csv")
    cache_listing_pages: bool = Field(default=True)


class ProcessingConfig(BaseModel):
    """Configuration for data processing."""
    max_workers: int = Field(default=1)
    skip_failed_index_files: bool = Field(default=False)
    show_progress: bool = Field(default=True)


class LoggingConfig(BaseModel):
    """Configuration for logging."""
    level: str = Field(default="INFO")
    log_path: str = Field(default="logs")
    log_format: str = Field(default="json")


class Settings(BaseModel):
    """Main settings container."""
    sec_api: SECApiConfig = Field(default_factory=SECApiConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class EnvSettings(BaseSettings):
    """Environment variable settings."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    sec_user_agent: Optional[str] = Field(default=None)
    insiderloom_env: str = Field(default="development")
    insiderloom_log_level: Optional[str] = Field(default=None)
    insiderloom_sec_rate_limit: Optional[float] = Field(default=None)
    insiderloom_cache_dir: Optional[str] = Field(default=None)
    insiderloom_max_workers: Optional[int] = Field(default=None)


# =============================================================================
# Unified AppConfig Class
# =============================================================================

class AppConfig:
    """
    Unified configuration manager for InsiderLoom.

    Combines:
    - YAML config loading with environment overlays
    - Environment variable overrides
    - Type-safe Pydantic settings
    """

    def __init__(self, env: Optional[str] = None, config_dir: Optional[Path] = None):
        """
        Initialize unified configuration.

        Args:
            env: Environment name. Defaults to INSIDERLOOM_ENV or 'development'.
            config_dir: Directory holding settings YAML files.
        """
        try:
            self._env_settings = EnvSettings()
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid environment variable: {_first_error(e)}",
                {"errors": e.error_count()},
            ) from e

        self._env_name = env or self._env_settings.insiderloom_env
        try:
            self._environment = Environment(self._env_name)
        except ValueError:
            self._environment = Environment.DEVELOPMENT

        self._config_dir = Path(config_dir) if config_dir else get_project_root() / "config"

        # Merged YAML plus env overrides, validated into Settings below
        self._config: dict[str, Any] = {}

        self._load_config()

        self._settings = self._create_settings()

    def _load_config(self) -> None:
        """Load configuration files with environment overlay."""
        base_path = self._config_dir / "settings.yaml"
        if base_path.exists():
            with open(base_path) as f:
                self._config = yaml.safe_load(f) or {}

        env_path = self._config_dir / f"settings.{self._environment.value}.yaml"
        if env_path.exists():
            with open(env_path) as f:
                env_config = yaml.safe_load(f) or {}
            self._deep_merge(self._config, env_config)

        self._apply_env_overrides()

    def _deep_merge(self, base: dict, overlay: dict) -> None:
        """Deep merge overlay dict into base dict."""
        for key, value in overlay.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides."""
        env = self._env_settings
        if log_level := env.insiderloom_log_level:
            self._set_nested("logging.level", log_level)

        if rate_limit := env.insiderloom_sec_rate_limit:
            self._set_nested("sec_api.rate_limit_per_second", rate_limit)

        if user_agent := env.sec_user_agent:
            self._set_nested("sec_api.user_agent_template", user_agent)

        if cache_dir := env.insiderloom_cache_dir:
            self._set_nested("storage.index_cache_path", str(Path(cache_dir) / "masterfiles"))
            self._set_nested("storage.document_cache_path", str(Path(cache_dir) / "form4_xml"))

        if max_workers := env.insiderloom_max_workers:
            self._set_nested("processing.max_workers", max_workers)

    def _set_nested(self, path: str, value: Any) -> None:
        """Set nested dictionary value using dot notation."""
        keys = path.split(".")
        d = self._config
        for key in keys[:-1]:
            d = d.setdefault(key, {})
        d[keys[-1]] = value

    def _create_settings(self) -> Settings:
        """Create typed Settings object from config dict."""
        try:
            return Settings(**self._config)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration in {self._config_dir}: {_first_error(e)}",
                {"environment": self._environment.value, "errors": e.error_count()},
            ) from e

    # -------------------------------------------------------------------------
    # Public Properties
    # -------------------------------------------------------------------------

    @property
    def environment(self) -> Environment:
        """Current environment."""
        return self._environment

    @property
    def settings(self) -> Settings:
        """Get typed settings object."""
        return self._settings

    @property
    def index_cache_path(self) -> Path:
        """Absolute directory for cached daily index files."""
        return get_absolute_path(self._settings.storage.index_cache_path)

    @property
    def document_cache_path(self) -> Path:
        """Absolute directory for cached filing documents."""
        return get_absolute_path(self._settings.storage.document_cache_path)

    @property
    def output_path(self) -> Path:
        return get_absolute_path(self._settings.storage.output_path)

    # -------------------------------------------------------------------------
    # Access Methods
    # -------------------------------------------------------------------------

    def get_sec_api_config(self) -> dict[str, Any]:
        """Get SEC API configuration dict."""
        sec = self._settings.sec_api
        return {
            "rate_limit": sec.rate_limit_per_second,
            "burst": sec.rate_limit_burst,
            "timeout": sec.timeout,
            "max_retries": sec.max_retries,
            "retry_delay": sec.retry_delay,
            "user_agent_template": sec.user_agent_template,
        }

    def validate(self) -> list[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid).
        """
        errors = []
        sec = self._settings.sec_api

        # SEC fair-access policy caps clients at 10 requests/second
        if sec.rate_limit_per_second <= 0 or sec.rate_limit_per_second > 10:
            errors.append(
                f"Invalid SEC rate limit: {sec.rate_limit_per_second} (must be 0-10)"
            )
        if sec.rate_limit_burst < 1:
            errors.append(f"Invalid rate limit burst: {sec.rate_limit_burst} (must be >= 1)")
        if sec.max_retries < 0:
            errors.append(f"Invalid max retries: {sec.max_retries}")
        if sec.retry_delay < 0:
            errors.append(f"Invalid retry delay: {sec.retry_delay}")
        if sec.timeout <= 0:
            errors.append(f"Invalid request timeout: {sec.timeout}")
        if "{token}" not in sec.user_agent_template:
            errors.append("User agent template must contain a {token} placeholder")

        if not self._settings.extraction.form_types:
            errors.append("At least one form type is required")

        if self._settings.processing.max_workers < 1:
            errors.append(
                f"Invalid max workers: {self._settings.processing.max_workers}"
            )

        return errors


# =============================================================================
# Global Instance and Accessor Functions
# =============================================================================

_config: Optional[AppConfig] = None


def _first_error(error: ValidationError) -> str:
    """One-line summary of a pydantic error, e.g. ``extraction.quarter: ...``."""
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]


def get_project_root() -> Path:
    """Get the project root directory."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "config").exists() and (parent / "insiderloom").exists():
            return parent
    return Path.cwd()


def get_absolute_path(relative_path: str) -> Path:
    """
    Convert a relative path to absolute path from project root.

    Args:
        relative_path: Path relative to project root.

    Returns:
        Absolute Path object.
    """
    path = Path(relative_path)
    if path.is_absolute():
        return path
    return get_project_root() / path


def get_config(env: Optional[str] = None) -> AppConfig:
    """
    Get the unified configuration instance.

    Args:
        env: Optional environment override.

    Returns:
        AppConfig instance.
    """
    global _config
    if _config is None or env is not None:
        _config = AppConfig(env=env)
    return _config


def get_settings() -> Settings:
    """Get the current settings instance."""
    return get_config().settings
