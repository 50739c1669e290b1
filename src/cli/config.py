"""YAML configuration loader with env var resolution and Pydantic validation.

Loads config from (priority order):
1. --config <path> CLI flag
2. ./statusmigrator.yaml (working directory)
3. ~/.statusmigrator/config.yaml (user home)

Environment variables override YAML: STATUSMIGRATOR_<SECTION>_<KEY>.
${VAR} references in YAML values resolve from environment at load time.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from src.orchestrator.batch.retry import RetryPolicy

logger = logging.getLogger(__name__)

ENV_PREFIX = "STATUSMIGRATOR_"

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def resolve_env_vars(value: str) -> str:
    """Resolve ${VAR} references in a string from environment variables.

    Args:
        value: String potentially containing ${VAR} references.

    Returns:
        String with all ${VAR} references replaced by their env values.
        Missing env vars resolve to empty string.
    """
    def _replace(match: re.Match) -> str:
        return os.environ.get(match.group(1), "")

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _resolve_env_vars_recursive(data: Any) -> Any:
    """Recursively resolve ${VAR} references in a nested data structure."""
    if isinstance(data, str):
        return resolve_env_vars(data)
    elif isinstance(data, dict):
        return {k: _resolve_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars_recursive(item) for item in data]
    return data


class ShopifyConfig(BaseModel):
    """Store connection settings."""

    store_url: str = ""
    access_token: str = ""
    api_version: str = "2024-10"
    timeout_seconds: float = Field(default=10.0, gt=0)

    @property
    def is_configured(self) -> bool:
        return bool(self.store_url and self.access_token)


class EngineConfig(BaseModel):
    """Paginator, mutator, and retry tuning."""

    page_size: int = Field(default=250, ge=1, le=250)
    item_cap: int = Field(default=1000, ge=1)
    concurrency: int = Field(default=5, ge=1)
    max_attempts: int = Field(default=3, ge=1)
    base_delay_seconds: float = Field(default=0.5, ge=0)
    backoff_factor: float = Field(default=2.0, ge=1)
    call_timeout_seconds: float | None = Field(default=10.0, gt=0)

    def retry_policy(self) -> RetryPolicy:
        """Build the shared retry policy from these settings."""
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay_seconds,
            backoff_factor=self.backoff_factor,
            call_timeout=self.call_timeout_seconds,
        )


class LoggingConfig(BaseModel):
    """Root logger settings applied by the CLI."""

    level: str = "info"
    format: Literal["text", "json"] = "text"
    file: str | None = None

    @field_validator("level")
    @classmethod
    def known_level(cls, value: str) -> str:
        """Reject level names the logging module does not know."""
        if value.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return value.lower()


class ServerConfig(BaseModel):
    """HTTP API bind settings for `statusmigrator serve`."""

    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)


class StatusMigratorConfig(BaseModel):
    """Top-level configuration for the status migrator."""

    shopify: ShopifyConfig = ShopifyConfig()
    engine: EngineConfig = EngineConfig()
    logging: LoggingConfig = LoggingConfig()
    server: ServerConfig = ServerConfig()


def _find_config_file() -> Path | None:
    """Search for config file in standard locations.

    Returns:
        Path to config file if found, None otherwise.
    """
    candidates = [
        Path.cwd() / "statusmigrator.yaml",
        Path.cwd() / "statusmigrator.yml",
        Path.home() / ".statusmigrator" / "config.yaml",
        Path.home() / ".statusmigrator" / "config.yml",
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def _coerce(value: str) -> Any:
    """Coerce an env string to int, float, or bool, else keep as string."""
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply STATUSMIGRATOR_<SECTION>_<KEY> env var overrides to config data.

    For example, ``STATUSMIGRATOR_SHOPIFY_ACCESS_TOKEN`` maps to section
    ``shopify``, field ``access_token``. Variables that name no known
    section (such as ``STATUSMIGRATOR_CONFIG_PATH``) are ignored here.

    Args:
        data: Parsed YAML config dict.

    Returns:
        Config dict with env var overrides applied.
    """
    known_sections = sorted(
        StatusMigratorConfig.model_fields.keys(), key=len, reverse=True
    )
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        suffix = key[len(ENV_PREFIX):].lower()  # e.g. "shopify_store_url"
        matched_section = None
        matched_field = None
        for section in known_sections:
            section_prefix = section + "_"
            if suffix.startswith(section_prefix):
                matched_section = section
                matched_field = suffix[len(section_prefix):]
                break
        if matched_section is None or not matched_field:
            continue
        if matched_section not in data or data[matched_section] is None:
            data[matched_section] = {}
        if isinstance(data[matched_section], dict):
            # Tokens and URLs stay strings
            if matched_field in ("access_token", "store_url", "api_version"):
                data[matched_section][matched_field] = value
            else:
                data[matched_section][matched_field] = _coerce(value)
    return data


def load_config(config_path: str | None = None) -> StatusMigratorConfig | None:
    """Load configuration from YAML file with env var resolution.

    Args:
        config_path: Explicit path to config file. If None, searches
            standard locations (cwd, then ~/.statusmigrator/).

    Returns:
        Parsed and validated StatusMigratorConfig, or None if no config found.

    Raises:
        FileNotFoundError: An explicit config_path does not exist.
        pydantic.ValidationError: The file contains invalid values.
    """
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        path = _find_config_file()
        if path is None:
            return None

    logger.info("Loading config from %s", path)

    with open(path) as f:
        raw_data = yaml.safe_load(f) or {}

    data = _resolve_env_vars_recursive(raw_data)
    data = _apply_env_overrides(data)
    return StatusMigratorConfig(**data)


def config_from_env() -> StatusMigratorConfig:
    """Build configuration from STATUSMIGRATOR_ env vars and defaults only."""
    return StatusMigratorConfig(**_apply_env_overrides({}))


def resolve_config(config_path: str | None = None) -> StatusMigratorConfig:
    """Load the config file if one exists, else fall back to the environment."""
    config = load_config(config_path)
    if config is None:
        logger.debug("No config file found, using environment and defaults")
        return config_from_env()
    return config
