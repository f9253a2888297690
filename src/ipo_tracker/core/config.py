"""Configuration loading, validation, and access."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, field_validator

from ipo_tracker.core.exceptions import ConfigError
from ipo_tracker.core.models import LLMProvider, StorageBackend


class FinnhubConfig(BaseModel):
    """Finnhub IPO calendar access (US market)."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "https://finnhub.io/api/v1"
    api_key: str = ""
    rate_limit: int = 60
    rate_window_seconds: float = 60.0
    lookback_days: int = 30
    lookahead_days: int = 30

    @field_validator("rate_limit")
    @classmethod
    def rate_limit_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("rate_limit must be >= 1")
        return v

    @field_validator("rate_window_seconds")
    @classmethod
    def window_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("rate_window_seconds must be > 0")
        return v

    @field_validator("lookback_days", "lookahead_days")
    @classmethod
    def days_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("lookback/lookahead days must be >= 0")
        return v


class HkexConfig(BaseModel):
    """HKEX FINI listings access (HK market), OAuth client-credentials."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "https://api.hkex.com.hk/fini"
    client_id: str = ""
    client_secret: str = ""
    rate_limit: int = 30
    rate_window_seconds: float = 60.0

    @field_validator("rate_limit")
    @classmethod
    def rate_limit_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("rate_limit must be >= 1")
        return v

    @field_validator("rate_window_seconds")
    @classmethod
    def window_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("rate_window_seconds must be > 0")
        return v


class SecApiConfig(BaseModel):
    """sec-api.io full-text filing search and EDGAR document download."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "https://api.sec-api.io"
    api_key: str = ""
    user_agent: str = "ipo-tracker/0.1 (filing-analysis)"
    default_form_type: str = "10-K"
    max_content_bytes: int = 20_000_000

    @field_validator("max_content_bytes")
    @classmethod
    def max_content_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_content_bytes must be >= 1")
        return v


class SyncConfig(BaseModel):
    """Sync engine settings shared by all sources."""

    model_config = ConfigDict(frozen=True)

    request_timeout: float = 45.0

    @field_validator("request_timeout")
    @classmethod
    def timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("request_timeout must be > 0")
        return v


class StorageConfig(BaseModel):
    """Storage backend configuration."""

    model_config = ConfigDict(frozen=True)

    backend: StorageBackend = StorageBackend.SQLITE
    sqlite_path: str = "./data/ipo_tracker.db"


class LLMConfig(BaseModel):
    """Credentials and models for the AI analysis providers."""

    model_config = ConfigDict(frozen=True)

    default_provider: LLMProvider = LLMProvider.PERPLEXITY
    perplexity_api_key: str | None = None
    perplexity_base_url: str = "https://api.perplexity.ai"
    perplexity_model: str = "sonar-pro"
    github_token: str | None = None
    github_models_url: str = "https://models.github.ai/inference"
    github_model: str = "openai/gpt-4.1"
    anthropic_api_key: str | None = None
    anthropic_base_url: str | None = None
    claude_model: str = "claude-sonnet-4-20250514"
    timeout_seconds: float = 45.0
    max_tokens: int = 1000

    @field_validator("timeout_seconds")
    @classmethod
    def timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout_seconds must be > 0")
        return v

    @field_validator("max_tokens")
    @classmethod
    def max_tokens_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_tokens must be >= 1")
        return v


class GitHubConfig(BaseModel):
    """GitHub GraphQL access for the repository catalogs."""

    model_config = ConfigDict(frozen=True)

    token: str | None = None
    graphql_url: str = "https://api.github.com/graphql"
    page_size: int = 50
    requests_per_second: float = 1.0
    request_timeout: float = 30.0

    @field_validator("page_size")
    @classmethod
    def page_size_in_range(cls, v: int) -> int:
        if v < 1 or v > 100:
            raise ValueError("page_size must be between 1 and 100 (GitHub limit)")
        return v


class APIConfig(BaseModel):
    """FastAPI server configuration."""

    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = 8000
    api_key: str | None = None
    cron_secret: str | None = None


class TrackerConfig(BaseModel):
    """Root configuration for the entire ipo-tracker system."""

    model_config = ConfigDict(frozen=True)

    finnhub: FinnhubConfig = FinnhubConfig()
    hkex: HkexConfig = HkexConfig()
    sec: SecApiConfig = SecApiConfig()
    sync: SyncConfig = SyncConfig()
    storage: StorageConfig = StorageConfig()
    llm: LLMConfig = LLMConfig()
    github: GitHubConfig = GitHubConfig()
    api: APIConfig = APIConfig()


def load_config(
    config_path: str | None = None,
    env_prefix: str = "IPO_TRACKER_",
) -> TrackerConfig:
    """Load configuration from environment + YAML file + defaults.

    Resolution order (highest priority first):
    1. Environment variables (IPO_TRACKER_FINNHUB__API_KEY, etc.)
    2. YAML file at config_path
    3. Built-in defaults

    Nested keys use double-underscore in env vars:
        IPO_TRACKER_HKEX__RATE_LIMIT=20  ->  hkex.rate_limit = 20
    """
    try:
        yaml_path = _resolve_config_path(config_path)
        base: dict = {}
        if yaml_path is not None:
            base = _load_yaml(yaml_path)

        merged = _merge_env_vars(base, env_prefix)
        return TrackerConfig.model_validate(merged)
    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(str(e), context={"source": "load_config"}) from e


def _resolve_config_path(explicit: str | None) -> Path | None:
    """Determine config file path."""
    if explicit is not None:
        p = Path(explicit)
        if not p.exists():
            raise ConfigError(
                f"Config file not found: {explicit}",
                context={"field": "config_path", "value": explicit},
            )
        return p

    env_path = os.environ.get("IPO_TRACKER_CONFIG")
    if env_path:
        p = Path(env_path)
        if not p.exists():
            raise ConfigError(
                f"Config file from IPO_TRACKER_CONFIG not found: {env_path}",
                context={"field": "IPO_TRACKER_CONFIG", "value": env_path},
            )
        return p

    default = Path("ipo-tracker.yml")
    if default.exists():
        return default

    return None


def _load_yaml(path: Path) -> dict:
    """Load and parse YAML file."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"YAML config must be a mapping, got {type(data).__name__}",
                context={"field": "config_file", "value": str(path)},
            )
        return data
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Failed to parse YAML config: {e}",
            context={"field": "config_file", "value": str(path)},
        ) from e


def _merge_env_vars(base: dict, prefix: str) -> dict:
    """Overlay environment variables onto base config dict.

    Double-underscore separates nesting levels.
    Values are auto-cast: "true"/"false" -> bool, numeric strings -> int/float.
    """
    result = dict(base)

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        remainder = key[len(prefix) :]
        parts = [p.lower() for p in remainder.split("__")]

        if parts == ["config"]:
            continue

        cast_value = _auto_cast(value)

        target = result
        for part in parts[:-1]:
            if part not in target or not isinstance(target[part], dict):
                target[part] = {}
            target = target[part]
        target[parts[-1]] = cast_value

    return result


def _auto_cast(value: str) -> str | int | float | bool:
    """Auto-cast string values from environment variables."""
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value
