"""TOML config loading and profiles."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

# Default config search path (project root or cwd)
_CONFIG_DIR = Path(__file__).resolve().parent.parent.parent.parent / "config"
_CWD_CONFIG = Path.cwd() / "config"


def _load_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base. Override values take precedence."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _find_config_dir() -> Path:
    if _CWD_CONFIG.exists():
        return _CWD_CONFIG
    return _CONFIG_DIR


def load_config(profile: str | None = None, config_dir: Path | None = None) -> dict[str, Any]:
    """Load merged config from default.toml and optional profile overlay."""
    config_dir = config_dir or _find_config_dir()
    default_path = config_dir / "default.toml"
    if not default_path.exists():
        return {}
    base = _load_toml(default_path)
    if profile:
        profile_path = config_dir / f"{profile}.toml"
        if profile_path.exists():
            overlay = _load_toml(profile_path)
            base = _deep_merge(base, overlay)
    return base


def get_settings(profile: str | None = None, config_dir: Path | None = None) -> Settings:
    """Return Settings instance from merged config."""
    raw = load_config(profile, config_dir)
    return Settings.from_dict(raw)


class Settings:
    """Application settings from TOML config."""

    def __init__(
        self,
        *,
        storage: dict[str, Any] | None = None,
        polymarket: dict[str, Any] | None = None,
        catalog: dict[str, Any] | None = None,
        quota: dict[str, Any] | None = None,
        settlement: dict[str, Any] | None = None,
        auth: dict[str, Any] | None = None,
        logging: dict[str, Any] | None = None,
    ):
        self.storage = storage or {}
        self.polymarket = polymarket or {}
        self.catalog = catalog or {}
        self.quota = quota or {}
        self.settlement = settlement or {}
        self.auth = auth or {}
        self.logging = logging or {}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Settings:
        return cls(
            storage=raw.get("storage"),
            polymarket=raw.get("polymarket"),
            catalog=raw.get("catalog"),
            quota=raw.get("quota"),
            settlement=raw.get("settlement"),
            auth=raw.get("auth"),
            logging=raw.get("logging"),
        )

    # Convenience accessors with defaults
    @property
    def db_path(self) -> str:
        return self.storage.get("db_path", "data/venuepredict.duckdb")

    @property
    def install_procedures(self) -> bool:
        return bool(self.storage.get("install_procedures", True))

    @property
    def gamma_api_base(self) -> str:
        return self.polymarket.get("gamma_api_base", "https://gamma-api.polymarket.com")

    @property
    def polymarket_api_key(self) -> str | None:
        return self.polymarket.get("api_key") or os.environ.get("POLYMARKET_API_KEY") or None

    @property
    def gamma_page_size(self) -> int:
        return int(self.polymarket.get("page_size", 500))

    @property
    def gamma_max_pages(self) -> int:
        return int(self.polymarket.get("max_pages", 10))

    @property
    def gamma_max_records(self) -> int:
        return int(self.polymarket.get("max_records", 5000))

    @property
    def gamma_timeout_sec(self) -> float:
        return float(self.polymarket.get("timeout_sec", 20.0))

    @property
    def catalog_ttl_sec(self) -> float:
        return float(self.catalog.get("ttl_sec", 30))

    @property
    def trivia_limit(self) -> int:
        return int(self.quota.get("trivia_limit", 10))

    @property
    def predictions_limit(self) -> int:
        return int(self.quota.get("predictions_limit", 10))

    @property
    def quota_window_sec(self) -> int:
        return int(self.quota.get("window_sec", 3600))

    @property
    def auto_win_threshold(self) -> float:
        return float(self.settlement.get("auto_win_threshold", 99.5))

    @property
    def cron_secret(self) -> str | None:
        secret = (self.auth.get("cron_secret") or os.environ.get("CRON_SECRET") or "").strip()
        return secret or None

    @property
    def logging_level(self) -> str:
        return self.logging.get("level", "INFO").upper()

    @property
    def logging_format(self) -> str:
        return self.logging.get("format", "console")

    @property
    def logging_level_num(self) -> int:
        return getattr(logging, self.logging_level, logging.INFO)


def configure_logging(settings: Settings) -> None:
    """Configure structlog with settings. Call once at application entry."""
    import structlog

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.logging_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.logging_level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
