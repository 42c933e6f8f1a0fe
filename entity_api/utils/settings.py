"""Runtime settings sourced from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


@dataclass(frozen=True)
class Settings:
    log_level: str
    default_page_size: int
    max_page_size: int
    csv_delimiter: str
    csv_media_type: str

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level, logging.INFO)


def _normalize_int(value: str | None, default: int, minimum: int = 1) -> int:
    """Return a positive integer from an environment-style value."""
    if value is None:
        return default
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    if parsed < minimum:
        return default
    return parsed


def _normalize_log_level(value: str | None, default: str = "INFO") -> str:
    if not value:
        return default
    normalized = value.strip().upper()
    return normalized if normalized in _LOG_LEVELS else default


def _normalize_delimiter(value: str | None, default: str = ";") -> str:
    # csv requires a one-character delimiter
    if value is None or len(value) != 1:
        return default
    return value


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Return the cached settings read from the environment."""
    max_page_size = _normalize_int(os.getenv("MAX_PAGE_SIZE"), 1000)
    default_page_size = _normalize_int(os.getenv("DEFAULT_PAGE_SIZE"), 100)
    return Settings(
        log_level=_normalize_log_level(os.getenv("LOG_LEVEL")),
        default_page_size=min(default_page_size, max_page_size),
        max_page_size=max_page_size,
        csv_delimiter=_normalize_delimiter(os.getenv("CSV_DELIMITER")),
        csv_media_type=(os.getenv("CSV_MEDIA_TYPE") or "text/csv").strip().lower(),
    )


def refresh_settings_cache() -> None:
    """Invalidate cached settings (useful for tests)."""
    get_settings.cache_clear()
