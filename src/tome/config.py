# ABOUTME: Runtime settings for Tome, read from TOME_* environment variables.
# ABOUTME: Covers the database path, search timeout, breaker thresholds, and HTTP pacing.

import logging
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

from tome.db.connection import DEFAULT_DB_PATH

T = TypeVar("T")

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _env(
    environ: Mapping[str, str], name: str, cast: Callable[[str], T], default: T
) -> T:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from exc


def _positive(cast: Callable[[str], T]) -> Callable[[str], T]:
    def parse(raw: str) -> T:
        value = cast(raw)
        if value <= 0:  # type: ignore[operator]
            raise ValueError("must be positive")
        return value

    return parse


def _non_negative(cast: Callable[[str], T]) -> Callable[[str], T]:
    def parse(raw: str) -> T:
        value = cast(raw)
        if value < 0:  # type: ignore[operator]
            raise ValueError("must not be negative")
        return value

    return parse


def _log_level(raw: str) -> str:
    level = raw.upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"unknown log level {raw}")
    return level


@dataclass
class TomeSettings:
    """Everything the services need that is not stored per provider."""

    db_path: Path = DEFAULT_DB_PATH
    search_timeout: float = 5.0
    failure_threshold: int = 5
    cooldown_seconds: float = 60.0
    http_min_interval: float = 0.1
    http_max_retries: int = 2
    calibre_library: Path | None = None
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "TomeSettings":
        """Build settings from the environment, falling back to defaults.

        Raises:
            ValueError: If a variable is set but cannot be parsed; the
                message names the variable.
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        calibre = env.get("TOME_CALIBRE_LIBRARY", "").strip()
        return cls(
            db_path=_env(env, "TOME_DB_PATH", lambda v: Path(v).expanduser(), defaults.db_path),
            search_timeout=_env(
                env, "TOME_SEARCH_TIMEOUT", _positive(float), defaults.search_timeout
            ),
            failure_threshold=_env(
                env, "TOME_CB_FAILURE_THRESHOLD", _positive(int), defaults.failure_threshold
            ),
            cooldown_seconds=_env(
                env, "TOME_CB_COOLDOWN", _non_negative(float), defaults.cooldown_seconds
            ),
            http_min_interval=_env(
                env, "TOME_HTTP_MIN_INTERVAL", _non_negative(float), defaults.http_min_interval
            ),
            http_max_retries=_env(
                env, "TOME_HTTP_MAX_RETRIES", _non_negative(int), defaults.http_max_retries
            ),
            calibre_library=Path(calibre).expanduser() if calibre else None,
            log_level=_env(env, "TOME_LOG_LEVEL", _log_level, defaults.log_level),
        )

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)
