"""Environment-driven settings.

All environment variables read by the tracker are listed here:

- ``SYLLABUS_DB_PATH``: SQLite file holding local progress.
- ``SYLLABUS_ROSTER``: user roster JSON; content files resolve relative to it.
- ``SYLLABUS_REMOTE_URL``: base URL of the JSONBin-compatible remote store.
- ``SYLLABUS_REMOTE_ACCESS_KEY`` / ``SYLLABUS_REMOTE_MASTER_KEY``: remote credentials.
- ``SYLLABUS_REMOTE_TIMEOUT``: seconds before a remote call is abandoned.
- ``SYLLABUS_SYNC_DEBOUNCE``: quiet interval before an automatic push.
- ``SYLLABUS_MANUAL_TOGGLE``: allow marking topics done without a quiz.
- ``LOG_LEVEL`` / ``LOG_FORMAT``: see :mod:`syllabus_tracker.logging_config`.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from syllabus_tracker.errors import ConfigError

CONTENT_DIR = Path(__file__).parent / "content"
DEFAULT_DB_PATH = str(Path.home() / ".syllabus_tracker" / "tracker.db")
DEFAULT_ROSTER_PATH = str(CONTENT_DIR / "users.json")
DEFAULT_REMOTE_URL = "https://api.jsonbin.io/v3"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class Settings:
    db_path: str = DEFAULT_DB_PATH
    roster_path: str = DEFAULT_ROSTER_PATH
    remote_url: str = DEFAULT_REMOTE_URL
    remote_access_key: str = ""
    remote_master_key: str = ""
    remote_timeout: float = 10.0
    sync_debounce: float = 2.0
    allow_manual_toggle: bool = False
    log_level: str = "WARNING"
    log_format: str = "text"


def _float_env(environ, name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {raw!r}")
    return value


def load_settings(environ=None) -> Settings:
    """Build settings from ``environ`` (defaults to ``os.environ``)."""
    env = os.environ if environ is None else environ
    log_format = env.get("LOG_FORMAT", "text").lower()
    if log_format not in ("text", "json"):
        raise ConfigError(f"LOG_FORMAT must be 'text' or 'json', got {log_format!r}")
    return Settings(
        db_path=env.get("SYLLABUS_DB_PATH", DEFAULT_DB_PATH),
        roster_path=env.get("SYLLABUS_ROSTER", DEFAULT_ROSTER_PATH),
        remote_url=env.get("SYLLABUS_REMOTE_URL", DEFAULT_REMOTE_URL).rstrip("/"),
        remote_access_key=env.get("SYLLABUS_REMOTE_ACCESS_KEY", ""),
        remote_master_key=env.get("SYLLABUS_REMOTE_MASTER_KEY", ""),
        remote_timeout=_float_env(env, "SYLLABUS_REMOTE_TIMEOUT", 10.0),
        sync_debounce=_float_env(env, "SYLLABUS_SYNC_DEBOUNCE", 2.0),
        allow_manual_toggle=env.get("SYLLABUS_MANUAL_TOGGLE", "").strip().lower() in _TRUTHY,
        log_level=env.get("LOG_LEVEL", "WARNING").upper(),
        log_format=log_format,
    )
