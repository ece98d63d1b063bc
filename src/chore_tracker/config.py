# src/chore_tracker/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing is read from disk at import time except the optional .env file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "CHORES"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connector flags ----
    console_enabled: bool

    # ---- Durable files (ignored by git) ----
    data_dir: Path
    definitions_path: Path
    history_path: Path

    # ---- Core tuning ----
    lock_timeout_seconds: float
    timeline_horizon_days: int
    strict_definitions: bool

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "chores").strip() or "chores"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/chores"))
        definitions_path = _env_path(_k("DEFINITIONS_PATH"), data_dir / "tasks.json")
        history_path = _env_path(_k("HISTORY_PATH"), data_dir / "history.csv")

        lock_timeout_seconds = max(0.0, _env_float(_k("LOCK_TIMEOUT_SECONDS"), 5.0))
        timeline_horizon_days = max(1, _env_int(_k("TIMELINE_HORIZON_DAYS"), 365))
        strict_definitions = _env_bool(_k("STRICT_DEFINITIONS"), False)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            data_dir=data_dir,
            definitions_path=definitions_path,
            history_path=history_path,
            lock_timeout_seconds=lock_timeout_seconds,
            timeline_horizon_days=timeline_horizon_days,
            strict_definitions=strict_definitions,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
