# src/tasksync/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time.
- An empty API base URL selects the in-memory offline store.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKSYNC"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


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
    data_dir: Path

    # ---- Remote task store ----
    api_base_url: str
    api_token: str | None
    connect_timeout_seconds: float
    read_timeout_seconds: float

    # ---- Offline store / consumer behaviour ----
    offline_page_size: int
    refresh_stats_after_mutation: bool

    @property
    def offline(self) -> bool:
        return not self.api_base_url

    @staticmethod
    def from_env() -> "Settings":
        api_token = _env(_k("API_TOKEN"), "").strip() or None

        return Settings(
            app_name=_env(_k("APP_NAME"), "tasksync") or "tasksync",
            log_level=_env(_k("LOG_LEVEL"), "INFO"),
            data_dir=_env_path(_k("DATA_DIR"), Path(".local/tasksync")),
            api_base_url=_env(_k("API_BASE_URL"), "").strip(),
            api_token=api_token,
            connect_timeout_seconds=max(0.1, _env_float(_k("CONNECT_TIMEOUT_SECONDS"), 5.0)),
            read_timeout_seconds=max(0.1, _env_float(_k("READ_TIMEOUT_SECONDS"), 15.0)),
            offline_page_size=max(1, _env_int(_k("OFFLINE_PAGE_SIZE"), 10)),
            refresh_stats_after_mutation=_env_bool(_k("REFRESH_STATS_AFTER_MUTATION"), True),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
