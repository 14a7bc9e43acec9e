from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from platformdirs import user_data_dir

load_dotenv()

APP_NAME = "Calsync"
APP_AUTHOR = "Calsync"


@dataclass(frozen=True)
class ApiSettings:
    base_url: str
    timeout: float
    retry_on_forbidden: bool

    @property
    def retry_statuses(self) -> frozenset[int]:
        return frozenset({401, 403}) if self.retry_on_forbidden else frozenset({401})


@dataclass(frozen=True)
class SessionSettings:
    check_interval: timedelta
    refresh_window: timedelta


@dataclass(frozen=True)
class SyncSettings:
    interval: timedelta


@dataclass(frozen=True)
class StorageSettings:
    state_file: Path


@dataclass(frozen=True)
class AppSettings:
    api: ApiSettings
    session: SessionSettings
    sync: SyncSettings
    storage: StorageSettings


def _seconds_from_env(name: str, default_seconds: float) -> timedelta:
    raw = os.getenv(name)
    if not raw:
        return timedelta(seconds=default_seconds)
    try:
        seconds = float(raw)
    except ValueError:
        return timedelta(seconds=default_seconds)
    return timedelta(seconds=seconds)


def _flag_from_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    api = ApiSettings(
        base_url=os.getenv("CALSYNC_API_URL", "http://localhost:3000/api"),
        timeout=_seconds_from_env("CALSYNC_HTTP_TIMEOUT", 15).total_seconds(),
        retry_on_forbidden=_flag_from_env("CALSYNC_RETRY_ON_FORBIDDEN"),
    )

    session = SessionSettings(
        check_interval=_seconds_from_env("CALSYNC_TOKEN_CHECK_SECONDS", 60),
        refresh_window=_seconds_from_env("CALSYNC_TOKEN_REFRESH_WINDOW_SECONDS", 60),
    )

    sync = SyncSettings(interval=_seconds_from_env("CALSYNC_SYNC_INTERVAL_SECONDS", 45))

    default_state = Path(user_data_dir(APP_NAME, APP_AUTHOR)) / "client_state.json"
    storage = StorageSettings(state_file=Path(os.getenv("CALSYNC_STATE_FILE") or default_state))

    return AppSettings(api=api, session=session, sync=sync, storage=storage)
