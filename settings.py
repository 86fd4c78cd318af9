from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_FILE_PATH_ENV = "TEMPERATURE_FILE_PATH"
_HOST_ENV = "HOST"
_PORT_ENV = "PORT"
_CORS_ORIGIN_ENV = "CORS_ORIGIN"
_STABILITY_ENV = "WATCH_STABILITY_THRESHOLD_MS"
_POLL_INTERVAL_ENV = "WATCH_POLL_INTERVAL_MS"
_FORCE_POLLING_ENV = "WATCH_FORCE_POLLING"
_SNAPSHOT_ENV = "SNAPSHOT_ON_CONNECT"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    temperature_file: str
    host: str
    port: int
    cors_origin: str
    stability_threshold_ms: int
    poll_interval_ms: int
    force_polling: bool
    snapshot_on_connect: bool
    log_level: str

    @property
    def stability_threshold(self) -> float:
        return self.stability_threshold_ms / 1000

    @property
    def poll_interval(self) -> float:
        return self.poll_interval_ms / 1000


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in _TRUTHY:
        return True
    if candidate in _FALSY:
        return False
    return default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        temperature_file=_read_str_env(_FILE_PATH_ENV, "./temperature.txt"),
        host=_read_str_env(_HOST_ENV, "0.0.0.0"),
        port=_read_positive_int(_PORT_ENV, 3001),
        cors_origin=_read_str_env(_CORS_ORIGIN_ENV, "http://localhost:5173"),
        stability_threshold_ms=_read_positive_int(_STABILITY_ENV, 100),
        poll_interval_ms=_read_positive_int(_POLL_INTERVAL_ENV, 50),
        force_polling=_read_bool_env(_FORCE_POLLING_ENV, False),
        snapshot_on_connect=_read_bool_env(_SNAPSHOT_ENV, False),
        log_level=_read_log_level("INFO"),
    )
