from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_BASE_URL_ENV = "DASHBOARD_API_BASE_URL"
_READINGS_PATH_ENV = "DASHBOARD_READINGS_PATH"
_VARIANT_ENV = "DASHBOARD_VARIANT"
_POLL_INTERVAL_ENV = "DASHBOARD_POLL_INTERVAL"
_RETRY_ATTEMPTS_ENV = "DASHBOARD_RETRY_ATTEMPTS"
_RETRY_DELAY_ENV = "DASHBOARD_RETRY_DELAY"
_REQUEST_TIMEOUT_ENV = "DASHBOARD_REQUEST_TIMEOUT"
_PAGE_SIZE_ENV = "DASHBOARD_PAGE_SIZE"
_DEBOUNCE_ENV = "DASHBOARD_DEBOUNCE_MS"
_DEFAULT_TODAY_ENV = "DASHBOARD_DEFAULT_TODAY"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_VARIANTS = ("water", "climate")
_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    api_base_url: str
    readings_path: str
    variant: str
    poll_interval: float
    retry_attempts: int
    retry_delay: float
    request_timeout: float
    page_size: int
    debounce_ms: int
    default_today: bool
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


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


def _read_non_negative_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = float(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in _TRUTHY:
        return True
    if candidate in _FALSY:
        return False
    return default


def _read_variant(default: str) -> str:
    candidate = _read_str_env(_VARIANT_ENV, default).lower()
    return candidate if candidate in _VARIANTS else default


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
        api_base_url=_read_str_env(_BASE_URL_ENV, "http://localhost:3000").rstrip("/"),
        readings_path=_read_str_env(_READINGS_PATH_ENV, "/readings"),
        variant=_read_variant("water"),
        poll_interval=_read_positive_float(_POLL_INTERVAL_ENV, 10.0),
        retry_attempts=_read_positive_int(_RETRY_ATTEMPTS_ENV, 3),
        retry_delay=_read_non_negative_float(_RETRY_DELAY_ENV, 1.0),
        request_timeout=_read_positive_float(_REQUEST_TIMEOUT_ENV, 10.0),
        page_size=_read_positive_int(_PAGE_SIZE_ENV, 3),
        debounce_ms=int(_read_non_negative_float(_DEBOUNCE_ENV, 300)),
        default_today=_read_bool(_DEFAULT_TODAY_ENV, False),
        log_level=_read_log_level("INFO"),
    )
