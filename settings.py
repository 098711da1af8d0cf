from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple


_DEVICE_IDS_ENV = "THERMOSTAT_DEVICE_IDS"
_COMFORT_TARGET_ENV = "COMFORT_TARGET_C"
_COMFORT_RANGE_ENV = "COMFORT_RANGE_C"
_CHECK_RANGE_ENV = "CHECK_RANGE_MINUTES"
_REPORTING_WINDOW_ENV = "REPORTING_WINDOW_MINUTES"
_CACHE_TTL_ENV = "READING_CACHE_TTL_SECONDS"
_API_BASE_URL_ENV = "NEST_API_BASE_URL"
_AUTH_URL_ENV = "NEST_AUTH_URL"
_CLIENT_ID_ENV = "NEST_CLIENT_ID"
_CLIENT_SECRET_ENV = "NEST_CLIENT_SECRET"
_AUTH_CODE_ENV = "NEST_AUTHORIZATION_CODE"
_PROACTIVE_EXPIRY_ENV = "TOKEN_PROACTIVE_EXPIRY"
_WEBHOOK_URL_ENV = "WEBHOOK_URL"
_HOT_TEMPLATE_ENV = "HOT_MESSAGE_TEMPLATE"
_COLD_TEMPLATE_ENV = "COLD_MESSAGE_TEMPLATE"
_HTTP_TIMEOUT_ENV = "HTTP_TIMEOUT_SECONDS"
_BLOB_ROOT_ENV = "CREDENTIAL_BLOB_ROOT"
_BLOB_CONTAINER_ENV = "CREDENTIAL_BLOB_CONTAINER"
_READINGS_PATH_ENV = "READINGS_TABLE_PATH"
_ALERTS_PATH_ENV = "ALERTS_TABLE_PATH"
_POLL_INTERVAL_ENV = "POLL_INTERVAL_SECONDS"
_EVALUATION_INTERVAL_ENV = "EVALUATION_INTERVAL_SECONDS"
_SCHEDULER_ENABLED_ENV = "SCHEDULER_ENABLED"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_HOT_TEMPLATE = (
    "Thermostat {device_id} has been above {comfort_max}°C for the last "
    "{minutes} minutes (currently {temperature}°C)."
)
DEFAULT_COLD_TEMPLATE = (
    "Thermostat {device_id} has been below {comfort_min}°C for the last "
    "{minutes} minutes (currently {temperature}°C)."
)

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    device_ids: Tuple[str, ...]
    comfort_target: float
    comfort_range: float
    check_range_minutes: int
    reporting_window_minutes: int
    cache_ttl_seconds: float
    api_base_url: str
    auth_url: str
    client_id: str
    client_secret: str
    authorization_code: str
    proactive_token_expiry: bool
    webhook_url: Optional[str]
    hot_message_template: str
    cold_message_template: str
    http_timeout_seconds: float
    blob_root_path: Optional[str]
    blob_container: str
    readings_table_path: Optional[str]
    alerts_table_path: Optional[str]
    poll_interval_seconds: float
    evaluation_interval_seconds: float
    scheduler_enabled: bool
    log_level: str

    @property
    def comfort_min(self) -> float:
        return self.comfort_target - self.comfort_range

    @property
    def comfort_max(self) -> float:
        return self.comfort_target + self.comfort_range


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


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


def _read_float(name: str, default: float, positive: bool = True) -> float:
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
    if positive and parsed <= 0:
        return default
    return parsed


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


def _read_device_ids() -> Tuple[str, ...]:
    value = os.getenv(_DEVICE_IDS_ENV) or ""
    parts = (part.strip() for part in value.split(","))
    return tuple(dict.fromkeys(part for part in parts if part))


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
        device_ids=_read_device_ids(),
        comfort_target=_read_float(_COMFORT_TARGET_ENV, 21.0, positive=False),
        comfort_range=_read_float(_COMFORT_RANGE_ENV, 2.0),
        check_range_minutes=_read_positive_int(_CHECK_RANGE_ENV, 30),
        reporting_window_minutes=_read_positive_int(_REPORTING_WINDOW_ENV, 60),
        cache_ttl_seconds=_read_float(_CACHE_TTL_ENV, 60.0),
        api_base_url=_read_str_env(_API_BASE_URL_ENV, "https://developer-api.nest.com").rstrip("/"),
        auth_url=_read_str_env(_AUTH_URL_ENV, "https://api.home.nest.com/oauth2/access_token"),
        client_id=_read_str_env(_CLIENT_ID_ENV, ""),
        client_secret=_read_str_env(_CLIENT_SECRET_ENV, ""),
        authorization_code=_read_str_env(_AUTH_CODE_ENV, ""),
        proactive_token_expiry=_read_bool(_PROACTIVE_EXPIRY_ENV, False),
        webhook_url=_read_optional_env(_WEBHOOK_URL_ENV, None),
        hot_message_template=_read_str_env(_HOT_TEMPLATE_ENV, DEFAULT_HOT_TEMPLATE),
        cold_message_template=_read_str_env(_COLD_TEMPLATE_ENV, DEFAULT_COLD_TEMPLATE),
        http_timeout_seconds=_read_float(_HTTP_TIMEOUT_ENV, 10.0),
        blob_root_path=_read_optional_env(_BLOB_ROOT_ENV, "./tmp/blob"),
        blob_container=_read_str_env(_BLOB_CONTAINER_ENV, "temp-monitor"),
        readings_table_path=_read_optional_env(_READINGS_PATH_ENV, "./tmp/readings.json"),
        alerts_table_path=_read_optional_env(_ALERTS_PATH_ENV, "./tmp/alerts.json"),
        poll_interval_seconds=_read_float(_POLL_INTERVAL_ENV, 300.0),
        evaluation_interval_seconds=_read_float(_EVALUATION_INTERVAL_ENV, 60.0),
        scheduler_enabled=_read_bool(_SCHEDULER_ENABLED_ENV, False),
        log_level=_read_log_level("INFO"),
    )
