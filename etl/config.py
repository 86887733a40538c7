"""
etl/config.py

Environment-driven settings for the ingestion pipeline and its host process.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from db.config import get_bool_env, get_float_env, get_int_env, load_env_once

_PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _get_optional_int_env(name: str) -> int | None:
    load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return None
    try:
        return int(raw_value)
    except ValueError:
        return None


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _parse_int_list(raw: str) -> tuple[int, ...]:
    values: list[int] = []
    for token in raw.split(","):
        token = token.strip()
        if not token:
            continue
        try:
            parsed = int(token)
        except ValueError:
            continue
        if parsed > 0 and parsed not in values:
            values.append(parsed)
    return tuple(values)


@dataclass(frozen=True)
class SourceAPISettings:
    """
    Upstream open-data API settings.
    """

    base_url: str = "https://api.data.gov.in/resource/ee03643a-ee4c-48c2-ac30-9f2ff26ab722"
    api_key: str | None = None
    response_format: str = "json"
    limit: int | None = None
    user_agent: str = "rural-employment-etl/1.0"


@dataclass(frozen=True)
class HTTPSettings:
    """
    Shared HTTP behavior settings for the source connector.
    """

    timeout_seconds: float = 30.0
    max_retries: int = 3
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0


@dataclass(frozen=True)
class ETLSettings:
    """
    Batch processing, snapshot and run-limit settings.
    """

    # None processes the whole batch as one chunk.
    batch_size: int | None = 1000
    chunk_pause_seconds: float = 0.1
    record_limit: int | None = None
    snapshot_dir: Path = _PROJECT_ROOT / "data" / "snapshots"
    snapshot_sample_size: int = 100


@dataclass(frozen=True)
class SchedulerSettings:
    """
    Cron trigger settings for the run coordinator.
    """

    enabled: bool = True
    cron_expression: str = "0 2 1 * *"
    timezone: str = "Asia/Kolkata"
    misfire_grace_seconds: int = 3600


@dataclass(frozen=True)
class CacheSettings:
    """
    Cache connection and invalidation settings.
    """

    redis_url: str | None = None
    history_windows: tuple[int, ...] = (12,)


@dataclass(frozen=True)
class QueueSettings:
    """
    Work queue settings for decoupled run triggering.
    """

    enabled: bool = True
    backend: str = "memory"
    redis_url: str | None = None
    queue_name: str = "mgnrega-etl"
    job_name: str = "monthly-etl"
    poll_timeout_seconds: float = 5.0


@lru_cache(maxsize=1)
def get_source_api_settings() -> SourceAPISettings:
    """
    Return upstream API settings from environment variables.
    """

    limit = _get_optional_int_env("SOURCE_API_LIMIT")
    return SourceAPISettings(
        base_url=_get_str_env("SOURCE_API_BASE_URL", SourceAPISettings.base_url),
        api_key=_get_optional_str_env("SOURCE_API_KEY"),
        response_format=_get_str_env("SOURCE_API_FORMAT", "json"),
        limit=limit if limit is not None and limit > 0 else None,
        user_agent=_get_str_env("SOURCE_API_USER_AGENT", SourceAPISettings.user_agent),
    )


@lru_cache(maxsize=1)
def get_http_settings() -> HTTPSettings:
    """
    Return connector HTTP settings from environment variables.
    """

    return HTTPSettings(
        timeout_seconds=max(1.0, get_float_env("SOURCE_HTTP_TIMEOUT_SECONDS", 30.0)),
        max_retries=max(0, get_int_env("SOURCE_HTTP_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(0.1, get_float_env("SOURCE_HTTP_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, get_float_env("SOURCE_HTTP_BACKOFF_MULTIPLIER", 2.0)),
    )


@lru_cache(maxsize=1)
def get_etl_settings() -> ETLSettings:
    """
    Return batch processing settings from environment variables.
    """

    batch_size = get_int_env("ETL_BATCH_SIZE", 1000)
    record_limit = _get_optional_int_env("ETL_RECORD_LIMIT")
    snapshot_dir = _get_optional_str_env("SNAPSHOT_DIR")
    return ETLSettings(
        batch_size=batch_size if batch_size > 0 else None,
        chunk_pause_seconds=max(0.0, get_float_env("ETL_CHUNK_PAUSE_SECONDS", 0.1)),
        record_limit=record_limit if record_limit is not None and record_limit > 0 else None,
        snapshot_dir=Path(snapshot_dir) if snapshot_dir else ETLSettings.snapshot_dir,
        snapshot_sample_size=max(0, get_int_env("SNAPSHOT_SAMPLE_SIZE", 100)),
    )


@lru_cache(maxsize=1)
def get_scheduler_settings() -> SchedulerSettings:
    """
    Return cron trigger settings from environment variables.
    """

    return SchedulerSettings(
        enabled=get_bool_env("ENABLE_ETL_SCHEDULER", True),
        cron_expression=_get_str_env("ETL_CRON_SCHEDULE", "0 2 1 * *"),
        timezone=_get_str_env("ETL_TIMEZONE", _get_str_env("TZ", "Asia/Kolkata")),
        misfire_grace_seconds=max(1, get_int_env("ETL_MISFIRE_GRACE_SECONDS", 3600)),
    )


@lru_cache(maxsize=1)
def get_cache_settings() -> CacheSettings:
    """
    Return cache settings from environment variables.
    """

    return CacheSettings(
        redis_url=_get_optional_str_env("REDIS_URL"),
        history_windows=_parse_int_list(_get_str_env("CACHE_HISTORY_WINDOWS", "12")),
    )


@lru_cache(maxsize=1)
def get_queue_settings() -> QueueSettings:
    """
    Return work queue settings from environment variables.
    """

    return QueueSettings(
        enabled=get_bool_env("ETL_QUEUE_ENABLED", True),
        backend=_get_str_env("ETL_QUEUE_BACKEND", "memory").lower(),
        redis_url=_get_optional_str_env("ETL_QUEUE_REDIS_URL") or _get_optional_str_env("REDIS_URL"),
        queue_name=_get_str_env("ETL_QUEUE_NAME", "mgnrega-etl"),
        job_name=_get_str_env("ETL_QUEUE_JOB_NAME", "monthly-etl"),
        poll_timeout_seconds=max(0.1, get_float_env("ETL_QUEUE_POLL_TIMEOUT_SECONDS", 5.0)),
    )
