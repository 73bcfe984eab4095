"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class CallRecordIngestionSettings:
    """
    Runtime settings for call-record CSV ingestion.
    """

    batch_size: int = 1000
    delimiter: str = ","
    upload_dir: str = "uploads"
    quarantine_dir: str = "uploads/logs"
    max_upload_files: int = 10
    max_upload_file_bytes: int = 10 * 1024 * 1024


@dataclass(frozen=True)
class ImportQueueSettings:
    """
    Retry and polling behaviour of the durable import queue.
    """

    max_attempts: int = 3
    retry_delay_seconds: int = 5
    poll_interval_seconds: float = 2.0
    stalled_job_seconds: int = 1800
    worker_enabled: bool = True


@dataclass(frozen=True)
class ReportCacheSettings:
    """
    Report cache backend and entry lifetime.
    """

    ttl_seconds: int = 600
    redis_url: str | None = None
    key_prefix: str = "call-record"


@dataclass(frozen=True)
class RetentionSettings:
    """
    Scheduled cleanup of old call records. Disabled when months is None.
    """

    months: int | None = None
    run_hour_utc: int = 1


@lru_cache(maxsize=1)
def get_call_record_ingestion_settings() -> CallRecordIngestionSettings:
    """
    Return cached ingestion settings from environment variables.
    """

    upload_dir = _get_str_env("UPLOAD_DIR", "uploads")
    return CallRecordIngestionSettings(
        batch_size=max(1, _get_int_env("CALL_RECORD_BATCH_SIZE", 1000)),
        delimiter=_get_str_env("CALL_RECORD_DELIMITER", ","),
        upload_dir=upload_dir,
        quarantine_dir=_get_str_env("QUARANTINE_DIR", os.path.join(upload_dir, "logs")),
        max_upload_files=max(1, _get_int_env("UPLOAD_MAX_FILES", 10)),
        max_upload_file_bytes=max(1, _get_int_env("UPLOAD_MAX_FILE_BYTES", 10 * 1024 * 1024)),
    )


@lru_cache(maxsize=1)
def get_import_queue_settings() -> ImportQueueSettings:
    """
    Return cached import queue settings from environment variables.
    """

    return ImportQueueSettings(
        max_attempts=max(1, _get_int_env("IMPORT_MAX_ATTEMPTS", 3)),
        retry_delay_seconds=max(0, _get_int_env("IMPORT_RETRY_DELAY_SECONDS", 5)),
        poll_interval_seconds=max(0.1, _get_float_env("IMPORT_POLL_INTERVAL_SECONDS", 2.0)),
        stalled_job_seconds=max(1, _get_int_env("IMPORT_STALLED_JOB_SECONDS", 1800)),
        worker_enabled=_get_bool_env("IMPORT_WORKER_ENABLED", True),
    )


@lru_cache(maxsize=1)
def get_report_cache_settings() -> ReportCacheSettings:
    """
    Return cached report cache settings from environment variables.
    """

    return ReportCacheSettings(
        ttl_seconds=max(1, _get_int_env("REPORT_CACHE_TTL_SECONDS", 600)),
        redis_url=_get_optional_str_env("REDIS_URL"),
        key_prefix=_get_str_env("REPORT_CACHE_KEY_PREFIX", "call-record"),
    )


@lru_cache(maxsize=1)
def get_retention_settings() -> RetentionSettings:
    """
    Return cached retention settings from environment variables.
    """

    raw_months = _get_optional_str_env("RETENTION_MONTHS")
    months: int | None = None
    if raw_months is not None:
        try:
            months = max(1, int(raw_months))
        except ValueError:
            months = None

    return RetentionSettings(
        months=months,
        run_hour_utc=min(23, max(0, _get_int_env("RETENTION_RUN_HOUR_UTC", 1))),
    )
