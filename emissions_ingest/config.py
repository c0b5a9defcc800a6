"""
emissions_ingest/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files

_ALLOWED_APP_MODES = {"cloud"}
_ALLOWED_LLM_ADAPTERS = {"openai", "mock", "none"}


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _require_app_mode() -> str:
    """
    Read and validate APP_MODE from the environment.

    APP_MODE must be explicitly set to 'cloud'. Any other value, or the
    absence of the variable, raises RuntimeError.
    """

    _load_env_once()
    raw = os.getenv("APP_MODE")
    if raw is None:
        raise RuntimeError("APP_MODE must be explicitly set to 'cloud'.")
    mode = raw.strip().lower()
    if mode not in _ALLOWED_APP_MODES:
        raise RuntimeError(
            f"APP_MODE '{raw.strip()}' is not valid. "
            f"Allowed values: {sorted(_ALLOWED_APP_MODES)}."
        )
    return mode


@dataclass(frozen=True)
class AppSettings:
    """
    Top-level application mode settings.
    """

    mode: str


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """
    Return cached application settings.

    Raises RuntimeError if APP_MODE is missing or not set to 'cloud'.
    """

    return AppSettings(mode=_require_app_mode())


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
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class IngestionSettings:
    """
    Runtime settings for preview and commit.
    """

    preview_max_rows: int = 1000
    preview_max_problems: int = 10
    preview_sample_rows: int = 5
    job_max_problems: int = 500
    max_upload_bytes: int = 20 * 1024 * 1024
    min_year: int = 1990
    log_row_problems: bool = True


@dataclass(frozen=True)
class MappingAssistantSettings:
    """
    Assisted column mapping backend settings.
    """

    adapter: str = "openai"
    model: str = "gpt-4o-mini"
    api_key: str | None = None
    base_url: str | None = None
    max_retries: int = 2
    timeout_seconds: float = 20.0


@lru_cache(maxsize=1)
def get_ingestion_settings() -> IngestionSettings:
    """
    Return cached ingestion settings from environment variables.
    """

    return IngestionSettings(
        preview_max_rows=max(1, _get_int_env("INGEST_PREVIEW_MAX_ROWS", 1000)),
        preview_max_problems=max(1, _get_int_env("INGEST_PREVIEW_MAX_PROBLEMS", 10)),
        preview_sample_rows=max(0, _get_int_env("INGEST_PREVIEW_SAMPLE_ROWS", 5)),
        job_max_problems=max(1, _get_int_env("INGEST_JOB_MAX_PROBLEMS", 500)),
        max_upload_bytes=max(1024, _get_int_env("INGEST_MAX_UPLOAD_BYTES", 20 * 1024 * 1024)),
        min_year=_get_int_env("INGEST_MIN_YEAR", 1990),
        log_row_problems=_get_bool_env("INGEST_LOG_ROW_PROBLEMS", True),
    )


@lru_cache(maxsize=1)
def get_mapping_assistant_settings() -> MappingAssistantSettings:
    """
    Return assisted-mapping settings. Unknown adapter names disable the assistant.
    """

    adapter = _get_str_env("LLM_ADAPTER", "openai").lower()
    if adapter not in _ALLOWED_LLM_ADAPTERS:
        adapter = "none"
    return MappingAssistantSettings(
        adapter=adapter,
        model=_get_str_env("LLM_MODEL", "gpt-4o-mini"),
        api_key=_get_optional_str_env("LLM_API_KEY") or _get_optional_str_env("OPENAI_API_KEY"),
        base_url=_get_optional_str_env("LLM_BASE_URL"),
        max_retries=max(0, _get_int_env("LLM_MAX_RETRIES", 2)),
        timeout_seconds=max(1.0, _get_float_env("LLM_TIMEOUT_SECONDS", 20.0)),
    )
