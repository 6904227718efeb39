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


@dataclass(frozen=True)
class ExternalHTTPSettings:
    """
    Shared HTTP behavior settings for Google API connectors.
    """

    timeout_seconds: float = 15.0


@dataclass(frozen=True)
class GoogleAPISettings:
    """
    Endpoints used for token exchange, submission and inspection.
    """

    token_uri: str = "https://oauth2.googleapis.com/token"
    indexing_publish_url: str = "https://indexing.googleapis.com/v3/urlNotifications:publish"
    indexing_metadata_url: str = "https://indexing.googleapis.com/v3/urlNotifications/metadata"
    url_inspection_url: str = "https://searchconsole.googleapis.com/v1/urlInspection/index:inspect"
    token_lifetime_seconds: int = 3600


@dataclass(frozen=True)
class IndexingSettings:
    """
    Runtime settings for the indexing dispatcher.

    Caps are per credential and per dispatch run. The submit cap mirrors the
    Indexing API default daily publish quota; the inspect cap mirrors the
    URL Inspection API per-property daily quota.
    """

    submit_daily_cap: int = 200
    inspect_daily_cap: int = 2000
    submit_pacing_seconds: float = 0.15
    inspect_pacing_seconds: float = 0.2
    history_limit: int = 200
    notification_status_max_urls: int = 20
    coverage_scan_batch_size: int = 50
    coverage_freshness_hours: int = 24


@lru_cache(maxsize=1)
def get_external_http_settings() -> ExternalHTTPSettings:
    """
    Return shared connector HTTP settings from environment variables.
    """

    return ExternalHTTPSettings(
        timeout_seconds=max(1.0, _get_float_env("EXTERNAL_HTTP_TIMEOUT_SECONDS", 15.0)),
    )


@lru_cache(maxsize=1)
def get_google_api_settings() -> GoogleAPISettings:
    """
    Return Google API endpoint settings from environment variables.
    """

    defaults = GoogleAPISettings()
    return GoogleAPISettings(
        token_uri=_get_str_env("GOOGLE_TOKEN_URI", defaults.token_uri),
        indexing_publish_url=_get_str_env("GOOGLE_INDEXING_PUBLISH_URL", defaults.indexing_publish_url),
        indexing_metadata_url=_get_str_env("GOOGLE_INDEXING_METADATA_URL", defaults.indexing_metadata_url),
        url_inspection_url=_get_str_env("GOOGLE_URL_INSPECTION_URL", defaults.url_inspection_url),
        token_lifetime_seconds=max(60, _get_int_env("GOOGLE_TOKEN_LIFETIME_SECONDS", 3600)),
    )


@lru_cache(maxsize=1)
def get_indexing_settings() -> IndexingSettings:
    """
    Return dispatcher settings from environment variables.
    """

    return IndexingSettings(
        submit_daily_cap=max(1, _get_int_env("INDEXING_SUBMIT_DAILY_CAP", 200)),
        inspect_daily_cap=max(1, _get_int_env("INDEXING_INSPECT_DAILY_CAP", 2000)),
        submit_pacing_seconds=max(0.0, _get_float_env("INDEXING_SUBMIT_PACING_SECONDS", 0.15)),
        inspect_pacing_seconds=max(0.0, _get_float_env("INDEXING_INSPECT_PACING_SECONDS", 0.2)),
        history_limit=max(1, _get_int_env("INDEXING_HISTORY_LIMIT", 200)),
        notification_status_max_urls=max(1, _get_int_env("INDEXING_STATUS_MAX_URLS", 20)),
        coverage_scan_batch_size=max(1, _get_int_env("COVERAGE_SCAN_BATCH_SIZE", 50)),
        coverage_freshness_hours=max(0, _get_int_env("COVERAGE_FRESHNESS_HOURS", 24)),
    )
