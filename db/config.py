"""
Database URL resolution for the indexing service.
"""

from __future__ import annotations

import os
from pathlib import Path

DATABASE_URL_VARIABLES = ("DATABASE_URL", "CLOUD_DATABASE_URL")


def load_env_files(project_root: Path | None = None) -> None:
    """
    Load KEY=VALUE pairs from `.env` in the project root without overriding
    variables already set in the process environment.
    """

    env_path = (project_root or Path(__file__).resolve().parents[1]) / ".env"
    if not env_path.is_file():
        return
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip().strip("\"'"))


def normalize_postgres_url(url: str) -> str:
    """
    Use the psycopg (v3) driver for bare postgres URLs.
    """

    scheme, separator, rest = url.partition("://")
    if separator and scheme in {"postgres", "postgresql"}:
        return f"postgresql+psycopg://{rest}"
    return url


def resolve_database_url() -> str:
    """
    First non-empty of DATABASE_URL, CLOUD_DATABASE_URL.
    """

    load_env_files()
    for name in DATABASE_URL_VARIABLES:
        value = os.getenv(name, "").strip()
        if value:
            return normalize_postgres_url(value)
    raise RuntimeError(f"No database URL configured. Set {' or '.join(DATABASE_URL_VARIABLES)}.")
