from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI


def _validate_env() -> None:
    """
    Validate required environment variables at startup.

    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.
    """

    from db.config import DATABASE_URL_VARIABLES, load_env_files

    load_env_files()

    errors: list[str] = []

    if not any(os.getenv(name, "").strip() for name in DATABASE_URL_VARIABLES):
        errors.append(f"No database URL configured. Set {' or '.join(DATABASE_URL_VARIABLES)}.")

    for name in ("INDEXING_SUBMIT_DAILY_CAP", "INDEXING_INSPECT_DAILY_CAP"):
        raw = os.getenv(name, "").strip()
        if raw and (not raw.isdigit() or int(raw) < 1):
            errors.append(f"{name}='{raw}' must be a positive integer.")

    for name in ("INDEXING_SUBMIT_PACING_SECONDS", "INDEXING_INSPECT_PACING_SECONDS"):
        raw = os.getenv(name, "").strip()
        if not raw:
            continue
        try:
            if float(raw) < 0:
                raise ValueError(raw)
        except ValueError:
            errors.append(f"{name}='{raw}' must be a non-negative number of seconds.")

    if errors:
        raise RuntimeError(
            "Startup validation failed, missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Abort startup when a table registered on Base.metadata is missing.

    Does NOT auto-migrate; run 'alembic upgrade head' first.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401  registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    missing = set(Base.metadata.tables.keys()) - set(inspector.get_table_names())
    if missing:
        logging.getLogger(__name__).critical(
            "Schema mismatch, %d table(s) absent from the database: %s. "
            "Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


def _log_dispatch_limits() -> None:
    from app.config import get_indexing_settings
    from app.logging_utils import log_event

    settings = get_indexing_settings()
    log_event(
        logging.getLogger(__name__),
        logging.INFO,
        "dispatch_limits",
        submit_daily_cap=settings.submit_daily_cap,
        inspect_daily_cap=settings.inspect_daily_cap,
        submit_pacing_seconds=settings.submit_pacing_seconds,
        inspect_pacing_seconds=settings.inspect_pacing_seconds,
    )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema before serving traffic."""
    _check_db()
    logging.getLogger(__name__).info("Database connectivity confirmed")
    _check_schema()
    logging.getLogger(__name__).info("Database schema validated")
    _log_dispatch_limits()
    yield


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Indexing Dispatcher API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import indexing_router

    application.include_router(indexing_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
