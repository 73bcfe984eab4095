from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI

from app.logging_config import configure_logging


def _validate_env() -> None:
    """
    Validate required environment variables at startup.

    Runs before any service or database connection is initialised.
    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.
    """

    from db.config import load_env_files, resolve_database_url

    load_env_files()

    errors: list[str] = []

    # --- Database URL ---------------------------------------------------
    try:
        resolve_database_url()
    except RuntimeError as exc:
        errors.append(str(exc))

    # --- Redis ------------------------------------------------------------
    redis_url = os.getenv("REDIS_URL", "").strip()
    if redis_url and not redis_url.startswith(("redis://", "rediss://", "unix://")):
        errors.append(
            f"REDIS_URL='{redis_url}' is not valid. Expected a redis://, rediss:// or unix:// URL."
        )

    # --- Delimiter --------------------------------------------------------
    if os.getenv("CALL_RECORD_DELIMITER") == "":
        errors.append("CALL_RECORD_DELIMITER must not be empty.")

    if errors:
        raise RuntimeError(
            "Startup validation failed. Missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Check the DB and create missing tables, start the import scheduler; shut it down on exit."""
    from app.config import get_import_queue_settings
    from db.session import init_database

    log = logging.getLogger(__name__)
    _check_db()
    log.info("Database connectivity confirmed")
    init_database()

    if not get_import_queue_settings().worker_enabled:
        log.info("In-process import worker disabled; run `python -m app.worker` to drain the queue")
        yield
        return

    from app.scheduler.jobs import build_scheduler

    scheduler = build_scheduler()
    scheduler.start()
    log.info("Scheduler started with %d jobs", len(scheduler.get_jobs()))
    try:
        yield
    finally:
        scheduler.shutdown(wait=True)
        log.info("Scheduler shut down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    configure_logging()

    application = FastAPI(
        title="Call Record API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import call_record_router

    application.include_router(call_record_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
