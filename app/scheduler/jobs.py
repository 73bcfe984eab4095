"""
app/scheduler/jobs.py

APScheduler jobs for the call-record import queue and retention cleanup.

Schedule
--------
  import_queue       : every ``IMPORT_POLL_INTERVAL_SECONDS`` (default 2 s)
  retention_cleanup  : daily at ``RETENTION_RUN_HOUR_UTC`` when
                       ``RETENTION_MONTHS`` is set

Lifecycle
---------
``build_scheduler()`` returns a configured but not yet started
``BackgroundScheduler`` for the API process. The standalone worker passes a
``BlockingScheduler`` instead (see ``app/worker.py``).
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from sqlalchemy.orm import Session

from app.config import get_import_queue_settings, get_retention_settings
from app.services.import_queue_service import get_import_queue_service
from app.services.retention_service import get_call_record_retention_service
from db.session import SessionLocal

logger = logging.getLogger(__name__)


@contextmanager
def _session_scope() -> Iterator[Session]:
    """Yield a fresh session and ensure it is closed on exit."""
    session: Session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def run_import_queue() -> None:
    """
    Drain due import jobs. Failures are recorded on the job by the queue
    service, so only unexpected errors reach this level.
    """
    try:
        results = get_import_queue_service().process_available()
    except Exception:  # noqa: BLE001
        logger.exception("Scheduler: import_queue poll failed")
        return

    if results:
        logger.info("Scheduler: import_queue processed jobs=%d", len(results))


def run_retention_cleanup() -> None:
    months = get_retention_settings().months
    if months is None:
        return

    logger.info("Scheduler: retention_cleanup starting months=%d", months)
    with _session_scope() as db:
        try:
            deleted = get_call_record_retention_service().delete_records_older_than(
                db=db,
                months=months,
            )
        except Exception:  # noqa: BLE001
            db.rollback()
            logger.exception("Scheduler: retention_cleanup failed")
            return

    logger.info("Scheduler: retention_cleanup complete deleted=%d", deleted)


def register_jobs(scheduler: BaseScheduler) -> BaseScheduler:
    queue_settings = get_import_queue_settings()
    retention_settings = get_retention_settings()

    scheduler.add_job(
        run_import_queue,
        trigger="interval",
        seconds=queue_settings.poll_interval_seconds,
        id="import_queue",
        name="Call-record import queue",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=30,
    )

    if retention_settings.months is not None:
        scheduler.add_job(
            run_retention_cleanup,
            trigger="cron",
            hour=retention_settings.run_hour_utc,
            minute=0,
            id="retention_cleanup",
            name="Call-record retention cleanup",
            replace_existing=True,
            misfire_grace_time=3600,
        )

    return scheduler


def build_scheduler() -> BackgroundScheduler:
    """
    Build the in-process scheduler used by the API lifespan.

    The caller must call ``.start()`` and ``.shutdown(wait=True)``.
    """
    scheduler = BackgroundScheduler(timezone="UTC")
    register_jobs(scheduler)
    return scheduler
