"""
app/worker.py

Standalone import worker. Runs the same scheduled jobs as the API process
so imports can be drained without serving HTTP:

    python -m app.worker
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.blocking import BlockingScheduler

from app.logging_config import configure_logging
from app.scheduler.jobs import register_jobs
from db.session import init_database

logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging()
    init_database()

    scheduler = BlockingScheduler(timezone="UTC")
    register_jobs(scheduler)
    logger.info("Import worker started with %d jobs", len(scheduler.get_jobs()))
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Import worker stopped")


if __name__ == "__main__":
    main()
