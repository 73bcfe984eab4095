"""
Deletion of call records older than a retention window.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date
from functools import lru_cache

from sqlalchemy.orm import Session

from app.repositories.call_record_repository import CallRecordRepository
from db.base import utcnow
from db.repositories.ingested_source_repository import IngestedSourceRepository

logger = logging.getLogger(__name__)


def subtract_months(day: date, months: int) -> date:
    """
    Move ``day`` back by calendar months, clamping to the month's last day.
    """

    month_index = day.year * 12 + (day.month - 1) - months
    year, month_offset = divmod(month_index, 12)
    month = month_offset + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


class CallRecordRetentionService:
    def delete_records_older_than(
        self,
        *,
        db: Session,
        months: int,
        today: date | None = None,
    ) -> int:
        if months < 1:
            raise ValueError("months must be at least 1.")

        cutoff = subtract_months(today or utcnow().date(), months)
        deleted = CallRecordRepository(db).delete_before(cutoff)
        # Files with nothing left may be uploaded again.
        released = IngestedSourceRepository(db).release_orphaned()
        db.commit()
        logger.info(
            "Retention cleanup removed call records before=%s deleted=%d released_sources=%d",
            cutoff,
            deleted,
            released,
        )
        return deleted


@lru_cache(maxsize=1)
def get_call_record_retention_service() -> CallRecordRetentionService:
    return CallRecordRetentionService()
