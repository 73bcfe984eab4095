"""
Filename-level duplicate protection for call-record imports.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.domain.call_record import IngestionSummary
from app.repositories.call_record_repository import CallRecordRepository
from db.models.ingested_source import IngestedSourceStatus
from db.repositories.ingested_source_repository import IngestedSourceRepository

logger = logging.getLogger(__name__)


class DuplicateGuard:
    """
    Answers "was this file already ingested?" and owns the registry row
    that keeps two submissions of the same filename from both enqueuing.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._records = CallRecordRepository(session)
        self._registry = IngestedSourceRepository(session)

    def already_ingested(self, filename: str) -> bool:
        if self._records.exists_for_source(filename):
            return True
        entry = self._registry.get(filename)
        return entry is not None and entry.status == IngestedSourceStatus.COMPLETED

    def in_flight(self, filename: str) -> bool:
        entry = self._registry.get(filename)
        return entry is not None and entry.status == IngestedSourceStatus.QUEUED

    def purge(self, filename: str) -> int:
        """
        Delete every record of ``filename`` and its registry row.

        Returns the number of call records deleted.
        """

        deleted = self._records.delete_by_source(filename)
        self._registry.release(filename)
        self._session.commit()
        logger.info("Purged call records source=%s deleted=%d", filename, deleted)
        return deleted

    def purge_records(self, filename: str) -> int:
        """
        Delete the records of ``filename`` but keep its reservation.
        """

        deleted = self._records.delete_by_source(filename)
        self._session.commit()
        return deleted

    def reserve(self, filename: str) -> bool:
        return self._registry.reserve(filename)

    def release(self, filename: str) -> None:
        self._registry.release(filename)
        self._session.commit()

    def mark_completed(self, filename: str, summary: IngestionSummary) -> None:
        self._registry.mark_completed(
            filename=filename,
            records_inserted=summary.records_inserted,
            rows_rejected=summary.rows_rejected,
            quarantine_path=summary.quarantine_path,
        )
        self._session.commit()
