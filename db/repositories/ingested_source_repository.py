"""
Repository for the ingestion registry (``ingested_sources``).
"""

from __future__ import annotations

import uuid

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.models.call_record import CallRecord
from db.models.ingested_source import IngestedSource, IngestedSourceStatus


class IngestedSourceRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, filename: str) -> IngestedSource | None:
        return self._session.get(IngestedSource, filename)

    def reserve(self, filename: str) -> bool:
        """
        Insert the registry row for ``filename`` and commit it.

        Returns False when another submission already holds the filename.
        The session is rolled back in that case.
        """

        self._session.add(IngestedSource(filename=filename, status=IngestedSourceStatus.QUEUED))
        try:
            self._session.commit()
        except IntegrityError:
            self._session.rollback()
            return False
        return True

    def attach_job(self, *, filename: str, job_id: uuid.UUID) -> IngestedSource | None:
        entry = self.get(filename)
        if entry is None:
            return None
        entry.job_id = job_id
        return entry

    def mark_completed(
        self,
        *,
        filename: str,
        records_inserted: int,
        rows_rejected: int,
        quarantine_path: str | None,
    ) -> IngestedSource | None:
        entry = self.get(filename)
        if entry is None:
            return None
        entry.status = IngestedSourceStatus.COMPLETED
        entry.records_inserted = records_inserted
        entry.rows_rejected = rows_rejected
        entry.quarantine_path = quarantine_path
        return entry

    def release(self, filename: str) -> int:
        result = self._session.execute(
            delete(IngestedSource).where(IngestedSource.filename == filename)
        )
        return result.rowcount or 0

    def release_orphaned(self) -> int:
        """
        Delete completed entries whose call records have all been removed,
        so the file can be uploaded again.

        Entries that never inserted a row are kept; nothing of theirs expires.
        """

        has_records = (
            select(CallRecord.id)
            .where(CallRecord.source == IngestedSource.filename)
            .correlate(IngestedSource)
            .exists()
        )
        result = self._session.execute(
            delete(IngestedSource)
            .where(
                IngestedSource.status == IngestedSourceStatus.COMPLETED,
                IngestedSource.records_inserted > 0,
                ~has_records,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
