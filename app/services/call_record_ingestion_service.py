"""
Call-record file ingestion: stream, validate, batch-insert, quarantine.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import lru_cache

from sqlalchemy.orm import Session

from app.config import get_call_record_ingestion_settings
from app.domain.call_record import IngestionSummary
from app.repositories.call_record_repository import CallRecordRepository
from app.services.batch_writer import DEFAULT_BATCH_SIZE, BatchWriter
from app.services.quarantine import QuarantineLog
from app.validators.call_record_validator import CallRecordRowValidator

logger = logging.getLogger(__name__)


class IngestionFileError(RuntimeError):
    """
    Raised when the source file cannot be opened or read.
    """


class CallRecordIngestionService:
    """
    Runs one ingestion pass over a call-record source file.

    Row-level problems never abort the pass; they are written to the
    quarantine log. Storage, file and quarantine failures propagate, and the
    source file is then left on disk so the job can be retried. The source
    file is never removed here; the caller does that once the import is
    recorded as complete.
    """

    def __init__(
        self,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        quarantine_dir: str = "uploads/logs",
        delimiter: str = ",",
        validator: CallRecordRowValidator | None = None,
    ) -> None:
        self.batch_size = max(1, batch_size)
        self.quarantine_dir = quarantine_dir
        self._validator = validator or CallRecordRowValidator(delimiter=delimiter)

    def ingest_file(
        self,
        *,
        file_path: str,
        filename: str,
        db: Session,
        on_batch: Callable[[], None] | None = None,
    ) -> IngestionSummary:
        """
        Ingest ``file_path`` as source ``filename``.

        ``on_batch`` runs inside every batch transaction before its commit.
        """

        writer = BatchWriter(
            repository=CallRecordRepository(db),
            session=db,
            batch_size=self.batch_size,
            on_flush=on_batch,
        )
        dates: set[str] = set()

        logger.info("Starting call-record ingestion file=%s path=%s", filename, file_path)
        with QuarantineLog(self.quarantine_dir) as quarantine:
            try:
                # newline=None gives universal newlines; utf-8-sig drops a leading BOM.
                with open(file_path, encoding="utf-8-sig", errors="replace", newline=None) as handle:
                    for line_number, raw_line in enumerate(handle, start=1):
                        line = raw_line.rstrip("\n")
                        record, rejected = self._validator.parse_line(
                            line,
                            source=filename,
                            line_number=line_number,
                        )
                        if rejected is not None:
                            quarantine.record(rejected)
                        elif record is not None:
                            dates.add(record.date)
                            writer.add(record)
            except OSError as exc:
                raise IngestionFileError(f"Failed to read source file {file_path}: {exc}") from exc

            writer.flush()
            quarantine_path = quarantine.close()
            rows_rejected = quarantine.count

        if rows_rejected:
            logger.warning(
                "Call-record ingestion rejected rows file=%s invalid=%d quarantine=%s",
                filename,
                rows_rejected,
                quarantine_path,
            )

        logger.info(
            "Finished call-record ingestion file=%s inserted=%d rejected=%d batches=%d",
            filename,
            writer.total_written,
            rows_rejected,
            writer.flush_count,
        )
        return IngestionSummary(
            records_inserted=writer.total_written,
            rows_rejected=rows_rejected,
            quarantine_path=quarantine_path,
            dates=tuple(sorted(dates)),
        )


@lru_cache(maxsize=1)
def get_call_record_ingestion_service() -> CallRecordIngestionService:
    settings = get_call_record_ingestion_settings()
    return CallRecordIngestionService(
        batch_size=settings.batch_size,
        quarantine_dir=settings.quarantine_dir,
        delimiter=settings.delimiter,
    )
