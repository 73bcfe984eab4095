"""
app/services/batch_writer.py

Fixed-size batching of validated call records into durable storage.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.call_record import CallRecordInput
from app.repositories.call_record_repository import CallRecordRepository

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000


class BatchWriteError(RuntimeError):
    """
    Raised when a batch of valid rows cannot be persisted.
    """


class BatchWriter:
    """
    Buffers records and writes them in batches of ``batch_size``.

    Each flush is one ``insert_many`` call followed by a commit, so a batch
    either lands completely or not at all. The buffer belongs to this writer
    alone and is replaced with a fresh list on every flush.

    ``on_flush`` runs inside each batch transaction, after the insert and
    before the commit. An exception raised by it rolls the batch back.
    """

    def __init__(
        self,
        *,
        repository: CallRecordRepository,
        session: Session,
        batch_size: int = DEFAULT_BATCH_SIZE,
        on_flush: Callable[[], None] | None = None,
    ) -> None:
        self._repository = repository
        self._session = session
        self._batch_size = max(1, batch_size)
        self._on_flush = on_flush
        self._buffer: list[CallRecordInput] = []
        self._total_written = 0
        self._flush_count = 0

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def pending(self) -> int:
        return len(self._buffer)

    @property
    def total_written(self) -> int:
        return self._total_written

    @property
    def flush_count(self) -> int:
        return self._flush_count

    def add(self, record: CallRecordInput) -> int:
        """
        Buffer one record; flush when the buffer is full.

        Returns the number of records written by this call (0 when no flush
        happened).
        """

        self._buffer.append(record)
        if len(self._buffer) >= self._batch_size:
            return self.flush()
        return 0

    def flush(self) -> int:
        """
        Write whatever is buffered. Returns the number of records written.
        """

        if not self._buffer:
            return 0

        batch = self._buffer
        self._buffer = []

        try:
            written = self._repository.insert_many(batch)
            if self._on_flush is not None:
                self._on_flush()
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise BatchWriteError(
                f"Failed to persist a batch of {len(batch)} call records."
            ) from exc
        except Exception:
            self._session.rollback()
            raise

        self._total_written += written
        self._flush_count += 1
        logger.info(
            "Inserted call-record batch size=%d total=%d",
            written,
            self._total_written,
        )
        return written
