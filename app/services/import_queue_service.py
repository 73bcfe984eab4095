"""
Durable import queue: submission of uploaded files and the worker loop that
drains them.

Submitting and processing only meet through the ``import_jobs`` table, so
the worker may run inside the API process or as a separate process.
"""

from __future__ import annotations

import logging
import os
import socket
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta
from functools import lru_cache

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.config import get_import_queue_settings
from app.domain.call_record import (
    IngestionSummary,
    JobOutcome,
    JobRunResult,
    SubmissionResult,
    SubmissionStatus,
)
from app.services.call_record_ingestion_service import (
    CallRecordIngestionService,
    get_call_record_ingestion_service,
)
from app.services.duplicate_guard import DuplicateGuard
from app.services.report_cache import ReportCache, get_report_cache, report_keys_for_dates
from db.base import utcnow
from db.models.import_job import ImportJob
from db.repositories.import_job_repository import ImportJobFailureOutcome, ImportJobRepository
from db.repositories.ingested_source_repository import IngestedSourceRepository

logger = logging.getLogger(__name__)

ALREADY_UPLOADED = "Already uploaded"
IMPORT_IN_PROGRESS = "Import already in progress"
ENQUEUE_FAILED = "Failed to enqueue import job."


class ImportJobLockLostError(RuntimeError):
    """
    Raised when the running job has been reclaimed by another worker.
    """


class ImportJobExhaustedError(RuntimeError):
    """
    Raised for a reclaimed job that has already used all of its attempts.
    """


def _default_worker_id() -> str:
    return f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"


class ImportQueueService:
    """
    Enqueues call-record files and runs queued imports with retry.
    """

    def __init__(
        self,
        *,
        session_factory: sessionmaker[Session] | None = None,
        ingestion_service: CallRecordIngestionService | None = None,
        report_cache: ReportCache | None = None,
        max_attempts: int = 3,
        retry_delay_seconds: int = 5,
        stalled_job_seconds: int = 1800,
        clock: Callable[[], datetime] = utcnow,
        worker_id: str | None = None,
    ) -> None:
        if session_factory is None:
            from db.session import get_session_factory

            self._session_factory = get_session_factory()
        else:
            self._session_factory = session_factory

        self._ingestion_service = ingestion_service or get_call_record_ingestion_service()
        self._report_cache = report_cache if report_cache is not None else get_report_cache()
        self.max_attempts = max(1, max_attempts)
        self.retry_delay_seconds = max(0, retry_delay_seconds)
        self.stalled_job_seconds = max(1, stalled_job_seconds)
        self._clock = clock
        self.worker_id = worker_id or _default_worker_id()

    def submit(self, *, file_path: str, filename: str, overwrite: bool = False) -> SubmissionResult:
        """
        Queue ``file_path`` for import under the logical name ``filename``.

        The temporary file is removed whenever nothing gets queued.
        """

        with self._session_factory() as db:
            guard = DuplicateGuard(db)
            try:
                if guard.in_flight(filename):
                    return self._skip(file_path, filename, IMPORT_IN_PROGRESS)

                if guard.already_ingested(filename):
                    if not overwrite:
                        return self._skip(file_path, filename, ALREADY_UPLOADED)
                    guard.purge(filename)

                if not guard.reserve(filename):
                    return self._skip(file_path, filename, IMPORT_IN_PROGRESS)
            except SQLAlchemyError:
                db.rollback()
                logger.exception("Duplicate check failed file=%s", filename)
                self._delete_file_quietly(file_path)
                return SubmissionResult(
                    filename=filename,
                    status=SubmissionStatus.ERROR,
                    reason=ENQUEUE_FAILED,
                )

            try:
                job = ImportJobRepository(db).enqueue(
                    file_path=file_path,
                    filename=filename,
                    attempts=self.max_attempts,
                    backoff_seconds=self.retry_delay_seconds,
                    now=self._clock(),
                )
                IngestedSourceRepository(db).attach_job(filename=filename, job_id=job.id)
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                logger.exception("Failed to enqueue import job file=%s", filename)
                self._release_quietly(guard, filename)
                self._delete_file_quietly(file_path)
                return SubmissionResult(
                    filename=filename,
                    status=SubmissionStatus.ERROR,
                    reason=ENQUEUE_FAILED,
                )

        logger.info("Queued import job id=%s file=%s path=%s", job.id, filename, file_path)
        return SubmissionResult(filename=filename, status=SubmissionStatus.QUEUED, job_id=job.id)

    def process_next(self) -> JobRunResult | None:
        """
        Claim and run one due job. Returns None when nothing is due.

        Every batch commit refreshes the claim lock, so only a worker that
        stops making progress for ``stalled_job_seconds`` loses its job.
        The source file is removed only after the completion commit.
        """

        now = self._clock()
        with self._session_factory() as db:
            repository = ImportJobRepository(db)
            job = repository.claim_next(
                worker_id=self.worker_id,
                now=now,
                stalled_before=now - timedelta(seconds=self.stalled_job_seconds),
            )
            if job is None:
                db.rollback()
                return None
            db.commit()

            job_id = job.id
            filename = job.filename
            file_path = job.file_path
            attempt = job.attempts_made
            max_attempts = job.max_attempts

            if attempt > max_attempts:
                # Reclaimed after a worker died during the last allowed attempt.
                return self._record_failure(
                    db=db,
                    job_id=job_id,
                    filename=filename,
                    file_path=file_path,
                    attempt=attempt,
                    exc=ImportJobExhaustedError(
                        f"Import job stalled during its final attempt ({max_attempts}/{max_attempts})."
                    ),
                )

            logger.info(
                "Running import job id=%s file=%s attempt=%d/%d",
                job_id,
                filename,
                attempt,
                max_attempts,
            )

            guard = DuplicateGuard(db)
            try:
                if attempt > 1:
                    purged = guard.purge_records(filename)
                    if purged:
                        logger.info(
                            "Removed partial rows of earlier attempt id=%s file=%s rows=%d",
                            job_id,
                            filename,
                            purged,
                        )
                summary = self._ingestion_service.ingest_file(
                    file_path=file_path,
                    filename=filename,
                    db=db,
                    on_batch=lambda: self._keep_lock(repository, job_id),
                )
                if not repository.complete(job_id=job_id, worker_id=self.worker_id):
                    raise ImportJobLockLostError(
                        f"Import job {job_id} was reclaimed before it could complete."
                    )
                guard.mark_completed(filename, summary)
            except Exception as exc:
                return self._record_failure(
                    db=db,
                    job_id=job_id,
                    filename=filename,
                    file_path=file_path,
                    attempt=attempt,
                    exc=exc,
                )

        self._remove_source_file(file_path)
        self._invalidate_reports(summary)
        logger.info(
            "Import job succeeded id=%s file=%s inserted=%d rejected=%d",
            job_id,
            filename,
            summary.records_inserted,
            summary.rows_rejected,
        )
        return JobRunResult(
            job_id=job_id,
            filename=filename,
            attempt=attempt,
            outcome=JobOutcome.SUCCEEDED,
            summary=summary,
        )

    def process_available(self, *, max_jobs: int = 100) -> list[JobRunResult]:
        """
        Drain due jobs until none is left or ``max_jobs`` have run.
        """

        results: list[JobRunResult] = []
        while len(results) < max_jobs:
            result = self.process_next()
            if result is None:
                break
            results.append(result)
        return results

    def list_jobs(self, *, limit: int = 100, status: str | None = None) -> list[ImportJob]:
        with self._session_factory() as db:
            return ImportJobRepository(db).list_jobs(limit=limit, status=status)

    def _record_failure(
        self,
        *,
        db: Session,
        job_id: uuid.UUID,
        filename: str,
        file_path: str,
        attempt: int,
        exc: Exception,
    ) -> JobRunResult:
        error_message = f"{type(exc).__name__}: {exc}"
        db.rollback()
        try:
            outcome = ImportJobRepository(db).fail(
                job_id=job_id,
                worker_id=self.worker_id,
                error_message=error_message,
                now=self._clock(),
            )
            if outcome == ImportJobFailureOutcome.RETRYING:
                db.commit()
            elif outcome == ImportJobFailureOutcome.PERMANENTLY_FAILED:
                DuplicateGuard(db).purge(filename)
        except Exception:
            db.rollback()
            # The claim lock stays; the job is picked up again once it goes stale.
            logger.exception("Failed to persist import job failure state id=%s", job_id)
            return JobRunResult(
                job_id=job_id,
                filename=filename,
                attempt=attempt,
                outcome=JobOutcome.RETRYING,
                error_message=error_message,
            )

        if outcome is None:
            # The rows and registry entry now belong to the worker holding the job.
            db.rollback()
            logger.warning(
                "Import job lock lost, run discarded id=%s file=%s attempt=%d error=%s",
                job_id,
                filename,
                attempt,
                error_message,
            )
            return JobRunResult(
                job_id=job_id,
                filename=filename,
                attempt=attempt,
                outcome=JobOutcome.LOCK_LOST,
                error_message=error_message,
            )

        if outcome == ImportJobFailureOutcome.RETRYING:
            logger.warning(
                "Import job attempt failed, retrying in %ds id=%s file=%s attempt=%d error=%s",
                self.retry_delay_seconds,
                job_id,
                filename,
                attempt,
                error_message,
            )
            return JobRunResult(
                job_id=job_id,
                filename=filename,
                attempt=attempt,
                outcome=JobOutcome.RETRYING,
                error_message=error_message,
            )

        logger.error(
            "Import job permanently failed id=%s file=%s path=%s attempts=%d error=%s",
            job_id,
            filename,
            file_path,
            attempt,
            error_message,
        )
        return JobRunResult(
            job_id=job_id,
            filename=filename,
            attempt=attempt,
            outcome=JobOutcome.PERMANENTLY_FAILED,
            error_message=error_message,
        )

    def _keep_lock(self, repository: ImportJobRepository, job_id: uuid.UUID) -> None:
        if not repository.heartbeat(job_id=job_id, worker_id=self.worker_id, now=self._clock()):
            raise ImportJobLockLostError(f"Import job {job_id} was reclaimed by another worker.")

    def _invalidate_reports(self, summary: IngestionSummary) -> None:
        keys = report_keys_for_dates(summary.dates)
        if keys:
            self._report_cache.delete(*keys)
            logger.debug("Invalidated cached reports keys=%s", keys)

    def _skip(self, file_path: str, filename: str, reason: str) -> SubmissionResult:
        logger.info("Skipping import file=%s reason=%s", filename, reason)
        self._delete_file_quietly(file_path)
        return SubmissionResult(filename=filename, status=SubmissionStatus.SKIPPED, reason=reason)

    def _release_quietly(self, guard: DuplicateGuard, filename: str) -> None:
        try:
            guard.release(filename)
        except SQLAlchemyError:
            logger.exception("Failed to release ingestion reservation file=%s", filename)

    def _delete_file_quietly(self, file_path: str) -> None:
        try:
            os.remove(file_path)
        except OSError:
            return

    def _remove_source_file(self, file_path: str) -> None:
        try:
            os.remove(file_path)
        except FileNotFoundError:
            return
        except OSError:
            logger.warning("Could not remove imported source file path=%s", file_path)


@lru_cache(maxsize=1)
def get_import_queue_service() -> ImportQueueService:
    settings = get_import_queue_settings()
    return ImportQueueService(
        max_attempts=settings.max_attempts,
        retry_delay_seconds=settings.retry_delay_seconds,
        stalled_job_seconds=settings.stalled_job_seconds,
    )
