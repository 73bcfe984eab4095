"""
Repository backing the durable import queue.

Rows in ``import_jobs`` are the queue: enqueue inserts, a worker claims a row
with a conditional UPDATE, refreshes ``locked_at`` while it works, and
terminal outcomes delete the row. Every write after the claim is conditional
on ``locked_by``, so a worker whose job was reclaimed cannot touch it again.
Callers own the transaction and commit after each call.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta

from sqlalchemy import Select, and_, delete, or_, select, update
from sqlalchemy.orm import Session

from db.base import utcnow
from db.models.import_job import ImportJob, ImportJobStatus

_CLAIM_CANDIDATES = 10


class ImportJobFailureOutcome:
    RETRYING = "retrying"
    PERMANENTLY_FAILED = "permanently_failed"


class ImportJobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def enqueue(
        self,
        *,
        file_path: str,
        filename: str,
        attempts: int,
        backoff_seconds: int,
        now: datetime | None = None,
    ) -> ImportJob:
        job = ImportJob(
            file_path=file_path,
            filename=filename,
            status=ImportJobStatus.QUEUED,
            attempts_made=0,
            max_attempts=max(1, attempts),
            backoff_seconds=max(0, backoff_seconds),
            available_at=now or utcnow(),
        )
        self._session.add(job)
        self._session.flush()
        return job

    def get_job(self, job_id: uuid.UUID) -> ImportJob | None:
        return self._session.get(ImportJob, job_id)

    def list_jobs(self, *, limit: int = 100, status: str | None = None) -> list[ImportJob]:
        stmt: Select[tuple[ImportJob]] = select(ImportJob)
        if status:
            stmt = stmt.where(ImportJob.status == status)
        stmt = stmt.order_by(ImportJob.created_at.asc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def claim_next(
        self,
        *,
        worker_id: str,
        now: datetime,
        stalled_before: datetime,
    ) -> ImportJob | None:
        """
        Claim the oldest due job for ``worker_id``.

        The UPDATE re-checks claimability in its WHERE clause, so when two
        workers race for the same row only one of them sees rowcount == 1.
        Stalled ``running`` rows (lock older than ``stalled_before``) are
        claimable again so a crashed worker does not strand its job.
        """

        claimable = or_(
            and_(
                ImportJob.status.in_([ImportJobStatus.QUEUED, ImportJobStatus.RETRYING]),
                ImportJob.available_at <= now,
            ),
            and_(
                ImportJob.status == ImportJobStatus.RUNNING,
                ImportJob.locked_at < stalled_before,
            ),
        )
        candidates = self._session.scalars(
            select(ImportJob.id)
            .where(claimable)
            .order_by(ImportJob.available_at.asc())
            .limit(_CLAIM_CANDIDATES)
        ).all()

        for candidate_id in candidates:
            result = self._session.execute(
                update(ImportJob)
                .where(ImportJob.id == candidate_id, claimable)
                .values(
                    status=ImportJobStatus.RUNNING,
                    locked_by=worker_id,
                    locked_at=now,
                    attempts_made=ImportJob.attempts_made + 1,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                return self._session.execute(
                    select(ImportJob)
                    .where(ImportJob.id == candidate_id)
                    .execution_options(populate_existing=True)
                ).scalar_one()
        return None

    def heartbeat(self, *, job_id: uuid.UUID, worker_id: str, now: datetime) -> bool:
        """
        Refresh the claim lock. Returns False when ``worker_id`` no longer
        holds the job.
        """

        result = self._session.execute(
            update(ImportJob)
            .where(
                ImportJob.id == job_id,
                ImportJob.status == ImportJobStatus.RUNNING,
                ImportJob.locked_by == worker_id,
            )
            .values(locked_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def complete(self, *, job_id: uuid.UUID, worker_id: str) -> bool:
        result = self._session.execute(
            delete(ImportJob)
            .where(ImportJob.id == job_id, ImportJob.locked_by == worker_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def fail(
        self,
        *,
        job_id: uuid.UUID,
        worker_id: str,
        error_message: str,
        now: datetime,
    ) -> str | None:
        """
        Record a failed attempt and either reschedule the job or drop it.

        Returns the outcome, or None when the job no longer exists or is
        held by another worker.
        """

        job = self._session.execute(
            select(ImportJob)
            .where(ImportJob.id == job_id, ImportJob.locked_by == worker_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if job is None:
            return None

        if job.attempts_made >= job.max_attempts:
            self._session.delete(job)
            self._session.flush()
            return ImportJobFailureOutcome.PERMANENTLY_FAILED

        job.status = ImportJobStatus.RETRYING
        job.available_at = now + timedelta(seconds=job.backoff_seconds)
        job.locked_by = None
        job.locked_at = None
        job.last_error = error_message[:2000]
        job.updated_at = now
        self._session.flush()
        return ImportJobFailureOutcome.RETRYING
