"""
app/domain/call_record.py

Domain models used by the call-record ingestion flow.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date


@dataclass(frozen=True)
class CallRecordInput:
    """
    Validated call record prepared for persistence.
    """

    date: str
    call_day: date
    hour: int
    time: str
    close_reason: int
    source: str


@dataclass(frozen=True)
class FieldViolation:
    """
    One field-level constraint violation on a parsed candidate.
    """

    field: str
    reason: str


@dataclass(frozen=True)
class RejectedLine:
    """
    One input line that failed parsing or validation.
    """

    line: str
    reason: str
    line_number: int | None = None


@dataclass(frozen=True)
class IngestionSummary:
    """
    End-of-run ingestion summary for one source file.
    """

    records_inserted: int
    rows_rejected: int
    quarantine_path: str | None = None
    dates: tuple[str, ...] = field(default_factory=tuple)


class JobOutcome:
    SUCCEEDED = "succeeded"
    RETRYING = "retrying"
    PERMANENTLY_FAILED = "permanently_failed"
    # Another worker reclaimed the job mid-run; this run's result is discarded.
    LOCK_LOST = "lock_lost"


class SubmissionStatus:
    QUEUED = "queued"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass(frozen=True)
class SubmissionResult:
    """
    Outcome of submitting one file for import.
    """

    filename: str
    status: str
    reason: str | None = None
    job_id: uuid.UUID | None = None


@dataclass(frozen=True)
class JobRunResult:
    """
    What happened when a worker processed one claimed job.
    """

    job_id: uuid.UUID
    filename: str
    attempt: int
    outcome: str
    summary: IngestionSummary | None = None
    error_message: str | None = None
