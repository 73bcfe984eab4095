"""
app/domain package marker.
"""

from app.domain.call_record import (
    CallRecordInput,
    FieldViolation,
    IngestionSummary,
    JobOutcome,
    JobRunResult,
    RejectedLine,
    SubmissionResult,
    SubmissionStatus,
)
from app.domain.reports import DailySummary, HourlyReportRow, UploadedFileSummary

__all__ = [
    "CallRecordInput",
    "DailySummary",
    "FieldViolation",
    "HourlyReportRow",
    "IngestionSummary",
    "JobOutcome",
    "JobRunResult",
    "RejectedLine",
    "SubmissionResult",
    "SubmissionStatus",
    "UploadedFileSummary",
]
