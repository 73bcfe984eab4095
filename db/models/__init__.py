"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and
``init_database()`` work without extra imports.
"""

from db.models.call_record import CallRecord, CloseReason
from db.models.import_job import ImportJob, ImportJobStatus
from db.models.ingested_source import IngestedSource, IngestedSourceStatus

__all__ = [
    "CallRecord",
    "CloseReason",
    "ImportJob",
    "ImportJobStatus",
    "IngestedSource",
    "IngestedSourceStatus",
]
