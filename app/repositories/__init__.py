"""
app/repositories package marker.
"""

from app.repositories.call_record_repository import (
    CallRecordRepository,
    HourlyCloseReasonCounts,
    SourceAggregate,
)

__all__ = [
    "CallRecordRepository",
    "HourlyCloseReasonCounts",
    "SourceAggregate",
]
