"""
app/schemas package marker.
"""

from app.schemas.call_record import (
    CleanupResponse,
    DailySummaryResponse,
    HourlyReportRowResponse,
    ImportJobListResponse,
    ImportJobResponse,
    UploadCountsResponse,
    UploadedFileResponse,
    UploadFileResultResponse,
    UploadMultipleResponse,
)

__all__ = [
    "CleanupResponse",
    "DailySummaryResponse",
    "HourlyReportRowResponse",
    "ImportJobListResponse",
    "ImportJobResponse",
    "UploadCountsResponse",
    "UploadedFileResponse",
    "UploadFileResultResponse",
    "UploadMultipleResponse",
]
