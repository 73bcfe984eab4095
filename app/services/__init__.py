"""
app/services package marker.
"""

from app.services.batch_writer import BatchWriteError, BatchWriter
from app.services.call_record_ingestion_service import (
    CallRecordIngestionService,
    IngestionFileError,
    get_call_record_ingestion_service,
)
from app.services.duplicate_guard import DuplicateGuard
from app.services.import_queue_service import (
    ImportJobExhaustedError,
    ImportJobLockLostError,
    ImportQueueService,
    get_import_queue_service,
)
from app.services.quarantine import QuarantineLog, QuarantineWriteError
from app.services.report_cache import (
    InMemoryReportCache,
    RedisReportCache,
    ReportCache,
    get_report_cache,
)
from app.services.report_service import (
    CallRecordReportService,
    InvalidReportDateError,
    get_call_record_report_service,
)
from app.services.retention_service import (
    CallRecordRetentionService,
    get_call_record_retention_service,
)
from app.services.upload_storage import UploadStorage, UploadTooLargeError, get_upload_storage

__all__ = [
    "BatchWriteError",
    "BatchWriter",
    "CallRecordIngestionService",
    "IngestionFileError",
    "get_call_record_ingestion_service",
    "DuplicateGuard",
    "ImportJobExhaustedError",
    "ImportJobLockLostError",
    "ImportQueueService",
    "get_import_queue_service",
    "QuarantineLog",
    "QuarantineWriteError",
    "InMemoryReportCache",
    "RedisReportCache",
    "ReportCache",
    "get_report_cache",
    "CallRecordReportService",
    "InvalidReportDateError",
    "get_call_record_report_service",
    "CallRecordRetentionService",
    "get_call_record_retention_service",
    "UploadStorage",
    "UploadTooLargeError",
    "get_upload_storage",
]
