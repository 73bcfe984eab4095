"""
app/api/routers/call_record.py

Call-record upload, report and maintenance endpoints.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_csv_uploads
from app.domain.call_record import SubmissionResult, SubmissionStatus
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
from app.services.import_queue_service import ImportQueueService, get_import_queue_service
from app.services.report_service import (
    CallRecordReportService,
    InvalidReportDateError,
    get_call_record_report_service,
)
from app.services.retention_service import (
    CallRecordRetentionService,
    get_call_record_retention_service,
)
from app.services.upload_storage import (
    UploadStorage,
    UploadTooLargeError,
    get_upload_storage,
    logical_filename,
)
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/call-record", tags=["call-record"])

_DATE_REQUIRED = "Date query param is required, e.g. ?date=2025-07-06"


def _require_date(date: str | None) -> str:
    if date is None or not date.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=_DATE_REQUIRED)
    return date


@router.post("/upload-multiple", response_model=UploadMultipleResponse)
def upload_multiple(
    files: list[UploadFile] = Depends(get_csv_uploads),
    overwrite: bool = Query(default=False, description="Replace records of files that were already imported"),
    storage: UploadStorage = Depends(get_upload_storage),
    import_queue: ImportQueueService = Depends(get_import_queue_service),
) -> UploadMultipleResponse:
    """
    Stage each CSV file and queue it for background import.
    """

    results: list[SubmissionResult] = []
    for upload_file in files:
        filename = logical_filename(upload_file)
        try:
            stored_path, size = storage.persist(upload_file)
        except UploadTooLargeError as exc:
            results.append(
                SubmissionResult(filename=filename, status=SubmissionStatus.ERROR, reason=str(exc))
            )
            continue
        except OSError:
            logger.exception("Failed to stage upload file=%s", filename)
            results.append(
                SubmissionResult(
                    filename=filename,
                    status=SubmissionStatus.ERROR,
                    reason="Failed to store uploaded file.",
                )
            )
            continue
        finally:
            upload_file.file.close()

        logger.info("Staged upload file=%s path=%s bytes=%d", filename, stored_path, size)
        results.append(
            import_queue.submit(file_path=stored_path, filename=filename, overwrite=overwrite)
        )

    return UploadMultipleResponse(
        summary=UploadCountsResponse(
            total_files=len(results),
            queued=sum(1 for result in results if result.status == SubmissionStatus.QUEUED),
            skipped=sum(1 for result in results if result.status == SubmissionStatus.SKIPPED),
            errors=sum(1 for result in results if result.status == SubmissionStatus.ERROR),
        ),
        details=[
            UploadFileResultResponse(
                file=result.filename,
                status=result.status,
                reason=result.reason,
                job_id=result.job_id,
            )
            for result in results
        ],
    )


@router.get("/report", response_model=list[HourlyReportRowResponse])
def get_hourly_report(
    date: str | None = Query(default=None, description="Day as DD-MM-YYYY or YYYY-MM-DD"),
    db: Session = Depends(get_db),
    report_service: CallRecordReportService = Depends(get_call_record_report_service),
) -> list[HourlyReportRowResponse]:
    try:
        rows = report_service.hourly_report(db=db, report_date=_require_date(date))
    except InvalidReportDateError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return [
        HourlyReportRowResponse(
            time=row.time,
            qty=row.qty,
            te_busy=row.te_busy,
            te_busy_percent=row.te_busy_percent,
            sys_busy=row.sys_busy,
            sys_busy_percent=row.sys_busy_percent,
            others=row.others,
            others_percent=row.others_percent,
        )
        for row in rows
    ]


@router.get("/summary", response_model=DailySummaryResponse)
def get_daily_summary(
    date: str | None = Query(default=None, description="Day as DD-MM-YYYY or YYYY-MM-DD"),
    db: Session = Depends(get_db),
    report_service: CallRecordReportService = Depends(get_call_record_report_service),
) -> DailySummaryResponse:
    try:
        summary = report_service.daily_summary(db=db, report_date=_require_date(date))
    except InvalidReportDateError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return DailySummaryResponse(
        date=summary.date,
        qty=summary.qty,
        te_busy=summary.te_busy,
        te_busy_percent=summary.te_busy_percent,
        sys_busy=summary.sys_busy,
        sys_busy_percent=summary.sys_busy_percent,
        others=summary.others,
        others_percent=summary.others_percent,
    )


@router.get("/files", response_model=list[UploadedFileResponse])
def list_uploaded_files(
    db: Session = Depends(get_db),
    report_service: CallRecordReportService = Depends(get_call_record_report_service),
) -> list[UploadedFileResponse]:
    return [
        UploadedFileResponse(
            source=entry.source,
            count=entry.count,
            first_date=entry.first_date,
            last_date=entry.last_date,
            uploaded_at=entry.uploaded_at,
        )
        for entry in report_service.list_uploaded_files(db=db)
    ]


@router.delete("/cleanup", response_model=CleanupResponse)
def cleanup_old_records(
    months: int = Query(default=6, ge=1, le=120, description="Delete records older than this many months"),
    db: Session = Depends(get_db),
    retention_service: CallRecordRetentionService = Depends(get_call_record_retention_service),
) -> CleanupResponse:
    deleted = retention_service.delete_records_older_than(db=db, months=months)
    return CleanupResponse(
        message=f"Deleted {deleted} call records older than {months} months.",
        deleted=deleted,
    )


@router.get("/jobs", response_model=ImportJobListResponse)
def list_import_jobs(
    status_filter: str | None = Query(default=None, alias="status", description="Optional status filter"),
    limit: int = Query(default=100, ge=1, le=500, description="Max jobs returned"),
    import_queue: ImportQueueService = Depends(get_import_queue_service),
) -> ImportJobListResponse:
    jobs = import_queue.list_jobs(limit=limit, status=status_filter)
    return ImportJobListResponse(
        jobs=[
            ImportJobResponse(
                job_id=job.id,
                filename=job.filename,
                status=job.status,
                attempts_made=job.attempts_made,
                max_attempts=job.max_attempts,
                available_at=job.available_at,
                last_error=job.last_error,
                created_at=job.created_at,
            )
            for job in jobs
        ]
    )
