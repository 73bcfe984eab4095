"""
Schemas for call-record upload, report and maintenance endpoints.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class UploadFileResultResponse(BaseModel):
    file: str
    status: str
    reason: str | None = None
    job_id: UUID | None = None


class UploadCountsResponse(BaseModel):
    total_files: int
    queued: int
    skipped: int
    errors: int


class UploadMultipleResponse(BaseModel):
    summary: UploadCountsResponse
    details: list[UploadFileResultResponse] = Field(default_factory=list)


class HourlyReportRowResponse(BaseModel):
    time: str
    qty: int
    te_busy: int
    te_busy_percent: str
    sys_busy: int
    sys_busy_percent: str
    others: int
    others_percent: str


class DailySummaryResponse(BaseModel):
    date: str
    qty: int
    te_busy: int
    te_busy_percent: str
    sys_busy: int
    sys_busy_percent: str
    others: int
    others_percent: str


class UploadedFileResponse(BaseModel):
    source: str
    count: int
    first_date: str | None = None
    last_date: str | None = None
    uploaded_at: datetime | None = None


class CleanupResponse(BaseModel):
    message: str
    deleted: int


class ImportJobResponse(BaseModel):
    job_id: UUID
    filename: str
    status: str
    attempts_made: int
    max_attempts: int
    available_at: datetime
    last_error: str | None = None
    created_at: datetime | None = None


class ImportJobListResponse(BaseModel):
    jobs: list[ImportJobResponse] = Field(default_factory=list)
