"""
db/models/import_job.py

Durable queue entry for one "ingest this file" unit of work.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class ImportJobStatus:
    QUEUED = "queued"
    RUNNING = "running"
    RETRYING = "retrying"


class ImportJob(Base, TimestampMixin):
    __tablename__ = "import_jobs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    file_path: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Temporary on-disk location of the uploaded file",
    )
    filename: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Logical source identifier, becomes call_records.source",
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=ImportJobStatus.QUEUED,
    )
    attempts_made: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    backoff_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    available_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="Earliest time a worker may claim the job",
    )
    locked_by: Mapped[str | None] = mapped_column(String(120), nullable=True)
    locked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_import_jobs_status_available_at", "status", "available_at"),
        Index("ix_import_jobs_filename", "filename"),
    )
