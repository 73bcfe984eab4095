"""
db/models/ingested_source.py

Ingestion registry: one row per source filename that is queued or ingested.

The primary key on ``filename`` is what makes the duplicate check and the
enqueue a single atomic reservation.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class IngestedSourceStatus:
    QUEUED = "queued"
    COMPLETED = "completed"


class IngestedSource(Base, TimestampMixin):
    __tablename__ = "ingested_sources"

    filename: Mapped[str] = mapped_column(String(255), primary_key=True)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=IngestedSourceStatus.QUEUED,
    )
    job_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    records_inserted: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rows_rejected: Mapped[int | None] = mapped_column(Integer, nullable=True)
    quarantine_path: Mapped[str | None] = mapped_column(Text, nullable=True)
