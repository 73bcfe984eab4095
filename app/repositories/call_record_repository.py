"""
app/repositories/call_record_repository.py

Persistence layer for call records.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from sqlalchemy import case, delete, func, insert, select
from sqlalchemy.orm import Session

from app.domain.call_record import CallRecordInput
from db.models.call_record import CallRecord, CloseReason


@dataclass(frozen=True)
class HourlyCloseReasonCounts:
    """
    Close-reason counts for one hour of one day.
    """

    hour: int
    qty: int
    te_busy: int
    sys_busy: int
    others: int


@dataclass(frozen=True)
class SourceAggregate:
    """
    Per-source totals used to list uploaded files.
    """

    source: str
    count: int
    first_day: date | None
    last_day: date | None
    uploaded_at: datetime | None


class CallRecordRepository:
    """
    Repository for bulk persistence and aggregation of call records.

    The repository never commits; the caller owns the transaction so that one
    ``insert_many`` call plus its commit is one atomic batch.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def insert_many(self, rows: Sequence[CallRecordInput]) -> int:
        """
        Insert validated rows with one executemany INSERT.
        """

        if not rows:
            return 0

        payloads: list[dict[str, Any]] = [
            {
                "date": row.date,
                "call_day": row.call_day,
                "hour": row.hour,
                "time": row.time,
                "close_reason": row.close_reason,
                "source": row.source,
            }
            for row in rows
        ]
        self._session.execute(insert(CallRecord), payloads)
        return len(payloads)

    def find(
        self,
        *,
        display_date: str | None = None,
        source: str | None = None,
        limit: int | None = None,
    ) -> list[CallRecord]:
        stmt = select(CallRecord)
        if display_date is not None:
            stmt = stmt.where(CallRecord.date == display_date)
        if source is not None:
            stmt = stmt.where(CallRecord.source == source)
        stmt = stmt.order_by(CallRecord.id.asc())
        if limit is not None:
            stmt = stmt.limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def exists_for_source(self, source: str) -> bool:
        stmt = select(CallRecord.id).where(CallRecord.source == source).limit(1)
        return self._session.scalar(stmt) is not None

    def count_for_source(self, source: str) -> int:
        stmt = select(func.count(CallRecord.id)).where(CallRecord.source == source)
        return int(self._session.scalar(stmt) or 0)

    def delete_by_source(self, source: str) -> int:
        result = self._session.execute(delete(CallRecord).where(CallRecord.source == source))
        return result.rowcount or 0

    def delete_before(self, cutoff: date) -> int:
        result = self._session.execute(delete(CallRecord).where(CallRecord.call_day < cutoff))
        return result.rowcount or 0

    def aggregate_hourly(self, display_date: str) -> dict[int, HourlyCloseReasonCounts]:
        """
        Group one day's records by hour and count close reasons.

        Hours without records are absent from the result.
        """

        stmt = (
            select(
                CallRecord.hour,
                func.count(CallRecord.id),
                func.sum(case((CallRecord.close_reason == CloseReason.TE_BUSY, 1), else_=0)),
                func.sum(case((CallRecord.close_reason == CloseReason.SYS_BUSY, 1), else_=0)),
                func.sum(
                    case(
                        (CallRecord.close_reason.in_(sorted(CloseReason.OTHERS)), 1),
                        else_=0,
                    )
                ),
            )
            .where(CallRecord.date == display_date)
            .group_by(CallRecord.hour)
        )

        counts: dict[int, HourlyCloseReasonCounts] = {}
        for hour, qty, te_busy, sys_busy, others in self._session.execute(stmt).all():
            counts[int(hour)] = HourlyCloseReasonCounts(
                hour=int(hour),
                qty=int(qty or 0),
                te_busy=int(te_busy or 0),
                sys_busy=int(sys_busy or 0),
                others=int(others or 0),
            )
        return counts

    def aggregate_sources(self) -> list[SourceAggregate]:
        uploaded_at = func.min(CallRecord.created_at)
        stmt = (
            select(
                CallRecord.source,
                func.count(CallRecord.id),
                func.min(CallRecord.call_day),
                func.max(CallRecord.call_day),
                uploaded_at,
            )
            .group_by(CallRecord.source)
            .order_by(uploaded_at.desc(), CallRecord.source.asc())
        )
        return [
            SourceAggregate(
                source=source,
                count=int(count or 0),
                first_day=first_day,
                last_day=last_day,
                uploaded_at=first_created,
            )
            for source, count, first_day, last_day, first_created in self._session.execute(stmt).all()
        ]
