"""
Hourly and daily close-reason reports over persisted call records.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict
from datetime import date, datetime
from functools import lru_cache

from sqlalchemy.orm import Session

from app.config import get_report_cache_settings
from app.domain.reports import DailySummary, HourlyReportRow, UploadedFileSummary
from app.repositories.call_record_repository import CallRecordRepository
from app.services.report_cache import (
    ReportCache,
    daily_summary_key,
    get_report_cache,
    hourly_report_key,
)
from app.validators.call_record_validator import format_display_date

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24

_DISPLAY_DATE = re.compile(r"[0-9]{2}-[0-9]{2}-[0-9]{4}")
_ISO_DATE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


class InvalidReportDateError(ValueError):
    """
    Raised when a report date is neither DD-MM-YYYY nor YYYY-MM-DD.
    """


def parse_report_date(value: str) -> date:
    raw_value = (value or "").strip()
    try:
        if _DISPLAY_DATE.fullmatch(raw_value):
            return datetime.strptime(raw_value, "%d-%m-%Y").date()
        if _ISO_DATE.fullmatch(raw_value):
            return datetime.strptime(raw_value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise InvalidReportDateError(f"Invalid date: {value!r}") from exc
    raise InvalidReportDateError(
        f"Invalid date: {value!r}. Expected DD-MM-YYYY or YYYY-MM-DD."
    )


def format_percent(part: int, total: int) -> str:
    if total <= 0:
        return "0.00%"
    return f"{part / total * 100:.2f}%"


def hour_label(hour: int) -> str:
    return f"{hour:02d}.00 - {hour:02d}.59"


class CallRecordReportService:
    """
    Builds report rows from grouped counts and caches them per day.
    """

    def __init__(
        self,
        *,
        report_cache: ReportCache | None = None,
        ttl_seconds: int = 600,
    ) -> None:
        self._cache = report_cache if report_cache is not None else get_report_cache()
        self.ttl_seconds = max(1, ttl_seconds)

    def hourly_report(self, *, db: Session, report_date: str) -> list[HourlyReportRow]:
        display_date = format_display_date(parse_report_date(report_date))
        key = hourly_report_key(display_date)

        cached = self._cache.get(key)
        if cached is not None:
            return [HourlyReportRow(**row) for row in cached]

        counts = CallRecordRepository(db).aggregate_hourly(display_date)
        rows: list[HourlyReportRow] = []
        for hour in range(HOURS_PER_DAY):
            bucket = counts.get(hour)
            qty = bucket.qty if bucket else 0
            te_busy = bucket.te_busy if bucket else 0
            sys_busy = bucket.sys_busy if bucket else 0
            others = bucket.others if bucket else 0
            rows.append(
                HourlyReportRow(
                    time=hour_label(hour),
                    qty=qty,
                    te_busy=te_busy,
                    te_busy_percent=format_percent(te_busy, qty),
                    sys_busy=sys_busy,
                    sys_busy_percent=format_percent(sys_busy, qty),
                    others=others,
                    others_percent=format_percent(others, qty),
                )
            )

        self._cache.set(key, [asdict(row) for row in rows], self.ttl_seconds)
        return rows

    def daily_summary(self, *, db: Session, report_date: str) -> DailySummary:
        display_date = format_display_date(parse_report_date(report_date))
        key = daily_summary_key(display_date)

        cached = self._cache.get(key)
        if cached is not None:
            return DailySummary(**cached)

        counts = CallRecordRepository(db).aggregate_hourly(display_date).values()
        qty = sum(bucket.qty for bucket in counts)
        te_busy = sum(bucket.te_busy for bucket in counts)
        sys_busy = sum(bucket.sys_busy for bucket in counts)
        # Everything that is neither TE nor SYS busy, out-of-range reasons included.
        others = qty - te_busy - sys_busy

        summary = DailySummary(
            date=display_date,
            qty=qty,
            te_busy=te_busy,
            te_busy_percent=format_percent(te_busy, qty),
            sys_busy=sys_busy,
            sys_busy_percent=format_percent(sys_busy, qty),
            others=others,
            others_percent=format_percent(others, qty),
        )
        self._cache.set(key, asdict(summary), self.ttl_seconds)
        return summary

    def list_uploaded_files(self, *, db: Session) -> list[UploadedFileSummary]:
        return [
            UploadedFileSummary(
                source=aggregate.source,
                count=aggregate.count,
                first_date=format_display_date(aggregate.first_day) if aggregate.first_day else None,
                last_date=format_display_date(aggregate.last_day) if aggregate.last_day else None,
                uploaded_at=aggregate.uploaded_at,
            )
            for aggregate in CallRecordRepository(db).aggregate_sources()
        ]


@lru_cache(maxsize=1)
def get_call_record_report_service() -> CallRecordReportService:
    settings = get_report_cache_settings()
    return CallRecordReportService(ttl_seconds=settings.ttl_seconds)
