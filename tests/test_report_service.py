"""
tests/test_report_service.py

Hourly report, daily summary, file listing and retention over SQLite.
"""

from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.domain.call_record import CallRecordInput
from app.repositories.call_record_repository import CallRecordRepository
from app.services.report_cache import InMemoryReportCache
from app.services.report_service import (
    CallRecordReportService,
    InvalidReportDateError,
    format_percent,
    parse_report_date,
)
from app.services.retention_service import CallRecordRetentionService, subtract_months
from db.models.call_record import CallRecord
from db.models.ingested_source import IngestedSource, IngestedSourceStatus


def _records(day: date, hour: int, close_reasons: list[int], source: str = "calls.csv") -> list[CallRecordInput]:
    display = f"{day.day:02d}-{day.month:02d}-{day.year:04d}"
    return [
        CallRecordInput(
            date=display,
            call_day=day,
            hour=hour,
            time=f"{hour:02d}1500",
            close_reason=reason,
            source=source,
        )
        for reason in close_reasons
    ]


@pytest.fixture()
def cache() -> InMemoryReportCache:
    return InMemoryReportCache()


@pytest.fixture()
def reports(cache: InMemoryReportCache) -> CallRecordReportService:
    return CallRecordReportService(report_cache=cache, ttl_seconds=600)


@pytest.fixture()
def seeded(db: Session) -> Session:
    repository = CallRecordRepository(db)
    # 08:00 hour: qty 10, te 3, sys 2, others 5.
    repository.insert_many(_records(date(2025, 7, 6), 8, [0, 0, 0, 1, 1, 2, 3, 4, 10, 5]))
    # 13:00 hour: one out-of-range close reason.
    repository.insert_many(_records(date(2025, 7, 6), 13, [0, 11]))
    repository.insert_many(_records(date(2025, 7, 7), 9, [1], source="next-day.csv"))
    db.commit()
    return db


# ---------------------------------------------------------------------------
# Date parsing and formatting
# ---------------------------------------------------------------------------


class TestDateParsing:
    def test_accepts_display_and_iso_forms(self) -> None:
        assert parse_report_date("06-07-2025") == date(2025, 7, 6)
        assert parse_report_date("2025-07-06") == date(2025, 7, 6)

    @pytest.mark.parametrize("value", ["", "6-7-2025", "20250706", "31-02-2025", "2025/07/06", "tomorrow"])
    def test_rejects_anything_else(self, value: str) -> None:
        with pytest.raises(InvalidReportDateError):
            parse_report_date(value)

    def test_percent_formatting(self) -> None:
        assert format_percent(3, 10) == "30.00%"
        assert format_percent(1, 3) == "33.33%"
        assert format_percent(0, 0) == "0.00%"


# ---------------------------------------------------------------------------
# Hourly report
# ---------------------------------------------------------------------------


class TestHourlyReport:
    def test_has_one_row_per_hour(self, seeded: Session, reports: CallRecordReportService) -> None:
        rows = reports.hourly_report(db=seeded, report_date="06-07-2025")

        assert len(rows) == 24
        assert rows[0].time == "00.00 - 00.59"
        assert rows[23].time == "23.00 - 23.59"

    def test_counts_and_percentages(self, seeded: Session, reports: CallRecordReportService) -> None:
        row = reports.hourly_report(db=seeded, report_date="2025-07-06")[8]

        assert row.qty == 10
        assert (row.te_busy, row.te_busy_percent) == (3, "30.00%")
        assert (row.sys_busy, row.sys_busy_percent) == (2, "20.00%")
        assert (row.others, row.others_percent) == (5, "50.00%")

    def test_out_of_range_reason_is_not_counted_as_others_per_hour(
        self, seeded: Session, reports: CallRecordReportService
    ) -> None:
        row = reports.hourly_report(db=seeded, report_date="06-07-2025")[13]

        assert row.qty == 2
        assert row.te_busy == 1
        assert row.others == 0

    def test_empty_hour_reports_zero_percent(self, seeded: Session, reports: CallRecordReportService) -> None:
        row = reports.hourly_report(db=seeded, report_date="06-07-2025")[0]

        assert row.qty == 0
        assert row.te_busy_percent == "0.00%"
        assert row.others_percent == "0.00%"

    def test_result_is_cached(
        self, seeded: Session, reports: CallRecordReportService, cache: InMemoryReportCache
    ) -> None:
        first = reports.hourly_report(db=seeded, report_date="06-07-2025")
        assert cache.get("hourly:06-07-2025") is not None

        CallRecordRepository(seeded).insert_many(_records(date(2025, 7, 6), 8, [0]))
        seeded.commit()

        assert reports.hourly_report(db=seeded, report_date="06-07-2025") == first

        cache.delete("hourly:06-07-2025")
        assert reports.hourly_report(db=seeded, report_date="06-07-2025")[8].qty == 11


# ---------------------------------------------------------------------------
# Daily summary
# ---------------------------------------------------------------------------


class TestDailySummary:
    def test_others_is_remainder_of_quantity(self, seeded: Session, reports: CallRecordReportService) -> None:
        summary = reports.daily_summary(db=seeded, report_date="06-07-2025")

        assert summary.date == "06-07-2025"
        assert summary.qty == 12
        assert summary.te_busy == 4
        assert summary.sys_busy == 2
        assert summary.others == 6
        assert summary.te_busy_percent == "33.33%"
        assert summary.sys_busy_percent == "16.67%"
        assert summary.others_percent == "50.00%"

    def test_day_without_records(self, db: Session, reports: CallRecordReportService) -> None:
        summary = reports.daily_summary(db=db, report_date="2024-01-01")

        assert summary.date == "01-01-2024"
        assert summary.qty == 0
        assert summary.others == 0
        assert summary.others_percent == "0.00%"

    def test_summary_is_cached_under_display_date(
        self, seeded: Session, reports: CallRecordReportService, cache: InMemoryReportCache
    ) -> None:
        reports.daily_summary(db=seeded, report_date="2025-07-06")

        assert cache.get("summary:06-07-2025")["qty"] == 12


# ---------------------------------------------------------------------------
# Uploaded files and retention
# ---------------------------------------------------------------------------


class TestUploadedFiles:
    def test_lists_each_source_once(self, seeded: Session, reports: CallRecordReportService) -> None:
        files = {entry.source: entry for entry in reports.list_uploaded_files(db=seeded)}

        assert set(files) == {"calls.csv", "next-day.csv"}
        assert files["calls.csv"].count == 12
        assert files["calls.csv"].first_date == "06-07-2025"
        assert files["calls.csv"].last_date == "06-07-2025"
        assert files["next-day.csv"].first_date == "07-07-2025"


class TestRetention:
    def test_subtract_months_clamps_to_month_end(self) -> None:
        assert subtract_months(date(2025, 7, 31), 1) == date(2025, 6, 30)
        assert subtract_months(date(2025, 3, 31), 1) == date(2025, 2, 28)
        assert subtract_months(date(2025, 1, 15), 6) == date(2024, 7, 15)

    def test_deletes_only_older_records(self, db: Session) -> None:
        repository = CallRecordRepository(db)
        repository.insert_many(_records(date(2024, 12, 31), 8, [0, 1], source="old.csv"))
        repository.insert_many(_records(date(2025, 1, 1), 8, [0], source="edge.csv"))
        repository.insert_many(_records(date(2025, 6, 1), 8, [0], source="new.csv"))
        db.commit()

        deleted = CallRecordRetentionService().delete_records_older_than(
            db=db,
            months=6,
            today=date(2025, 7, 1),
        )

        assert deleted == 2
        sources = set(db.scalars(select(CallRecord.source)).all())
        assert sources == {"edge.csv", "new.csv"}
        assert db.scalar(select(func.count(CallRecord.id))) == 2

    def test_releases_registry_entries_without_remaining_records(self, db: Session) -> None:
        repository = CallRecordRepository(db)
        repository.insert_many(_records(date(2024, 12, 31), 8, [0, 1], source="old.csv"))
        repository.insert_many(_records(date(2025, 6, 1), 8, [0], source="new.csv"))
        db.add_all(
            [
                IngestedSource(filename="old.csv", status=IngestedSourceStatus.COMPLETED, records_inserted=2),
                IngestedSource(filename="new.csv", status=IngestedSourceStatus.COMPLETED, records_inserted=1),
                IngestedSource(filename="all-invalid.csv", status=IngestedSourceStatus.COMPLETED, records_inserted=0),
                IngestedSource(filename="pending.csv", status=IngestedSourceStatus.QUEUED),
            ]
        )
        db.commit()

        CallRecordRetentionService().delete_records_older_than(db=db, months=6, today=date(2025, 7, 1))

        remaining = set(db.scalars(select(IngestedSource.filename)).all())
        assert remaining == {"new.csv", "all-invalid.csv", "pending.csv"}

    def test_rejects_non_positive_months(self, db: Session) -> None:
        with pytest.raises(ValueError):
            CallRecordRetentionService().delete_records_older_than(db=db, months=0)
