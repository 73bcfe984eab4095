"""
app/domain/reports.py

Derived report rows computed from persisted call records.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class HourlyReportRow:
    time: str
    qty: int
    te_busy: int
    te_busy_percent: str
    sys_busy: int
    sys_busy_percent: str
    others: int
    others_percent: str


@dataclass(frozen=True)
class DailySummary:
    date: str
    qty: int
    te_busy: int
    te_busy_percent: str
    sys_busy: int
    sys_busy_percent: str
    others: int
    others_percent: str


@dataclass(frozen=True)
class UploadedFileSummary:
    source: str
    count: int
    first_date: str | None
    last_date: str | None
    uploaded_at: datetime | None
