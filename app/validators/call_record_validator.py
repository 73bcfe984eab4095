"""
app/validators/call_record_validator.py

Line-level parsing and field validation for call-record CSV ingestion.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any

from app.domain.call_record import CallRecordInput, FieldViolation, RejectedLine

MIN_COLUMNS = 3
MAX_HOUR = 23

TOO_FEW_COLUMNS = "Too few columns"
INVALID_DATE_FORMAT = "Invalid date format"
INVALID_TIME_FORMAT = "Invalid time format"
FIELD_VALIDATION_FAILED = "DTO validation failed"
UNKNOWN_ERROR = "Unknown error"

_DATE_TOKEN = re.compile(r"[0-9]{8}")
_COMPACT_TIME_TOKEN = re.compile(r"[0-9]{6}")
_COLON_TIME_TOKEN = re.compile(r"[0-9]{2}:[0-9]{2}:[0-9]{2}")
_LEADING_INTEGER = re.compile(r"\s*([+-]?[0-9]+)")


def format_display_date(day: date) -> str:
    """Render a calendar day in the canonical DD-MM-YYYY form."""
    return f"{day.day:02d}-{day.month:02d}-{day.year:04d}"


def validate_call_record_fields(
    *,
    date_value: Any,
    hour: Any,
    time_value: Any,
    close_reason: Any,
    source: Any,
) -> list[FieldViolation]:
    """
    Check type and presence of every call-record attribute.

    Returns one violation per broken constraint; an empty list means the
    candidate can be persisted.
    """

    violations: list[FieldViolation] = []

    if not isinstance(date_value, str) or not date_value:
        violations.append(FieldViolation("date", "date must be a non-empty string"))

    if not _is_integer(hour):
        violations.append(FieldViolation("hour", "hour must be an integer"))
    elif hour < 0:
        violations.append(FieldViolation("hour", "hour must not be less than 0"))
    elif hour > MAX_HOUR:
        violations.append(FieldViolation("hour", f"hour must not be greater than {MAX_HOUR}"))

    if not isinstance(time_value, str) or not time_value:
        violations.append(FieldViolation("time", "time must be a non-empty string"))

    if not _is_integer(close_reason):
        violations.append(FieldViolation("close_reason", "close_reason must be an integer"))

    if not isinstance(source, str):
        violations.append(FieldViolation("source", "source must be a string"))
    elif not source.strip():
        violations.append(FieldViolation("source", "source should not be empty"))

    return violations


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class CallRecordRowValidator:
    """
    Turns one raw CSV line into a validated call record or a rejection.

    Rejections are returned, never raised: the ingestion loop keeps going
    after a bad line.
    """

    def __init__(self, *, delimiter: str = ",") -> None:
        if not delimiter:
            raise ValueError("delimiter must not be empty.")
        self._delimiter = delimiter

    @staticmethod
    def is_blank_line(line: str) -> bool:
        return not line.strip()

    def parse_line(
        self,
        line: str,
        *,
        source: str,
        line_number: int | None = None,
    ) -> tuple[CallRecordInput | None, RejectedLine | None]:
        """
        Parse one line.

        Returns ``(None, None)`` for blank lines, ``(record, None)`` for a
        valid line and ``(None, rejection)`` otherwise.
        """

        if self.is_blank_line(line):
            return None, None

        try:
            record, reason = self._parse_columns(line, source=source)
        except Exception as exc:  # noqa: BLE001
            reason = str(exc) or UNKNOWN_ERROR
            record = None

        if reason is not None:
            return None, RejectedLine(line=line, reason=reason, line_number=line_number)
        return record, None

    def _parse_columns(self, line: str, *, source: str) -> tuple[CallRecordInput | None, str | None]:
        columns = line.split(self._delimiter)
        if len(columns) < MIN_COLUMNS:
            return None, TOO_FEW_COLUMNS

        raw_date = columns[0]
        raw_time = columns[1]
        raw_close_reason = columns[-2]

        call_day = self._parse_date_token(raw_date)
        if call_day is None:
            return None, INVALID_DATE_FORMAT

        hour = self._parse_hour(raw_time)
        if hour is None:
            return None, INVALID_TIME_FORMAT

        display_date = format_display_date(call_day)
        close_reason = self._parse_close_reason(raw_close_reason)

        violations = validate_call_record_fields(
            date_value=display_date,
            hour=hour,
            time_value=raw_time,
            close_reason=close_reason,
            source=source,
        )
        if violations:
            reasons = "; ".join(violation.reason for violation in violations)
            return None, f"{FIELD_VALIDATION_FAILED}: {reasons}"

        return (
            CallRecordInput(
                date=display_date,
                call_day=call_day,
                hour=hour,
                time=raw_time,
                close_reason=close_reason,
                source=source,
            ),
            None,
        )

    @staticmethod
    def _parse_date_token(raw_date: str) -> date | None:
        if not _DATE_TOKEN.fullmatch(raw_date):
            return None
        try:
            return datetime.strptime(raw_date, "%Y%m%d").date()
        except ValueError:
            return None

    @staticmethod
    def _parse_hour(raw_time: str) -> int | None:
        if _COMPACT_TIME_TOKEN.fullmatch(raw_time):
            return int(raw_time[:2])
        if _COLON_TIME_TOKEN.fullmatch(raw_time):
            return int(raw_time.split(":", 1)[0])
        return None

    @staticmethod
    def _parse_close_reason(raw_value: str) -> int | None:
        # Leading integer only, so "3 " and "3x" both read as 3.
        match = _LEADING_INTEGER.match(raw_value)
        if match is None:
            return None
        return int(match.group(1))
