"""
db/models/call_record.py

One validated call-center event row ingested from a source file.
"""

from __future__ import annotations

import datetime as dt

from sqlalchemy import BigInteger, Date, DateTime, Index, Integer, SmallInteger, String, func
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class CloseReason:
    TE_BUSY = 0
    SYS_BUSY = 1
    OTHERS = frozenset(range(2, 11))


class CallRecord(Base):
    __tablename__ = "call_records"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    date: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        comment="Calendar day in DD-MM-YYYY display form",
    )
    call_day: Mapped[dt.date] = mapped_column(
        Date,
        nullable=False,
        comment="Same day as `date`, queryable as a range",
    )
    hour: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    time: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="Raw time token as it appeared in the file",
    )
    close_reason: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Originating upload filename",
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_call_records_source", "source"),
        Index("ix_call_records_date_hour", "date", "hour"),
        Index("ix_call_records_call_day", "call_day"),
    )
