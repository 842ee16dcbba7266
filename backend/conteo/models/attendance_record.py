# conteo/models/attendance_record.py
"""SQLAlchemy model for archived tallies ("historial").

Per-category totals and named rosters are JSON maps keyed by category value
(`brothers`, `sympathizers`, ...). `total` is kept as its own column so the
history list can sort and filter without unpacking JSON.
"""
from __future__ import annotations

import uuid
from datetime import date as _date, datetime
from typing import Any, Dict, List

from sqlalchemy import JSON, CheckConstraint, Date, DateTime, Integer, String, func
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column

from conteo.db import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests/dev)
JSONType = JSON().with_variant(postgresql.JSONB(), "postgresql")


def _new_id() -> str:
    return uuid.uuid4().hex


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)

    date: Mapped[_date] = mapped_column(Date, nullable=False, index=True)
    service_label: Mapped[str] = mapped_column(String(120), nullable=False)
    ushers: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)

    totals: Mapped[Dict[str, int]] = mapped_column(JSONType, nullable=False, default=dict)
    total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rosters: Mapped[Dict[str, List[Dict[str, Any]]]] = mapped_column(
        JSONType, nullable=False, default=dict
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("total >= 0", name="ck_attendance_records_total_non_negative"),
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<AttendanceRecord(id={self.id}, date={self.date}, "
            f"service={self.service_label!r}, total={self.total})>"
        )
