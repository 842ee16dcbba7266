# conteo/services/historial.py
from __future__ import annotations

from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from conteo.models.attendance_record import AttendanceRecord
from conteo.schemas.attendance_record import CategoryStats, HistoricalRecordRead
from conteo.services.archive import to_read
from conteo.services.tally.categories import CATEGORIES


def _range(stmt, date_from: Optional[date], date_to: Optional[date]):
    if date_from:
        stmt = stmt.where(AttendanceRecord.date >= date_from)
    if date_to:
        stmt = stmt.where(AttendanceRecord.date <= date_to)
    return stmt


def list_records(
    db: Session,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[HistoricalRecordRead]:
    stmt = _range(select(AttendanceRecord), date_from, date_to)
    rows = (
        db.execute(
            stmt.order_by(AttendanceRecord.date.desc(), AttendanceRecord.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        .scalars()
        .all()
    )
    return [to_read(r) for r in rows]


def get_record(db: Session, record_id: str) -> Optional[HistoricalRecordRead]:
    row = db.get(AttendanceRecord, record_id)
    return to_read(row) if row else None


def category_stats(
    db: Session,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> CategoryStats:
    """Sum every category over the archived records in range."""
    rows = db.execute(_range(select(AttendanceRecord), date_from, date_to)).scalars().all()

    sums = {c: 0 for c in CATEGORIES}
    for row in rows:
        totals = row.totals or {}
        for c in CATEGORIES:
            sums[c] += int(totals.get(c.value, 0) or 0)

    return CategoryStats(
        date_from=date_from,
        date_to=date_to,
        records=len(rows),
        totals=sums,
        grand_total=sum(sums.values()),
    )
