# backend/conteo/api/historial.py
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from conteo.dependencies import get_db
from conteo.schemas.attendance_record import CategoryStats, HistoricalRecordRead
from conteo.services import historial as svc
from conteo.services.tally.record_codec import record_to_flat

router = APIRouter(prefix="/historial", tags=["Historial"])


@router.get("", response_model=List[HistoricalRecordRead])
def list_records(
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    skip: int = 0,
    limit: int = Query(100, le=500),
    db: Session = Depends(get_db),
) -> List[HistoricalRecordRead]:
    return svc.list_records(db, date_from=date_from, date_to=date_to, skip=skip, limit=limit)


@router.get("/stats", response_model=CategoryStats)
def stats(
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    db: Session = Depends(get_db),
) -> CategoryStats:
    if date_from and date_to and date_from > date_to:
        raise HTTPException(status_code=400, detail="'from' must be on or before 'to'")
    return svc.category_stats(db, date_from=date_from, date_to=date_to)


@router.get("/{record_id}", response_model=HistoricalRecordRead)
def get_record(record_id: str, db: Session = Depends(get_db)) -> HistoricalRecordRead:
    rec = svc.get_record(db, record_id)
    if not rec:
        raise HTTPException(status_code=404, detail="Attendance record not found")
    return rec


@router.get("/{record_id}/flat")
def get_record_flat(record_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """Same record in the flat legacy document shape."""
    rec = svc.get_record(db, record_id)
    if not rec:
        raise HTTPException(status_code=404, detail="Attendance record not found")
    return {"id": rec.id, **record_to_flat(rec)}
