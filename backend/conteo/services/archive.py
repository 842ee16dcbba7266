# conteo/services/archive.py
"""SQL-backed archive of saved tallies (the engine's `ArchiveClient`)."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict

from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from conteo.models.attendance_record import AttendanceRecord
from conteo.schemas.attendance_record import (
    HistoricalRecordInput,
    HistoricalRecordRead,
    HistoricalRecordUpdate,
)
from conteo.services.tally.errors import ArchiveError, RecordNotFoundError

logger = logging.getLogger(__name__)


def _json_map(value: Dict[Any, Any]) -> Dict[str, Any]:
    # Category enum keys -> plain strings for the JSON column
    return jsonable_encoder({getattr(k, "value", k): v for k, v in value.items()})


def to_read(row: AttendanceRecord) -> HistoricalRecordRead:
    return HistoricalRecordRead.model_validate(
        {
            "id": row.id,
            "date": row.date,
            "service_label": row.service_label,
            "ushers": row.ushers or [],
            "totals": row.totals or {},
            "total": row.total,
            "rosters": row.rosters or {},
            "created_at": getattr(row, "created_at", None),
            "updated_at": getattr(row, "updated_at", None),
        }
    )


class SqlArchive:
    """Each call opens its own short session and commits or rolls back as a unit."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def create_record(self, record: HistoricalRecordInput) -> str:
        with self._session_factory() as db:
            try:
                row = AttendanceRecord(
                    date=record.date,
                    service_label=record.service_label,
                    ushers=list(record.ushers),
                    totals=_json_map(record.totals),
                    total=int(record.total or 0),
                    rosters=_json_map(record.rosters),
                )
                db.add(row)
                db.commit()
                return row.id
            except SQLAlchemyError as e:
                db.rollback()
                logger.exception("create_record failed")
                raise ArchiveError(f"Could not save attendance record: {type(e).__name__}") from e

    def update_record(self, record_id: str, patch: Dict[str, Any]) -> None:
        changes = HistoricalRecordUpdate.model_validate(patch).model_dump(exclude_unset=True)
        with self._session_factory() as db:
            try:
                row = db.get(AttendanceRecord, record_id)
                if row is None:
                    raise RecordNotFoundError(record_id)

                if changes.get("date") is not None:
                    row.date = changes["date"]
                if changes.get("service_label") is not None:
                    row.service_label = changes["service_label"]
                if changes.get("ushers") is not None:
                    row.ushers = list(changes["ushers"])
                if changes.get("totals") is not None:
                    row.totals = _json_map(changes["totals"])
                if changes.get("rosters") is not None:
                    row.rosters = _json_map(changes["rosters"])
                if changes.get("total") is not None:
                    row.total = int(changes["total"])
                elif changes.get("totals") is not None:
                    row.total = sum(int(v) for v in row.totals.values())

                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                logger.exception("update_record %s failed", record_id)
                raise ArchiveError(f"Could not update attendance record: {type(e).__name__}") from e

    def get_record_by_id(self, record_id: str) -> HistoricalRecordRead:
        with self._session_factory() as db:
            try:
                row = db.get(AttendanceRecord, record_id)
            except SQLAlchemyError as e:
                logger.exception("get_record_by_id %s failed", record_id)
                raise ArchiveError(f"Could not load attendance record: {type(e).__name__}") from e
            if row is None:
                raise RecordNotFoundError(record_id)
            return to_read(row)
