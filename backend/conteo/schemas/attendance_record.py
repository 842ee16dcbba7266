# conteo/schemas/attendance_record.py
from __future__ import annotations

from datetime import date as _date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from conteo.schemas.tally import NamedAttendee, Roster, _fill_counters, _fill_rosters
from conteo.services.tally.categories import Category


def _coerce_ushers(v: Any) -> List[str]:
    # Legacy records stored a single usher as a plain string
    if v is None:
        return []
    if isinstance(v, str):
        return [v] if v else []
    return list(v)


# ─────────────────────────────────────────────────────────────────────────────
# Archived tally ("historial" record)
# ─────────────────────────────────────────────────────────────────────────────

class HistoricalRecordInput(BaseModel):
    date: _date
    service_label: str
    ushers: List[str] = Field(default_factory=list)
    totals: Dict[Category, int] = Field(default_factory=dict)
    total: Optional[int] = None
    rosters: Dict[Category, Roster] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)

    @field_validator("ushers", mode="before")
    @classmethod
    def _ushers_as_list(cls, v):
        return _coerce_ushers(v)

    @field_validator("totals", mode="before")
    @classmethod
    def _fill_totals(cls, v):
        return _fill_counters(v)

    @field_validator("rosters", mode="before")
    @classmethod
    def _fill_rosters(cls, v):
        return _fill_rosters(v)

    @model_validator(mode="after")
    def _default_total(self) -> "HistoricalRecordInput":
        if self.total is None:
            self.total = sum(self.totals.values())
        return self

    def total_for(self, category: Category) -> int:
        return self.totals.get(category, 0) or 0

    def roster_for(self, category: Category) -> List[NamedAttendee]:
        return self.rosters.get(category, [])


class HistoricalRecordRead(HistoricalRecordInput):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class HistoricalRecordUpdate(BaseModel):
    """Partial update (edit-mode commit or manual correction)."""
    date: Optional[_date] = None
    service_label: Optional[str] = None
    ushers: Optional[List[str]] = None
    totals: Optional[Dict[Category, int]] = None
    total: Optional[int] = None
    rosters: Optional[Dict[Category, Roster]] = None

    @field_validator("ushers", mode="before")
    @classmethod
    def _ushers_as_list(cls, v):
        return None if v is None else _coerce_ushers(v)


class CategoryStats(BaseModel):
    """Per-category sums over a range of archived records."""
    date_from: Optional[_date] = None
    date_to: Optional[_date] = None
    records: int = 0
    totals: Dict[Category, int] = Field(default_factory=dict)
    grand_total: int = 0

    @field_validator("totals", mode="before")
    @classmethod
    def _fill_totals(cls, v):
        return _fill_counters(v)
