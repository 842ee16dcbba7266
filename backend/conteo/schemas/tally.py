# conteo/schemas/tally.py
from __future__ import annotations

from datetime import date as _date
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from conteo.services.tally.categories import (
    CATEGORIES,
    DEFAULT_SERVICE_TYPE,
    Category,
)


# ─────────────────────────────────────────────────────────────────────────────
# People
# ─────────────────────────────────────────────────────────────────────────────

class NamedAttendee(BaseModel):
    """One individually identified attendee. Catalog rows may carry extra fields."""
    id: str = Field(..., min_length=1)
    name: str
    church: Optional[str] = None  # visiting brothers only

    model_config = ConfigDict(extra="allow", from_attributes=True)


Roster = List[NamedAttendee]


def _dedupe(roster: Roster) -> Roster:
    seen = set()
    out = []
    for person in roster:
        if person.id in seen:
            continue
        seen.add(person.id)
        out.append(person)
    return out


def _fill_counters(value: Optional[Dict]) -> Dict:
    filled = {c: 0 for c in CATEGORIES}
    for k, v in (value or {}).items():
        filled[Category(k)] = v
    return filled


def _fill_rosters(value: Optional[Dict]) -> Dict:
    filled = {c: [] for c in CATEGORIES}
    for k, v in (value or {}).items():
        filled[Category(k)] = v or []
    return filled


# ─────────────────────────────────────────────────────────────────────────────
# Base snapshot (carried-over prior service, consecutive mode only)
# ─────────────────────────────────────────────────────────────────────────────

class BaseSnapshot(BaseModel):
    service_label: str
    date: Optional[_date] = None
    total: int = 0
    totals: Dict[Category, int] = Field(default_factory=dict)
    rosters: Dict[Category, Roster] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @field_validator("totals", mode="before")
    @classmethod
    def _fill_totals(cls, v):
        return _fill_counters(v)

    @field_validator("rosters", mode="before")
    @classmethod
    def _fill_rosters(cls, v):
        return _fill_rosters(v)

    def total_for(self, category: Category) -> int:
        return self.totals.get(category, 0) or 0

    def roster_for(self, category: Category) -> Roster:
        return self.rosters.get(category, [])


# ─────────────────────────────────────────────────────────────────────────────
# Tally state (the engine's single mutable root, replaced on every update)
# ─────────────────────────────────────────────────────────────────────────────

class TallyState(BaseModel):
    date: _date
    service_type: str = DEFAULT_SERVICE_TYPE

    selected_ushers: List[str] = Field(default_factory=list)
    usher_choice: str = ""   # single usher name, or "otro" for several
    usher_custom: str = ""   # comma-joined display string when several

    is_consecutive: bool = False
    is_edit_mode: bool = False
    editing_record_id: Optional[str] = None

    counters: Dict[Category, int] = Field(default_factory=dict)
    rosters: Dict[Category, Roster] = Field(default_factory=dict)

    base_snapshot: Optional[BaseSnapshot] = None

    @field_validator("counters", mode="before")
    @classmethod
    def _fill_counters(cls, v):
        return _fill_counters(v)

    @field_validator("counters")
    @classmethod
    def _non_negative(cls, v: Dict[Category, int]) -> Dict[Category, int]:
        for category, n in v.items():
            if n < 0:
                raise ValueError(f"counter for {category.value} must be >= 0")
        return v

    @field_validator("rosters", mode="before")
    @classmethod
    def _fill_rosters(cls, v):
        return _fill_rosters(v)

    @field_validator("rosters")
    @classmethod
    def _unique_ids(cls, v: Dict[Category, Roster]) -> Dict[Category, Roster]:
        return {c: _dedupe(r) for c, r in v.items()}

    @model_validator(mode="after")
    def _consecutive_needs_base(self) -> "TallyState":
        if self.is_consecutive and self.base_snapshot is None:
            raise ValueError("consecutive mode requires a base snapshot")
        return self

    def counter(self, category: Category) -> int:
        return self.counters.get(category, 0)

    def roster(self, category: Category) -> Roster:
        return self.rosters.get(category, [])


def empty_tally(day: _date, service_type: str = DEFAULT_SERVICE_TYPE) -> TallyState:
    return TallyState(date=day, service_type=service_type)


# ─────────────────────────────────────────────────────────────────────────────
# Derived read models
# ─────────────────────────────────────────────────────────────────────────────

class CategoryTotals(BaseModel):
    categories: Dict[Category, int]
    total: int

    model_config = ConfigDict(frozen=True)

    def __getitem__(self, category: Category | str) -> int:
        return self.categories[Category(category)]


class AsistenteInfo(BaseModel):
    id: str          # display id (base entries are prefixed)
    source_id: str   # id to use for removal / catalog lookup
    name: str
    category: Category
    kind: Literal["miembro", "simpatizante"]
    es_base: bool = False


# ─────────────────────────────────────────────────────────────────────────────
# Request payloads for the /conteo API
# ─────────────────────────────────────────────────────────────────────────────

class TallyPatch(BaseModel):
    """Partial update accepted by PATCH /conteo (session config only).

    `date` is not patchable: the running tally is always today's.
    """
    service_type: Optional[str] = None
    selected_ushers: Optional[List[str]] = None
    usher_choice: Optional[str] = None
    usher_custom: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class CounterValue(BaseModel):
    value: int


class BulkCounts(BaseModel):
    counts: Dict[Category, int] = Field(default_factory=dict)


class AttendeesIn(BaseModel):
    attendees: List[NamedAttendee]


class VisitingBrotherIn(BaseModel):
    name: str
    church: Optional[str] = None


class TallyView(BaseModel):
    """State plus everything the counting screen derives from it."""
    state: TallyState
    totals: CategoryTotals
    mode: str
    is_saving: bool = False
    has_asistentes: bool = False
