# conteo/services/tally/calculations.py
from __future__ import annotations

from typing import Dict, Optional, Sequence

from conteo.schemas.attendance_record import HistoricalRecordInput
from conteo.schemas.tally import BaseSnapshot, CategoryTotals, NamedAttendee, TallyState
from conteo.services.tally.categories import CATEGORIES, Category, service_label


def calculate_category_total(counter: int, named: int, base: int = 0) -> int:
    return counter + named + base


def base_values(state: TallyState, base: Optional[BaseSnapshot]) -> Dict[Category, int]:
    """Per-category carry from the base service; all zero outside consecutive mode."""
    if not state.is_consecutive or base is None:
        return {c: 0 for c in CATEGORIES}
    return {c: base.total_for(c) for c in CATEGORIES}


def calculate_all_totals(state: TallyState, base: Optional[BaseSnapshot]) -> CategoryTotals:
    """Per-category and grand totals. Pure: neither argument is modified."""
    carry = base_values(state, base)
    per_category = {
        c: calculate_category_total(state.counter(c), len(state.roster(c)), carry[c])
        for c in CATEGORIES
    }
    return CategoryTotals(categories=per_category, total=sum(per_category.values()))


def _slim(person: NamedAttendee, category: Category) -> NamedAttendee:
    # Archived rosters keep id + name (+ church of origin for visitors)
    if category is Category.VISITING_BROTHERS:
        return NamedAttendee(id=person.id, name=person.name, church=person.church)
    return NamedAttendee(id=person.id, name=person.name)


def build_rosters(
    state: TallyState,
    base: Optional[BaseSnapshot],
) -> Dict[Category, list]:
    """Rosters to archive: base attendees (consecutive mode) then this session's."""
    carry_base = state.is_consecutive and base is not None
    rosters: Dict[Category, list] = {}
    for c in CATEGORIES:
        merged = list(base.roster_for(c)) if carry_base else []
        merged.extend(_slim(p, c) for p in state.roster(c))
        rosters[c] = merged
    return rosters


def build_record_payload(
    totals: CategoryTotals,
    state: TallyState,
    base: Optional[BaseSnapshot],
    ushers: Sequence[str],
) -> HistoricalRecordInput:
    return HistoricalRecordInput(
        date=state.date,
        service_label=service_label(state.service_type),
        ushers=list(ushers),
        totals=dict(totals.categories),
        total=totals.total,
        rosters=build_rosters(state, base),
    )


def snapshot_from_record(record: HistoricalRecordInput) -> BaseSnapshot:
    return BaseSnapshot(
        service_label=record.service_label,
        date=record.date,
        total=record.total or 0,
        totals=dict(record.totals),
        rosters={c: list(r) for c, r in record.rosters.items()},
    )
