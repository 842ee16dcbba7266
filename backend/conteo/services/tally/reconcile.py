# conteo/services/tally/reconcile.py
"""Rebuild engine state from an archived record.

An archived record keeps only ``(category total, named roster)`` per category.
The manual counter (people counted with the plain +/- buttons) is recovered
as ``max(0, total - distinct named ids)``; named attendees are always part of the
total, never on top of it.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

from conteo.schemas.attendance_record import HistoricalRecordInput
from conteo.schemas.tally import TallyState
from conteo.services.tally.categories import CATEGORIES, Category, service_type_from_label
from conteo.services.tally.ushers import (
    custom_usher_string,
    normalize_ushers,
    usher_selector_value,
)

logger = logging.getLogger(__name__)


def named_count(record: HistoricalRecordInput, category: Category) -> int:
    """Distinct ids in an archived roster.

    A consecutive save archives base plus session rosters, so someone present
    at both services is listed twice. The rebuilt state keeps one entry per id
    and the manual counter absorbs the repeat.
    """
    return len({p.id for p in record.roster_for(category)})


def calculate_manual_counters(record: HistoricalRecordInput) -> Dict[Category, int]:
    return {
        c: max(0, record.total_for(c) - named_count(record, c))
        for c in CATEGORIES
    }


def find_inconsistencies(record: HistoricalRecordInput) -> Dict[Category, Tuple[int, int]]:
    """Categories whose stored total is below the number of named attendees.

    Maps category -> (stored total, named count). Such records reconcile to a
    manual counter of 0, which under-counts relative to the roster.
    """
    out: Dict[Category, Tuple[int, int]] = {}
    for c in CATEGORIES:
        total, named = record.total_for(c), named_count(record, c)
        if total < named:
            out[c] = (total, named)
    return out


def state_from_record(
    record: HistoricalRecordInput,
    edit_record_id: Optional[str] = None,
) -> TallyState:
    bad = find_inconsistencies(record)
    if bad:
        logger.warning(
            "Record %s has totals below roster length, flooring manual counts: %s",
            edit_record_id or "<unsaved>",
            {c.value: v for c, v in bad.items()},
        )

    ushers = normalize_ushers(record.ushers)
    return TallyState(
        date=record.date,
        service_type=service_type_from_label(record.service_label),
        selected_ushers=ushers,
        usher_choice=usher_selector_value(ushers),
        usher_custom=custom_usher_string(ushers),
        is_consecutive=False,
        is_edit_mode=bool(edit_record_id),
        editing_record_id=edit_record_id or None,
        counters=calculate_manual_counters(record),
        rosters={c: list(record.roster_for(c)) for c in CATEGORIES},
        base_snapshot=None,
    )
