# conteo/services/tally/record_codec.py
"""Flat (Firebase-era) dictionary shape of an archived tally.

    {
      "date": "2025-01-05", "serviceLabel": "Dominical", "ushers": [...],
      "brothers": 8, "sisters": 0, ..., "total": 10,
      "sympathizersAsistieron": [...], "visitingBrothersAsistieron": [...],
      "miembrosAsistieron": {"brothers": [...], "sisters": [...], ...}
    }

Older documents may hold `ushers` as a single string; missing category
keys read as 0 / empty.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping

from conteo.schemas.attendance_record import HistoricalRecordInput
from conteo.services.tally.categories import CATEGORIES, MEMBER_CATEGORIES, Category

ATTENDED_SUFFIX = "Asistieron"
MEMBERS_KEY = "miembrosAsistieron"


def _roster_key(category: Category) -> str:
    return f"{category.value}{ATTENDED_SUFFIX}"


def record_to_flat(record: HistoricalRecordInput) -> Dict[str, Any]:
    data = record.model_dump(mode="json")
    flat: Dict[str, Any] = {
        "date": data["date"],
        "serviceLabel": data["service_label"],
        "ushers": data["ushers"],
    }
    for c in CATEGORIES:
        flat[c.value] = data["totals"].get(c.value, 0)
        if c not in MEMBER_CATEGORIES:
            flat[_roster_key(c)] = data["rosters"].get(c.value, [])
    flat["total"] = data["total"]
    flat[MEMBERS_KEY] = {c.value: data["rosters"].get(c.value, []) for c in MEMBER_CATEGORIES}
    return flat


def record_from_flat(flat: Mapping[str, Any]) -> HistoricalRecordInput:
    members = flat.get(MEMBERS_KEY) or {}
    totals = {c: int(flat.get(c.value) or 0) for c in CATEGORIES}
    rosters = {}
    for c in CATEGORIES:
        if c in MEMBER_CATEGORIES:
            rosters[c] = members.get(c.value) or []
        else:
            rosters[c] = flat.get(_roster_key(c)) or []
    return HistoricalRecordInput.model_validate(
        {
            "date": flat["date"],
            "service_label": flat.get("serviceLabel") or flat.get("service_label") or "",
            "ushers": flat.get("ushers"),
            "totals": totals,
            "total": flat.get("total"),
            "rosters": rosters,
        }
    )
