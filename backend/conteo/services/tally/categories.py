# conteo/services/tally/categories.py
"""Closed catalog of attendance categories and service types.

Every per-category slot in the engine (manual counters, named rosters, base
snapshot totals) is keyed by :class:`Category`; nothing builds field names out
of strings at runtime.
"""
from __future__ import annotations

import enum
import os
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple


class Category(str, enum.Enum):
    """Attendance buckets counted during a service."""
    BROTHERS = "brothers"
    SISTERS = "sisters"
    CHILDREN = "children"
    TEENS = "teens"
    SYMPATHIZERS = "sympathizers"
    SET_APART_BROTHERS = "setApartBrothers"
    VISITING_BROTHERS = "visitingBrothers"


class RosterKind(str, enum.Enum):
    """Where the named entries of a category come from."""
    MEMBER = "member"            # member catalog, stored under miembrosAsistieron
    SYMPATHIZER = "sympathizer"  # sympathizer catalog
    VISITOR = "visitor"          # ad-hoc name + optional church of origin


@dataclass(frozen=True)
class CategorySpec:
    category: Category
    label: str
    roster_kind: RosterKind
    # Member catalog sub-category feeding the roster; None means "all members"
    member_category: Optional[str] = None

    @property
    def is_member(self) -> bool:
        return self.roster_kind is RosterKind.MEMBER

    @property
    def attendee_kind(self) -> str:
        """Display kind used by the attendee list ('miembro' | 'simpatizante')."""
        return "simpatizante" if self.roster_kind is RosterKind.SYMPATHIZER else "miembro"


CATEGORY_SPECS: Tuple[CategorySpec, ...] = (
    CategorySpec(Category.BROTHERS, "Hermanos", RosterKind.MEMBER, "hermano"),
    CategorySpec(Category.SISTERS, "Hermanas", RosterKind.MEMBER, "hermana"),
    CategorySpec(Category.CHILDREN, "Niños", RosterKind.MEMBER, "nino"),
    CategorySpec(Category.TEENS, "Adolescentes", RosterKind.MEMBER, "adolescente"),
    CategorySpec(Category.SYMPATHIZERS, "Simpatizantes", RosterKind.SYMPATHIZER),
    CategorySpec(Category.SET_APART_BROTHERS, "Hermanos Apartados", RosterKind.MEMBER),
    CategorySpec(Category.VISITING_BROTHERS, "Hermanos Visitas", RosterKind.VISITOR),
)

_SPECS_BY_CATEGORY: Dict[Category, CategorySpec] = {s.category: s for s in CATEGORY_SPECS}

# Catalog order; totals, rosters and the attendee list follow it
CATEGORIES: Tuple[Category, ...] = tuple(s.category for s in CATEGORY_SPECS)
MEMBER_CATEGORIES: Tuple[Category, ...] = tuple(s.category for s in CATEGORY_SPECS if s.is_member)


def spec_for(category: Category | str) -> CategorySpec:
    return _SPECS_BY_CATEGORY[Category(category)]


def label_for(category: Category | str) -> str:
    return spec_for(category).label


def zero_counters() -> Dict[Category, int]:
    return {c: 0 for c in CATEGORIES}


def empty_rosters() -> Dict[Category, list]:
    return {c: [] for c in CATEGORIES}


# ─────────────────────────────────────────────────────────────────────────────
# Service types
# ─────────────────────────────────────────────────────────────────────────────

SERVICES: List[Dict[str, str]] = [
    {"value": "dominical", "label": "Dominical"},
    {"value": "oracion", "label": "Oración y Enseñanza"},
    {"value": "dorcas", "label": "Hermanas Dorcas"},
    {"value": "evangelismo", "label": "Evangelismo"},
    {"value": "misionero", "label": "Misionero"},
    {"value": "jovenes", "label": "Jóvenes"},
    {"value": "intercesion", "label": "Intercesión"},
]

# Escape hatch for a service typed by hand
OTHER_SERVICE = "otro"

DEFAULT_SERVICE_TYPE = os.getenv("CONTEO_DEFAULT_SERVICE", "dominical")

# Follow-on service entered when continuing after a base service
FOLLOW_ON_SERVICE_TYPE = "dominical"


def _base_services_from_env() -> FrozenSet[str]:
    raw = os.getenv("CONTEO_BASE_SERVICES", "evangelismo,misionero")
    return frozenset(s.strip().lower() for s in raw.split(",") if s.strip())


BASE_SERVICE_TYPES: FrozenSet[str] = _base_services_from_env()


def service_label(service_type: str) -> str:
    """Human label for a service type; unknown/manual types are returned as typed."""
    for s in SERVICES:
        if s["value"] == service_type:
            return s["label"]
    return service_type


def service_type_from_label(label: str) -> str:
    """Inverse of :func:`service_label`, used when a saved record is loaded for edit."""
    needle = (label or "").strip().lower()
    for s in SERVICES:
        if s["label"].lower() == needle or s["value"] == needle:
            return s["value"]
    return needle
