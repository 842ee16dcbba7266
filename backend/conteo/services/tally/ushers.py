# conteo/services/tally/ushers.py
"""Usher ("ujier") helpers: legacy records hold a string, newer ones a list."""
from __future__ import annotations

from typing import Any, Iterable, List, Sequence, Union

# Selector value meaning "several ushers, see the custom string"
MULTIPLE_USHERS = "otro"

UsherField = Union[str, Sequence[str], None]


def normalize_ushers(ujier: UsherField) -> List[str]:
    if ujier is None:
        return []
    if isinstance(ujier, str):
        return [ujier] if ujier else []
    return list(ujier)


def format_ushers(ujier: UsherField) -> str:
    return ", ".join(normalize_ushers(ujier))


def usher_selector_value(ujier: UsherField) -> str:
    ushers = normalize_ushers(ujier)
    if not ushers:
        return ""
    return ushers[0] if len(ushers) == 1 else MULTIPLE_USHERS


def custom_usher_string(ujier: UsherField) -> str:
    ushers = normalize_ushers(ujier)
    return ", ".join(ushers) if len(ushers) > 1 else ""


def validate_ushers(selected: Sequence[str]) -> bool:
    return len(selected) > 0


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def active_ushers(ushers: Iterable[Any]) -> List[str]:
    """Names of active ushers, alphabetically. Accepts ORM rows or dicts."""
    return sorted(_field(u, "name") for u in ushers if _field(u, "active"))
