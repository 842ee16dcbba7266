# conteo/services/tally/roster.py
"""Named-attendee rosters: the merged display list plus session add/remove."""
from __future__ import annotations

import logging
import uuid
from typing import Iterable, List, Optional

from conteo.schemas.tally import AsistenteInfo, BaseSnapshot, NamedAttendee, TallyState
from conteo.services.tally.categories import CATEGORIES, Category, spec_for
from conteo.services.tally.errors import BaseAttendeeImmutableError, EmptyNameError
from conteo.services.tally.store import TallyStore

logger = logging.getLogger(__name__)

BASE_ID_PREFIX = "base-"


def get_all_asistentes(state: TallyState, base: Optional[BaseSnapshot]) -> List[AsistenteInfo]:
    """Flat, order-stable attendee list.

    Base-service attendees come first (consecutive mode only) with a
    ``base-`` display id so they never collide with the same person added
    again in this session; session attendees keep their own id.
    """
    out: List[AsistenteInfo] = []

    if state.is_consecutive and base is not None:
        for c in CATEGORIES:
            kind = spec_for(c).attendee_kind
            for person in base.roster_for(c):
                out.append(
                    AsistenteInfo(
                        id=f"{BASE_ID_PREFIX}{person.id}",
                        source_id=person.id,
                        name=person.name,
                        category=c,
                        kind=kind,
                        es_base=True,
                    )
                )

    for c in CATEGORIES:
        kind = spec_for(c).attendee_kind
        for person in state.roster(c):
            out.append(
                AsistenteInfo(
                    id=person.id,
                    source_id=person.id,
                    name=person.name,
                    category=c,
                    kind=kind,
                    es_base=False,
                )
            )
    return out


def has_asistentes(state: TallyState, base: Optional[BaseSnapshot]) -> bool:
    if any(state.roster(c) for c in CATEGORIES):
        return True
    return bool(state.is_consecutive and base and any(base.roster_for(c) for c in CATEGORIES))


# ─────────────────────────────────────────────────────────────────────────────
# Session roster mutations (all go through store.dispatch)
# ─────────────────────────────────────────────────────────────────────────────

def _with_roster(store: TallyStore, category: Category, roster: List[NamedAttendee]):
    with store.lock:
        rosters = dict(store.get_state().rosters)
        rosters[category] = roster
        return store.dispatch({"rosters": rosters})


def add_attendees(
    store: TallyStore,
    category: Category | str,
    people: Iterable[NamedAttendee],
) -> TallyState:
    category = Category(category)
    with store.lock:
        current = list(store.get_state().roster(category))
        known = {p.id for p in current}
        for person in people:
            if person.id in known:
                logger.debug("%s already in %s roster, skipping", person.id, category.value)
                continue
            known.add(person.id)
            current.append(person)
        return _with_roster(store, category, current)


def remove_attendee(store: TallyStore, category: Category | str, attendee_id: str) -> TallyState:
    category = Category(category)
    with store.lock:
        roster = [p for p in store.get_state().roster(category) if p.id != attendee_id]
        return _with_roster(store, category, roster)


def clear_attendees(store: TallyStore, category: Category | str) -> TallyState:
    return _with_roster(store, Category(category), [])


def add_visiting_brother(store: TallyStore, name: str, church: Optional[str] = None) -> NamedAttendee:
    name = (name or "").strip()
    if not name:
        raise EmptyNameError("name")
    visitor = NamedAttendee(
        id=uuid.uuid4().hex,
        name=name,
        church=(church or "").strip() or None,
    )
    add_attendees(store, Category.VISITING_BROTHERS, [visitor])
    return visitor


def remove_asistente(store: TallyStore, asistente_id: str, category: Category | str) -> TallyState:
    """Remove an entry picked from :func:`get_all_asistentes`.

    Only session entries are removable. A base entry's display id is rejected
    even when a session entry shares its underlying catalog id.
    """
    category = Category(category)
    with store.lock:
        if asistente_id.startswith(BASE_ID_PREFIX):
            source_id = asistente_id[len(BASE_ID_PREFIX):]
            base = store.get_state().base_snapshot
            if base is not None and any(p.id == source_id for p in base.roster_for(category)):
                raise BaseAttendeeImmutableError(asistente_id)
        return remove_attendee(store, category, asistente_id)
