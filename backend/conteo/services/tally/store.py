# conteo/services/tally/store.py
"""Day-scoped tally state container.

`TallyStore` owns exactly one :class:`TallyState`. Every change goes through
:meth:`TallyStore.dispatch` (a shallow merge followed by full re-validation)
and is then broadcast to subscribers; persistence is one such subscriber,
registered by :func:`conteo.services.tally.persistence.create_tally_store`.
"""
from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Any, Callable, Dict, List, Mapping, Optional

from conteo.schemas.attendance_record import HistoricalRecordInput
from conteo.schemas.tally import BaseSnapshot, TallyState, empty_tally
from conteo.services.tally.categories import Category, empty_rosters, zero_counters
from conteo.services.tally.reconcile import state_from_record

logger = logging.getLogger(__name__)

Listener = Callable[[TallyState], None]


class TallyStore:
    def __init__(self, initial: TallyState) -> None:
        self._state = initial
        self._listeners: List[Listener] = []
        self._lock = threading.RLock()

    # ------------------------------------------------------------------ core

    def get_state(self) -> TallyState:
        return self._state

    @property
    def lock(self) -> threading.RLock:
        """Reentrant lock; hold it across a read and the dispatch that depends on it."""
        return self._lock

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener`; returns a callable that unregisters it."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def dispatch(self, update: Mapping[str, Any]) -> TallyState:
        """Shallow-merge `update` into the state. The only sanctioned mutator."""
        unknown = set(update) - set(TallyState.model_fields)
        if unknown:
            raise KeyError(f"Unknown tally fields: {sorted(unknown)}")

        with self._lock:
            merged: Dict[str, Any] = {**self._state.model_dump(), **dict(update)}
            new_state = TallyState.model_validate(merged)
            self._state = new_state
        self._notify(new_state)
        return new_state

    # Name kept from the counting screen's vocabulary
    update_conteo = dispatch

    def replace(self, state: TallyState) -> TallyState:
        with self._lock:
            self._state = state
        self._notify(state)
        return state

    def _notify(self, state: TallyState) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("tally listener %r failed", listener)

    # ------------------------------------------------------------- lifecycle

    def clear_day_data(self) -> TallyState:
        """Drop counts, rosters, usher selection and mode flags; keep date/service."""
        return self.dispatch(
            {
                "counters": zero_counters(),
                "rosters": empty_rosters(),
                "selected_ushers": [],
                "usher_choice": "",
                "usher_custom": "",
                "base_snapshot": None,
                "is_consecutive": False,
                "is_edit_mode": False,
                "editing_record_id": None,
            }
        )

    def reset(self, today: date) -> TallyState:
        return self.replace(empty_tally(today))

    def roll_over_if_stale(self, today: date) -> bool:
        """Re-apply the day-boundary reset; an edit session keeps its own date."""
        state = self._state
        if state.is_edit_mode or state.date == today:
            return False
        logger.info("Tally dated %s is stale (today is %s); starting fresh", state.date, today)
        self.reset(today)
        return True

    def load_historial_data(
        self,
        record: HistoricalRecordInput,
        edit_record_id: Optional[str] = None,
    ) -> TallyState:
        """Replace the whole state with one reconstructed from an archived record."""
        return self.replace(state_from_record(record, edit_record_id))

    def set_base_snapshot(self, snapshot: Optional[BaseSnapshot]) -> TallyState:
        update: Dict[str, Any] = {"base_snapshot": snapshot}
        if snapshot is None:
            update["is_consecutive"] = False
        return self.dispatch(update)

    # -------------------------------------------------------------- counters

    def set_counter(self, category: Category | str, value: int) -> TallyState:
        category = Category(category)
        with self._lock:
            counters = dict(self._state.counters)
            counters[category] = max(0, int(value))
            return self.dispatch({"counters": counters})

    def increment(self, category: Category | str, by: int = 1) -> TallyState:
        category = Category(category)
        with self._lock:
            return self.set_counter(category, self._state.counter(category) + by)

    def decrement(self, category: Category | str) -> TallyState:
        category = Category(category)
        with self._lock:
            return self.set_counter(category, self._state.counter(category) - 1)

    def apply_bulk_counts(self, counts: Mapping[Category | str, int]) -> TallyState:
        """Add a batch of head counts (e.g. from a door count sheet) to the counters."""
        with self._lock:
            counters = dict(self._state.counters)
            for key, n in counts.items():
                category = Category(key)
                counters[category] = counters.get(category, 0) + max(0, int(n or 0))
            return self.dispatch({"counters": counters})
