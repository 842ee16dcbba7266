# conteo/services/tally/orchestrator.py
"""Save / consecutive / edit state machine.

Modes are derived from the persisted tally, so they survive a restart::

    normal      --save(base service)-->  base_saved
    normal      --save(other)------->   normal
    base_saved  --continue---------->   consecutive
    base_saved  --decline----------->   normal
    consecutive --save-------------->   normal
    editing     --save-------------->   normal   (record updated in place)
    any         --enter_edit-------->   editing

A failed archive call leaves the tally exactly as it was.
"""
from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, FrozenSet, Optional, Protocol

from conteo.schemas.attendance_record import HistoricalRecordInput
from conteo.services.tally.calculations import (
    build_record_payload,
    calculate_all_totals,
    snapshot_from_record,
)
from conteo.services.tally.categories import (
    BASE_SERVICE_TYPES,
    DEFAULT_SERVICE_TYPE,
    FOLLOW_ON_SERVICE_TYPE,
    empty_rosters,
    zero_counters,
)
from conteo.services.tally.clock import today_local
from conteo.services.tally.errors import (
    DecisionPendingError,
    InvalidTransitionError,
    SaveInProgressError,
    UsherRequiredError,
)
from conteo.services.tally.reconcile import find_inconsistencies
from conteo.services.tally.store import TallyStore
from conteo.services.tally.ushers import format_ushers, validate_ushers

logger = logging.getLogger(__name__)

HISTORIAL_PATH = "/historial"


class Mode(str, enum.Enum):
    NORMAL = "normal"
    BASE_SAVED = "base_saved"
    CONSECUTIVE = "consecutive"
    EDITING = "editing"


class ArchiveClient(Protocol):
    """Durable store of archived tallies."""

    def create_record(self, record: HistoricalRecordInput) -> str: ...
    def update_record(self, record_id: str, patch: Dict[str, Any]) -> None: ...
    def get_record_by_id(self, record_id: str) -> HistoricalRecordInput: ...


@dataclass
class SaveResult:
    record_id: str
    record: HistoricalRecordInput
    mode: Mode
    created: bool = True
    awaiting_decision: bool = False
    navigate_to: Optional[str] = None
    message: str = ""


@dataclass
class EditSession:
    record_id: str
    record: HistoricalRecordInput
    inconsistencies: Dict[str, Any]


class ConteoOrchestrator:
    def __init__(
        self,
        store: TallyStore,
        archive: ArchiveClient,
        base_service_types: FrozenSet[str] = BASE_SERVICE_TYPES,
        default_service_type: str = DEFAULT_SERVICE_TYPE,
        follow_on_service_type: str = FOLLOW_ON_SERVICE_TYPE,
        today: Callable[[], date] = today_local,
    ) -> None:
        self.store = store
        self.archive = archive
        self.base_service_types = frozenset(base_service_types)
        self.default_service_type = default_service_type
        self.follow_on_service_type = follow_on_service_type
        self.today = today
        self._saving = False
        self._saving_lock = threading.Lock()

    # ---------------------------------------------------------------- state

    @property
    def mode(self) -> Mode:
        state = self.store.get_state()
        if state.is_edit_mode:
            return Mode.EDITING
        if state.is_consecutive:
            return Mode.CONSECUTIVE
        if state.base_snapshot is not None:
            return Mode.BASE_SAVED
        return Mode.NORMAL

    @property
    def is_saving(self) -> bool:
        return self._saving

    def is_base_service(self, service_type: str) -> bool:
        return (service_type or "").lower() in self.base_service_types

    # ----------------------------------------------------------------- save

    def save(self) -> SaveResult:
        with self._saving_lock:
            if self._saving:
                raise SaveInProgressError()
            self._saving = True
        try:
            # Counting waits until the archived snapshot has been cleared
            with self.store.lock:
                state = self.store.get_state()
                if not validate_ushers(state.selected_ushers):
                    raise UsherRequiredError()

                mode = self.mode
                if mode is Mode.BASE_SAVED:
                    raise DecisionPendingError()

                totals = calculate_all_totals(state, state.base_snapshot)
                record = build_record_payload(totals, state, state.base_snapshot, state.selected_ushers)

                if mode is Mode.EDITING and state.editing_record_id:
                    return self._save_edit(state.editing_record_id, record)
                if mode is Mode.NORMAL and self.is_base_service(state.service_type):
                    return self._save_base(record)
                if mode is Mode.CONSECUTIVE:
                    return self._save_consecutive(record)
                return self._save_normal(record)
        finally:
            self._saving = False

    def _save_normal(self, record: HistoricalRecordInput) -> SaveResult:
        record_id = self.archive.create_record(record)
        self.store.clear_day_data()
        logger.info(
            "Saved tally %s (%s, total=%s, ushers=%s)",
            record_id, record.service_label, record.total, format_ushers(record.ushers),
        )
        return SaveResult(
            record_id=record_id,
            record=record,
            mode=self.mode,
            message="Conteo guardado exitosamente",
        )

    def _save_base(self, record: HistoricalRecordInput) -> SaveResult:
        record_id = self.archive.create_record(record)
        self.store.set_base_snapshot(snapshot_from_record(record))
        logger.info(
            "Saved base service %s (%s, total=%s); awaiting continue/decline",
            record_id, record.service_label, record.total,
        )
        return SaveResult(
            record_id=record_id,
            record=record,
            mode=self.mode,
            awaiting_decision=True,
            message="Servicio base guardado. ¿Continuar con el servicio dominical?",
        )

    def _save_consecutive(self, record: HistoricalRecordInput) -> SaveResult:
        record_id = self.archive.create_record(record)
        self.store.clear_day_data()
        self.store.dispatch({"service_type": self.default_service_type})
        logger.info("Saved consecutive service %s (total=%s); cycle finalized", record_id, record.total)
        return SaveResult(
            record_id=record_id,
            record=record,
            mode=self.mode,
            message="Conteo dominical guardado exitosamente. Modo consecutivo finalizado.",
        )

    def _save_edit(self, record_id: str, record: HistoricalRecordInput) -> SaveResult:
        self.archive.update_record(record_id, record.model_dump(mode="json"))
        self._leave_edit()
        logger.info("Updated archived tally %s (total=%s)", record_id, record.total)
        return SaveResult(
            record_id=record_id,
            record=record,
            mode=self.mode,
            created=False,
            navigate_to=HISTORIAL_PATH,
            message="Registro actualizado exitosamente",
        )

    # -------------------------------------------------- consecutive decision

    def continue_consecutive(self) -> None:
        with self.store.lock:
            if self.mode is not Mode.BASE_SAVED:
                raise InvalidTransitionError("continue", self.mode.value)
            # Snapshot stays; it now feeds totals and the attendee list
            self.store.dispatch(
                {
                    "is_consecutive": True,
                    "service_type": self.follow_on_service_type,
                    "counters": zero_counters(),
                    "rosters": empty_rosters(),
                }
            )
        logger.info("Continuing into consecutive %s service", self.follow_on_service_type)

    def decline_consecutive(self) -> None:
        with self.store.lock:
            if self.mode is not Mode.BASE_SAVED:
                raise InvalidTransitionError("decline", self.mode.value)
            self.store.clear_day_data()
        logger.info("Consecutive service declined; day data cleared")

    # ---------------------------------------------------------------- edit

    def enter_edit(self, record_id: str) -> EditSession:
        """Fetch an archived record and load it for correction.

        Raises RecordNotFoundError / ArchiveError without touching the tally.
        """
        record = self.archive.get_record_by_id(record_id)
        self.store.load_historial_data(record, record_id)
        bad = find_inconsistencies(record)
        logger.info("Editing archived tally %s", record_id)
        return EditSession(
            record_id=record_id,
            record=record,
            inconsistencies={c.value: {"total": t, "named": n} for c, (t, n) in bad.items()},
        )

    def cancel_edit(self) -> None:
        with self.store.lock:
            if self.mode is not Mode.EDITING:
                raise InvalidTransitionError("cancel edit", self.mode.value)
            self._leave_edit()

    def _leave_edit(self) -> None:
        # The loaded record carried its own date; the running tally is today's again
        self.store.clear_day_data()
        self.store.dispatch({"service_type": self.default_service_type, "date": self.today()})
