# conteo/services/tally/engine.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from sqlalchemy.orm import Session

from conteo.schemas.tally import TallyView
from conteo.services.archive import SqlArchive
from conteo.services.tally.calculations import calculate_all_totals
from conteo.services.tally.orchestrator import ArchiveClient, ConteoOrchestrator
from conteo.services.tally.persistence import KeyValueStore, SqlKeyValueStore, create_tally_store
from conteo.services.tally.roster import has_asistentes
from conteo.services.tally.store import TallyStore


@dataclass
class ConteoEngine:
    """One running tally plus the state machine that archives it."""
    store: TallyStore
    orchestrator: ConteoOrchestrator

    def view(self) -> TallyView:
        state = self.store.get_state()
        return TallyView(
            state=state,
            totals=calculate_all_totals(state, state.base_snapshot),
            mode=self.orchestrator.mode.value,
            is_saving=self.orchestrator.is_saving,
            has_asistentes=has_asistentes(state, state.base_snapshot),
        )


def build_engine(
    session_factory: Callable[[], Session],
    *,
    storage: Optional[KeyValueStore] = None,
    archive: Optional[ArchiveClient] = None,
    today: Optional[date] = None,
) -> ConteoEngine:
    store = create_tally_store(storage or SqlKeyValueStore(session_factory), today=today)
    orchestrator = ConteoOrchestrator(store, archive or SqlArchive(session_factory))
    return ConteoEngine(store=store, orchestrator=orchestrator)
