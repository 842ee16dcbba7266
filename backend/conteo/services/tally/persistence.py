# conteo/services/tally/persistence.py
from __future__ import annotations

import logging
import os
from datetime import date
from typing import Callable, Dict, Optional, Protocol

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from conteo.models.stored_value import StoredValue
from conteo.schemas.tally import TallyState, empty_tally
from conteo.services.tally.clock import today_local
from conteo.services.tally.store import TallyStore

logger = logging.getLogger(__name__)

STORAGE_KEY = os.getenv("CONTEO_STORAGE_KEY", "conteo-persistente")


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...
    def set(self, key: str, value: str) -> None: ...
    def delete(self, key: str) -> None: ...


class MemoryKeyValueStore:
    """Process-local storage; state is lost on restart."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class SqlKeyValueStore:
    """Key-value rows in the `kv_store` table, one short session per call."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def get(self, key: str) -> Optional[str]:
        with self._session_factory() as db:
            row = db.get(StoredValue, key)
            return row.value if row else None

    def set(self, key: str, value: str) -> None:
        with self._session_factory() as db:
            try:
                row = db.get(StoredValue, key)
                if row:
                    row.value = value
                else:
                    db.add(StoredValue(key=key, value=value))
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise

    def delete(self, key: str) -> None:
        with self._session_factory() as db:
            row = db.get(StoredValue, key)
            if row:
                db.delete(row)
                db.commit()


class StatePersister:
    """Store subscriber that writes the serialized tally after every change.

    Reads happen once, in :meth:`load`. Failures in either direction are
    logged and swallowed; the in-memory state stays authoritative.
    """

    def __init__(self, storage: KeyValueStore, key: str = STORAGE_KEY) -> None:
        self.storage = storage
        self.key = key

    def load(self, today: date) -> TallyState:
        try:
            raw = self.storage.get(self.key)
        except Exception:
            logger.exception("Error loading tally from storage key %r", self.key)
            return empty_tally(today)

        if not raw:
            return empty_tally(today)

        try:
            state = TallyState.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding unreadable stored tally: %s", e)
            return empty_tally(today)

        if state.date != today:
            # Stale day (shared kiosk browser left open overnight)
            logger.info("Stored tally is for %s, not %s; starting fresh", state.date, today)
            return empty_tally(today)
        return state

    def __call__(self, state: TallyState) -> None:
        try:
            self.storage.set(self.key, state.model_dump_json())
        except Exception:
            logger.exception("Error saving tally to storage key %r", self.key)


def create_tally_store(
    storage: KeyValueStore,
    today: Optional[date] = None,
    key: str = STORAGE_KEY,
) -> TallyStore:
    """Hydrate a store from `storage` and keep it persisted there."""
    persister = StatePersister(storage, key)
    store = TallyStore(persister.load(today or today_local()))
    store.subscribe(persister)
    return store
