import threading
from datetime import date, timedelta

import pytest
from pydantic import ValidationError

from conteo.schemas.tally import BaseSnapshot, NamedAttendee, TallyState, empty_tally
from conteo.services.tally import roster
from conteo.services.tally.categories import Category
from conteo.services.tally.persistence import (
    STORAGE_KEY,
    MemoryKeyValueStore,
    SqlKeyValueStore,
    StatePersister,
    create_tally_store,
)
from conteo.services.tally.store import TallyStore


class BrokenStorage(MemoryKeyValueStore):
    def get(self, key):
        raise OSError("disk gone")

    def set(self, key, value):
        raise OSError("quota exceeded")


def test_dispatch_merges_and_notifies(store):
    seen = []
    unsubscribe = store.subscribe(seen.append)
    store.dispatch({"service_type": "oracion"})
    assert store.get_state().service_type == "oracion"
    assert seen[-1].service_type == "oracion"

    unsubscribe()
    store.dispatch({"service_type": "dorcas"})
    assert len(seen) == 1


def test_dispatch_rejects_unknown_fields(store):
    with pytest.raises(KeyError):
        store.dispatch({"colour": "red"})


def test_dispatch_revalidates(store):
    with pytest.raises(ValidationError):
        store.dispatch({"is_consecutive": True})
    assert store.get_state().is_consecutive is False


def test_counters_never_go_negative(store):
    store.decrement(Category.BROTHERS)
    assert store.get_state().counter(Category.BROTHERS) == 0
    store.increment("brothers")
    store.increment("brothers")
    store.decrement("brothers")
    assert store.get_state().counter(Category.BROTHERS) == 1
    store.set_counter(Category.TEENS, -4)
    assert store.get_state().counter(Category.TEENS) == 0


def test_bulk_counts_add_to_counters(store):
    store.set_counter(Category.CHILDREN, 2)
    store.apply_bulk_counts({"children": 3, "sisters": 4})
    state = store.get_state()
    assert state.counter(Category.CHILDREN) == 5
    assert state.counter(Category.SISTERS) == 4


def test_clear_day_data_keeps_date_and_service(store, today):
    store.dispatch({"service_type": "oracion", "selected_ushers": ["Carlos"], "usher_choice": "Carlos"})
    store.set_counter(Category.BROTHERS, 3)
    store.set_base_snapshot(BaseSnapshot(service_label="Evangelismo", total=1))
    store.clear_day_data()
    state = store.get_state()
    assert state.date == today
    assert state.service_type == "oracion"
    assert state.selected_ushers == []
    assert state.counter(Category.BROTHERS) == 0
    assert state.base_snapshot is None


def test_clearing_base_snapshot_leaves_consecutive_mode(store):
    store.set_base_snapshot(BaseSnapshot(service_label="Evangelismo", total=1))
    store.dispatch({"is_consecutive": True})
    store.set_base_snapshot(None)
    assert store.get_state().is_consecutive is False


def test_every_change_is_persisted(today):
    storage = MemoryKeyValueStore()
    store = create_tally_store(storage, today=today)
    store.set_counter(Category.SISTERS, 4)
    saved = TallyState.model_validate_json(storage.get(STORAGE_KEY))
    assert saved.counter(Category.SISTERS) == 4


def test_restore_same_day(today):
    storage = MemoryKeyValueStore()
    first = create_tally_store(storage, today=today)
    first.dispatch({"selected_ushers": ["Ana"]})
    first.set_counter(Category.TEENS, 2)

    second = create_tally_store(storage, today=today)
    assert second.get_state().counter(Category.TEENS) == 2
    assert second.get_state().selected_ushers == ["Ana"]


def test_stale_stored_day_starts_fresh(today):
    storage = MemoryKeyValueStore()
    yesterday = create_tally_store(storage, today=today - timedelta(days=1))
    yesterday.set_counter(Category.BROTHERS, 9)

    store = create_tally_store(storage, today=today)
    assert store.get_state().date == today
    assert store.get_state().counter(Category.BROTHERS) == 0


def test_unreadable_storage_starts_fresh(today):
    storage = MemoryKeyValueStore()
    storage.set(STORAGE_KEY, "{not json")
    assert create_tally_store(storage, today=today).get_state() == empty_tally(today)
    assert create_tally_store(BrokenStorage(), today=today).get_state() == empty_tally(today)


def test_write_failures_are_swallowed(today):
    store = create_tally_store(BrokenStorage(), today=today)
    store.set_counter(Category.BROTHERS, 2)
    assert store.get_state().counter(Category.BROTHERS) == 2


def test_roll_over_if_stale(today):
    store = TallyStore(empty_tally(today))
    store.set_counter(Category.BROTHERS, 2)
    assert store.roll_over_if_stale(today) is False
    assert store.roll_over_if_stale(today + timedelta(days=1)) is True
    assert store.get_state().date == today + timedelta(days=1)
    assert store.get_state().counter(Category.BROTHERS) == 0


def test_roll_over_skipped_while_editing(today):
    store = TallyStore(empty_tally(today))
    store.dispatch({"is_edit_mode": True, "editing_record_id": "rec1", "date": date(2024, 12, 1)})
    assert store.roll_over_if_stale(today) is False
    assert store.get_state().is_edit_mode is True


def test_sql_key_value_store(session_factory):
    storage = SqlKeyValueStore(session_factory)
    assert storage.get("k") is None
    storage.set("k", "one")
    storage.set("k", "two")
    assert storage.get("k") == "two"
    storage.delete("k")
    assert storage.get("k") is None


def test_persister_round_trip_through_sql(session_factory, today):
    persister = StatePersister(SqlKeyValueStore(session_factory), key="test")
    state = empty_tally(today).model_copy(update={"service_type": "jovenes"})
    persister(state)
    assert persister.load(today).service_type == "jovenes"


def test_parallel_increments_are_not_lost(store):
    start = threading.Barrier(20)

    def bump():
        start.wait()
        store.increment(Category.BROTHERS)
        me = threading.current_thread().name
        roster.add_attendees(store, Category.SISTERS, [NamedAttendee(id=me, name=me)])

    workers = [threading.Thread(target=bump, name=f"w{i}") for i in range(20)]
    for w in workers:
        w.start()
    for w in workers:
        w.join()

    state = store.get_state()
    assert state.counter(Category.BROTHERS) == 20
    assert len(state.roster(Category.SISTERS)) == 20
