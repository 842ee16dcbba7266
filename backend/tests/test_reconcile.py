from datetime import date

from conteo.schemas.attendance_record import HistoricalRecordInput
from conteo.services.tally.categories import Category
from conteo.services.tally.reconcile import (
    calculate_manual_counters,
    find_inconsistencies,
    state_from_record,
)


def _record(**overrides):
    data = {
        "date": date(2025, 1, 5),
        "service_label": "Dominical",
        "ushers": ["Carlos"],
        "totals": {"brothers": 5, "sympathizers": 2},
        "rosters": {
            "brothers": [{"id": "m1", "name": "Juan"}, {"id": "m2", "name": "Pedro"}],
            "sympathizers": [{"id": "s1", "name": "Ana"}],
        },
    }
    data.update(overrides)
    return HistoricalRecordInput.model_validate(data)


def test_manual_counter_is_total_minus_named():
    counters = calculate_manual_counters(_record())
    assert counters[Category.BROTHERS] == 3
    assert counters[Category.SYMPATHIZERS] == 1
    assert counters[Category.TEENS] == 0


def test_total_below_roster_floors_to_zero_and_is_reported():
    record = _record(totals={"brothers": 1})
    assert calculate_manual_counters(record)[Category.BROTHERS] == 0
    bad = find_inconsistencies(record)
    assert bad == {Category.BROTHERS: (1, 2), Category.SYMPATHIZERS: (0, 1)}


def test_state_from_record_for_edit():
    state = state_from_record(_record(), "rec1")
    assert state.is_edit_mode is True
    assert state.editing_record_id == "rec1"
    assert state.is_consecutive is False
    assert state.base_snapshot is None
    assert state.service_type == "dominical"
    assert state.usher_choice == "Carlos"
    assert state.usher_custom == ""
    assert [p.id for p in state.roster(Category.BROTHERS)] == ["m1", "m2"]
    # re-saving reproduces the archived totals
    assert state.counter(Category.BROTHERS) + len(state.roster(Category.BROTHERS)) == 5


def test_legacy_single_usher_string_and_label_mapping():
    record = _record(ushers="Carlos, Pedro", service_label="Oración y Enseñanza")
    state = state_from_record(record, "rec2")
    assert state.selected_ushers == ["Carlos, Pedro"]
    assert state.service_type == "oracion"


def test_several_ushers_use_custom_selector():
    state = state_from_record(_record(ushers=["Ana", "Luis"]), "rec3")
    assert state.usher_choice == "otro"
    assert state.usher_custom == "Ana, Luis"


def test_missing_total_defaults_to_sum_of_categories():
    record = _record(total=None)
    assert record.total == 7


def test_repeated_id_from_consecutive_merge_stays_in_total():
    record = _record(
        totals={"sympathizers": 2},
        rosters={"sympathizers": [{"id": "s1", "name": "Ana"}, {"id": "s1", "name": "Ana"}]},
    )
    assert find_inconsistencies(record) == {}
    state = state_from_record(record, "rec4")
    assert len(state.roster(Category.SYMPATHIZERS)) == 1
    assert state.counter(Category.SYMPATHIZERS) == 1
