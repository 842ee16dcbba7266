from datetime import date

from conteo.schemas.tally import BaseSnapshot, NamedAttendee, TallyState
from conteo.services.tally.calculations import (
    build_record_payload,
    calculate_all_totals,
    calculate_category_total,
    snapshot_from_record,
)
from conteo.services.tally.categories import CATEGORIES, Category

DAY = date(2025, 1, 5)


def _base():
    return BaseSnapshot(
        service_label="Evangelismo",
        date=DAY,
        total=5,
        totals={"brothers": 3, "sympathizers": 2},
        rosters={"sympathizers": [{"id": "s1", "name": "Ana"}]},
    )


def test_category_total_adds_counter_named_and_base():
    assert calculate_category_total(2, 1, 3) == 6
    assert calculate_category_total(0, 0) == 0


def test_totals_without_base():
    state = TallyState(
        date=DAY,
        counters={"brothers": 5, "children": 2},
        rosters={"brothers": [{"id": "m1", "name": "Juan"}, {"id": "m2", "name": "Pedro"}]},
    )
    totals = calculate_all_totals(state, None)
    assert totals[Category.BROTHERS] == 7
    assert totals["children"] == 2
    assert totals.total == 9
    assert set(totals.categories) == set(CATEGORIES)


def test_base_only_counts_in_consecutive_mode():
    base = _base()
    not_consecutive = TallyState(date=DAY, counters={"brothers": 1}, base_snapshot=base)
    assert calculate_all_totals(not_consecutive, base).total == 1

    consecutive = TallyState(
        date=DAY, counters={"brothers": 1}, base_snapshot=base, is_consecutive=True
    )
    totals = calculate_all_totals(consecutive, base)
    assert totals[Category.BROTHERS] == 4
    assert totals[Category.SYMPATHIZERS] == 2
    assert totals.total == 6


def test_totals_do_not_mutate_inputs():
    base = _base()
    state = TallyState(date=DAY, counters={"teens": 3}, base_snapshot=base, is_consecutive=True)
    before = state.model_dump()
    calculate_all_totals(state, base)
    assert state.model_dump() == before


def test_payload_merges_base_roster_first_and_slims_entries():
    base = _base()
    state = TallyState(
        date=DAY,
        service_type="dominical",
        is_consecutive=True,
        base_snapshot=base,
        rosters={
            "sympathizers": [NamedAttendee(id="s2", name="Luis", phone="555")],
            "visitingBrothers": [{"id": "v1", "name": "Marcos", "church": "Central"}],
        },
    )
    totals = calculate_all_totals(state, base)
    record = build_record_payload(totals, state, base, ["Carlos"])

    assert record.service_label == "Dominical"
    assert record.ushers == ["Carlos"]
    assert record.total == totals.total == 7
    symp = record.roster_for(Category.SYMPATHIZERS)
    assert [p.id for p in symp] == ["s1", "s2"]
    assert "phone" not in symp[1].model_dump()
    assert record.roster_for(Category.VISITING_BROTHERS)[0].church == "Central"


def test_unknown_service_type_is_archived_as_typed():
    state = TallyState(date=DAY, service_type="Vigilia", counters={"sisters": 1})
    record = build_record_payload(calculate_all_totals(state, None), state, None, ["X"])
    assert record.service_label == "Vigilia"


def test_snapshot_from_record_keeps_totals_and_rosters():
    state = TallyState(
        date=DAY,
        service_type="evangelismo",
        counters={"brothers": 2},
        rosters={"sympathizers": [{"id": "s1", "name": "Ana"}]},
    )
    record = build_record_payload(calculate_all_totals(state, None), state, None, ["X"])
    snap = snapshot_from_record(record)
    assert snap.service_label == "Evangelismo"
    assert snap.total == 3
    assert snap.total_for(Category.BROTHERS) == 2
    assert snap.roster_for(Category.SYMPATHIZERS)[0].name == "Ana"
