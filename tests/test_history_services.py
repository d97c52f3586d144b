"""Unit tests for the bounded calculation history."""

from __future__ import annotations

import itertools
import json
from datetime import UTC, datetime, timedelta

import pytest

from worktime.calculator.services import (
    CalculationInput,
    CalculationResult,
    TimeBreakdown,
    compute_result,
)
from worktime.history.services import (
    CorruptHistoryError,
    HistoryStore,
    PersistenceReadError,
    PersistenceWriteError,
)

KEY = "work-time-calculator-history"
START = datetime(2024, 5, 1, 9, 0, tzinfo=UTC)

VALID_DOCUMENT = {
    "id": "1714554000000abc123def",
    "timestamp": "2024-05-01T09:00:00.000Z",
    "monthlyIncome": "4300",
    "itemPrice": "120",
    "hoursPerDay": "8",
    "daysPerWeek": "5",
    "result": {
        "days": 0,
        "hours": 4,
        "minutes": 50,
        "workingDays": 0,
        "workingHours": 4,
        "workingMinutes": 50,
        "hourlyRate": 24.807692307692307,
    },
}


def _ticking_clock():
    ticks = itertools.count()
    return lambda: START + timedelta(minutes=next(ticks))


def _store(storage) -> HistoryStore:
    return HistoryStore(storage=storage, key=KEY, clock=_ticking_clock())


def _calculation(price: str = "120", income: str = "4300") -> CalculationInput:
    return CalculationInput.from_values(
        monthly_income=income, item_price=price, hours_per_day="8", days_per_week="5"
    )


def _record(store: HistoryStore, price: str = "120", income: str = "4300"):
    calculation = _calculation(price, income)
    return store.record_calculation(calculation, compute_result(calculation))


def test_repeating_the_newest_input_is_not_recorded(memory_store):
    store = _store(memory_store)

    first_log, first_recorded = _record(store)
    second_log, second_recorded = _record(store)

    assert first_recorded is True
    assert second_recorded is False
    assert len(second_log) == 1
    assert second_log == first_log
    assert memory_store.writes == 1


def test_different_inputs_are_prepended_newest_first(memory_store):
    store = _store(memory_store)

    _record(store, price="120")
    entries, recorded = _record(store, price="80")

    assert recorded is True
    assert [entry.calculation.item_price for entry in entries] == ["80", "120"]
    assert store.most_recent().calculation.item_price == "80"


def test_only_adjacent_duplicates_are_suppressed(memory_store):
    store = _store(memory_store)

    _record(store, price="120")
    _record(store, price="80")
    entries, recorded = _record(store, price="120")

    assert recorded is True
    assert len(entries) == 3


def test_history_never_exceeds_capacity(memory_store):
    store = _store(memory_store)

    for price in range(1, 16):
        entries, _ = _record(store, price=str(price))

    assert len(entries) == 10
    assert entries[0].calculation.item_price == "15"
    assert entries[-1].calculation.item_price == "6"
    assert len(json.loads(memory_store.data[KEY])) == 10


def test_entry_ids_are_unique(memory_store):
    store = _store(memory_store)

    for price in range(1, 11):
        _record(store, price=str(price))

    assert len({entry.id for entry in store.entries}) == 10


def test_persisted_document_layout(memory_store):
    store = _store(memory_store)
    _record(store)

    documents = json.loads(memory_store.data[KEY])

    assert documents[0]["timestamp"] == "2024-05-01T09:00:00.000Z"
    assert documents[0]["monthlyIncome"] == "4300"
    assert documents[0]["itemPrice"] == "120"
    assert documents[0]["result"]["workingHours"] == 4
    assert documents[0]["result"]["workingMinutes"] == 50


def test_reloading_restores_the_same_entries(memory_store):
    store = _store(memory_store)
    _record(store, price="120")
    _record(store, price="80")

    reloaded = _store(memory_store)
    entries = reloaded.load_history()

    assert entries == store.snapshot()
    assert entries[0].created_at.tzinfo is not None
    assert reloaded.last_error is None


def test_load_after_clear_is_empty(memory_store):
    store = _store(memory_store)
    _record(store)

    assert store.clear_history() == ()
    assert memory_store.data[KEY] == "[]"
    assert _store(memory_store).load_history() == ()


def test_missing_key_loads_an_empty_log(memory_store):
    store = _store(memory_store)

    assert store.load_history() == ()
    assert store.last_error is None
    assert store.most_recent() is None


@pytest.mark.parametrize("blob", ["{not json", '{"id": "x"}', "42"])
def test_malformed_blob_loads_empty_and_reports(memory_store, blob):
    memory_store.data[KEY] = blob
    store = _store(memory_store)

    assert store.load_history() == ()
    assert isinstance(store.last_error, CorruptHistoryError)


def test_invalid_entries_are_dropped(memory_store):
    broken = dict(VALID_DOCUMENT, id="broken", result={"hourlyRate": "fast"})
    too_many_hours = dict(
        VALID_DOCUMENT,
        id="hours",
        result=dict(VALID_DOCUMENT["result"], workingHours=9),
    )
    memory_store.data[KEY] = json.dumps([VALID_DOCUMENT, broken, too_many_hours, "junk"])
    store = _store(memory_store)

    entries = store.load_history()

    assert [entry.id for entry in entries] == [VALID_DOCUMENT["id"]]
    assert isinstance(store.last_error, CorruptHistoryError)
    assert "Dropped 3" in str(store.last_error)


def test_epoch_timestamps_and_numeric_fields_are_accepted(memory_store):
    document = dict(
        VALID_DOCUMENT,
        timestamp=1714554000000,
        monthlyIncome=4300,
        itemPrice=120,
    )
    memory_store.data[KEY] = json.dumps([document])
    store = _store(memory_store)

    (entry,) = store.load_history()

    assert entry.created_at == datetime(2024, 5, 1, 9, 0, tzinfo=UTC)
    assert entry.calculation.monthly_income == "4300"
    assert entry.result.working_time == TimeBreakdown(days=0, hours=4, minutes=50)


def test_write_failure_keeps_memory_and_reconciles_later(memory_store):
    store = _store(memory_store)
    memory_store.fail_writes = True

    entries, recorded = _record(store, price="120")

    assert recorded is True
    assert len(entries) == 1
    assert isinstance(store.last_error, PersistenceWriteError)
    assert KEY not in memory_store.data

    memory_store.fail_writes = False
    _record(store, price="80")

    assert store.last_error is None
    assert len(json.loads(memory_store.data[KEY])) == 2


def test_undefined_results_are_not_recorded(memory_store):
    store = _store(memory_store)

    with pytest.raises(ValueError):
        store.record_calculation(_calculation(), CalculationResult.undefined())

    assert store.entries == []


def test_entries_with_uncarried_minutes_are_normalized_on_load(memory_store):
    legacy = dict(
        VALID_DOCUMENT,
        result=dict(
            VALID_DOCUMENT["result"],
            days=0,
            hours=23,
            minutes=60,
            workingDays=2,
            workingHours=7,
            workingMinutes=60,
        ),
    )
    memory_store.data[KEY] = json.dumps([legacy])
    store = _store(memory_store)

    (entry,) = store.load_history()

    assert store.last_error is None
    assert entry.result.continuous_time == TimeBreakdown(days=1, hours=0, minutes=0)
    assert entry.result.working_time == TimeBreakdown(days=3, hours=0, minutes=0)


def test_minutes_past_an_hour_are_still_rejected(memory_store):
    document = dict(VALID_DOCUMENT, result=dict(VALID_DOCUMENT["result"], minutes=61))
    memory_store.data[KEY] = json.dumps([document])
    store = _store(memory_store)

    assert store.load_history() == ()
    assert "'minutes' must be at most 60" in str(store.last_error)


def test_read_failure_loads_empty_and_reports(memory_store):
    memory_store.data[KEY] = json.dumps([VALID_DOCUMENT])
    memory_store.fail_reads = True
    store = _store(memory_store)

    assert store.load_history() == ()
    assert isinstance(store.last_error, PersistenceReadError)


def test_surrounding_whitespace_counts_as_a_different_input(memory_store):
    store = _store(memory_store)
    _record(store, income="4300")

    entries, recorded = _record(store, income=" 4300 ")

    assert recorded is True
    assert [entry.calculation.monthly_income for entry in entries] == [" 4300 ", "4300"]
