"""
Tests for daily reading upserts, edits and deletion.
"""
from datetime import date

import pytest

from src.models.cycle import HormoneReading, ReadingUpdate
from src.services.cycle import open_cycle
from src.services.exceptions import AuthorizationError, NotFoundError, StorageError, ValidationError
from src.services.readings import (
    delete_reading,
    log_reading,
    update_reading,
    upsert_range,
    upsert_reading,
)
from src.services.timeline import fill_cycle
from tests.conftest import OWNER_ID, PARTNER_ID, STRANGER_ID, d

@pytest.fixture
def cycle(store):
    """Open cycle starting 2025-01-01 for the owner."""
    return open_cycle(store, OWNER_ID, OWNER_ID, d("2025-01-01"))

def stored(store, cycle, day):
    reading = store.get_reading(cycle.id, d(day))
    return (reading.hormone_reading, reading.intercourse)

def test_intercourse_does_not_clobber_hormone_reading(store, cycle):
    """Logging intercourse on a Low day keeps the Low reading."""
    log_reading(store, OWNER_ID, OWNER_ID, d("2025-01-02"), ReadingUpdate(hormone_reading="Low"))
    log_reading(store, OWNER_ID, OWNER_ID, d("2025-01-02"), ReadingUpdate(intercourse=True))

    assert stored(store, cycle, "2025-01-02") == (HormoneReading.LOW, True)

def test_hormone_reading_does_not_clobber_intercourse(store, cycle):
    log_reading(store, OWNER_ID, OWNER_ID, d("2025-01-02"), ReadingUpdate(intercourse=True))
    log_reading(store, OWNER_ID, OWNER_ID, d("2025-01-02"), ReadingUpdate(hormone_reading="Peak"))

    assert stored(store, cycle, "2025-01-02") == (HormoneReading.PEAK, True)

def test_intercourse_on_day_one_keeps_placeholder_reading(store, cycle):
    """The auto-created day 1 reading is updated, not duplicated."""
    log_reading(store, OWNER_ID, OWNER_ID, d("2025-01-01"), ReadingUpdate(intercourse=True))

    readings = store.list_readings(cycle.id)
    assert len(readings) == 1
    assert (readings[0].hormone_reading, readings[0].intercourse) == (None, True)

def test_upsert_is_idempotent(store, cycle):
    update = ReadingUpdate(hormone_reading="High")
    first = upsert_reading(store, cycle.id, d("2025-01-05"), update)
    second = upsert_reading(store, cycle.id, d("2025-01-05"), update)

    assert first.id == second.id
    assert len([r for r in store.list_readings(cycle.id) if r.date == d("2025-01-05")]) == 1
    assert stored(store, cycle, "2025-01-05") == (HormoneReading.HIGH, False)

def test_new_reading_gets_defaults(store, cycle):
    reading = upsert_reading(store, cycle.id, d("2025-01-03"), ReadingUpdate(intercourse=True))
    assert reading.hormone_reading is None
    assert reading.intercourse is True

def test_empty_string_clears_hormone_reading(store, cycle):
    log_reading(store, OWNER_ID, OWNER_ID, d("2025-01-02"), ReadingUpdate(hormone_reading="Low", intercourse=True))
    log_reading(store, OWNER_ID, OWNER_ID, d("2025-01-02"), ReadingUpdate(hormone_reading=""))

    assert stored(store, cycle, "2025-01-02") == (None, True)

def test_reading_update_tracks_provided_fields():
    assert ReadingUpdate(intercourse=True).provided_fields() == {"intercourse": True}
    assert ReadingUpdate(hormone_reading="").provided_fields() == {"hormone_reading": None}
    assert ReadingUpdate(intercourse=None).provided_fields() == {"intercourse": False}
    assert ReadingUpdate().is_empty

def test_invalid_hormone_reading_rejected():
    with pytest.raises(ValueError):
        ReadingUpdate(hormone_reading="Medium")

def test_log_reading_requires_a_field(store, cycle):
    with pytest.raises(ValidationError):
        log_reading(store, OWNER_ID, OWNER_ID, d("2025-01-02"), ReadingUpdate())

def test_log_reading_requires_date(store, cycle):
    with pytest.raises(ValidationError):
        log_reading(store, OWNER_ID, OWNER_ID, None, ReadingUpdate(intercourse=True))

def test_log_reading_without_owning_cycle(store, cycle):
    with pytest.raises(NotFoundError):
        log_reading(store, OWNER_ID, OWNER_ID, d("2024-12-31"), ReadingUpdate(intercourse=True))

def test_log_reading_goes_to_owning_cycle(store, cycle):
    second = open_cycle(store, OWNER_ID, OWNER_ID, d("2025-01-29"))

    log_reading(store, OWNER_ID, OWNER_ID, d("2025-01-20"), ReadingUpdate(hormone_reading="Peak"))
    log_reading(store, OWNER_ID, OWNER_ID, d("2025-02-03"), ReadingUpdate(hormone_reading="Low"))

    assert store.get_reading(cycle.id, d("2025-01-20")) is not None
    assert store.get_reading(second.id, d("2025-02-03")) is not None
    assert store.get_reading(cycle.id, d("2025-02-03")) is None

def test_log_reading_by_grantee(shared_store):
    cycle = open_cycle(shared_store, OWNER_ID, OWNER_ID, d("2025-01-01"))
    log_reading(shared_store, PARTNER_ID, OWNER_ID, d("2025-01-04"), ReadingUpdate(hormone_reading="High"))
    assert shared_store.get_reading(cycle.id, d("2025-01-04")).hormone_reading == HormoneReading.HIGH

def test_log_reading_without_grant(store, cycle):
    """Forbidden is reported even when the date has no cycle."""
    with pytest.raises(AuthorizationError):
        log_reading(store, STRANGER_ID, OWNER_ID, d("2024-01-01"), ReadingUpdate(intercourse=True))

def test_upsert_range_applies_every_date(store, cycle):
    result = upsert_range(store, OWNER_ID, OWNER_ID, d("2025-01-03"), d("2025-01-06"),
                          ReadingUpdate(hormone_reading="High"))

    assert result.applied == 4
    assert result.skipped == 0
    filled = fill_cycle(store, cycle.id)
    assert [e.hormone_reading for e in filled.days] == [None, None] + [HormoneReading.HIGH] * 4

def test_upsert_range_keeps_other_fields(store, cycle):
    log_reading(store, OWNER_ID, OWNER_ID, d("2025-01-04"), ReadingUpdate(intercourse=True))
    upsert_range(store, OWNER_ID, OWNER_ID, d("2025-01-03"), d("2025-01-05"), ReadingUpdate(hormone_reading="Low"))

    assert stored(store, cycle, "2025-01-04") == (HormoneReading.LOW, True)

def test_upsert_range_silently_skips_uncovered_dates(store, cycle):
    """Dates before the first cycle are skipped, not reported as errors."""
    result = upsert_range(store, OWNER_ID, OWNER_ID, d("2024-12-30"), d("2025-01-02"),
                          ReadingUpdate(hormone_reading="Low"))

    assert result.applied == 2
    assert result.skipped == 2
    assert result.skipped_dates == [d("2024-12-30"), d("2024-12-31")]
    assert sorted(r.date for r in store.list_readings(cycle.id)) == [d("2025-01-01"), d("2025-01-02")]

def test_upsert_range_spans_cycle_boundary(store, cycle):
    second = open_cycle(store, OWNER_ID, OWNER_ID, d("2025-01-29"))
    upsert_range(store, OWNER_ID, OWNER_ID, d("2025-01-27"), d("2025-01-30"), ReadingUpdate(intercourse=True))

    assert {r.date for r in store.list_readings(cycle.id) if r.intercourse} == {d("2025-01-27"), d("2025-01-28")}
    assert {r.date for r in store.list_readings(second.id) if r.intercourse} == {d("2025-01-29"), d("2025-01-30")}

def test_upsert_range_single_day(store, cycle):
    result = upsert_range(store, OWNER_ID, OWNER_ID, d("2025-01-02"), d("2025-01-02"), ReadingUpdate(intercourse=True))
    assert result.applied == 1

@pytest.mark.parametrize("start,end", [(None, "2025-01-02"), ("2025-01-02", None), ("2025-01-05", "2025-01-02")])
def test_upsert_range_invalid_bounds(store, cycle, start, end):
    with pytest.raises(ValidationError):
        upsert_range(store, OWNER_ID, OWNER_ID,
                     d(start) if start else None, d(end) if end else None,
                     ReadingUpdate(intercourse=True))

def test_upsert_range_requires_a_field(store, cycle):
    with pytest.raises(ValidationError):
        upsert_range(store, OWNER_ID, OWNER_ID, d("2025-01-02"), d("2025-01-03"), ReadingUpdate())

def test_upsert_range_without_grant(store, cycle):
    with pytest.raises(AuthorizationError):
        upsert_range(store, STRANGER_ID, OWNER_ID, d("2025-01-02"), d("2025-01-03"), ReadingUpdate(intercourse=True))

def test_upsert_range_storage_error_keeps_earlier_dates(store, cycle, monkeypatch):
    original_insert = store.insert_reading

    def insert_until_third(reading):
        if reading.date == d("2025-01-04"):
            raise StorageError("write failed")
        return original_insert(reading)
    monkeypatch.setattr(store, "insert_reading", insert_until_third)

    with pytest.raises(StorageError):
        upsert_range(store, OWNER_ID, OWNER_ID, d("2025-01-02"), d("2025-01-06"), ReadingUpdate(hormone_reading="Low"))

    assert store.get_reading(cycle.id, d("2025-01-03")) is not None
    assert store.get_reading(cycle.id, d("2025-01-05")) is None

def test_update_reading_by_id(store, cycle):
    reading = log_reading(store, OWNER_ID, OWNER_ID, d("2025-01-02"), ReadingUpdate(hormone_reading="Low"))

    updated = update_reading(store, OWNER_ID, reading.id, ReadingUpdate(intercourse=True))

    assert updated.id == reading.id
    assert (updated.hormone_reading, updated.intercourse) == (HormoneReading.LOW, True)

def test_update_reading_moves_date(store, cycle):
    reading = log_reading(store, OWNER_ID, OWNER_ID, d("2025-01-02"), ReadingUpdate(hormone_reading="High"))

    update_reading(store, OWNER_ID, reading.id, ReadingUpdate(), new_date=d("2025-01-03"))

    assert store.get_reading(cycle.id, d("2025-01-02")) is None
    assert store.get_reading(cycle.id, d("2025-01-03")).hormone_reading == HormoneReading.HIGH

def test_update_reading_date_collision(store, cycle):
    reading = log_reading(store, OWNER_ID, OWNER_ID, d("2025-01-02"), ReadingUpdate(hormone_reading="High"))
    with pytest.raises(ValidationError):
        update_reading(store, OWNER_ID, reading.id, ReadingUpdate(), new_date=d("2025-01-01"))

def test_update_reading_before_cycle_start(store, cycle):
    reading = log_reading(store, OWNER_ID, OWNER_ID, d("2025-01-02"), ReadingUpdate(hormone_reading="High"))
    with pytest.raises(ValidationError):
        update_reading(store, OWNER_ID, reading.id, ReadingUpdate(), new_date=d("2024-12-31"))

def test_update_reading_requires_changes(store, cycle):
    reading = store.list_readings(cycle.id)[0]
    with pytest.raises(ValidationError):
        update_reading(store, OWNER_ID, reading.id, ReadingUpdate())

def test_update_unknown_reading(store, cycle):
    with pytest.raises(NotFoundError):
        update_reading(store, OWNER_ID, "missing", ReadingUpdate(intercourse=True))

def test_delete_reading(store, cycle):
    reading = log_reading(store, OWNER_ID, OWNER_ID, d("2025-01-02"), ReadingUpdate(hormone_reading="Low"))

    delete_reading(store, OWNER_ID, reading.id)

    assert store.get_reading_by_id(reading.id) is None
    assert fill_cycle(store, cycle.id).days[-1].date == d("2025-01-01")

def test_delete_reading_unknown(store, cycle):
    with pytest.raises(NotFoundError):
        delete_reading(store, OWNER_ID, "missing")

def test_delete_reading_without_grant(store, cycle):
    reading = store.list_readings(cycle.id)[0]
    with pytest.raises(AuthorizationError):
        delete_reading(store, STRANGER_ID, reading.id)

def test_update_reading_cannot_move_into_next_cycle(store, cycle):
    """A reading of a closed cycle stays within that cycle's dates."""
    open_cycle(store, OWNER_ID, OWNER_ID, d("2025-01-29"))
    reading = log_reading(store, OWNER_ID, OWNER_ID, d("2025-01-14"), ReadingUpdate(hormone_reading="Peak"))

    with pytest.raises(ValidationError):
        update_reading(store, OWNER_ID, reading.id, ReadingUpdate(), new_date=d("2025-02-10"))

    assert store.get_reading(cycle.id, d("2025-01-14")).hormone_reading == HormoneReading.PEAK
    assert fill_cycle(store, cycle.id).days[-1].date == d("2025-01-28")

def test_update_reading_moves_to_last_day_of_closed_cycle(store, cycle):
    open_cycle(store, OWNER_ID, OWNER_ID, d("2025-01-29"))
    reading = log_reading(store, OWNER_ID, OWNER_ID, d("2025-01-14"), ReadingUpdate(hormone_reading="Peak"))

    moved = update_reading(store, OWNER_ID, reading.id, ReadingUpdate(), new_date=d("2025-01-28"))

    assert moved.date == d("2025-01-28")

def test_upsert_range_loads_cycles_once(store, cycle, monkeypatch):
    calls = []
    original_list_cycles = store.list_cycles

    def counting_list_cycles(owner_id):
        calls.append(owner_id)
        return original_list_cycles(owner_id)
    monkeypatch.setattr(store, "list_cycles", counting_list_cycles)

    result = upsert_range(store, OWNER_ID, OWNER_ID, d("2025-01-01"), d("2025-01-31"), ReadingUpdate(intercourse=True))

    assert result.applied == 31
    assert calls == [OWNER_ID]

def test_upsert_range_ending_on_last_representable_date(store, cycle):
    result = upsert_range(store, OWNER_ID, OWNER_ID, date.max, date.max, ReadingUpdate(intercourse=True))

    assert result.applied == 1
    assert store.get_reading(cycle.id, date.max).intercourse is True
