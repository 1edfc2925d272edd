"""
Service module for recording daily hormone readings.

Readings are upserted field by field: a request only touches the fields it
provides. Logging intercourse on a day never erases the hormone reading
recorded for that day, and vice versa.

Typical usage:
    update = ReadingUpdate(intercourse=True)
    log_reading(store, actor_id, target_id, date(2025, 1, 2), update)
    result = upsert_range(store, actor_id, target_id, start, end, ReadingUpdate(hormone_reading="High"))
"""
from datetime import date
from typing import Optional, Tuple

from aws_lambda_powertools import Logger
from src.models.cycle import Cycle, DayReading, RangeResult, ReadingUpdate
from src.services.exceptions import NotFoundError, ValidationError
from src.services.locator import find_owning_cycle, select_owning_cycle
from src.services.storage import CycleStore, new_id
from src.services.utils import iter_dates
from src.utils.auth import Authorization

logger = Logger()

def upsert_reading(store: CycleStore, cycle_id: str, day: date, update: ReadingUpdate) -> DayReading:
    """
    Merge a partial update into the reading of a cycle for a date.

    Existing readings only get the provided fields changed. New readings get
    defaults for omitted fields (no hormone reading, no intercourse).
    Applying the same update twice leaves the same stored state.

    Args:
        store: Storage backend
        cycle_id: Cycle owning the date
        day: Date of the reading
        update: Fields to set

    Returns:
        The stored reading

    Raises:
        NotFoundError: If the reading disappeared while being updated
    """
    fields = update.provided_fields()
    existing = store.get_reading(cycle_id, day)

    if existing is not None:
        if not fields:
            return existing
        updated = store.update_reading(existing.id, fields)
        if updated is None:
            raise NotFoundError(f"Reading {existing.id} no longer exists")
        logger.debug("Reading updated", extra={
            "reading_id": existing.id,
            "cycle_id": cycle_id,
            "date": day.isoformat(),
            "fields": sorted(fields)
        })
        return updated

    reading = DayReading(
        id=new_id(),
        cycle_id=cycle_id,
        date=day,
        hormone_reading=fields.get("hormone_reading"),
        intercourse=bool(fields.get("intercourse", False))
    )
    store.insert_reading(reading)
    logger.debug("Reading created", extra={
        "reading_id": reading.id,
        "cycle_id": cycle_id,
        "date": day.isoformat()
    })
    return reading

def log_reading(
    store: CycleStore,
    actor_id: str,
    target_id: str,
    day: Optional[date],
    update: ReadingUpdate
) -> DayReading:
    """
    Record a reading for a single date of the target's cycles.

    Args:
        store: Storage backend
        actor_id: User performing the request
        target_id: Owner of the cycles
        day: Date of the reading
        update: Fields to set

    Returns:
        The stored reading

    Raises:
        ValidationError: If the date is missing or no field is provided
        AuthorizationError: If actor cannot act on target's data
        NotFoundError: If no cycle covers the date
    """
    if day is None or update.is_empty:
        raise ValidationError("date and either hormone_reading or intercourse are required")

    Authorization(store).require_access(actor_id, target_id)

    cycle = find_owning_cycle(store, target_id, day)
    if cycle is None:
        raise NotFoundError(f"No cycle found for {day.isoformat()}")
    return upsert_reading(store, cycle.id, day, update)

def upsert_range(
    store: CycleStore,
    actor_id: str,
    target_id: str,
    start_date: Optional[date],
    end_date: Optional[date],
    update: ReadingUpdate
) -> RangeResult:
    """
    Apply the same partial update to every date of a range.

    Dates are processed one at a time in calendar order. Dates not covered by
    any cycle are skipped without error and reported in the result. A storage
    failure stops the loop; dates already processed stay committed.

    Args:
        store: Storage backend
        actor_id: User performing the request
        target_id: Owner of the cycles
        start_date: First date of the range
        end_date: Last date of the range, included
        update: Fields to set

    Returns:
        RangeResult counting applied and skipped dates

    Raises:
        ValidationError: If a bound is missing, the range is reversed or no
            field is provided
        AuthorizationError: If actor cannot act on target's data
    """
    if start_date is None or end_date is None:
        raise ValidationError("start_date and end_date are required")
    if start_date > end_date:
        raise ValidationError("start_date must not be after end_date")
    if update.is_empty:
        raise ValidationError("Either hormone_reading or intercourse is required")

    Authorization(store).require_access(actor_id, target_id)

    cycles = store.list_cycles(target_id)
    result = RangeResult()
    for day in iter_dates(start_date, end_date):
        cycle = select_owning_cycle(cycles, day)
        if cycle is None:
            result.skipped += 1
            result.skipped_dates.append(day)
            continue
        upsert_reading(store, cycle.id, day, update)
        result.applied += 1

    logger.info("Range upsert completed", extra={
        "target_id": target_id,
        "start_date": start_date.isoformat(),
        "end_date": end_date.isoformat(),
        "applied": result.applied,
        "skipped": result.skipped
    })
    return result

def _load_reading(store: CycleStore, actor_id: str, reading_id: str) -> Tuple[DayReading, Cycle]:
    reading = store.get_reading_by_id(reading_id)
    if reading is None:
        raise NotFoundError(f"Daily reading {reading_id} not found")
    cycle = store.get_cycle(reading.cycle_id)
    if cycle is None:
        raise NotFoundError(f"Cycle {reading.cycle_id} not found")
    Authorization(store).require_access(actor_id, cycle.owner_id)
    return reading, cycle

def update_reading(
    store: CycleStore,
    actor_id: str,
    reading_id: str,
    update: ReadingUpdate,
    new_date: Optional[date] = None
) -> DayReading:
    """
    Edit an existing reading by ID, optionally moving it to another date.

    Args:
        store: Storage backend
        actor_id: User performing the request
        reading_id: Reading to edit
        update: Fields to set
        new_date: Optional new date within the same cycle

    Returns:
        The updated reading

    Raises:
        ValidationError: If nothing is provided, or the new date is outside the
            cycle or already has a reading
        AuthorizationError: If actor cannot act on the cycle owner's data
        NotFoundError: If the reading does not exist
    """
    if new_date is None and update.is_empty:
        raise ValidationError("At least one field to update is required")

    reading, cycle = _load_reading(store, actor_id, reading_id)

    fields = update.provided_fields()
    if new_date is not None and new_date != reading.date:
        if not cycle.covers(new_date):
            raise ValidationError(f"Date {new_date.isoformat()} is outside cycle {cycle.id}")
        if store.get_reading(cycle.id, new_date) is not None:
            raise ValidationError(f"A reading already exists for {new_date.isoformat()}")
        fields["date"] = new_date

    if not fields:
        return reading

    updated = store.update_reading(reading_id, fields)
    if updated is None:
        raise NotFoundError(f"Daily reading {reading_id} not found")
    return updated

def delete_reading(store: CycleStore, actor_id: str, reading_id: str) -> None:
    """
    Delete a single daily reading.

    Raises:
        AuthorizationError: If actor cannot act on the cycle owner's data
        NotFoundError: If the reading does not exist
    """
    _load_reading(store, actor_id, reading_id)
    if not store.delete_reading(reading_id):
        raise NotFoundError(f"Daily reading {reading_id} not found")
    logger.info("Reading deleted", extra={"reading_id": reading_id, "actor_id": actor_id})
