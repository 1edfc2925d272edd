"""
Service module building gap-free daily timelines for cycles.

Readings are stored sparsely: only days the user actually logged exist in
storage. The timeline filler turns a cycle and its readings into one entry
per calendar date, synthesizing placeholders for the missing days.

Typical usage:
    filled = fill_cycle(store, cycle_id)
    for day in filled.days:
        print(day.cycle_day, day.date, day.hormone_reading)
"""
from typing import Dict, List, Optional

from src.models.cycle import Cycle, DayEntry, DayReading, FilledCycle
from src.services.storage import CycleStore
from src.services.utils import iter_dates, to_calendar_date
from src.utils.auth import Authorization

def build_timeline(cycle: Cycle, readings: List[DayReading]) -> FilledCycle:
    """
    Build the filled projection of a cycle from its recorded readings.

    The timeline runs from the start date to the latest of the start date,
    the end date and the last recorded reading, both ends included.

    Args:
        cycle: Cycle to fill
        readings: Recorded readings of the cycle, in any order

    Returns:
        FilledCycle with one entry per calendar date
    """
    ordered = sorted(readings, key=lambda r: to_calendar_date(r.date))
    by_date: Dict = {to_calendar_date(r.date): r for r in ordered}

    upper_bound = cycle.start_date
    if cycle.end_date is not None:
        upper_bound = max(upper_bound, cycle.end_date)
    if ordered:
        upper_bound = max(upper_bound, to_calendar_date(ordered[-1].date))

    days = []
    for cycle_day, day in enumerate(iter_dates(cycle.start_date, upper_bound), start=1):
        reading = by_date.get(day)
        if reading is not None:
            days.append(DayEntry(
                id=reading.id,
                date=day,
                cycle_day=cycle_day,
                hormone_reading=reading.hormone_reading,
                intercourse=reading.intercourse
            ))
        else:
            days.append(DayEntry(date=day, cycle_day=cycle_day))

    if not days:
        days.append(DayEntry(date=cycle.start_date, cycle_day=1))

    return FilledCycle(
        id=cycle.id,
        owner_id=cycle.owner_id,
        start_date=cycle.start_date,
        end_date=cycle.end_date,
        days=days
    )

def fill_cycle(store: CycleStore, cycle_id: str) -> Optional[FilledCycle]:
    """
    Load a cycle and return its filled timeline.

    Args:
        store: Storage backend
        cycle_id: ID of the cycle

    Returns:
        FilledCycle, or None if the cycle does not exist
    """
    cycle = store.get_cycle(cycle_id)
    if cycle is None:
        return None
    return build_timeline(cycle, store.list_readings(cycle_id))

def list_filled_cycles(store: CycleStore, actor_id: str, target_id: Optional[str] = None) -> List[FilledCycle]:
    """
    Get every cycle of a user as filled timelines, most recent first.

    Args:
        store: Storage backend
        actor_id: User performing the request
        target_id: User whose cycles to fetch, defaults to the actor

    Returns:
        Filled cycles ordered by start date, newest first

    Raises:
        AuthorizationError: If actor cannot see target's data
    """
    target_id = target_id or actor_id
    Authorization(store).require_access(actor_id, target_id)

    cycles = sorted(store.list_cycles(target_id), key=lambda c: (c.start_date, c.id), reverse=True)
    return [build_timeline(cycle, store.list_readings(cycle.id)) for cycle in cycles]
