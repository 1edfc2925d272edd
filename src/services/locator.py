"""
Service module resolving a calendar date to the cycle that owns it.
"""
from datetime import date
from typing import List, Optional

from aws_lambda_powertools import Logger
from src.models.cycle import Cycle
from src.services.storage import CycleStore

logger = Logger()

def select_owning_cycle(cycles: List[Cycle], day: date) -> Optional[Cycle]:
    """
    Pick the cycle covering a date from an already loaded list of cycles.

    If overlapping cycles exist because of corrupted data, the one with the
    latest start date wins.

    Args:
        cycles: Cycles of a single owner
        day: Calendar date to resolve

    Returns:
        The covering cycle, or None if no cycle covers the date
    """
    candidates = [c for c in cycles if c.covers(day)]
    if not candidates:
        return None
    if len(candidates) > 1:
        logger.warning("Overlapping cycles cover the same date", extra={
            "owner_id": candidates[0].owner_id,
            "date": day.isoformat(),
            "cycle_ids": [c.id for c in candidates]
        })
    return max(candidates, key=lambda c: (c.start_date, c.id))

def find_owning_cycle(store: CycleStore, owner_id: str, day: date) -> Optional[Cycle]:
    """
    Find the owner's cycle covering the given date.

    Args:
        store: Storage backend
        owner_id: Owner of the cycles
        day: Calendar date to resolve

    Returns:
        The covering cycle, or None if no cycle covers the date
    """
    return select_owning_cycle(store.list_cycles(owner_id), day)
