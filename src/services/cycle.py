"""
Service module managing cycle transitions.

Starting a new cycle closes the owner's open cycle on the day before the new
start date, so cycles of one owner never overlap and at most one of them is
open at any time.

Typical usage:
    cycle = open_cycle(store, actor_id, target_id, date(2025, 1, 29))
    delete_cycle(store, actor_id, cycle.id)
"""
from datetime import date, timedelta
from typing import Optional

from aws_lambda_powertools import Logger
from src.models.cycle import Cycle, DayReading
from src.services.exceptions import NotFoundError, StorageError, ValidationError
from src.services.storage import CycleStore, new_id
from src.utils.auth import Authorization

logger = Logger()

def open_cycle(store: CycleStore, actor_id: str, target_id: str, start_date: Optional[date]) -> Cycle:
    """
    Start a new cycle for the target, closing the currently open one.

    The previous open cycle ends the day before start_date. No chronological
    check is made: a start_date earlier than the open cycle's own start yields
    a closed cycle ending before it starts, which is logged as a warning.

    Closing the previous cycle and inserting the new one is a single store
    operation. Creating the first day's reading is a separate write; if it
    fails the cycle still exists.

    Args:
        store: Storage backend
        actor_id: User performing the request
        target_id: Owner of the new cycle
        start_date: First day of the new cycle

    Returns:
        The created cycle

    Raises:
        ValidationError: If start_date is missing, or is the earliest
            representable date while another cycle is open
        AuthorizationError: If actor cannot act on target's data
        TransitionConflictError: If another transition for the owner won the race
    """
    if start_date is None:
        raise ValidationError("start_date is required")

    Authorization(store).require_access(actor_id, target_id)

    previous = store.find_open_cycle(target_id)
    closing = None
    if previous is not None:
        if start_date == date.min:
            raise ValidationError("start_date leaves no day to close the open cycle on")
        closing = previous.model_copy(update={"end_date": start_date - timedelta(days=1)})
        if closing.end_date < closing.start_date:
            logger.warning("Closed cycle ends before it starts", extra={
                "cycle_id": closing.id,
                "start_date": closing.start_date.isoformat(),
                "end_date": closing.end_date.isoformat()
            })
        logger.info("Ending previous cycle", extra={
            "cycle_id": closing.id,
            "end_date": closing.end_date.isoformat()
        })

    cycle = Cycle(id=new_id(), owner_id=target_id, start_date=start_date)
    store.begin_cycle(cycle, closing=closing)

    try:
        store.insert_reading(DayReading(id=new_id(), cycle_id=cycle.id, date=start_date))
    except StorageError:
        logger.exception("Error creating reading for day 1", extra={"cycle_id": cycle.id})

    logger.info("Cycle opened", extra={
        "cycle_id": cycle.id,
        "owner_id": target_id,
        "actor_id": actor_id,
        "start_date": start_date.isoformat()
    })
    return cycle

def delete_cycle(store: CycleStore, actor_id: str, cycle_id: str) -> None:
    """
    Delete a cycle and all of its readings.

    Readings are removed by the store as part of deleting the cycle.

    Raises:
        AuthorizationError: If actor is neither the owner nor the grantee
        NotFoundError: If the cycle does not exist
    """
    cycle = store.get_cycle(cycle_id)
    if cycle is None:
        raise NotFoundError(f"Cycle {cycle_id} not found")

    Authorization(store).require_access(actor_id, cycle.owner_id)

    if not store.delete_cycle(cycle_id):
        raise NotFoundError(f"Cycle {cycle_id} not found")
    logger.info("Cycle deleted", extra={"cycle_id": cycle_id, "actor_id": actor_id})

def clear_all_data(store: CycleStore, owner_id: str) -> int:
    """
    Delete every cycle and reading of a user.

    Only the owner can clear their own data, so no grant is consulted.

    Args:
        store: Storage backend
        owner_id: User whose data is removed

    Returns:
        Number of cycles deleted
    """
    deleted = store.delete_owner_data(owner_id)
    logger.info("All data cleared", extra={"owner_id": owner_id, "cycles_deleted": deleted})
    return deleted
