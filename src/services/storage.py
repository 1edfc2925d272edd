"""
Storage port for cycle tracking data, plus an in-memory backend.

Engine services never build queries themselves. They receive a CycleStore
instance and talk to it in terms of users, cycles and day readings. Each
persistence backend implements this port:

    store = MemoryCycleStore()          # local runs and tests
    store = DynamoCycleStore(client)    # production, see dynamo_store.py

Contracts every backend must honour:
    - delete_cycle removes the cycle's day readings as well (cascade).
    - begin_cycle closes the previous open cycle and inserts the new one as
      a single unit, failing with TransitionConflictError if the owner's open
      cycle changed in the meantime.
"""
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Optional
import uuid

from src.models.cycle import Cycle, DayReading
from src.models.user import User
from src.services.exceptions import TransitionConflictError

def new_id() -> str:
    """Generate an opaque identifier for cycles and readings."""
    return uuid.uuid4().hex

class CycleStore(ABC):
    """Port between the engine and a persistence backend."""

    # Users

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]:
        """Get a user by ID."""

    @abstractmethod
    def find_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by email address."""

    @abstractmethod
    def put_user(self, user: User) -> User:
        """Create or replace a user profile."""

    @abstractmethod
    def set_shares_with(self, owner_id: str, grantee_id: Optional[str]) -> None:
        """Overwrite the owner's single outgoing share edge."""

    @abstractmethod
    def list_sharing_with(self, grantee_id: str) -> List[str]:
        """IDs of the users whose share edge points at grantee_id."""

    # Cycles

    @abstractmethod
    def get_cycle(self, cycle_id: str) -> Optional[Cycle]:
        """Get a cycle by ID."""

    @abstractmethod
    def list_cycles(self, owner_id: str) -> List[Cycle]:
        """All cycles of an owner, in no particular order."""

    @abstractmethod
    def find_open_cycle(self, owner_id: str) -> Optional[Cycle]:
        """The owner's cycle without an end date, if any."""

    @abstractmethod
    def begin_cycle(self, new_cycle: Cycle, closing: Optional[Cycle] = None) -> Cycle:
        """
        Insert new_cycle and, in the same unit, persist closing's end date.

        Args:
            new_cycle: Open cycle to insert
            closing: Previously open cycle with its computed end_date set

        Returns:
            The inserted cycle

        Raises:
            TransitionConflictError: If the owner's open cycle is no longer
                the one being closed
        """

    @abstractmethod
    def delete_cycle(self, cycle_id: str) -> bool:
        """Delete a cycle and its readings. Returns False if it did not exist."""

    # Day readings

    @abstractmethod
    def list_readings(self, cycle_id: str) -> List[DayReading]:
        """All readings of a cycle, in no particular order."""

    @abstractmethod
    def get_reading(self, cycle_id: str, day: date) -> Optional[DayReading]:
        """The reading recorded for a cycle on a date."""

    @abstractmethod
    def get_reading_by_id(self, reading_id: str) -> Optional[DayReading]:
        """Get a reading by ID."""

    @abstractmethod
    def insert_reading(self, reading: DayReading) -> DayReading:
        """Insert a new reading."""

    @abstractmethod
    def update_reading(self, reading_id: str, fields: Dict[str, Any]) -> Optional[DayReading]:
        """Set only the given fields. Returns None if the reading is gone."""

    @abstractmethod
    def delete_reading(self, reading_id: str) -> bool:
        """Delete a reading. Returns False if it did not exist."""

    def delete_owner_data(self, owner_id: str) -> int:
        """
        Delete every cycle of an owner, with their readings.

        Returns:
            Number of cycles deleted
        """
        deleted = 0
        for cycle in self.list_cycles(owner_id):
            if self.delete_cycle(cycle.id):
                deleted += 1
        return deleted

class MemoryCycleStore(CycleStore):
    """
    Process-local backend keeping everything in dictionaries.

    Models are copied on the way in and out so callers never share state
    with the store.
    """

    def __init__(self):
        self._users: Dict[str, User] = {}
        self._cycles: Dict[str, Cycle] = {}
        self._readings: Dict[str, DayReading] = {}

    def get_user(self, user_id: str) -> Optional[User]:
        user = self._users.get(user_id)
        return user.model_copy() if user else None

    def find_user_by_email(self, email: str) -> Optional[User]:
        wanted = email.strip().lower()
        for user in self._users.values():
            if user.email and user.email.lower() == wanted:
                return user.model_copy()
        return None

    def put_user(self, user: User) -> User:
        self._users[user.user_id] = user.model_copy()
        return user

    def set_shares_with(self, owner_id: str, grantee_id: Optional[str]) -> None:
        owner = self._users.get(owner_id) or User(user_id=owner_id)
        self._users[owner_id] = owner.model_copy(update={"shares_with": grantee_id})

    def list_sharing_with(self, grantee_id: str) -> List[str]:
        return [u.user_id for u in self._users.values() if u.shares_with == grantee_id]

    def get_cycle(self, cycle_id: str) -> Optional[Cycle]:
        cycle = self._cycles.get(cycle_id)
        return cycle.model_copy() if cycle else None

    def list_cycles(self, owner_id: str) -> List[Cycle]:
        return [c.model_copy() for c in self._cycles.values() if c.owner_id == owner_id]

    def find_open_cycle(self, owner_id: str) -> Optional[Cycle]:
        open_cycles = [c for c in self.list_cycles(owner_id) if c.is_open]
        if not open_cycles:
            return None
        return max(open_cycles, key=lambda c: c.start_date)

    def begin_cycle(self, new_cycle: Cycle, closing: Optional[Cycle] = None) -> Cycle:
        current = self.find_open_cycle(new_cycle.owner_id)
        expected_id = closing.id if closing else None
        if (current.id if current else None) != expected_id:
            raise TransitionConflictError(
                f"Open cycle for owner {new_cycle.owner_id} changed during transition"
            )
        if closing is not None:
            self._cycles[closing.id] = self._cycles[closing.id].model_copy(
                update={"end_date": closing.end_date}
            )
        self._cycles[new_cycle.id] = new_cycle.model_copy()
        return new_cycle

    def delete_cycle(self, cycle_id: str) -> bool:
        if self._cycles.pop(cycle_id, None) is None:
            return False
        for reading_id in [r.id for r in self._readings.values() if r.cycle_id == cycle_id]:
            del self._readings[reading_id]
        return True

    def list_readings(self, cycle_id: str) -> List[DayReading]:
        return [r.model_copy() for r in self._readings.values() if r.cycle_id == cycle_id]

    def get_reading(self, cycle_id: str, day: date) -> Optional[DayReading]:
        for reading in self._readings.values():
            if reading.cycle_id == cycle_id and reading.date == day:
                return reading.model_copy()
        return None

    def get_reading_by_id(self, reading_id: str) -> Optional[DayReading]:
        reading = self._readings.get(reading_id)
        return reading.model_copy() if reading else None

    def insert_reading(self, reading: DayReading) -> DayReading:
        self._readings[reading.id] = reading.model_copy()
        return reading

    def update_reading(self, reading_id: str, fields: Dict[str, Any]) -> Optional[DayReading]:
        reading = self._readings.get(reading_id)
        if reading is None:
            return None
        updated = reading.model_copy(update=fields)
        self._readings[reading_id] = updated
        return updated.model_copy()

    def delete_reading(self, reading_id: str) -> bool:
        return self._readings.pop(reading_id, None) is not None
