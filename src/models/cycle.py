"""
Cycle model definitions: cycles, daily readings and derived timelines.
"""
from enum import Enum
from datetime import date
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator

class HormoneReading(str, Enum):
    """
    Fertility monitor readings.
    """
    LOW = "Low"
    HIGH = "High"
    PEAK = "Peak"

class Cycle(BaseModel):
    """
    A contiguous date span belonging to one owner.

    The cycle is open while end_date is None. The end date is computed when
    the owner's next cycle starts and is never supplied by the user.
    """
    id: str
    owner_id: str
    start_date: date
    end_date: Optional[date] = None

    @property
    def is_open(self) -> bool:
        """Check whether the cycle has not been closed yet."""
        return self.end_date is None

    @property
    def length(self) -> Optional[int]:
        """Length in days of a closed cycle, both ends included."""
        if self.end_date is None:
            return None
        return (self.end_date - self.start_date).days + 1

    def covers(self, day: date) -> bool:
        """Check whether the given date falls inside this cycle."""
        return day >= self.start_date and (self.end_date is None or day <= self.end_date)

class DayReading(BaseModel):
    """
    Recorded hormone reading and intercourse flag for one date of a cycle.
    """
    id: str
    cycle_id: str
    date: date
    hormone_reading: Optional[HormoneReading] = None
    intercourse: bool = False

class ReadingUpdate(BaseModel):
    """
    Partial update for a daily reading.

    Only the fields present in model_fields_set were provided by the caller;
    the others must be left untouched on an existing reading.
    """
    hormone_reading: Optional[HormoneReading] = None
    intercourse: Optional[bool] = None

    @field_validator("hormone_reading", mode="before")
    @classmethod
    def blank_reading_is_cleared(cls, value: Any) -> Any:
        """An empty string explicitly clears the hormone reading."""
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator("intercourse", mode="before")
    @classmethod
    def null_intercourse_is_false(cls, value: Any) -> Any:
        return False if value is None else value

    @property
    def is_empty(self) -> bool:
        """True when the caller provided no field at all."""
        return not self.model_fields_set

    def provided_fields(self) -> Dict[str, Any]:
        """Return only the fields the caller explicitly provided."""
        return {name: getattr(self, name) for name in sorted(self.model_fields_set)}

class DayEntry(BaseModel):
    """
    One day of a filled cycle: either a recorded reading or a placeholder.
    """
    id: Optional[str] = None
    date: date
    cycle_day: int = Field(..., ge=1)
    hormone_reading: Optional[HormoneReading] = None
    intercourse: bool = False

    @property
    def is_placeholder(self) -> bool:
        """Placeholders are synthesized for dates with no recorded reading."""
        return self.id is None

class FilledCycle(BaseModel):
    """
    A cycle together with a gap-free, date-ordered list of its days.

    This is a read-time projection; it is rebuilt on every fetch.
    """
    id: str
    owner_id: str
    start_date: date
    end_date: Optional[date] = None
    days: List[DayEntry]

class RangeResult(BaseModel):
    """
    Outcome of a date range upsert.
    """
    applied: int = 0
    skipped: int = 0
    skipped_dates: List[date] = Field(default_factory=list)

class CycleAnalytics(BaseModel):
    """
    Cross-cycle averages and the predictions derived from them.
    """
    average_cycle_length: int = 0
    average_days_to_peak: int = 0
    average_fertile_window: int = 0
    estimated_next_period: Optional[date] = None
    estimated_fertile_window_start: Optional[date] = None
    estimated_fertile_window_end: Optional[date] = None
