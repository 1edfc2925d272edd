"""
Statistics calculation service for cycle tracking data.

This module computes cross-cycle averages (cycle length, days to the first
Peak reading, fertile window length) and the predictions derived from them.
Everything is recomputed from stored cycles and readings on each call.
"""
from typing import Dict, List, Optional, Tuple
from datetime import date, timedelta
from statistics import mean
from aws_lambda_powertools import Logger
from src.models.cycle import Cycle, CycleAnalytics, DayReading, HormoneReading
from src.services.storage import CycleStore
from src.services.utils import days_between, round_half_up
from src.utils.auth import Authorization

logger = Logger()

# Fertile window bounds around LH surge readings, in days
FERTILE_DAYS_BEFORE_SURGE = 6
FERTILE_DAYS_AFTER_PEAK = 3
PREDICTED_WINDOW_BEFORE_PEAK = 7

def calculate_average_cycle_length(cycles: List[Cycle]) -> int:
    """
    Average length of the closed cycles, rounded to the nearest day.

    Args:
        cycles: Cycles to analyze; open cycles are ignored

    Returns:
        Average length in days, or 0 if no cycle is closed
    """
    lengths = [c.length for c in cycles if not c.is_open]
    if not lengths:
        return 0
    return round_half_up(mean(lengths))

def calculate_days_to_peak(cycle: Cycle, readings: List[DayReading]) -> Optional[int]:
    """
    Day number of the first Peak reading of a cycle.

    Returns:
        Days from the cycle start to the earliest Peak, both included, or
        None if the cycle has no Peak reading
    """
    peak_dates = [r.date for r in readings if r.hormone_reading == HormoneReading.PEAK]
    if not peak_dates:
        return None
    return days_between(cycle.start_date, min(peak_dates))

def calculate_average_days_to_peak(readings_by_cycle: Dict[str, Tuple[Cycle, List[DayReading]]]) -> int:
    """
    Average day number of the first Peak reading, over cycles having one.

    Returns:
        Rounded average, or 0 if no cycle has a Peak reading
    """
    values = []
    for cycle, readings in readings_by_cycle.values():
        days_to_peak = calculate_days_to_peak(cycle, readings)
        if days_to_peak is not None:
            values.append(days_to_peak)
    if not values:
        return 0
    return round_half_up(mean(values))

def find_fertile_window(cycle: Cycle, readings: List[DayReading]) -> Optional[Tuple[date, date]]:
    """
    Estimate the fertile window of a cycle from its High and Peak readings.

    The window opens six days before the first High or Peak reading, never
    before the cycle start, and closes three days after the last Peak. With
    no Peak it closes on the last High reading.

    Args:
        cycle: Cycle the readings belong to
        readings: Recorded readings of the cycle

    Returns:
        Tuple of (window_start, window_end), or None without High/Peak readings
    """
    surge_dates = sorted(
        r.date for r in readings
        if r.hormone_reading in (HormoneReading.HIGH, HormoneReading.PEAK)
    )
    if not surge_dates:
        return None
    peak_dates = sorted(r.date for r in readings if r.hormone_reading == HormoneReading.PEAK)

    window_start = max(surge_dates[0] - timedelta(days=FERTILE_DAYS_BEFORE_SURGE), cycle.start_date)
    if peak_dates:
        window_end = peak_dates[-1] + timedelta(days=FERTILE_DAYS_AFTER_PEAK)
    else:
        window_end = surge_dates[-1]
    return window_start, window_end

def calculate_average_fertile_window(readings_by_cycle: Dict[str, Tuple[Cycle, List[DayReading]]]) -> int:
    """Average fertile window length in days, or 0 if none can be estimated."""
    lengths = []
    for cycle, readings in readings_by_cycle.values():
        window = find_fertile_window(cycle, readings)
        if window is None:
            continue
        length = days_between(*window)
        if length > 0:
            lengths.append(length)
    if not lengths:
        return 0
    return round_half_up(mean(lengths))

def compute_analytics(store: CycleStore, actor_id: str, target_id: Optional[str] = None) -> CycleAnalytics:
    """
    Compute cycle analytics for a user.

    Args:
        store: Storage backend
        actor_id: User performing the request
        target_id: User whose cycles to analyze, defaults to the actor

    Returns:
        CycleAnalytics with averages and predictions

    Raises:
        AuthorizationError: If actor cannot see target's data

    Example:
        >>> analytics = compute_analytics(store, user_id)
        >>> print(f"Average cycle: {analytics.average_cycle_length} days")
        >>> print(f"Next period: {analytics.estimated_next_period}")
    """
    target_id = target_id or actor_id
    Authorization(store).require_access(actor_id, target_id)

    cycles = store.list_cycles(target_id)
    readings_by_cycle = {c.id: (c, store.list_readings(c.id)) for c in cycles}

    analytics = CycleAnalytics(
        average_cycle_length=calculate_average_cycle_length(cycles),
        average_days_to_peak=calculate_average_days_to_peak(readings_by_cycle),
        average_fertile_window=calculate_average_fertile_window(readings_by_cycle)
    )

    if analytics.average_cycle_length > 0 and cycles:
        latest_start = max(c.start_date for c in cycles)
        next_period = latest_start + timedelta(days=analytics.average_cycle_length)
        analytics.estimated_next_period = next_period
        if analytics.average_days_to_peak > 0:
            analytics.estimated_fertile_window_start = next_period + timedelta(
                days=analytics.average_days_to_peak - PREDICTED_WINDOW_BEFORE_PEAK
            )
            analytics.estimated_fertile_window_end = next_period + timedelta(
                days=analytics.average_days_to_peak + FERTILE_DAYS_AFTER_PEAK
            )

    logger.debug("Analytics computed", extra={
        "target_id": target_id,
        "cycles": len(cycles),
        "average_cycle_length": analytics.average_cycle_length,
        "average_days_to_peak": analytics.average_days_to_peak
    })
    return analytics
