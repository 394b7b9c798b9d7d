"""Utility functions for the weekly time lattice and period clock."""

import re
from typing import TYPE_CHECKING

from .models import TimeSlot, Weekday

if TYPE_CHECKING:
    from .config.settings import GenerationConfig

CLOCK_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::\d{2})?\s*$")


def parse_clock(value: str) -> int:
    """Parse an ``HH:MM`` (or ``HH:MM:SS``) string into minutes after midnight.

    Args:
        value: Clock string

    Returns:
        Minutes after midnight

    Raises:
        ValueError: If the string is not a valid clock time
    """
    match = CLOCK_PATTERN.match(str(value))
    if not match:
        raise ValueError(f"Invalid clock time: {value!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid clock time: {value!r}")
    return hours * 60 + minutes


def format_clock(minutes: int) -> str:
    """Format minutes after midnight as ``HH:MM``."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def build_time_slots(config: "GenerationConfig") -> list[TimeSlot]:
    """Build the day-major lattice of working days x periods."""
    return [
        TimeSlot(day_index, period)
        for day_index in range(len(config.working_days))
        for period in range(1, config.periods_per_day + 1)
    ]


def period_start_minutes(period: int, config: "GenerationConfig") -> int:
    """Minutes after midnight at which a period starts.

    Every break configured after an earlier period delays the start.
    """
    start = parse_clock(config.school_start_time)
    start += (period - 1) * config.period_duration_minutes
    for brk in config.break_periods:
        if brk.after_period < period:
            start += brk.duration_minutes
    return start


def period_start_time(period: int, config: "GenerationConfig") -> str:
    """Wall-clock start time of a period as ``HH:MM``."""
    return format_clock(period_start_minutes(period, config))


def period_end_time(period: int, config: "GenerationConfig") -> str:
    """Wall-clock end time of a period as ``HH:MM``."""
    return format_clock(
        period_start_minutes(period, config) + config.period_duration_minutes
    )


def periods_overlapping(
    start: str | None, end: str | None, config: "GenerationConfig"
) -> frozenset[int]:
    """Periods whose ``[start, end)`` interval intersects a time range.

    A missing bound is open, so ``(None, None)`` covers the whole day.
    """
    range_start = parse_clock(start) if start else 0
    range_end = parse_clock(end) if end else 24 * 60
    periods = set()
    for period in range(1, config.periods_per_day + 1):
        p_start = period_start_minutes(period, config)
        p_end = p_start + config.period_duration_minutes
        if p_start < range_end and range_start < p_end:
            periods.add(period)
    return frozenset(periods)


def resolve_day(value: int | str | None, working_days: list[str]) -> int | None:
    """Resolve a day given as an index or a weekday name to a working-day index.

    Returns:
        Index into ``working_days``, or None when the day is not a working day
    """
    if value is None or value == "":
        return None
    if isinstance(value, int) or str(value).strip().isdigit():
        index = int(value)
        return index if 0 <= index < len(working_days) else None
    name = str(value).strip().lower()
    try:
        name = Weekday(name).value
    except ValueError:
        return None
    return working_days.index(name) if name in working_days else None


def day_name(day_index: int, config: "GenerationConfig") -> str:
    """Weekday name for a working-day index."""
    return config.working_days[day_index]


def format_slot(slot: TimeSlot, config: "GenerationConfig") -> str:
    """Human readable slot label, e.g. ``monday P3 (09:40-10:20)``."""
    return (
        f"{day_name(slot.day_index, config)} P{slot.period} "
        f"({period_start_time(slot.period, config)}-{period_end_time(slot.period, config)})"
    )


def parse_bool(value: object) -> bool:
    """Parse a boolean from CSV/JSON input."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("true", "1", "yes", "y", "t")


def parse_optional_int(value: object) -> int | None:
    """Parse an integer that may be blank."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return int(value)
