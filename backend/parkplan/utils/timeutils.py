"""Clock helpers - the engine works in minutes since midnight."""

from datetime import time

MINUTES_PER_DAY = 24 * 60


def to_minutes(t: time) -> int:
    """Convert a clock time to minutes since midnight."""
    return t.hour * 60 + t.minute


def from_minutes(minutes: int) -> time:
    """Convert minutes since midnight back to a clock time."""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"minutes out of range for a single day: {minutes}")
    return time(minutes // 60, minutes % 60)


def format_clock(minutes: int) -> str:
    """Format minutes since midnight as e.g. '9:30 AM'."""
    hour, minute = divmod(minutes, 60)
    suffix = "AM" if hour < 12 else "PM"
    display = hour % 12 or 12
    return f"{display}:{minute:02d} {suffix}"
