"""Wait-curve helpers - interpolation, extremes and category medians."""

from collections.abc import Sequence
from statistics import median

from backend.parkplan.models.ride import WaitPoint
from backend.parkplan.utils.timeutils import from_minutes, to_minutes


def wait_at(curve: Sequence[WaitPoint], minute: int) -> int:
    """Predicted wait at a minute of the day.

    Linear interpolation between points; flat beyond the first/last point.
    """
    if not curve:
        raise ValueError("wait curve is empty")

    first, last = curve[0], curve[-1]
    if minute <= to_minutes(first.time_slot):
        return first.wait_minutes
    if minute >= to_minutes(last.time_slot):
        return last.wait_minutes

    for left, right in zip(curve, curve[1:]):
        left_min = to_minutes(left.time_slot)
        right_min = to_minutes(right.time_slot)
        if left_min <= minute <= right_min:
            span = right_min - left_min
            frac = (minute - left_min) / span
            return int(round(left.wait_minutes + frac * (right.wait_minutes - left.wait_minutes)))

    return last.wait_minutes


def points_in_window(curve: Sequence[WaitPoint], start: int, end: int) -> list[WaitPoint]:
    """Points inside [start, end]; the whole curve if none fall inside."""
    inside = [p for p in curve if start <= to_minutes(p.time_slot) <= end]
    return inside or list(curve)


def min_wait(curve: Sequence[WaitPoint], start: int, end: int) -> int:
    return min(p.wait_minutes for p in points_in_window(curve, start, end))


def max_wait(curve: Sequence[WaitPoint], start: int, end: int) -> int:
    return max(p.wait_minutes for p in points_in_window(curve, start, end))


def curve_spread(curve: Sequence[WaitPoint], start: int, end: int) -> int:
    """max(wait) - min(wait) over the operating window."""
    return max_wait(curve, start, end) - min_wait(curve, start, end)


def mean_wait(curve: Sequence[WaitPoint], start: int, end: int) -> float:
    points = points_in_window(curve, start, end)
    return sum(p.wait_minutes for p in points) / len(points)


def best_minute(curve: Sequence[WaitPoint], start: int, end: int) -> int:
    """Earliest minute of the lowest predicted wait within the window."""
    points = points_in_window(curve, start, end)
    best = min(points, key=lambda p: (p.wait_minutes, p.time_slot))
    return min(max(to_minutes(best.time_slot), start), end)


def flat_curve(wait_minutes: int, start: int, end: int, step: int = 60) -> list[WaitPoint]:
    """A constant curve covering [start, end] at the given step."""
    points: list[WaitPoint] = []
    minute = start
    while minute < end:
        points.append(WaitPoint(time_slot=from_minutes(minute), wait_minutes=wait_minutes))
        minute += step
    points.append(WaitPoint(time_slot=from_minutes(end), wait_minutes=wait_minutes))
    return points


def median_of_means(curves: Sequence[Sequence[WaitPoint]], start: int, end: int) -> int | None:
    """Median of per-curve mean waits, or None if no curves."""
    if not curves:
        return None
    return int(round(median(mean_wait(c, start, end) for c in curves)))
