"""Roster calculator: converts a leave span into working minutes.

Leave only ever counts scheduled working time. Nights, weekends, days off
and breaks never count, so a span's value is the sum of the roster's working
minutes that fall inside it, not the clock time between start and end.
"""

from __future__ import annotations

from datetime import date, time, timedelta
from typing import TYPE_CHECKING

from leave_ledger.exceptions import InvalidRangeError
from leave_ledger.models.enums import Weekday

if TYPE_CHECKING:
    from leave_ledger.schemas.roster import Roster

_ONE_DAY = timedelta(days=1)


def _clock_minutes(value: time) -> int:
    """Minutes since midnight."""
    return value.hour * 60 + value.minute


def _break_minutes(start: int, end: int, roster: Roster) -> int:
    """Minutes of [start, end) covered by the union of the roster's breaks."""
    clipped = sorted(
        (max(start, _clock_minutes(interval.start)), min(end, _clock_minutes(interval.end)))
        for interval in roster.breaks
    )

    covered = 0
    reached = start
    for break_start, break_end in clipped:
        # Overlapping breaks only count the part not already covered.
        uncovered_start = max(break_start, reached)
        if break_end > uncovered_start:
            covered += break_end - uncovered_start
            reached = break_end
    return covered


def _compute_day_minutes(window_start: int, window_end: int, roster: Roster) -> int:
    """Working minutes of one day inside [window_start, window_end), breaks excluded."""
    start = max(window_start, _clock_minutes(roster.day_start))
    end = min(window_end, _clock_minutes(roster.day_end))
    if start >= end:
        return 0

    return max(0, end - start - _break_minutes(start, end, roster))


def net_minutes_per_day(roster: Roster) -> int:
    """Working minutes of a full roster day after breaks."""
    return _compute_day_minutes(0, 24 * 60, roster)


def compute_minutes(
    start_date: date,
    end_date: date,
    start_time: time | None = None,
    end_time: time | None = None,
    *,
    roster: Roster,
) -> int:
    """Calculate the working minutes requested between two dates.

    The first day starts at ``start_time`` and the last day ends at
    ``end_time``; both default to the roster's day boundaries, and days in
    between are requested in full. Clock times outside the roster window are
    clipped rather than rejected.

    Raises InvalidRangeError when the span is inverted or only one of the two
    clock times is given.
    """
    if start_date > end_date:
        raise InvalidRangeError(f"Start date {start_date} is after end date {end_date}")
    if (start_time is None) != (end_time is None):
        raise InvalidRangeError("Start time and end time must be given together")
    if start_date == end_date and start_time is not None and end_time is not None and end_time <= start_time:
        raise InvalidRangeError(f"End time {end_time} must be after start time {start_time}")

    working_days = set(roster.working_days)
    first_start = _clock_minutes(start_time) if start_time is not None else 0
    last_end = _clock_minutes(end_time) if end_time is not None else 24 * 60

    total_minutes = 0
    current_date = start_date
    while current_date <= end_date:
        if Weekday.from_index(current_date.weekday()) in working_days:
            window_start = first_start if current_date == start_date else 0
            window_end = last_end if current_date == end_date else 24 * 60
            total_minutes += _compute_day_minutes(window_start, window_end, roster)
        current_date += _ONE_DAY

    return total_minutes


def round_minutes(minutes: int, increment: int) -> int:
    """Round to the nearest multiple of ``increment``, halves rounding up."""
    if increment <= 1:
        return minutes
    return (2 * minutes + increment) // (2 * increment) * increment
