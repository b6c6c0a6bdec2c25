"""
Time Window Model - recurring weekly availability lookups.

Answers "which window is valid at this instant, and until when" for the
Availability Finder. Weekdays follow date.weekday(): 0 = Monday ... 6 = Sunday.

Invariants:
- The search for the next valid window never looks further than
  WINDOW_LOOKAHEAD_DAYS ahead; a week with no ranges fails closed (None).
- Zero-length ranges are ignored.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from .models import TimeRange, TimeWindow

logger = logging.getLogger(__name__)

WINDOW_LOOKAHEAD_DAYS = 7

WORK_WINDOW_ID = "work"
PERSONAL_WINDOW_ID = "personal"

WEEKDAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


@dataclass(frozen=True)
class WindowOccurrence:
    """One dated stretch of a window, e.g. Work Hours on 2026-10-12 09:00-17:00."""

    window: TimeWindow
    start: datetime
    end: datetime


def default_time_windows() -> list[TimeWindow]:
    """Work Hours (Mon-Fri 09-17) and Personal Time (mornings, evenings, weekends)."""
    work = TimeWindow(
        id=WORK_WINDOW_ID,
        name="Work Hours",
        color="#3498db",
        schedule={day: (TimeRange("09:00", "17:00"),) for day in range(0, 5)},
        priority=10,
    )

    personal_schedule = {
        day: (TimeRange("05:00", "09:00"), TimeRange("17:00", "23:00")) for day in range(0, 5)
    }
    personal_schedule[5] = (TimeRange("05:00", "23:00"),)
    personal_schedule[6] = (TimeRange("05:00", "23:00"),)
    personal = TimeWindow(
        id=PERSONAL_WINDOW_ID,
        name="Personal Time",
        color="#2ecc71",
        schedule=personal_schedule,
        priority=5,
    )

    return [work, personal]


def sort_by_priority(windows: list[TimeWindow]) -> list[TimeWindow]:
    """Highest priority first; equal priorities keep their configured order."""
    return sorted(windows, key=lambda w: w.priority, reverse=True)


def filter_windows(windows: list[TimeWindow], window_ids: list[str]) -> list[TimeWindow]:
    """Windows named in window_ids, or all windows when window_ids is empty."""
    if not window_ids:
        return list(windows)
    wanted = set(window_ids)
    return [w for w in windows if w.id in wanted]


def minute_of_day(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def _at(day_start: datetime, minute: int) -> datetime:
    return day_start + timedelta(minutes=minute)


def _containing_range(window: TimeWindow, moment: datetime) -> TimeRange | None:
    minute = minute_of_day(moment)
    for time_range in window.ranges_for(moment.weekday()):
        if time_range.contains(minute):
            return time_range
    return None


def get_window_end_time(moment: datetime, window: TimeWindow) -> datetime:
    """
    End of the window range that contains moment.

    Falls back to the end of the day when no range contains it.
    """
    day = start_of_day(moment)
    time_range = _containing_range(window, moment)
    if time_range is None:
        return day + timedelta(days=1)
    return _at(day, time_range.end_minute)


def _occurrence(window: TimeWindow, start: datetime) -> WindowOccurrence:
    return WindowOccurrence(window=window, start=start, end=get_window_end_time(start, window))


def _earliest_on_day(
    windows: list[TimeWindow], day: datetime, after_minute: int = -1
) -> WindowOccurrence | None:
    """Earliest range starting after after_minute on the given day, across windows."""
    best: WindowOccurrence | None = None
    for window in windows:
        for time_range in window.ranges_for(day.weekday()):
            if time_range.start_minute <= after_minute:
                continue
            start = _at(day, time_range.start_minute)
            # Strict comparison keeps the higher-priority window on ties
            if best is None or start < best.start:
                best = _occurrence(window, start)
            break
    return best


def find_next_valid_window(
    moment: datetime,
    windows: list[TimeWindow],
    lookahead_days: int = WINDOW_LOOKAHEAD_DAYS,
) -> WindowOccurrence | None:
    """
    Locate the window occurrence covering moment, or the next one after it.

    Order of preference:
    1. A window whose range contains moment (windows are checked in the order
       given, so pass them sorted by priority).
    2. The earliest range starting later the same day.
    3. The earliest range on each following day, up to lookahead_days.

    Returns None when nothing is found within the look-ahead.
    """
    for window in windows:
        if _containing_range(window, moment) is not None:
            return _occurrence(window, moment)

    day = start_of_day(moment)
    later_today = _earliest_on_day(windows, day, after_minute=minute_of_day(moment))
    if later_today is not None:
        return later_today

    for offset in range(1, lookahead_days + 1):
        upcoming = _earliest_on_day(windows, day + timedelta(days=offset))
        if upcoming is not None:
            return upcoming

    logger.warning(
        f"No time window found in the {lookahead_days} days after {moment.isoformat()} "
        f"({len(windows)} windows checked)"
    )
    return None


def extend_contiguous(occurrence: WindowOccurrence, limit: datetime) -> WindowOccurrence:
    """
    Merge ranges of the same window that continue where this occurrence ends.

    09:00-12:00 followed by 12:00-17:00 becomes 09:00-17:00, and a range ending
    at 24:00 joins one starting at 00:00 the next day. Stops merging once the
    end reaches limit (callers clamp to their own bound).
    """
    end = occurrence.end
    while end < limit and _containing_range(occurrence.window, end) is not None:
        end = get_window_end_time(end, occurrence.window)
    if end == occurrence.end:
        return occurrence
    return WindowOccurrence(window=occurrence.window, start=occurrence.start, end=end)


def describe_window(window: TimeWindow) -> str:
    """One-line summary, e.g. 'Work Hours [work] p10: Mon 09:00-17:00, ...'."""
    parts = []
    for day in window.active_days:
        ranges = ", ".join(f"{r.start}-{r.end}" for r in window.ranges_for(day))
        parts.append(f"{WEEKDAY_NAMES[day]} {ranges}")
    schedule = "; ".join(parts) if parts else "no active days"
    return f"{window.name} [{window.id}] p{window.priority}: {schedule}"
