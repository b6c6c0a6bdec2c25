"""
Availability Finder - free stretches inside recurring windows.

Walks forward from a start instant, one window occurrence at a time, and
reports every gap between committed blocks that is long enough to hold a
minimum block. Slots come back in discovery order (chronological).
"""

import logging
from datetime import date, datetime, time, timedelta, tzinfo

from .block_store import BlockStore
from .models import TimeBlockInfo, TimeSlot, TimeWindow, minutes_between, to_utc, to_zone
from .windows import extend_contiguous, find_next_valid_window, sort_by_priority

logger = logging.getLogger(__name__)

NEUTRAL_QUALITY = 50.0


def slot_quality(window: TimeWindow, max_priority: int) -> float:
    """Window priority relative to the best allowed window, scaled to 0-100."""
    if max_priority <= 0:
        return NEUTRAL_QUALITY
    return max(0.0, min(100.0, 100.0 * window.priority / max_priority))


def find_available_slots(
    store: BlockStore,
    start_time: datetime,
    end_time: datetime,
    min_block_size: int,
    allowed_windows: list[TimeWindow],
    is_fixed_request: bool = False,
    tz: tzinfo | None = None,
) -> list[TimeSlot]:
    """
    Find free slots between start_time and end_time.

    Args:
        store: Committed blocks to avoid
        start_time: Earliest instant a slot may start
        end_time: Latest instant a slot may end
        min_block_size: Shortest gap (minutes) worth reporting
        allowed_windows: Windows to search; checked highest priority first
        is_fixed_request: Ignore blocks of always-free tasks
        tz: Zone the windows' wall-clock ranges are read in (default: start_time's)

    Returns:
        Slots in chronological order, each inside one window occurrence,
        expressed in tz
    """
    windows = sort_by_priority(allowed_windows)
    if not windows or to_utc(start_time) >= to_utc(end_time):
        return []

    zone = tz or start_time.tzinfo
    max_priority = max(w.priority for w in windows)
    slots: list[TimeSlot] = []
    # Cursor and bounds stay in UTC; only window lookups use local wall time
    cursor = to_utc(start_time)
    limit = to_utc(end_time)

    while cursor < limit:
        occurrence = find_next_valid_window(to_zone(cursor, zone), windows)
        if occurrence is None:
            break
        occurrence = extend_contiguous(occurrence, limit)

        segment_start = max(cursor, to_utc(occurrence.start))
        if segment_start >= limit:
            break
        segment_end = min(to_utc(occurrence.end), limit)

        conflict = store.earliest_overlapping(
            segment_start, segment_end, ignore_displaceable=is_fixed_request
        )
        if conflict is None:
            gap_end = segment_end
            next_cursor = segment_end
        else:
            gap_end = max(segment_start, to_utc(conflict.start))
            next_cursor = to_utc(conflict.end)

        if minutes_between(segment_start, gap_end) >= min_block_size:
            slots.append(
                TimeSlot(
                    start=to_zone(segment_start, zone),
                    end=to_zone(gap_end, zone),
                    time_window_id=occurrence.window.id,
                    quality=slot_quality(occurrence.window, max_priority),
                )
            )

        cursor = next_cursor

    logger.debug(
        f"Found {len(slots)} slots between {start_time.isoformat()} and {end_time.isoformat()} "
        f"(min {min_block_size}m, {len(windows)} windows, fixed={is_fixed_request})"
    )
    return slots


def free_gaps(
    start: datetime,
    end: datetime,
    blocks: list[TimeBlockInfo],
    min_duration: int,
    window: TimeWindow,
    max_priority: int | None = None,
) -> list[TimeSlot]:
    """Gaps of at least min_duration between the blocks overlapping [start, end)."""
    if max_priority is None:
        max_priority = window.priority
    quality = slot_quality(window, max_priority)

    gaps = []
    cursor = start
    overlapping = sorted(
        (b for b in blocks if to_utc(b.start) < to_utc(end) and to_utc(start) < to_utc(b.end)),
        key=lambda b: to_utc(b.start),
    )
    for block in overlapping:
        if minutes_between(cursor, block.start) >= min_duration:
            gaps.append(TimeSlot(cursor, block.start, window.id, quality))
        cursor = max(cursor, block.end, key=to_utc)

    if minutes_between(cursor, end) >= min_duration:
        gaps.append(TimeSlot(cursor, end, window.id, quality))
    return gaps


def find_day_slots(
    store: BlockStore,
    day: date,
    windows: list[TimeWindow],
    min_duration: int,
    tz: tzinfo | None = None,
) -> list[TimeSlot]:
    """
    Free gaps inside every window range of one calendar day.

    Ranges are taken as configured, without merging, and each window is
    checked on its own (overlapping windows can report the same gap twice).
    """
    day_start = datetime.combine(day, time.min, tzinfo=tz)
    day_end = day_start + timedelta(days=1)
    blocks = store.in_timeframe(day_start, day_end)
    ordered = sort_by_priority(windows)
    max_priority = max((w.priority for w in ordered), default=0)

    slots = []
    for window in ordered:
        for time_range in window.ranges_for(day.weekday()):
            range_start = day_start + timedelta(minutes=time_range.start_minute)
            range_end = day_start + timedelta(minutes=time_range.end_minute)
            slots.extend(free_gaps(range_start, range_end, blocks, min_duration, window, max_priority))
    return slots
