"""
Block Allocator - turns one task into committed time blocks.

Preconditions come first and each fails with its own status; nothing is
raised for a task that cannot be scheduled. After that the allocator asks the
Availability Finder for slots between max(now, creation) and the due date,
orders them (chronological, or ranked by the rules) and consumes them greedily
until the estimated duration is covered.

Enforces:
- No block starts before now or before the task was created
- No block ends after the due date
- Every committed block is also recorded in the store
"""

import logging
from datetime import datetime, tzinfo

from .availability import find_available_slots
from .block_store import BlockStore
from .models import (
    SchedulingContext,
    ScheduleStatus,
    Task,
    TaskScheduleResult,
    TimeBlockInfo,
    TimeDefense,
    TimeSlot,
    TimeWindow,
    add_minutes,
    ceil_to_minute,
    to_utc,
)
from .rules import apply_scheduling_rules
from .windows import filter_windows, sort_by_priority

logger = logging.getLogger(__name__)

DEFAULT_MIN_BLOCK_MINUTES = 30

SLOT_ORDER_CHRONOLOGICAL = "chronological"
SLOT_ORDER_RANKED = "ranked"
SLOT_ORDERINGS = (SLOT_ORDER_CHRONOLOGICAL, SLOT_ORDER_RANKED)


def min_block_size(task: Task, default_minutes: int = DEFAULT_MIN_BLOCK_MINUTES) -> int:
    """split_up_block when set, otherwise min(default, estimated_duration)."""
    if task.split_up_block:
        return task.split_up_block
    return min(default_minutes, task.estimated_duration or 0)


def _failure(status: ScheduleStatus, message: str, overdue: bool = False) -> TaskScheduleResult:
    return TaskScheduleResult(success=False, message=message, status=status, overdue=overdue)


def _check_preconditions(
    task: Task, windows: list[TimeWindow], now: datetime
) -> TaskScheduleResult | None:
    if task.due_date is None:
        return _failure(ScheduleStatus.INVALID_INPUT, f"Task {task.id} must have a due date")

    if not task.estimated_duration or task.estimated_duration <= 0:
        return _failure(
            ScheduleStatus.INVALID_INPUT, f"Task {task.id} must have a valid estimated duration"
        )

    if to_utc(task.due_date) <= to_utc(now):
        return _failure(
            ScheduleStatus.OVERDUE,
            f"Task {task.id} is already past its due date ({task.due_date.isoformat()})",
            overdue=True,
        )

    if not filter_windows(windows, task.allowed_time_windows):
        if task.allowed_time_windows:
            names = ", ".join(task.allowed_time_windows)
            message = f"No configured time windows match the allowed windows of task {task.id}: {names}"
        else:
            message = f"No time windows configured for task {task.id}"
        return _failure(ScheduleStatus.NO_MATCHING_WINDOWS, message)

    return None


def _order_slots(
    task: Task,
    slots: list[TimeSlot],
    store: BlockStore,
    now: datetime,
    min_block: int,
    slot_ordering: str,
) -> list[TimeSlot]:
    if slot_ordering == SLOT_ORDER_RANKED:
        context = SchedulingContext(
            task=task,
            available_slots=slots,
            existing_blocks=store.all_blocks(),
            deadline=task.due_date,
            now=now,
            min_block_size=min_block,
        )
        result = apply_scheduling_rules(context)
        logger.debug(f"Ranking rules for task {task.id}: {result.message}")
        return result.selected_slots

    return sorted(slots, key=lambda s: to_utc(s.start))


def schedule_task(
    task: Task,
    store: BlockStore,
    windows: list[TimeWindow],
    now: datetime,
    slot_ordering: str = SLOT_ORDER_CHRONOLOGICAL,
    default_block_minutes: int = DEFAULT_MIN_BLOCK_MINUTES,
    tz: tzinfo | None = None,
) -> TaskScheduleResult:
    """
    Schedule a task's estimated duration into blocks before its due date.

    Args:
        task: Task to place
        store: Block store to avoid and to commit into
        windows: Configured time windows
        now: Current instant; nothing is placed before it
        slot_ordering: "chronological" (earliest first) or "ranked" (rules)
        default_block_minutes: Minimum block when the task has no split size
        tz: Zone the windows are read in and blocks are expressed in
            (default: the zone of now)

    Returns:
        TaskScheduleResult with the committed blocks and a status
    """
    if slot_ordering not in SLOT_ORDERINGS:
        raise ValueError(f"Unknown slot ordering {slot_ordering!r} (expected one of {SLOT_ORDERINGS})")

    failure = _check_preconditions(task, windows, now)
    if failure is not None:
        logger.info(f"Task {task.id} not scheduled: {failure.message}")
        return failure

    total = task.estimated_duration
    min_block = min_block_size(task, default_block_minutes)
    allowed = sort_by_priority(filter_windows(windows, task.allowed_time_windows))

    start = now
    if task.creation_date is not None and to_utc(task.creation_date) > to_utc(start):
        start = task.creation_date
    start = ceil_to_minute(start)

    with store.lock:
        slots = find_available_slots(
            store,
            start_time=start,
            end_time=task.due_date,
            min_block_size=min_block,
            allowed_windows=allowed,
            is_fixed_request=task.time_defense == TimeDefense.ALWAYS_BUSY,
            tz=tz or now.tzinfo,
        )

        if not slots:
            logger.info(f"No available time slots for task {task.id} before {task.due_date.isoformat()}")
            return TaskScheduleResult(
                success=False,
                message=f"No available time slots for task {task.id} before its due date",
                status=ScheduleStatus.PARTIALLY_SCHEDULED,
                overdue=True,
                unscheduled_minutes=total,
            )

        remaining = total
        blocks: list[TimeBlockInfo] = []
        for slot in _order_slots(task, slots, store, now, min_block, slot_ordering):
            if remaining <= 0:
                break

            use = min(remaining, slot.duration)
            if use <= 0:
                continue

            block = TimeBlockInfo(
                id=store.next_block_id(task.id),
                task_id=task.id,
                start=slot.start,
                end=add_minutes(slot.start, use),
                duration=use,
                time_window_id=slot.time_window_id,
            )
            store.add(block, task=task)
            blocks.append(block)
            remaining -= use

    if remaining > 0:
        logger.info(f"Task {task.id} partially scheduled: {total - remaining}/{total} minutes")
        return TaskScheduleResult(
            success=False,
            message=f"Only {total - remaining} of {total} minutes could be scheduled before the due date",
            status=ScheduleStatus.PARTIALLY_SCHEDULED,
            time_blocks=blocks,
            overdue=True,
            unscheduled_minutes=remaining,
        )

    logger.info(f"Scheduled {total} minutes for task {task.id} in {len(blocks)} blocks")
    return TaskScheduleResult(
        success=True,
        message=f"Scheduled {total} minutes in {len(blocks)} time block(s)",
        status=ScheduleStatus.SUCCESS,
        time_blocks=blocks,
    )
