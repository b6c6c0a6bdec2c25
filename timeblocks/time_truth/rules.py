"""
Ranking Rules - ordering candidate slots for a task.

Strategies, chosen from the task:
- urgent tasks: earliest slot first
- long tasks (> 2h): largest slot first
- everything else: slot quality + deadline-proximity bell curve (peak at 75%)

Slots in the task's preferred windows are then stably moved to the front.
"""

import logging
from datetime import datetime

from .models import (
    RuleResult,
    SchedulingContext,
    Task,
    TimeSlot,
    add_minutes,
    elapsed_seconds,
    to_utc,
)
from .urgency import logarithmic_urgency

logger = logging.getLogger(__name__)

URGENT_SCORE = 80
URGENT_HOURS = 24
LONG_TASK_MINUTES = 120
VERY_LONG_TASK_MINUTES = 240
PROXIMITY_PEAK_PCT = 75


def is_urgent(task: Task, now: datetime) -> bool:
    if task.priority == 1:
        return True
    if task.urgency is not None and task.urgency > URGENT_SCORE:
        return True

    if task.due_date is not None:
        hours_until_due = elapsed_seconds(now, task.due_date) / 3600
        if hours_until_due < URGENT_HOURS:
            return True
        # Less than twice the time needed left
        if task.estimated_duration and hours_until_due < (task.estimated_duration / 60) * 2:
            return True

    return False


def is_long_task(task: Task) -> bool:
    return bool(task.estimated_duration) and task.estimated_duration > LONG_TASK_MINUTES


def proximity_score(start: datetime, deadline: datetime, now: datetime) -> float:
    """
    Bell curve over the time between now and deadline.

    Scores 100 at 75% of the way to the deadline, falling off linearly either
    side. A slot after the deadline scores 0; a deadline at or before now
    scores everything before it 100.
    """
    total = elapsed_seconds(now, deadline)
    until_slot = elapsed_seconds(now, start)

    if until_slot > total:
        return 0.0
    if total <= 0:
        return 100.0

    percentage_through = until_slot / total * 100
    return 100 - abs(percentage_through - PROXIMITY_PEAK_PCT)


def rank_slots(context: SchedulingContext) -> list[TimeSlot]:
    """Order a copy of the context's slots by the task's ranking strategy."""
    task = context.task
    slots = list(context.available_slots)

    if is_urgent(task, context.now):
        slots.sort(key=lambda s: to_utc(s.start))
        strategy = "earliest"
    elif is_long_task(task):
        slots.sort(key=lambda s: s.duration, reverse=True)
        strategy = "largest"
    else:
        slots.sort(
            key=lambda s: s.quality + proximity_score(s.start, context.deadline, context.now),
            reverse=True,
        )
        strategy = "quality+proximity"

    preferred = set(task.preferred_time_windows or task.allowed_time_windows)
    if preferred:
        # sort is stable, so the ranking above survives within each group
        slots.sort(key=lambda s: s.time_window_id not in preferred)

    logger.debug(f"Ranked {len(slots)} slots for task {task.id} by {strategy}")
    return slots


def apply_scheduling_rules(context: SchedulingContext) -> RuleResult:
    """
    Pick slots from the ranked list until the task's duration is covered.

    A slot is taken only if the part used reaches the minimum block size, or
    covers everything that is left when that is smaller. Selected slots are
    trimmed from their start to the part used.
    """
    task = context.task
    total = task.estimated_duration or 0
    remaining = total
    selected: list[TimeSlot] = []

    for slot in rank_slots(context):
        if remaining <= 0:
            break

        use = min(remaining, slot.duration)
        if use < min(context.min_block_size, remaining):
            continue

        selected.append(
            TimeSlot(
                start=slot.start,
                end=add_minutes(slot.start, use),
                time_window_id=slot.time_window_id,
                quality=slot.quality,
                duration=use,
            )
        )
        remaining -= use

    if not selected:
        message = "No suitable time slots found."
    elif remaining > 0:
        message = (
            f"Partially scheduled: {total - remaining} of {total} minutes scheduled "
            f"across {len(selected)} time block(s)."
        )
    else:
        message = f"Fully scheduled: {total} minutes across {len(selected)} time block(s)."

    return RuleResult(selected_slots=selected, message=message, remaining_duration=remaining)


def ideal_block_size(task: Task, now: datetime) -> int:
    """
    Preferred chunk size in minutes.

    split_up_block wins when set. Urgent tasks get small blocks (<= 30) for
    flexibility; > 4h tasks get 60; > 2h tasks get 45; the rest <= 30.
    """
    if task.split_up_block:
        return task.split_up_block

    urgency = task.urgency if task.urgency is not None else logarithmic_urgency(task, now)
    duration = task.estimated_duration or 0

    if urgency > URGENT_SCORE:
        return min(30, duration)
    if duration > VERY_LONG_TASK_MINUTES:
        return 60
    if duration > LONG_TASK_MINUTES:
        return 45
    return min(30, duration)


def is_task_schedulable(task: Task) -> bool:
    """Has a due date and duration, is not completed, and auto_schedule is not off."""
    if task.due_date is None or not task.estimated_duration:
        return False
    if task.completed:
        return False
    if task.auto_schedule is not None:
        return task.auto_schedule
    return True
