"""
Urgency scoring - how much scheduling pressure a task is under.

Two strategies, both returning a score in [0, 100]:
- logarithmic (default): deadline on a log scale over one week, plus bonuses
  for priority, duration pressure and split count
- linear: share of the remaining time the task needs, scaled by priority

The strategy is picked by name from configuration. Both agree that an overdue
task scores 100 and a task without a due date scores 0.
"""

import logging
import math
from collections.abc import Callable
from datetime import datetime

from .models import Task, elapsed_seconds

logger = logging.getLogger(__name__)

UrgencyStrategy = Callable[[Task, datetime], float]

HOURS_PER_WEEK = 168

MAX_DURATION_BONUS = 15
MAX_SPLIT_BONUS = 5
PRIORITY_BONUS_STEP = 6.67


def _clamp(score: float) -> float:
    return max(0.0, min(100.0, score))


def linear_urgency(task: Task, now: datetime) -> float:
    """
    (estimated_duration / minutes_remaining) * 100 * priority_factor.

    priority_factor = 1 + (5 - priority) * 0.5, so priority 1 is x3 and 4 is x1.5.
    """
    if task.due_date is None or not task.estimated_duration:
        return 0.0

    minutes_remaining = elapsed_seconds(now, task.due_date) / 60
    if minutes_remaining <= 0:
        return 100.0

    duration_ratio = task.estimated_duration / minutes_remaining
    priority_factor = 1 + (5 - task.priority) * 0.5
    return _clamp(duration_ratio * 100 * priority_factor)


def logarithmic_urgency(task: Task, now: datetime) -> float:
    """
    Logarithmic deadline score with bonuses, rounded to a whole number.

    Base: 100 - ln(hours + 1) / ln(168) * 100 (a deadline one week out is ~0).
    Priority 1 adds ~26.7, priority 4 adds ~6.7. Needing more than half the
    remaining time adds up to 15. Each block of a split task adds 1, up to 5.
    """
    if task.due_date is None:
        return 0.0

    hours_remaining = max(0.0, elapsed_seconds(now, task.due_date) / 3600)
    if hours_remaining <= 0:
        return 100.0

    urgency = 100 - (math.log(hours_remaining + 1) / math.log(HOURS_PER_WEEK)) * 100
    urgency += (5 - task.priority) * PRIORITY_BONUS_STEP

    if task.estimated_duration:
        time_ratio = (task.estimated_duration / 60) / hours_remaining
        if time_ratio > 0.5:
            urgency += min(MAX_DURATION_BONUS, time_ratio * MAX_DURATION_BONUS)

    if task.split_up_block and task.estimated_duration:
        blocks_needed = math.ceil(task.estimated_duration / task.split_up_block)
        urgency += min(MAX_SPLIT_BONUS, blocks_needed)

    return _clamp(round(urgency))


URGENCY_STRATEGIES: dict[str, UrgencyStrategy] = {
    "logarithmic": logarithmic_urgency,
    "linear": linear_urgency,
}

DEFAULT_URGENCY_STRATEGY = "logarithmic"


def get_urgency_strategy(name: str | None = None) -> UrgencyStrategy:
    """Look up a strategy by name. Unknown names are a configuration error."""
    key = (name or DEFAULT_URGENCY_STRATEGY).strip().lower()
    try:
        return URGENCY_STRATEGIES[key]
    except KeyError:
        raise ValueError(
            f"Unknown urgency strategy {name!r} (expected one of {sorted(URGENCY_STRATEGIES)})"
        ) from None
