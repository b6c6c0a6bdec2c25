"""
Time Truth - task-to-time-block scheduling engine.

Objects:
- TimeWindow (recurring weekly availability)
- Task (consumed from collaborators)
- TimeBlockInfo (a dated placement of part of a task)

Invariants:
- Blocks stay inside the task's allowed windows
- Blocks of different tasks never overlap (always-free blocks may yield)
- Blocks fall between max(now, creation) and the due date
- Urgency is always within [0, 100]
"""

from .allocator import schedule_task
from .availability import find_available_slots
from .block_store import BlockStore
from .conflicts import BlockConflict, find_conflicts, has_conflicts, tasks_needing_resolution
from .models import (
    ConflictBehavior,
    ScheduleStatus,
    Task,
    TaskScheduleResult,
    TimeBlockInfo,
    TimeDefense,
    TimeRange,
    TimeSlot,
    TimeWindow,
)
from .rules import apply_scheduling_rules, ideal_block_size, is_task_schedulable
from .scheduler import RescheduleSummary, Scheduler, ValidationResult
from .urgency import get_urgency_strategy, linear_urgency, logarithmic_urgency
from .windows import default_time_windows, find_next_valid_window, get_window_end_time

__all__ = [
    "BlockConflict",
    "BlockStore",
    "ConflictBehavior",
    "RescheduleSummary",
    "ScheduleStatus",
    "Scheduler",
    "Task",
    "TaskScheduleResult",
    "TimeBlockInfo",
    "TimeDefense",
    "TimeRange",
    "TimeSlot",
    "TimeWindow",
    "ValidationResult",
    "apply_scheduling_rules",
    "default_time_windows",
    "find_available_slots",
    "find_conflicts",
    "find_next_valid_window",
    "get_urgency_strategy",
    "get_window_end_time",
    "has_conflicts",
    "ideal_block_size",
    "is_task_schedulable",
    "linear_urgency",
    "logarithmic_urgency",
    "schedule_task",
    "tasks_needing_resolution",
]
