"""
Scheduler - the service object that owns the schedule.

One Scheduler holds the configured time windows, the block store, the clock
and the urgency strategy. Every mutation of the schedule goes through it.

Scheduling order for reschedule_all_tasks:
1. Highest priority (1) first
2. Most urgent first within a priority
3. Earliest due date
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from zoneinfo import ZoneInfo

from .. import config
from ..observability.context import SchedulingPass
from . import allocator
from .availability import find_day_slots
from .block_store import BlockStore
from .conflicts import BlockConflict, find_conflicts, has_conflicts, tasks_needing_resolution
from .models import (
    ScheduleStatus,
    Task,
    TaskScheduleResult,
    TimeBlockInfo,
    TimeSlot,
    TimeWindow,
    minutes_between,
    to_utc,
)
from .rules import is_task_schedulable
from .urgency import UrgencyStrategy, get_urgency_strategy
from .windows import default_time_windows

logger = logging.getLogger(__name__)

MANUAL_WINDOW_ID = "manual"


@dataclass
class ValidationResult:
    valid: bool
    issues: list[str]
    stats: dict


@dataclass
class RescheduleSummary:
    scheduled: int
    partial: int
    failed: int
    results: dict[str, TaskScheduleResult]


def system_clock() -> datetime:
    return datetime.now(ZoneInfo(config.TIMEZONE))


class Scheduler:
    """
    Schedules tasks into time blocks inside recurring time windows.

    Constraints:
    - Blocks stay inside the task's allowed windows
    - Blocks never overlap blocks of other tasks (always-free blocks may be
      overlapped by always-busy tasks)
    - Blocks fall between max(now, creation) and the due date

    Window ranges are read in the zone of the clock, and blocks are expressed
    in it; give the clock the zone the windows are meant for.

    The store lock is held for a whole scheduling pass, so concurrent callers
    serialise.
    """

    def __init__(
        self,
        windows: list[TimeWindow] | None = None,
        store: BlockStore | None = None,
        clock: Callable[[], datetime] | None = None,
        urgency_strategy: str | UrgencyStrategy | None = None,
        slot_ordering: str | None = None,
        default_block_minutes: int | None = None,
    ):
        self.store = store or BlockStore()
        self.clock = clock or system_clock
        self._windows: list[TimeWindow] = []
        self.set_time_windows(default_time_windows() if windows is None else windows)

        if callable(urgency_strategy):
            self.urgency_strategy = urgency_strategy
        else:
            self.urgency_strategy = get_urgency_strategy(urgency_strategy or config.URGENCY_STRATEGY)

        self.slot_ordering = (slot_ordering or config.SLOT_ORDERING).strip().lower()
        if self.slot_ordering not in allocator.SLOT_ORDERINGS:
            raise ValueError(
                f"Unknown slot ordering {self.slot_ordering!r} (expected one of {allocator.SLOT_ORDERINGS})"
            )

        self.default_block_minutes = default_block_minutes or config.DEFAULT_BLOCK_MINUTES
        if self.default_block_minutes <= 0:
            raise ValueError(f"Default block size must be positive: {self.default_block_minutes}")

    def now(self) -> datetime:
        return self.clock()

    # ------------------------------------------------------------------
    # Time windows
    # ------------------------------------------------------------------

    @property
    def time_windows(self) -> list[TimeWindow]:
        return list(self._windows)

    def set_time_windows(self, windows: list[TimeWindow]):
        """Replace all windows. Takes effect from the next scheduling pass."""
        ids = [w.id for w in windows]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"Duplicate time window ids: {', '.join(duplicates)}")
        with self.store.lock:
            self._windows = list(windows)
        logger.debug(f"Time windows set: {', '.join(ids) or 'none'}")

    def add_time_window(self, window: TimeWindow):
        if any(w.id == window.id for w in self._windows):
            raise ValueError(f"Time window already exists: {window.id}")
        self.set_time_windows(self._windows + [window])

    def remove_time_window(self, window_id: str) -> bool:
        remaining = [w for w in self._windows if w.id != window_id]
        if len(remaining) == len(self._windows):
            return False
        self.set_time_windows(remaining)
        return True

    def get_time_window(self, window_id: str) -> TimeWindow | None:
        return next((w for w in self._windows if w.id == window_id), None)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def schedule_task(self, task: Task) -> TaskScheduleResult:
        """
        Place a task's estimated duration into blocks before its due date.

        Returns a structured result; nothing is raised for tasks that cannot
        be scheduled.
        """
        now = self.now()
        with SchedulingPass(task_id=task.id), self.store.lock:
            return allocator.schedule_task(
                task,
                store=self.store,
                windows=self._windows,
                now=now,
                slot_ordering=self.slot_ordering,
                default_block_minutes=self.default_block_minutes,
                tz=now.tzinfo,
            )

    def reschedule_all_tasks(self, tasks: list[Task]) -> RescheduleSummary:
        """
        Clear and re-place every schedulable task.

        Tasks that are not schedulable (completed, no due date or duration,
        auto_schedule off) keep their blocks.
        """
        schedulable = [t for t in tasks if is_task_schedulable(t)]
        results: dict[str, TaskScheduleResult] = {}

        with SchedulingPass(), self.store.lock:
            for task in schedulable:
                self.store.remove_for_task(task.id)

            self.refresh_urgency(schedulable)
            ordered = sorted(
                schedulable,
                key=lambda t: (t.priority, -(t.urgency or 0), to_utc(t.due_date)),
            )
            for task in ordered:
                results[task.id] = self.schedule_task(task)

        scheduled = sum(1 for r in results.values() if r.success)
        partial = sum(
            1
            for r in results.values()
            if r.status == ScheduleStatus.PARTIALLY_SCHEDULED and r.time_blocks
        )
        failed = len(results) - scheduled - partial
        logger.info(
            f"Rescheduled {len(results)} tasks: {scheduled} scheduled, {partial} partial, {failed} failed"
        )
        return RescheduleSummary(scheduled=scheduled, partial=partial, failed=failed, results=results)

    # ------------------------------------------------------------------
    # Urgency
    # ------------------------------------------------------------------

    def calculate_task_urgency(self, task: Task) -> float:
        return self.urgency_strategy(task, self.now())

    def refresh_urgency(self, tasks: list[Task]) -> dict[str, float]:
        """Recompute and cache urgency on each task. Returns scores by task id."""
        now = self.now()
        scores = {}
        for task in tasks:
            task.urgency = self.urgency_strategy(task, now)
            scores[task.id] = task.urgency
        return scores

    # ------------------------------------------------------------------
    # Block queries
    # ------------------------------------------------------------------

    def get_scheduled_blocks(self) -> list[TimeBlockInfo]:
        return self.store.all_blocks()

    def get_blocks_for_task(self, task_id: str) -> list[TimeBlockInfo]:
        return self.store.get_for_task(task_id)

    def get_blocks_in_timeframe(self, start: datetime, end: datetime) -> list[TimeBlockInfo]:
        return self.store.in_timeframe(start, end)

    def has_scheduled_blocks(self, task_id: str) -> bool:
        return bool(self.store.get_for_task(task_id))

    def mark_block_completed(self, block_id: str) -> bool:
        if not self.store.mark_completed(block_id):
            logger.warning(f"Cannot complete unknown block {block_id}")
            return False
        return True

    def remove_scheduled_blocks(self, task_id: str) -> int:
        """Drop all blocks of a task. Returns how many were removed."""
        return len(self.store.remove_for_task(task_id))

    def get_available_time_slots(self, day: date, duration: int) -> list[TimeSlot]:
        """Free gaps of at least duration minutes in each window range of day."""
        if duration <= 0:
            raise ValueError(f"Duration must be positive: {duration}")
        return find_day_slots(self.store, day, self._windows, duration, tz=self.now().tzinfo)

    # ------------------------------------------------------------------
    # Manual edits
    # ------------------------------------------------------------------

    def create_time_block(
        self, task: Task, start: datetime, end: datetime, window_id: str = MANUAL_WINDOW_ID
    ) -> TimeBlockInfo | None:
        """
        Add a block by hand, outside of the allocator.

        No window or overlap checks are applied; overlaps show up in
        find_conflicts.
        """
        if not task.id:
            logger.warning("Cannot create a time block for a task without an id")
            return None
        duration = minutes_between(start, end)
        if duration <= 0:
            logger.warning(f"Invalid manual block for task {task.id}: {start} -> {end}")
            return None

        with self.store.lock:
            block = TimeBlockInfo(
                id=self.store.next_block_id(task.id),
                task_id=task.id,
                start=start,
                end=end,
                duration=duration,
                time_window_id=window_id,
            )
            return self.store.add(block, task=task)

    def update_time_block(self, block_id: str, start: datetime, end: datetime) -> TimeBlockInfo | None:
        if minutes_between(start, end) <= 0:
            logger.warning(f"Invalid times for block {block_id}: {start} -> {end}")
            return None
        block = self.store.update(block_id, start, end)
        if block is None:
            logger.warning(f"Cannot update unknown block {block_id}")
        return block

    def delete_time_block(self, block_id: str) -> bool:
        return self.store.delete(block_id) is not None

    # ------------------------------------------------------------------
    # Conflicts
    # ------------------------------------------------------------------

    def has_conflicts(self, task: Task | str) -> bool:
        task_id = task if isinstance(task, str) else task.id
        return has_conflicts(task_id, self.store.all_blocks())

    def find_conflicts(self) -> list[BlockConflict]:
        return find_conflicts(self.store.all_blocks())

    def tasks_needing_resolution(self, tasks: list[Task]) -> list[Task]:
        return tasks_needing_resolution(tasks, self.store.all_blocks())

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_schedule(self) -> ValidationResult:
        """
        Check that the schedule invariants hold.

        Invariants:
        1. Every block has start < end and duration == end - start (minutes)
        2. No blocks of different tasks overlap, unless one is always-free
        3. Every block sits in a known window (or was created by hand)
        4. Every block id a registered task references exists

        Returns:
            ValidationResult with issues and stats
        """
        issues = []
        blocks = self.store.all_blocks()
        window_ids = {w.id for w in self._windows} | {MANUAL_WINDOW_ID}

        for block in blocks:
            if to_utc(block.end) <= to_utc(block.start):
                issues.append(f"Block {block.id} ends before it starts")
            elif block.duration != minutes_between(block.start, block.end):
                issues.append(
                    f"Block {block.id} duration {block.duration} does not match its times "
                    f"({minutes_between(block.start, block.end)} minutes)"
                )
            if block.time_window_id not in window_ids:
                issues.append(f"Block {block.id} references unknown window {block.time_window_id}")

        conflicts = find_conflicts(blocks)
        hard_conflicts = [
            c
            for c in conflicts
            if not (self.store.is_displaceable(c.task_a_id) or self.store.is_displaceable(c.task_b_id))
        ]
        for c in hard_conflicts:
            issues.append(
                f"Block overlap: {c.block_a_id} and {c.block_b_id} "
                f"({c.overlap_start.isoformat()} - {c.overlap_end.isoformat()})"
            )

        for task in self.store.registered_tasks():
            for block_id in task.scheduled_blocks:
                if block_id not in self.store:
                    issues.append(f"Task {task.id} references non-existent block {block_id}")

        stats = {
            "total_blocks": len(blocks),
            "tasks_with_blocks": len(self.store.task_ids()),
            "completed_blocks": sum(1 for b in blocks if b.is_completed),
            "scheduled_minutes": sum(b.duration for b in blocks),
            "conflicts": len(conflicts),
            "displaceable_conflicts": len(conflicts) - len(hard_conflicts),
        }

        return ValidationResult(valid=len(issues) == 0, issues=issues, stats=stats)
