"""
Block Store - in-memory arena of scheduled time blocks.

Holds every TimeBlockInfo the engine has committed, keyed by block id, with a
secondary index by task id. Blocks reference tasks by id; the store keeps a
registry of the tasks that own blocks so time-defense can be looked up.

Enforces:
- Block ids are unique ({task_id}-block-{n}, n counted per task)
- Blocks are only removed explicitly
- Every mutation happens under the store lock
"""

import logging
import threading
from datetime import datetime

from .models import Task, TimeBlockInfo, TimeDefense, minutes_between, to_utc

logger = logging.getLogger(__name__)


def _overlapping(block: TimeBlockInfo, start: datetime, end: datetime) -> bool:
    return to_utc(block.start) < to_utc(end) and to_utc(start) < to_utc(block.end)


class BlockStore:
    """
    The schedule cache.

    Iteration order is insertion order. The lock is re-entrant so a caller
    can hold it for a whole scheduling pass while the store locks each
    individual mutation.
    """

    def __init__(self):
        self.lock = threading.RLock()
        self._blocks: dict[str, TimeBlockInfo] = {}
        self._by_task: dict[str, list[str]] = {}
        self._tasks: dict[str, Task] = {}
        self._sequence: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._blocks)

    def __contains__(self, block_id: str) -> bool:
        return block_id in self._blocks

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def register_task(self, task: Task):
        with self.lock:
            self._tasks[task.id] = task

    def registered_tasks(self) -> list[Task]:
        return list(self._tasks.values())

    def get_task(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def is_displaceable(self, task_id: str) -> bool:
        """True when the owning task is always-free. Unknown tasks count as busy."""
        task = self._tasks.get(task_id)
        return task is not None and task.time_defense == TimeDefense.ALWAYS_FREE

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def next_block_id(self, task_id: str) -> str:
        with self.lock:
            n = self._sequence.get(task_id, 0)
            self._sequence[task_id] = n + 1
            return f"{task_id}-block-{n}"

    def add(self, block: TimeBlockInfo, task: Task | None = None) -> TimeBlockInfo:
        """Commit a block. The owning task, when given, is registered and back-referenced."""
        with self.lock:
            if block.id in self._blocks:
                raise ValueError(f"Duplicate block id: {block.id}")
            if to_utc(block.end) <= to_utc(block.start):
                raise ValueError(f"Block {block.id} ends before it starts")

            self._blocks[block.id] = block
            self._by_task.setdefault(block.task_id, []).append(block.id)

            if task is not None:
                self.register_task(task)
                if block.id not in task.scheduled_blocks:
                    task.scheduled_blocks.append(block.id)

            logger.debug(
                f"Added block {block.id} {block.start.isoformat()} -> {block.end.isoformat()} "
                f"({block.duration}m, window {block.time_window_id})"
            )
            return block

    def remove_for_task(self, task_id: str) -> list[TimeBlockInfo]:
        """Drop every block of a task. Returns the removed blocks."""
        with self.lock:
            block_ids = self._by_task.pop(task_id, [])
            removed = [self._blocks.pop(block_id) for block_id in block_ids]
            self._sequence.pop(task_id, None)

            task = self._tasks.get(task_id)
            if task is not None:
                task.scheduled_blocks = [b for b in task.scheduled_blocks if b not in block_ids]

            if removed:
                logger.debug(f"Removed {len(removed)} blocks for task {task_id}")
            return removed

    def delete(self, block_id: str) -> TimeBlockInfo | None:
        with self.lock:
            block = self._blocks.pop(block_id, None)
            if block is None:
                return None

            ids = self._by_task.get(block.task_id, [])
            if block_id in ids:
                ids.remove(block_id)
            if not ids:
                self._by_task.pop(block.task_id, None)
                self._sequence.pop(block.task_id, None)

            task = self._tasks.get(block.task_id)
            if task is not None and block_id in task.scheduled_blocks:
                task.scheduled_blocks.remove(block_id)
            return block

    def update(self, block_id: str, start: datetime, end: datetime) -> TimeBlockInfo | None:
        """Move a block. Duration follows the new start and end."""
        with self.lock:
            block = self._blocks.get(block_id)
            if block is None:
                return None
            if to_utc(end) <= to_utc(start):
                raise ValueError(f"Block {block_id} would end before it starts")
            block.start = start
            block.end = end
            block.duration = minutes_between(start, end)
            return block

    def mark_completed(self, block_id: str) -> bool:
        with self.lock:
            block = self._blocks.get(block_id)
            if block is None:
                return False
            block.is_completed = True
            return True

    def clear(self):
        """Drop every block and forget the registered tasks and their back-references."""
        with self.lock:
            for task in self._tasks.values():
                task.scheduled_blocks = []
            self._blocks.clear()
            self._by_task.clear()
            self._sequence.clear()
            self._tasks.clear()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, block_id: str) -> TimeBlockInfo | None:
        return self._blocks.get(block_id)

    def all_blocks(self) -> list[TimeBlockInfo]:
        return list(self._blocks.values())

    def task_ids(self) -> list[str]:
        return list(self._by_task)

    def get_for_task(self, task_id: str) -> list[TimeBlockInfo]:
        return [self._blocks[block_id] for block_id in self._by_task.get(task_id, [])]

    def in_timeframe(self, start: datetime, end: datetime) -> list[TimeBlockInfo]:
        """Blocks overlapping [start, end), ordered by start."""
        found = [b for b in self._blocks.values() if _overlapping(b, start, end)]
        return sorted(found, key=lambda b: to_utc(b.start))

    def earliest_overlapping(
        self, start: datetime, end: datetime, ignore_displaceable: bool = False
    ) -> TimeBlockInfo | None:
        """
        The earliest-starting block overlapping [start, end).

        With ignore_displaceable, blocks owned by always-free tasks are skipped.
        """
        earliest = None
        for block in self._blocks.values():
            if not _overlapping(block, start, end):
                continue
            if ignore_displaceable and self.is_displaceable(block.task_id):
                continue
            if earliest is None or to_utc(block.start) < to_utc(earliest.start):
                earliest = block
        return earliest
