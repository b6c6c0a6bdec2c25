"""
Conflict Detector - overlapping blocks of different tasks.

Two blocks overlap when one starts inside the other, one ends inside the
other, or one contains the other. Touching blocks (a.end == b.start) do not
overlap. Blocks of the same task never conflict with each other.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from .models import Task, TimeBlockInfo, minutes_between, to_utc

logger = logging.getLogger(__name__)


@dataclass
class BlockConflict:
    block_a_id: str
    block_b_id: str
    task_a_id: str
    task_b_id: str
    overlap_start: datetime
    overlap_end: datetime

    @property
    def overlap_minutes(self) -> int:
        return minutes_between(self.overlap_start, self.overlap_end)

    def to_dict(self) -> dict:
        return {
            "block_a_id": self.block_a_id,
            "block_b_id": self.block_b_id,
            "task_a_id": self.task_a_id,
            "task_b_id": self.task_b_id,
            "overlap_start": self.overlap_start.isoformat(),
            "overlap_end": self.overlap_end.isoformat(),
        }


def blocks_overlap(a: TimeBlockInfo, b: TimeBlockInfo) -> bool:
    a_start, a_end, b_start, b_end = to_utc(a.start), to_utc(a.end), to_utc(b.start), to_utc(b.end)
    starts_inside = a_start >= b_start and a_start < b_end
    ends_inside = a_end > b_start and a_end <= b_end
    contains = a_start <= b_start and a_end >= b_end
    return starts_inside or ends_inside or contains


def has_conflicts(task_id: str, blocks: list[TimeBlockInfo]) -> bool:
    """True if any block of the task overlaps a block of another task."""
    own = [b for b in blocks if b.task_id == task_id]
    if not own:
        return False

    others = [b for b in blocks if b.task_id != task_id]
    for block in own:
        for other in others:
            if blocks_overlap(block, other):
                logger.debug(f"Block {block.id} overlaps {other.id}")
                return True
    return False


def find_conflicts(blocks: list[TimeBlockInfo]) -> list[BlockConflict]:
    """Every overlapping pair of blocks owned by different tasks."""
    ordered = sorted(blocks, key=lambda b: (to_utc(b.start), b.id))
    conflicts = []

    for i, a in enumerate(ordered):
        for b in ordered[i + 1 :]:
            # Sorted by start, so nothing later can overlap a
            if to_utc(b.start) >= to_utc(a.end):
                break
            if a.task_id == b.task_id:
                continue
            if blocks_overlap(a, b):
                conflicts.append(
                    BlockConflict(
                        block_a_id=a.id,
                        block_b_id=b.id,
                        task_a_id=a.task_id,
                        task_b_id=b.task_id,
                        overlap_start=max(a.start, b.start, key=to_utc),
                        overlap_end=min(a.end, b.end, key=to_utc),
                    )
                )

    return conflicts


def tasks_needing_resolution(tasks: list[Task], blocks: list[TimeBlockInfo]) -> list[Task]:
    """
    Conflicted tasks in resolution order.

    Highest priority (lowest number) first; within a priority, the more
    urgent task first.
    """
    conflicted = [t for t in tasks if has_conflicts(t.id, blocks)]
    return sorted(conflicted, key=lambda t: (t.priority, -(t.urgency or 0)))
