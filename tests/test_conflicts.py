"""Tests for overlap detection between blocks of different tasks."""

import pytest
from tests.fixtures import at, make_block

from timeblocks.time_truth.conflicts import (
    blocks_overlap,
    find_conflicts,
    has_conflicts,
    tasks_needing_resolution,
)


class TestBlocksOverlap:
    @pytest.mark.parametrize(
        "a,b",
        [
            ((9, 11), (10, 12)),  # a ends inside b
            ((10, 12), (9, 11)),  # a starts inside b
            ((9, 12), (10, 11)),  # a contains b
            ((10, 11), (9, 12)),  # b contains a
            ((9, 10), (9, 10)),  # identical
        ],
    )
    def test_overlapping(self, a, b):
        block_a = make_block("a", "ta", at(0, a[0]), at(0, a[1]))
        block_b = make_block("b", "tb", at(0, b[0]), at(0, b[1]))
        assert blocks_overlap(block_a, block_b)
        assert blocks_overlap(block_b, block_a)

    def test_touching_blocks_do_not_overlap(self):
        a = make_block("a", "ta", at(0, 9), at(0, 10))
        b = make_block("b", "tb", at(0, 10), at(0, 11))
        assert not blocks_overlap(a, b)
        assert not blocks_overlap(b, a)


class TestHasConflicts:
    def test_task_without_blocks(self):
        blocks = [make_block("b", "tb", at(0, 9), at(0, 10))]
        assert not has_conflicts("ta", blocks)

    def test_overlap_with_other_task(self):
        blocks = [
            make_block("a", "ta", at(0, 9), at(0, 10)),
            make_block("b", "tb", at(0, 9, 30), at(0, 10, 30)),
        ]
        assert has_conflicts("ta", blocks)
        assert has_conflicts("tb", blocks)

    def test_same_task_overlap_ignored(self):
        blocks = [
            make_block("a0", "ta", at(0, 9), at(0, 10)),
            make_block("a1", "ta", at(0, 9, 30), at(0, 10, 30)),
        ]
        assert not has_conflicts("ta", blocks)


class TestFindConflicts:
    def test_reports_overlap_interval(self):
        blocks = [
            make_block("b", "tb", at(0, 10), at(0, 12)),
            make_block("a", "ta", at(0, 9), at(0, 11)),
        ]
        (conflict,) = find_conflicts(blocks)

        assert (conflict.block_a_id, conflict.block_b_id) == ("a", "b")
        assert (conflict.task_a_id, conflict.task_b_id) == ("ta", "tb")
        assert (conflict.overlap_start, conflict.overlap_end) == (at(0, 10), at(0, 11))
        assert conflict.overlap_minutes == 60
        assert conflict.to_dict()["overlap_start"] == at(0, 10).isoformat()

    def test_long_block_conflicts_with_several(self):
        blocks = [
            make_block("long", "ta", at(0, 9), at(0, 17)),
            make_block("m", "tb", at(0, 10), at(0, 11)),
            make_block("n", "tc", at(0, 13), at(0, 14)),
            make_block("later", "td", at(0, 17), at(0, 18)),
        ]
        pairs = {(c.block_a_id, c.block_b_id) for c in find_conflicts(blocks)}
        assert pairs == {("long", "m"), ("long", "n")}

    def test_only_cross_task_overlaps_reported(self):
        blocks = [
            make_block("a", "ta", at(0, 9), at(0, 10)),
            make_block("b", "tb", at(0, 10), at(0, 11)),
            make_block("a2", "ta", at(0, 10, 30), at(0, 10, 45)),
        ]
        conflicts = find_conflicts(blocks)
        assert [(c.block_a_id, c.block_b_id) for c in conflicts] == [("b", "a2")]

    def test_empty(self):
        assert find_conflicts([]) == []


class TestResolutionOrder:
    def test_priority_then_urgency(self, make_task):
        blocks = [
            make_block("a", "low", at(0, 9), at(0, 10)),
            make_block("b", "high", at(0, 9), at(0, 10)),
            make_block("c", "urgent", at(0, 9), at(0, 10)),
            make_block("d", "free", at(0, 11), at(0, 12)),
        ]
        tasks = [
            make_task("low", priority=4, urgency=90),
            make_task("high", priority=2, urgency=10),
            make_task("urgent", priority=2, urgency=70),
            make_task("free", priority=1),
        ]
        ordered = tasks_needing_resolution(tasks, blocks)
        assert [t.id for t in ordered] == ["urgent", "high", "low"]
