"""Tests for the block store and free-slot search."""

from datetime import date, timedelta

import pytest
from tests.fixtures import at, make_block, make_window

from timeblocks.time_truth.availability import (
    NEUTRAL_QUALITY,
    find_available_slots,
    find_day_slots,
    free_gaps,
    slot_quality,
)
from timeblocks.time_truth.block_store import BlockStore
from timeblocks.time_truth.models import TimeDefense


@pytest.fixture
def store():
    return BlockStore()


def spans(slots):
    return [(s.start, s.end) for s in slots]


class TestBlockStore:
    def test_block_ids_count_per_task(self, store):
        assert store.next_block_id("t1") == "t1-block-0"
        assert store.next_block_id("t1") == "t1-block-1"
        assert store.next_block_id("t2") == "t2-block-0"

    def test_add_back_references_task(self, store, make_task):
        task = make_task("t1")
        store.add(make_block("t1-block-0", "t1", at(0, 9), at(0, 10)), task)

        assert "t1-block-0" in store
        assert task.scheduled_blocks == ["t1-block-0"]
        assert store.get_task("t1") is task

    def test_rejects_duplicates_and_inverted_blocks(self, store):
        store.add(make_block("x", "t1", at(0, 9), at(0, 10)))
        with pytest.raises(ValueError):
            store.add(make_block("x", "t1", at(0, 11), at(0, 12)))
        with pytest.raises(ValueError):
            store.add(make_block("y", "t1", at(0, 10), at(0, 10)))

    def test_remove_for_task_resets_numbering(self, store, make_task):
        task = make_task("t1")
        for _ in range(2):
            block_id = store.next_block_id("t1")
            store.add(make_block(block_id, "t1", at(0, 9), at(0, 10)), task)

        removed = store.remove_for_task("t1")

        assert len(removed) == 2
        assert len(store) == 0
        assert task.scheduled_blocks == []
        assert store.next_block_id("t1") == "t1-block-0"

    def test_clear_forgets_tasks_and_back_references(self, store, make_task):
        task = make_task("t1")
        store.add(make_block(store.next_block_id("t1"), "t1", at(0, 9), at(0, 10)), task)
        store.add(make_block(store.next_block_id("t2"), "t2", at(0, 11), at(0, 12)), make_task("t2"))

        store.clear()

        assert len(store) == 0
        assert store.task_ids() == []
        assert store.registered_tasks() == []
        assert store.get_task("t1") is None
        assert task.scheduled_blocks == []
        assert store.next_block_id("t1") == "t1-block-0"

    def test_update_recomputes_duration(self, store):
        store.add(make_block("x", "t1", at(0, 9), at(0, 10)))
        block = store.update("x", at(0, 13), at(0, 14, 45))
        assert block.duration == 105
        with pytest.raises(ValueError):
            store.update("x", at(0, 14), at(0, 13))
        assert store.update("missing", at(0, 9), at(0, 10)) is None

    def test_in_timeframe_sorted(self, store):
        store.add(make_block("late", "t1", at(0, 15), at(0, 16)))
        store.add(make_block("early", "t2", at(0, 9), at(0, 10)))
        store.add(make_block("tomorrow", "t3", at(1, 9), at(1, 10)))
        assert [b.id for b in store.in_timeframe(at(0, 0), at(1, 0))] == ["early", "late"]

    def test_unknown_owner_is_not_displaceable(self, store, make_task):
        store.add(make_block("x", "ghost", at(0, 9), at(0, 10)))
        assert not store.is_displaceable("ghost")
        store.register_task(make_task("free", time_defense=TimeDefense.ALWAYS_FREE))
        assert store.is_displaceable("free")


class TestSlotQuality:
    def test_relative_to_best_window(self, work_window):
        assert slot_quality(work_window, 10) == 100
        assert slot_quality(work_window, 20) == 50

    def test_neutral_without_priorities(self, always_window):
        assert slot_quality(always_window, 0) == NEUTRAL_QUALITY


class TestFindAvailableSlots:
    def test_window_occurrences_until_end(self, store, work_window):
        slots = find_available_slots(store, at(0, 8), at(1, 12), 30, [work_window])
        assert spans(slots) == [(at(0, 9), at(0, 17)), (at(1, 9), at(1, 12))]
        assert all(s.time_window_id == "work" for s in slots)
        assert slots[0].duration == 480

    def test_blocks_split_slots(self, store, work_window):
        store.add(make_block("b", "other", at(0, 11), at(0, 12)))
        slots = find_available_slots(store, at(0, 9), at(0, 17), 30, [work_window])
        assert spans(slots) == [(at(0, 9), at(0, 11)), (at(0, 12), at(0, 17))]

    def test_short_gaps_skipped(self, store, work_window):
        store.add(make_block("a", "other", at(0, 9, 20), at(0, 12)))
        slots = find_available_slots(store, at(0, 9), at(0, 17), 30, [work_window])
        assert spans(slots) == [(at(0, 12), at(0, 17))]

    def test_block_spanning_window_start(self, store, work_window):
        store.add(make_block("a", "other", at(0, 8), at(0, 10)))
        slots = find_available_slots(store, at(0, 7), at(0, 17), 30, [work_window])
        assert spans(slots) == [(at(0, 10), at(0, 17))]

    def test_adjacent_windows_give_separate_slots(self, store, default_windows):
        slots = find_available_slots(store, at(0, 8), at(0, 12), 30, default_windows)
        assert spans(slots) == [(at(0, 8), at(0, 9)), (at(0, 9), at(0, 12))]

    def test_fixed_request_ignores_always_free_blocks(self, store, work_window, make_task):
        free_task = make_task("flex", time_defense=TimeDefense.ALWAYS_FREE)
        store.add(make_block("flex-block-0", "flex", at(0, 10), at(0, 11)), free_task)

        normal = find_available_slots(store, at(0, 9), at(0, 12), 30, [work_window])
        fixed = find_available_slots(store, at(0, 9), at(0, 12), 30, [work_window], is_fixed_request=True)

        assert spans(normal) == [(at(0, 9), at(0, 10)), (at(0, 11), at(0, 12))]
        assert spans(fixed) == [(at(0, 9), at(0, 12))]

    def test_busy_blocks_still_respected_by_fixed_requests(self, store, work_window, make_task):
        busy = make_task("busy", time_defense=TimeDefense.ALWAYS_BUSY)
        store.add(make_block("busy-block-0", "busy", at(0, 10), at(0, 11)), busy)
        slots = find_available_slots(store, at(0, 9), at(0, 12), 30, [work_window], is_fixed_request=True)
        assert spans(slots) == [(at(0, 9), at(0, 10)), (at(0, 11), at(0, 12))]

    def test_empty_inputs(self, store, work_window):
        assert find_available_slots(store, at(0, 9), at(0, 17), 30, []) == []
        assert find_available_slots(store, at(0, 17), at(0, 9), 30, [work_window]) == []

    def test_quality_from_window_priority(self, store, default_windows):
        slots = find_available_slots(store, at(0, 8), at(0, 10), 30, default_windows)
        assert [(s.time_window_id, s.quality) for s in slots] == [("personal", 50), ("work", 100)]


class TestFreeGaps:
    def test_gaps_between_blocks(self, work_window):
        blocks = [
            make_block("a", "t1", at(0, 10), at(0, 11)),
            make_block("b", "t2", at(0, 10, 30), at(0, 12)),
            make_block("c", "t3", at(0, 12, 10), at(0, 13)),
        ]
        gaps = free_gaps(at(0, 9), at(0, 17), blocks, 15, work_window)
        assert spans(gaps) == [(at(0, 9), at(0, 10)), (at(0, 13), at(0, 17))]

    def test_blocks_outside_range_ignored(self, work_window):
        blocks = [make_block("a", "t1", at(1, 10), at(1, 11))]
        assert spans(free_gaps(at(0, 9), at(0, 17), blocks, 15, work_window)) == [(at(0, 9), at(0, 17))]


class TestFindDaySlots:
    def test_each_range_reported_separately(self, store, default_windows):
        store.add(make_block("a", "t1", at(0, 10), at(0, 11)))
        slots = find_day_slots(store, date(2026, 10, 12), default_windows, 60, tz=at(0, 0).tzinfo)

        assert [(s.time_window_id, s.start, s.end) for s in slots] == [
            ("work", at(0, 9), at(0, 10)),
            ("work", at(0, 11), at(0, 17)),
            ("personal", at(0, 5), at(0, 9)),
            ("personal", at(0, 17), at(0, 23)),
        ]

    def test_weekend(self, store, default_windows):
        slots = find_day_slots(store, date(2026, 10, 17), default_windows, 30, tz=at(0, 0).tzinfo)
        assert spans(slots) == [(at(5, 5), at(5, 23))]
        assert slots[0].duration == int(timedelta(hours=18).total_seconds() // 60)
