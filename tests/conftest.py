"""
Test configuration - repo root on sys.path, a fixed clock and window fixtures.

All scheduling tests run against Monday 2026-10-12 08:00 UTC unless they
move the clock themselves.
"""

import sys
from datetime import timedelta
from pathlib import Path

import pytest

# Add repo root to sys.path so tests can import timeblocks.*, cli.* and tests.fixtures
REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from tests.fixtures import MONDAY_0800, FixedClock, make_window  # noqa: E402
from timeblocks.time_truth import Scheduler, Task  # noqa: E402
from timeblocks.time_truth.windows import default_time_windows  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep tests away from the real ~/.timeblocks."""
    monkeypatch.setenv("TIMEBLOCKS_HOME", str(tmp_path / "home"))


@pytest.fixture
def now():
    return MONDAY_0800


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def default_windows():
    return default_time_windows()


@pytest.fixture
def work_window():
    return make_window("work", range(0, 5), "09:00", "17:00", priority=10)


@pytest.fixture
def always_window():
    return make_window("always", range(0, 7), "00:00", "24:00", priority=1)


@pytest.fixture
def scheduler(default_windows, clock):
    return Scheduler(
        windows=default_windows,
        clock=clock,
        urgency_strategy="logarithmic",
        slot_ordering="chronological",
        default_block_minutes=30,
    )


@pytest.fixture
def work_scheduler(work_window, clock):
    return Scheduler(
        windows=[work_window],
        clock=clock,
        urgency_strategy="logarithmic",
        slot_ordering="chronological",
        default_block_minutes=30,
    )


@pytest.fixture
def make_task():
    """Task factory with defaults relative to the fixed clock (due in two days, 60 min)."""

    def _make(task_id: str = "t1", **overrides) -> Task:
        fields = {
            "title": task_id.replace("-", " ").title(),
            "due_date": MONDAY_0800 + timedelta(days=2),
            "estimated_duration": 60,
            "creation_date": MONDAY_0800 - timedelta(days=1),
        }
        fields.update(overrides)
        return Task(id=task_id, **fields)

    return _make
