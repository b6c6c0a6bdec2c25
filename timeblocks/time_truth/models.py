"""
Time Truth data model.

Objects:
- TimeWindow (recurring weekly availability)
- Task (consumed from collaborators, never owned)
- TimeBlockInfo (a dated placement of part of a task)
- TimeSlot / SchedulingContext / RuleResult (transient, one scheduling call)
- TaskScheduleResult (outcome of scheduling one task)

Blocks reference tasks by id only. Tasks reference blocks by id only.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta, tzinfo
from enum import StrEnum


MINUTES_PER_DAY = 24 * 60


class TimeDefense(StrEnum):
    ALWAYS_BUSY = "always-busy"  # blocks resist other tasks
    ALWAYS_FREE = "always-free"  # blocks may be displaced


class ConflictBehavior(StrEnum):
    RESCHEDULE = "reschedule"
    KEEP = "keep"
    PROMPT = "prompt"


class ScheduleStatus(StrEnum):
    SUCCESS = "success"
    PARTIALLY_SCHEDULED = "partially_scheduled"
    OVERDUE = "overdue"
    NO_MATCHING_WINDOWS = "no_matching_windows"
    INVALID_INPUT = "invalid_input"


def parse_clock(value: str) -> int:
    """
    Convert "HH:MM" to minutes since midnight.

    "24:00" is accepted and maps to the end of the day.
    """
    try:
        hours_str, minutes_str = value.split(":")
        hours, minutes = int(hours_str), int(minutes_str)
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Invalid time format (use HH:MM): {value!r}") from e

    if len(hours_str) != 2 or len(minutes_str) != 2:
        raise ValueError(f"Invalid time format (use HH:MM): {value!r}")
    if hours == 24 and minutes == 0:
        return MINUTES_PER_DAY
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ValueError(f"Time out of range: {value!r}")
    return hours * 60 + minutes


def format_clock(minute_of_day: int) -> str:
    return f"{minute_of_day // 60:02d}:{minute_of_day % 60:02d}"


def to_utc(moment: datetime) -> datetime:
    """
    The same instant in UTC. Naive datetimes are returned unchanged.

    Aware datetimes sharing a tzinfo subtract and compare by wall clock, which
    is off by the DST shift across a transition, so elapsed time and ordering
    go through UTC.
    """
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(UTC)


def to_zone(moment: datetime, zone: tzinfo | None) -> datetime:
    """moment expressed in zone (unchanged when either side is naive)."""
    if zone is None or moment.tzinfo is None:
        return moment
    return moment.astimezone(zone)


def elapsed_seconds(start: datetime, end: datetime) -> float:
    return (to_utc(end) - to_utc(start)).total_seconds()


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole elapsed minutes from start to end (truncated)."""
    return int(elapsed_seconds(start, end) // 60)


def add_minutes(moment: datetime, minutes: int) -> datetime:
    """moment plus elapsed minutes, expressed in moment's own zone."""
    if moment.tzinfo is None:
        return moment + timedelta(minutes=minutes)
    return (to_utc(moment) + timedelta(minutes=minutes)).astimezone(moment.tzinfo)


def ceil_to_minute(value: datetime) -> datetime:
    """Round up to the next whole minute (no-op on exact minutes)."""
    if value.second == 0 and value.microsecond == 0:
        return value
    return add_minutes(value.replace(second=0, microsecond=0), 1)


@dataclass(frozen=True)
class TimeRange:
    """A wall-clock range within one day, e.g. 09:00-17:00."""

    start: str
    end: str

    @property
    def start_minute(self) -> int:
        return parse_clock(self.start)

    @property
    def end_minute(self) -> int:
        return parse_clock(self.end)

    @property
    def is_empty(self) -> bool:
        return self.end_minute <= self.start_minute

    def contains(self, minute_of_day: int) -> bool:
        return self.start_minute <= minute_of_day < self.end_minute

    def to_dict(self) -> dict:
        return {"start": self.start, "end": self.end}


@dataclass(frozen=True)
class TimeWindow:
    """
    Recurring weekly availability.

    schedule maps weekday (0 = Monday ... 6 = Sunday) to its ranges.
    priority breaks ties when windows are valid at the same time (higher wins).
    """

    id: str
    name: str
    schedule: dict[int, tuple[TimeRange, ...]] = field(default_factory=dict)
    priority: int = 0
    color: str | None = None

    def ranges_for(self, weekday: int) -> list[TimeRange]:
        """Non-empty ranges for a weekday, ordered by start."""
        ranges = [r for r in self.schedule.get(weekday, ()) if not r.is_empty]
        return sorted(ranges, key=lambda r: r.start_minute)

    @property
    def active_days(self) -> list[int]:
        return sorted(day for day in self.schedule if self.ranges_for(day))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "priority": self.priority,
            "schedule": {
                day: [r.to_dict() for r in ranges] for day, ranges in sorted(self.schedule.items())
            },
        }


@dataclass
class Task:
    """Minimal task record consumed by the engine."""

    id: str
    title: str = ""
    due_date: datetime | None = None
    estimated_duration: int | None = None  # minutes
    creation_date: datetime | None = None
    priority: int = 3  # 1 highest - 4 lowest
    split_up_block: int | None = None  # minimum chunk, minutes
    time_defense: TimeDefense | None = None
    allowed_time_windows: list[str] = field(default_factory=list)
    preferred_time_windows: list[str] = field(default_factory=list)
    urgency: float | None = None  # cached score
    auto_schedule: bool | None = None
    completed: bool = False
    conflict_behavior: ConflictBehavior = ConflictBehavior.RESCHEDULE
    scheduled_blocks: list[str] = field(default_factory=list)  # block ids


@dataclass
class TimeBlockInfo:
    id: str
    task_id: str
    start: datetime
    end: datetime
    duration: int  # minutes
    time_window_id: str
    is_completed: bool = False

    def overlaps(self, other: "TimeBlockInfo") -> bool:
        return to_utc(self.start) < to_utc(other.end) and to_utc(other.start) < to_utc(self.end)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "duration": self.duration,
            "time_window_id": self.time_window_id,
            "is_completed": self.is_completed,
        }


@dataclass
class TimeSlot:
    """A free stretch of time inside one window occurrence."""

    start: datetime
    end: datetime
    time_window_id: str
    quality: float = 50.0  # 0-100, higher is better
    duration: int = 0

    def __post_init__(self):
        if not self.duration:
            self.duration = minutes_between(self.start, self.end)


@dataclass
class SchedulingContext:
    task: Task
    available_slots: list[TimeSlot]
    existing_blocks: list[TimeBlockInfo]
    deadline: datetime
    now: datetime
    min_block_size: int


@dataclass
class RuleResult:
    selected_slots: list[TimeSlot]
    message: str
    remaining_duration: int


@dataclass
class TaskScheduleResult:
    success: bool
    message: str
    status: ScheduleStatus
    time_blocks: list[TimeBlockInfo] = field(default_factory=list)
    overdue: bool = False
    unscheduled_minutes: int = 0

    @property
    def scheduled_minutes(self) -> int:
        return sum(b.duration for b in self.time_blocks)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "status": self.status.value,
            "time_blocks": [b.to_dict() for b in self.time_blocks],
            "overdue": self.overdue,
            "unscheduled_minutes": self.unscheduled_minutes,
        }
