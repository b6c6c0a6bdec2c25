"""
YAML configuration for time windows and task lists.

Reads config/time_windows.yaml (or a given path) and task files, validates
them with pydantic and converts them to engine dataclasses.

time_windows.yaml:

    time_windows:
      - id: work
        name: Work Hours
        priority: 10
        schedule:
          mon: [{start: "09:00", end: "17:00"}]
          tue: [{start: "09:00", end: "17:00"}]

Weekdays may be given as names (mon..sun) or numbers (0 = Monday).

tasks.yaml:

    tasks:
      - id: report
        title: Quarterly report
        due_date: 2026-10-14T17:00:00
        estimated_duration: 90
        allowed_time_windows: [work]
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from . import config
from .paths import default_windows_path
from .time_truth.models import ConflictBehavior, Task, TimeDefense, TimeRange, TimeWindow, parse_clock
from .time_truth.windows import default_time_windows

logger = logging.getLogger(__name__)

WEEKDAY_KEYS = {
    "mon": 0,
    "monday": 0,
    "tue": 1,
    "tuesday": 1,
    "wed": 2,
    "wednesday": 2,
    "thu": 3,
    "thursday": 3,
    "fri": 4,
    "friday": 4,
    "sat": 5,
    "saturday": 5,
    "sun": 6,
    "sunday": 6,
}


# =============================================================================
# SCHEMA
# =============================================================================


class TimeRangeModel(BaseModel):
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def _valid_clock(cls, value: str) -> str:
        parse_clock(value)
        return value

    @model_validator(mode="after")
    def _end_not_before_start(self) -> "TimeRangeModel":
        # Equal start and end is allowed; the engine skips empty ranges
        if parse_clock(self.end) < parse_clock(self.start):
            raise ValueError(f"Range ends before it starts: {self.start}-{self.end}")
        return self


class TimeWindowModel(BaseModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    color: str | None = None
    priority: int = 0
    schedule: dict[int, list[TimeRangeModel]] = Field(default_factory=dict)

    @field_validator("schedule", mode="before")
    @classmethod
    def _weekday_keys(cls, value):
        if not isinstance(value, dict):
            return value
        normalized = {}
        for key, ranges in value.items():
            day = WEEKDAY_KEYS.get(key.strip().lower(), key) if isinstance(key, str) else key
            try:
                day = int(day)
            except (TypeError, ValueError):
                raise ValueError(f"Unknown weekday: {key!r}") from None
            if not 0 <= day <= 6:
                raise ValueError(f"Weekday out of range (0 = Monday ... 6 = Sunday): {key!r}")
            normalized.setdefault(day, []).extend(ranges or [])
        return normalized

    def to_window(self) -> TimeWindow:
        return TimeWindow(
            id=self.id,
            name=self.name,
            color=self.color,
            priority=self.priority,
            schedule={
                day: tuple(TimeRange(r.start, r.end) for r in ranges)
                for day, ranges in self.schedule.items()
            },
        )


class TimeWindowsFile(BaseModel):
    time_windows: list[TimeWindowModel] = Field(min_length=1)

    @model_validator(mode="after")
    def _unique_ids(self) -> "TimeWindowsFile":
        seen = set()
        for window in self.time_windows:
            if window.id in seen:
                raise ValueError(f"Duplicate time window id: {window.id}")
            seen.add(window.id)
        return self


class TaskModel(BaseModel):
    id: str = Field(min_length=1)
    title: str = ""
    due_date: datetime | None = None
    estimated_duration: int | None = None
    creation_date: datetime | None = None
    priority: int = Field(default=3, ge=1, le=4)
    split_up_block: int | None = Field(default=None, gt=0)
    time_defense: Literal["always-busy", "always-free"] | None = None
    allowed_time_windows: list[str] = Field(default_factory=list)
    preferred_time_windows: list[str] = Field(default_factory=list)
    urgency: float | None = Field(default=None, ge=0, le=100)
    auto_schedule: bool | None = None
    completed: bool = False
    conflict_behavior: Literal["reschedule", "keep", "prompt"] = "reschedule"

    def to_task(self, zone: ZoneInfo) -> Task:
        return Task(
            id=self.id,
            title=self.title,
            due_date=_localize(self.due_date, zone),
            estimated_duration=self.estimated_duration,
            creation_date=_localize(self.creation_date, zone),
            priority=self.priority,
            split_up_block=self.split_up_block,
            time_defense=TimeDefense(self.time_defense) if self.time_defense else None,
            allowed_time_windows=list(self.allowed_time_windows),
            preferred_time_windows=list(self.preferred_time_windows),
            urgency=self.urgency,
            auto_schedule=self.auto_schedule,
            completed=self.completed,
            conflict_behavior=ConflictBehavior(self.conflict_behavior),
        )


class TasksFile(BaseModel):
    tasks: list[TaskModel] = Field(default_factory=list)


# =============================================================================
# LOADING
# =============================================================================


def get_zone(name: str | None = None) -> ZoneInfo:
    """ZoneInfo for name (default: TIMEBLOCKS_TIMEZONE)."""
    zone_name = name or config.TIMEZONE
    try:
        return ZoneInfo(zone_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {zone_name!r}") from e


def _localize(value: datetime | None, zone: ZoneInfo) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=zone)


def _read_yaml(path: Path) -> dict:
    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping at the top level")
    return data


def parse_time_windows(data: dict, source: str = "<data>") -> list[TimeWindow]:
    try:
        parsed = TimeWindowsFile.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid time window config in {source}: {e}") from e
    return [w.to_window() for w in parsed.time_windows]


def load_time_windows(path: str | Path | None = None) -> list[TimeWindow]:
    """
    Load time windows from YAML.

    With no path, the default location is used; if that file does not exist
    the built-in Work Hours / Personal Time windows are returned.

    Raises:
        FileNotFoundError if an explicit path doesn't exist.
        ValueError if the file is not valid YAML or fails validation.
    """
    if path is None:
        config_path = default_windows_path()
        if not config_path.exists():
            logger.info(f"No time window config at {config_path}, using default windows")
            return default_time_windows()
    else:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Time window config not found: {config_path}")

    windows = parse_time_windows(_read_yaml(config_path), source=str(config_path))
    logger.info(f"Loaded {len(windows)} time windows from {config_path}")
    return windows


def load_tasks(path: str | Path, timezone: str | None = None) -> list[Task]:
    """
    Load tasks from YAML. Naive timestamps are read in the configured timezone.

    Raises:
        FileNotFoundError if the file doesn't exist.
        ValueError if the file is not valid YAML or fails validation.
    """
    tasks_path = Path(path)
    if not tasks_path.exists():
        raise FileNotFoundError(f"Task file not found: {tasks_path}")

    zone = get_zone(timezone)
    try:
        parsed = TasksFile.model_validate(_read_yaml(tasks_path))
    except ValidationError as e:
        raise ValueError(f"Invalid task file {tasks_path}: {e}") from e

    seen = set()
    for task in parsed.tasks:
        if task.id in seen:
            raise ValueError(f"Duplicate task id in {tasks_path}: {task.id}")
        seen.add(task.id)

    tasks = [t.to_task(zone) for t in parsed.tasks]
    logger.info(f"Loaded {len(tasks)} tasks from {tasks_path}")
    return tasks
