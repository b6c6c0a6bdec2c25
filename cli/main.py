#!/usr/bin/env python3
"""
timeblocks CLI - schedule tasks from YAML into time windows.

Commands:
- windows   show the configured time windows
- schedule  schedule a task file and print the blocks
- urgency   rank a task file by urgency
- slots     free slots for one day
"""

import argparse
import json
import logging
import sys
from datetime import date, datetime

from timeblocks import config
from timeblocks.observability import configure_logging
from timeblocks.time_truth import Scheduler, ScheduleStatus, Task
from timeblocks.time_truth.windows import describe_window
from timeblocks.window_config import get_zone, load_tasks, load_time_windows

logger = logging.getLogger(__name__)


def print_header(text: str):
    """Print a section header."""
    print(f"\n{'═' * 50}")
    print(f"  {text}")
    print(f"{'═' * 50}")


def print_table(headers: list, rows: list, widths: list = None):
    """Print a simple table."""
    if not widths:
        widths = [max(len(str(row[i])) for row in [headers] + rows) for i in range(len(headers))]

    header_str = " │ ".join(str(h).ljust(w) for h, w in zip(headers, widths))
    print(header_str)
    print("─" * len(header_str))

    for row in rows:
        print(" │ ".join(str(c)[:w].ljust(w) for c, w in zip(row, widths)))


def _fmt(moment: datetime) -> str:
    return moment.strftime("%a %Y-%m-%d %H:%M")


def _parse_now(value: str | None, timezone: str | None) -> datetime | None:
    if not value:
        return None
    try:
        moment = datetime.fromisoformat(value)
    except ValueError as e:
        raise ValueError(f"Invalid --now timestamp (use ISO 8601): {value!r}") from e
    zone = get_zone(timezone)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=zone)
    # Windows are read in the clock's zone
    return moment.astimezone(zone)


def _build_scheduler(args) -> Scheduler:
    windows = load_time_windows(args.windows)
    now = _parse_now(args.now, args.timezone)
    zone = get_zone(args.timezone)
    clock = (lambda: now) if now else (lambda: datetime.now(zone))
    return Scheduler(
        windows=windows,
        clock=clock,
        urgency_strategy=args.strategy,
        slot_ordering=args.ordering,
    )


def cmd_windows(args) -> int:
    windows = load_time_windows(args.windows)

    if args.json:
        print(json.dumps([w.to_dict() for w in windows], indent=2))
        return 0

    print_header("TIME WINDOWS")
    for window in sorted(windows, key=lambda w: w.priority, reverse=True):
        print(f"  {describe_window(window)}")
    return 0


def cmd_schedule(args) -> int:
    scheduler = _build_scheduler(args)
    tasks = load_tasks(args.tasks, timezone=args.timezone)

    summary = scheduler.reschedule_all_tasks(tasks)
    skipped = [t for t in tasks if t.id not in summary.results]
    conflicts = scheduler.find_conflicts()

    if args.json:
        print(
            json.dumps(
                {
                    "results": {tid: r.to_dict() for tid, r in summary.results.items()},
                    "skipped": [t.id for t in skipped],
                    "conflicts": [c.to_dict() for c in conflicts],
                },
                indent=2,
            )
        )
        return 0 if summary.failed == 0 and summary.partial == 0 else 2

    print_header(f"SCHEDULE (now {_fmt(scheduler.now())})")
    rows = []
    for block in sorted(scheduler.get_scheduled_blocks(), key=lambda b: b.start):
        rows.append([block.task_id, _fmt(block.start), block.end.strftime("%H:%M"), block.duration, block.time_window_id])
    if rows:
        print_table(["Task", "Start", "End", "Min", "Window"], rows)
    else:
        print("No blocks scheduled.")

    print_header("RESULTS")
    for task_id, result in summary.results.items():
        marker = "✓" if result.status == ScheduleStatus.SUCCESS else "✗"
        print(f"  {marker} {task_id}: [{result.status.value}] {result.message}")
    for task in skipped:
        print(f"  - {task.id}: not schedulable (completed, auto_schedule off, or missing due date/duration)")

    if conflicts:
        print_header("CONFLICTS")
        for c in conflicts:
            print(f"  {c.block_a_id} ↔ {c.block_b_id}: {_fmt(c.overlap_start)} - {c.overlap_end.strftime('%H:%M')}")

    print(f"\n{summary.scheduled} scheduled, {summary.partial} partial, {summary.failed} failed")
    return 0 if summary.failed == 0 and summary.partial == 0 else 2


def cmd_urgency(args) -> int:
    scheduler = _build_scheduler(args)
    tasks: list[Task] = load_tasks(args.tasks, timezone=args.timezone)
    scores = scheduler.refresh_urgency(tasks)
    ranked = sorted(tasks, key=lambda t: (-scores[t.id], t.priority))

    if args.json:
        print(json.dumps([{"id": t.id, "urgency": scores[t.id]} for t in ranked], indent=2))
        return 0

    print_header("URGENCY")
    rows = [
        [t.id, f"{scores[t.id]:.0f}", t.priority, _fmt(t.due_date) if t.due_date else "-", t.estimated_duration or "-"]
        for t in ranked
    ]
    print_table(["Task", "Urgency", "P", "Due", "Min"], rows)
    return 0


def cmd_slots(args) -> int:
    scheduler = _build_scheduler(args)
    try:
        day = date.fromisoformat(args.day) if args.day else scheduler.now().date()
    except ValueError as e:
        raise ValueError(f"Invalid day (use YYYY-MM-DD): {args.day!r}") from e

    slots = scheduler.get_available_time_slots(day, args.duration)

    if args.json:
        print(
            json.dumps(
                [
                    {"start": s.start.isoformat(), "end": s.end.isoformat(), "window": s.time_window_id}
                    for s in slots
                ],
                indent=2,
            )
        )
        return 0

    print_header(f"FREE SLOTS {day.isoformat()} (≥ {args.duration} min)")
    if not slots:
        print("No free slots.")
        return 0
    print_table(
        ["Start", "End", "Min", "Window"],
        [[s.start.strftime("%H:%M"), s.end.strftime("%H:%M"), s.duration, s.time_window_id] for s in slots],
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="timeblocks", description="Schedule tasks into time windows.")
    p.add_argument("--windows", default=None, help="Time window YAML (default: config/time_windows.yaml)")
    p.add_argument("--timezone", default=None, help=f"IANA timezone (default: {config.TIMEZONE})")
    p.add_argument("--now", default=None, help="Pretend the current time is this ISO timestamp")
    p.add_argument("--strategy", default=None, help="Urgency strategy: logarithmic or linear")
    p.add_argument("--ordering", default=None, help="Slot ordering: chronological or ranked")
    p.add_argument("--log-level", default=config.LOG_LEVEL)
    p.add_argument("--json", action="store_true", help="Machine-readable output")
    sub = p.add_subparsers(dest="cmd", required=True)

    w = sub.add_parser("windows", help="Show time windows")
    w.set_defaults(func=cmd_windows)

    s = sub.add_parser("schedule", help="Schedule tasks from a YAML file")
    s.add_argument("tasks", help="Task YAML file")
    s.set_defaults(func=cmd_schedule)

    u = sub.add_parser("urgency", help="Rank tasks by urgency")
    u.add_argument("tasks", help="Task YAML file")
    u.set_defaults(func=cmd_urgency)

    sl = sub.add_parser("slots", help="Free slots for one day")
    sl.add_argument("--day", default=None, help="YYYY-MM-DD (default: today)")
    sl.add_argument("--duration", type=int, default=30, help="Minimum slot length in minutes")
    sl.set_defaults(func=cmd_slots)

    return p


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, json_format=False)

    try:
        return args.func(args)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
