"""
Scheduling-pass context, carried through contextvars.

Every schedule_task call runs inside a SchedulingPass so that log lines from
the finder, the rules and the allocator can be tied back to one task.
"""

import contextvars
import uuid
from typing import Optional

_pass_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "pass_id", default=None
)
_task_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "task_id", default=None
)


def get_pass_id() -> Optional[str]:
    """Get the current scheduling pass ID from context."""
    return _pass_id_var.get()


def get_task_id() -> Optional[str]:
    """Get the task being scheduled in the current pass, if any."""
    return _task_id_var.get()


def generate_pass_id() -> str:
    return f"pass-{uuid.uuid4().hex[:12]}"


class SchedulingPass:
    """
    Context manager scoping one scheduling pass.

    Usage:
        with SchedulingPass(task_id="t1") as ctx:
            logger.info("Scheduling")  # formatted with ctx.pass_id

    Nested passes (reschedule_all_tasks -> schedule_task) keep the outer ID.
    """

    def __init__(self, task_id: Optional[str] = None, pass_id: Optional[str] = None):
        self.pass_id = pass_id or get_pass_id() or generate_pass_id()
        self.task_id = task_id
        self._tokens: list[tuple[contextvars.ContextVar, contextvars.Token]] = []

    def __enter__(self) -> "SchedulingPass":
        self._tokens.append((_pass_id_var, _pass_id_var.set(self.pass_id)))
        if self.task_id is not None:
            self._tokens.append((_task_id_var, _task_id_var.set(self.task_id)))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)
