"""
Observability for the scheduling engine: structured logs tagged by pass.
"""

from .context import SchedulingPass, get_pass_id, get_task_id
from .logging import HumanFormatter, JSONFormatter, configure_logging

__all__ = [
    "SchedulingPass",
    "get_pass_id",
    "get_task_id",
    "JSONFormatter",
    "HumanFormatter",
    "configure_logging",
]
