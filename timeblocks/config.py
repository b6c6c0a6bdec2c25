"""
Centralized configuration for timeblocks.

Engine settings that vary by deployment belong here.
Override via environment variables where marked.
"""

import os

# ============================================================
# Scheduling
# ============================================================

URGENCY_STRATEGY: str = os.environ.get("TIMEBLOCKS_URGENCY_STRATEGY", "logarithmic")
"""Urgency formula: "logarithmic" (default) or "linear"."""

SLOT_ORDERING: str = os.environ.get("TIMEBLOCKS_SLOT_ORDERING", "chronological")
"""How candidate slots are consumed: "chronological" (default) or "ranked"."""

DEFAULT_BLOCK_MINUTES: int = int(os.environ.get("TIMEBLOCKS_DEFAULT_BLOCK_MINUTES", "30"))
"""Minimum block size for tasks without split_up_block (capped at the task's duration)."""

# ============================================================
# Time
# ============================================================

TIMEZONE: str = os.environ.get("TIMEBLOCKS_TIMEZONE", "UTC")
"""IANA zone used by the CLI for naive timestamps and for "now"."""

# ============================================================
# Logging
# ============================================================

LOG_LEVEL: str = os.environ.get("TIMEBLOCKS_LOG_LEVEL", "INFO")
"""Root log level for the CLI."""
