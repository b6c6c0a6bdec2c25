"""
Test fixtures for deterministic scheduling tests.

This module provides:
- a fixed clock anchored on Monday 2026-10-12 08:00 UTC
- window and block builders
"""

from .timeline import BERLIN, MONDAY_0800, FixedClock, at, make_block, make_window

__all__ = ["BERLIN", "MONDAY_0800", "FixedClock", "at", "make_block", "make_window"]
