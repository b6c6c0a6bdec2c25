# timeblocks - task-to-time-block scheduling
"""
Schedules tasks into recurring time windows before their due dates.

The engine lives in timeblocks.time_truth; configuration loading in
timeblocks.window_config.
"""

__version__ = "0.3.0"
