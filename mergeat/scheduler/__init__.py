# Entrius 2025

"""
Merge scheduling: comment commands, schedule storage on the PR, and the sweep.
"""

from .commands import CommandHandler, handle_comment
from .store import ScheduleStore
from .sweep import MergeError, MergeSweeper, process_scheduled_merges
from .time_parser import ScheduleParseError, parse_schedule_time, validate_schedule_time

__all__ = [
    "CommandHandler",
    "handle_comment",
    "ScheduleStore",
    "MergeError",
    "MergeSweeper",
    "process_scheduled_merges",
    "ScheduleParseError",
    "parse_schedule_time",
    "validate_schedule_time",
]
