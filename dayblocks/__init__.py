# DAYBLOCKS - Time-block day planner core
"""
Exports for hosts embedding the planner.
"""

from .config import PlannerSettings, load_settings
from .contracts import DayStatePayload
from .errors import DayblocksError, SettingsError, UnknownBlockError
from .planner import DayPlanner
from .progress import Outcome, ProgressSession, TickScheduler
from .time_blocks import (
    Block,
    BlockStatus,
    DayState,
    EngineResult,
    GoalTag,
    Resolution,
    ScheduleEngine,
    Task,
    TaskOrigin,
)

__version__ = "0.1.0"

__all__ = [
    "Block",
    "BlockStatus",
    "DayPlanner",
    "DayState",
    "DayStatePayload",
    "DayblocksError",
    "EngineResult",
    "GoalTag",
    "Outcome",
    "PlannerSettings",
    "ProgressSession",
    "Resolution",
    "ScheduleEngine",
    "SettingsError",
    "Task",
    "TaskOrigin",
    "TickScheduler",
    "UnknownBlockError",
    "load_settings",
]
