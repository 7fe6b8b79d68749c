"""
Time Blocks Module

The day grid and everything that mutates it.

Objects:
- Block (one interval at the active resolution, at most one task + goal)
- TimelineModel (ordered grid for the active resolution)
- MirrorStore (permanent minute-level shadow of the day)
- SnapshotStore (durable per-resolution copies for 30 and 3 minutes)
- ChangeLog (bounded most-recent-first history with rollback images)
- ScheduleEngine (assign / push / move / expand / bulk move / pin)

Invariants:
- Blocks tile the whole day with no gaps or overlaps
- A pinned block's task is never cleared or overwritten by a cascade
- Every accepted mutation appends exactly one ChangeRecord
- Finer-resolution edits never aggregate back into the 30-minute grid
"""

from .change_log import ChangeLog, ChangeRecord, ChangeType
from .engine import ScheduleEngine
from .mirror import MirrorStore
from .models import (
    Block,
    BlockStatus,
    EngineResult,
    GoalTag,
    MirrorCell,
    Resolution,
    Task,
    TaskOrigin,
    TimeStatus,
    block_id,
    parse_block_id,
)
from .selection import SelectionManager
from .snapshots import SnapshotStore
from .state import DayState
from .timeline import TimelineModel, generate_blocks, time_status

__all__ = [
    "Block",
    "BlockStatus",
    "ChangeLog",
    "ChangeRecord",
    "ChangeType",
    "DayState",
    "EngineResult",
    "GoalTag",
    "MirrorCell",
    "MirrorStore",
    "Resolution",
    "ScheduleEngine",
    "SelectionManager",
    "SnapshotStore",
    "Task",
    "TaskOrigin",
    "TimeStatus",
    "TimelineModel",
    "block_id",
    "generate_blocks",
    "parse_block_id",
    "time_status",
]
