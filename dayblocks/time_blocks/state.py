"""
DayState - the one context object holding a day's mutable schedule.

Owned by DayPlanner and lent to ScheduleEngine for the length of a call.
commit() is the only path that replaces the grid, and it keeps the mirror
and the durable snapshot in step with it.
"""

import logging
from dataclasses import dataclass
from datetime import date as date_cls

from dayblocks.config import DEFAULT_CHANGE_LOG_LIMIT
from dayblocks.time_blocks.change_log import ChangeLog
from dayblocks.time_blocks.mirror import MirrorStore
from dayblocks.time_blocks.models import Block, Resolution
from dayblocks.time_blocks.selection import SelectionManager
from dayblocks.time_blocks.snapshots import SnapshotStore
from dayblocks.time_blocks.timeline import TimelineModel

logger = logging.getLogger(__name__)


@dataclass
class DayState:
    date: str
    timeline: TimelineModel
    mirror: MirrorStore
    snapshots: SnapshotStore
    changes: ChangeLog
    selection: SelectionManager

    @classmethod
    def new(
        cls,
        date: str | None = None,
        resolution: Resolution = Resolution.HALF_HOUR,
        change_log_limit: int = DEFAULT_CHANGE_LOG_LIMIT,
    ) -> "DayState":
        timeline = TimelineModel(resolution)
        return cls(
            date=date or date_cls.today().isoformat(),
            timeline=timeline,
            mirror=MirrorStore(),
            snapshots=SnapshotStore(),
            changes=ChangeLog(limit=change_log_limit),
            selection=SelectionManager(timeline),
        )

    @property
    def resolution(self) -> Resolution:
        return self.timeline.resolution

    @property
    def blocks(self) -> list[Block]:
        return self.timeline.blocks

    def commit(self, blocks: list[Block]) -> None:
        """Install a new grid and propagate it to mirror and snapshot."""
        self.timeline.replace(blocks)
        self.mirror.sync(blocks, self.resolution)
        self.snapshots.capture(self.resolution, blocks)

    def switch_resolution(self, resolution: Resolution) -> bool:
        """
        Re-grid the day at a new resolution.

        Returns False when already at that resolution.
        """
        resolution = Resolution(resolution)
        if resolution == self.resolution:
            return False

        # The grid being left is still the displayed one until now
        self.snapshots.capture(self.resolution, self.blocks)
        blocks = self.timeline.switch_to(resolution, self.snapshots, self.mirror)

        # Finer edits already in the mirror must survive the coarser view
        self.mirror.skip_next_sync()
        self.commit(blocks)

        self.changes.clear()
        self.selection.clear()
        return True
