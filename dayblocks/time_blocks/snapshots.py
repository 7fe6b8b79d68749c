"""
Snapshot Store - last displayed state of the durable resolutions.

Only 30 and 3 minute grids are kept. A snapshot is replaced only while its
own resolution is active; edits at other resolutions never reach it.
"""

import logging

from dayblocks.time_blocks.models import Block, Resolution

logger = logging.getLogger(__name__)

DURABLE_RESOLUTIONS = (Resolution.HALF_HOUR, Resolution.MICRO)


class SnapshotStore:
    def __init__(self):
        self._snapshots: dict[Resolution, list[Block]] = {}

    def capture(self, resolution: Resolution, blocks: list[Block]) -> bool:
        """Store a deep copy of blocks. Returns False for non-durable resolutions."""
        if resolution not in DURABLE_RESOLUTIONS:
            return False
        self._snapshots[Resolution(resolution)] = [b.copy() for b in blocks]
        return True

    def restore(self, resolution: Resolution) -> list[Block] | None:
        snapshot = self._snapshots.get(resolution)
        if snapshot is None:
            return None
        return [b.copy() for b in snapshot]

    def has(self, resolution: Resolution) -> bool:
        return resolution in self._snapshots

    def clear(self) -> None:
        self._snapshots.clear()
