"""
Timeline Model - owns the ordered block grid for the active resolution.

Enforces invariants:
- Blocks tile [0, 1440) contiguously, no gaps, no overlaps
- Exactly 1440 / resolution blocks exist
- Resolution switches reconcile content from snapshots, the mirror, or the
  previous 30-minute grid, in that order, never overwriting filled fields
"""

import logging

from dayblocks.errors import UnknownBlockError
from dayblocks.time_blocks.mirror import MirrorStore
from dayblocks.time_blocks.models import (
    MINUTES_PER_DAY,
    Block,
    Resolution,
    TimeStatus,
)
from dayblocks.time_blocks.snapshots import SnapshotStore

logger = logging.getLogger(__name__)


def generate_blocks(resolution: Resolution) -> list[Block]:
    """Fresh empty grid covering the whole day."""
    resolution = Resolution(resolution)
    step = int(resolution)
    return [
        Block(start=start, end=start + step, resolution=resolution)
        for start in range(0, MINUTES_PER_DAY, step)
    ]


def time_status(block: Block, now_minute: int) -> TimeStatus:
    if block.start <= now_minute < block.end:
        return TimeStatus.CURRENT
    if block.end <= now_minute:
        return TimeStatus.PAST
    return TimeStatus.FUTURE


class TimelineModel:
    """
    The active block array plus lookup helpers.

    Only ScheduleEngine (through DayPlanner) replaces the array.
    """

    def __init__(self, resolution: Resolution = Resolution.HALF_HOUR, blocks: list[Block] = None):
        self.resolution = Resolution(resolution)
        self._blocks: list[Block] = []
        self._index: dict[str, int] = {}
        self.replace(blocks if blocks is not None else generate_blocks(self.resolution))

    # -------------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------------

    @property
    def blocks(self) -> list[Block]:
        return self._blocks

    def __len__(self) -> int:
        return len(self._blocks)

    def index_of(self, block_id: str) -> int:
        """Index of block_id, or -1 if it is not on the active grid."""
        return self._index.get(block_id, -1)

    def get(self, block_id: str) -> Block:
        idx = self.index_of(block_id)
        if idx == -1:
            raise UnknownBlockError(block_id)
        return self._blocks[idx]

    def index_at_minute(self, minute: int) -> int:
        return min(max(minute, 0), MINUTES_PER_DAY - 1) // int(self.resolution)

    def current_block(self, now_minute: int) -> Block:
        return self._blocks[self.index_at_minute(now_minute)]

    def time_status(self, block_id: str, now_minute: int) -> TimeStatus:
        return time_status(self.get(block_id), now_minute)

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def replace(self, blocks: list[Block]) -> None:
        _check_tiling(blocks, self.resolution)
        self._blocks = blocks
        self._index = {b.id: i for i, b in enumerate(blocks)}

    def build(
        self,
        resolution: Resolution,
        prior_resolution: Resolution | None,
        prior_blocks: list[Block] | None,
        snapshots: SnapshotStore,
        mirror: MirrorStore,
    ) -> list[Block]:
        """
        Build the grid for `resolution` after leaving `prior_resolution`.

        Reconciliation order:
        (a) 30-min snapshot restored verbatim when entering 30
        (b) 3-min snapshot restored verbatim when entering 3, unless coming from 30
        (c) mirror cells copied when entering 1 and the mirror has content
        (d) otherwise, coming down from 30, each 30-min block's content is
            propagated into the empty finer blocks it contains
        Finer edits are never folded back into the 30-minute grid.
        """
        resolution = Resolution(resolution)

        if resolution == Resolution.HALF_HOUR:
            restored = snapshots.restore(Resolution.HALF_HOUR)
            if restored is not None:
                logger.debug("Restored 30-minute snapshot (%d blocks)", len(restored))
                return _clear_transient(restored)

        if resolution == Resolution.MICRO and prior_resolution != Resolution.HALF_HOUR:
            restored = snapshots.restore(Resolution.MICRO)
            if restored is not None:
                logger.debug("Restored 3-minute snapshot (%d blocks)", len(restored))
                return _clear_transient(restored)

        blocks = generate_blocks(resolution)

        if resolution == Resolution.MINUTE and mirror.has_content():
            _fill_from_mirror(blocks, mirror)
        elif (
            prior_resolution == Resolution.HALF_HOUR
            and resolution < Resolution.HALF_HOUR
            and prior_blocks
        ):
            _propagate_down(blocks, prior_blocks)

        return blocks

    def switch_to(
        self, resolution: Resolution, snapshots: SnapshotStore, mirror: MirrorStore
    ) -> list[Block]:
        """Rebuild for a new resolution and make it active."""
        prior_resolution = self.resolution
        prior_blocks = self._blocks
        blocks = self.build(resolution, prior_resolution, prior_blocks, snapshots, mirror)
        self.resolution = Resolution(resolution)
        self.replace(blocks)
        logger.info(
            "Resolution switched %dm -> %dm (%d blocks)",
            prior_resolution,
            self.resolution,
            len(blocks),
        )
        return blocks


def _clear_transient(blocks: list[Block]) -> list[Block]:
    for b in blocks:
        b.is_recently_moved = False
    return blocks


def _fill_from_mirror(blocks: list[Block], mirror: MirrorStore) -> None:
    for block in blocks:
        for cell in mirror.cells_for(block.start, block.end):
            if block.task is None and cell.task is not None:
                block.task = cell.task
                block.status = cell.status
                block.is_pinned = block.is_pinned or cell.is_pinned
                block.is_completed = block.is_completed or cell.is_completed
            if block.goal is None and cell.goal is not None:
                block.goal = cell.goal


def _propagate_down(blocks: list[Block], prior_blocks: list[Block]) -> None:
    for prev in prior_blocks:
        if prev.task is None and prev.goal is None:
            continue
        for block in blocks:
            if not (prev.start <= block.start < prev.end):
                continue
            if block.task is None and prev.task is not None:
                block.task = prev.task
                block.status = prev.status
                # pins only travel together with a task
                block.is_pinned = prev.is_pinned
            if block.goal is None and prev.goal is not None:
                block.goal = prev.goal


def _check_tiling(blocks: list[Block], resolution: Resolution) -> None:
    expected = MINUTES_PER_DAY // int(resolution)
    if len(blocks) != expected:
        raise ValueError(f"Expected {expected} blocks at {int(resolution)}m, got {len(blocks)}")
    cursor = 0
    for b in blocks:
        if b.start != cursor or b.end - b.start != int(resolution):
            raise ValueError(f"Blocks do not tile the day at minute {cursor}")
        cursor = b.end
