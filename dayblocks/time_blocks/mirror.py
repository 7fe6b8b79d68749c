"""
Mirror Store - permanent minute-granularity shadow of the day.

At resolution 1 the mirror reflects the grid exactly. At coarser
resolutions every minute of a block is overwritten with that block's fields
(down-sync); the mirror is never the authority there.
"""

import logging

from dayblocks.time_blocks.models import MINUTES_PER_DAY, Block, MirrorCell, Resolution

logger = logging.getLogger(__name__)


class MirrorStore:
    def __init__(self):
        self._cells: list[MirrorCell] = [MirrorCell() for _ in range(MINUTES_PER_DAY)]
        self._skip_next = False

    def cell(self, minute: int) -> MirrorCell:
        return self._cells[minute]

    def cells_for(self, start: int, end: int) -> list[MirrorCell]:
        return self._cells[start:end]

    def has_content(self) -> bool:
        return any(c.has_content for c in self._cells)

    @property
    def skip_pending(self) -> bool:
        return self._skip_next

    def skip_next_sync(self) -> None:
        """Arm a one-shot skip; the next sync() call is a no-op and disarms it."""
        self._skip_next = True

    def sync(self, blocks: list[Block], resolution: Resolution) -> bool:
        """
        Write the grid into the mirror.

        Returns False when the sync was skipped.
        """
        if self._skip_next:
            self._skip_next = False
            logger.debug("Mirror down-sync skipped after resolution switch")
            return False

        for block in blocks:
            if resolution == Resolution.MINUTE:
                self._cells[block.start] = _cell_from(block)
                continue
            for minute in range(block.start, min(block.end, MINUTES_PER_DAY)):
                self._cells[minute] = _cell_from(block)
        return True

    def clear(self) -> None:
        self._cells = [MirrorCell() for _ in range(MINUTES_PER_DAY)]
        self._skip_next = False


def _cell_from(block: Block) -> MirrorCell:
    return MirrorCell(
        task=block.task,
        goal=block.goal,
        is_pinned=block.is_pinned,
        is_completed=block.is_completed,
        status=block.status,
    )
