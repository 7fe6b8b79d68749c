"""Multi-block selection for bulk operations. Scoped to one resolution."""

from dayblocks.time_blocks.timeline import TimelineModel


class SelectionManager:
    def __init__(self, timeline: TimelineModel):
        self._timeline = timeline
        self._selected: set[str] = set()
        self.anchor: str | None = None

    @property
    def selected(self) -> list[str]:
        """Selected ids in timeline order."""
        return sorted(self._selected, key=self._timeline.index_of)

    def __contains__(self, block_id: str) -> bool:
        return block_id in self._selected

    def __len__(self) -> int:
        return len(self._selected)

    def toggle(self, block_id: str) -> bool:
        """Flip one block in or out. Returns True if it is now selected."""
        if self._timeline.index_of(block_id) == -1:
            return False
        self.anchor = block_id
        if block_id in self._selected:
            self._selected.discard(block_id)
            return False
        self._selected.add(block_id)
        return True

    def range_select(self, from_id: str, to_id: str) -> list[str]:
        """Add the inclusive span between two ids, in either order."""
        start_idx = self._timeline.index_of(from_id)
        end_idx = self._timeline.index_of(to_id)
        if start_idx == -1 or end_idx == -1:
            return self.selected
        lo, hi = sorted((start_idx, end_idx))
        self._selected.update(b.id for b in self._timeline.blocks[lo : hi + 1])
        self.anchor = to_id
        return self.selected

    def extend_to(self, block_id: str) -> list[str]:
        """Shift-click: range from the anchor, or a plain toggle without one."""
        if self.anchor is None:
            self.toggle(block_id)
            return self.selected
        return self.range_select(self.anchor, block_id)

    def clear(self) -> None:
        self._selected.clear()
        self.anchor = None
