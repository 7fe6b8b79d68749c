"""
Change Log - bounded, most-recent-first history of grid mutations.

Every engine write produces one ChangeRecord with:
- the kind of change (single edit vs cascading push)
- the blocks it touched
- a pre-image of each touched block, so the change can be rolled back

Records live in memory only and are dropped on resolution change.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from dayblocks.config import DEFAULT_CHANGE_LOG_LIMIT
from dayblocks.time_blocks.models import Block, Resolution, Task

logger = logging.getLogger(__name__)


class ChangeType(StrEnum):
    EDIT = "edit"
    PUSH = "push"


@dataclass
class ChangeRecord:
    kind: ChangeType
    block_id: str
    resolution: Resolution
    before: Task | None = None
    after: Task | None = None
    affected: list[str] = field(default_factory=list)
    description: str = ""
    pre_images: dict[str, Block] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


def change_kind(affected: list[str], displaced: bool) -> ChangeType:
    """push when more than one block moved or existing content was displaced."""
    if displaced or len(set(affected)) > 1:
        return ChangeType.PUSH
    return ChangeType.EDIT


class ChangeLog:
    def __init__(self, limit: int = DEFAULT_CHANGE_LOG_LIMIT):
        self.limit = limit
        self._records: list[ChangeRecord] = []

    def append(self, record: ChangeRecord) -> ChangeRecord:
        self._records.insert(0, record)
        del self._records[self.limit :]
        logger.debug(
            "Recorded %s on %s (%d affected)",
            record.kind.value,
            record.block_id,
            len(record.affected),
        )
        return record

    @property
    def records(self) -> list[ChangeRecord]:
        """Most recent first."""
        return list(self._records)

    def latest(self) -> ChangeRecord | None:
        return self._records[0] if self._records else None

    def pop(self) -> ChangeRecord | None:
        if not self._records:
            return None
        return self._records.pop(0)

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)
