"""
Contracts Module - Pydantic models for persisted day state.

A DayStore hands back whatever it has stored; nothing reaches the grid
until it validates here.

- Block starts must align to the payload's resolution and be unique
- Unknown statuses and resolutions are rejected, not coerced
- Blocks absent from the payload are empty
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from dayblocks.time_blocks.models import (
    MINUTES_PER_DAY,
    Block,
    BlockStatus,
    GoalTag,
    Resolution,
    Task,
    TaskOrigin,
)
from dayblocks.time_blocks.timeline import generate_blocks

PAYLOAD_VERSION = "1.0"


class TaskPayload(BaseModel):
    id: str
    title: str = Field(min_length=1)
    origin: TaskOrigin = TaskOrigin.CUSTOM
    color: str = "bg-blue-500"

    def to_task(self) -> Task:
        return Task(id=self.id, title=self.title, origin=self.origin, color=self.color)


class GoalPayload(BaseModel):
    id: str
    label: str
    color: str = "bg-emerald-500"

    def to_goal(self) -> GoalTag:
        return GoalTag(id=self.id, label=self.label, color=self.color)


class BlockEntry(BaseModel):
    """One stored block. Only blocks with content need to be stored."""

    start: int = Field(ge=0, lt=MINUTES_PER_DAY)
    task: TaskPayload | None = None
    goal: GoalPayload | None = None
    pinned: bool = False
    completed: bool = False
    status: BlockStatus = BlockStatus.NORMAL


class DayStatePayload(BaseModel):
    """Validated day state as returned by DayStore.load_day_state."""

    version: str = PAYLOAD_VERSION
    date: str
    resolution: Literal[1, 3, 30] = 30
    blocks: list[BlockEntry] = Field(default_factory=list)
    settings: dict[str, Any] = Field(default_factory=dict)

    @field_validator("date")
    @classmethod
    def _iso_date(cls, value: str) -> str:
        parts = value.split("-")
        if len(parts) != 3 or not all(p.isdigit() for p in parts):
            raise ValueError(f"date must be YYYY-MM-DD, got {value!r}")
        return value

    @model_validator(mode="after")
    def _aligned_and_unique(self) -> "DayStatePayload":
        seen: set[int] = set()
        for entry in self.blocks:
            if entry.start % self.resolution:
                raise ValueError(
                    f"block start {entry.start} not aligned to {self.resolution}-minute grid"
                )
            if entry.start in seen:
                raise ValueError(f"duplicate block start {entry.start}")
            seen.add(entry.start)
        return self

    def to_blocks(self) -> list[Block]:
        """Full tiled grid at this payload's resolution."""
        resolution = Resolution(self.resolution)
        blocks = generate_blocks(resolution)
        step = int(resolution)
        for entry in self.blocks:
            block = blocks[entry.start // step]
            block.task = entry.task.to_task() if entry.task else None
            block.goal = entry.goal.to_goal() if entry.goal else None
            block.is_pinned = entry.pinned
            block.is_completed = entry.completed
            block.status = entry.status
        return blocks

    @classmethod
    def from_blocks(cls, date: str, resolution: Resolution, blocks: list[Block]) -> "DayStatePayload":
        """Only blocks carrying content are written."""
        entries = [
            BlockEntry(
                start=b.start,
                task=TaskPayload(**vars(b.task)) if b.task else None,
                goal=GoalPayload(**vars(b.goal)) if b.goal else None,
                pinned=b.is_pinned,
                completed=b.is_completed,
                status=b.status,
            )
            for b in blocks
            if b.task or b.goal or b.is_pinned or b.is_completed
        ]
        return cls(date=date, resolution=int(resolution), blocks=entries)
