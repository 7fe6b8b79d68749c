"""
Value types for the day grid.

Block ids encode resolution and start ("30m-0930"), so an id is only
meaningful at the resolution it was produced for.
"""

import uuid
from dataclasses import dataclass, field, replace
from enum import IntEnum, StrEnum

MINUTES_PER_DAY = 1440


def generate_id(prefix: str = "") -> str:
    """Generate a unique ID with optional prefix."""
    uid = uuid.uuid4().hex[:12]
    if prefix:
        return f"{prefix}-{uid}"
    return uid


# =============================================================================
# ENUMS
# =============================================================================


class Resolution(IntEnum):
    """Block duration in minutes."""

    MINUTE = 1
    MICRO = 3
    HALF_HOUR = 30

    @property
    def block_count(self) -> int:
        return MINUTES_PER_DAY // self.value


class TaskOrigin(StrEnum):
    """Where a task came from. Display only; the engine ignores it."""

    CALENDAR = "calendar"
    NOTION = "notion"
    CUSTOM = "custom"
    GOAL = "goal"
    BREAKDOWN = "breakdown"


class BlockStatus(StrEnum):
    """Explicit state of a block's content, set by the progress cascade."""

    NORMAL = "normal"
    PAUSED = "paused"
    INTERRUPTED = "interrupted"
    DEFERRED_NOTE = "deferred_note"


class TimeStatus(StrEnum):
    PAST = "past"
    CURRENT = "current"
    FUTURE = "future"


# =============================================================================
# VALUE OBJECTS
# =============================================================================


@dataclass(frozen=True)
class Task:
    id: str
    title: str
    origin: TaskOrigin = TaskOrigin.CUSTOM
    color: str = "bg-blue-500"

    def renamed(self, title: str, task_id: str | None = None) -> "Task":
        return replace(self, title=title, id=task_id or self.id)

    @classmethod
    def custom(cls, title: str, color: str = "bg-blue-500") -> "Task":
        """Quick task typed straight into a block."""
        return cls(id=generate_id("quick"), title=title, origin=TaskOrigin.CUSTOM, color=color)


@dataclass(frozen=True)
class GoalTag:
    id: str
    label: str
    color: str


@dataclass
class Block:
    start: int
    end: int
    resolution: Resolution
    task: Task | None = None
    goal: GoalTag | None = None
    is_pinned: bool = False
    is_active: bool = False
    is_completed: bool = False
    status: BlockStatus = BlockStatus.NORMAL
    # UI feedback only, never persisted or snapshotted as meaningful state
    is_recently_moved: bool = field(default=False, compare=False)

    @property
    def id(self) -> str:
        return block_id(self.start, self.resolution)

    @property
    def duration_min(self) -> int:
        return self.end - self.start

    @property
    def is_free(self) -> bool:
        """Free slot for cascades: no task and not pinned."""
        return self.task is None and not self.is_pinned

    @property
    def has_live_task(self) -> bool:
        """A task that is real work (not a pause/interruption marker)."""
        return self.task is not None and self.status == BlockStatus.NORMAL

    @property
    def label(self) -> str:
        return f"{format_minute(self.start)}-{format_minute(self.end)}"

    def copy(self) -> "Block":
        # Task and GoalTag are frozen, so a field copy is a deep copy
        return replace(self)


@dataclass
class MirrorCell:
    """One minute of the permanent full-day shadow."""

    task: Task | None = None
    goal: GoalTag | None = None
    is_pinned: bool = False
    is_completed: bool = False
    status: BlockStatus = BlockStatus.NORMAL

    @property
    def has_content(self) -> bool:
        return self.task is not None or self.goal is not None


@dataclass
class EngineResult:
    """
    Outcome of a ScheduleEngine call.

    accepted=False means a guard rejected the call and nothing changed.
    dropped lists tasks that ran off the end of the day.
    """

    accepted: bool
    blocks: list[Block]
    affected: list[str] = field(default_factory=list)
    dropped: list[Task] = field(default_factory=list)
    reason: str = ""
    displaced: bool = False

    @classmethod
    def rejected(cls, blocks: list[Block], reason: str) -> "EngineResult":
        return cls(accepted=False, blocks=blocks, reason=reason)


# =============================================================================
# HELPERS
# =============================================================================


def format_minute(minute: int) -> str:
    return f"{minute // 60:02d}:{minute % 60:02d}"


def block_id(start: int, resolution: int) -> str:
    return f"{int(resolution)}m-{start // 60:02d}{start % 60:02d}"


def parse_block_id(value: str) -> tuple[Resolution, int]:
    """Inverse of block_id: returns (resolution, start minute)."""
    try:
        res_part, hhmm = value.split("m-", 1)
        resolution = Resolution(int(res_part))
        start = int(hhmm[:2]) * 60 + int(hhmm[2:])
    except ValueError as exc:
        raise ValueError(f"Malformed block id: {value!r}") from exc
    if start % resolution or not 0 <= start < MINUTES_PER_DAY:
        raise ValueError(f"Block id {value!r} does not align to {int(resolution)}-minute grid")
    return resolution, start
