"""
Schedule Engine - every mutation of the day grid goes through here.

Enforces invariants:
- A pinned block's task is never cleared or overwritten, except for
  indices explicitly listed in a force set (the pin then moves with it)
- Moves onto pinned or past blocks are rejected, never raised
- Cascades keep relative order and never place a task before the push target
- Each accepted mutation appends exactly one ChangeRecord

Operations work on a copy of the grid and commit it through DayState in one
step, so no partial state is ever visible.
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

from dayblocks.config import MarkerSettings
from dayblocks.errors import UnknownBlockError
from dayblocks.time_blocks.change_log import ChangeRecord, ChangeType, change_kind
from dayblocks.time_blocks.models import (
    Block,
    BlockStatus,
    EngineResult,
    GoalTag,
    Task,
    TaskOrigin,
    TimeStatus,
    generate_id,
)
from dayblocks.time_blocks.state import DayState
from dayblocks.time_blocks.timeline import time_status

logger = logging.getLogger(__name__)

_TRAILING_NUMBER = re.compile(r"\d+$")


@dataclass
class _Carry:
    """A task in transit, with the status (and pin) that travel with it."""

    task: Task
    status: BlockStatus = BlockStatus.NORMAL
    pinned: bool = False
    origin: int | None = None


# =============================================================================
# GRID PRIMITIVES (operate in place on a working copy)
# =============================================================================


def _take(block: Block, with_pin: bool = False, origin: int | None = None) -> _Carry:
    carry = _Carry(
        task=block.task,
        status=block.status,
        pinned=with_pin and block.is_pinned,
        origin=origin,
    )
    block.task = None
    block.status = BlockStatus.NORMAL
    if with_pin:
        block.is_pinned = False
    return carry


def _put(block: Block, carry: _Carry, moved: bool = True) -> None:
    block.task = carry.task
    block.status = carry.status
    if carry.pinned:
        block.is_pinned = True
    if moved:
        block.is_recently_moved = True


def _next_free(blocks: list[Block], start: int) -> int | None:
    """First index >= start with no task and no pin."""
    for i in range(max(start, 0), len(blocks)):
        if blocks[i].is_free:
            return i
    return None


def _push_forward(
    blocks: list[Block],
    from_index: int,
    offset: int = 1,
    force_pinned_at: Iterable[int] = (),
    lead: Iterable[_Carry] = (),
) -> tuple[list[str], list[Task]]:
    """
    Shift every task at or after from_index to start at from_index + offset.

    Pinned blocks are skipped as sources unless forced, and always skipped
    as destinations. Carries in `lead` are placed ahead of the collected
    tasks. A task that lands back in its own block is not reported.
    Returns (affected block ids, dropped tasks).
    """
    forced = set(force_pinned_at)
    collected: list[_Carry] = list(lead)
    for i in range(from_index, len(blocks)):
        block = blocks[i]
        if block.task is None:
            continue
        if block.is_pinned:
            if i not in forced:
                continue
            collected.append(_take(block, with_pin=True, origin=i))
        else:
            collected.append(_take(block, origin=i))

    affected: list[str] = []
    dropped: list[Task] = []
    cursor = from_index + offset
    for carry in collected:
        target = _next_free(blocks, cursor)
        if target is None:
            dropped.append(carry.task)
            continue
        stayed = target == carry.origin
        _put(blocks[target], carry, moved=not stayed)
        if not stayed:
            affected.append(blocks[target].id)
        cursor = target + 1
    return affected, dropped


def _base_title(title: str) -> str:
    return _TRAILING_NUMBER.sub("", title).strip()


# =============================================================================
# ENGINE
# =============================================================================


class ScheduleEngine:
    """
    Mutation core for the day grid.

    Every public operation takes the DayState, returns an EngineResult, and
    on acceptance commits the new grid and logs one ChangeRecord.
    """

    def __init__(self, markers: MarkerSettings | None = None):
        self.markers = markers or MarkerSettings()

    # -------------------------------------------------------------------------
    # Plumbing
    # -------------------------------------------------------------------------

    @staticmethod
    def _working_copy(state: DayState) -> list[Block]:
        return [b.copy() for b in state.blocks]

    @staticmethod
    def _index(state: DayState, block_id: str) -> int:
        idx = state.timeline.index_of(block_id)
        if idx == -1:
            raise UnknownBlockError(block_id)
        return idx

    def _commit(
        self,
        state: DayState,
        blocks: list[Block],
        kind: ChangeType,
        block_id: str,
        affected: list[str],
        *,
        before: Task | None = None,
        after: Task | None = None,
        dropped: list[Task] | None = None,
        displaced: bool = False,
        description: str = "",
    ) -> EngineResult:
        pre_images = {
            old.id: old.copy() for old, new in zip(state.blocks, blocks, strict=True) if old != new
        }
        state.commit(blocks)
        state.changes.append(
            ChangeRecord(
                kind=kind,
                block_id=block_id,
                resolution=state.resolution,
                before=before,
                after=after,
                affected=list(affected),
                description=description,
                pre_images=pre_images,
            )
        )
        dropped = dropped or []
        if dropped:
            logger.warning(
                "Dropped %d task(s) past end of day: %s",
                len(dropped),
                ", ".join(t.title for t in dropped),
            )
        logger.info("%s: %s (%d block(s) affected)", description or kind.value, block_id, len(affected))
        return EngineResult(
            accepted=True,
            blocks=state.blocks,
            affected=list(affected),
            dropped=dropped,
            displaced=displaced,
        )

    @staticmethod
    def _reject(state: DayState, reason: str) -> EngineResult:
        logger.info("Rejected: %s", reason)
        return EngineResult.rejected(state.blocks, reason)

    # -------------------------------------------------------------------------
    # Grid operations
    # -------------------------------------------------------------------------

    def assign(self, state: DayState, block_id: str, task: Task, now_minute: int) -> EngineResult:
        """
        Put a task into a block.

        Past blocks are edited in place. Current/future blocks first push the
        existing tasks from this block onwards one slot later.
        """
        idx = self._index(state, block_id)
        blocks = self._working_copy(state)
        block = blocks[idx]
        if block.is_pinned:
            return self._reject(state, f"Block {block_id} is pinned")

        before = block.task
        unchanged_title = before is not None and before.title == task.title
        affected = [block_id]
        dropped: list[Task] = []
        displaced = False

        if time_status(block, now_minute) != TimeStatus.PAST and not unchanged_title:
            moved, dropped = _push_forward(blocks, idx, 1)
            affected += moved
            displaced = bool(moved) or bool(dropped)

        block.task = task
        block.status = BlockStatus.NORMAL
        block.is_recently_moved = True
        return self._commit(
            state,
            blocks,
            change_kind(affected, displaced),
            block_id,
            affected,
            before=before,
            after=task,
            dropped=dropped,
            displaced=displaced,
            description="assign",
        )

    def push_forward(
        self,
        state: DayState,
        from_index: int,
        offset: int = 1,
        force_pinned_at: Iterable[int] = (),
    ) -> EngineResult:
        if not 0 <= from_index < len(state.blocks):
            raise IndexError(f"from_index {from_index} outside grid of {len(state.blocks)}")
        if offset < 0:
            raise ValueError("offset must be non-negative")
        blocks = self._working_copy(state)
        affected, dropped = _push_forward(blocks, from_index, offset, force_pinned_at)
        if not affected and not dropped:
            return self._reject(state, "Nothing to push")
        return self._commit(
            state,
            blocks,
            ChangeType.PUSH,
            blocks[from_index].id,
            affected,
            dropped=dropped,
            displaced=True,
            description=f"push +{offset}",
        )

    def simple_move(
        self,
        state: DayState,
        source_id: str,
        target_id: str,
        task: Task | None = None,
        now_minute: int = 0,
    ) -> EngineResult:
        """Drag one task onto another block, bumping any occupant to the next free slot."""
        if source_id == target_id:
            return self._reject(state, "Source and target are the same block")
        src = self._index(state, source_id)
        tgt = self._index(state, target_id)
        blocks = self._working_copy(state)
        source, target = blocks[src], blocks[tgt]

        task = task or source.task
        if task is None:
            return self._reject(state, f"Block {source_id} has no task to move")
        if time_status(target, now_minute) == TimeStatus.PAST:
            return self._reject(state, f"Cannot move into past block {target_id}")
        if target.is_pinned:
            return self._reject(state, f"Block {target_id} is pinned")

        affected = [source_id, target_id]
        dropped: list[Task] = []
        displaced = False
        before = target.task

        if target.task is not None:
            displaced = True
            occupant = _take(target)
            slot = _next_free(blocks, tgt + 1)
            if slot is None:
                dropped.append(occupant.task)
            else:
                _put(blocks[slot], occupant)
                affected.append(blocks[slot].id)

        status = source.status if source.task == task else BlockStatus.NORMAL
        _put(target, _Carry(task=task, status=status))
        if not source.is_pinned:
            source.task = None
            source.status = BlockStatus.NORMAL
            source.is_recently_moved = True

        return self._commit(
            state,
            blocks,
            change_kind(affected, displaced),
            target_id,
            affected,
            before=before,
            after=task,
            dropped=dropped,
            displaced=displaced,
            description="move",
        )

    def expand_fill(
        self, state: DayState, block_ids: list[str], task: Task, now_minute: int
    ) -> EngineResult:
        """
        Fill a contiguous future range with numbered copies of a task.

        Copies are numbered from 2 (the dragged block is number 1). Unpinned
        tasks already in the range are postponed past its end, in order;
        pinned blocks are left as they are.
        """
        if not block_ids:
            return self._reject(state, "Empty range")
        indices = [self._index(state, bid) for bid in block_ids]
        if indices != list(range(indices[0], indices[0] + len(indices))):
            return self._reject(state, "Range must be contiguous and ordered")

        blocks = self._working_copy(state)
        if any(time_status(blocks[i], now_minute) == TimeStatus.PAST for i in indices):
            return self._reject(state, "Range includes past blocks")

        postponed = [_take(blocks[i]) for i in indices if not blocks[i].is_pinned and blocks[i].task]

        base = _base_title(task.title)
        affected: list[str] = []
        number = 2
        for i in indices:
            if blocks[i].is_pinned:
                continue
            copy = task.renamed(f"{base}{number}", task_id=f"{task.id}-{number}")
            _put(blocks[i], _Carry(task=copy))
            affected.append(blocks[i].id)
            number += 1

        dropped: list[Task] = []
        cursor = indices[-1] + 1
        for carry in postponed:
            slot = _next_free(blocks, cursor)
            if slot is None:
                dropped.append(carry.task)
                continue
            _put(blocks[slot], carry)
            affected.append(blocks[slot].id)
            cursor = slot + 1

        if not affected:
            return self._reject(state, "Every block in range is pinned")
        return self._commit(
            state,
            blocks,
            change_kind(affected, bool(postponed)),
            block_ids[0],
            affected,
            after=task,
            dropped=dropped,
            displaced=bool(postponed),
            description="expand",
        )

    def bulk_move(
        self, state: DayState, selected_ids: list[str], destination_id: str, now_minute: int
    ) -> EngineResult:
        """
        Move a selection so its earliest block lands on destination_id,
        keeping the gaps between selected blocks.
        """
        if not selected_ids:
            return self._reject(state, "Nothing selected")
        dest = self._index(state, destination_id)
        selected = sorted({self._index(state, bid) for bid in selected_ids})
        blocks = self._working_copy(state)
        n = len(blocks)
        base = selected[0]

        for i in selected:
            target = dest + (i - base)
            if target < n and time_status(blocks[target], now_minute) == TimeStatus.PAST:
                return self._reject(state, f"Target {blocks[target].id} is in the past")

        # pinned selections stay where they are
        movable = [i for i in selected if blocks[i].task is not None and not blocks[i].is_pinned]
        if not movable:
            return self._reject(state, "Nothing to move")
        for i in movable:
            target = dest + (i - base)
            if target < n and blocks[target].is_pinned:
                return self._reject(state, f"Target {blocks[target].id} is pinned")

        in_transit = [(i - base, _take(blocks[i])) for i in movable]
        affected: list[str] = [blocks[i].id for i in movable]
        dropped: list[Task] = []
        displaced = False

        for delta, carry in in_transit:
            target = dest + delta
            if target >= n:
                dropped.append(carry.task)
                continue
            if blocks[target].task is not None:
                displaced = True
                occupant = _take(blocks[target])
                slot = _next_free(blocks, target + 1)
                if slot is None:
                    dropped.append(occupant.task)
                else:
                    _put(blocks[slot], occupant)
                    affected.append(blocks[slot].id)
            _put(blocks[target], carry)
            affected.append(blocks[target].id)

        return self._commit(
            state,
            blocks,
            ChangeType.PUSH,
            destination_id,
            affected,
            dropped=dropped,
            displaced=displaced,
            description="bulk move",
        )

    def toggle_pin(self, state: DayState, block_id: str) -> EngineResult:
        idx = self._index(state, block_id)
        blocks = self._working_copy(state)
        blocks[idx].is_pinned = not blocks[idx].is_pinned
        return self._commit(
            state,
            blocks,
            ChangeType.EDIT,
            block_id,
            [block_id],
            description="pin" if blocks[idx].is_pinned else "unpin",
        )

    # -------------------------------------------------------------------------
    # Direct edits
    # -------------------------------------------------------------------------

    def clear_task(self, state: DayState, block_id: str) -> EngineResult:
        """Delete one block's task. Nothing is pulled back to fill the hole."""
        idx = self._index(state, block_id)
        blocks = self._working_copy(state)
        block = blocks[idx]
        if block.task is None:
            return self._reject(state, f"Block {block_id} is already empty")
        if block.is_pinned:
            return self._reject(state, f"Block {block_id} is pinned")
        before = _take(block).task
        return self._commit(
            state, blocks, ChangeType.EDIT, block_id, [block_id], before=before, description="clear"
        )

    def bulk_clear(self, state: DayState, block_ids: list[str]) -> EngineResult:
        blocks = self._working_copy(state)
        affected = []
        for bid in block_ids:
            block = blocks[self._index(state, bid)]
            if block.task is None or block.is_pinned:
                continue
            _take(block)
            affected.append(bid)
        if not affected:
            return self._reject(state, "No clearable tasks in selection")
        return self._commit(
            state, blocks, ChangeType.EDIT, affected[0], affected, description="bulk clear"
        )

    def assign_goal(self, state: DayState, block_ids: list[str], goal: GoalTag | None) -> EngineResult:
        """Set (or with goal=None, clear) the goal tag on each block. Tasks are untouched."""
        if not block_ids:
            return self._reject(state, "Nothing selected")
        blocks = self._working_copy(state)
        for bid in block_ids:
            blocks[self._index(state, bid)].goal = goal
        return self._commit(
            state,
            blocks,
            ChangeType.EDIT,
            block_ids[0],
            list(block_ids),
            description="goal" if goal else "clear goal",
        )

    def clear_goal(self, state: DayState, block_ids: list[str]) -> EngineResult:
        return self.assign_goal(state, block_ids, None)

    def undo(self, state: DayState) -> EngineResult:
        """Roll back the most recent change by restoring its pre-images."""
        record = state.changes.latest()
        if record is None:
            return self._reject(state, "Nothing to undo")
        if record.resolution != state.resolution:
            state.changes.clear()
            return self._reject(state, "Last change was made at another resolution")

        state.changes.pop()
        blocks = self._working_copy(state)
        for bid, image in record.pre_images.items():
            blocks[self._index(state, bid)] = image.copy()
        state.commit(blocks)
        logger.info("Undid %s on %s", record.description or record.kind.value, record.block_id)
        return EngineResult(accepted=True, blocks=state.blocks, affected=list(record.pre_images))

    # -------------------------------------------------------------------------
    # Progress check effects
    # -------------------------------------------------------------------------

    def continue_task(
        self,
        state: DayState,
        completed_id: str,
        current_id: str,
        override_title: str | None = None,
    ) -> EngineResult:
        """
        "Still doing": carry the finished task into the current block.

        Everything from the current block on moves one slot later; a pinned
        current block is forced along with its pin. With override_title the
        finished block is relabelled with what was actually done.
        """
        fi = self._index(state, completed_id)
        ci = self._index(state, current_id)
        blocks = self._working_copy(state)
        finished = blocks[fi].task
        if finished is None:
            return self._reject(state, f"Block {completed_id} has no task to continue")

        force = [ci] if blocks[ci].is_pinned else []
        affected, dropped = _push_forward(blocks, ci, 1, force)

        if override_title:
            blocks[fi].task = finished.renamed(override_title)
            affected.append(completed_id)

        _put(blocks[ci], _Carry(task=finished.renamed(finished.title, generate_id("continued"))))
        affected.insert(0, current_id)

        return self._commit(
            state,
            blocks,
            ChangeType.PUSH,
            current_id,
            affected,
            after=finished,
            dropped=dropped,
            displaced=True,
            description="still doing",
        )

    def stick_to_plan(self, state: DayState, completed_id: str, current_id: str) -> EngineResult:
        """
        Keep the pinned plan running and defer the unfinished task.

        Only valid when the current block is pinned and has a task.
        """
        fi = self._index(state, completed_id)
        ci = self._index(state, current_id)
        blocks = self._working_copy(state)
        current = blocks[ci]
        if not (current.is_pinned and current.task is not None):
            return self._reject(state, "Stick to plan needs a pinned current block with a task")
        finished = blocks[fi].task
        if finished is None:
            return self._reject(state, f"Block {completed_id} has no task to defer")

        affected: list[str] = [completed_id]
        dropped: list[Task] = []
        slot = _next_free(blocks, ci + 1)
        if slot is None:
            dropped.append(finished)
        else:
            _put(blocks[slot], _Carry(task=finished.renamed(finished.title, generate_id("deferred"))))
            affected.append(blocks[slot].id)

        blocks[fi].task = finished.renamed(f"{finished.title} {self.markers.pushed_to_future}")
        blocks[fi].status = BlockStatus.DEFERRED_NOTE

        return self._commit(
            state,
            blocks,
            ChangeType.PUSH,
            completed_id,
            affected,
            before=finished,
            after=blocks[fi].task,
            dropped=dropped,
            displaced=True,
            description="stick to plan",
        )

    def interrupt(
        self, state: DayState, completed_id: str, current_id: str, closed: bool = False
    ) -> EngineResult:
        """
        No answer (or dismissed): pause the day by two blocks.

        Everything from the current block on moves two slots later. The
        finished task takes the first slot the push opened, two blocks after
        the current one and ahead of the downstream tasks, keeping its pin.
        The finished block is marked interrupted and the current block paused.
        """
        fi = self._index(state, completed_id)
        ci = self._index(state, current_id)
        blocks = self._working_copy(state)
        finished_block, current = blocks[fi], blocks[ci]

        before = finished_block.task
        lead: list[_Carry] = []
        if finished_block.has_live_task:
            carry = _take(finished_block, with_pin=True)
            carry.task = carry.task.renamed(carry.task.title, generate_id("rescheduled"))
            lead.append(carry)

        force = [ci] if current.is_pinned else []
        affected, dropped = _push_forward(blocks, ci, 2, force, lead=lead)
        affected = [completed_id, current_id] + affected

        markers = self.markers
        finished_block.task = Task(
            id=generate_id("interrupted"),
            title=markers.interrupted_closed if closed else markers.interrupted_no_response,
            origin=TaskOrigin.CUSTOM,
            color=markers.interrupted_color,
        )
        finished_block.status = BlockStatus.INTERRUPTED
        finished_block.is_active = False
        finished_block.is_completed = False

        current.task = Task(
            id=generate_id("paused"),
            title=markers.paused,
            origin=TaskOrigin.CUSTOM,
            color=markers.paused_color,
        )
        current.status = BlockStatus.PAUSED
        current.is_active = False

        return self._commit(
            state,
            blocks,
            ChangeType.PUSH,
            completed_id,
            affected,
            before=before,
            after=finished_block.task,
            dropped=dropped,
            displaced=True,
            description="closed" if closed else "timeout",
        )
