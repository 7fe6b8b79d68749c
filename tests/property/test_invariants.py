"""
Property-based tests for grid invariants using Hypothesis.

These tests stress the engine with random grids and operations to find edge cases.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from dayblocks.time_blocks.engine import ScheduleEngine
from dayblocks.time_blocks.models import MINUTES_PER_DAY, Resolution, Task
from dayblocks.time_blocks.state import DayState

BLOCKS = Resolution.HALF_HOUR.block_count


@st.composite
def day_layouts(draw):
    """Random 30-minute day: which blocks hold a task, which are pinned."""
    occupied = draw(st.sets(st.integers(0, BLOCKS - 1), max_size=20))
    pinned = draw(st.sets(st.sampled_from(sorted(occupied)), max_size=5)) if occupied else set()
    state = DayState.new(date="2026-10-18")
    blocks = [b.copy() for b in state.blocks]
    for i in occupied:
        blocks[i].task = Task(id=f"t{i}", title=f"Task {i}")
    for i in pinned:
        blocks[i].is_pinned = True
    state.commit(blocks)
    return state


def pinned_tasks(state):
    return {b.id: b.task for b in state.blocks if b.is_pinned}


def assert_tiled(state):
    cursor = 0
    for b in state.blocks:
        assert b.start == cursor
        cursor = b.end
    assert cursor == MINUTES_PER_DAY


# ============================================================================
# Tiling / pins
# ============================================================================


@given(day_layouts(), st.integers(0, BLOCKS - 1), st.integers(0, 3))
@settings(max_examples=60, deadline=None)
def test_push_forward_keeps_tiling_and_pins(state, from_index, offset):
    before = pinned_tasks(state)

    ScheduleEngine().push_forward(state, from_index, offset)

    assert_tiled(state)
    assert pinned_tasks(state) == before


@given(day_layouts(), st.integers(0, BLOCKS - 1), st.integers(0, 3))
@settings(max_examples=60, deadline=None)
def test_push_forward_preserves_order_and_accounts_for_every_task(state, from_index, offset):
    movable_before = [
        b.task.id for b in state.blocks[from_index:] if b.task is not None and not b.is_pinned
    ]

    result = ScheduleEngine().push_forward(state, from_index, offset)

    movable_after = [
        b.task.id
        for b in state.blocks[from_index:]
        if b.task is not None and not b.is_pinned
    ]
    dropped = [t.id for t in result.dropped]
    assert movable_after + dropped == movable_before
    # nothing moved earlier than the offset allows
    for b in state.blocks[from_index : from_index + offset]:
        assert b.task is None or b.is_pinned


@given(day_layouts(), st.integers(0, BLOCKS - 1), st.integers(0, BLOCKS - 1))
@settings(max_examples=60, deadline=None)
def test_move_never_overwrites_pinned(state, source, target):
    before = pinned_tasks(state)
    src, tgt = state.blocks[source].id, state.blocks[target].id

    ScheduleEngine().simple_move(state, src, tgt, now_minute=0)

    assert pinned_tasks(state) == before
    assert_tiled(state)


@given(day_layouts(), st.integers(0, BLOCKS - 1))
@settings(max_examples=40, deadline=None)
def test_toggle_pin_twice_is_identity(state, index):
    original = [b.copy() for b in state.blocks]
    bid = state.blocks[index].id
    engine = ScheduleEngine()

    engine.toggle_pin(state, bid)
    engine.toggle_pin(state, bid)

    assert state.blocks == original


# ============================================================================
# Resolution switching
# ============================================================================


@given(day_layouts(), st.sampled_from([Resolution.MICRO, Resolution.MINUTE]))
@settings(max_examples=25, deadline=None)
def test_half_hour_snapshot_round_trip(state, finer):
    original = [b.copy() for b in state.blocks]

    state.switch_resolution(finer)
    assert_tiled(state)
    state.switch_resolution(Resolution.HALF_HOUR)

    assert state.blocks == original


@given(day_layouts())
@settings(max_examples=25, deadline=None)
def test_mirror_reflects_half_hour_grid(state):
    for block in state.blocks:
        for minute in range(block.start, block.end):
            assert state.mirror.cell(minute).task == block.task


@given(
    st.sampled_from([Resolution.HALF_HOUR, Resolution.MICRO]),
    st.integers(0, MINUTES_PER_DAY - 1),
)
@settings(max_examples=40, deadline=None)
def test_edit_shows_in_every_minute_of_block(resolution, minute):
    state = DayState.new(date="2026-10-18")
    if resolution != state.resolution:
        state.switch_resolution(resolution)
    edited = state.timeline.current_block(minute)
    start, end = edited.start, edited.end

    ScheduleEngine().assign(state, edited.id, Task(id="t-edit", title="Edit"), now_minute=0)
    state.switch_resolution(Resolution.MINUTE)

    for m in range(start, end):
        assert state.blocks[m].task.title == "Edit"
