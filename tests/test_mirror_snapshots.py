"""
Tests for MirrorStore and SnapshotStore.
"""

from dayblocks.time_blocks.mirror import MirrorStore
from dayblocks.time_blocks.models import GoalTag, Resolution
from dayblocks.time_blocks.snapshots import SnapshotStore
from dayblocks.time_blocks.timeline import generate_blocks
from tests.fixtures import make_task


def grid_with(resolution, index, title):
    blocks = generate_blocks(resolution)
    blocks[index].task = make_task(title)
    return blocks


class TestMirrorStore:
    def test_coarse_sync_covers_every_minute_of_block(self):
        mirror = MirrorStore()
        blocks = grid_with(Resolution.HALF_HOUR, 18, "Draft")  # 09:00

        assert mirror.sync(blocks, Resolution.HALF_HOUR)

        assert all(mirror.cell(m).task.title == "Draft" for m in range(540, 570))
        assert mirror.cell(570).task is None

    def test_minute_sync_is_one_to_one(self):
        mirror = MirrorStore()
        mirror.sync(grid_with(Resolution.MINUTE, 541, "Call"), Resolution.MINUTE)
        assert mirror.cell(541).task.title == "Call"
        assert mirror.cell(540).task is None

    def test_skip_is_one_shot(self):
        mirror = MirrorStore()
        mirror.skip_next_sync()
        assert mirror.skip_pending

        assert mirror.sync(grid_with(Resolution.HALF_HOUR, 0, "A"), Resolution.HALF_HOUR) is False
        assert not mirror.has_content()

        assert mirror.sync(grid_with(Resolution.HALF_HOUR, 0, "A"), Resolution.HALF_HOUR)
        assert mirror.has_content()

    def test_mirror_matches_grid_after_engine_edit(self, state, engine):
        engine.assign(state, "30m-1000", make_task("Review"), 0)
        for minute in range(600, 630):
            assert state.mirror.cell(minute).task.title == "Review"

    def test_half_hour_edit_visible_in_minute_grid(self, state, engine):
        engine.assign(state, "30m-1000", make_task("Review"), 0)
        engine.assign_goal(state, ["30m-1000"], GoalTag(id="g1", label="Work", color="#00f"))

        state.switch_resolution(Resolution.MINUTE)

        for minute in range(600, 630):
            assert state.blocks[minute].task.title == "Review"
            assert state.blocks[minute].goal.label == "Work"
        assert state.blocks[630].task is None

    def test_micro_edit_visible_in_minute_grid(self, state, engine):
        state.switch_resolution(Resolution.MICRO)
        engine.assign(state, "3m-0903", make_task("Call"), 0)

        state.switch_resolution(Resolution.MINUTE)

        assert [state.blocks[m].task.title for m in range(543, 546)] == ["Call"] * 3
        assert state.blocks[542].task is None
        assert state.blocks[546].task is None


class TestSnapshotStore:
    def test_minute_grid_is_not_durable(self):
        store = SnapshotStore()
        assert store.capture(Resolution.MINUTE, generate_blocks(Resolution.MINUTE)) is False
        assert not store.has(Resolution.MINUTE)

    def test_restore_returns_independent_copy(self):
        store = SnapshotStore()
        store.capture(Resolution.HALF_HOUR, grid_with(Resolution.HALF_HOUR, 3, "A"))

        first = store.restore(Resolution.HALF_HOUR)
        first[3].task = None

        assert store.restore(Resolution.HALF_HOUR)[3].task.title == "A"

    def test_restore_missing_is_none(self):
        assert SnapshotStore().restore(Resolution.MICRO) is None
