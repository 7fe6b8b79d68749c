"""
Tests for DayPlanner - boundary detection, progress outcomes, collaborators.

Covers:
- Timer auto-start and block boundary detection
- Each progress outcome end to end (voice and manual)
- Collaborator failures never break the schedule
- Loading and exporting day state
- Transient highlight expiry
"""

from datetime import timedelta

import pytest

from dayblocks.config import PlannerSettings
from dayblocks.planner import COMPLETION_PROMPT, TIMEOUT_ANNOUNCEMENT, DayPlanner
from dayblocks.progress.clock import FakeClock, TickScheduler
from dayblocks.progress.intents import Outcome
from dayblocks.time_blocks.models import BlockStatus, Resolution
from tests.fixtures import (
    TEST_DATE,
    FailingStore,
    RecordingAnnouncer,
    ScriptedIntentSource,
    at,
    make_task,
    seed,
    titles,
)


def run_to_boundary(planner):
    """Draft at 09:00 with the timer running, then cross into 09:30."""
    planner.tick(at(9, 0))
    assert planner.timer_running
    planner.tick(at(9, 30))


def tick_seconds(planner, start, seconds):
    for s in range(1, seconds + 1):
        planner.tick(start + timedelta(seconds=s))


class TestBoundary:
    def test_timer_autostarts_on_live_task(self, planner):
        seed(planner.state, {"30m-0900": "Draft"})
        planner.tick(at(9, 5))
        assert planner.timer_running
        assert planner.active_block_id == "30m-0900"
        assert planner.state.timeline.get("30m-0900").is_active

    def test_no_timer_on_empty_block(self, planner):
        planner.tick(at(9, 5))
        assert not planner.timer_running

    def test_boundary_starts_progress_check(self, planner, store, announcer):
        seed(planner.state, {"30m-0900": "Draft", "30m-0930": "Email"})

        run_to_boundary(planner)

        finished = planner.state.timeline.get("30m-0900")
        assert finished.is_completed and not finished.is_active
        assert not planner.timer_running
        assert planner.session is not None and planner.session.is_awaiting
        assert store.statuses == [("30m-0900", "completed")]
        assert announcer.chimes == 1
        assert announcer.spoken == [COMPLETION_PROMPT.format(time="09:30", title="Draft")]

    def test_midnight_completes_running_block_without_cascade(self, planner, store, announcer):
        seed(planner.state, {"30m-0900": "Morning", "30m-1000": "Standup", "30m-2330": "Late"})
        planner.tick(at(23, 31))
        assert planner.active_block_id == "30m-2330"
        before = titles(planner.state)

        next_day = at(0, 0, 0, day="2026-10-19")
        planner.tick(next_day)
        tick_seconds(planner, next_day, 15)

        assert titles(planner.state) == before
        assert planner.state.timeline.get("30m-2330").is_completed
        assert not planner.state.timeline.get("30m-0900").is_active
        assert not planner.timer_running
        assert planner.session is None
        assert store.statuses == [("30m-2330", "completed")]
        assert announcer.spoken == []
        assert len(planner.state.changes) == 0

    def test_timer_not_restarted_while_awaiting(self, planner):
        seed(planner.state, {"30m-0900": "Draft", "30m-0930": "Email"})
        run_to_boundary(planner)
        planner.tick(at(9, 30, 1))
        assert not planner.timer_running


class TestOutcomes:
    def test_timeout_cascade(self, planner, store, announcer):
        """No answer for the whole countdown: interrupted, paused, pushed by two."""
        seed(planner.state, {"30m-0900": "Draft", "30m-0930": "Email"})
        run_to_boundary(planner)

        tick_seconds(planner, at(9, 30), 15)

        assert titles(planner.state) == {
            "30m-0900": "Interrupted - No Response",
            "30m-0930": "Paused - Previous Interruption",
            "30m-1030": "Draft",
            "30m-1100": "Email",
        }
        assert planner.state.timeline.get("30m-0930").status == BlockStatus.PAUSED
        assert ("30m-0900", "disrupted") in store.statuses
        assert ("30m-0930", "paused") in store.statuses
        assert announcer.spoken[-1] == TIMEOUT_ANNOUNCEMENT
        assert planner.session is None
        assert planner.last_session.outcome.outcome == Outcome.TIMEOUT
        # paused blocks never auto-start
        assert not planner.timer_running

    def test_timeout_with_default_scheduler_on_past_date(self, store, announcer, intents):
        """Host timestamps far from wall time still drive the countdown."""
        day = "2020-01-06"
        planner = DayPlanner(
            date=day,
            settings=PlannerSettings(),
            store=store,
            intent_source=intents,
            announcer=announcer,
        )
        seed(planner.state, {"30m-0900": "Draft"})
        planner.tick(at(9, 0, day=day))
        planner.tick(at(9, 30, day=day))
        assert planner.session.is_awaiting

        tick_seconds(planner, at(9, 30, day=day), 14)
        assert planner.session.is_awaiting
        planner.tick(at(9, 30, 15, day=day))

        assert planner.session is None
        assert titles(planner.state)["30m-1030"] == "Draft"

    def test_no_timeout_before_countdown_ends(self, planner):
        seed(planner.state, {"30m-0900": "Draft"})
        run_to_boundary(planner)
        tick_seconds(planner, at(9, 30), 14)
        assert planner.session.is_awaiting

    def test_voice_done(self, planner, intents):
        seed(planner.state, {"30m-0900": "Draft", "30m-0930": "Email"})
        run_to_boundary(planner)

        intents.say("All done")
        planner.tick(at(9, 30, 1))

        assert titles(planner.state) == {"30m-0900": "Draft", "30m-0930": "Email"}
        assert planner.timer_running
        assert planner.active_block_id == "30m-0930"
        assert intents.subscriptions[0].cancelled

    def test_voice_still_doing(self, planner, intents):
        seed(planner.state, {"30m-0900": "Draft", "30m-0930": "Email"})
        run_to_boundary(planner)

        intents.say("still working on it")
        planner.tick(at(9, 30, 1))

        assert titles(planner.state) == {
            "30m-0900": "Draft",
            "30m-0930": "Draft",
            "30m-1000": "Email",
        }
        assert planner.active_block_id == "30m-0930"

    def test_voice_did_something_else(self, planner, intents):
        seed(planner.state, {"30m-0900": "Draft"})
        run_to_boundary(planner)

        intents.say("I did Expense report instead")
        planner.tick(at(9, 30, 1))

        assert titles(planner.state) == {"30m-0900": "Expense report", "30m-0930": "Draft"}

    def test_stick_to_plan_with_pinned_current(self, planner, intents):
        seed(
            planner.state,
            {"30m-0900": "Draft", "30m-0930": "Standup"},
            pinned=("30m-0930",),
        )
        run_to_boundary(planner)
        assert planner.session.stick_allowed

        intents.say("stick to the plan")
        planner.tick(at(9, 30, 1))

        assert titles(planner.state) == {
            "30m-0900": "Draft (pushed to future)",
            "30m-0930": "Standup",
            "30m-1000": "Draft",
        }
        assert planner.active_block_id == "30m-0930"

    def test_manual_close(self, planner):
        seed(planner.state, {"30m-0900": "Draft"})
        run_to_boundary(planner)

        assert planner.close_check()

        assert planner.state.timeline.get("30m-0900").task.title == "Interrupted - Closed"

    def test_respond_without_session(self, planner):
        assert planner.respond(Outcome.DONE) is False


class TestCollaboratorFailures:
    @pytest.fixture
    def fragile(self):
        p = DayPlanner(
            date=TEST_DATE,
            settings=PlannerSettings(),
            store=FailingStore(),
            intent_source=ScriptedIntentSource(),
            announcer=RecordingAnnouncer(fail=True),
            scheduler=TickScheduler(FakeClock(at(0).timestamp())),
        )
        p.now = at(0)
        return p

    def test_progress_check_survives_failures(self, fragile, caplog):
        seed(fragile.state, {"30m-0900": "Draft"})

        with caplog.at_level("WARNING"):
            run_to_boundary(fragile)
            tick_seconds(fragile, at(9, 30), 15)

        assert fragile.state.timeline.get("30m-0900").status == BlockStatus.INTERRUPTED
        assert "save_block_status failed" in caplog.text
        assert "speak failed" in caplog.text

    def test_pin_survives_store_failure(self, fragile):
        result = fragile.toggle_pin("30m-0900")
        assert result.accepted
        assert fragile.state.timeline.get("30m-0900").is_pinned

    def test_load_failure_keeps_current_day(self, fragile):
        seed(fragile.state, {"30m-0900": "Draft"})
        assert fragile.load() is False
        assert titles(fragile.state) == {"30m-0900": "Draft"}


class TestOperations:
    def test_toggle_pin_persists(self, planner, store):
        planner.toggle_pin("30m-0900")
        assert store.pins == [("30m-0900", True)]

    def test_recently_moved_expires(self, planner):
        planner.assign("30m-1000", make_task("Review"))
        assert planner.state.timeline.get("30m-1000").is_recently_moved

        planner.tick(at(0, 0, 3))

        assert not planner.state.timeline.get("30m-1000").is_recently_moved

    def test_bulk_move_uses_selection(self, planner):
        seed(planner.state, {"30m-0900": "A", "30m-1000": "B"})
        planner.range_select("30m-0900", "30m-1000")

        result = planner.bulk_move("30m-1200")

        assert result.accepted
        assert titles(planner.state) == {"30m-1200": "A", "30m-1300": "B"}
        assert len(planner.state.selection) == 0

    def test_set_resolution_drops_open_check(self, planner):
        seed(planner.state, {"30m-0900": "Draft"})
        run_to_boundary(planner)
        session = planner.session

        assert planner.set_resolution(Resolution.MICRO)

        assert planner.session is None
        assert session.state.value == "resolved"
        assert planner.state.resolution == Resolution.MICRO

    def test_undo(self, planner):
        planner.assign("30m-1000", make_task("Review"))
        planner.undo()
        assert titles(planner.state) == {}


class TestLoad:
    def test_load_payload(self, planner, store):
        store.payload = {
            "date": TEST_DATE,
            "resolution": 30,
            "blocks": [
                {"start": 540, "task": {"id": "t1", "title": "Draft"}, "pinned": True},
                {"start": 570, "goal": {"id": "g1", "label": "Health"}},
            ],
            "settings": {"countdown_seconds": 5},
        }

        assert planner.load()

        assert titles(planner.state) == {"30m-0900": "Draft"}
        assert planner.state.timeline.get("30m-0900").is_pinned
        assert planner.state.timeline.get("30m-0930").goal.label == "Health"
        assert planner.settings.countdown_seconds == 5
        assert planner.state.mirror.cell(545).task.title == "Draft"

    def test_invalid_payload_rejected(self, planner, store):
        store.payload = {"date": TEST_DATE, "resolution": 30, "blocks": [{"start": 545}]}
        assert planner.load() is False

    def test_export_round_trip(self, planner):
        seed(planner.state, {"30m-0900": "Draft"}, pinned=("30m-0900",))
        payload = planner.export()
        assert len(payload.blocks) == 1
        assert payload.to_blocks() == planner.state.blocks
