"""
DayPlanner - the single controller that owns a day.

Holds the DayState, the ScheduleEngine, the TickScheduler and the external
collaborators. The host calls tick(now) about once a second; everything
time-driven (boundary detection, countdowns, transient highlight expiry)
happens inside that call on the caller's thread.

Collaborator calls (store, announcer, intent capture) are best-effort: a
failure is logged and the schedule change it accompanies still stands.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from dayblocks.collaborators import (
    Announcer,
    DayStore,
    IntentSource,
    NullAnnouncer,
    NullDayStore,
    NullIntentSource,
)
from dayblocks.config import PlannerSettings, load_settings
from dayblocks.contracts import DayStatePayload
from dayblocks.progress.clock import TickScheduler
from dayblocks.progress.intents import Intent, IntentPolicy, Outcome, PhraseIntentPolicy
from dayblocks.progress.session import ProgressSession
from dayblocks.time_blocks.engine import ScheduleEngine
from dayblocks.time_blocks.models import Block, EngineResult, GoalTag, Resolution, Task, format_minute
from dayblocks.time_blocks.state import DayState

logger = logging.getLogger(__name__)

COMPLETION_PROMPT = "Time block completed. Current time is {time}. How did you do with {title}?"
TIMEOUT_ANNOUNCEMENT = (
    "No response detected. Previous block marked as interrupted. "
    "Current block marked as paused. All future tasks delayed by 2 blocks."
)

# Status strings handed to DayStore.save_block_status
STORE_COMPLETED = "completed"
STORE_DISRUPTED = "disrupted"
STORE_PAUSED = "paused"


def minute_of_day(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


class DayPlanner:
    def __init__(
        self,
        date: str | None = None,
        settings: PlannerSettings | None = None,
        store: DayStore | None = None,
        intent_source: IntentSource | None = None,
        announcer: Announcer | None = None,
        scheduler: TickScheduler | None = None,
        policy: IntentPolicy | None = None,
    ):
        self.settings = settings or load_settings()
        self.store = store or NullDayStore()
        self.intent_source = intent_source or NullIntentSource()
        self.announcer = announcer or NullAnnouncer()
        self.scheduler = scheduler or TickScheduler()
        self.policy = policy or PhraseIntentPolicy(self.settings.phrases)
        self.engine = ScheduleEngine(self.settings.markers)
        self.state = DayState.new(
            date=date,
            resolution=Resolution(self.settings.default_resolution),
            change_log_limit=self.settings.change_log_limit,
        )

        self.now: datetime = datetime.now()
        self.timer_running = False
        self.active_block_id: str | None = None
        self.session: ProgressSession | None = None
        self.last_session: ProgressSession | None = None

    # =========================================================================
    # Plumbing
    # =========================================================================

    def _best_effort(self, what: str, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return fn(*args)
        except Exception:
            logger.warning("%s failed", what, exc_info=True)
            return None

    @property
    def now_minute(self) -> int:
        return minute_of_day(self.now)

    @property
    def blocks(self) -> list[Block]:
        return self.state.blocks

    def _after(self, result: EngineResult) -> EngineResult:
        if result.accepted and result.affected:
            moved = set(result.affected)
            self.scheduler.call_later(
                self.settings.recently_moved_seconds, lambda: self._clear_recently_moved(moved)
            )
        return result

    def _clear_recently_moved(self, block_ids: set[str]) -> None:
        for block in self.state.blocks:
            if block.id in block_ids:
                block.is_recently_moved = False

    def _set_flags(self, block_id: str, **flags: bool) -> None:
        """Timer flags are display state and never enter the change log."""
        idx = self.state.timeline.index_of(block_id)
        if idx == -1:
            return
        blocks = [b.copy() for b in self.state.blocks]
        for name, value in flags.items():
            setattr(blocks[idx], name, value)
        self.state.commit(blocks)

    # =========================================================================
    # Loading
    # =========================================================================

    def load(self, date: str | None = None) -> bool:
        """
        Replace the day with what the store holds for `date`.

        Returns False (and keeps the current day) when the store has nothing
        or returns something that does not validate.
        """
        date = date or self.state.date
        raw = self._best_effort("load_day_state", self.store.load_day_state, date)
        if raw is None:
            return False
        try:
            payload = (
                raw if isinstance(raw, DayStatePayload) else DayStatePayload.model_validate(raw)
            )
        except ValidationError as exc:
            logger.error("Stored day %s is invalid: %s", date, exc)
            return False

        if payload.settings:
            merged = {**self.settings.model_dump(), **payload.settings}
            try:
                self.settings = PlannerSettings.model_validate(merged)
            except ValidationError as exc:
                logger.error("Ignoring invalid settings overrides for %s: %s", date, exc)
            else:
                self.engine = ScheduleEngine(self.settings.markers)
                self.policy = PhraseIntentPolicy(self.settings.phrases)

        self._stop_session()
        self.state = DayState.new(
            date=payload.date,
            resolution=Resolution(payload.resolution),
            change_log_limit=self.settings.change_log_limit,
        )
        self.state.commit(payload.to_blocks())
        logger.info("Loaded %s at %dm (%d stored blocks)", payload.date, payload.resolution, len(payload.blocks))
        return True

    def export(self) -> DayStatePayload:
        return DayStatePayload.from_blocks(self.state.date, self.state.resolution, self.state.blocks)

    # =========================================================================
    # Time
    # =========================================================================

    def tick(self, now: datetime) -> None:
        """Advance to `now`: read transcripts, fire due events, watch the boundary."""
        self.now = now
        if self.session is not None:
            self.session.drain()
        self.scheduler.run_until(now.timestamp())
        self._check_boundary()

    def _check_boundary(self) -> None:
        if self.now.date().isoformat() != self.state.date:
            self._end_of_day()
            return

        current = self.state.timeline.current_block(self.now_minute)

        if self.timer_running and self.active_block_id != current.id:
            finished_id = self.active_block_id
            finished_idx = self.state.timeline.index_of(finished_id)
            if finished_idx != -1 and self.state.blocks[finished_idx].has_live_task:
                self._begin_check(finished_id, current.id)
                return
            self._stop_timer()

        awaiting = self.session is not None and self.session.is_awaiting
        if not self.timer_running and not awaiting:
            if current.has_live_task and not current.is_completed:
                self.start_timer(current.id)

    def _end_of_day(self) -> None:
        """
        The clock has left this day. A running block counts as completed;
        there is no next block to check against, so nothing cascades and
        nothing auto-starts.
        """
        if not self.timer_running:
            return
        finished_id = self.active_block_id
        idx = self.state.timeline.index_of(finished_id) if finished_id else -1
        if idx != -1 and self.state.blocks[idx].has_live_task:
            self._set_flags(finished_id, is_completed=True, is_active=False)
            self._best_effort(
                "save_block_status", self.store.save_block_status, finished_id, STORE_COMPLETED
            )
        self._stop_timer()
        logger.info("Day %s ended with %s running", self.state.date, finished_id)

    def start_timer(self, block_id: str) -> None:
        if self.timer_running and self.active_block_id == block_id:
            return
        if self.active_block_id and self.active_block_id != block_id:
            self._set_flags(self.active_block_id, is_active=False)
        self.timer_running = True
        self.active_block_id = block_id
        self._set_flags(block_id, is_active=True)
        logger.debug("Timer started on %s", block_id)

    def _stop_timer(self) -> None:
        if self.active_block_id:
            self._set_flags(self.active_block_id, is_active=False)
        self.timer_running = False
        self.active_block_id = None

    def _stop_session(self) -> None:
        if self.session is not None:
            self.session.cancel()
            self.last_session = self.session
            self.session = None
        self._stop_timer()

    # =========================================================================
    # Progress check
    # =========================================================================

    def _begin_check(self, finished_id: str, current_id: str) -> None:
        finished = self.state.timeline.get(finished_id)
        current = self.state.timeline.get(current_id)
        title = finished.task.title if finished.task else ""

        self.timer_running = False
        self.active_block_id = None
        self._set_flags(finished_id, is_completed=True, is_active=False)
        self._best_effort(
            "save_block_status", self.store.save_block_status, finished_id, STORE_COMPLETED
        )
        self._best_effort("chime", self.announcer.chime)
        self._best_effort(
            "speak",
            self.announcer.speak,
            COMPLETION_PROMPT.format(time=format_minute(self.now_minute), title=title),
        )

        self.session = ProgressSession(
            completed_block_id=finished_id,
            current_block_id=current_id,
            scheduler=self.scheduler,
            on_resolve=self._on_resolved,
            intent_source=self.intent_source,
            policy=self.policy,
            countdown_seconds=self.settings.countdown_seconds,
            stick_allowed=current.is_pinned and current.task is not None,
        )
        self.session.start()

    def respond(self, outcome: Outcome | str, override_title: str | None = None) -> bool:
        """Manual answer to the open progress check."""
        if self.session is None:
            return False
        return self.session.respond(Outcome(outcome), override_title)

    def close_check(self) -> bool:
        if self.session is None:
            return False
        return self.session.close()

    def _on_resolved(self, session: ProgressSession, intent: Intent) -> None:
        self.last_session = session
        self.session = None
        finished_id, current_id = session.completed_block_id, session.current_block_id

        if intent.outcome == Outcome.DONE:
            self._resume(current_id)
        elif intent.outcome == Outcome.STILL_DOING:
            self._after(
                self.engine.continue_task(self.state, finished_id, current_id, intent.override_title)
            )
            self._resume(current_id)
        elif intent.outcome == Outcome.STICK_TO_PLAN:
            self._after(self.engine.stick_to_plan(self.state, finished_id, current_id))
            self._resume(current_id)
        else:
            result = self._after(
                self.engine.interrupt(
                    self.state, finished_id, current_id, closed=intent.outcome == Outcome.CLOSED
                )
            )
            if result.accepted:
                self._best_effort(
                    "save_block_status", self.store.save_block_status, finished_id, STORE_DISRUPTED
                )
                self._best_effort(
                    "save_block_status", self.store.save_block_status, current_id, STORE_PAUSED
                )
            if intent.outcome == Outcome.TIMEOUT:
                self._best_effort("speak", self.announcer.speak, TIMEOUT_ANNOUNCEMENT)

    def _resume(self, block_id: str) -> None:
        idx = self.state.timeline.index_of(block_id)
        if idx != -1 and self.state.blocks[idx].has_live_task:
            self.start_timer(block_id)

    # =========================================================================
    # Schedule operations
    # =========================================================================

    def assign(self, block_id: str, task: Task) -> EngineResult:
        return self._after(self.engine.assign(self.state, block_id, task, self.now_minute))

    def push_forward(self, from_index: int, offset: int = 1) -> EngineResult:
        return self._after(self.engine.push_forward(self.state, from_index, offset))

    def move(self, source_id: str, target_id: str, task: Task | None = None) -> EngineResult:
        return self._after(
            self.engine.simple_move(self.state, source_id, target_id, task, self.now_minute)
        )

    def expand_fill(self, block_ids: list[str], task: Task) -> EngineResult:
        return self._after(self.engine.expand_fill(self.state, block_ids, task, self.now_minute))

    def bulk_move(self, destination_id: str) -> EngineResult:
        """Move the current selection; the selection is cleared when accepted."""
        result = self.engine.bulk_move(
            self.state, self.state.selection.selected, destination_id, self.now_minute
        )
        if result.accepted:
            self.state.selection.clear()
        return self._after(result)

    def toggle_pin(self, block_id: str) -> EngineResult:
        result = self.engine.toggle_pin(self.state, block_id)
        if result.accepted:
            pinned = self.state.timeline.get(block_id).is_pinned
            self._best_effort("save_pin", self.store.save_pin, block_id, pinned)
        return result

    def clear_task(self, block_id: str) -> EngineResult:
        return self.engine.clear_task(self.state, block_id)

    def bulk_clear(self) -> EngineResult:
        result = self.engine.bulk_clear(self.state, self.state.selection.selected)
        if result.accepted:
            self.state.selection.clear()
        return result

    def assign_goal(self, goal: GoalTag, block_ids: list[str] | None = None) -> EngineResult:
        ids = block_ids if block_ids is not None else self.state.selection.selected
        return self.engine.assign_goal(self.state, ids, goal)

    def clear_goal(self, block_ids: list[str] | None = None) -> EngineResult:
        ids = block_ids if block_ids is not None else self.state.selection.selected
        return self.engine.clear_goal(self.state, ids)

    def undo(self) -> EngineResult:
        return self.engine.undo(self.state)

    # =========================================================================
    # Selection / resolution
    # =========================================================================

    def toggle_select(self, block_id: str) -> bool:
        return self.state.selection.toggle(block_id)

    def range_select(self, from_id: str, to_id: str) -> list[str]:
        return self.state.selection.range_select(from_id, to_id)

    def set_resolution(self, resolution: Resolution | int) -> bool:
        """
        Switch the grid. Block ids change, so a running timer and any open
        progress check are dropped; the next tick restarts the timer.
        """
        resolution = Resolution(resolution)
        if resolution == self.state.resolution:
            return False
        self._stop_session()
        return self.state.switch_resolution(resolution)
