"""
Progress Session - the "how did it go?" check at a block boundary.

States: idle -> awaiting_response -> resolved

Invariants:
- One countdown timer and one intent subscription per session
- Both are cancelled whenever awaiting_response is left, for any reason
- Exactly one outcome is delivered, and only once
- stick_to_plan is refused unless it was offered at start
"""

import logging
import queue
from collections.abc import Callable
from enum import StrEnum

from dayblocks.collaborators import IntentSource, NullIntentSource, Subscription
from dayblocks.config import DEFAULT_COUNTDOWN_SECONDS
from dayblocks.observability import SessionContext, generate_session_id
from dayblocks.progress.clock import TickScheduler, TimerHandle
from dayblocks.progress.intents import Intent, IntentPolicy, Outcome, PhraseIntentPolicy

logger = logging.getLogger(__name__)


class SessionState(StrEnum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"
    RESOLVED = "resolved"


class ProgressSession:
    def __init__(
        self,
        completed_block_id: str,
        current_block_id: str,
        scheduler: TickScheduler,
        on_resolve: Callable[["ProgressSession", Intent], None],
        intent_source: IntentSource | None = None,
        policy: IntentPolicy | None = None,
        countdown_seconds: int = DEFAULT_COUNTDOWN_SECONDS,
        stick_allowed: bool = False,
    ):
        self.session_id = generate_session_id()
        self.completed_block_id = completed_block_id
        self.current_block_id = current_block_id
        self.scheduler = scheduler
        self.intent_source = intent_source or NullIntentSource()
        self.policy = policy or PhraseIntentPolicy()
        self.countdown_seconds = countdown_seconds
        self.stick_allowed = stick_allowed
        self._on_resolve = on_resolve

        self.state = SessionState.IDLE
        self.remaining = countdown_seconds
        self.outcome: Intent | None = None
        self.transcripts: list[str] = []
        self._inbox: queue.Queue[str] = queue.Queue()
        self._timer: TimerHandle | None = None
        self._subscription: Subscription | None = None

    @property
    def is_awaiting(self) -> bool:
        return self.state == SessionState.AWAITING_RESPONSE

    def start(self) -> None:
        if self.state != SessionState.IDLE:
            raise RuntimeError(f"Session {self.session_id} already {self.state.value}")
        self.state = SessionState.AWAITING_RESPONSE
        self.remaining = self.countdown_seconds
        self._timer = self.scheduler.call_every(1.0, self._tick)
        try:
            self._subscription = self.intent_source.subscribe(self._inbox.put)
        except Exception:
            # The countdown still runs; no answer means timeout
            logger.warning("Intent capture unavailable for %s", self.session_id, exc_info=True)
            self._subscription = None
        logger.info(
            "Progress check started for %s (%ds)",
            self.completed_block_id,
            self.countdown_seconds,
            extra={"session_id": self.session_id},
        )

    def _tick(self) -> None:
        if not self.is_awaiting:
            return
        self.remaining -= 1
        if self.remaining <= 0:
            self._resolve(Intent(Outcome.TIMEOUT))

    def drain(self) -> int:
        """Handle queued transcripts on the calling thread. Returns how many were read."""
        handled = 0
        while self.is_awaiting:
            try:
                text = self._inbox.get_nowait()
            except queue.Empty:
                break
            handled += 1
            self.on_transcript(text)
        return handled

    def on_transcript(self, text: str) -> Intent | None:
        if not self.is_awaiting:
            return None
        self.transcripts.append(text)
        intent = self.policy.classify(text, stick_allowed=self.stick_allowed)
        if intent is not None:
            self._resolve(intent)
        return intent

    def respond(self, outcome: Outcome, override_title: str | None = None) -> bool:
        """Answer by hand (button press). Returns False if not accepted."""
        outcome = Outcome(outcome)
        if not self.is_awaiting:
            return False
        if outcome == Outcome.STICK_TO_PLAN and not self.stick_allowed:
            logger.info("stick_to_plan not offered for %s", self.session_id)
            return False
        self._resolve(Intent(outcome, override_title))
        return True

    def close(self) -> bool:
        """User dismissed the check."""
        return self.respond(Outcome.CLOSED)

    def cancel(self) -> None:
        """Tear down without an outcome (day reloaded, planner shut down)."""
        if self.is_awaiting:
            self._teardown()
            self.state = SessionState.RESOLVED
            logger.info("Progress check %s cancelled", self.session_id)

    def _teardown(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._subscription is not None:
            try:
                self._subscription.cancel()
            except Exception:
                logger.warning("Failed to cancel intent capture", exc_info=True)
            self._subscription = None

    def _resolve(self, intent: Intent) -> None:
        self._teardown()
        self.state = SessionState.RESOLVED
        self.outcome = intent
        with SessionContext(self.session_id, self.completed_block_id):
            logger.info("Progress check resolved: %s", intent.outcome.value)
            self._on_resolve(self, intent)
