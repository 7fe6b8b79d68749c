"""
Collaborator interfaces the planner talks to.

Persistence, speech capture and audio output live outside this package.
DayPlanner treats every call into them as best-effort: a failure is logged
and never changes the outcome of a schedule operation.
"""

import logging
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from dayblocks.contracts import DayStatePayload

logger = logging.getLogger(__name__)


@runtime_checkable
class Subscription(Protocol):
    def cancel(self) -> None: ...


@runtime_checkable
class DayStore(Protocol):
    def load_day_state(self, date: str) -> DayStatePayload | None: ...

    def save_block_status(self, block_id: str, status: str) -> None: ...

    def save_pin(self, block_id: str, pinned: bool) -> None: ...


@runtime_checkable
class IntentSource(Protocol):
    """Speech-to-text feed. Callbacks may arrive on any thread."""

    def subscribe(self, callback: Callable[[str], None]) -> Subscription: ...


@runtime_checkable
class Announcer(Protocol):
    def chime(self) -> None: ...

    def speak(self, text: str) -> None: ...


# =============================================================================
# NULL IMPLEMENTATIONS
# =============================================================================


class NullSubscription:
    def __init__(self):
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class NullDayStore:
    """Nothing stored, nothing loaded."""

    def load_day_state(self, date: str) -> DayStatePayload | None:
        return None

    def save_block_status(self, block_id: str, status: str) -> None:
        logger.debug("NullDayStore: status %s -> %s", block_id, status)

    def save_pin(self, block_id: str, pinned: bool) -> None:
        logger.debug("NullDayStore: pin %s -> %s", block_id, pinned)


class NullIntentSource:
    """Never produces a transcript; every progress check times out or is answered by hand."""

    def subscribe(self, callback: Callable[[str], None]) -> Subscription:
        return NullSubscription()


class NullAnnouncer:
    def chime(self) -> None:
        pass

    def speak(self, text: str) -> None:
        logger.debug("NullAnnouncer: %s", text)
