"""
Progress Module

Block-boundary check-ins: a countdown, a voice intent, and one outcome.

Objects:
- TickScheduler / TimerHandle (time and cancellable events)
- PhraseIntentPolicy (ordered transcript rules)
- ProgressSession (idle -> awaiting_response -> resolved)
"""

from .clock import Clock, FakeClock, TickScheduler, TimerHandle
from .intents import Intent, IntentPolicy, IntentRule, Outcome, PhraseIntentPolicy
from .session import ProgressSession, SessionState

__all__ = [
    "Clock",
    "FakeClock",
    "Intent",
    "IntentPolicy",
    "IntentRule",
    "Outcome",
    "PhraseIntentPolicy",
    "ProgressSession",
    "SessionState",
    "TickScheduler",
    "TimerHandle",
]
