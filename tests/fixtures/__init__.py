"""
Test fixtures for deterministic testing.

This module provides:
- doubles: recording and failing stand-ins for DayStore, Announcer and
  IntentSource
- make_task / at: small builders for tasks and wall-clock moments
"""

from .doubles import (
    NOW_MINUTE,
    TEST_DATE,
    FailingStore,
    RecordingAnnouncer,
    RecordingStore,
    ScriptedIntentSource,
    at,
    make_task,
    seed,
    titles,
)

__all__ = [
    "NOW_MINUTE",
    "TEST_DATE",
    "FailingStore",
    "RecordingAnnouncer",
    "RecordingStore",
    "ScriptedIntentSource",
    "at",
    "make_task",
    "seed",
    "titles",
]
