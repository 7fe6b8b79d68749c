"""
Test configuration - ensures repo root is in sys.path and provides
deterministic planners (fake clock, recording collaborators).

This allows tests to import from top-level packages (dayblocks, tests.fixtures).
"""

import sys
from pathlib import Path

import pytest

# Add repo root to sys.path so tests can import dayblocks.*, tests.fixtures.*
REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dayblocks.config import PlannerSettings  # noqa: E402
from dayblocks.planner import DayPlanner  # noqa: E402
from dayblocks.progress.clock import FakeClock, TickScheduler  # noqa: E402
from dayblocks.time_blocks.engine import ScheduleEngine  # noqa: E402
from dayblocks.time_blocks.state import DayState  # noqa: E402
from tests.fixtures import (  # noqa: E402
    TEST_DATE,
    RecordingAnnouncer,
    RecordingStore,
    ScriptedIntentSource,
    at,
)


@pytest.fixture
def state():
    return DayState.new(date=TEST_DATE)


@pytest.fixture
def engine():
    return ScheduleEngine()


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def announcer():
    return RecordingAnnouncer()


@pytest.fixture
def intents():
    return ScriptedIntentSource()


@pytest.fixture
def scheduler():
    return TickScheduler(FakeClock(at(0).timestamp()))


@pytest.fixture
def planner(store, announcer, intents, scheduler):
    p = DayPlanner(
        date=TEST_DATE,
        settings=PlannerSettings(),
        store=store,
        intent_source=intents,
        announcer=announcer,
        scheduler=scheduler,
    )
    p.now = at(0)
    return p
