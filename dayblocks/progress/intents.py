"""
Intent policy - turns a voice transcript into a progress-check outcome.

Rules are evaluated in order and the first match wins:
done > still doing > stick to plan > "I did <X> instead".
The policy is pluggable; ProgressSession only calls classify().
"""

import logging
import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from dayblocks.config import PhraseSettings

logger = logging.getLogger(__name__)


class Outcome(StrEnum):
    DONE = "done"
    STILL_DOING = "still_doing"
    STICK_TO_PLAN = "stick_to_plan"
    TIMEOUT = "timeout"
    CLOSED = "closed"


@dataclass(frozen=True)
class Intent:
    outcome: Outcome
    override_title: str | None = None


class IntentPolicy(Protocol):
    def classify(self, text: str, stick_allowed: bool = False) -> Intent | None: ...


def _phrase_pattern(phrases: list[str]) -> re.Pattern | None:
    cleaned = [p.strip().lower() for p in phrases if p.strip()]
    if not cleaned:
        return None
    # longest first so "all done" wins over "done" inside the alternation
    alternatives = "|".join(re.escape(p) for p in sorted(cleaned, key=len, reverse=True))
    return re.compile(rf"\b(?:{alternatives})\b")


@dataclass(frozen=True)
class IntentRule:
    outcome: Outcome
    pattern: re.Pattern
    requires_stick: bool = False

    def matches(self, normalized: str) -> bool:
        return self.pattern.search(normalized) is not None


class PhraseIntentPolicy:
    """Ordered phrase rules plus the free-text "instead" pattern."""

    def __init__(self, phrases: PhraseSettings | None = None):
        phrases = phrases or PhraseSettings()
        self.rules: list[IntentRule] = []
        for outcome, words, requires_stick in (
            (Outcome.DONE, phrases.done, False),
            (Outcome.STILL_DOING, phrases.still_doing, False),
            (Outcome.STICK_TO_PLAN, phrases.stick_to_plan, True),
        ):
            pattern = _phrase_pattern(words)
            if pattern is not None:
                self.rules.append(IntentRule(outcome, pattern, requires_stick))
        self.instead = re.compile(phrases.instead_pattern, re.IGNORECASE)

    @staticmethod
    def normalize(text: str) -> str:
        return " ".join(text.lower().split())

    def classify(self, text: str, stick_allowed: bool = False) -> Intent | None:
        normalized = self.normalize(text)
        if not normalized:
            return None

        for rule in self.rules:
            if rule.requires_stick and not stick_allowed:
                continue
            if rule.matches(normalized):
                logger.debug("Transcript %r matched %s", text, rule.outcome.value)
                return Intent(rule.outcome)

        # Title keeps the speaker's casing
        match = self.instead.search(" ".join(text.split()))
        if match:
            title = match.group("title").strip()
            if title:
                return Intent(Outcome.STILL_DOING, override_title=title)

        logger.debug("Transcript %r matched no intent", text)
        return None
