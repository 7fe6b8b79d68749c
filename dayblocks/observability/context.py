"""
Progress-check context carried across log calls.

A progress check spans several ticks (countdown, voice transcripts, the final
cascade). While one is being handled, every log line is tagged with the
check's id and the block it is asking about, without threading them through
engine and planner signatures.
"""

import contextvars
import uuid
from dataclasses import dataclass


@dataclass(frozen=True)
class CheckContext:
    session_id: str | None = None
    block_id: str | None = None

    def as_fields(self) -> dict[str, str]:
        """Only the fields that are set, ready to merge into a log record."""
        fields = {}
        if self.session_id:
            fields["session_id"] = self.session_id
        if self.block_id:
            fields["block_id"] = self.block_id
        return fields


_EMPTY = CheckContext()
_context_var: contextvars.ContextVar[CheckContext] = contextvars.ContextVar(
    "progress_check", default=_EMPTY
)


def current_context() -> CheckContext:
    return _context_var.get()


def get_session_id() -> str | None:
    return _context_var.get().session_id


def get_block_id() -> str | None:
    return _context_var.get().block_id


def generate_session_id() -> str:
    """Progress check ids: "ps-" plus 12 hex digits."""
    return f"ps-{uuid.uuid4().hex[:12]}"


class SessionContext:
    """
    Tag log lines with a progress check and its completed block.

    Usage:
        with SessionContext(session.session_id, session.completed_block_id):
            logger.info("Resolving progress check")

    Nesting replaces both fields; leaving restores whatever was set before.
    """

    def __init__(self, session_id: str | None = None, block_id: str | None = None):
        self.session_id = session_id or generate_session_id()
        self.block_id = block_id
        self._token: contextvars.Token | None = None

    def __enter__(self) -> "SessionContext":
        self._token = _context_var.set(CheckContext(self.session_id, self.block_id))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _context_var.reset(self._token)
            self._token = None
