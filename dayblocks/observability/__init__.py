"""
Observability: log formatting and progress-check context.

Usage:
    from dayblocks.observability import SessionContext, configure_logging

    configure_logging("DEBUG", json_format=False)

    with SessionContext(session.session_id, session.completed_block_id):
        logger.info("Progress check resolved")
"""

from .context import (
    CheckContext,
    SessionContext,
    current_context,
    generate_session_id,
    get_block_id,
    get_session_id,
)
from .logging import (
    HumanFormatter,
    JSONFormatter,
    configure_from_env,
    configure_logging,
    record_fields,
)

__all__ = [
    # Logging
    "configure_logging",
    "configure_from_env",
    "record_fields",
    "JSONFormatter",
    "HumanFormatter",
    # Context
    "CheckContext",
    "SessionContext",
    "current_context",
    "generate_session_id",
    "get_block_id",
    "get_session_id",
]
