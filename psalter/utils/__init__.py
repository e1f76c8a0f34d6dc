"""
Psalter utility modules.

- Logging (STDERR-only, session-scoped)
"""

from .logger import (
    base36_encode,
    configure_logging,
    generate_session_id,
    is_debug_enabled,
    logger,
    session_scope,
)

__all__ = [
    "base36_encode",
    "configure_logging",
    "generate_session_id",
    "is_debug_enabled",
    "logger",
    "session_scope",
]
