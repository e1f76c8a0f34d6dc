"""
Logging for Psalter.

The analyzer speaks the language server protocol over its stdout, so nothing
of ours may ever be written there: every sink goes to STDERR.

Session Support:
- Each activation gets a short session id (``psl_<base36 time>_<hex>``)
- ``session_scope()`` binds it with loguru's ``contextualize`` so every log
  line emitted during the session, including from pump tasks spawned inside
  it, carries the id
"""

import os
import secrets
import sys
import time
from contextlib import contextmanager
from typing import Generator

from loguru import logger as loguru_logger

_LOG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "{extra[session]} | <cyan>{name}</cyan> - <level>{message}</level>"
)


def generate_session_id() -> str:
    """
    Generate a unique session ID.

    Format: psl_<timestamp_base36>_<random_hex>
    """
    timestamp = int(time.time() * 1000)
    random_part = secrets.token_hex(4)
    return f"psl_{base36_encode(timestamp)}_{random_part}"


def base36_encode(number: int) -> str:
    """Encode an integer to base36 string."""
    if number == 0:
        return "0"

    chars = "0123456789abcdefghijklmnopqrstuvwxyz"
    result = []
    while number:
        result.append(chars[number % 36])
        number //= 36
    return "".join(reversed(result))


@contextmanager
def session_scope(session_id: str | None = None) -> Generator[str, None, None]:
    """Bind a session id to every log record emitted inside the block."""
    session_id = session_id or generate_session_id()
    with loguru_logger.contextualize(session=session_id):
        yield session_id


def is_debug_enabled() -> bool:
    """Check if debug mode is enabled via the environment."""
    return os.environ.get("PSALTER_DEBUG", "").lower() == "true"


def configure_logging(debug: bool = False, level: str = "INFO") -> None:
    """Route all logging to a single STDERR sink.

    ``level`` applies unless ``debug`` is set or ``PSALTER_DEBUG=true``,
    which switch to DEBUG.
    """
    loguru_logger.remove()
    loguru_logger.configure(extra={"session": "-"})
    loguru_logger.add(
        sys.stderr,
        level="DEBUG" if debug or is_debug_enabled() else level,
        format=_LOG_FORMAT,
        backtrace=False,
        diagnose=False,
    )


# Export loguru logger for direct use
logger = loguru_logger
