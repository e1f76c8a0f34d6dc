"""Editor commands bound to a session's supervisor.

Both commands restart the analyzer: Psalm re-analyzes the whole workspace on
startup, so "analyze workspace" is a restart too.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from psalter.constants import ANALYZE_WORKSPACE_COMMAND, RESTART_SERVER_COMMAND
from psalter.lsp.supervisor import ProcessSupervisor
from psalter.utils.logger import logger

CommandHandler = Callable[[], Awaitable[None]]


def _restart(supervisor: ProcessSupervisor, reason: str) -> CommandHandler:
    async def execute() -> None:
        logger.info(f"{reason}: restarting analyzer")
        await supervisor.restart()

    return execute


def build_commands(supervisor: ProcessSupervisor) -> dict[str, CommandHandler]:
    """Command id -> async handler."""
    return {
        RESTART_SERVER_COMMAND: _restart(supervisor, "Restart requested"),
        ANALYZE_WORKSPACE_COMMAND: _restart(supervisor, "Workspace analysis requested"),
    }
