"""Capability probing for the Psalm analyzer.

Older Psalm releases lack some of the flags newer ones understand, and an
unknown flag makes the analyzer refuse to start. Before the language server is
spawned, its ``--help`` output is inspected once per flag. Probes form a
chain: a flag confirmed early (``--language-server``) is passed to the later
probes because the help text differs by mode.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from psalter.constants import (
    ARGUMENT_SEPARATOR,
    FLAG_EXTENDED_DIAGNOSTIC_CODES,
    FLAG_HELP,
    FLAG_LANGUAGE_SERVER,
    FLAG_VERBOSE,
    PROBE_TIMEOUT,
)
from psalter.types import CapabilitySet
from psalter.utils.logger import logger


def flag_pattern(flag: str) -> re.Pattern[str]:
    """Match ``flag`` as a whole token.

    A longer flag sharing the prefix (``--verbose-extra``, ``--verbose_x``)
    does not count.
    """
    return re.compile(r"(\b|\s)" + re.escape(flag) + r"(?![-_])(\b|\s)", re.MULTILINE)


def help_mentions_flag(help_text: str, flag: str) -> bool:
    """Whether ``help_text`` advertises ``flag``."""
    return flag_pattern(flag).search(help_text) is not None


@dataclass(frozen=True)
class ProbeStep:
    """One link of the probe chain.

    ``prerequisites`` are flags that, once confirmed by an earlier step, are
    appended to the arguments of this probe.
    """

    flag: str
    prerequisites: tuple[str, ...] = ()


def default_probe_plan(debug: bool = False) -> list[ProbeStep]:
    """The probe chain for a session.

    ``--verbose`` is only worth asking about when debug logging is on.
    """
    steps = [
        ProbeStep(FLAG_LANGUAGE_SERVER),
        ProbeStep(FLAG_EXTENDED_DIAGNOSTIC_CODES, prerequisites=(FLAG_LANGUAGE_SERVER,)),
    ]
    if debug:
        steps.append(ProbeStep(FLAG_VERBOSE, prerequisites=(FLAG_LANGUAGE_SERVER,)))
    return steps


@dataclass
class CapabilityProbe:
    """Asks the analyzer which optional flags it supports.

    Each probe runs ``<php> <php args> -f <script> -- --help <args>`` and
    looks for the flag in the combined output. Every failure (spawn error,
    timeout, non-zero exit) means "unsupported"; probing never raises.
    """

    php_executable: str
    script_path: str
    php_args: Sequence[str] = field(default_factory=list)
    timeout: float = PROBE_TIMEOUT

    def help_command(self, resolved_args: Sequence[str]) -> list[str]:
        return [
            self.php_executable,
            *self.php_args,
            "-f",
            self.script_path,
            ARGUMENT_SEPARATOR,
            FLAG_HELP,
            *resolved_args,
        ]

    async def _read_help(self, resolved_args: Sequence[str]) -> str | None:
        command = self.help_command(resolved_args)
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except (OSError, ValueError) as e:
            logger.debug(f"Probe spawn failed for {command[0]}: {e}")
            return None

        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.debug(f"Probe timed out after {self.timeout}s: {' '.join(command)}")
            proc.kill()
            await proc.wait()
            return None

        if proc.returncode != 0:
            logger.debug(f"Probe exited with {proc.returncode}: {' '.join(command)}")
            return None
        return stdout.decode("utf-8", errors="replace")

    async def probe(self, resolved_args: Sequence[str], flag: str) -> bool:
        """Whether the analyzer's help (given ``resolved_args``) lists ``flag``."""
        help_text = await self._read_help(resolved_args)
        if help_text is None:
            return False
        supported = help_mentions_flag(help_text, flag)
        logger.debug(f"Probe {flag}: {'supported' if supported else 'unsupported'}")
        return supported

    async def probe_all(
        self,
        steps: Iterable[ProbeStep],
        base_args: Sequence[str] = (),
    ) -> CapabilitySet:
        """Run the probe chain strictly in order and freeze the result."""
        results: dict[str, bool] = {}
        for step in steps:
            resolved = [*base_args, *(p for p in step.prerequisites if results.get(p))]
            results[step.flag] = await self.probe(resolved, step.flag)
        capabilities = CapabilitySet(results)
        logger.info(f"Analyzer capabilities: {', '.join(capabilities.supported) or 'none'}")
        return capabilities
