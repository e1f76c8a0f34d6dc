"""
Core types shared by the probe, supervisor and diagnostics layers.

These are small value objects: capability flags discovered at activation,
process lifecycle state, and the parsed form of a diagnostic's code payload.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType


class ProcessState(str, Enum):
    """Lifecycle state of the supervised analyzer process."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"


@dataclass(frozen=True)
class ExitStatus:
    """How the analyzer process ended.

    ``signal`` is set when the process was killed by a signal, in which
    case ``code`` is None.
    """

    code: int | None
    signal: int | None = None

    @classmethod
    def from_returncode(cls, returncode: int) -> ExitStatus:
        """Split an asyncio returncode (negative for signals) into code/signal."""
        if returncode < 0:
            return cls(code=None, signal=-returncode)
        return cls(code=returncode)

    def __str__(self) -> str:
        return f"{self.code}:{self.signal}"


@dataclass(frozen=True)
class CapabilitySet:
    """Analyzer flags mapped to whether the installed analyzer supports them.

    Built once per activation and read-only afterwards.
    """

    flags: Mapping[str, bool] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "flags", MappingProxyType(dict(self.flags)))

    def supports(self, flag: str) -> bool:
        """Whether ``flag`` was probed and confirmed."""
        return self.flags.get(flag, False)

    @property
    def supported(self) -> list[str]:
        """Confirmed flags, in probe order."""
        return [flag for flag, ok in self.flags.items() if ok]


@dataclass(frozen=True)
class CodePayload:
    """Legacy structured diagnostic code: ``{"value": ..., "issue": ...}``."""

    value: str
    issue: str


class LinkSource(str, Enum):
    """Where a diagnostic's issue link was found."""

    STRUCTURED = "structured"
    LEGACY = "legacy"
    NONE = "none"


@dataclass(frozen=True)
class CodeLink:
    """Result of resolving a diagnostic's link, computed once per diagnostic.

    ``label`` is the code to display: the short label when a legacy payload
    was parsed, otherwise the diagnostic's original code.
    """

    source: LinkSource
    url: str | None = None
    label: int | str | None = None

    @property
    def has_url(self) -> bool:
        return self.source is not LinkSource.NONE and bool(self.url)


class ActivationOutcome(str, Enum):
    """How an activation attempt ended."""

    ACTIVE = "active"
    DISABLED = "disabled"
    NO_CONFIG = "no_config"
    SCRIPT_MISSING = "script_missing"
    EXECUTABLE_MISSING = "executable_missing"
    RUNTIME_ERROR = "runtime_error"
    RUNTIME_UNSUPPORTED = "runtime_unsupported"
    SPAWN_FAILED = "spawn_failed"
