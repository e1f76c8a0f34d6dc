"""Command line for the Psalm language server.

The argument vector is made of named groups whose order matters: the PHP
interpreter's own flags must come before the ``--`` separator, everything
after it is handed to the Psalm script untouched. Groups are collected first
and flattened exactly once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from psalter.config import Settings
from psalter.constants import (
    ARGUMENT_SEPARATOR,
    FLAG_EXTENDED_DIAGNOSTIC_CODES,
    FLAG_FIND_DEAD_CODE,
    FLAG_LANGUAGE_SERVER,
    FLAG_USE_INI_DEFAULTS,
    FLAG_VERBOSE,
)
from psalter.types import CapabilitySet

# Outermost first.
GROUP_ORDER: tuple[str, ...] = (
    "interpreter",
    "script",
    "separator",
    "mode",
    "config",
    "root",
    "features",
)


@dataclass(frozen=True)
class AnalyzerInvocation:
    """Executable plus ordered argument groups."""

    executable: str
    interpreter: tuple[str, ...] = ()
    script: tuple[str, ...] = ()
    mode: tuple[str, ...] = ()
    config: tuple[str, ...] = ()
    root: tuple[str, ...] = ()
    features: tuple[str, ...] = ()
    separator: tuple[str, ...] = field(default=(ARGUMENT_SEPARATOR,))

    def groups(self) -> list[tuple[str, tuple[str, ...]]]:
        """Named groups in command-line order."""
        return [(name, getattr(self, name)) for name in GROUP_ORDER]

    def arguments(self) -> list[str]:
        """Arguments after the executable."""
        args: list[str] = []
        for _, group in self.groups():
            args.extend(group)
        return args

    def argv(self) -> list[str]:
        """Full command, executable included."""
        return [self.executable, *self.arguments()]


def mode_arguments(settings: Settings, capabilities: CapabilitySet) -> list[str]:
    """Arguments selecting the analyzer's mode.

    Extra script arguments come first, then ``--language-server`` if the
    analyzer advertises it. These are also the arguments later probes see.
    """
    args = list(settings.psalm_script_extra_args)
    if capabilities.supports(FLAG_LANGUAGE_SERVER):
        args.append(FLAG_LANGUAGE_SERVER)
    return args


def feature_flags(settings: Settings, capabilities: CapabilitySet) -> list[str]:
    flags = []
    if settings.enable_use_ini_defaults:
        flags.append(FLAG_USE_INI_DEFAULTS)
    if capabilities.supports(FLAG_EXTENDED_DIAGNOSTIC_CODES):
        # adds the help link to each diagnostic's code
        flags.append(FLAG_EXTENDED_DIAGNOSTIC_CODES)
    if settings.enable_debug_log and capabilities.supports(FLAG_VERBOSE):
        flags.append(FLAG_VERBOSE)
    if settings.unused_variable_detection:
        flags.append(FLAG_FIND_DEAD_CODE)
    return flags


def build_invocation(
    settings: Settings,
    capabilities: CapabilitySet,
    *,
    root: str | Path,
    script_path: str | Path,
    config_file: str,
) -> AnalyzerInvocation:
    """Assemble the language server command for one session."""
    root = Path(root)
    return AnalyzerInvocation(
        executable=settings.php_executable_path,
        interpreter=tuple(settings.php_executable_args),
        script=("-f", str(script_path)),
        mode=tuple(mode_arguments(settings, capabilities)),
        config=("-c", str(root / config_file)),
        root=("-r", str(root)),
        features=tuple(feature_flags(settings, capabilities)),
    )
