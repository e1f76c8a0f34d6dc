"""Settings for a Psalter session.

The editor hands us its ``psalm`` configuration section as a plain mapping.
``Settings.from_mapping`` turns it into a typed, read-once snapshot; values
are never reloaded mid-session. Settings files follow the ``coc-settings.json``
layout: either ``{"psalm": {...}}`` or flat ``"psalm.<key>"`` entries.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from psalter.constants import (
    ANALYZER_SOURCE,
    ARGUMENT_SEPARATOR,
    CONFIG_SECTION,
    DEFAULT_CONFIG_PATHS,
    DEFAULT_DOCUMENT_SELECTOR,
    DEFAULT_PHP_ARGS,
    DEFAULT_PHP_EXECUTABLE,
    DEFAULT_SCRIPT_PATH,
)
from psalter.types import ConfigurationError

SOURCE_MATCH_MODES = ("exact", "case-insensitive")


def _as_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return default


def _is_unset(value: Any) -> bool:
    # An empty list is a real value; only null and "" mean "use the default".
    return value is None or (isinstance(value, str) and value == "")


def _as_str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if item is not None]
    return []


def _as_selector(value: Any) -> list[Any]:
    if isinstance(value, (str, Mapping)):
        return [value]
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def normalize_php_args(value: Any) -> list[str]:
    """Normalize ``phpExecutableArgs`` into an argument list.

    A string is taken as a single argument after trimming. A list is trimmed
    element-wise. Empty entries and the argument separator are dropped: the
    separator is added by the invocation itself.
    """
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    args = []
    for item in value:
        text = str(item).strip()
        if text and text != ARGUMENT_SEPARATOR:
            args.append(text)
    return args


def _expand(path: str) -> str:
    return os.path.expandvars(os.path.expanduser(path))


@dataclass(frozen=True)
class Settings:
    """Typed snapshot of the ``psalm`` configuration section."""

    enable: bool = True
    php_executable_path: str = DEFAULT_PHP_EXECUTABLE
    php_executable_args: list[str] = field(default_factory=lambda: list(DEFAULT_PHP_ARGS))
    psalm_script_path: str | None = None
    psalm_script_extra_args: list[str] = field(default_factory=list)
    config_paths: list[str] = field(default_factory=lambda: list(DEFAULT_CONFIG_PATHS))
    analyzed_file_extensions: list[Any] = field(
        default_factory=lambda: [dict(entry) for entry in DEFAULT_DOCUMENT_SELECTOR]
    )
    enable_debug_log: bool = False
    unused_variable_detection: bool = False
    enable_use_ini_defaults: bool = False
    disable_completion: bool = False
    disable_definition: bool = False
    disable_progress_on_initialization: bool = False
    source_identifier: str = ANALYZER_SOURCE
    source_match: str = "case-insensitive"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> Settings:
        """Build settings from an editor configuration section.

        Missing, null and empty-string values fall back to the defaults, the
        same way the editor's ``get(key) || default`` lookups behave. An
        explicit empty list is kept: ``"phpExecutableArgs": []`` runs PHP
        without the xdebug switches.
        """
        data = dict(data or {})

        source_match = str(data.get("sourceMatch") or "case-insensitive").strip().lower()
        if source_match not in SOURCE_MATCH_MODES:
            raise ConfigurationError(
                f"Invalid psalm.sourceMatch: {source_match!r}",
                user_message=(
                    "The setting psalm.sourceMatch must be one of: "
                    + ", ".join(SOURCE_MATCH_MODES)
                ),
            )

        php_args = data.get("phpExecutableArgs")
        selector = data.get("analyzedFileExtensions")
        config_paths = data.get("configPaths")

        return cls(
            enable=_as_bool(data.get("enable"), default=True),
            php_executable_path=str(data.get("phpExecutablePath") or DEFAULT_PHP_EXECUTABLE),
            php_executable_args=(
                list(DEFAULT_PHP_ARGS) if _is_unset(php_args) else normalize_php_args(php_args)
            ),
            psalm_script_path=data.get("psalmScriptPath") or None,
            psalm_script_extra_args=_as_str_list(data.get("psalmScriptExtraArgs")),
            config_paths=(
                list(DEFAULT_CONFIG_PATHS)
                if _is_unset(config_paths)
                else _as_str_list(config_paths)
            ),
            analyzed_file_extensions=(
                [dict(e) for e in DEFAULT_DOCUMENT_SELECTOR]
                if _is_unset(selector)
                else _as_selector(selector)
            ),
            enable_debug_log=_as_bool(data.get("enableDebugLog")),
            unused_variable_detection=_as_bool(data.get("unusedVariableDetection")),
            enable_use_ini_defaults=_as_bool(data.get("enableUseIniDefaults")),
            disable_completion=_as_bool(data.get("disableCompletion")),
            disable_definition=_as_bool(data.get("disableDefinition")),
            disable_progress_on_initialization=_as_bool(
                data.get("disableProgressOnInitialization")
            ),
            source_identifier=str(data.get("sourceIdentifier") or ANALYZER_SOURCE),
            source_match=source_match,
        )

    def resolve_script_path(self, root: str | Path) -> Path:
        """Locate the language server script.

        A configured path is expanded and, when relative, joined to the
        workspace root. If it does not exist, the vendored script under
        ``vendor/vimeo/psalm`` is used instead.
        """
        root = Path(root)
        if self.psalm_script_path:
            candidate = Path(_expand(self.psalm_script_path))
            if not candidate.is_absolute():
                candidate = root / candidate
            if candidate.exists():
                return candidate
        return root.joinpath(*DEFAULT_SCRIPT_PATH)

    def find_config_file(self, root: str | Path) -> str | None:
        """Return the first candidate config path that exists as a file."""
        root = Path(root)
        for candidate in self.config_paths:
            if (root / candidate).is_file():
                return candidate
        return None


def extract_section(data: Mapping[str, Any], section: str = CONFIG_SECTION) -> dict[str, Any]:
    """Pull one configuration section out of a settings document.

    Nested (``{"psalm": {...}}``) and flat (``{"psalm.enable": ...}``) keys
    are merged; flat keys win.
    """
    result: dict[str, Any] = {}
    nested = data.get(section)
    if isinstance(nested, Mapping):
        result.update(nested)
    prefix = section + "."
    for key, value in data.items():
        if isinstance(key, str) and key.startswith(prefix):
            result[key[len(prefix):]] = value
    return result


def load_settings(path: str | Path | None) -> Settings:
    """Load settings from a JSON settings file, or defaults when ``path`` is None."""
    if path is None:
        return Settings()
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(
            f"Cannot read settings file {path}: {exc}",
            user_message=f"Cannot read settings file: {path}",
            original_error=exc,
        ) from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(
            f"Invalid JSON in settings file {path}: {exc}",
            user_message=f"Settings file is not valid JSON: {path}",
            original_error=exc,
        ) from exc
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Settings file {path} must contain a JSON object",
            user_message=f"Settings file must contain a JSON object: {path}",
        )
    return Settings.from_mapping(extract_section(data))
