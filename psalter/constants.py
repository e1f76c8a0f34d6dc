"""Shared constants and helpers for Psalter.

Centralizes the analyzer identity, default settings values, command
identifiers, the analyzer's command-line flags and the timezone-aware
datetime helper used for error timestamps.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime.

    Usable directly as a ``default_factory`` in dataclass fields.
    """
    return datetime.now(timezone.utc)


# Source string Psalm stamps on every diagnostic it publishes.
ANALYZER_SOURCE: str = "psalm"

# Name of the editor configuration section (and diagnostic collection).
CONFIG_SECTION: str = "psalm"

SERVER_NAME: str = "Psalm Language Server"

# Inserted above a line to make Psalm ignore every finding on it.
SUPPRESS_ALL_COMMENT: str = "/** @psalm-suppress all */"

SUPPRESS_ACTION_TITLE: str = "Add @psalm suppress for this line"

OPEN_URL_COMMAND: str = "vscode.open"

# Editor commands
RESTART_SERVER_COMMAND: str = "psalm.restartPsalmServer"
ANALYZE_WORKSPACE_COMMAND: str = "psalm.analyzeWorkSpace"

DEFAULT_PHP_EXECUTABLE: str = "php"
# xdebug off for the analyzer process
DEFAULT_PHP_ARGS: list[str] = [
    "-dxdebug.remote_autostart=0",
    "-dxdebug.remote_enable=0",
    "-dxdebug_profiler_enable=0",
]

# Relative to the workspace root; used when psalmScriptPath is unset or missing.
DEFAULT_SCRIPT_PATH: tuple[str, ...] = (
    "vendor",
    "vimeo",
    "psalm",
    "psalm-language-server",
)

DEFAULT_CONFIG_PATHS: list[str] = ["psalm.xml", "psalm.xml.dist"]

DEFAULT_DOCUMENT_SELECTOR: list[dict[str, str]] = [
    {"scheme": "file", "language": "php"},
    {"scheme": "untitled", "language": "php"},
]

MINIMUM_PHP_VERSION: str = "7.0.0"

# Separates the interpreter's own flags from arguments forwarded to the script.
ARGUMENT_SEPARATOR: str = "--"

# Analyzer flags
FLAG_LANGUAGE_SERVER: str = "--language-server"
FLAG_EXTENDED_DIAGNOSTIC_CODES: str = "--use-extended-diagnostic-codes"
FLAG_VERBOSE: str = "--verbose"
FLAG_USE_INI_DEFAULTS: str = "--use-ini-defaults"
FLAG_FIND_DEAD_CODE: str = "--find-dead-code"
FLAG_HELP: str = "--help"

# Timeouts (seconds)
PROBE_TIMEOUT: float = 10.0
RUNTIME_CHECK_TIMEOUT: float = 10.0
STOP_TIMEOUT: float = 5.0
