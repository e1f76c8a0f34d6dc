"""
Structured error handling for Psalter.

Every failure that can reach the user carries a ``user_message`` suitable for
an editor notification, plus an internal code, a severity and optional
recovery hints. Failures that only degrade functionality (probe misses,
malformed diagnostic payloads) never become exceptions at all.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any

from psalter.constants import utcnow


class ErrorCode(IntEnum):
    """Internal error codes for categorization."""

    # Configuration Errors (1000-1999)
    INVALID_CONFIG = 1001
    SCRIPT_NOT_FOUND = 1002

    # Runtime Errors (2000-2999)
    EXECUTABLE_NOT_FOUND = 2001
    RUNTIME_SPAWN_FAILED = 2002
    RUNTIME_VERSION_UNPARSEABLE = 2003
    RUNTIME_UNSUPPORTED = 2004

    # Process Lifecycle Errors (3000-3999)
    PROCESS_START_FAILED = 3001
    INVALID_PROCESS_STATE = 3002


class ErrorSeverity(str, Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class RecoveryAction:
    """Suggested action to recover from an error."""

    description: str
    command: str | None = None
    automated: bool = False


@dataclass
class ErrorContext:
    """Context information for an error."""

    operation: str | None = None
    file_path: str | None = None
    component: str | None = None
    timestamp: datetime = field(default_factory=utcnow)
    additional_info: dict[str, Any] = field(default_factory=dict)


class PsalterError(Exception):
    """Base error class for Psalter."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        user_message: str,
        severity: str = ErrorSeverity.MEDIUM,
        context: ErrorContext | None = None,
        recovery_actions: list[RecoveryAction] | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.severity = severity
        self.user_message = user_message
        self.context = context or ErrorContext()
        self.recovery_actions = recovery_actions or []
        self.original_error = original_error

        self.context.timestamp = utcnow()

    def get_formatted_message(self) -> str:
        """Get a formatted error message for display to users."""
        parts = [
            f"[Error] {self.user_message}",
            f"   Code: {self.code.value}",
        ]

        if self.context.operation:
            parts.append(f"   Operation: {self.context.operation}")
        if self.context.file_path:
            parts.append(f"   File: {self.context.file_path}")
        if self.context.component:
            parts.append(f"   Component: {self.context.component}")

        if self.recovery_actions:
            parts.append("")
            parts.append("Suggested actions:")
            for i, action in enumerate(self.recovery_actions, 1):
                parts.append(f"   {i}. {action.description}")
                if action.command:
                    parts.append(f"      Run: {action.command}")

        return "\n".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "name": self.__class__.__name__,
            "code": self.code.value,
            "message": str(self),
            "user_message": self.user_message,
            "severity": self.severity,
            "context": {
                "operation": self.context.operation,
                "file_path": self.context.file_path,
                "component": self.context.component,
                "timestamp": self.context.timestamp.isoformat(),
                "additional_info": self.context.additional_info,
            },
            "recovery_actions": [
                {"description": a.description, "command": a.command, "automated": a.automated}
                for a in self.recovery_actions
            ],
            "original_error": str(self.original_error) if self.original_error else None,
        }


# Specialized error classes for domain-specific error handling
class ConfigurationError(PsalterError):
    """Error related to configuration issues."""

    def __init__(
        self,
        message: str,
        user_message: str | None = None,
        context: ErrorContext | None = None,
        recovery_actions: list[RecoveryAction] | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.INVALID_CONFIG,
            message=message,
            user_message=user_message or "Configuration error occurred.",
            severity=ErrorSeverity.HIGH,
            context=context,
            recovery_actions=recovery_actions,
            original_error=original_error,
        )


class ScriptNotFoundError(PsalterError):
    """The configured analyzer script does not exist on disk."""

    def __init__(self, script_path: str) -> None:
        super().__init__(
            code=ErrorCode.SCRIPT_NOT_FOUND,
            message=f"Analyzer script not found: {script_path}",
            user_message=(
                "The setting psalm.psalmScriptPath refers to a path that does "
                f"not exist. path: {script_path}"
            ),
            severity=ErrorSeverity.HIGH,
            context=ErrorContext(operation="activate", file_path=script_path),
            recovery_actions=[
                RecoveryAction(
                    description="Install Psalm into the project",
                    command="composer require --dev vimeo/psalm",
                )
            ],
        )


class ExecutableNotFoundError(PsalterError):
    """The PHP executable could not be found."""

    def __init__(self, executable: str, original_error: Exception | None = None) -> None:
        super().__init__(
            code=ErrorCode.EXECUTABLE_NOT_FOUND,
            message=f"PHP executable not found: {executable}",
            user_message=(
                "PHP executable not found. Install PHP 7 and add it to your PATH "
                "or set the psalm.phpExecutablePath setting"
            ),
            severity=ErrorSeverity.HIGH,
            context=ErrorContext(operation="check_runtime", file_path=executable),
            original_error=original_error,
        )


class RuntimeSpawnError(PsalterError):
    """The PHP executable exists but could not be run."""

    def __init__(self, executable: str, original_error: Exception) -> None:
        super().__init__(
            code=ErrorCode.RUNTIME_SPAWN_FAILED,
            message=f"Failed to run {executable}: {original_error}",
            user_message=f"Error spawning PHP: {original_error}",
            severity=ErrorSeverity.HIGH,
            context=ErrorContext(operation="check_runtime", file_path=executable),
            original_error=original_error,
        )


class RuntimeVersionError(PsalterError):
    """``php --version`` produced output we could not parse."""

    def __init__(self, output: str) -> None:
        super().__init__(
            code=ErrorCode.RUNTIME_VERSION_UNPARSEABLE,
            message=f"Unparseable PHP version output: {output[:200]!r}",
            user_message="Error parsing PHP version. Please check the output of php --version",
            severity=ErrorSeverity.HIGH,
            context=ErrorContext(operation="check_runtime"),
        )


class UnsupportedRuntimeError(PsalterError):
    """The installed PHP is older than the analyzer supports."""

    def __init__(self, version: str, minimum: str) -> None:
        super().__init__(
            code=ErrorCode.RUNTIME_UNSUPPORTED,
            message=f"PHP {version} is older than {minimum}",
            user_message=(
                f"The language server needs at least PHP {minimum.split('.')[0]} "
                f"installed. Version found: {version}"
            ),
            severity=ErrorSeverity.HIGH,
            context=ErrorContext(
                operation="check_runtime",
                additional_info={"version": version, "minimum": minimum},
            ),
        )


class ProcessStartError(PsalterError):
    """The analyzer process could not be spawned."""

    def __init__(self, command: list[str], original_error: Exception) -> None:
        super().__init__(
            code=ErrorCode.PROCESS_START_FAILED,
            message=f"Failed to start {command[0] if command else '<empty>'}: {original_error}",
            user_message=f"Failed to start the Psalm Language Server: {original_error}",
            severity=ErrorSeverity.CRITICAL,
            context=ErrorContext(
                operation="start",
                component="ProcessSupervisor",
                additional_info={"command": list(command)},
            ),
            recovery_actions=[
                RecoveryAction(
                    description="Fix the configuration and restart the server",
                    command="psalm.restartPsalmServer",
                )
            ],
            original_error=original_error,
        )


class ProcessStateError(PsalterError):
    """A lifecycle operation was requested in the wrong state."""

    def __init__(self, operation: str, state: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_PROCESS_STATE,
            message=f"Cannot {operation} while the analyzer is {state}",
            user_message=f"The Psalm Language Server is already {state}.",
            severity=ErrorSeverity.LOW,
            context=ErrorContext(operation=operation, component="ProcessSupervisor"),
        )
