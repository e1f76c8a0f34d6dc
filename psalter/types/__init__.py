"""
Psalter type definitions.

This module exports the value types and the error hierarchy used across Psalter.
"""

# Core types
from .core import (
    ActivationOutcome,
    CapabilitySet,
    CodeLink,
    CodePayload,
    ExitStatus,
    LinkSource,
    ProcessState,
)

# Error types
from .errors import (
    ConfigurationError,
    ErrorCode,
    ErrorContext,
    ErrorSeverity,
    ExecutableNotFoundError,
    ProcessStartError,
    ProcessStateError,
    PsalterError,
    RecoveryAction,
    RuntimeSpawnError,
    RuntimeVersionError,
    ScriptNotFoundError,
    UnsupportedRuntimeError,
)

__all__ = [
    # Core types
    "ActivationOutcome",
    "CapabilitySet",
    "CodeLink",
    "CodePayload",
    "ExitStatus",
    "LinkSource",
    "ProcessState",
    # Error types
    "ErrorCode",
    "ErrorSeverity",
    "RecoveryAction",
    "ErrorContext",
    "PsalterError",
    "ConfigurationError",
    "ScriptNotFoundError",
    "ExecutableNotFoundError",
    "RuntimeSpawnError",
    "RuntimeVersionError",
    "UnsupportedRuntimeError",
    "ProcessStartError",
    "ProcessStateError",
]
