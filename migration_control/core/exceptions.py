"""
Custom exceptions for the Migration Control plane.

This module defines the typed errors returned or raised by the namespace
filter model, the lifecycle state machine and the outer surfaces.
"""

from typing import Any, Dict, List, Optional


class MigrationControlError(Exception):
    """Base exception class for Migration Control errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}


class InvalidPatternError(MigrationControlError):
    """Raised when a namespace pattern is malformed."""

    def __init__(
        self,
        pattern: str,
        reason: Optional[str] = None,
        invalid: Optional[List[str]] = None,
        **kwargs
    ):
        message = f"Invalid namespace pattern '{pattern}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, **kwargs)
        self.pattern = pattern
        self.reason = reason
        self.details.setdefault("pattern", pattern)
        if invalid:
            self.details["invalid"] = list(invalid)


class InvalidTransitionError(MigrationControlError):
    """Raised when a command is not valid in the current state."""

    def __init__(
        self,
        command: str,
        state: str,
        message: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            message or f"Cannot {command} migration in state '{state}'",
            **kwargs
        )
        self.command = command
        self.state = state
        self.details.setdefault("command", command)
        self.details.setdefault("state", state)


class AlreadyStartedError(InvalidTransitionError):
    """Raised when start is issued to a migration that has left idle."""

    def __init__(self, state: str, **kwargs):
        super().__init__(
            "start",
            state,
            message=f"Migration already started (state '{state}')",
            **kwargs
        )


class HistoryLostError(MigrationControlError):
    """Raised when finalize is blocked because source history has expired."""

    def __init__(self, message: Optional[str] = None, **kwargs):
        super().__init__(
            message or (
                "Source history required for a consistent cutover is lost; "
                "finalize with ignore-history-lost to override"
            ),
            **kwargs
        )


class EngineSignalError(MigrationControlError):
    """Raised when the apply engine cannot be signalled after a transition."""

    def __init__(self, command: str, cause: Exception, **kwargs):
        super().__init__(
            f"Failed to signal apply engine for {command}: {cause}",
            **kwargs
        )
        self.command = command
        self.cause = cause
        self.details.setdefault("command", command)


class ConfigurationError(MigrationControlError):
    """Raised when there's an error in configuration."""
    pass


class ControlPlaneConnectionError(MigrationControlError):
    """Raised when the CLI cannot reach the control-plane server."""
    pass


class EngineNotAttachedError(MigrationControlError):
    """Raised when an apply engine reports before it is bound to a controller."""
    pass
