"""
Core module for the Migration Control plane.

This module contains the error taxonomy shared by every component.
"""

from migration_control.core.exceptions import (
    MigrationControlError,
    InvalidPatternError,
    InvalidTransitionError,
    AlreadyStartedError,
    HistoryLostError,
    EngineSignalError,
    EngineNotAttachedError,
    ConfigurationError,
    ControlPlaneConnectionError,
)

__all__ = [
    "MigrationControlError",
    "InvalidPatternError",
    "InvalidTransitionError",
    "AlreadyStartedError",
    "HistoryLostError",
    "EngineSignalError",
    "EngineNotAttachedError",
    "ConfigurationError",
    "ControlPlaneConnectionError",
]
