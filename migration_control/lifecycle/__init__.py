"""
Lifecycle module for the Migration Control plane.

This module contains the pure transition rules and the controller that
applies them to the process-wide migration instance.
"""

from migration_control.lifecycle.controller import CommandResult, MigrationController
from migration_control.lifecycle.transitions import TransitionOutcome

__all__ = [
    "CommandResult",
    "MigrationController",
    "TransitionOutcome",
]
