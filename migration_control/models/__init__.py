"""
Data models for the Migration Control plane.

This module contains all Pydantic models used throughout the application
for namespace filtering, lifecycle state, command payloads and configuration.
"""

from migration_control.models.namespace import (
    NamespacePattern,
    NamespaceFilter,
    parse_pattern,
    build_filter,
    matches,
)
from migration_control.models.state import (
    MigrationState,
    MigrationSnapshot,
    TransitionRecord,
)
from migration_control.models.protocol import (
    StartRequest,
    StatusRequest,
    PauseRequest,
    ResumeRequest,
    FinalizeRequest,
    CommandResponse,
    StatusResponse,
)
from migration_control.models.config import ControlPlaneConfig, load_config

__all__ = [
    # Namespace models
    "NamespacePattern",
    "NamespaceFilter",
    "parse_pattern",
    "build_filter",
    "matches",
    # State models
    "MigrationState",
    "MigrationSnapshot",
    "TransitionRecord",
    # Protocol models
    "StartRequest",
    "StatusRequest",
    "PauseRequest",
    "ResumeRequest",
    "FinalizeRequest",
    "CommandResponse",
    "StatusResponse",
    # Configuration
    "ControlPlaneConfig",
    "load_config",
]
