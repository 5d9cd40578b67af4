"""
Migration Control

Control plane for a live source-to-target database migration: namespace
filtering, the lifecycle state machine and the command API that drives it.
"""

__version__ = "0.1.0"

from migration_control.models.namespace import NamespaceFilter, NamespacePattern
from migration_control.models.state import MigrationSnapshot, MigrationState

__all__ = [
    "NamespaceFilter",
    "NamespacePattern",
    "MigrationSnapshot",
    "MigrationState",
]
