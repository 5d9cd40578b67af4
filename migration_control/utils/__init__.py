"""
Utilities module for the Migration Control plane.

This module contains logging setup and small helper functions
used throughout the application.
"""

from migration_control.utils.helpers import (
    load_config_file,
    split_namespace_list,
)
from migration_control.utils.logging import (
    setup_logging,
    get_logger,
    AuditLogger,
    StructuredFormatter,
)

__all__ = [
    # Helper functions
    "load_config_file",
    "split_namespace_list",
    # Logging utilities
    "setup_logging",
    "get_logger",
    "AuditLogger",
    "StructuredFormatter",
]
