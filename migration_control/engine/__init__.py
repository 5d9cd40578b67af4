"""
Apply engine interface for the Migration Control plane.
"""

from migration_control.engine.base import ApplyEngine, LoggingApplyEngine, load_engine

__all__ = [
    "ApplyEngine",
    "LoggingApplyEngine",
    "load_engine",
]
