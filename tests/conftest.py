"""
Pytest configuration and fixtures for the Migration Control tests.

This module provides an in-memory apply engine that records signals, and
fixtures for controllers, the protocol handler and the HTTP application.
"""

from typing import List, Optional, Set, Tuple

import pytest
from fastapi.testclient import TestClient

from migration_control.api.handler import ProtocolHandler
from migration_control.api.main import create_app
from migration_control.engine.base import ApplyEngine
from migration_control.lifecycle.controller import MigrationController
from migration_control.models.namespace import NamespaceFilter
from migration_control.utils.logging import AuditLogger


class RecordingApplyEngine(ApplyEngine):
    """Apply engine that records every signal and can be told to fail."""

    def __init__(self, fail_on: Optional[Set[str]] = None):
        self.calls: List[Tuple[str, object]] = []
        self.fail_on = set(fail_on or ())

    def _record(self, name: str, argument: object = None):
        self.calls.append((name, argument))
        if name in self.fail_on:
            raise RuntimeError(f"engine unavailable during {name}")

    @property
    def signals(self) -> List[str]:
        return [name for name, _ in self.calls]

    async def start(self, namespace_filter: NamespaceFilter) -> None:
        self._record("start", namespace_filter)

    async def pause(self) -> None:
        self._record("pause")

    async def resume(self, from_failure: bool = False) -> None:
        self._record("resume", from_failure)

    async def finalize(self, ignore_history_lost: bool = False) -> None:
        self._record("finalize", ignore_history_lost)


@pytest.fixture
def engine() -> RecordingApplyEngine:
    """Recording apply engine."""
    return RecordingApplyEngine()


@pytest.fixture
def failing_engine() -> RecordingApplyEngine:
    """Apply engine whose every signal fails."""
    return RecordingApplyEngine(fail_on={"start", "pause", "resume", "finalize"})


@pytest.fixture
def audit_log_path(tmp_path) -> str:
    """Path of a temporary audit log file."""
    return str(tmp_path / "audit" / "audit.log")


@pytest.fixture
def controller(engine: RecordingApplyEngine) -> MigrationController:
    """Idle controller wired to the recording engine."""
    return MigrationController(engine=engine, audit_logger=AuditLogger())


@pytest.fixture
def handler(controller: MigrationController) -> ProtocolHandler:
    """Protocol handler for the controller fixture."""
    return ProtocolHandler(controller)


@pytest.fixture
def api_client(controller: MigrationController) -> TestClient:
    """HTTP test client for an app serving the controller fixture."""
    with TestClient(create_app(controller)) as client:
        yield client


@pytest.fixture
def sample_start_payload() -> dict:
    """Start request from the reference CLI example."""
    return {
        "includeNamespaces": ["db1.collection1"],
        "excludeNamespaces": ["db3.collection3", "db4.*"],
    }
