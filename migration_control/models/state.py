"""
Lifecycle state models for the Migration Control plane.

This module defines the migration states, the audit record written for each
committed transition and the immutable snapshot that represents the single
migration instance owned by a control-plane process.
"""

from datetime import datetime, UTC
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from migration_control.models.namespace import NamespaceFilter


class MigrationState(str, Enum):
    """Migration lifecycle state."""
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    FINALIZING = "finalizing"
    FINALIZED = "finalized"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self == MigrationState.FINALIZED


class TransitionRecord(BaseModel):
    """Audit record for a committed state change."""
    model_config = ConfigDict(frozen=True)

    command: str
    from_state: MigrationState
    to_state: MigrationState
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    detail: Dict[str, Any] = Field(default_factory=dict)


class MigrationSnapshot(BaseModel):
    """
    Point-in-time view of the migration instance.

    Snapshots are never mutated. Every transition produces a new snapshot,
    so a reader holding one always sees state, filter and flags from the
    same commit.
    """
    model_config = ConfigDict(frozen=True)

    state: MigrationState = MigrationState.IDLE
    namespace_filter: Optional[NamespaceFilter] = None
    failure_reason: Optional[str] = None
    history_lost: bool = False
    history: Tuple[TransitionRecord, ...] = ()
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def transition(
        self,
        command: str,
        to_state: MigrationState,
        detail: Optional[Dict[str, Any]] = None,
        **changes: Any
    ) -> "MigrationSnapshot":
        """Return a new snapshot in ``to_state`` with the change recorded."""
        now = datetime.now(UTC)
        record = TransitionRecord(
            command=command,
            from_state=self.state,
            to_state=to_state,
            timestamp=now,
            detail=detail or {},
        )
        if to_state != MigrationState.FAILED:
            changes.setdefault("failure_reason", None)
        return self.model_copy(update={
            "state": to_state,
            "history": self.history + (record,),
            "updated_at": now,
            **changes,
        })

    def with_history_lost(self) -> "MigrationSnapshot":
        return self.model_copy(update={
            "history_lost": True,
            "updated_at": datetime.now(UTC),
        })
