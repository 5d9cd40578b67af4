"""
Tests for the lifecycle transition rules.

These rules are pure functions, so every state/command combination is
checked directly against snapshots without a controller.
"""

import pytest

from migration_control.core.exceptions import (
    AlreadyStartedError,
    HistoryLostError,
    InvalidPatternError,
    InvalidTransitionError,
)
from migration_control.lifecycle import transitions
from migration_control.models.state import MigrationSnapshot, MigrationState


def snapshot_in(state: MigrationState, **kwargs) -> MigrationSnapshot:
    return MigrationSnapshot(state=state, **kwargs)


ALL_STATES = list(MigrationState)


class TestStart:
    """Test the start rule."""

    def test_start_from_idle(self):
        """Test start moves idle to running with the filter attached."""
        outcome = transitions.start(MigrationSnapshot(), ["db1.collection1"], ["db4.*"])
        assert outcome.ok
        assert outcome.snapshot.state == MigrationState.RUNNING
        assert outcome.snapshot.namespace_filter.matches("db1", "collection1")
        assert not outcome.snapshot.namespace_filter.matches("db4", "x")

    def test_start_records_history(self):
        """Test start appends an audit record with the scope."""
        outcome = transitions.start(MigrationSnapshot(), [], ["db4.*"])
        record = outcome.snapshot.history[-1]
        assert record.command == "start"
        assert record.from_state == MigrationState.IDLE
        assert record.to_state == MigrationState.RUNNING
        assert record.detail["excludeNamespaces"] == ["db4.*"]

    @pytest.mark.parametrize("state", [s for s in ALL_STATES if s != MigrationState.IDLE])
    def test_start_rejected_when_not_idle(self, state):
        """Test start from any other state is an AlreadyStartedError."""
        snapshot = snapshot_in(state)
        outcome = transitions.start(snapshot, ["db.coll"], [])
        assert not outcome.ok
        assert isinstance(outcome.error, AlreadyStartedError)
        assert isinstance(outcome.error, InvalidTransitionError)
        assert outcome.snapshot is snapshot

    def test_start_with_malformed_filter(self):
        """Test a malformed pattern rejects start and leaves the migration idle."""
        snapshot = MigrationSnapshot()
        outcome = transitions.start(snapshot, [], ["dfa..collection"])
        assert isinstance(outcome.error, InvalidPatternError)
        assert outcome.snapshot is snapshot
        assert outcome.snapshot.state == MigrationState.IDLE
        assert outcome.snapshot.namespace_filter is None

    def test_state_checked_before_filter(self):
        """Test a running migration reports already-started even for a bad filter."""
        outcome = transitions.start(snapshot_in(MigrationState.RUNNING), ["bad"], [])
        assert isinstance(outcome.error, AlreadyStartedError)


class TestPause:
    """Test the pause rule."""

    def test_pause_running(self):
        """Test pause moves running to paused."""
        outcome = transitions.pause(snapshot_in(MigrationState.RUNNING))
        assert outcome.ok
        assert outcome.snapshot.state == MigrationState.PAUSED

    @pytest.mark.parametrize("state", [s for s in ALL_STATES if s != MigrationState.RUNNING])
    def test_pause_rejected(self, state):
        """Test pause is only valid while running."""
        snapshot = snapshot_in(state)
        outcome = transitions.pause(snapshot)
        assert isinstance(outcome.error, InvalidTransitionError)
        assert outcome.error.command == "pause"
        assert outcome.error.state == state.value
        assert outcome.snapshot is snapshot


class TestResume:
    """Test the two resume rules."""

    def test_resume_paused(self):
        """Test resume moves paused back to running."""
        outcome = transitions.resume(snapshot_in(MigrationState.PAUSED))
        assert outcome.ok
        assert outcome.snapshot.state == MigrationState.RUNNING

    def test_resume_failed_requires_flag(self):
        """Test a plain resume does not recover a failed migration."""
        snapshot = snapshot_in(MigrationState.FAILED, failure_reason="oplog gap")
        outcome = transitions.resume(snapshot, from_failure=False)
        assert isinstance(outcome.error, InvalidTransitionError)
        assert "from-failure" in outcome.error.message
        assert outcome.snapshot is snapshot

    def test_resume_from_failure(self):
        """Test resume with from_failure recovers a failed migration."""
        snapshot = snapshot_in(MigrationState.FAILED, failure_reason="oplog gap")
        outcome = transitions.resume(snapshot, from_failure=True)
        assert outcome.ok
        assert outcome.snapshot.state == MigrationState.RUNNING
        assert outcome.snapshot.failure_reason is None
        record = outcome.snapshot.history[-1]
        assert record.detail == {"from_failure": True, "failure_reason": "oplog gap"}

    def test_from_failure_is_not_a_generic_unpause(self):
        """Test from_failure on a paused migration is rejected."""
        snapshot = snapshot_in(MigrationState.PAUSED)
        outcome = transitions.resume(snapshot, from_failure=True)
        assert isinstance(outcome.error, InvalidTransitionError)
        assert outcome.snapshot is snapshot

    @pytest.mark.parametrize("state", [
        MigrationState.IDLE,
        MigrationState.RUNNING,
        MigrationState.FINALIZING,
        MigrationState.FINALIZED,
    ])
    @pytest.mark.parametrize("from_failure", [False, True])
    def test_resume_rejected(self, state, from_failure):
        """Test resume is rejected outside paused/failed."""
        outcome = transitions.resume(snapshot_in(state), from_failure=from_failure)
        assert isinstance(outcome.error, InvalidTransitionError)


class TestFinalize:
    """Test the finalize rules."""

    @pytest.mark.parametrize("state", [MigrationState.RUNNING, MigrationState.PAUSED])
    def test_begin_finalize(self, state):
        """Test finalize moves running or paused to finalizing."""
        outcome = transitions.begin_finalize(snapshot_in(state))
        assert outcome.ok
        assert outcome.snapshot.state == MigrationState.FINALIZING

    @pytest.mark.parametrize("state", [
        MigrationState.IDLE,
        MigrationState.FINALIZED,
        MigrationState.FAILED,
    ])
    def test_begin_finalize_rejected(self, state):
        """Test finalize is only valid while running, paused or finalizing."""
        outcome = transitions.begin_finalize(snapshot_in(state), ignore_history_lost=True)
        assert isinstance(outcome.error, InvalidTransitionError)

    def test_history_lost_blocks_finalize(self):
        """Test lost history blocks finalize without the override."""
        snapshot = snapshot_in(MigrationState.RUNNING, history_lost=True)
        outcome = transitions.begin_finalize(snapshot, ignore_history_lost=False)
        assert isinstance(outcome.error, HistoryLostError)
        assert outcome.snapshot is snapshot

    def test_history_lost_override(self):
        """Test the override finalizes and is recorded in the audit trail."""
        snapshot = snapshot_in(MigrationState.RUNNING, history_lost=True)
        outcome = transitions.begin_finalize(snapshot, ignore_history_lost=True)
        assert outcome.ok
        assert outcome.snapshot.history[-1].detail == {"ignore_history_lost": True}

    def test_finalize_retry_from_finalizing(self):
        """Test finalize from finalizing accepts without a new transition."""
        snapshot = snapshot_in(MigrationState.FINALIZING)
        outcome = transitions.begin_finalize(snapshot)
        assert outcome.ok
        assert outcome.snapshot is snapshot

    def test_finalize_retry_still_checks_history(self):
        """Test a retried cutover still requires the history override."""
        snapshot = snapshot_in(MigrationState.FINALIZING, history_lost=True)
        assert isinstance(
            transitions.begin_finalize(snapshot).error, HistoryLostError
        )
        assert transitions.begin_finalize(snapshot, ignore_history_lost=True).snapshot is snapshot

    def test_complete_finalize(self):
        """Test finalizing completes to finalized."""
        outcome = transitions.complete_finalize(snapshot_in(MigrationState.FINALIZING))
        assert outcome.snapshot.state == MigrationState.FINALIZED
        assert outcome.snapshot.state.is_terminal

    def test_complete_finalize_requires_finalizing(self):
        """Test completion is rejected outside finalizing."""
        outcome = transitions.complete_finalize(snapshot_in(MigrationState.FAILED))
        assert isinstance(outcome.error, InvalidTransitionError)


class TestFailure:
    """Test engine-reported failures and lost history."""

    @pytest.mark.parametrize("state", [
        MigrationState.RUNNING,
        MigrationState.PAUSED,
        MigrationState.FINALIZING,
    ])
    def test_fail(self, state):
        """Test an engine failure moves active states to failed."""
        outcome = transitions.fail(snapshot_in(state), "target unreachable")
        assert outcome.snapshot.state == MigrationState.FAILED
        assert outcome.snapshot.failure_reason == "target unreachable"

    @pytest.mark.parametrize("state", [
        MigrationState.IDLE,
        MigrationState.FINALIZED,
        MigrationState.FAILED,
    ])
    def test_fail_rejected(self, state):
        """Test failure reports outside active states are rejected."""
        outcome = transitions.fail(snapshot_in(state), "boom")
        assert isinstance(outcome.error, InvalidTransitionError)

    def test_mark_history_lost(self):
        """Test the history-lost flag is set without changing state."""
        snapshot = snapshot_in(MigrationState.PAUSED)
        outcome = transitions.mark_history_lost(snapshot)
        assert outcome.snapshot.history_lost
        assert outcome.snapshot.state == MigrationState.PAUSED
        assert outcome.snapshot.history == snapshot.history

    def test_mark_history_lost_idempotent(self):
        """Test marking twice returns the same snapshot."""
        snapshot = snapshot_in(MigrationState.RUNNING, history_lost=True)
        assert transitions.mark_history_lost(snapshot).snapshot is snapshot

    def test_finalized_is_terminal(self):
        """Test no mutating rule succeeds from finalized."""
        snapshot = snapshot_in(MigrationState.FINALIZED)
        assert not transitions.start(snapshot).ok
        assert not transitions.pause(snapshot).ok
        assert not transitions.resume(snapshot).ok
        assert not transitions.resume(snapshot, from_failure=True).ok
        assert not transitions.begin_finalize(snapshot, ignore_history_lost=True).ok
