"""
Lifecycle transition rules for the Migration Control plane.

Each rule is a pure function from the current snapshot (and the command's
parameters) to a :class:`TransitionOutcome`. A rejected command returns the
unchanged snapshot with a typed error; nothing here performs I/O or holds
locks, so the rules can be tested directly and composed by the controller.

State machine::

    IDLE -> RUNNING <-> PAUSED
              |           |
              +-----+-----+
                    v
               FINALIZING -> FINALIZED
                    ^   |
                    +---+  (finalize retries the cutover)

    RUNNING / PAUSED / FINALIZING -> FAILED   (engine report)
    FAILED -> RUNNING                          (resume with from_failure)
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Optional

from migration_control.core.exceptions import (
    AlreadyStartedError,
    HistoryLostError,
    InvalidPatternError,
    InvalidTransitionError,
    MigrationControlError,
)
from migration_control.models.namespace import build_filter
from migration_control.models.state import MigrationSnapshot, MigrationState

START = "start"
PAUSE = "pause"
RESUME = "resume"
RESUME_FROM_FAILURE = "resume_from_failure"
FINALIZE = "finalize"
COMPLETE_FINALIZE = "complete_finalize"
FAIL = "fail"

VALID_SOURCE_STATES: Dict[str, FrozenSet[MigrationState]] = {
    START: frozenset({MigrationState.IDLE}),
    PAUSE: frozenset({MigrationState.RUNNING}),
    RESUME: frozenset({MigrationState.PAUSED}),
    RESUME_FROM_FAILURE: frozenset({MigrationState.FAILED}),
    FINALIZE: frozenset({
        MigrationState.RUNNING,
        MigrationState.PAUSED,
        MigrationState.FINALIZING,
    }),
    COMPLETE_FINALIZE: frozenset({MigrationState.FINALIZING}),
    FAIL: frozenset({
        MigrationState.RUNNING,
        MigrationState.PAUSED,
        MigrationState.FINALIZING,
    }),
}


@dataclass(frozen=True)
class TransitionOutcome:
    """Result of applying a rule: the resulting snapshot, or a rejection."""
    snapshot: MigrationSnapshot
    error: Optional[MigrationControlError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def rejected(cls, snapshot: MigrationSnapshot, error: MigrationControlError) -> "TransitionOutcome":
        return cls(snapshot=snapshot, error=error)


def allowed(rule: str, state: MigrationState) -> bool:
    return state in VALID_SOURCE_STATES[rule]


def start(
    snapshot: MigrationSnapshot,
    include: Optional[Iterable[str]] = None,
    exclude: Optional[Iterable[str]] = None
) -> TransitionOutcome:
    """IDLE -> RUNNING with a validated namespace filter."""
    if not allowed(START, snapshot.state):
        return TransitionOutcome.rejected(snapshot, AlreadyStartedError(snapshot.state.value))

    try:
        namespace_filter = build_filter(include, exclude)
    except InvalidPatternError as e:
        return TransitionOutcome.rejected(snapshot, e)

    return TransitionOutcome(snapshot.transition(
        START,
        MigrationState.RUNNING,
        detail=namespace_filter.to_payload(),
        namespace_filter=namespace_filter,
    ))


def pause(snapshot: MigrationSnapshot) -> TransitionOutcome:
    """RUNNING -> PAUSED."""
    if not allowed(PAUSE, snapshot.state):
        return TransitionOutcome.rejected(
            snapshot, InvalidTransitionError(PAUSE, snapshot.state.value)
        )
    return TransitionOutcome(snapshot.transition(PAUSE, MigrationState.PAUSED))


def _resume_paused(snapshot: MigrationSnapshot) -> TransitionOutcome:
    if not allowed(RESUME, snapshot.state):
        message = None
        if snapshot.state == MigrationState.FAILED:
            message = "Cannot resume a failed migration without from-failure"
        return TransitionOutcome.rejected(
            snapshot, InvalidTransitionError(RESUME, snapshot.state.value, message=message)
        )
    return TransitionOutcome(snapshot.transition(RESUME, MigrationState.RUNNING))


def _resume_failed(snapshot: MigrationSnapshot) -> TransitionOutcome:
    if not allowed(RESUME_FROM_FAILURE, snapshot.state):
        return TransitionOutcome.rejected(
            snapshot,
            InvalidTransitionError(
                RESUME,
                snapshot.state.value,
                message=(
                    f"Cannot resume from failure in state '{snapshot.state.value}'; "
                    f"from-failure is only valid for a failed migration"
                ),
            )
        )
    return TransitionOutcome(snapshot.transition(
        RESUME,
        MigrationState.RUNNING,
        detail={
            "from_failure": True,
            "failure_reason": snapshot.failure_reason,
        },
    ))


def resume(snapshot: MigrationSnapshot, from_failure: bool = False) -> TransitionOutcome:
    """PAUSED -> RUNNING, or FAILED -> RUNNING when ``from_failure`` is set."""
    if from_failure:
        return _resume_failed(snapshot)
    return _resume_paused(snapshot)


def begin_finalize(
    snapshot: MigrationSnapshot,
    ignore_history_lost: bool = False
) -> TransitionOutcome:
    """
    RUNNING/PAUSED -> FINALIZING, unless source history is lost.

    From FINALIZING the snapshot is returned unchanged so the cutover can
    be signalled again after a failed attempt.
    """
    if not allowed(FINALIZE, snapshot.state):
        return TransitionOutcome.rejected(
            snapshot, InvalidTransitionError(FINALIZE, snapshot.state.value)
        )
    if snapshot.history_lost and not ignore_history_lost:
        return TransitionOutcome.rejected(snapshot, HistoryLostError())
    if snapshot.state == MigrationState.FINALIZING:
        return TransitionOutcome(snapshot)

    detail = {}
    if snapshot.history_lost:
        detail["ignore_history_lost"] = True
    return TransitionOutcome(snapshot.transition(
        FINALIZE, MigrationState.FINALIZING, detail=detail
    ))


def complete_finalize(snapshot: MigrationSnapshot) -> TransitionOutcome:
    """FINALIZING -> FINALIZED once the cutover has been signalled."""
    if not allowed(COMPLETE_FINALIZE, snapshot.state):
        return TransitionOutcome.rejected(
            snapshot, InvalidTransitionError(FINALIZE, snapshot.state.value)
        )
    return TransitionOutcome(snapshot.transition(FINALIZE, MigrationState.FINALIZED))


def fail(snapshot: MigrationSnapshot, reason: str) -> TransitionOutcome:
    """RUNNING/PAUSED/FINALIZING -> FAILED on an unrecoverable engine error."""
    if not allowed(FAIL, snapshot.state):
        return TransitionOutcome.rejected(
            snapshot, InvalidTransitionError(FAIL, snapshot.state.value)
        )
    return TransitionOutcome(snapshot.transition(
        FAIL,
        MigrationState.FAILED,
        detail={"reason": reason},
        failure_reason=reason,
    ))


def mark_history_lost(snapshot: MigrationSnapshot) -> TransitionOutcome:
    """Set the one-way history-lost flag. Idempotent, valid in any state."""
    if snapshot.history_lost:
        return TransitionOutcome(snapshot)
    return TransitionOutcome(snapshot.with_history_lost())
