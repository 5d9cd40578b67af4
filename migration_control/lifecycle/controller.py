"""
Migration controller for the Migration Control plane.

This module provides the MigrationController class that owns the single
migration instance of a control-plane process, serializes mutating
commands and signals the apply engine once a transition has committed.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional, Tuple

from migration_control.core.exceptions import (
    EngineSignalError,
    InvalidTransitionError,
    MigrationControlError,
)
from migration_control.engine.base import ApplyEngine, LoggingApplyEngine
from migration_control.lifecycle import transitions
from migration_control.lifecycle.transitions import TransitionOutcome
from migration_control.models.state import MigrationSnapshot, MigrationState
from migration_control.utils.logging import AuditLogger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """
    Outcome of a lifecycle command.

    ``error`` is set when the core rejected the command; the snapshot is
    then the unchanged current state. ``signal_error`` is set when the
    transition committed but the apply engine could not be signalled.
    ``superseded`` is set when the command committed and signalled, but a
    concurrent engine report moved the migration on before the command
    could complete.
    """
    command: str
    snapshot: MigrationSnapshot
    error: Optional[MigrationControlError] = None
    signal_error: Optional[EngineSignalError] = None
    superseded: Optional[InvalidTransitionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def state(self) -> MigrationState:
        return self.snapshot.state

    def raise_for_error(self) -> "CommandResult":
        """Raise the rejection error, if any; otherwise return self."""
        if self.error is not None:
            raise self.error
        return self


class SignalTurn:
    """
    A place in the apply-engine signal queue.

    Turns are taken under the state lock, so they follow commit order.
    A turn waits for the previous one to be released before its signal is
    sent.
    """

    def __init__(self, previous: Optional[asyncio.Future]):
        self.previous = previous
        self.done = asyncio.get_running_loop().create_future()

    async def wait(self) -> None:
        if self.previous is not None and not self.previous.done():
            await asyncio.shield(self.previous)

    def release(self) -> None:
        if self.previous is not None and not self.previous.done():
            # cancelled while queued; hand over only once the previous turn ends
            self.previous.add_done_callback(lambda _: self.release())
        elif not self.done.done():
            self.done.set_result(None)


class MigrationController:
    """
    Owner of the migration instance.

    All mutating commands run their transition rule inside one asyncio
    lock and publish the resulting immutable snapshot by replacing a single
    reference. ``status`` reads that reference without locking. Apply
    engine signals are awaited after the lock is released, are delivered
    in commit order and never roll a committed transition back.
    """

    def __init__(
        self,
        engine: Optional[ApplyEngine] = None,
        audit_logger: Optional[AuditLogger] = None,
        snapshot: Optional[MigrationSnapshot] = None
    ):
        """
        Initialize the controller.

        Args:
            engine: Apply engine to signal (defaults to a logging-only engine).
                The engine is attached to this controller so it can report
                failures and lost history.
            audit_logger: Audit trail for committed transitions (optional)
            snapshot: Initial snapshot (defaults to a fresh idle migration)
        """
        self.engine = engine or LoggingApplyEngine()
        self.audit_logger = audit_logger or AuditLogger()
        self._snapshot = snapshot or MigrationSnapshot()
        self._lock = asyncio.Lock()
        self._signal_tail: Optional[asyncio.Future] = None
        self.engine.attach(self)

    @property
    def snapshot(self) -> MigrationSnapshot:
        return self._snapshot

    def status(self) -> MigrationSnapshot:
        """Return the current snapshot. Never blocks and never fails."""
        return self._snapshot

    async def _commit(
        self,
        rule: Callable[..., TransitionOutcome],
        *args,
        signal: bool = False
    ) -> Tuple[TransitionOutcome, Optional[SignalTurn]]:
        """
        Apply ``rule`` to the current snapshot under the lock.

        With ``signal`` set, an accepted command also takes its turn in the
        signal queue before the lock is released.
        """
        turn = None
        async with self._lock:
            current = self._snapshot
            outcome = rule(current, *args)
            if outcome.ok and outcome.snapshot is not current:
                self._snapshot = outcome.snapshot
                if len(outcome.snapshot.history) > len(current.history):
                    record = outcome.snapshot.history[-1]
                    logger.info(
                        f"Migration {record.from_state.value} -> {record.to_state.value} "
                        f"({record.command})"
                    )
                    self.audit_logger.log_transition(record)
            if outcome.ok and signal:
                turn = SignalTurn(self._signal_tail)
                self._signal_tail = turn.done
        if not outcome.ok:
            logger.warning(f"Rejected {rule.__name__}: {outcome.error.message}")
        return outcome, turn

    async def _signal(
        self,
        command: str,
        signal: Callable[[], Awaitable[None]],
        turn: SignalTurn
    ) -> Optional[EngineSignalError]:
        try:
            await turn.wait()
            await signal()
        except Exception as e:
            logger.error(f"Apply engine signal for {command} failed: {e}", exc_info=True)
            self.audit_logger.log_event(
                "engine_signal_failed",
                command=command,
                state=self._snapshot.state.value,
                details={"error": str(e)}
            )
            return EngineSignalError(command, e)
        finally:
            turn.release()
        return None

    async def _run(
        self,
        command: str,
        committed: Tuple[TransitionOutcome, Optional[SignalTurn]],
        signal: Callable[[], Awaitable[None]]
    ) -> CommandResult:
        outcome, turn = committed
        if not outcome.ok:
            return CommandResult(command, outcome.snapshot, error=outcome.error)
        signal_error = await self._signal(command, signal, turn)
        return CommandResult(command, outcome.snapshot, signal_error=signal_error)

    async def start(
        self,
        include: Optional[Iterable[str]] = None,
        exclude: Optional[Iterable[str]] = None
    ) -> CommandResult:
        """Validate the namespace filter and start replication."""
        committed = await self._commit(
            transitions.start,
            list(include or ()),
            list(exclude or ()),
            signal=True
        )
        namespace_filter = committed[0].snapshot.namespace_filter
        return await self._run(
            transitions.START,
            committed,
            lambda: self.engine.start(namespace_filter)
        )

    async def pause(self) -> CommandResult:
        """Pause a running migration."""
        committed = await self._commit(transitions.pause, signal=True)
        return await self._run(transitions.PAUSE, committed, self.engine.pause)

    async def resume(self, from_failure: bool = False) -> CommandResult:
        """Resume a paused migration, or a failed one with ``from_failure``."""
        committed = await self._commit(transitions.resume, from_failure, signal=True)
        return await self._run(
            transitions.RESUME,
            committed,
            lambda: self.engine.resume(from_failure=from_failure)
        )

    async def finalize(self, ignore_history_lost: bool = False) -> CommandResult:
        """
        Cut over to the target.

        Commits FINALIZING, signals the engine, then commits FINALIZED. If
        the cutover signal fails the migration stays FINALIZING, the
        failure is returned as ``signal_error`` and a later ``finalize``
        signals the cutover again. If an engine report moves the migration
        on while the cutover is signalled, the result carries
        ``superseded`` and the current snapshot.
        """
        outcome, turn = await self._commit(
            transitions.begin_finalize, ignore_history_lost, signal=True
        )
        if not outcome.ok:
            return CommandResult(transitions.FINALIZE, outcome.snapshot, error=outcome.error)

        signal_error = await self._signal(
            transitions.FINALIZE,
            lambda: self.engine.finalize(ignore_history_lost=ignore_history_lost),
            turn
        )
        if signal_error is not None:
            return CommandResult(
                transitions.FINALIZE, outcome.snapshot, signal_error=signal_error
            )

        completed, _ = await self._commit(transitions.complete_finalize)
        if not completed.ok:
            return CommandResult(
                transitions.FINALIZE, completed.snapshot, superseded=completed.error
            )
        return CommandResult(transitions.FINALIZE, completed.snapshot)

    async def report_failure(self, reason: str) -> CommandResult:
        """Record an unrecoverable apply-engine error."""
        outcome, _ = await self._commit(transitions.fail, reason)
        if outcome.ok:
            logger.error(f"Migration failed: {reason}")
        return CommandResult(transitions.FAIL, outcome.snapshot, error=outcome.error)

    async def report_history_lost(self) -> CommandResult:
        """Record that the source no longer retains the history needed to resume."""
        async with self._lock:
            current = self._snapshot
            outcome = transitions.mark_history_lost(current)
            self._snapshot = outcome.snapshot
        if outcome.snapshot is not current:
            logger.warning("Source history lost; finalize now requires an explicit override")
            self.audit_logger.log_event(
                "history_lost",
                state=outcome.snapshot.state.value
            )
        return CommandResult("history_lost", outcome.snapshot)
