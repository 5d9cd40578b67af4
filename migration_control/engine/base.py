"""
Apply engine interface for the Migration Control plane.

The apply engine performs the actual change capture and data application.
It lives outside the control plane; this module defines the signals the
control plane sends to it after a lifecycle transition commits, the
reports it sends back through the controller it is attached to, and a
default engine that only logs.
"""

import importlib
import inspect
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

from migration_control.core.exceptions import ConfigurationError, EngineNotAttachedError
from migration_control.models.namespace import NamespaceFilter

if TYPE_CHECKING:
    from migration_control.lifecycle.controller import CommandResult, MigrationController

logger = logging.getLogger(__name__)


class ApplyEngine(ABC):
    """
    Abstract base class for apply engines.

    Every signal method is called after the corresponding transition has
    been committed, in commit order. Raising from a signal does not undo
    the transition; the controller reports the failure alongside the new
    state.

    The controller attaches itself on construction. From then on the
    engine reports unrecoverable errors and lost source history with
    :meth:`report_failure` and :meth:`report_history_lost`.
    """

    controller: Optional["MigrationController"] = None

    def attach(self, controller: "MigrationController") -> None:
        """Bind the engine to the controller it reports to."""
        self.controller = controller

    def _attached(self) -> "MigrationController":
        if self.controller is None:
            raise EngineNotAttachedError(
                f"{self.__class__.__name__} is not attached to a migration controller"
            )
        return self.controller

    async def report_failure(self, reason: str) -> "CommandResult":
        """Report an unrecoverable apply error; the migration moves to failed."""
        return await self._attached().report_failure(reason)

    async def report_history_lost(self) -> "CommandResult":
        """Report that the source no longer retains the history needed to resume."""
        return await self._attached().report_history_lost()

    @abstractmethod
    async def start(self, namespace_filter: NamespaceFilter) -> None:
        """Begin replicating the namespaces selected by the filter."""
        pass

    @abstractmethod
    async def pause(self) -> None:
        """Suspend applying changes to the target."""
        pass

    @abstractmethod
    async def resume(self, from_failure: bool = False) -> None:
        """
        Continue applying changes.

        Args:
            from_failure: True when recovering from a failed state; the
                engine must re-validate its checkpoint before continuing.
        """
        pass

    @abstractmethod
    async def finalize(self, ignore_history_lost: bool = False) -> None:
        """Perform the final cutover and stop replication."""
        pass


class LoggingApplyEngine(ApplyEngine):
    """Apply engine that records signals in the log and does nothing else."""

    async def start(self, namespace_filter: NamespaceFilter) -> None:
        payload = namespace_filter.to_payload()
        logger.info(
            f"Apply engine start: include={payload['includeNamespaces'] or 'all'} "
            f"exclude={payload['excludeNamespaces']}"
        )

    async def pause(self) -> None:
        logger.info("Apply engine pause")

    async def resume(self, from_failure: bool = False) -> None:
        logger.info(f"Apply engine resume (from_failure={from_failure})")

    async def finalize(self, ignore_history_lost: bool = False) -> None:
        logger.info(f"Apply engine finalize (ignore_history_lost={ignore_history_lost})")


def load_engine(path: Optional[str] = None) -> ApplyEngine:
    """
    Instantiate the apply engine named by ``path``.

    Args:
        path: ``package.module:ClassName`` of an :class:`ApplyEngine`
            subclass taking no arguments. The logging engine is used when
            omitted.

    Raises:
        ConfigurationError: If the class cannot be imported or is not an
            apply engine.
    """
    if not path:
        return LoggingApplyEngine()

    module_name, _, class_name = path.partition(":")
    if not module_name or not class_name:
        raise ConfigurationError(
            f"Invalid apply engine '{path}': expected 'package.module:ClassName'"
        )

    try:
        engine_class = getattr(importlib.import_module(module_name), class_name)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Cannot load apply engine '{path}': {e}")

    if not (isinstance(engine_class, type) and issubclass(engine_class, ApplyEngine)):
        raise ConfigurationError(f"'{path}' is not an ApplyEngine subclass")
    if inspect.isabstract(engine_class):
        raise ConfigurationError(f"'{path}' is an abstract apply engine")

    logger.info(f"Using apply engine {path}")
    return engine_class()
