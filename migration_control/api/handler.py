"""
Protocol handler for the Migration Control plane.

This module maps command payloads onto the MigrationController and shapes
the responses. It is independent of the transport; the FastAPI routes in
``migration_control.api.main`` are thin wrappers around it.
"""

import logging
from typing import Optional

from migration_control.lifecycle.controller import CommandResult, MigrationController
from migration_control.models.protocol import (
    CommandResponse,
    FinalizeRequest,
    PauseRequest,
    ResumeRequest,
    StartRequest,
    StatusRequest,
    StatusResponse,
)
from migration_control.models.state import MigrationSnapshot

logger = logging.getLogger(__name__)


def command_response(result: CommandResult) -> CommandResponse:
    """Render a controller result as a wire response."""
    if result.error is not None:
        return CommandResponse(
            ok=False,
            error=result.error.message,
            error_code=result.error.code,
        )
    return CommandResponse(
        ok=True,
        signal_error=result.signal_error.message if result.signal_error else None,
        superseded=result.superseded.message if result.superseded else None,
    )


def status_response(snapshot: MigrationSnapshot) -> StatusResponse:
    """Render a snapshot as a status response."""
    scope = snapshot.namespace_filter.to_payload() if snapshot.namespace_filter else {}
    return StatusResponse(
        ok=True,
        state=snapshot.state,
        error=snapshot.failure_reason,
        history_lost=snapshot.history_lost,
        include_namespaces=scope.get("includeNamespaces", []),
        exclude_namespaces=scope.get("excludeNamespaces", []),
        updated_at=snapshot.updated_at,
    )


class ProtocolHandler:
    """Dispatches the five lifecycle commands to a controller."""

    def __init__(self, controller: MigrationController):
        self.controller = controller

    async def start(self, request: StartRequest) -> CommandResponse:
        logger.debug(
            f"start: include={request.include_namespaces} exclude={request.exclude_namespaces}"
        )
        result = await self.controller.start(
            request.include_namespaces,
            request.exclude_namespaces
        )
        return command_response(result)

    async def status(self, request: Optional[StatusRequest] = None) -> StatusResponse:
        return status_response(self.controller.status())

    async def pause(self, request: Optional[PauseRequest] = None) -> CommandResponse:
        return command_response(await self.controller.pause())

    async def resume(self, request: ResumeRequest) -> CommandResponse:
        return command_response(
            await self.controller.resume(from_failure=request.from_failure)
        )

    async def finalize(self, request: FinalizeRequest) -> CommandResponse:
        return command_response(
            await self.controller.finalize(ignore_history_lost=request.ignore_history_lost)
        )
