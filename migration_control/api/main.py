"""
FastAPI application for the Migration Control plane.

This module exposes each lifecycle command as its own POST path
(``/start``, ``/status``, ``/pause``, ``/resume``, ``/finalize``) plus a
health check. Core rejections are returned as ``ok: false`` payloads with
HTTP 200; the payload, not the status code, carries the result.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request

from migration_control import __version__
from migration_control.api.handler import ProtocolHandler
from migration_control.lifecycle.controller import MigrationController
from migration_control.models.protocol import (
    CommandResponse,
    FinalizeRequest,
    PauseRequest,
    ResumeRequest,
    StartRequest,
    StatusRequest,
    StatusResponse,
)

logger = logging.getLogger(__name__)


def create_app(controller: Optional[MigrationController] = None) -> FastAPI:
    """
    Create the control-plane application.

    Args:
        controller: The migration controller served by this process. A new
            idle controller is created when omitted.

    Returns:
        Configured FastAPI application
    """
    controller = controller or MigrationController()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting Migration Control API v{__version__}")
        yield
        logger.info(
            f"Shutting down Migration Control API (state: {controller.status().state.value})"
        )

    app = FastAPI(
        title="Migration Control API",
        description="Lifecycle control for a live database migration",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.controller = controller
    app.state.handler = ProtocolHandler(controller)

    def get_handler(request: Request) -> ProtocolHandler:
        return request.app.state.handler

    @app.get("/health", tags=["Health"])
    async def health_check(handler: ProtocolHandler = Depends(get_handler)):
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": __version__,
            "state": handler.controller.status().state.value,
        }

    @app.post("/start",
              response_model=CommandResponse,
              response_model_exclude_none=True,
              tags=["Lifecycle"])
    async def start(
        body: Optional[StartRequest] = None,
        handler: ProtocolHandler = Depends(get_handler)
    ):
        """
        Start replication.

        - **includeNamespaces**: patterns to replicate (empty means all)
        - **excludeNamespaces**: patterns never replicated; exclusion wins
        """
        return await handler.start(body or StartRequest())

    @app.api_route("/status",
                   methods=["GET", "POST"],
                   response_model=StatusResponse,
                   response_model_exclude_none=True,
                   tags=["Lifecycle"])
    async def status(
        body: Optional[StatusRequest] = None,
        handler: ProtocolHandler = Depends(get_handler)
    ):
        """Current lifecycle state and replication scope."""
        return await handler.status(body or StatusRequest())

    @app.post("/pause",
              response_model=CommandResponse,
              response_model_exclude_none=True,
              tags=["Lifecycle"])
    async def pause(
        body: Optional[PauseRequest] = None,
        handler: ProtocolHandler = Depends(get_handler)
    ):
        """Pause a running migration."""
        return await handler.pause(body or PauseRequest())

    @app.post("/resume",
              response_model=CommandResponse,
              response_model_exclude_none=True,
              tags=["Lifecycle"])
    async def resume(
        body: Optional[ResumeRequest] = None,
        handler: ProtocolHandler = Depends(get_handler)
    ):
        """
        Resume a paused migration.

        - **fromFailure**: required to resume a failed migration
        """
        return await handler.resume(body or ResumeRequest())

    @app.post("/finalize",
              response_model=CommandResponse,
              response_model_exclude_none=True,
              tags=["Lifecycle"])
    async def finalize(
        body: Optional[FinalizeRequest] = None,
        handler: ProtocolHandler = Depends(get_handler)
    ):
        """
        Cut over to the target cluster.

        - **ignoreHistoryLost**: finalize even if source history was lost
        """
        return await handler.finalize(body or FinalizeRequest())

    return app
