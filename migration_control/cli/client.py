"""
HTTP client for the Migration Control API.

This module provides the ControlPlaneClient used by the CLI commands to
send lifecycle commands to a running control-plane server.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from migration_control.core.exceptions import ControlPlaneConnectionError
from migration_control.models.config import DEFAULT_HOST, DEFAULT_PORT
from migration_control.models.protocol import (
    CommandResponse,
    FinalizeRequest,
    ResumeRequest,
    StartRequest,
    StatusResponse,
)

logger = logging.getLogger(__name__)


class ControlPlaneClient:
    """Synchronous client for the lifecycle command endpoints."""

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        timeout: float = 30.0,
        http_client: Optional[httpx.Client] = None
    ):
        """
        Initialize the client.

        Args:
            host: Server host
            port: Server port
            timeout: Request timeout in seconds
            http_client: Preconfigured httpx client (optional, used as-is)
        """
        self.base_url = f"http://{host}:{port}"
        self._client = http_client or httpx.Client(base_url=self.base_url, timeout=timeout)

    def close(self):
        self._client.close()

    def __enter__(self) -> "ControlPlaneClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _post(self, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        logger.debug(f"POST {path} {payload or {}}")
        try:
            response = self._client.post(path, json=payload or {})
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise ControlPlaneConnectionError(
                f"Server returned HTTP {e.response.status_code} for {path}",
                details={"body": e.response.text}
            )
        except httpx.HTTPError as e:
            raise ControlPlaneConnectionError(
                f"Cannot reach migration control server at {self.base_url}: {e}"
            )

    def start(
        self,
        include_namespaces: Optional[List[str]] = None,
        exclude_namespaces: Optional[List[str]] = None
    ) -> CommandResponse:
        request = StartRequest(
            include_namespaces=include_namespaces or [],
            exclude_namespaces=exclude_namespaces or []
        )
        return CommandResponse.model_validate(self._post("/start", request.to_wire()))

    def status(self) -> StatusResponse:
        return StatusResponse.model_validate(self._post("/status"))

    def pause(self) -> CommandResponse:
        return CommandResponse.model_validate(self._post("/pause"))

    def resume(self, from_failure: bool = False) -> CommandResponse:
        request = ResumeRequest(from_failure=from_failure)
        return CommandResponse.model_validate(self._post("/resume", request.to_wire()))

    def finalize(self, ignore_history_lost: bool = False) -> CommandResponse:
        request = FinalizeRequest(ignore_history_lost=ignore_history_lost)
        return CommandResponse.model_validate(self._post("/finalize", request.to_wire()))
