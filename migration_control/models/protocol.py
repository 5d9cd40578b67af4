"""
Command payload models for the Migration Control plane.

This module defines the request and response bodies of the five lifecycle
commands. Wire names are camelCase (``includeNamespaces``, ``fromFailure``)
while Python attributes stay snake_case.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from migration_control.models.state import MigrationState


class ProtocolModel(BaseModel):
    """Base model for wire payloads."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class StartRequest(ProtocolModel):
    """Request body for ``start``."""
    include_namespaces: List[str] = Field(default_factory=list)
    exclude_namespaces: List[str] = Field(default_factory=list)

    @field_validator("include_namespaces", "exclude_namespaces", mode="before")
    @classmethod
    def null_as_empty(cls, v):
        return [] if v is None else v


class StatusRequest(ProtocolModel):
    """Request body for ``status`` (no fields)."""
    pass


class PauseRequest(ProtocolModel):
    """Request body for ``pause`` (no fields)."""
    pass


class ResumeRequest(ProtocolModel):
    """Request body for ``resume``."""
    from_failure: bool = False


class FinalizeRequest(ProtocolModel):
    """Request body for ``finalize``."""
    ignore_history_lost: bool = False


class CommandResponse(ProtocolModel):
    """
    Response body for the mutating commands.

    ``ok=False`` with ``error``/``error_code`` is a rejection by the core.
    ``ok=True`` with ``signal_error`` is a committed transition whose
    apply-engine signal failed. ``ok=True`` with ``superseded`` is a
    committed and signalled command overtaken by an engine report.
    """
    ok: bool
    error: Optional[str] = None
    error_code: Optional[str] = None
    signal_error: Optional[str] = None
    superseded: Optional[str] = None


class StatusResponse(ProtocolModel):
    """Response body for ``status``."""
    ok: bool = True
    state: MigrationState
    error: Optional[str] = None
    history_lost: bool = False
    include_namespaces: List[str] = Field(default_factory=list)
    exclude_namespaces: List[str] = Field(default_factory=list)
    updated_at: Optional[datetime] = None
