"""
Configuration models for the Migration Control plane.

This module defines the Pydantic model for server and logging settings and
the loader that merges a config file, environment variables and explicit
overrides.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from migration_control.core.exceptions import ConfigurationError
from migration_control.utils.helpers import load_config_file

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 2242

ENV_PREFIX = "MIGRATION_CONTROL_"
_ENV_FIELDS = ("host", "port", "log_level", "log_file", "audit_log_file", "engine")

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ControlPlaneConfig(BaseModel):
    """Settings for the control-plane server process."""
    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    log_level: str = "INFO"
    log_file: Optional[str] = None
    audit_log_file: Optional[str] = None
    structured_logging: bool = False
    engine: Optional[str] = None

    @field_validator("log_level")
    @classmethod
    def known_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {v}")
        return level


def _env_overrides(environ: Dict[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for name in _ENV_FIELDS:
        value = environ.get(f"{ENV_PREFIX}{name.upper()}")
        if value:
            overrides[name] = value
    return overrides


def load_config(
    path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
    environ: Optional[Dict[str, str]] = None
) -> ControlPlaneConfig:
    """
    Load the control-plane configuration.

    Precedence, lowest first: defaults, environment variables, config file,
    explicit overrides. ``None`` override values are ignored so unset CLI
    flags keep the file value.

    Raises:
        ConfigurationError: If the file cannot be read or a value is invalid.
    """
    data: Dict[str, Any] = _env_overrides(os.environ if environ is None else environ)

    if path is not None:
        try:
            file_data = load_config_file(path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot load configuration from {path}: {e}")
        if file_data is None:
            file_data = {}
        if not isinstance(file_data, dict):
            raise ConfigurationError(f"Configuration file {path} must contain a mapping")
        data.update(file_data)

    data.update({k: v for k, v in (overrides or {}).items() if v is not None})

    try:
        return ControlPlaneConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {e}",
            details={"errors": e.errors(include_url=False)}
        )
