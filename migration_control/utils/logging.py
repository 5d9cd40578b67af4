"""
Logging system for the Migration Control plane.

This module provides console and file logging setup, a structured JSON
formatter and an audit logger that records every lifecycle transition.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional
from dataclasses import dataclass, field, asdict
from enum import Enum

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "migration_control"
AUDIT_LOGGER_NAME = f"{ROOT_LOGGER_NAME}.audit"

MAX_LOG_SIZE = 50 * 1024 * 1024  # 50MB
LOG_BACKUP_COUNT = 5

_RECORD_ATTRIBUTES = frozenset({
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'taskName', 'message',
    'exc_info', 'exc_text', 'stack_info', 'log_entry',
})


class LogLevel(str, Enum):
    """Log levels for structured logging."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogCategory(str, Enum):
    """Categories for structured logging."""
    SYSTEM = "system"
    AUDIT = "audit"


@dataclass
class LogEntry:
    """Structured log entry with metadata."""
    timestamp: datetime = field(default_factory=datetime.now)
    level: LogLevel = LogLevel.INFO
    category: LogCategory = LogCategory.SYSTEM
    message: str = ""
    command: Optional[str] = None
    state: Optional[str] = None
    error_code: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert log entry to dictionary."""
        data = asdict(self)
        data['timestamp'] = self.timestamp.isoformat()
        data['level'] = self.level.value
        data['category'] = self.category.value
        return data

    def to_json(self) -> str:
        """Convert log entry to JSON string."""
        return json.dumps(self.to_dict(), default=str)


class StructuredFormatter(logging.Formatter):
    """Formatter for structured JSON logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        log_entry = getattr(record, 'log_entry', None)

        if log_entry and isinstance(log_entry, LogEntry):
            return log_entry.to_json()

        log_entry = LogEntry(
            timestamp=datetime.fromtimestamp(record.created),
            level=LogLevel(record.levelname),
            message=record.getMessage(),
            metadata={
                'logger': record.name,
                'module': record.module,
                'function': record.funcName,
                'line': record.lineno,
            }
        )

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRIBUTES:
                log_entry.metadata[key] = value

        if record.exc_info:
            log_entry.metadata['exception'] = self.formatException(record.exc_info)

        return log_entry.to_json()


class AuditLogger:
    """
    Audit trail for lifecycle transitions and apply-engine reports.

    Records always go to the ``migration_control.audit`` logger; when
    ``log_file`` is given they are also written as JSON lines to a rotating
    file.
    """

    def __init__(self, log_file: Optional[str] = None):
        self.logger = logging.getLogger(AUDIT_LOGGER_NAME)
        self.logger.setLevel(logging.INFO)
        self.log_file = log_file
        self._handler: Optional[logging.Handler] = None

        if log_file:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            self._handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=10
            )
            self._handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(self._handler)

    def close(self):
        """Detach and close the audit file handler."""
        if self._handler is not None:
            self.logger.removeHandler(self._handler)
            self._handler.close()
            self._handler = None

    def log_event(
        self,
        event_type: str,
        command: Optional[str] = None,
        state: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """Log an audit event."""
        log_entry = LogEntry(
            level=LogLevel.INFO,
            category=LogCategory.AUDIT,
            message=f"Audit event: {event_type}",
            command=command,
            state=state,
            metadata={
                'event_type': event_type,
                'details': details or {}
            }
        )

        self.logger.info(log_entry.message, extra={'log_entry': log_entry})

    def log_transition(self, record) -> None:
        """Log a committed :class:`TransitionRecord`."""
        self.log_event(
            "transition",
            command=record.command,
            state=record.to_state.value,
            details={
                'from_state': record.from_state.value,
                'to_state': record.to_state.value,
                **record.detail,
            }
        )


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    structured_logging: bool = False
) -> logging.Logger:
    """
    Set up logging for the Migration Control plane.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path, rotated at 50MB
        structured_logging: Whether to use structured JSON logging

    Returns:
        Configured ``migration_control`` logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper()))

    logger.handlers.clear()

    if structured_logging:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(StructuredFormatter())
    else:
        console_handler = RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            rich_tracebacks=True
        )

    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=MAX_LOG_SIZE,
            backupCount=LOG_BACKUP_COUNT
        )

        if structured_logging:
            file_handler.setFormatter(StructuredFormatter())
        else:
            file_handler.setFormatter(logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S"
            ))

        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a specific module."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
