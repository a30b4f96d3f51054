"""
TokenFS Observability

Structured logging for the filesystem, ledger, and client layers.

Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                    Application Code                      │
    │  logger.warning("Write denied", error_code=..., key=..) │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │                     TokenFSLogger                        │
    │  layer, operation, error code, correlation id, context  │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │                      Handlers                            │
    │        StructuredHandler (json) │ TextHandler (text)    │
    └─────────────────────────────────────────────────────────┘

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import traceback
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)


class TokenFSLayer(Enum):
    """System layers for categorization."""
    FILESYSTEM = "filesystem"
    LEDGER = "ledger"
    NFT = "nft"
    CLIENT = "client"


@dataclass
class LogEvent:
    """Structured log event."""
    timestamp: str
    level: str
    logger: str
    message: str
    correlation_id: str = ""
    layer: str = ""
    operation: str = ""
    error_code: str = ""
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding empty values."""
        d = asdict(self)
        return {k: v for k, v in d.items() if v is not None and v != "" and v != {}}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


def _event_from_record(record: logging.LogRecord) -> LogEvent:
    event = LogEvent(
        timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
        level=record.levelname.lower(),
        logger=record.name,
        message=record.getMessage(),
        correlation_id=correlation_id_var.get(),
        layer=getattr(record, "layer", ""),
        operation=getattr(record, "operation", ""),
        error_code=getattr(record, "error_code", ""),
        context=getattr(record, "context", {}),
    )
    if record.exc_info:
        event.exception = "".join(traceback.format_exception(*record.exc_info))
    return event


class StructuredHandler(logging.Handler):
    """Logging handler that outputs one JSON object per line."""

    def __init__(self, stream: Any = None):
        super().__init__()
        self._stream = stream

    @property
    def stream(self) -> Any:
        return self._stream if self._stream is not None else sys.stderr

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.stream.write(_event_from_record(record).to_json() + "\n")
            self.stream.flush()
        except Exception:
            self.handleError(record)


class TextHandler(logging.Handler):
    """Human-readable single-line output."""

    def __init__(self, stream: Any = None):
        super().__init__()
        self._stream = stream

    @property
    def stream(self) -> Any:
        return self._stream if self._stream is not None else sys.stderr

    def emit(self, record: logging.LogRecord) -> None:
        try:
            event = _event_from_record(record)
            context = " ".join(f"{k}={v}" for k, v in sorted(event.context.items()))
            code = f" [{event.error_code}]" if event.error_code else ""
            line = f"{event.timestamp} {event.level.upper():8} {event.logger}{code}: {event.message}"
            if context:
                line += f" {context}"
            self.stream.write(line + "\n")
            if event.exception:
                self.stream.write(event.exception)
            self.stream.flush()
        except Exception:
            self.handleError(record)


class TokenFSLogger:
    """
    Structured logger for TokenFS components.

    Attaches layer, operation, error code and keyword context to every
    record. Handlers are installed once on the ``tokenfs`` root logger by
    ``configure_logging``; component loggers only propagate.
    """

    def __init__(self, name: str, layer: TokenFSLayer):
        self.name = name
        self.layer = layer
        self._logger = logging.getLogger(f"tokenfs.{layer.value}.{name}")

    def _log(
        self,
        level: int,
        message: str,
        operation: str = "",
        error_code: str = "",
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return
        extra = {
            "layer": self.layer.value,
            "operation": operation,
            "error_code": error_code,
            "context": context,
        }
        self._logger.log(level, message, extra=extra, exc_info=exc_info)

    def debug(self, message: str, **context: Any) -> None:
        self._log(logging.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(logging.WARNING, message, **context)

    def error(self, message: str, error_code: str = "", exc_info: bool = False, **context: Any) -> None:
        self._log(logging.ERROR, message, error_code=error_code, exc_info=exc_info, **context)


def configure_logging(level: str = "info", fmt: str = "json", stream: Any = None) -> logging.Logger:
    """Install a single structured or text handler on the ``tokenfs`` logger."""
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")
    if fmt not in ("json", "text"):
        raise ValueError(f"Unknown log format: {fmt}")
    root = logging.getLogger("tokenfs")
    root.setLevel(numeric_level)
    for handler in list(root.handlers):
        if isinstance(handler, (StructuredHandler, TextHandler)):
            root.removeHandler(handler)
    handler = StructuredHandler(stream) if fmt == "json" else TextHandler(stream)
    root.addHandler(handler)
    return root


def configure_from_config() -> logging.Logger:
    from tokenfs.config import get_config
    obs = get_config().observability
    return configure_logging(obs.log_level.get(), obs.log_format.get())


def generate_correlation_id() -> str:
    return f"corr-{uuid.uuid4().hex[:12]}"


def set_correlation_id(correlation_id: str) -> contextvars.Token:
    return correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    cid = correlation_id_var.get()
    if not cid:
        cid = generate_correlation_id()
        correlation_id_var.set(cid)
    return cid


def get_logger(name: str, layer: TokenFSLayer) -> TokenFSLogger:
    """Get a logger for a TokenFS component."""
    return TokenFSLogger(name, layer)
