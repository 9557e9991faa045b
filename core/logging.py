# ============================================================================
# STRUCTURED LOGGING
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Core - Structured logging with gate context
# PURPOSE: Queryable log lines for every check, alert and gate decision
# CREATED: 17 OCT 2026
# ============================================================================
"""
Structured Logging

Every log line emitted during a gate run carries the pipeline id it belongs
to, and checker log lines carry the service name. Both come from a
ContextVar, so the six concurrent checks each see their own fields.

Output:
    LOG_FORMAT=json -> one JSON object per line (container log ingestion)
    otherwise       -> "2026-10-17 06:00:01 INFO     health.executor [gate pipeline=2026-10-17]: ..."

Usage:
    from core.logging import ComponentType, get_logger, log_context

    logger = get_logger(__name__, ComponentType.GATE)

    with log_context(pipeline_id="2026-10-17"):
        logger.info("Starting health check", extra={"services": 6})
"""

import json
import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union
from enum import Enum


class ComponentType(str, Enum):
    """Which part of the gate emitted a log line."""
    GATE = "gate"
    CHECKER = "checker"
    API = "api"
    REPOSITORY = "repository"
    SERVICE = "service"
    NOTIFIER = "notifier"
    HISTORY = "history"
    INFRASTRUCTURE = "infrastructure"


@dataclass(frozen=True)
class GateLogContext:
    """Fields attached to every log line inside a log_context block."""
    pipeline_id: Optional[str] = None
    service: Optional[str] = None
    component: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            key: value
            for key, value in (
                ("pipeline_id", self.pipeline_id),
                ("service", self.service),
                ("component", self.component),
            )
            if value is not None
        }
        result.update(self.extra)
        return result


_EMPTY_CONTEXT = GateLogContext()
_current_context: ContextVar[GateLogContext] = ContextVar("gate_log_context", default=_EMPTY_CONTEXT)


def get_current_context() -> GateLogContext:
    return _current_context.get()


@contextmanager
def log_context(
    pipeline_id: Optional[str] = None,
    service: Optional[str] = None,
    component: Optional[str] = None,
    **extra: Any,
):
    """
    Add fields to every log line emitted inside the block.

    Unset arguments inherit from the enclosing block.

    Example:
        with log_context(pipeline_id="2026-10-17"):
            with log_context(service="gemini"):
                logger.info("probing")   # pipeline_id and service attached
    """
    parent = get_current_context()
    context = replace(
        parent,
        pipeline_id=pipeline_id or parent.pipeline_id,
        service=service or parent.service,
        component=component or parent.component,
        extra={**parent.extra, **extra},
    )
    token = _current_context.set(context)
    try:
        yield context
    finally:
        _current_context.reset(token)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": _utc_timestamp(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        data = getattr(record, "gate", None)
        if data:
            log_data["data"] = data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data["source"] = f"{record.filename}:{record.lineno}"

        return json.dumps(log_data, default=str)


class HumanFormatter(logging.Formatter):
    """Single-line format for local runs; context shown in brackets."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname.ljust(8)

        data = dict(getattr(record, "gate", None) or {})
        tags = []
        component = data.pop("component", None)
        if component:
            tags.append(str(component))
        for key in ("pipeline_id", "service"):
            if data.get(key):
                tags.append(f"{key.replace('_id', '')}={data.pop(key)}")

        line = f"{timestamp} {level} {record.name}"
        if tags:
            line += f" [{' '.join(tags)}]"
        line += f": {record.getMessage()}"
        if data:
            line += f" {data}"

        if record.exc_info:
            line += f"\n{self.formatException(record.exc_info)}"

        return line


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that merges the logger's component, the current
    log_context and the call's `extra` into one `gate` record attribute.
    """

    def process(self, msg, kwargs):
        data: Dict[str, Any] = {}
        if self.extra.get("component") is not None:
            data["component"] = self.extra["component"].value
        data.update(get_current_context().to_dict())
        data.update(kwargs.get("extra") or {})
        kwargs["extra"] = {"gate": data}
        return msg, kwargs


def get_logger(
    name: str,
    component: Optional[ComponentType] = None,
) -> ContextLogger:
    """
    Get a context-aware logger.

    Args:
        name: Logger name (usually __name__)
        component: Component tag attached to every record

    Returns:
        ContextLogger instance
    """
    return ContextLogger(logging.getLogger(name), {"component": component})


def configure_logging(
    level: Union[str, int] = "INFO",
    json_output: bool = False,
) -> None:
    """
    Install a single stdout handler on the root logger.

    Args:
        level: Log level name or number
        json_output: JSON lines instead of the human format; LOG_FORMAT=json
            forces it on
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if json_output or os.getenv("LOG_FORMAT", "").lower() == "json":
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = HumanFormatter()

    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root.addHandler(handler)

    # httpx logs every request at INFO, including webhook URLs
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ============================================================================
# CHECKPOINT LOGGING
# ============================================================================

def log_checkpoint(name: str, data: Optional[Dict[str, Any]] = None) -> None:
    """
    Log a named milestone of a gate run.

    Checkpoints ("health_check_completed", "pipeline_skipped") are the
    lines to query when reconstructing what the gate decided for a day.
    """
    checkpoint = {"checkpoint": name, **get_current_context().to_dict()}
    if data:
        checkpoint["data"] = data
    logging.getLogger("checkpoint").info(f"CHECKPOINT: {name}", extra={"gate": checkpoint})


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ComponentType",
    "GateLogContext",
    "StructuredFormatter",
    "HumanFormatter",
    "ContextLogger",
    "get_logger",
    "configure_logging",
    "log_context",
    "get_current_context",
    "log_checkpoint",
]
