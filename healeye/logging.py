"""
HEAL-EYE — Structured Logging with Trace IDs

JSON line logging under the "heal_eye" logger namespace. Every module
logs through logging.getLogger("heal_eye.<name>"); configure_logging()
attaches a single JSON handler at the namespace root.

WorkflowTracer emits one structured event per workflow transition so a
single request can be followed end-to-end by its trace_id.

Usage:
    from healeye.logging import configure_logging, WorkflowTracer

    configure_logging(level="INFO")
    tracer = WorkflowTracer(workflow="heal_eye")
    tracer.on_workflow_start()
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from datetime import datetime, timezone
from typing import Any

ROOT_LOGGER = "heal_eye"


class JSONFormatter(logging.Formatter):
    """Formats log records as JSON lines."""

    def __init__(self, service_name: str = ROOT_LOGGER, service_version: str = ""):
        super().__init__()
        self.service_name = service_name
        self.service_version = service_version

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service.name": self.service_name,
            "service.version": self.service_version,
        }

        if hasattr(record, "structured"):
            entry.update(record.structured)

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception.type"] = record.exc_info[0].__name__
            entry["exception.message"] = str(record.exc_info[1])

        return json.dumps(entry, default=str)


def configure_logging(
    level: str = "INFO",
    stream: Any = None,
    service_name: str = ROOT_LOGGER,
    service_version: str = "",
) -> logging.Logger:
    """Attach a JSON handler to the heal_eye logger. Safe to call again."""
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JSONFormatter(service_name=service_name, service_version=service_version))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str = "") -> logging.Logger:
    """Get a child logger under the heal_eye namespace."""
    if name:
        return logging.getLogger(f"{ROOT_LOGGER}.{name}")
    return logging.getLogger(ROOT_LOGGER)


def generate_trace_id() -> str:
    """32 hex chars, OTel-compatible."""
    return uuid.uuid4().hex


class WorkflowTracer:
    """Structured lifecycle events for one workflow invocation."""

    def __init__(self, workflow: str = "heal_eye", trace_id: str | None = None):
        self.workflow = workflow
        self.trace_id = trace_id or generate_trace_id()
        self._logger = get_logger("trace")

    def _emit(self, level: int, action: str, **fields):
        if not self._logger.isEnabledFor(level):
            return
        record = self._logger.makeRecord(
            name=self._logger.name,
            level=level,
            fn="", lno=0, msg=action,
            args=(), exc_info=None,
        )
        record.structured = {
            "trace_id": self.trace_id,
            "workflow": self.workflow,
            "action": action,
            **fields,
        }
        self._logger.handle(record)

    def on_workflow_start(self, **fields: Any) -> None:
        self._emit(logging.INFO, "workflow_start", **fields)

    def on_step_start(self, step_id: str) -> None:
        self._emit(logging.INFO, "step_start", step_id=step_id)

    def on_step_end(self, step_id: str, status: str, elapsed: float, error: str = "") -> None:
        level = logging.INFO if status == "ok" else logging.WARNING
        fields: dict[str, Any] = {
            "step_id": step_id,
            "status": status,
            "latency_ms": round(elapsed * 1000, 1),
        }
        if error:
            fields["error"] = error[:500]
        self._emit(level, "step_end", **fields)

    def on_step_skipped(self, step_id: str, dependency: str) -> None:
        self._emit(logging.INFO, "step_skipped", step_id=step_id, dependency=dependency)

    def on_provider_fallback(self, step_id: str, from_provider: str, to_provider: str) -> None:
        self._emit(
            logging.WARNING, "provider_fallback",
            step_id=step_id,
            from_provider=from_provider,
            to_provider=to_provider,
        )

    def on_workflow_end(
        self,
        status: str,
        elapsed_s: float,
        steps_completed: int = 0,
        fallbacks: int = 0,
    ) -> None:
        self._emit(
            logging.INFO if status == "success" else logging.ERROR,
            "workflow_end",
            status=status,
            elapsed_s=round(elapsed_s, 2),
            steps_completed=steps_completed,
            fallbacks=fallbacks,
        )
