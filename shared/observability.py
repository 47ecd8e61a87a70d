"""
Observability for action execution: tracing spans, metrics and logging.

Every probe, perform and rollback is traced as a span and timed as a
metric; spans and metrics are exported through the standard logger.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from pydantic import BaseModel, Field

from .config import get_settings

LOG_FORMAT = '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}'


def configure_logging(level: Optional[str] = None) -> None:
    """Install the structured log format on the root logger.

    Args:
        level: Logging level name; defaults to ``ActionSettings.log_level``
    """
    if level is None:
        level = get_settings().log_level
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


class SpanContext(BaseModel):
    """Trace span context."""

    trace_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    span_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    parent_span_id: Optional[str] = None


class Span:
    """A single traced unit of work (one probe or run of one action)."""

    def __init__(
        self,
        operation_name: str,
        context: SpanContext,
        tags: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Start a span.

        Args:
            operation_name: Lifecycle step being traced (e.g. "action.probe")
            context: Trace ID, span ID and parent span ID
            tags: Optional tags such as the action class
        """
        self.operation_name = operation_name
        self.context = context
        self.tags = tags or {}
        self.start_time = time.time()
        self.end_time: Optional[float] = None
        self.status = "ok"
        self.logs: list[Dict[str, Any]] = []

    def set_tag(self, key: str, value: Any) -> None:
        """Set a span tag."""
        self.tags[key] = value

    def log_event(self, event: str, **fields: Any) -> None:
        """Record a timestamped event within the span."""
        self.logs.append({"timestamp": time.time(), "event": event, **fields})

    def set_status(self, status: str) -> None:
        """Set span status ('ok' or 'error')."""
        self.status = status

    def finish(self) -> None:
        """Mark the span as finished."""
        self.end_time = time.time()

    def duration_ms(self) -> float:
        """Span duration in milliseconds, up to now if still open."""
        end = self.end_time or time.time()
        return (end - self.start_time) * 1000

    def to_dict(self) -> Dict[str, Any]:
        """Convert the span to a dictionary for export."""
        return {
            "trace_id": self.context.trace_id,
            "span_id": self.context.span_id,
            "parent_span_id": self.context.parent_span_id,
            "operation_name": self.operation_name,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_ms": self.duration_ms() if self.end_time else None,
            "status": self.status,
            "tags": self.tags,
            "logs": self.logs,
        }


class ExecutionObservability:
    """Tracing and metrics for one execution run.

    Provides a unified interface for spans, metrics and structured logs.
    """

    def __init__(self, name: str = "barley", version: str = "0.3.0") -> None:
        """Initialize observability.

        Args:
            name: Name used for the logger and metric prefix
            version: Version tagged onto every span
        """
        self.name = name
        self.version = version
        self.logger = logging.getLogger(name)
        self._active_spans: Dict[str, Span] = {}
        self._metrics: Dict[str, list[float]] = {}

    @contextmanager
    def trace_operation(
        self,
        operation: str,
        parent_context: Optional[SpanContext] = None,
        tags: Optional[Dict[str, Any]] = None,
    ) -> Generator[Span, None, None]:
        """Trace an operation with a span.

        Args:
            operation: Operation name
            parent_context: Optional parent span context
            tags: Optional span tags

        Yields:
            Span object for the operation

        Example:
            with observability.trace_operation("action.perform") as span:
                span.set_tag("action", action.display_name())
                ...
        """
        context = SpanContext(
            trace_id=parent_context.trace_id if parent_context else str(uuid.uuid4()),
            parent_span_id=parent_context.span_id if parent_context else None,
        )
        span = Span(operation_name=operation, context=context, tags=tags or {})
        span.set_tag("version", self.version)
        self._active_spans[span.context.span_id] = span

        try:
            self.logger.debug(
                "Started span: %s (trace_id=%s, span_id=%s)",
                operation,
                context.trace_id,
                context.span_id,
            )
            yield span
        except Exception as exc:
            span.set_status("error")
            span.set_tag("error", True)
            span.set_tag("error.message", str(exc))
            span.log_event("exception", exception=str(exc))
            raise
        finally:
            span.finish()
            self._active_spans.pop(span.context.span_id, None)
            self._export_span(span)

    def _export_span(self, span: Span) -> None:
        """Export a finished span through the logger."""
        self.logger.debug(
            "Span completed: %s duration=%.2fms status=%s",
            span.operation_name,
            span.duration_ms(),
            span.status,
            extra={"span_data": span.to_dict()},
        )

    def emit_metric(self, name: str, value: float, tags: Optional[Dict[str, str]] = None) -> None:
        """Record a metric value.

        Args:
            name: Metric name (e.g., "action.duration_ms")
            value: Metric value
            tags: Optional metric tags
        """
        metric_key = f"{self.name}.{name}"
        self._metrics.setdefault(metric_key, []).append(value)
        self.logger.debug(
            "Metric: %s=%s tags=%s",
            name,
            value,
            tags or {},
            extra={"metric_name": name, "metric_value": value, "metric_tags": tags},
        )

    def get_metrics_summary(self) -> Dict[str, Dict[str, float]]:
        """Get summary statistics (count, sum, avg, min, max) per metric."""
        summary = {}
        for metric_name, values in self._metrics.items():
            if not values:
                continue
            summary[metric_name] = {
                "count": len(values),
                "sum": sum(values),
                "avg": sum(values) / len(values),
                "min": min(values),
                "max": max(values),
            }
        return summary

    def reset_metrics(self) -> None:
        """Drop all collected metric values."""
        self._metrics.clear()


_observability_instance: Optional[ExecutionObservability] = None


def init_observability(name: str = "barley", version: str = "0.3.0") -> ExecutionObservability:
    """Initialize the global observability instance.

    Args:
        name: Logger name and metric prefix
        version: Version tagged onto every span

    Returns:
        The new ExecutionObservability instance
    """
    global _observability_instance
    _observability_instance = ExecutionObservability(name, version)
    return _observability_instance


def get_observability() -> ExecutionObservability:
    """Return the global observability instance.

    Creates a default instance if init_observability() was never called.

    Returns:
        ExecutionObservability instance
    """
    global _observability_instance
    if _observability_instance is None:
        _observability_instance = ExecutionObservability()
    return _observability_instance
