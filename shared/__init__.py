"""
Shared libraries for the action runtime and plugins.

Provides common functionality:
- Configuration management
- Observability (tracing, metrics, logging)
"""

from .config import ActionSettings, get_settings, reset_settings
from .observability import (
    ExecutionObservability,
    Span,
    SpanContext,
    configure_logging,
    get_observability,
    init_observability,
)

__all__ = [
    # Config
    "ActionSettings",
    "get_settings",
    "reset_settings",
    # Observability
    "ExecutionObservability",
    "Span",
    "SpanContext",
    "configure_logging",
    "get_observability",
    "init_observability",
]
