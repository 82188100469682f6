"""Shared telemetry: logging setup, OpenTelemetry config and tracing helpers."""

from backoffice.shared.telemetry.logging import setup_logging
from backoffice.shared.telemetry.tracing import (
    add_span_attributes,
    get_trace_id,
    traced_span,
)

__all__ = [
    "add_span_attributes",
    "get_trace_id",
    "setup_logging",
    "traced_span",
]
