"""Span helpers for the authorization and audit pipeline.

Without a configured tracer provider the OpenTelemetry API hands out
no-op spans, so these helpers cost nothing when telemetry is disabled.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

AttributeValue = str | int | float | bool


@contextmanager
def traced_span(
    tracer: trace.Tracer,
    name: str,
    attributes: dict[str, AttributeValue | None] | None = None,
) -> Iterator[trace.Span]:
    """Run the block in a span; record an exception as an error status and re-raise.

    Attributes whose value is None are skipped.
    """
    with tracer.start_as_current_span(name, record_exception=False) as span:
        for key, value in (attributes or {}).items():
            if value is not None:
                span.set_attribute(key, value)
        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise


def add_span_attributes(**attributes: AttributeValue | None) -> None:
    """Add attributes to the current span (None values are skipped)."""
    span = trace.get_current_span()
    if span.is_recording():
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(key, value)


def get_trace_id() -> str | None:
    """Return the current trace id as 32-char hex, or None."""
    ctx = trace.get_current_span().get_span_context()
    return format(ctx.trace_id, "032x") if ctx.is_valid else None
