"""Tracing helpers and telemetry wiring."""

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from backoffice.core.config import get_settings
from backoffice.shared.telemetry import traced_span
from backoffice.shared.telemetry.telemetry import (
    TelemetryConfig,
    get_telemetry,
    set_telemetry,
)


@pytest.fixture
def provider_and_exporter():
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    yield provider, exporter
    provider.shutdown()


def test_traced_span_skips_none_attributes(provider_and_exporter) -> None:
    provider, exporter = provider_and_exporter
    with traced_span(provider.get_tracer("t"), "work", {"a": "x", "b": None}):
        pass
    (span,) = exporter.get_finished_spans()
    assert span.name == "work"
    assert dict(span.attributes) == {"a": "x"}


def test_traced_span_records_error_and_reraises(provider_and_exporter) -> None:
    provider, exporter = provider_and_exporter
    with pytest.raises(ValueError):
        with traced_span(provider.get_tracer("t"), "work"):
            raise ValueError("boom")
    (span,) = exporter.get_finished_spans()
    assert span.status.status_code is StatusCode.ERROR
    assert [e.name for e in span.events] == ["exception"]


def test_instrumentation_is_a_noop_without_provider() -> None:
    telemetry = TelemetryConfig("backoffice", "1.0.0")
    telemetry.instrument_redis()
    telemetry.instrument_logging()
    telemetry.shutdown()
    assert telemetry.tracer_provider is None


class _RecordingTelemetry(TelemetryConfig):
    def __init__(self) -> None:
        super().__init__("backoffice", "test")
        self.instrumented = []

    def instrument_fastapi(self, app) -> None:
        self.instrumented.append(app)


@pytest.fixture
def installed_telemetry():
    telemetry = _RecordingTelemetry()
    set_telemetry(telemetry)
    yield telemetry
    set_telemetry(None)


def test_create_app_instruments_when_enabled(monkeypatch, installed_telemetry) -> None:
    from backoffice.main import create_app

    monkeypatch.setenv("TELEMETRY_ENABLED", "true")
    get_settings.cache_clear()
    try:
        app = create_app()
    finally:
        get_settings.cache_clear()
    assert installed_telemetry.instrumented == [app]
    assert get_telemetry() is installed_telemetry


def test_create_app_skips_telemetry_by_default(installed_telemetry) -> None:
    from backoffice.main import create_app

    create_app()
    assert installed_telemetry.instrumented == []
