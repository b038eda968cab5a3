from typing import Callable, Optional

import pytest
from opentelemetry.sdk._logs.export import LogExporter, LogExportResult
from opentelemetry.sdk.metrics.export import MetricExporter, MetricExportResult
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult

from standard_dependencies import (
    DocumentationOptions,
    Exporter,
    Telemetry,
    TelemetryOptions,
)


class RecordingSpanExporter(SpanExporter):
    """Stands in for the OTLP span exporter, keeping what would be sent."""

    def __init__(self, endpoint: Optional[str] = None, **kwargs):
        self.endpoint = endpoint
        self.spans = []

    def export(self, spans):
        self.spans.extend(spans)
        return SpanExportResult.SUCCESS

    def shutdown(self):
        pass


class RecordingMetricExporter(MetricExporter):
    def __init__(self, endpoint: Optional[str] = None, **kwargs):
        super().__init__()
        self.endpoint = endpoint
        self.batches = []

    def export(self, metrics_data, timeout_millis: float = 10_000, **kwargs):
        self.batches.append(metrics_data)
        return MetricExportResult.SUCCESS

    def force_flush(self, timeout_millis: float = 10_000) -> bool:
        return True

    def shutdown(self, timeout_millis: float = 30_000, **kwargs) -> None:
        pass


class RecordingLogExporter(LogExporter):
    def __init__(self, endpoint: Optional[str] = None, **kwargs):
        self.endpoint = endpoint
        self.records = []

    def export(self, batch):
        self.records.extend(batch)
        return LogExportResult.SUCCESS

    def force_flush(self, timeout_millis: int = 30_000) -> bool:
        return True

    def shutdown(self):
        pass


@pytest.fixture(autouse=True)
def recording_exporters(monkeypatch):
    """Swap the OTLP exporters for recording fakes so nothing hits the network."""
    monkeypatch.setattr(
        "standard_dependencies.telemetry.OTLPSpanExporter", RecordingSpanExporter
    )
    monkeypatch.setattr(
        "standard_dependencies.telemetry.OTLPMetricExporter", RecordingMetricExporter
    )
    monkeypatch.setattr(
        "standard_dependencies.telemetry.OTLPLogExporter", RecordingLogExporter
    )


@pytest.fixture
def telemetry_options() -> TelemetryOptions:
    return TelemetryOptions(
        service_name="orders-api",
        service_version="1.2.3",
        collector_url="http://collector:4317",
        exporters=frozenset({Exporter.OTLP}),
    )


@pytest.fixture
def documentation_options() -> DocumentationOptions:
    return DocumentationOptions(
        version="v1",
        title="Orders API",
        description="Places and tracks orders",
        contact_name="Orders Team",
        contact_url="https://example.com/orders-team",
    )


# Based on
# @see: https://docs.pytest.org/en/stable/how-to/fixtures.html#factories-as-fixtures
@pytest.fixture
def make_telemetry() -> Callable[..., Telemetry]:
    created: list[Telemetry] = []

    def _make_telemetry(options: TelemetryOptions, **kwargs) -> Telemetry:
        telemetry = Telemetry(options, **kwargs)
        created.append(telemetry)
        return telemetry

    yield _make_telemetry

    for telemetry in created:
        telemetry.shutdown()


@pytest.fixture
def shutdown_app_telemetry():
    """Shut down telemetry configured onto apps during a test."""
    apps = []
    yield apps.append
    for app in apps:
        telemetry = getattr(app.state, "telemetry", None)
        if telemetry is not None:
            telemetry.shutdown()
