"""
OpenTelemetry wiring shared across services.

`Telemetry` builds one resource descriptor from `TelemetryOptions` and
attaches it to the three signal pipelines (traces, metrics, logs). Each
configured sink is attached to all three: the OTLP sink exports over
HTTP/protobuf to ``<collector_url>/v1/<signal>``, the console sink writes to
stdout. `configure_telemetry` additionally activates the inbound HTTP,
outbound HTTP and runtime instrumentation for a FastAPI app; hosts
with a database can also opt in to query tracing with
`Telemetry.instrument_sqlalchemy`.
"""

import logging
import os
import socket
from typing import Optional

from fastapi import FastAPI
from opentelemetry import metrics, trace
from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.instrumentor import BaseInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.instrumentation.system_metrics import SystemMetricsInstrumentor
from opentelemetry.metrics import Meter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import (
    ConsoleMetricExporter,
    MetricExporter,
    MetricReader,
    PeriodicExportingMetricReader,
)
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
)
from opentelemetry.trace import Tracer
from pydantic import AnyHttpUrl, TypeAdapter, ValidationError
from sqlalchemy.engine import Engine

# These are beta still, so may change and break compatibility
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import (
    BatchLogRecordProcessor,
    ConsoleLogExporter,
    LogExporter,
    SimpleLogRecordProcessor,
)

from standard_dependencies.errors import InvalidTelemetryConfig, MissingConfiguration
from standard_dependencies.log_context import LogContextFilter
from standard_dependencies.logging_config import (
    configure_console_logging,
    resolve_log_level,
)
from standard_dependencies.options import Exporter, TelemetryOptions

_LOGGER = logging.getLogger(__name__)

ENVIRONMENT_VARIABLE = "ENV"
DEFAULT_ENVIRONMENT = "Production"

# Process and runtime measurements reported by every service.
RUNTIME_METRICS: dict[str, Optional[list[str]]] = {
    "process.runtime.memory": ["rss", "vms"],
    "process.runtime.cpu.time": ["user", "system"],
    "process.runtime.gc_count": None,
    "process.runtime.thread_count": None,
    "process.runtime.cpu.utilization": None,
    "process.runtime.context_switches": ["involuntary", "voluntary"],
}

_URL_ADAPTER = TypeAdapter(AnyHttpUrl)


def signal_endpoint(collector_url: str, signal: str) -> str:
    """Return the OTLP/HTTP endpoint for ``signal`` (logs, traces, metrics)."""
    return f"{collector_url.rstrip('/')}/v1/{signal}"


def validate_telemetry_options(options: TelemetryOptions) -> None:
    """Check the values the telemetry pipelines cannot start without.

    :raises InvalidTelemetryConfig: If the service name is empty or the
        collector URL does not parse as a URL.
    """
    if not options.service_name.strip():
        raise InvalidTelemetryConfig("ServiceName must not be empty")

    try:
        _URL_ADAPTER.validate_python(options.collector_url)
    except ValidationError as e:
        raise InvalidTelemetryConfig(
            f"Url is not a valid URL: {options.collector_url!r}"
        ) from e

    try:
        resolve_log_level(options.log_level)
    except ValueError as e:
        raise InvalidTelemetryConfig(str(e)) from e


class Telemetry:
    """Log, trace and metric pipelines for one service process.

    The providers are also registered globally, but OpenTelemetry only
    accepts the first registration in a process. A second instance keeps
    exporting through its own providers while the globals stay with the
    first, so host code should take tracers and meters from
    `get_tracer` and `get_meter` rather than from ``opentelemetry.trace``
    and ``opentelemetry.metrics``.

    :param options: Validated telemetry options.
    :type options: TelemetryOptions
    :param environment: Deployment environment, defaults to the ``ENV``
        environment variable, then ``Production``.
    :type environment: str | None
    :raises InvalidTelemetryConfig: If ``options`` cannot be used.
    """

    def __init__(
        self, options: TelemetryOptions, environment: Optional[str] = None
    ) -> None:
        validate_telemetry_options(options)

        self.options = options
        self.environment = environment or os.getenv(
            ENVIRONMENT_VARIABLE, DEFAULT_ENVIRONMENT
        )
        self.hostname = socket.gethostname()
        self.resource = self._build_resource()

        self.trace_endpoint: Optional[str] = None
        self.log_endpoint: Optional[str] = None
        self.metrics_endpoint: Optional[str] = None
        if Exporter.OTLP in options.exporters:
            self.trace_endpoint = signal_endpoint(options.collector_url, "traces")
            self.log_endpoint = signal_endpoint(options.collector_url, "logs")
            self.metrics_endpoint = signal_endpoint(options.collector_url, "metrics")

        self.span_exporters: list[SpanExporter] = []
        self.metric_exporters: list[MetricExporter] = []
        self.log_exporters: list[LogExporter] = []
        self.log_handlers: list[logging.Handler] = []
        self._instrumentors: list[BaseInstrumentor] = []

        self._configure_tracing()
        self._configure_metrics()
        self._configure_logging()

    @property
    def service_name(self) -> str:
        return self.options.service_name

    def _build_resource(self) -> Resource:
        """Returns the resource descriptor shared by all three pipelines."""
        return Resource.create(
            {
                "service.name": self.options.service_name,
                "service.version": self.options.service_version,
                "service.instance.id": f"{self.options.service_name}-{self.environment}-{self.hostname}",
                "deployment.environment": self.environment,
                "host.name": self.hostname,
            }
        )

    def _configure_tracing(self) -> None:
        """Configure the tracer provider with one span processor per sink."""
        provider = TracerProvider(resource=self.resource)

        if Exporter.OTLP in self.options.exporters:
            span_exporter: SpanExporter = OTLPSpanExporter(endpoint=self.trace_endpoint)
            provider.add_span_processor(BatchSpanProcessor(span_exporter))
            self.span_exporters.append(span_exporter)

        if Exporter.CONSOLE in self.options.exporters:
            console_exporter = ConsoleSpanExporter(service_name=self.service_name)
            provider.add_span_processor(SimpleSpanProcessor(console_exporter))
            self.span_exporters.append(console_exporter)

        trace.set_tracer_provider(provider)
        self.tracer_provider = provider
        self.tracer = provider.get_tracer(self.service_name)

    def _configure_metrics(self) -> None:
        """Configure the meter provider with one periodic reader per sink."""
        readers: list[MetricReader] = []

        if Exporter.OTLP in self.options.exporters:
            metric_exporter: MetricExporter = OTLPMetricExporter(
                endpoint=self.metrics_endpoint
            )
            readers.append(PeriodicExportingMetricReader(metric_exporter))
            self.metric_exporters.append(metric_exporter)

        if Exporter.CONSOLE in self.options.exporters:
            console_exporter = ConsoleMetricExporter()
            readers.append(PeriodicExportingMetricReader(console_exporter))
            self.metric_exporters.append(console_exporter)

        provider = MeterProvider(resource=self.resource, metric_readers=readers)
        metrics.set_meter_provider(provider)
        self.meter_provider = provider
        self.meter = provider.get_meter(self.service_name)

    def _configure_logging(self) -> None:
        """Configure the logger provider and hook it into python's logging.

        Records are written as JSON to stdout and, through the OTLP logging
        handler, to every configured sink. Trace and span identifiers are
        injected into each record by the logging instrumentation.
        """
        provider = LoggerProvider(resource=self.resource)

        if Exporter.OTLP in self.options.exporters:
            log_exporter: LogExporter = OTLPLogExporter(endpoint=self.log_endpoint)
            provider.add_log_record_processor(BatchLogRecordProcessor(log_exporter))
            self.log_exporters.append(log_exporter)

        if Exporter.CONSOLE in self.options.exporters:
            console_exporter = ConsoleLogExporter()
            provider.add_log_record_processor(SimpleLogRecordProcessor(console_exporter))
            self.log_exporters.append(console_exporter)

        set_logger_provider(provider)
        self.logger_provider = provider

        # Correlation ids only; the OTLP handler below is the single export path
        self._instrument(
            LoggingInstrumentor(),
            tracer_provider=self.tracer_provider,
            set_logging_format=False,
            inject_trace_context=True,
            enable_log_auto_instrumentation=False,
        )

        log_level = resolve_log_level(self.options.log_level)
        self.log_handlers.append(configure_console_logging(log_level))

        otlp_handler = LoggingHandler(level=log_level, logger_provider=provider)
        otlp_handler.addFilter(LogContextFilter())
        logging.getLogger().addHandler(otlp_handler)
        self.log_handlers.append(otlp_handler)

        self.logger = logging.getLogger(self.service_name)
        self.logger.setLevel(log_level)
        self.logger.info("🛰️ Telemetry initialised.")

    def _instrument(self, instrumentor: BaseInstrumentor, **kwargs) -> bool:
        """Activate an instrumentor unless it is already active.

        :return: True if this call activated it.
        :rtype: bool
        """
        if instrumentor.is_instrumented_by_opentelemetry:
            _LOGGER.debug(
                "🪄 %s already active; skipping.", type(instrumentor).__name__
            )
            return False
        instrumentor.instrument(**kwargs)
        self._instrumentors.append(instrumentor)
        return True

    def instrument_fastapi(self, app: FastAPI) -> None:
        """Trace and measure inbound requests handled by ``app``.

        :param app: FastAPI application to instrument.
        :type app: FastAPI
        """
        FastAPIInstrumentor.instrument_app(
            app,
            tracer_provider=self.tracer_provider,
            meter_provider=self.meter_provider,
            excluded_urls="/health",
        )
        app.state.telemetry = self

    def instrument_http_clients(self) -> None:
        """Trace and measure outbound requests made with ``httpx``."""
        self._instrument(
            HTTPXClientInstrumentor(),
            tracer_provider=self.tracer_provider,
            meter_provider=self.meter_provider,
        )

    def instrument_runtime(self) -> None:
        """Report the fixed set of process/runtime measurements."""
        self._instrument(
            SystemMetricsInstrumentor(config=RUNTIME_METRICS),
            meter_provider=self.meter_provider,
        )

    def instrument_sqlalchemy(self, engine: Engine) -> None:
        """Trace the queries run through a SQLAlchemy ``engine``.

        Opt-in: only hosts with a database call it.

        :param engine: Engine to instrument.
        :type engine: sqlalchemy.engine.Engine
        """
        activated = self._instrument(
            SQLAlchemyInstrumentor(),
            engine=engine,
            tracer_provider=self.tracer_provider,
            meter_provider=self.meter_provider,
        )
        if activated:
            _LOGGER.info("🔌 SQLAlchemy query instrumentation enabled")
        else:
            _LOGGER.info("🔌 SQLAlchemy queries already instrumented")

    def get_tracer(self) -> Tracer:
        """Return the tracer scoped to the service name."""
        return self.tracer

    def get_meter(self) -> Meter:
        """Return the meter scoped to the service name."""
        return self.meter

    def get_logger(self) -> logging.Logger:
        """Return the service logger."""
        return self.logger

    def shutdown(self) -> None:
        """Flush and shut down the pipelines, undoing the process-wide hooks.

        :return: The function does not return anything.
        :rtype: None
        """
        for instrumentor in reversed(self._instrumentors):
            try:
                instrumentor.uninstrument()
            except Exception as exc:
                _LOGGER.debug(
                    "Failed to uninstrument %s: %s", type(instrumentor).__name__, exc
                )
        self._instrumentors.clear()

        root_logger = logging.getLogger()
        for handler in self.log_handlers:
            root_logger.removeHandler(handler)
        self.log_handlers.clear()

        for name, provider in (
            ("logger", self.logger_provider),
            ("meter", self.meter_provider),
            ("tracer", self.tracer_provider),
        ):
            try:
                provider.shutdown()
            except Exception as exc:
                _LOGGER.debug("Failed to shutdown %s provider: %s", name, exc)


def configure_telemetry(
    app: FastAPI,
    options: Optional[TelemetryOptions],
    environment: Optional[str] = None,
) -> Telemetry:
    """Wire logs, traces and metrics for ``app``.

    Builds the pipelines, then activates the inbound HTTP, outbound HTTP
    and runtime instrumentation. Intended to run once, at startup.

    Global provider registration is first-wins: calling this again in the
    same process returns a `Telemetry` with its own working pipelines, but
    ``opentelemetry.trace.get_tracer_provider()`` still returns the first
    one. Use the returned object's `get_tracer` and `get_meter`.

    :param app: Host FastAPI application.
    :type app: FastAPI
    :param options: Telemetry options bound from configuration.
    :type options: TelemetryOptions
    :param environment: Deployment environment override.
    :type environment: str | None
    :raises MissingConfiguration: If ``options`` is None.
    :raises InvalidTelemetryConfig: If ``options`` cannot be used.
    :return: The configured telemetry, also stored on ``app.state.telemetry``.
    :rtype: Telemetry
    """
    if options is None:
        raise MissingConfiguration(TelemetryOptions.section_name)

    telemetry = Telemetry(options, environment=environment)
    telemetry.instrument_fastapi(app)
    telemetry.instrument_http_clients()
    telemetry.instrument_runtime()
    _LOGGER.info(
        "🛰️ Telemetry configured for %s with sinks %s.",
        options.service_name,
        sorted(exporter.value for exporter in options.exporters),
    )
    return telemetry
