"""Tracing with OpenTelemetry and pluggable exporters.

Each pipeline run is wrapped in a ``contract.request`` span carrying the
operation id and the final status. Exporters:
- **console**: spans are written through Loguru (development)
- **otlp**: any OTLP collector (Jaeger, Tempo, cloud agents)
- **none**: tracing configured but nothing exported

Without ``setup_tracing`` the OpenTelemetry API stays a no-op, so the
pipeline can always open spans.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Final

from loguru import logger
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SpanExporter,
    SpanExportResult,
)
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from contractum.core.context import CorrelationContext

if TYPE_CHECKING:
    from collections.abc import Generator, Sequence

    from fastapi import FastAPI

    from contractum.core.config import Settings

SERVICE_NAME_KEY: Final[str] = "service.name"
SERVICE_VERSION_KEY: Final[str] = "service.version"
ENVIRONMENT_KEY: Final[str] = "deployment.environment"
TRACER_NAME: Final[str] = "contractum"


class LoguruSpanExporter(SpanExporter):
    """Span exporter that writes finished spans through Loguru."""

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        """Log each finished span at DEBUG level."""
        for span in spans:
            span_context = span.get_span_context()
            if not span_context:
                continue

            duration_ms = None
            if span.end_time and span.start_time:
                duration_ms = (span.end_time - span.start_time) // 1_000_000

            logger.bind(
                trace_id=f"0x{span_context.trace_id:032x}",
                span_id=f"0x{span_context.span_id:016x}",
                span_name=span.name,
                duration_ms=duration_ms,
                attributes=dict(span.attributes or {}),
                status=span.status.status_code.name,
            ).debug("Trace span completed: {}", span.name)

        return SpanExportResult.SUCCESS


def get_span_exporter(settings: Settings) -> SpanExporter | None:
    """Get the span exporter selected by configuration.

    Args:
        settings: Application settings.

    Returns:
        SpanExporter | None: Configured exporter or None if disabled.
    """
    exporter_type = settings.observability_config.exporter_type

    if exporter_type == "console":
        return LoguruSpanExporter()

    if exporter_type == "otlp":
        endpoint = (
            settings.observability_config.exporter_endpoint or "http://localhost:4317"
        )
        logger.info("Using OTLP exporter at {}", endpoint)
        return OTLPSpanExporter(
            endpoint=endpoint,
            insecure=settings.environment == "development",
        )

    logger.info("Trace export disabled")
    return None


def setup_tracing(settings: Settings) -> None:
    """Install a global tracer provider when tracing is enabled.

    Args:
        settings: Application settings.
    """
    if not settings.observability_config.enable_tracing:
        logger.debug("Tracing disabled by configuration")
        return

    resource = Resource.create(
        {
            SERVICE_NAME_KEY: settings.app_name,
            SERVICE_VERSION_KEY: settings.app_version,
            ENVIRONMENT_KEY: settings.environment,
        }
    )
    tracer_provider = TracerProvider(
        resource=resource,
        sampler=TraceIdRatioBased(settings.observability_config.trace_sample_rate),
    )

    exporter = get_span_exporter(settings)
    if exporter:
        tracer_provider.add_span_processor(BatchSpanProcessor(exporter))

    trace.set_tracer_provider(tracer_provider)
    logger.info(
        "Tracing configured",
        exporter_type=settings.observability_config.exporter_type,
        sample_rate=settings.observability_config.trace_sample_rate,
    )


def instrument_app(app: FastAPI, settings: Settings) -> None:
    """Instrument the host application for tracing.

    Paths excluded from request logging are excluded from tracing too.

    Args:
        app: FastAPI application to instrument.
        settings: Application settings.
    """
    if not settings.observability_config.enable_tracing:
        return

    excluded = ",".join(settings.log_config.excluded_paths)
    FastAPIInstrumentor.instrument_app(app, excluded_urls=excluded)
    logger.info("Application instrumented for tracing (excluding {})", excluded)


@contextmanager
def trace_operation(
    name: str, **attributes: str | int | float | bool
) -> Generator[trace.Span]:
    """Context manager for tracing one unit of work.

    Args:
        name: Operation name for the span.
        **attributes: Initial attributes for the span.

    Yields:
        Generator[trace.Span]: The created span for the operation.
    """
    tracer = trace.get_tracer(TRACER_NAME)
    with tracer.start_as_current_span(name) as span:
        for key, value in attributes.items():
            span.set_attribute(key, value)

        if correlation_id := CorrelationContext.get_correlation_id():
            span.set_attribute("correlation_id", correlation_id)

        yield span
