"""OpenTelemetry tracing for engine runs."""

from __future__ import annotations

import os

import structlog
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased

from . import __version__
from .config import TracingSettings

logger = structlog.get_logger(__name__)

TRACER_NAME = "health_insights"


def setup_tracing(settings: TracingSettings) -> bool:
    """Install an OTLP/HTTP tracer provider when tracing is enabled.

    Returns:
        True if a provider was installed, False otherwise.
    """
    if not settings.enabled:
        logger.info("tracing_disabled")
        return False

    exporter_name = os.getenv("OTEL_TRACES_EXPORTER", "otlp").lower()
    if exporter_name in {"none", ""}:
        logger.info("tracing_exporter_disabled")
        return False

    resource = Resource.create(
        {"service.name": settings.service_name, "service.version": __version__}
    )
    provider = TracerProvider(
        resource=resource,
        sampler=ParentBased(TraceIdRatioBased(settings.sample_ratio)),
    )
    exporter = (
        OTLPSpanExporter(endpoint=settings.endpoint) if settings.endpoint else OTLPSpanExporter()
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    logger.info(
        "tracing_configured",
        exporter=exporter_name,
        service_name=settings.service_name,
        sample_ratio=settings.sample_ratio,
    )
    return True


def get_tracer() -> trace.Tracer:
    """Tracer used for engine spans; a no-op until a provider is installed."""
    return trace.get_tracer(TRACER_NAME, __version__)
