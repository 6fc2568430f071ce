"""
Platform-level observability — OpenTelemetry tracing.

Pipelines and steps open spans through `trace.get_tracer(__name__)`; those
spans only reach a backend once `setup_tracing()` has installed an SDK
TracerProvider. The CLI calls it right after `setup_logging()`.
"""

import os

import structlog
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

logger = structlog.get_logger(__name__)

_tracer: trace.Tracer | None = None


def setup_tracing(
    service_name: str | None = None,
    otlp_endpoint: str | None = None,
    console: bool = True,
) -> trace.Tracer:
    """
    Initialize OpenTelemetry tracing.

    Exporter selection:
      1. OTLP endpoint provided → OTLPSpanExporter (gRPC)
      2. `console` → ConsoleSpanExporter (local dev)
      3. Otherwise spans are recorded but not exported

    Args:
        service_name: Name of the service (appears in traces).
                      Defaults to OTEL_SERVICE_NAME or APP_NAME.
        otlp_endpoint: OTLP collector endpoint, e.g. http://localhost:4317.
        console: Print finished spans to stdout when no endpoint is set.
    """
    global _tracer

    from chainpilot.version import APP_NAME, VERSION

    if service_name is None:
        service_name = os.getenv("OTEL_SERVICE_NAME", APP_NAME.lower())

    resource = Resource.create(
        {"service.name": service_name, "service.version": VERSION}
    )
    provider = TracerProvider(resource=resource)

    if otlp_endpoint:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
            OTLPSpanExporter,
        )

        exporter = OTLPSpanExporter(endpoint=otlp_endpoint)
        provider.add_span_processor(BatchSpanProcessor(exporter))
        logger.info("otel_otlp_configured", endpoint=otlp_endpoint)
    elif console:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer(__name__)
    logger.info("otel_tracing_initialized", service=service_name)
    return _tracer


def shutdown_tracing() -> None:
    """Flush batched spans before the process exits."""
    provider = trace.get_tracer_provider()
    shutdown = getattr(provider, "shutdown", None)
    if shutdown is not None:
        shutdown()
