"""OpenTelemetry tracing setup.

When no endpoint is configured, tracing is a no-op so the engine can run
inside a host that does not export spans.
"""

from __future__ import annotations

import logging
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import NoOpTracerProvider

logger = logging.getLogger(__name__)

_tracer_provider: TracerProvider | NoOpTracerProvider | None = None


def init_tracing(
    *,
    service_name: str = "trust-signals",
    env: str = "dev",
    endpoint: str | None = None,
) -> TracerProvider | NoOpTracerProvider:
    """Initialize tracing with an OTLP gRPC exporter, or a no-op provider."""
    global _tracer_provider  # noqa: PLW0603

    if not endpoint:
        provider = NoOpTracerProvider()
        trace.set_tracer_provider(provider)
        _tracer_provider = provider
        logger.info("Tracing disabled (no endpoint configured)")
        return provider

    try:
        package_version = pkg_version("trust-signal-engine")
    except PackageNotFoundError:
        package_version = "0.0.0"

    resource = Resource.create(
        {
            "service.name": service_name,
            "deployment.environment": env,
            "service.version": package_version,
        }
    )
    provider = TracerProvider(resource=resource)

    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True)))
    logger.info("Tracing enabled → %s (env=%s)", endpoint, env)

    trace.set_tracer_provider(provider)
    _tracer_provider = provider
    return provider


def get_tracer(name: str) -> trace.Tracer:
    return trace.get_tracer(name)


def shutdown_tracing() -> None:
    """Flush and shut down the tracer provider. Safe to call more than once."""
    global _tracer_provider  # noqa: PLW0603

    if isinstance(_tracer_provider, TracerProvider):
        _tracer_provider.shutdown()
    _tracer_provider = None


__all__ = ["get_tracer", "init_tracing", "shutdown_tracing"]
