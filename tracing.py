"""
OpenTelemetry plumbing shared by the traceid server and the api server.
"""

import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.propagate import set_global_textmap
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
)
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from otlp_json_console_exporter import OTLPJsonConsoleExporter

__all__ = ["build_exporter", "configure_tracing", "install_tracer_provider"]

logger = logging.getLogger(__name__)


def build_exporter(kind: str = "console", endpoint: str = "collector-endpoint:4317") -> SpanExporter:
    if kind == "console":
        return ConsoleSpanExporter()
    if kind == "json":
        return OTLPJsonConsoleExporter()
    if kind == "otlp":
        return OTLPSpanExporter(endpoint=endpoint, insecure=True)
    raise ValueError(f"unknown span exporter {kind!r}")


def configure_tracing(
    service_name: str,
    *,
    exporter: SpanExporter | str = "console",
    processor: str = "simple",
    endpoint: str = "collector-endpoint:4317",
) -> TracerProvider:
    """
    Build a provider exporting through ``exporter`` and make W3C trace
    context the global propagation format.

    The provider is not registered globally; see ``install_tracer_provider``.
    """
    if isinstance(exporter, str):
        exporter = build_exporter(exporter, endpoint)

    if processor == "simple":
        span_processor = SimpleSpanProcessor(exporter)
    elif processor == "batch":
        span_processor = BatchSpanProcessor(exporter)
    else:
        raise ValueError(f"unknown span processor {processor!r}")

    resource = Resource(attributes={"service.name": service_name})
    # shutdown is run by ShutdownCoordinator, not by an atexit hook
    provider = TracerProvider(resource=resource, shutdown_on_exit=False)
    provider.add_span_processor(span_processor)

    set_global_textmap(TraceContextTextMapPropagator())
    logger.debug(
        "Tracing for %s: %s via %s processor",
        service_name, type(exporter).__name__, processor,
    )
    return provider


def install_tracer_provider(provider: TracerProvider) -> None:
    # the global provider can be set only once per process
    trace.set_tracer_provider(provider)
