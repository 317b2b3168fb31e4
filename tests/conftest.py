"""Shared fixtures: an in-memory tracer provider and a non-exiting shutdown coordinator."""

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from shutdown import ShutdownCoordinator


class ExitRecorder:
    """Stands in for sys.exit and remembers the codes it was called with."""

    def __init__(self):
        self.codes = []

    def __call__(self, code):
        self.codes.append(code)


@pytest.fixture
def span_exporter():
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(span_exporter):
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    yield provider
    provider.shutdown()


@pytest.fixture
def exit_recorder():
    return ExitRecorder()


@pytest.fixture
def coordinator(exit_recorder):
    return ShutdownCoordinator(exit_func=exit_recorder)
