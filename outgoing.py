"""
Traced outgoing HTTP call used by the api server.
"""

import logging

import requests
from opentelemetry import trace
from opentelemetry.instrumentation.utils import suppress_http_instrumentation
from opentelemetry.propagate import inject
from opentelemetry.trace import Status, StatusCode, Tracer

__all__ = ["do_outgoing_request"]

logger = logging.getLogger(__name__)


def do_outgoing_request(
    url: str,
    *,
    method: str = "GET",
    headers: dict | None = None,
    timeout: float = 5.0,
    tracer: Tracer | None = None,
    **kwargs,
) -> requests.Response:
    """
    Perform one HTTP call inside an ``outgoing-request`` span.

    The span is a child of whatever context is active, and that context is
    injected into the request headers. Errors are recorded on the span and
    re-raised; a 4xx/5xx answer counts as an error.
    """
    tracer = tracer or trace.get_tracer("simple-api", "1.0.0")
    headers = dict(headers or {})

    with tracer.start_as_current_span(
        "outgoing-request",
        kind=trace.SpanKind.CLIENT,
        attributes={"http.url": url, "http.method": method},
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        inject(headers)
        try:
            # this span is the client span; keep RequestsInstrumentor from adding another
            with suppress_http_instrumentation():
                response = requests.request(method, url, headers=headers, timeout=timeout, **kwargs)
            span.set_attribute("http.status_code", response.status_code)
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Outgoing %s %s failed: %s", method, url, exc)
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            raise
        return response
