"""
HTTP server that starts a span per request and exits on a repeated trace id.

Every request gets a fresh root span; its trace id goes through the
RequestTracker. A repeat answers 500 and, unless EXIT_ON_DUPLICATE is off,
shuts the process down after the response went out. SIGINT/SIGTERM take the
same shutdown path, which logs a run summary to the console and to
TRACE_RESULTS_LOG.
"""

import logging

from flask import Flask, make_response
from opentelemetry.context import Context
from opentelemetry.trace import Status, StatusCode, TracerProvider

from reporting import configure_logging, report_summary
from request_tracker import Outcome, RequestTracker
from settings import Settings
from shutdown import EXIT_DUPLICATE, ShutdownCoordinator
from tracing import configure_tracing, install_tracer_provider

logger = logging.getLogger(__name__)

HTTP_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def create_app(
    tracker: RequestTracker,
    coordinator: ShutdownCoordinator,
    tracer_provider: TracerProvider,
    *,
    exit_on_duplicate: bool = True,
) -> Flask:
    app = Flask(__name__)
    tracer = tracer_provider.get_tracer("test-tracer")

    @app.route("/", defaults={"path": ""}, methods=HTTP_METHODS)
    @app.route("/<path:path>", methods=HTTP_METHODS)
    def incoming_request(path):
        if coordinator.shutting_down:
            return "Server shutting down", 503

        # empty parent context: incoming headers never pick the trace id
        with tracer.start_as_current_span("incoming-request", context=Context()) as span:
            span_context = span.get_span_context()
            trace_id = f"{span_context.trace_id:032x}"
            span_id = f"{span_context.span_id:016x}"
            span.set_attribute("http.target", "/" + path)

            if tracker.record_request(trace_id) is Outcome.DUPLICATE:
                logger.error("Duplicate traceId detected: %s. Exiting...", trace_id)
                span.set_attribute("trace.duplicate", True)
                span.set_status(Status(StatusCode.ERROR, "duplicate trace id"))
                response = make_response("Duplicate Trace ID Detected", 500)
                if exit_on_duplicate:
                    response.call_on_close(
                        lambda: coordinator.shutdown(EXIT_DUPLICATE, reason="duplicate trace id")
                    )
                return response

            logger.info("Incoming request traceId: %s, spanId: %s", trace_id, span_id)
            return "OK"

    return app


def main() -> None:
    settings = Settings.from_env(service_name="test-tracer", span_processor="simple")
    configure_logging(settings.log_level, settings.results_log)

    provider = configure_tracing(
        settings.service_name,
        exporter=settings.span_exporter,
        processor=settings.span_processor,
        endpoint=settings.otlp_endpoint,
    )
    install_tracer_provider(provider)

    tracker = RequestTracker()
    coordinator = ShutdownCoordinator()
    coordinator.add_hook(lambda: report_summary(tracker.summarize()))
    coordinator.add_hook(provider.shutdown)
    coordinator.install_signal_handlers()

    app = create_app(
        tracker, coordinator, provider, exit_on_duplicate=settings.exit_on_duplicate
    )
    logger.info("Server listening on port %d", settings.port)
    # one request at a time; RequestTracker is not thread-safe
    app.run(host=settings.host, port=settings.port, debug=False, threaded=False, use_reloader=False)


if __name__ == "__main__":
    main()
