"""
Small API server propagating trace context to one downstream call.
"""

import logging

import requests
from flask import Flask, jsonify
from opentelemetry.instrumentation.flask import FlaskInstrumentor
from opentelemetry.instrumentation.requests import RequestsInstrumentor
from opentelemetry.trace import TracerProvider

from outgoing import do_outgoing_request
from reporting import configure_logging
from settings import Settings
from shutdown import ShutdownCoordinator
from tracing import configure_tracing, install_tracer_provider

logger = logging.getLogger("simple-api")


def create_app(
    downstream_url: str,
    tracer_provider: TracerProvider,
    *,
    timeout: float = 5.0,
) -> Flask:
    app = Flask(__name__)
    # server span per request, parent extracted from the incoming headers
    FlaskInstrumentor().instrument_app(app, tracer_provider=tracer_provider)
    tracer = tracer_provider.get_tracer("simple-api", "1.0.0")

    @app.route("/", methods=["GET"])
    def hello():
        try:
            response = do_outgoing_request(downstream_url, timeout=timeout, tracer=tracer)
            downstream = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Failed to fetch downstream data from %s: %s", downstream_url, exc)
            return jsonify({"error": "Failed to fetch downstream data"}), 500
        return jsonify({"message": "Hello, world!", "downstream": downstream})

    return app


def _shutdown_tracing(provider) -> None:
    try:
        provider.shutdown()
    except Exception:
        logger.exception("Error terminating tracing")
        return
    logger.info("Tracing terminated")


def main() -> None:
    settings = Settings.from_env(service_name="simple-api", span_processor="batch")
    configure_logging(settings.log_level)

    provider = configure_tracing(
        settings.service_name,
        exporter=settings.span_exporter,
        processor=settings.span_processor,
        endpoint=settings.otlp_endpoint,
    )
    install_tracer_provider(provider)
    RequestsInstrumentor().instrument(tracer_provider=provider)
    logger.info("[%s] Tracing initialized", settings.service_name)

    coordinator = ShutdownCoordinator()
    coordinator.add_hook(lambda: _shutdown_tracing(provider))
    coordinator.install_signal_handlers()

    app = create_app(settings.downstream_url, provider, timeout=settings.downstream_timeout)
    logger.info("Server listening on http://localhost:%d", settings.port)
    app.run(host=settings.host, port=settings.port, debug=False, use_reloader=False)


if __name__ == "__main__":
    main()
