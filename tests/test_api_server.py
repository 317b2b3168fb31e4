"""Tests for the simple-api Flask app."""

import threading
from unittest.mock import MagicMock, patch

import pytest
import requests
from flask import Flask, jsonify, request
from opentelemetry.instrumentation.requests import RequestsInstrumentor
from opentelemetry.trace import SpanKind
from werkzeug.serving import make_server

from api_server import _shutdown_tracing, create_app

DOWNSTREAM = "http://downstream.test/api/timezone/Etc/UTC"
TRACEPARENT = "00-0af7651916cd43dd8448eb211c80319c-b7ad6b7169203331-01"


def _downstream(payload=None, status_code=200, json_error=None):
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def client(tracer_provider):
    return create_app(DOWNSTREAM, tracer_provider, timeout=2).test_client()


class TestHello:
    def test_returns_downstream_payload(self, client):
        payload = {"timezone": "Etc/UTC", "unixtime": 1700000000}
        with patch("outgoing.requests.request", return_value=_downstream(payload)) as mock_request:
            response = client.get("/")

        assert response.status_code == 200
        assert response.get_json() == {"message": "Hello, world!", "downstream": payload}
        assert mock_request.call_args.args == ("GET", DOWNSTREAM)
        assert mock_request.call_args.kwargs["timeout"] == 2

    def test_trace_context_flows_downstream(self, client, span_exporter):
        with patch("outgoing.requests.request", return_value=_downstream({})) as mock_request:
            client.get("/", headers={"traceparent": TRACEPARENT})

        spans = span_exporter.get_finished_spans()
        server = next(s for s in spans if s.kind is SpanKind.SERVER)
        outgoing = next(s for s in spans if s.name == "outgoing-request")

        assert server.context.trace_id == 0x0AF7651916CD43DD8448EB211C80319C
        assert server.parent.span_id == 0xB7AD6B7169203331
        assert server.parent.is_remote
        assert outgoing.parent.span_id == server.context.span_id
        assert server.attributes["http.status_code"] == 200

        sent = mock_request.call_args.kwargs["headers"]["traceparent"]
        assert sent.split("-")[1] == "0af7651916cd43dd8448eb211c80319c"
        assert sent.split("-")[2] == f"{outgoing.context.span_id:016x}"

    def test_new_trace_without_incoming_context(self, client, span_exporter):
        with patch("outgoing.requests.request", return_value=_downstream({})):
            client.get("/")
        server = next(s for s in span_exporter.get_finished_spans() if s.kind is SpanKind.SERVER)
        assert server.parent is None

    @pytest.mark.parametrize(
        "mock_kwargs",
        [
            {"side_effect": requests.ConnectionError("refused")},
            {"side_effect": requests.Timeout("slow")},
            {"return_value": _downstream(status_code=503)},
            {"return_value": _downstream(json_error=ValueError("not json"))},
        ],
    )
    def test_downstream_failure(self, client, span_exporter, mock_kwargs):
        with patch("outgoing.requests.request", **mock_kwargs):
            response = client.get("/")

        assert response.status_code == 500
        assert response.get_json() == {"error": "Failed to fetch downstream data"}
        server = next(s for s in span_exporter.get_finished_spans() if s.kind is SpanKind.SERVER)
        assert server.attributes["http.status_code"] == 500


class TestShutdownTracing:
    def test_logs_terminated(self, caplog):
        provider = MagicMock()
        with caplog.at_level("INFO", logger="simple-api"):
            _shutdown_tracing(provider)
        provider.shutdown.assert_called_once()
        assert "Tracing terminated" in caplog.text

    def test_logs_error(self, caplog):
        provider = MagicMock()
        provider.shutdown.side_effect = RuntimeError("exporter stuck")
        _shutdown_tracing(provider)
        assert "Error terminating tracing" in caplog.text


@pytest.fixture
def downstream_server():
    """Real local HTTP downstream recording the headers of each call."""
    received = []
    downstream = Flask("downstream")

    @downstream.route("/time")
    def time_of_day():
        received.append(dict(request.headers))
        return jsonify({"timezone": "Etc/UTC"})

    server = make_server("127.0.0.1", 0, downstream)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_port}/time", received
    server.shutdown()
    thread.join()


@pytest.fixture
def instrumented_requests(tracer_provider):
    instrumentor = RequestsInstrumentor()
    instrumentor.instrument(tracer_provider=tracer_provider)
    yield
    instrumentor.uninstrument()


class TestInstrumentedDownstream:
    def test_single_client_span_is_downstream_parent(
        self, tracer_provider, span_exporter, downstream_server, instrumented_requests
    ):
        url, received = downstream_server
        client = create_app(url, tracer_provider, timeout=2).test_client()

        response = client.get("/", headers={"traceparent": TRACEPARENT})

        assert response.status_code == 200
        assert response.get_json()["downstream"] == {"timezone": "Etc/UTC"}

        clients = [s for s in span_exporter.get_finished_spans() if s.kind is SpanKind.CLIENT]
        assert [s.name for s in clients] == ["outgoing-request"]
        (outgoing,) = clients

        (headers,) = received
        version, trace_id, span_id, _flags = headers["Traceparent"].split("-")
        assert version == "00"
        assert trace_id == "0af7651916cd43dd8448eb211c80319c"
        assert span_id == f"{outgoing.context.span_id:016x}"
