"""
Environment-driven settings for both demo servers.
"""

import os

__all__ = ["Settings", "EXPORTERS", "PROCESSORS"]

EXPORTERS = ("console", "json", "otlp")
PROCESSORS = ("simple", "batch")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _env_number(name: str, default, kind):
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return kind(raw)
    except ValueError:
        raise ValueError(f"{name} must be a {kind.__name__}, got {raw!r}") from None


def _env_choice(name: str, default: str, choices) -> str:
    value = os.getenv(name, default).strip().lower()
    if value not in choices:
        raise ValueError(f"{name} must be one of {', '.join(choices)}, got {value!r}")
    return value


class Settings:
    """Runtime settings; build with ``Settings.from_env``."""

    def __init__(
        self,
        *,
        service_name: str,
        host: str = "0.0.0.0",
        port: int = 3000,
        span_exporter: str = "console",
        span_processor: str = "simple",
        otlp_endpoint: str = "collector-endpoint:4317",
        results_log: str = "trace-results.log",
        exit_on_duplicate: bool = True,
        downstream_url: str = "http://worldtimeapi.org/api/timezone/Etc/UTC",
        downstream_timeout: float = 5.0,
        log_level: str = "INFO",
    ):
        self.service_name = service_name
        self.host = host
        self.port = port
        self.span_exporter = span_exporter
        self.span_processor = span_processor
        self.otlp_endpoint = otlp_endpoint
        self.results_log = results_log
        self.exit_on_duplicate = exit_on_duplicate
        self.downstream_url = downstream_url
        self.downstream_timeout = downstream_timeout
        self.log_level = log_level

    @classmethod
    def from_env(cls, *, service_name: str, span_processor: str = "simple") -> "Settings":
        """
        Read settings from the environment.

        ``service_name`` and ``span_processor`` are the per-server defaults,
        overridable with ``SERVICE_NAME`` and ``SPAN_PROCESSOR``.
        """
        return cls(
            service_name=os.getenv("SERVICE_NAME", service_name),
            host=os.getenv("HOST", "0.0.0.0"),
            port=_env_number("PORT", 3000, int),
            span_exporter=_env_choice("SPAN_EXPORTER", "console", EXPORTERS),
            span_processor=_env_choice("SPAN_PROCESSOR", span_processor, PROCESSORS),
            otlp_endpoint=os.getenv("OTLP_COLLECTOR_ENDPOINT", "collector-endpoint:4317"),
            results_log=os.getenv("TRACE_RESULTS_LOG", "trace-results.log"),
            exit_on_duplicate=_env_bool("EXIT_ON_DUPLICATE", True),
            downstream_url=os.getenv(
                "DOWNSTREAM_URL", "http://worldtimeapi.org/api/timezone/Etc/UTC"
            ),
            downstream_timeout=_env_number("DOWNSTREAM_TIMEOUT", 5.0, float),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def __repr__(self):
        return f"Settings({', '.join(f'{k}={v!r}' for k, v in vars(self).items())})"
