"""
Logging setup and the end-of-run summary report.
"""

import logging

from request_tracker import Summary

__all__ = ["configure_logging", "report_summary", "SUMMARY_HEADER", "SUMMARY_FOOTER"]

logger = logging.getLogger("trace-results")

SUMMARY_HEADER = "--- Summary of Run ---"
SUMMARY_FOOTER = "----------------------"


def configure_logging(level: str = "INFO", results_log: str | None = None) -> logging.FileHandler | None:
    """
    Log to the console and, when ``results_log`` is given, append to that file too.

    An unopenable results file is reported and console logging continues.
    Returns the file handler, if one was attached.
    """
    logging.basicConfig(level=level)
    # basicConfig leaves an already configured root logger alone
    logging.getLogger().setLevel(level)
    logging.getLogger("opentelemetry").setLevel(level)

    if not results_log:
        return None
    try:
        handler = logging.FileHandler(results_log, mode="a", encoding="utf-8")
    except OSError as exc:
        logging.getLogger(__name__).warning("Cannot open results log %s: %s", results_log, exc)
        return None
    handler.setFormatter(logging.Formatter("%(asctime)s %(message)s"))
    logging.getLogger().addHandler(handler)
    return handler


def report_summary(summary: Summary, log: logging.Logger = logger) -> None:
    log.info(SUMMARY_HEADER)
    log.info("Total requests processed: %d", summary.total_requests)
    log.info("Duplicate trace IDs encountered: %s", "Yes" if summary.duplicate_found else "No")
    log.info(SUMMARY_FOOTER)
