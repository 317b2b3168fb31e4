"""
Duplicate trace-id detection for incoming requests.

    from request_tracker import RequestTracker, Outcome

    tracker = RequestTracker()
    if tracker.record_request(trace_id) is Outcome.DUPLICATE:
        ...  # caller decides how to shut down
"""

import enum
from typing import NamedTuple

__all__ = ["Outcome", "Summary", "RequestTracker"]


class Outcome(enum.Enum):
    UNIQUE = "UNIQUE"
    DUPLICATE = "DUPLICATE"


class Summary(NamedTuple):
    total_requests: int
    duplicate_found: bool


class RequestTracker:
    """
    Registry of trace ids seen by this process.

    Not thread-safe: it assumes one request is handled at a time (the
    traceid server runs Flask with ``threaded=False``). Serving from several
    workers requires turning the membership check and insert in
    ``record_request`` into one atomic step.
    """

    def __init__(self):
        self._seen: set[str] = set()
        self._total_requests = 0
        self._duplicate_found = False

    def record_request(self, trace_id: str) -> Outcome:
        """
        Count one request and classify its trace id.

        Raises ``ValueError`` for an empty id; nothing is recorded then.
        A duplicate is reported through the return value, never raised.
        """
        if not trace_id:
            raise ValueError("trace_id must be a non-empty string")

        self._total_requests += 1
        if trace_id in self._seen:
            self._duplicate_found = True
            return Outcome.DUPLICATE

        self._seen.add(trace_id)
        return Outcome.UNIQUE

    def summarize(self) -> Summary:
        return Summary(self._total_requests, self._duplicate_found)
