"""
One-shot process shutdown shared by signal handlers and request handlers.
"""

import logging
import signal
import sys
import threading
from typing import Callable

__all__ = ["ShutdownCoordinator", "EXIT_OK", "EXIT_DUPLICATE"]

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_DUPLICATE = 1


class ShutdownCoordinator:
    """
    Runs the registered hooks and then exits, at most once per process.

    Parameters
    ----------
    exit_func : callable
        Called with the exit status after the hooks ran. ``sys.exit`` by
        default; tests pass a recorder instead.
    """

    def __init__(self, *, exit_func: Callable[[int], None] = sys.exit):
        self._hooks: list[Callable[[], None]] = []
        self._exit_func = exit_func
        # acquired once and never released
        self._guard = threading.Lock()
        self.exit_code: int | None = None

    @property
    def shutting_down(self) -> bool:
        return self._guard.locked()

    def add_hook(self, hook: Callable[[], None]) -> None:
        self._hooks.append(hook)

    def shutdown(self, exit_code: int = EXIT_OK, reason: str = "") -> bool:
        """
        Start the shutdown sequence.

        Returns False when another trigger already started it. A failing
        hook is logged and the remaining hooks and the exit still run.
        """
        if not self._guard.acquire(blocking=False):
            logger.debug("Shutdown already in progress, ignoring %s", reason or "trigger")
            return False

        self.exit_code = exit_code
        logger.debug("Shutting down (%s), exit code %d", reason or "requested", exit_code)
        try:
            for hook in self._hooks:
                try:
                    hook()
                except Exception:
                    logger.exception("Shutdown hook %r failed", hook)
        finally:
            self._exit_func(exit_code)
        return True

    def handle_signal(self, signum, frame=None) -> None:
        self.shutdown(EXIT_OK, reason=signal.Signals(signum).name)

    def install_signal_handlers(self) -> None:
        """Route SIGINT and SIGTERM to ``shutdown``; only possible from the main thread."""
        if threading.current_thread() is not threading.main_thread():
            logger.warning("Not in main thread, signal handlers not installed")
            return
        signal.signal(signal.SIGINT, self.handle_signal)
        signal.signal(signal.SIGTERM, self.handle_signal)
