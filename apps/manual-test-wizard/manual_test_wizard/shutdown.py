"""One-shot delayed shutdown once the walkthrough is complete."""

from __future__ import annotations

import threading
import time
from enum import Enum
from typing import Callable

import structlog

LOGGER = structlog.get_logger("manual_test_wizard")

DEFAULT_GRACE_DELAY = 5.0


class ShutdownState(str, Enum):
    RUNNING = "running"
    SHUTDOWN_REQUESTED = "shutdown_requested"
    STOPPING = "stopping"
    STOPPED = "stopped"


class ShutdownCoordinator:
    """Runs ``stop`` exactly once, ``grace_delay`` seconds after the first request.

    The delay lets the completion page reach the operator's browser before the
    serving loop is drained.
    """

    def __init__(
        self,
        stop: Callable[[], None],
        grace_delay: float = DEFAULT_GRACE_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._stop = stop
        self._grace_delay = grace_delay
        self._sleep = sleep
        self._state = ShutdownState.RUNNING
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def state(self) -> ShutdownState:
        with self._lock:
            return self._state

    def request_shutdown(self) -> bool:
        """Start the delayed shutdown; only the first caller wins and gets ``True``."""

        with self._lock:
            if self._state is not ShutdownState.RUNNING:
                return False
            self._state = ShutdownState.SHUTDOWN_REQUESTED
            self._thread = threading.Thread(target=self._run, name="wizard-shutdown", daemon=True)
            self._thread.start()
        LOGGER.info("shutdown_requested", grace_delay_s=self._grace_delay)
        return True

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the stop callback has finished."""

        return self._stopped.wait(timeout=timeout)

    def _set_state(self, state: ShutdownState) -> None:
        with self._lock:
            self._state = state

    def _run(self) -> None:
        if self._grace_delay > 0:
            self._sleep(self._grace_delay)
        self._set_state(ShutdownState.STOPPING)
        LOGGER.info("server_shutting_down")
        try:
            self._stop()
        except Exception:
            LOGGER.exception("server_shutdown_failed")
        finally:
            self._set_state(ShutdownState.STOPPED)
            self._stopped.set()
