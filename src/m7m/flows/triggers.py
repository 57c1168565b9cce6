"""Background threads that fire a flow once or on a fixed interval."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from m7m.flows.durations import MAX_DURATION_SECONDS

logger = logging.getLogger(__name__)


class TriggerHandle:
    """Control over one trigger thread."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._runs = 0
        self._thread: threading.Thread | None = None

    @property
    def runs(self) -> int:
        """Number of finished attempts, successful or not."""

        with self._lock:
            return self._runs

    def _record_run(self) -> None:
        with self._lock:
            self._runs += 1

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        """Ask the trigger to stop; an interval loop ends after its current run."""

        self._stop.set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True if stop was requested meanwhile."""

        return self._stop.wait(seconds)

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _start(self, target: Callable[[], None]) -> TriggerHandle:
        self._thread = threading.Thread(target=target, name=self.name, daemon=True)
        self._thread.start()
        return self


def _attempt(action: Callable[[], object], handle: TriggerHandle) -> None:
    try:
        action()
    except Exception:
        logger.exception("Triggered run raised", extra={"flow": handle.name})
    finally:
        handle._record_run()


def start_once(action: Callable[[], object], *, name: str) -> TriggerHandle:
    """Run ``action`` a single time on a new daemon thread."""

    handle = TriggerHandle(name)
    logger.debug("Starting once trigger", extra={"flow": name})
    return handle._start(lambda: _attempt(action, handle))


def start_interval(
    action: Callable[[], object], *, interval: float, name: str
) -> TriggerHandle:
    """Run ``action`` now and then every ``interval`` seconds until stopped.

    Failures, including unexpected exceptions, are logged and the loop goes on.
    """
    if not 0 < interval <= MAX_DURATION_SECONDS:
        raise ValueError(f"interval must be > 0 and at most {MAX_DURATION_SECONDS:.0f} seconds")

    handle = TriggerHandle(name)

    def loop() -> None:
        while not handle.stopped:
            _attempt(action, handle)
            if handle.wait(interval):
                break
        logger.info("Interval trigger stopped", extra={"flow": name, "runs": handle.runs})

    logger.debug("Starting interval trigger", extra={"flow": name, "interval": interval})
    return handle._start(loop)
