"""Cancellable fixed-period background loop."""

from __future__ import annotations

import threading
from typing import Callable, Optional

from .logging import get_logger

LOGGER = get_logger(__name__)


class PeriodicTask:
    """Runs ``func`` every ``interval`` seconds on a daemon thread until stopped.

    The first run happens after one full interval. A failing run is logged and
    the loop carries on with the next period.
    """

    def __init__(self, name: str, interval: float, func: Callable[[], None]) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.name = name
        self.interval = interval
        self._func = func
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
            self._thread.start()
        LOGGER.debug("Periodic task %s started (interval=%ss)", self.name, self.interval)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        with self._lock:
            thread = self._thread
            self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        LOGGER.debug("Periodic task %s stopped", self.name)

    def _loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self._func()
            except Exception:
                LOGGER.exception("Periodic task %s failed", self.name)
