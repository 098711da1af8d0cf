"""In-process timer for the polling and evaluation jobs."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicJob:
    """Runs ``func`` every ``interval_seconds`` on a daemon thread.

    Runs never overlap: the next run is scheduled only after the previous one
    returns. Exceptions are logged and the loop keeps going.
    """

    def __init__(self, name: str, func: Callable[[], object], interval_seconds: float) -> None:
        self.name = name
        self.func = func
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.run_count = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=f"job-{self.name}", daemon=True)
        self._thread.start()
        logger.info("Started periodic job (every %ss)", self.interval_seconds, extra={"job": self.name})

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def run_once(self) -> None:
        try:
            self.func()
        except Exception:
            logger.exception("Periodic job run failed", extra={"job": self.name})
        finally:
            self.run_count += 1

    def _run(self) -> None:
        while not self._stop.is_set():
            self.run_once()
            self._stop.wait(self.interval_seconds)
