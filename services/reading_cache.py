"""Short-lived read-through cache in front of the vendor API."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future
from threading import Lock
from typing import Callable, Dict, Optional

from app.schemas import Reading
from models.records import CacheEntry
from services.reading_fetcher import ReadingFetcher

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60.0


class ReadingCache:
    """Keeps the latest reading per device and collapses concurrent misses.

    Only one upstream fetch per device is ever in flight. Callers that miss
    while a fetch is running wait for that fetch and share its reading or
    its error.
    """

    def __init__(
        self,
        fetcher: ReadingFetcher,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.fetcher = fetcher
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._inflight: Dict[str, Future[Reading]] = {}
        self._lock = Lock()

    def get_or_fetch(self, device_id: str, force_refresh: bool = False) -> Reading:
        with self._lock:
            if not force_refresh:
                entry = self._entries.get(device_id)
                if entry is not None and self._clock() - entry.fetched_at < self.ttl_seconds:
                    return entry.reading.model_copy(deep=True)

            flight = self._inflight.get(device_id)
            leader = flight is None
            if flight is None:
                flight = Future()
                self._inflight[device_id] = flight

        if not leader:
            logger.debug("Joining in-flight fetch", extra={"device_id": device_id})
            return flight.result().model_copy(deep=True)

        try:
            reading = self.fetcher.get_reading(device_id)
        except BaseException as exc:
            with self._lock:
                self._inflight.pop(device_id, None)
            flight.set_exception(exc)
            raise

        with self._lock:
            self._entries[device_id] = CacheEntry(reading=reading, fetched_at=self._clock())
            self._inflight.pop(device_id, None)
        flight.set_result(reading)
        return reading.model_copy(deep=True)

    def peek(self, device_id: str) -> Optional[CacheEntry]:
        with self._lock:
            return self._entries.get(device_id)

    def invalidate(self, device_id: Optional[str] = None) -> None:
        with self._lock:
            if device_id is None:
                self._entries.clear()
            else:
                self._entries.pop(device_id, None)
