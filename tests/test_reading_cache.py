from __future__ import annotations

import threading
import time
from typing import List

import pytest

from app.schemas import Reading
from conftest import FakeMonotonic, reading_payload
from errors import RemoteError
from services.reading_cache import DEFAULT_TTL_SECONDS, ReadingCache


class CountingFetcher:
    def __init__(self, gate: threading.Event | None = None) -> None:
        self.calls: List[str] = []
        self.gate = gate
        self.error: Exception | None = None
        self._lock = threading.Lock()

    def get_reading(self, device_id: str) -> Reading:
        with self._lock:
            self.calls.append(device_id)
            count = len(self.calls)
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return Reading.model_validate(reading_payload(device_id, 20.0 + count))


def test_default_ttl_is_sixty_seconds() -> None:
    assert ReadingCache(CountingFetcher()).ttl_seconds == DEFAULT_TTL_SECONDS == 60.0  # type: ignore[arg-type]


def test_second_call_within_ttl_is_served_from_cache() -> None:
    fetcher, clock = CountingFetcher(), FakeMonotonic()
    cache = ReadingCache(fetcher, ttl_seconds=60, clock=clock)  # type: ignore[arg-type]

    first = cache.get_or_fetch("dev-1")
    clock.advance(10)
    second = cache.get_or_fetch("dev-1")

    assert first == second
    assert fetcher.calls == ["dev-1"]


def test_expired_entry_is_refetched() -> None:
    fetcher, clock = CountingFetcher(), FakeMonotonic()
    cache = ReadingCache(fetcher, ttl_seconds=60, clock=clock)  # type: ignore[arg-type]

    cache.get_or_fetch("dev-1")
    clock.advance(60)
    refreshed = cache.get_or_fetch("dev-1")

    assert refreshed.ambient_temperature_c == 22.0
    assert fetcher.calls == ["dev-1", "dev-1"]


def test_entries_are_kept_per_device() -> None:
    fetcher = CountingFetcher()
    cache = ReadingCache(fetcher, clock=FakeMonotonic())  # type: ignore[arg-type]

    cache.get_or_fetch("dev-1")
    cache.get_or_fetch("dev-2")
    cache.get_or_fetch("dev-1")

    assert fetcher.calls == ["dev-1", "dev-2"]


def test_force_refresh_bypasses_fresh_entry() -> None:
    fetcher = CountingFetcher()
    cache = ReadingCache(fetcher, clock=FakeMonotonic())  # type: ignore[arg-type]

    cache.get_or_fetch("dev-1")
    cache.get_or_fetch("dev-1", force_refresh=True)

    assert len(fetcher.calls) == 2


def test_invalidate_drops_entry() -> None:
    fetcher = CountingFetcher()
    cache = ReadingCache(fetcher, clock=FakeMonotonic())  # type: ignore[arg-type]
    cache.get_or_fetch("dev-1")

    cache.invalidate("dev-1")

    assert cache.peek("dev-1") is None
    cache.get_or_fetch("dev-1")
    assert len(fetcher.calls) == 2


def test_returned_reading_is_a_copy() -> None:
    cache = ReadingCache(CountingFetcher(), clock=FakeMonotonic())  # type: ignore[arg-type]

    first = cache.get_or_fetch("dev-1")
    first.ambient_temperature_c = 99.0

    assert cache.get_or_fetch("dev-1").ambient_temperature_c == 21.0


def test_concurrent_misses_issue_a_single_upstream_fetch() -> None:
    gate = threading.Event()
    fetcher = CountingFetcher(gate=gate)
    cache = ReadingCache(fetcher, clock=FakeMonotonic())  # type: ignore[arg-type]
    results: List[Reading] = []
    results_lock = threading.Lock()

    def worker() -> None:
        reading = cache.get_or_fetch("dev-1")
        with results_lock:
            results.append(reading)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    time.sleep(0.1)
    gate.set()
    for thread in threads:
        thread.join(timeout=5)

    assert fetcher.calls == ["dev-1"]
    assert len(results) == 8
    assert {reading.ambient_temperature_c for reading in results} == {21.0}


def test_failed_fetch_is_not_cached() -> None:
    fetcher = CountingFetcher()
    fetcher.error = RemoteError("boom", status_code=500)
    cache = ReadingCache(fetcher, clock=FakeMonotonic())  # type: ignore[arg-type]

    with pytest.raises(RemoteError):
        cache.get_or_fetch("dev-1")

    assert cache.peek("dev-1") is None
    fetcher.error = None
    assert cache.get_or_fetch("dev-1").device_id == "dev-1"


def test_concurrent_waiters_share_the_leader_failure() -> None:
    gate = threading.Event()
    fetcher = CountingFetcher(gate=gate)
    failure = RemoteError("vendor unavailable", status_code=503)
    fetcher.error = failure
    cache = ReadingCache(fetcher, clock=FakeMonotonic())  # type: ignore[arg-type]
    errors: List[BaseException] = []
    errors_lock = threading.Lock()

    def worker() -> None:
        try:
            cache.get_or_fetch("dev-1")
        except RemoteError as exc:
            with errors_lock:
                errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for thread in threads:
        thread.start()
    time.sleep(0.1)
    gate.set()
    for thread in threads:
        thread.join(timeout=5)

    assert fetcher.calls == ["dev-1"]
    assert len(errors) == 6
    assert all(error is failure for error in errors)
    assert cache.peek("dev-1") is None
