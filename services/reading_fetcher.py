"""Token-aware vendor reads with a single forced-refresh retry."""

from __future__ import annotations

import logging
from typing import Any, Callable, List, TypeVar

from app.schemas import Credential, Reading
from errors import ThermostatMonitorError
from models.records import FetchOutcome
from services.token_store import TokenStore
from services.vendor_client import DeviceReadingClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_FETCH_ATTEMPTS = 2


class ReadingFetcher:
    """Combines the token store and the vendor client.

    The first attempt uses the stored credential; when it fails for any
    reason the credential is re-issued and the call is made once more.
    """

    def __init__(self, tokens: TokenStore, client: DeviceReadingClient) -> None:
        self.tokens = tokens
        self.client = client

    def get_reading(self, device_id: str) -> Reading:
        outcomes = self.attempt(
            lambda credential: self.client.fetch(device_id, credential), device_id
        )
        return _unwrap(outcomes)

    def list_devices(self) -> Any:
        outcomes = self.attempt(self.client.list_devices, device_id=None)
        return _unwrap(outcomes)

    def attempt(
        self,
        call: Callable[[Credential], T],
        device_id: str | None,
    ) -> List[FetchOutcome[T]]:
        """Run ``call`` up to ``MAX_FETCH_ATTEMPTS`` times and report every attempt."""

        outcomes: List[FetchOutcome[T]] = []
        for attempt in range(1, MAX_FETCH_ATTEMPTS + 1):
            try:
                credential = self.tokens.resolve(force_refresh=attempt > 1)
            except ThermostatMonitorError as exc:
                # Only failed vendor calls earn a retry.
                outcomes.append(FetchOutcome(attempt=attempt, error=exc))
                break
            try:
                value = call(credential)
            except ThermostatMonitorError as exc:
                outcomes.append(FetchOutcome(attempt=attempt, error=exc))
                logger.warning(
                    "Vendor read failed",
                    extra={
                        "device_id": device_id,
                        "attempt": attempt,
                        "error_kind": type(exc).__name__,
                    },
                )
                continue
            outcomes.append(FetchOutcome(attempt=attempt, value=value))
            break
        return outcomes


def _unwrap(outcomes: List[FetchOutcome[T]]) -> T:
    last = outcomes[-1]
    if last.error is not None:
        raise last.error
    return last.value  # type: ignore[return-value]
