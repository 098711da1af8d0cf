"""Process-local domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Generic, Optional, TypeVar

from app.schemas import ComfortKind, Reading
from errors import ThermostatMonitorError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class ComfortWindowResult:
    """Verdict for one device over one evaluation window. Never persisted."""

    device_id: str
    kind: ComfortKind
    observed_temperature: Optional[float]
    window_start: Optional[datetime]
    window_end: Optional[datetime]

    @property
    def is_anomaly(self) -> bool:
        return self.kind is not ComfortKind.none


@dataclass(slots=True)
class CacheEntry:
    """Most recent reading held by the cache for a single device."""

    reading: Reading
    fetched_at: float


@dataclass(frozen=True, slots=True)
class FetchOutcome(Generic[T]):
    """Result of a single fetch attempt: either a value or the error it hit."""

    attempt: int
    value: Optional[T] = None
    error: Optional[ThermostatMonitorError] = None

    @property
    def ok(self) -> bool:
        return self.error is None
