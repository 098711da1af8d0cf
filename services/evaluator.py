"""Sliding-window comfort evaluation."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from app.schemas import ComfortKind, Reading
from models.records import ComfortWindowResult


class ComfortEvaluator:
    """Pure component: classifies a window of readings as hot, cold or neither.

    A window is hot only when every reading is above the comfort maximum and
    cold only when every reading is below the minimum. One in-range reading
    anywhere in the window cancels the anomaly.
    """

    def evaluate(
        self,
        device_id: str,
        window: Sequence[Reading],
        comfort_min: float,
        comfort_max: float,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> ComfortWindowResult:
        if comfort_min >= comfort_max:
            raise ValueError("comfort_min must be lower than comfort_max")

        if not window:
            return ComfortWindowResult(
                device_id=device_id,
                kind=ComfortKind.none,
                observed_temperature=None,
                window_start=window_start,
                window_end=window_end,
            )

        temperatures = [reading.ambient_temperature_c for reading in window]
        if all(value > comfort_max for value in temperatures):
            kind = ComfortKind.hot
        elif all(value < comfort_min for value in temperatures):
            kind = ComfortKind.cold
        else:
            kind = ComfortKind.none

        return ComfortWindowResult(
            device_id=device_id,
            kind=kind,
            observed_temperature=temperatures[-1],
            window_start=window_start if window_start is not None else window[0].timestamp_utc,
            window_end=window_end if window_end is not None else window[-1].timestamp_utc,
        )
