"""Suppression of repeat alerts inside the reporting window."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, List

from app.schemas import AlertRecord, ComfortKind
from datastore.repositories import AlertStore
from timeutil import now_utc

logger = logging.getLogger(__name__)


class NotificationDeduplicator:
    """Decides whether an alert is new by looking at recently recorded alerts.

    Alerts of different kinds never suppress each other.
    """

    def __init__(self, alerts: AlertStore, clock: Callable[[], datetime] = now_utc) -> None:
        self.alerts = alerts
        self._clock = clock

    def recent_alerts(self, device_id: str, reporting_window_minutes: int) -> List[AlertRecord]:
        since = self._clock() - timedelta(minutes=reporting_window_minutes)
        return self.alerts.since(device_id, since)

    def should_alert(
        self,
        device_id: str,
        kind: ComfortKind,
        reporting_window_minutes: int,
    ) -> bool:
        if kind is ComfortKind.none:
            return False
        for record in self.recent_alerts(device_id, reporting_window_minutes):
            if record.kind is kind:
                logger.info(
                    "Alert already sent inside reporting window",
                    extra={"device_id": device_id, "kind": kind.value},
                )
                return False
        return True

    def record(self, alert: AlertRecord) -> None:
        self.alerts.append(alert)
