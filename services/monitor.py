"""Polling and evaluation jobs that tie the monitoring components together."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta
from functools import lru_cache
from threading import Lock
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx

from app.schemas import AlertRecord, ComfortKind, EvaluationSummary, PollSummary, Reading
from datastore.repositories import (
    AlertStore,
    ReadingStore,
    build_default_alert_store,
    build_default_reading_store,
)
from errors import StoreError, ThermostatMonitorError
from models.records import ComfortWindowResult
from services.deduplicator import NotificationDeduplicator
from services.evaluator import ComfortEvaluator
from services.notifier import WebhookNotifier
from services.reading_cache import ReadingCache
from services.reading_fetcher import ReadingFetcher
from services.token_store import TokenStore
from services.vendor_client import DeviceReadingClient
from settings import Settings, get_settings
from storage.mock_blob import build_default_container
from timeutil import now_utc

logger = logging.getLogger(__name__)


class MonitorService:
    """Runs the periodic polling and evaluation passes.

    Every device is processed on its own: a failure is logged with the device
    id and error kind and only skips that device for the current pass.
    """

    def __init__(
        self,
        settings: Settings,
        cache: ReadingCache,
        readings: ReadingStore,
        alerts: AlertStore,
        notifier: WebhookNotifier,
        evaluator: Optional[ComfortEvaluator] = None,
        deduplicator: Optional[NotificationDeduplicator] = None,
        clock: Callable[[], datetime] = now_utc,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.settings = settings
        self.cache = cache
        self.readings = readings
        self.alerts = alerts
        self.notifier = notifier
        self.evaluator = evaluator or ComfortEvaluator()
        self.deduplicator = deduplicator or NotificationDeduplicator(alerts, clock=clock)
        self.http_client = http_client
        self._clock = clock
        self._device_locks: Dict[str, Lock] = {}
        self._device_locks_guard = Lock()

    def get_reading(self, device_id: str, force_refresh: bool = False) -> Reading:
        return self.cache.get_or_fetch(device_id, force_refresh=force_refresh)

    def list_devices(self) -> Any:
        return self.cache.fetcher.list_devices()

    def recent_alerts(self, device_id: str) -> List[AlertRecord]:
        return self.deduplicator.recent_alerts(device_id, self.settings.reporting_window_minutes)

    def poll_devices(self, device_ids: Optional[Iterable[str]] = None) -> PollSummary:
        """Fetch the current reading of each device and append it to the reading store."""

        start_time = time.perf_counter()
        summary = PollSummary()
        for device_id in self._devices(device_ids):
            try:
                self.poll_device(device_id)
            except ThermostatMonitorError as exc:
                summary.failed.append(device_id)
                logger.error(
                    "Polling failed: %s",
                    exc,
                    extra={"job": "poll", "device_id": device_id, "error_kind": type(exc).__name__},
                )
            else:
                summary.succeeded.append(device_id)

        logger.info(
            "Polling pass finished",
            extra={
                "job": "poll",
                "succeeded": len(summary.succeeded),
                "failed": len(summary.failed),
                "duration_ms": int((time.perf_counter() - start_time) * 1000),
            },
        )
        return summary

    def poll_device(self, device_id: str) -> Reading:
        reading = self.cache.get_or_fetch(device_id)
        stamped = reading.model_copy(update={"device_id": device_id, "timestamp_utc": self._clock()})
        self.readings.append(stamped)
        return stamped

    def evaluate_devices(self, device_ids: Optional[Iterable[str]] = None) -> EvaluationSummary:
        """Evaluate each device's recent window and alert on new anomalies."""

        start_time = time.perf_counter()
        summary = EvaluationSummary()
        for device_id in self._devices(device_ids):
            try:
                outcome = self.evaluate_device(device_id)
            except ThermostatMonitorError as exc:
                summary.failed.append(device_id)
                logger.error(
                    "Evaluation failed: %s",
                    exc,
                    extra={"job": "evaluate", "device_id": device_id, "error_kind": type(exc).__name__},
                )
                continue

            if outcome == "sent":
                summary.alerts_sent.append(device_id)
            elif outcome == "suppressed":
                summary.suppressed.append(device_id)
            else:
                summary.within_comfort.append(device_id)

        logger.info(
            "Evaluation pass finished",
            extra={
                "job": "evaluate",
                "succeeded": len(summary.alerts_sent) + len(summary.suppressed) + len(summary.within_comfort),
                "failed": len(summary.failed),
                "duration_ms": int((time.perf_counter() - start_time) * 1000),
            },
        )
        return summary

    def evaluate_device(self, device_id: str) -> str:
        """Return ``"sent"``, ``"suppressed"`` or ``"ok"`` for a single device."""

        # Serialises check, delivery and recording so overlapping passes cannot double-send.
        with self._device_lock(device_id):
            result = self.evaluate_window(device_id)
            if not result.is_anomaly:
                return "ok"

            window_minutes = self.settings.reporting_window_minutes
            if not self.deduplicator.should_alert(device_id, result.kind, window_minutes):
                return "suppressed"

            alert = AlertRecord(
                device_id=device_id,
                timestamp_utc=self._clock(),
                kind=result.kind,
                comfort_min=self.settings.comfort_min,
                comfort_max=self.settings.comfort_max,
                observed_temperature=result.observed_temperature,
                evaluation_window_minutes=self.settings.check_range_minutes,
            )
            self.notifier.send(self.notifier.format_message(alert))
            logger.info(
                "Comfort alert sent",
                extra={
                    "device_id": device_id,
                    "kind": alert.kind.value,
                    "observed_temperature": alert.observed_temperature,
                },
            )

            try:
                self.deduplicator.record(alert)
            except StoreError as exc:
                logger.critical(
                    "Alert delivered but not recorded; it may be sent again next cycle: %s",
                    exc,
                    extra={"device_id": device_id, "kind": alert.kind.value, "error_kind": "StoreError"},
                )
            return "sent"

    def evaluate_window(self, device_id: str) -> ComfortWindowResult:
        window_end = self._clock()
        window_start = window_end - timedelta(minutes=self.settings.check_range_minutes)
        window = self.readings.recent(device_id, window_start)
        return self.evaluator.evaluate(
            device_id,
            window,
            comfort_min=self.settings.comfort_min,
            comfort_max=self.settings.comfort_max,
            window_start=window_start,
            window_end=window_end,
        )

    def shutdown(self) -> None:
        if self.http_client is not None:
            self.http_client.close()

    def _devices(self, device_ids: Optional[Iterable[str]]) -> List[str]:
        if device_ids is None:
            device_ids = self.settings.device_ids
        return list(dict.fromkeys(device_ids))

    def _device_lock(self, device_id: str) -> Lock:
        with self._device_locks_guard:
            lock = self._device_locks.get(device_id)
            if lock is None:
                lock = Lock()
                self._device_locks[device_id] = lock
            return lock


@lru_cache
def build_default_monitor() -> MonitorService:
    """Factory that wires the monitor with the configured stores and vendor endpoints."""
    settings = get_settings()
    http_client = httpx.Client(timeout=settings.http_timeout_seconds, follow_redirects=True)
    tokens = TokenStore(
        container=build_default_container(),
        http_client=http_client,
        auth_url=settings.auth_url,
        client_id=settings.client_id,
        client_secret=settings.client_secret,
        authorization_code=settings.authorization_code,
        proactive_expiry=settings.proactive_token_expiry,
    )
    fetcher = ReadingFetcher(tokens, DeviceReadingClient(http_client, settings.api_base_url))
    notifier = WebhookNotifier(
        http_client,
        settings.webhook_url,
        templates={
            ComfortKind.hot: settings.hot_message_template,
            ComfortKind.cold: settings.cold_message_template,
        },
    )
    return MonitorService(
        settings=settings,
        cache=ReadingCache(fetcher, ttl_seconds=settings.cache_ttl_seconds),
        readings=build_default_reading_store(),
        alerts=build_default_alert_store(),
        notifier=notifier,
        http_client=http_client,
    )
