from __future__ import annotations

import json
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterator, List, Optional
from urllib.parse import parse_qs

import httpx
import pytest

from app.schemas import AlertRecord, Reading
from datastore.mock_table import MockTable
from datastore.repositories import (
    AlertStore,
    ReadingStore,
    build_default_alert_store,
    build_default_reading_store,
)
from services.monitor import MonitorService, build_default_monitor
from services.notifier import WebhookNotifier
from services.reading_cache import ReadingCache
from services.reading_fetcher import ReadingFetcher
from services.token_store import TokenStore
from services.vendor_client import DeviceReadingClient
from settings import get_settings
from storage.mock_blob import MockBlobContainer, build_default_container

API_BASE = "https://vendor.test"
AUTH_URL = "https://auth.test/oauth2/access_token"
WEBHOOK_URL = "https://hooks.test/alerts"

T0 = datetime(2024, 1, 15, 8, 0, tzinfo=timezone.utc)


def reading_payload(device_id: str = "dev-1", temperature: float = 21.0, **extra: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "device_id": device_id,
        "name_long": f"Thermostat {device_id}",
        "ambient_temperature_c": temperature,
        "ambient_temperature_f": round(temperature * 9 / 5 + 32),
        "humidity": 40,
        "hvac_mode": "heat",
        "hvac_state": "off",
        "structure_id": "structure-1",
        "is_online": True,
    }
    payload.update(extra)
    return payload


class FakeClock:
    """Settable UTC clock."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeMonotonic:
    def __init__(self, start: float = 1000.0) -> None:
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class FakeVendor:
    """Scriptable stand-in for the vendor API, token endpoint and webhook."""

    def __init__(self) -> None:
        self.readings: Dict[str, Dict[str, Any]] = {}
        self.device_failures: Dict[str, List[int]] = {}
        self.token_counter = 0
        self.token_status = 200
        self.webhook_status = 200
        self.token_requests: List[Dict[str, List[str]]] = []
        self.device_requests: List[httpx.Request] = []
        self.webhook_messages: List[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url == AUTH_URL:
            return self._token(request)
        if url == WEBHOOK_URL:
            if self.webhook_status >= 400:
                return httpx.Response(self.webhook_status)
            self.webhook_messages.append(json.loads(request.content)["text"])
            return httpx.Response(200, text="ok")
        if url.startswith(API_BASE + "/devices/thermostats/"):
            return self._device(request, url[len(API_BASE + "/devices/thermostats/"):])
        return httpx.Response(404)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=self.transport())

    def _token(self, request: httpx.Request) -> httpx.Response:
        self.token_requests.append(parse_qs(request.content.decode()))
        if self.token_status >= 400:
            return httpx.Response(self.token_status)
        self.token_counter += 1
        return httpx.Response(
            200, json={"access_token": f"token-{self.token_counter}", "expires_in": 3600}
        )

    def _device(self, request: httpx.Request, device_id: str) -> httpx.Response:
        self.device_requests.append(request)
        if not device_id:
            return httpx.Response(200, json=self.readings)
        failures = self.device_failures.get(device_id)
        if failures:
            return httpx.Response(failures.pop(0))
        payload = self.readings.get(device_id)
        if payload is None:
            return httpx.Response(404, json={"error": "not found"})
        return httpx.Response(200, json=payload)

    def bearer_tokens(self) -> List[Optional[str]]:
        return [request.headers.get("Authorization") for request in self.device_requests]


@pytest.fixture
def vendor() -> FakeVendor:
    return FakeVendor()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch) -> Iterator[None]:
    monkeypatch.setenv("CREDENTIAL_BLOB_ROOT", str(tmp_path / "blob"))
    monkeypatch.setenv("READINGS_TABLE_PATH", str(tmp_path / "readings.json"))
    monkeypatch.setenv("ALERTS_TABLE_PATH", str(tmp_path / "alerts.json"))
    caches = (
        get_settings,
        build_default_container,
        build_default_reading_store,
        build_default_alert_store,
        build_default_monitor,
    )
    for cache in caches:
        cache.cache_clear()
    yield
    for cache in caches:
        cache.cache_clear()


@pytest.fixture
def monitor(vendor, clock) -> MonitorService:
    """Monitor wired with in-memory stores, the fake vendor and the fake clock."""
    settings = replace(
        get_settings(),
        device_ids=("dev-1", "dev-2"),
        comfort_target=21.0,
        comfort_range=2.0,
        check_range_minutes=30,
        reporting_window_minutes=30,
    )
    http = vendor.client()
    tokens = TokenStore(
        container=MockBlobContainer("temp-monitor"),
        http_client=http,
        auth_url=AUTH_URL,
        client_id="id",
        client_secret="secret",
        authorization_code="code",
        clock=clock,
    )
    fetcher = ReadingFetcher(tokens, DeviceReadingClient(http, API_BASE))
    return MonitorService(
        settings=settings,
        cache=ReadingCache(fetcher, ttl_seconds=60, clock=FakeMonotonic()),
        readings=ReadingStore(MockTable("readings", Reading)),
        alerts=AlertStore(MockTable("alerts", AlertRecord)),
        notifier=WebhookNotifier(http, WEBHOOK_URL),
        clock=clock,
        http_client=http,
    )
