"""HTTP client for the thermostat vendor device API."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import ValidationError

from app.schemas import Credential, Reading
from errors import ParseError, RemoteError, TransportError

THERMOSTATS_PATH = "/devices/thermostats/"


class DeviceReadingClient:
    """Single-shot reads against the vendor API; retries belong to the caller."""

    def __init__(self, http_client: httpx.Client, base_url: str) -> None:
        self.http_client = http_client
        self.base_url = base_url.rstrip("/")

    def fetch(self, device_id: str, credential: Credential) -> Reading:
        payload = self._get_json(THERMOSTATS_PATH + device_id, credential)
        if not isinstance(payload, dict):
            raise ParseError(f"Unexpected payload for thermostat {device_id!r}.")
        try:
            return Reading.model_validate(payload)
        except ValidationError as exc:
            raise ParseError(f"Malformed reading for thermostat {device_id!r}: {exc}") from exc

    def list_devices(self, credential: Credential) -> Any:
        """Return the vendor's thermostat collection unmodified."""
        return self._get_json(THERMOSTATS_PATH, credential)

    def _get_json(self, path: str, credential: Credential) -> Any:
        headers = {
            "Authorization": f"Bearer {credential.access_token}",
            "Content-Type": "application/json; charset=utf-8",
        }
        try:
            response = self.http_client.get(self.base_url + path, headers=headers)
        except httpx.TimeoutException as exc:
            raise TransportError(f"Timed out calling {path}: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Transport failure calling {path}: {exc}") from exc

        if not response.is_success:
            raise RemoteError(
                f"Vendor API returned status {response.status_code} for {path}.",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise ParseError(f"Vendor API returned invalid JSON for {path}.") from exc
