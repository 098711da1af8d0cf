from __future__ import annotations

from typing import Any, Dict, List

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the monitor service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def get_reading(self, device_id: str, refresh: bool = False) -> Dict[str, Any]:
        params = {"refresh": "true"} if refresh else None
        return self._request("GET", f"/thermostats/{device_id}", params=params)

    def list_devices(self) -> Any:
        return self._request("GET", "/thermostats")

    def get_alerts(self, device_id: str) -> List[Dict[str, Any]]:
        return self._request("GET", f"/thermostats/{device_id}/alerts")

    def run_poll(self) -> Dict[str, Any]:
        return self._request("POST", "/jobs/poll")

    def run_evaluation(self) -> Dict[str, Any]:
        return self._request("POST", "/jobs/evaluate")

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.HTTPError as exc:
            typer.secho(f"Could not reach {self._config.base_url}: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
