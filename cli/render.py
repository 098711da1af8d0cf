from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer

_READING_FIELDS = (
    "device_id",
    "name_long",
    "ambient_temperature_c",
    "target_temperature_c",
    "humidity",
    "hvac_mode",
    "hvac_state",
    "is_online",
    "timestamp_utc",
)


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_reading(payload: Dict[str, Any]) -> None:
    echo_heading("Thermostat Reading")
    echo_key_values((key, payload.get(key)) for key in _READING_FIELDS if key in payload)


def render_devices(payload: Any) -> None:
    echo_heading("Thermostats")
    if not payload:
        typer.echo("No thermostats returned.")
        return
    if isinstance(payload, dict):
        for device_id, device in payload.items():
            name = device.get("name_long") if isinstance(device, dict) else None
            typer.echo(f"  - {device_id}: {name or 'unnamed'}")
        return
    for device in payload:
        typer.echo(f"  - {device}")


def render_poll_summary(payload: Dict[str, Any]) -> None:
    echo_heading("Polling Pass")
    echo_key_values(
        [
            ("succeeded", ", ".join(payload.get("succeeded") or []) or "-"),
            ("failed", ", ".join(payload.get("failed") or []) or "-"),
        ]
    )


def render_evaluation_summary(payload: Dict[str, Any]) -> None:
    echo_heading("Evaluation Pass")
    echo_key_values(
        (key, ", ".join(payload.get(key) or []) or "-")
        for key in ("alerts_sent", "suppressed", "within_comfort", "failed")
    )


def render_alerts(device_id: str, alerts: List[Dict[str, Any]]) -> None:
    echo_heading(f"Recent Alerts for {device_id}")
    if not alerts:
        typer.echo("No alerts recorded.")
        return
    for alert in alerts:
        typer.echo(
            f"  - {alert.get('timestamp_utc')} {alert.get('kind')}: "
            f"{alert.get('observed_temperature')}°C "
            f"(comfort {alert.get('comfort_min')}-{alert.get('comfort_max')})"
        )
