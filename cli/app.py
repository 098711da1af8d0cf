from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import (
    render_alerts,
    render_devices,
    render_evaluation_summary,
    render_poll_summary,
    render_reading,
)


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the thermostat comfort monitor.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Monitor API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each API call.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("reading")
def reading_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Thermostat device id."),
    refresh: bool = typer.Option(
        False,
        "--refresh/--cached",
        help="Bypass the service's reading cache.",
    ),
) -> None:
    """Show the current reading of a thermostat."""
    state = _get_state(ctx)
    render_reading(state.client.get_reading(device_id, refresh=refresh))


@app.command("devices")
def devices_command(ctx: typer.Context) -> None:
    """List the thermostats known to the vendor account."""
    state = _get_state(ctx)
    render_devices(state.client.list_devices())


@app.command("alerts")
def alerts_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Thermostat device id."),
) -> None:
    """Show alerts recorded for a thermostat inside the reporting window."""
    state = _get_state(ctx)
    render_alerts(device_id, state.client.get_alerts(device_id))


@app.command("poll")
def poll_command(ctx: typer.Context) -> None:
    """Run a polling pass on the service now."""
    state = _get_state(ctx)
    summary = state.client.run_poll()
    render_poll_summary(summary)
    if summary.get("failed"):
        raise typer.Exit(code=1)


@app.command("evaluate")
def evaluate_command(ctx: typer.Context) -> None:
    """Run a comfort evaluation pass on the service now."""
    state = _get_state(ctx)
    summary = state.client.run_evaluation()
    render_evaluation_summary(summary)
    if summary.get("failed"):
        raise typer.Exit(code=1)
