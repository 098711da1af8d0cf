"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.schemas import AlertRecord, EvaluationSummary, PollSummary, Reading
from errors import (
    AuthError,
    ParseError,
    RemoteError,
    ThermostatMonitorError,
    TransportError,
)
from services.monitor import MonitorService, build_default_monitor

router = APIRouter()


def get_monitor() -> MonitorService:
    return build_default_monitor()


def _to_http_error(exc: ThermostatMonitorError) -> HTTPException:
    if isinstance(exc, TransportError):
        code = status.HTTP_504_GATEWAY_TIMEOUT
    elif isinstance(exc, (AuthError, RemoteError, ParseError)):
        code = status.HTTP_502_BAD_GATEWAY
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=f"{type(exc).__name__}: {exc}")


@router.get(
    "/thermostats",
    summary="Fetch the vendor's thermostat collection unmodified.",
)
def list_thermostats(monitor: MonitorService = Depends(get_monitor)) -> Any:
    try:
        return monitor.list_devices()
    except ThermostatMonitorError as exc:
        raise _to_http_error(exc) from exc


@router.get(
    "/thermostats/{device_id}",
    response_model=Reading,
    summary="Fetch the current reading of a thermostat through the cache.",
)
def get_thermostat(
    device_id: str,
    refresh: bool = Query(False, description="Bypass the cached reading."),
    monitor: MonitorService = Depends(get_monitor),
) -> Reading:
    try:
        return monitor.get_reading(device_id, force_refresh=refresh)
    except ThermostatMonitorError as exc:
        raise _to_http_error(exc) from exc


@router.get(
    "/thermostats/{device_id}/alerts",
    response_model=List[AlertRecord],
    summary="List alerts recorded for a thermostat inside the reporting window.",
)
def get_thermostat_alerts(
    device_id: str,
    monitor: MonitorService = Depends(get_monitor),
) -> List[AlertRecord]:
    try:
        return monitor.recent_alerts(device_id)
    except ThermostatMonitorError as exc:
        raise _to_http_error(exc) from exc


@router.post(
    "/jobs/poll",
    response_model=PollSummary,
    summary="Run a polling pass over the configured thermostats now.",
)
def run_poll(monitor: MonitorService = Depends(get_monitor)) -> PollSummary:
    return monitor.poll_devices()


@router.post(
    "/jobs/evaluate",
    response_model=EvaluationSummary,
    summary="Run a comfort evaluation pass over the configured thermostats now.",
)
def run_evaluation(monitor: MonitorService = Depends(get_monitor)) -> EvaluationSummary:
    return monitor.evaluate_devices()


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
