"""Error taxonomy shared by the monitoring services."""

from __future__ import annotations

from typing import Optional


class ThermostatMonitorError(Exception):
    """Base class for every failure raised by the monitor."""


class AuthError(ThermostatMonitorError):
    """The token endpoint failed to issue a credential."""


class TransportError(ThermostatMonitorError):
    """A network call failed or timed out."""


class RemoteError(ThermostatMonitorError):
    """The vendor API answered with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ParseError(ThermostatMonitorError):
    """A vendor payload could not be decoded into the expected shape."""


class NotifyError(ThermostatMonitorError):
    """The messaging webhook did not accept an alert."""


class StoreError(ThermostatMonitorError):
    """The blob container or an append table failed to persist or load data."""
