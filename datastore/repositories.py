"""Reading and alert stores layered over the partitioned append table."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from app.schemas import AlertRecord, Reading
from datastore.mock_table import MockTable
from errors import StoreError
from settings import get_settings

ROW_KEY_FORMAT = "%Y%m%d%H%M%S"


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_row_key(value: datetime) -> str:
    """Render a timestamp so that lexical order matches chronological order."""
    return to_utc(value).strftime(ROW_KEY_FORMAT)


def lower_bound_key(since: datetime) -> str:
    """Smallest row key at or after ``since``.

    Row keys drop sub-second precision, so a fractional bound is rounded up
    to the next whole second.
    """
    since = to_utc(since)
    if since.microsecond:
        since = since.replace(microsecond=0) + timedelta(seconds=1)
    return format_row_key(since)


class ReadingStore:
    """Time-ordered readings, one partition per device."""

    def __init__(self, table: MockTable[Reading]) -> None:
        self.table = table

    def append(self, reading: Reading) -> str:
        if reading.timestamp_utc is None:
            raise StoreError(f"Reading for device {reading.device_id!r} has no timestamp.")
        row_key = format_row_key(reading.timestamp_utc)
        self.table.insert(reading.device_id, row_key, reading)
        return row_key

    def recent(self, device_id: str, since: datetime) -> List[Reading]:
        return self.table.query(device_id, row_key_from=lower_bound_key(since))

    def devices(self) -> List[str]:
        return self.table.partitions()


class AlertStore:
    """Alerts already delivered, partitioned by device."""

    def __init__(self, table: MockTable[AlertRecord]) -> None:
        self.table = table

    def append(self, alert: AlertRecord) -> str:
        row_key = format_row_key(alert.timestamp_utc)
        self.table.insert(alert.device_id, row_key, alert)
        return row_key

    def since(self, device_id: str, since: datetime) -> List[AlertRecord]:
        return self.table.query(device_id, row_key_from=lower_bound_key(since))


@lru_cache
def build_default_reading_store(path: Optional[str] = None) -> ReadingStore:
    settings = get_settings()
    table_path = settings.readings_table_path if path is None else path
    persistence = Path(table_path) if table_path else None
    table = MockTable(name="ThermostatData", model=Reading, persistence_path=persistence)
    return ReadingStore(table)


@lru_cache
def build_default_alert_store(path: Optional[str] = None) -> AlertStore:
    settings = get_settings()
    table_path = settings.alerts_table_path if path is None else path
    persistence = Path(table_path) if table_path else None
    table = MockTable(name="TemperatureNotifications", model=AlertRecord, persistence_path=persistence)
    return AlertStore(table)
