"""Pydantic schemas for vendor payloads, persisted records and the HTTP API."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ComfortKind(str, Enum):
    """Outcome of a comfort-window evaluation."""

    hot = "hot"
    cold = "cold"
    none = "none"


class Credential(BaseModel):
    """Bearer credential issued by the vendor token endpoint."""

    access_token: str = Field(..., min_length=1)
    expires_in: int = Field(default=0, ge=0, description="Lifetime in seconds.")
    obtained_at: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        if self.obtained_at is None or self.expires_in <= 0:
            return False
        elapsed = (now - self.obtained_at).total_seconds()
        return elapsed >= self.expires_in


class Reading(BaseModel):
    """Thermostat document returned by the vendor device API.

    Vendor fields that are not modelled explicitly are kept as extras so that
    stored readings mirror the upstream payload.
    """

    model_config = ConfigDict(extra="allow")

    device_id: str
    timestamp_utc: Optional[datetime] = None
    ambient_temperature_c: float
    ambient_temperature_f: Optional[int] = None
    humidity: Optional[int] = None
    hvac_mode: Optional[str] = None
    previous_hvac_mode: Optional[str] = None
    hvac_state: Optional[str] = None
    name: Optional[str] = None
    name_long: Optional[str] = None
    label: Optional[str] = None
    locale: Optional[str] = None
    software_version: Optional[str] = None
    structure_id: Optional[str] = None
    where_id: Optional[str] = None
    where_name: Optional[str] = None
    temperature_scale: Optional[str] = None
    target_temperature_c: Optional[float] = None
    target_temperature_f: Optional[int] = None
    target_temperature_high_c: Optional[float] = None
    target_temperature_high_f: Optional[int] = None
    target_temperature_low_c: Optional[float] = None
    target_temperature_low_f: Optional[int] = None
    away_temperature_high_c: Optional[float] = None
    away_temperature_high_f: Optional[int] = None
    away_temperature_low_c: Optional[float] = None
    away_temperature_low_f: Optional[int] = None
    eco_temperature_high_c: Optional[float] = None
    eco_temperature_high_f: Optional[int] = None
    eco_temperature_low_c: Optional[float] = None
    eco_temperature_low_f: Optional[int] = None
    locked_temp_min_c: Optional[float] = None
    locked_temp_min_f: Optional[int] = None
    locked_temp_max_c: Optional[float] = None
    locked_temp_max_f: Optional[int] = None
    is_locked: Optional[bool] = None
    is_online: Optional[bool] = None
    is_using_emergency_heat: Optional[bool] = None
    can_heat: Optional[bool] = None
    can_cool: Optional[bool] = None
    has_fan: Optional[bool] = None
    has_leaf: Optional[bool] = None
    fan_timer_active: Optional[bool] = None
    fan_timer_timeout: Optional[datetime] = None
    fan_timer_duration: Optional[int] = None
    sunlight_correction_active: Optional[bool] = None
    sunlight_correction_enabled: Optional[bool] = None
    time_to_target: Optional[str] = None
    time_to_target_training: Optional[str] = None


class AlertRecord(BaseModel):
    """Persisted trace of an alert that was delivered for a device."""

    device_id: str
    timestamp_utc: datetime
    kind: ComfortKind
    comfort_min: float
    comfort_max: float
    observed_temperature: float
    evaluation_window_minutes: int = Field(..., ge=1)

    @field_validator("kind")
    @classmethod
    def _reject_none_kind(cls, value: ComfortKind) -> ComfortKind:
        if value is ComfortKind.none:
            raise ValueError("alerts are only recorded for hot or cold windows")
        return value


class PollSummary(BaseModel):
    """Per-device outcome of a polling pass."""

    succeeded: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)


class EvaluationSummary(BaseModel):
    """Per-device outcome of an evaluation pass."""

    alerts_sent: List[str] = Field(default_factory=list)
    suppressed: List[str] = Field(default_factory=list)
    within_comfort: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)
