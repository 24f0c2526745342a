"""Bike state model.

The two API generations report the same concepts under different keys.
Lock state in particular comes in three shapes: ``lock`` and
``lock_status`` as ``"locked"``/``"unlocked"`` strings, and ``bike_lock``
as a boolean. :class:`BikeStatus` normalizes all of them into ``locked``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, Field, field_validator, model_validator

from pystromer.models._base import StromerBaseModel
from pystromer.models._normalize import safe_bool, safe_float, safe_int, safe_str


class LightMode(StrEnum):
    """Light modes accepted by the light endpoint."""

    ON = "on"
    OFF = "off"
    BRIGHT = "bright"

    @property
    def is_lit(self) -> bool:
        return self in (LightMode.ON, LightMode.BRIGHT)


def _parse_lock_word(value: Any) -> bool | None:
    text = safe_str(value)
    if text is None:
        return None
    normalized = text.lower()
    if normalized == "locked":
        return True
    if normalized == "unlocked":
        return False
    return safe_bool(normalized)


class BikeStatus(StromerBaseModel):
    """Live state of a bike.

    Every field is ``None`` when the vendor omitted it, so the
    reconciler can tell "missing" from a real zero/false.
    """

    battery_soc: float | None = Field(
        default=None,
        validation_alias=AliasChoices("battery_SOC", "battery_soc", "bike_battery_percentage"),
    )
    """Battery state of charge in percent."""
    battery_health: float | None = Field(
        default=None,
        validation_alias=AliasChoices("battery_health", "bike_battery_health"),
    )
    theft_flag: bool | None = Field(default=None, validation_alias=AliasChoices("theft_flag"))
    motor_temp: float | None = Field(default=None, validation_alias=AliasChoices("motor_temp", "motor_temp_C"))
    battery_temp: float | None = Field(default=None, validation_alias=AliasChoices("battery_temp", "battery_temp_C"))
    assistance_level: float | None = Field(
        default=None,
        validation_alias=AliasChoices("assistance_level", "power_level"),
    )
    light_on: bool | None = Field(default=None, validation_alias=AliasChoices("light_on"))
    light: str | None = Field(default=None, validation_alias=AliasChoices("light", "light_mode"))
    lock: str | None = Field(default=None, validation_alias=AliasChoices("lock"))
    lock_status: str | None = Field(default=None, validation_alias=AliasChoices("lock_status"))
    bike_lock: bool | None = Field(default=None, validation_alias=AliasChoices("bike_lock"))
    locked: bool | None = None
    """Normalized lock state; derived from ``lock``/``lock_status``/``bike_lock``."""
    speed: float | None = Field(default=None, validation_alias=AliasChoices("bike_speed", "speed"))
    trip_distance: float | None = Field(default=None, validation_alias=AliasChoices("trip_distance"))
    average_speed_trip: float | None = Field(
        default=None,
        validation_alias=AliasChoices("average_speed_trip", "trip_average_speed"),
    )
    total_distance: float | None = Field(default=None, validation_alias=AliasChoices("total_distance"))
    average_speed_total: float | None = Field(
        default=None,
        validation_alias=AliasChoices("average_speed_total", "distance_average_speed"),
    )
    average_energy_consumption: float | None = Field(
        default=None,
        validation_alias=AliasChoices("average_energy_consumption"),
    )
    power_on_cycles: int | None = Field(default=None, validation_alias=AliasChoices("power_on_cycles"))
    atmospheric_pressure: float | None = Field(default=None, validation_alias=AliasChoices("atmospheric_pressure"))
    total_energy_consumption: float | None = Field(
        default=None,
        validation_alias=AliasChoices("total_energy_consumption"),
    )

    @field_validator(
        "battery_soc",
        "battery_health",
        "motor_temp",
        "battery_temp",
        "assistance_level",
        "speed",
        "trip_distance",
        "average_speed_trip",
        "total_distance",
        "average_speed_total",
        "average_energy_consumption",
        "atmospheric_pressure",
        "total_energy_consumption",
        mode="before",
    )
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("power_on_cycles", mode="before")
    @classmethod
    def _coerce_ints(cls, value: Any) -> int | None:
        return safe_int(value)

    @field_validator("theft_flag", "light_on", "bike_lock", mode="before")
    @classmethod
    def _coerce_bools(cls, value: Any) -> bool | None:
        return safe_bool(value)

    @field_validator("light", "lock", "lock_status", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str | None:
        text = safe_str(value)
        return text.lower() if text is not None else None

    @model_validator(mode="after")
    def _normalize_lock(self) -> BikeStatus:
        if self.locked is not None:
            return self
        for candidate in (_parse_lock_word(self.lock), _parse_lock_word(self.lock_status), self.bike_lock):
            if candidate is not None:
                object.__setattr__(self, "locked", candidate)
                break
        return self

    @property
    def is_light_on(self) -> bool | None:
        """Light state from ``light_on`` or the reported light mode."""
        if self.light_on:
            return True
        if self.light is not None:
            return self.light in (LightMode.ON.value, LightMode.BRIGHT.value)
        return self.light_on

    @property
    def is_active(self) -> bool:
        """Whether the bike looks in use: theft alarm, unlocked, or moving."""
        if self.theft_flag:
            return True
        if self.locked is False:
            return True
        return bool(self.speed and self.speed > 0)
