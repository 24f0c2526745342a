"""Bike position model."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pystromer.models._base import StromerBaseModel
from pystromer.models._normalize import safe_float, safe_int


class BikePosition(StromerBaseModel):
    """Last reported GPS position.

    Numeric fields are ``None`` when the value is absent or unparseable.
    """

    latitude: float | None = Field(default=None, validation_alias=AliasChoices("latitude", "lat"))
    longitude: float | None = Field(default=None, validation_alias=AliasChoices("longitude", "lng", "lon"))
    timestamp: int | None = Field(default=None, validation_alias=AliasChoices("timets", "timestamp", "rcvts"))

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> int | None:
        return safe_int(value)

    @property
    def has_fix(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def location(self) -> str | None:
        """``"<lat>, <lon>"`` or ``None`` without a fix."""
        if not self.has_fix:
            return None
        return f"{self.latitude}, {self.longitude}"
