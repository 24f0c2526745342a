"""Usage statistics models."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, Field, field_validator, model_validator

from pystromer.models._base import StromerBaseModel
from pystromer.models._normalize import safe_float, unwrap_data


class StatisticsPeriod(StrEnum):
    YEAR = "year"
    MONTH = "month"
    DAY = "day"


class PeriodStatistics(StromerBaseModel):
    """Aggregated distance and speed for one period."""

    distance: float | None = Field(default=None, validation_alias=AliasChoices("distance", "total_distance"))
    avg_speed: float | None = Field(default=None, validation_alias=AliasChoices("avg_speed", "average_speed"))

    @field_validator("distance", "avg_speed", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)


class BikeDetails(StromerBaseModel):
    """Bike detail payload; only the rider's total distance is used."""

    user_total_distance: float | None = None

    @model_validator(mode="before")
    @classmethod
    def _extract_user_total(cls, values: Any) -> Any:
        values = unwrap_data(values)
        if not isinstance(values, dict) or "user_total_distance" in values:
            return values
        merged = dict(values)
        candidates: list[Any] = []
        user = values.get("user")
        if isinstance(user, dict):
            candidates.append(user.get("total_distance"))
        bike = values.get("bike")
        if isinstance(bike, dict) and isinstance(bike.get("user"), dict):
            candidates.append(bike["user"].get("total_distance"))
        candidates.append(values.get("total_distance"))
        for candidate in candidates:
            if candidate is not None:
                merged["user_total_distance"] = candidate
                break
        return merged

    @field_validator("user_total_distance", mode="before")
    @classmethod
    def _coerce_float(cls, value: Any) -> float | None:
        return safe_float(value)
