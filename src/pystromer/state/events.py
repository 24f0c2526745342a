"""Edge-triggered bike events."""

from __future__ import annotations

import datetime as dt
from collections.abc import Mapping
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pystromer.state.capabilities import Capability


class BikeEventType(StrEnum):
    THEFT_ACTIVATED = "theft_activated"
    BIKE_UNLOCKED = "bike_unlocked"
    BATTERY_LOW = "battery_low"
    BATTERY_HEALTH_LOW = "battery_health_low"


class BikeEvent(BaseModel):
    """A transition observed between two consecutive snapshots."""

    model_config = ConfigDict(frozen=True)

    bike_id: str
    type: BikeEventType
    threshold: float | None = None
    observed_at: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.UTC))

    @property
    def tokens(self) -> dict[str, Any]:
        """Payload handed to automation triggers."""
        if self.threshold is None:
            return {}
        return {"threshold": self.threshold}


def _decreased(previous: Any, current: Any) -> bool:
    return previous is not None and current is not None and current < previous


def detect_events(
    bike_id: str,
    previous: Mapping[Capability, Any],
    current: Mapping[Capability, Any],
) -> list[BikeEvent]:
    """Compare pre- and post-merge snapshots and return the fired events.

    Every rule is evaluated independently so one cycle can yield several
    events. Nothing fires on the first observation of a value, except theft
    which fires whenever the alarm rises from unset or ``False``.
    """
    events: list[BikeEvent] = []

    if not previous.get(Capability.THEFT_ALARM) and current.get(Capability.THEFT_ALARM) is True:
        events.append(BikeEvent(bike_id=bike_id, type=BikeEventType.THEFT_ACTIVATED))

    if previous.get(Capability.LOCKED) is True and current.get(Capability.LOCKED) is False:
        events.append(BikeEvent(bike_id=bike_id, type=BikeEventType.BIKE_UNLOCKED))

    battery = current.get(Capability.BATTERY_LEVEL)
    if _decreased(previous.get(Capability.BATTERY_LEVEL), battery):
        events.append(BikeEvent(bike_id=bike_id, type=BikeEventType.BATTERY_LOW, threshold=battery))

    health = current.get(Capability.BATTERY_HEALTH)
    if _decreased(previous.get(Capability.BATTERY_HEALTH), health):
        events.append(BikeEvent(bike_id=bike_id, type=BikeEventType.BATTERY_HEALTH_LOW, threshold=health))

    return events
