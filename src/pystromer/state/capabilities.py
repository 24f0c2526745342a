"""Enumerated capability table.

Each capability is bound once to the fetch section that feeds it, a pure
extractor over the parsed payload model, and a default policy for when the
vendor omits the field. The table replaces free-form dynamic assignment:
applying a payload is a deterministic walk over :data:`CAPABILITIES`.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Mapping
from enum import Enum, StrEnum
from typing import Any


class Capability(StrEnum):
    """Capability keys exposed to the host."""

    BATTERY_LEVEL = "battery_level"
    BATTERY_HEALTH = "battery_health"
    THEFT_ALARM = "theft_alarm"
    LOCKED = "locked"
    LIGHT_ON = "light_on"
    SPEED = "speed"
    MOTOR_TEMPERATURE = "motor_temperature"
    BATTERY_TEMPERATURE = "battery_temperature"
    ASSISTANCE_LEVEL = "assistance_level"
    TRIP_DISTANCE = "trip_distance"
    TRIP_AVERAGE_SPEED = "trip_average_speed"
    TOTAL_DISTANCE = "total_distance"
    TOTAL_AVERAGE_SPEED = "total_average_speed"
    AVERAGE_ENERGY_CONSUMPTION = "average_energy_consumption"
    TOTAL_ENERGY_CONSUMPTION = "total_energy_consumption"
    POWER_ON_CYCLES = "power_on_cycles"
    ATMOSPHERIC_PRESSURE = "atmospheric_pressure"
    LATITUDE = "latitude"
    LONGITUDE = "longitude"
    LOCATION = "location"
    USER_TOTAL_DISTANCE = "user_total_distance"
    YEAR_DISTANCE = "year_distance"
    YEAR_AVERAGE_SPEED = "year_average_speed"
    MONTH_DISTANCE = "month_distance"
    MONTH_AVERAGE_SPEED = "month_average_speed"
    DAY_AVERAGE_SPEED = "day_average_speed"


class FetchSection(StrEnum):
    """Sub-fetches of one reconciliation cycle."""

    STATUS = "status"
    POSITION = "position"
    DETAILS = "details"
    YEAR = "year"
    MONTH = "month"
    DAY = "day"

    @property
    def is_statistics(self) -> bool:
        return self not in (FetchSection.STATUS, FetchSection.POSITION)


class DefaultPolicy(Enum):
    """What to store when the vendor omits a field that was never set."""

    NONE = "none"
    FALSE = "false"
    ZERO = "zero"

    def fallback(self) -> Any:
        if self is DefaultPolicy.FALSE:
            return False
        if self is DefaultPolicy.ZERO:
            return 0
        return None


@dataclasses.dataclass(frozen=True)
class CapabilityRule:
    capability: Capability
    section: FetchSection
    extract: Callable[[Any], Any]
    default: DefaultPolicy = DefaultPolicy.NONE


def _attr(name: str) -> Callable[[Any], Any]:
    def _extract(model: Any) -> Any:
        return getattr(model, name, None)

    return _extract


_S = FetchSection

CAPABILITIES: tuple[CapabilityRule, ...] = (
    CapabilityRule(Capability.BATTERY_LEVEL, _S.STATUS, _attr("battery_soc")),
    CapabilityRule(Capability.BATTERY_HEALTH, _S.STATUS, _attr("battery_health")),
    CapabilityRule(Capability.THEFT_ALARM, _S.STATUS, _attr("theft_flag"), DefaultPolicy.FALSE),
    CapabilityRule(Capability.LOCKED, _S.STATUS, _attr("locked"), DefaultPolicy.FALSE),
    CapabilityRule(Capability.LIGHT_ON, _S.STATUS, _attr("is_light_on"), DefaultPolicy.FALSE),
    CapabilityRule(Capability.SPEED, _S.STATUS, _attr("speed"), DefaultPolicy.ZERO),
    CapabilityRule(Capability.MOTOR_TEMPERATURE, _S.STATUS, _attr("motor_temp")),
    CapabilityRule(Capability.BATTERY_TEMPERATURE, _S.STATUS, _attr("battery_temp")),
    CapabilityRule(Capability.ASSISTANCE_LEVEL, _S.STATUS, _attr("assistance_level")),
    CapabilityRule(Capability.TRIP_DISTANCE, _S.STATUS, _attr("trip_distance"), DefaultPolicy.ZERO),
    CapabilityRule(Capability.TRIP_AVERAGE_SPEED, _S.STATUS, _attr("average_speed_trip"), DefaultPolicy.ZERO),
    CapabilityRule(Capability.TOTAL_DISTANCE, _S.STATUS, _attr("total_distance"), DefaultPolicy.ZERO),
    CapabilityRule(Capability.TOTAL_AVERAGE_SPEED, _S.STATUS, _attr("average_speed_total"), DefaultPolicy.ZERO),
    CapabilityRule(
        Capability.AVERAGE_ENERGY_CONSUMPTION,
        _S.STATUS,
        _attr("average_energy_consumption"),
        DefaultPolicy.ZERO,
    ),
    CapabilityRule(
        Capability.TOTAL_ENERGY_CONSUMPTION,
        _S.STATUS,
        _attr("total_energy_consumption"),
        DefaultPolicy.ZERO,
    ),
    CapabilityRule(Capability.POWER_ON_CYCLES, _S.STATUS, _attr("power_on_cycles"), DefaultPolicy.ZERO),
    CapabilityRule(Capability.ATMOSPHERIC_PRESSURE, _S.STATUS, _attr("atmospheric_pressure")),
    CapabilityRule(Capability.LATITUDE, _S.POSITION, _attr("latitude")),
    CapabilityRule(Capability.LONGITUDE, _S.POSITION, _attr("longitude")),
    CapabilityRule(Capability.LOCATION, _S.POSITION, _attr("location")),
    CapabilityRule(Capability.USER_TOTAL_DISTANCE, _S.DETAILS, _attr("user_total_distance")),
    CapabilityRule(Capability.YEAR_DISTANCE, _S.YEAR, _attr("distance"), DefaultPolicy.ZERO),
    CapabilityRule(Capability.YEAR_AVERAGE_SPEED, _S.YEAR, _attr("avg_speed"), DefaultPolicy.ZERO),
    CapabilityRule(Capability.MONTH_DISTANCE, _S.MONTH, _attr("distance"), DefaultPolicy.ZERO),
    CapabilityRule(Capability.MONTH_AVERAGE_SPEED, _S.MONTH, _attr("avg_speed"), DefaultPolicy.ZERO),
    CapabilityRule(Capability.DAY_AVERAGE_SPEED, _S.DAY, _attr("avg_speed"), DefaultPolicy.ZERO),
)

_BY_SECTION: dict[FetchSection, tuple[CapabilityRule, ...]] = {
    section: tuple(rule for rule in CAPABILITIES if rule.section == section) for section in FetchSection
}


def rules_for(section: FetchSection) -> tuple[CapabilityRule, ...]:
    return _BY_SECTION[section]


def build_patch(
    section: FetchSection,
    model: Any,
    current: Mapping[Capability, Any],
) -> dict[Capability, Any]:
    """Map one successfully fetched payload onto capability values.

    Fields the vendor omitted keep their current value; only capabilities
    that were never set fall back to their default policy, and
    ``DefaultPolicy.NONE`` leaves them unset.
    """
    patch: dict[Capability, Any] = {}
    for rule in rules_for(section):
        value = rule.extract(model)
        if value is None:
            if rule.capability in current:
                continue
            value = rule.default.fallback()
            if value is None:
                continue
        patch[rule.capability] = value
    return patch
