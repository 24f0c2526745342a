"""Per-bike capability snapshot."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from pystromer.state.capabilities import Capability


class CapabilitySnapshot:
    """Last known value of each capability of one bike.

    Values are only written by :meth:`merge` (successful fetches) and
    :meth:`set` (optimistic command updates). Capabilities that were never
    reported are absent rather than ``None``.
    """

    def __init__(self, values: Mapping[Capability, Any] | None = None) -> None:
        self._values: dict[Capability, Any] = dict(values or {})

    def __contains__(self, capability: object) -> bool:
        return capability in self._values

    def __getitem__(self, capability: Capability) -> Any:
        return self._values[capability]

    def __iter__(self) -> Iterator[Capability]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"CapabilitySnapshot({self._values!r})"

    def get(self, capability: Capability, default: Any = None) -> Any:
        return self._values.get(capability, default)

    def as_dict(self) -> dict[Capability, Any]:
        return dict(self._values)

    def copy(self) -> CapabilitySnapshot:
        return CapabilitySnapshot(self._values)

    def merge(self, patch: Mapping[Capability, Any]) -> dict[Capability, Any]:
        """Apply *patch* and return only the entries whose value changed."""
        changed: dict[Capability, Any] = {}
        for capability, value in patch.items():
            if capability in self._values and self._values[capability] == value:
                continue
            self._values[capability] = value
            changed[capability] = value
        return changed

    def set(self, capability: Capability, value: Any) -> bool:
        return bool(self.merge({capability: value}))

    def clear(self) -> None:
        self._values.clear()

    # ------------------------------------------------------------------
    # Condition predicates
    # ------------------------------------------------------------------

    def battery_above(self, threshold: float) -> bool:
        level = self.get(Capability.BATTERY_LEVEL)
        return level is not None and level > threshold

    def battery_health_above(self, threshold: float) -> bool:
        health = self.get(Capability.BATTERY_HEALTH)
        return health is not None and health > threshold

    def is_locked(self) -> bool:
        return bool(self.get(Capability.LOCKED, False))

    def light_on(self) -> bool:
        return bool(self.get(Capability.LIGHT_ON, False))

    def theft_active(self) -> bool:
        return bool(self.get(Capability.THEFT_ALARM, False))

    def temperature_in_range(self, sensor: str, low: float, high: float) -> bool:
        """Check a temperature reading against an inclusive range.

        Parameters
        ----------
        sensor
            ``"motor"`` or ``"battery"``.
        """
        if sensor == "motor":
            capability = Capability.MOTOR_TEMPERATURE
        elif sensor == "battery":
            capability = Capability.BATTERY_TEMPERATURE
        else:
            raise ValueError(f"Unknown temperature sensor: {sensor!r}")
        value = self.get(capability)
        return value is not None and low <= value <= high

    def summary(self, name: str) -> str:
        """Short status line, e.g. ``"Commuter: Battery 80%, Trip 12.5km"``."""
        battery = self.get(Capability.BATTERY_LEVEL)
        trip = self.get(Capability.TRIP_DISTANCE, 0)
        battery_text = "unknown" if battery is None else f"{battery:g}"
        return f"{name}: Battery {battery_text}%, Trip {trip:g}km"
