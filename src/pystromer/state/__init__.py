"""State layer.

This package is the single source of truth for how fetched bike payloads
are mapped into a per-bike capability snapshot, and which transitions of
that snapshot are reported as events.
"""

from pystromer.state.capabilities import CAPABILITIES, Capability, CapabilityRule, DefaultPolicy, FetchSection
from pystromer.state.events import BikeEvent, BikeEventType, detect_events
from pystromer.state.snapshot import CapabilitySnapshot

__all__ = [
    "CAPABILITIES",
    "BikeEvent",
    "BikeEventType",
    "Capability",
    "CapabilitySnapshot",
    "CapabilityRule",
    "DefaultPolicy",
    "FetchSection",
    "detect_events",
]
