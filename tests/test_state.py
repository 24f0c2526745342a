from __future__ import annotations

import pytest

from pystromer.exceptions import (
    StromerApiError,
    StromerAuthenticationError,
    StromerCycleError,
    StromerFetchError,
    StromerForbiddenError,
    StromerInvalidCredentialsError,
    StromerMalformedRequestError,
    StromerNotAuthenticatedError,
    StromerRateLimitError,
    StromerTransportError,
    StromerUnauthorizedError,
)
from pystromer.models.position import BikePosition
from pystromer.models.statistics import PeriodStatistics
from pystromer.models.status import BikeStatus
from pystromer.state.capabilities import CAPABILITIES, Capability, FetchSection, build_patch
from pystromer.state.events import BikeEventType, detect_events
from pystromer.state.policy import backoff_delay, is_auth_failure
from pystromer.state.snapshot import CapabilitySnapshot


def test_every_capability_is_mapped_exactly_once() -> None:
    mapped = [rule.capability for rule in CAPABILITIES]
    assert sorted(mapped) == sorted(Capability)


def test_status_patch_applies_defaults_for_unset_fields() -> None:
    status = BikeStatus.model_validate({"battery_SOC": 64, "lock": "locked"})

    patch = build_patch(FetchSection.STATUS, status, {})

    assert patch[Capability.BATTERY_LEVEL] == 64
    assert patch[Capability.LOCKED] is True
    assert patch[Capability.THEFT_ALARM] is False
    assert patch[Capability.LIGHT_ON] is False
    assert patch[Capability.SPEED] == 0
    assert patch[Capability.TRIP_DISTANCE] == 0
    assert Capability.MOTOR_TEMPERATURE not in patch
    assert Capability.BATTERY_HEALTH not in patch


def test_patch_never_downgrades_present_values_to_defaults() -> None:
    status = BikeStatus.model_validate({"lock": "locked"})
    current = {Capability.BATTERY_LEVEL: 64.0, Capability.TRIP_DISTANCE: 12.5, Capability.THEFT_ALARM: True}

    patch = build_patch(FetchSection.STATUS, status, current)

    assert Capability.BATTERY_LEVEL not in patch
    assert Capability.TRIP_DISTANCE not in patch
    assert Capability.THEFT_ALARM not in patch


def test_position_and_statistics_patches() -> None:
    position = BikePosition.model_validate({"latitude": 47.1, "longitude": 8.2})
    assert build_patch(FetchSection.POSITION, position, {}) == {
        Capability.LATITUDE: 47.1,
        Capability.LONGITUDE: 8.2,
        Capability.LOCATION: "47.1, 8.2",
    }

    day = PeriodStatistics.model_validate({"avg_speed": 22.0, "distance": 31.0})
    assert build_patch(FetchSection.DAY, day, {}) == {Capability.DAY_AVERAGE_SPEED: 22.0}

    empty_year = PeriodStatistics.model_validate({})
    assert build_patch(FetchSection.YEAR, empty_year, {}) == {
        Capability.YEAR_DISTANCE: 0,
        Capability.YEAR_AVERAGE_SPEED: 0,
    }


def test_snapshot_merge_reports_only_changes() -> None:
    snapshot = CapabilitySnapshot()

    first = snapshot.merge({Capability.BATTERY_LEVEL: 80, Capability.LOCKED: True})
    second = snapshot.merge({Capability.BATTERY_LEVEL: 80, Capability.LOCKED: False})

    assert first == {Capability.BATTERY_LEVEL: 80, Capability.LOCKED: True}
    assert second == {Capability.LOCKED: False}
    assert snapshot[Capability.LOCKED] is False


def test_snapshot_predicates_and_summary() -> None:
    snapshot = CapabilitySnapshot(
        {
            Capability.BATTERY_LEVEL: 80.0,
            Capability.BATTERY_HEALTH: 95.0,
            Capability.LOCKED: True,
            Capability.LIGHT_ON: False,
            Capability.THEFT_ALARM: False,
            Capability.MOTOR_TEMPERATURE: 31.0,
            Capability.TRIP_DISTANCE: 12.5,
        }
    )

    assert snapshot.battery_above(50)
    assert not snapshot.battery_above(80)
    assert snapshot.battery_health_above(90)
    assert snapshot.is_locked()
    assert not snapshot.light_on()
    assert not snapshot.theft_active()
    assert snapshot.temperature_in_range("motor", 20, 40)
    assert not snapshot.temperature_in_range("battery", 20, 40)
    assert snapshot.summary("Commuter") == "Commuter: Battery 80%, Trip 12.5km"
    with pytest.raises(ValueError):
        snapshot.temperature_in_range("brakes", 0, 1)


def test_battery_events_fire_only_on_decrease() -> None:
    previous = {Capability.BATTERY_LEVEL: 80.0, Capability.BATTERY_HEALTH: 97.0}
    current = {Capability.BATTERY_LEVEL: 75.0, Capability.BATTERY_HEALTH: 96.0}

    events = detect_events("7", previous, current)

    assert [(e.type, e.tokens) for e in events] == [
        (BikeEventType.BATTERY_LOW, {"threshold": 75.0}),
        (BikeEventType.BATTERY_HEALTH_LOW, {"threshold": 96.0}),
    ]
    assert detect_events("7", current, previous) == []
    assert detect_events("7", {}, current) == []


def test_theft_fires_on_rising_edge_only() -> None:
    rising = detect_events("7", {Capability.THEFT_ALARM: False}, {Capability.THEFT_ALARM: True})
    from_unset = detect_events("7", {}, {Capability.THEFT_ALARM: True})
    steady = detect_events("7", {Capability.THEFT_ALARM: True}, {Capability.THEFT_ALARM: True})

    assert [e.type for e in rising] == [BikeEventType.THEFT_ACTIVATED]
    assert [e.type for e in from_unset] == [BikeEventType.THEFT_ACTIVATED]
    assert steady == []
    assert rising[0].tokens == {}


def test_unlock_fires_only_from_locked() -> None:
    assert [e.type for e in detect_events("7", {Capability.LOCKED: True}, {Capability.LOCKED: False})] == [
        BikeEventType.BIKE_UNLOCKED
    ]
    assert detect_events("7", {}, {Capability.LOCKED: False}) == []
    assert detect_events("7", {Capability.LOCKED: False}, {Capability.LOCKED: True}) == []


def test_several_events_in_one_comparison() -> None:
    previous = {Capability.THEFT_ALARM: False, Capability.LOCKED: True, Capability.BATTERY_LEVEL: 50.0}
    current = {Capability.THEFT_ALARM: True, Capability.LOCKED: False, Capability.BATTERY_LEVEL: 49.0}

    types = {e.type for e in detect_events("7", previous, current)}

    assert types == {BikeEventType.THEFT_ACTIVATED, BikeEventType.BIKE_UNLOCKED, BikeEventType.BATTERY_LOW}


def test_backoff_sequence_is_capped() -> None:
    assert [backoff_delay(n, 60) for n in range(1, 8)] == [2, 4, 8, 16, 32, 60, 60]
    assert backoff_delay(500, 60) == 60


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (StromerUnauthorizedError("unauthorized", status=401), True),
        (StromerApiError("failed", status=401), True),
        (StromerForbiddenError("rejected", status=403), True),
        (StromerInvalidCredentialsError("rejected", status=401), True),
        (StromerNotAuthenticatedError("Not authenticated"), True),
        (StromerNotAuthenticatedError("No refresh token available"), True),
        (StromerMalformedRequestError("rejected", status=400, detail="invalid_grant"), True),
        (StromerMalformedRequestError("rejected", status=400, detail="unsupported_grant_type"), False),
        (StromerApiError("failed", status=400, detail="Invalid credentials supplied"), True),
        (StromerApiError("failed", status=400, detail="bad credentialsfield"), False),
        (StromerRateLimitError("slow down", status=429, detail="Authentication throttled"), False),
        (StromerAuthenticationError("token failed with status 503", status=503, detail="upstream"), False),
        (StromerAuthenticationError("token failed", status=502, detail="authentication backend"), False),
        (StromerApiError("maintenance", status=503, detail="maintenance"), False),
        (StromerTransportError("Authentication required"), False),
        (StromerTransportError("connection reset"), False),
    ],
)
def test_is_auth_failure(error: Exception, expected: bool) -> None:
    assert is_auth_failure(error) is expected


@pytest.mark.parametrize("bike_id", ["14017", "401", "4011"])
def test_server_error_for_any_bike_id_is_not_auth_failure(bike_id: str) -> None:
    endpoint = f"/rapi/mobile/v4.1/bike/{bike_id}/state/"
    error = StromerApiError(
        f"API call to {endpoint} failed with status 503: Service Unavailable",
        status=503,
        endpoint=endpoint,
        detail="Service Unavailable",
    )

    assert not is_auth_failure(error)
    assert not is_auth_failure(StromerFetchError("status", error))


def test_not_found_text_is_matched_on_vendor_detail_only() -> None:
    endpoint = "/rapi/mobile/v4.1/bike/401/position/"

    assert not is_auth_failure(
        StromerApiError(f"API call to {endpoint} failed with status 404: not found", status=404, detail="not found")
    )
    forbidden = StromerApiError(f"API call to {endpoint} failed", status=403, detail="Authentication required")
    assert is_auth_failure(forbidden)


def test_cycle_error_is_auth_failure_when_any_cause_is() -> None:
    network = StromerFetchError("position", StromerTransportError("timeout"))
    auth = StromerFetchError("status", StromerUnauthorizedError("unauthorized", status=401))

    assert is_auth_failure(StromerCycleError([network, auth]))
    assert not is_auth_failure(StromerCycleError([network]))
