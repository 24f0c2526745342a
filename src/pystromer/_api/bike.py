"""Bike resource endpoints.

Paths are built from the :class:`~pystromer._constants.EndpointSet` of the
active API generation. Reads are plain GETs; writes are POSTs on the
current generation and PUT/DELETE on the legacy one.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from pystromer._constants import EndpointSet
from pystromer.models.bike import BikeIdentity
from pystromer.models.position import BikePosition
from pystromer.models.statistics import BikeDetails, PeriodStatistics, StatisticsPeriod
from pystromer.models.status import BikeStatus, LightMode

ApiCall = Callable[[str, str, Any], Awaitable[Any]]
"""``call(endpoint, method, body) -> decoded JSON``."""


def _items(payload: Any) -> list[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        nested = payload.get("data")
        if isinstance(nested, list):
            return nested
        if isinstance(nested, dict):
            return [nested]
    return []


async def fetch_bikes(call: ApiCall, endpoints: EndpointSet) -> list[BikeIdentity]:
    payload = await call(endpoints.bike_root, "GET", None)
    return [BikeIdentity.model_validate(item) for item in _items(payload) if isinstance(item, dict)]


async def fetch_state(call: ApiCall, endpoints: EndpointSet, bike_id: str) -> BikeStatus:
    payload = await call(endpoints.bike(bike_id, "state/"), "GET", None)
    return BikeStatus.model_validate(payload or {})


async def fetch_position(call: ApiCall, endpoints: EndpointSet, bike_id: str) -> BikePosition:
    payload = await call(endpoints.bike(bike_id, "position/"), "GET", None)
    return BikePosition.model_validate(payload or {})


async def fetch_details(call: ApiCall, endpoints: EndpointSet, bike_id: str) -> BikeDetails:
    payload = await call(endpoints.bike(bike_id), "GET", None)
    return BikeDetails.model_validate(payload or {})


async def fetch_statistics(
    call: ApiCall,
    endpoints: EndpointSet,
    bike_id: str,
    period: StatisticsPeriod,
) -> PeriodStatistics:
    payload = await call(endpoints.bike(bike_id, f"statistics/{period.value}/"), "GET", None)
    return PeriodStatistics.model_validate(payload or {})


async def set_light(call: ApiCall, endpoints: EndpointSet, bike_id: str, mode: LightMode) -> Any:
    method = "POST" if endpoints.writes_use_post else "PUT"
    return await call(endpoints.bike(bike_id, "light/"), method, {"mode": mode.value})


async def set_lock(call: ApiCall, endpoints: EndpointSet, bike_id: str, locked: bool) -> Any:
    if endpoints.writes_use_post:
        body = {"status": "locked" if locked else "unlocked"}
        return await call(endpoints.bike(bike_id, "lock/"), "POST", body)
    return await call(endpoints.bike(bike_id, "lock/"), "PUT", {"lock": "true" if locked else "false"})


async def reset_trip(call: ApiCall, endpoints: EndpointSet, bike_id: str) -> Any:
    if endpoints.writes_use_post:
        return await call(endpoints.bike(bike_id, "trip/reset/"), "POST", {})
    return await call(endpoints.bike(bike_id, "trip_data/"), "DELETE", None)
