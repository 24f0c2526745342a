from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

import pytest

from pystromer._constants import ApiGeneration
from pystromer._transport import HttpResponse
from pystromer.client import StromerClient
from pystromer.config import StromerConfig
from pystromer.exceptions import (
    StromerApiError,
    StromerAuthenticationError,
    StromerInvalidCredentialsError,
    StromerUnauthorizedError,
)
from pystromer.models.statistics import StatisticsPeriod
from pystromer.models.status import LightMode
from pystromer.models.token import Credentials
from pystromer.session import TokenStore

_NOW = 10_000.0
_TOKEN_PATH = "/mobile/v4/o/token/"


class _FakeApi:
    """Minimal vendor API: bike reads require the current access token."""

    def __init__(self, *, valid_token: str = "AT1", refresh_delay: float = 0.0) -> None:
        self.valid_token = valid_token
        self.refresh_delay = refresh_delay
        self.refresh_calls = 0
        self.requests: list[tuple[str, str, str | None, Any]] = []
        self.overrides: dict[str, HttpResponse] = {}
        self.token_failure: HttpResponse | None = None

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        headers: Mapping[str, str] | None = None,
        json_body: Any = None,
    ) -> HttpResponse:
        auth = (headers or {}).get("authorization")
        self.requests.append((method, endpoint, auth, json_body))
        if endpoint == _TOKEN_PATH:
            self.refresh_calls += 1
            if self.refresh_delay:
                await asyncio.sleep(self.refresh_delay)
            if self.token_failure is not None:
                return self.token_failure
            self.valid_token = f"AT{self.refresh_calls + 1}"
            return HttpResponse(200, {"access_token": self.valid_token, "expires_in": 3600})
        if endpoint in self.overrides:
            return self.overrides[endpoint]
        if auth != f"Bearer {self.valid_token}":
            return HttpResponse(401, {"detail": "Invalid token."})
        return HttpResponse(200, {"data": [{"battery_SOC": 80, "bikeid": 7}]})


def _config(**overrides: Any) -> StromerConfig:
    return StromerConfig(username="rider@example.com", password="pw", client_id="cid", **overrides)


def _credentials(token: str = "AT1", *, expires_at: float = _NOW + 3600) -> Credentials:
    return Credentials(access_token=token, refresh_token="RT", expires_at=expires_at, client_id="cid")


def _client(api: _FakeApi, credentials: Credentials | None = None) -> StromerClient:
    return StromerClient(
        _config(),
        transport=api,
        credentials=credentials or _credentials(),
        clock=lambda: _NOW,
    )


@pytest.mark.asyncio
async def test_call_sends_bearer_token() -> None:
    api = _FakeApi()
    client = _client(api)

    status = await client.get_bike_state("7")

    assert status.battery_soc == 80
    assert api.requests == [("GET", "/rapi/mobile/v4.1/bike/7/state/", "Bearer AT1", None)]


@pytest.mark.asyncio
async def test_401_refreshes_once_and_retries() -> None:
    api = _FakeApi(valid_token="AT-server")
    client = _client(api)

    await client.get_bike_position("7")

    assert api.refresh_calls == 1
    assert client.tokens.require().access_token == "AT2"
    assert [r[2] for r in api.requests if r[1] != _TOKEN_PATH] == ["Bearer AT1", "Bearer AT2"]


@pytest.mark.asyncio
async def test_second_401_raises_unauthorized() -> None:
    api = _FakeApi()
    api.overrides["/rapi/mobile/v4.1/bike/7/state/"] = HttpResponse(401, {"detail": "nope"})
    client = _client(api)

    with pytest.raises(StromerUnauthorizedError) as excinfo:
        await client.get_bike_state("7")

    assert excinfo.value.status == 401
    assert api.refresh_calls == 1


@pytest.mark.asyncio
async def test_concurrent_401s_share_one_refresh() -> None:
    api = _FakeApi(valid_token="AT-server", refresh_delay=0.01)
    client = _client(api)

    await asyncio.gather(
        client.get_bike_state("7"),
        client.get_bike_position("7"),
        client.get_statistics("7", StatisticsPeriod.YEAR),
    )

    assert api.refresh_calls == 1
    assert client.tokens.require().access_token == "AT2"


@pytest.mark.asyncio
async def test_near_expiry_token_refreshed_before_call() -> None:
    api = _FakeApi(valid_token="AT2")
    client = _client(api, _credentials(expires_at=_NOW + 60))

    await client.get_bike_state("7")

    assert api.refresh_calls == 1
    assert api.requests[0][1] == _TOKEN_PATH
    assert api.requests[1][2] == "Bearer AT2"


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_failed_refresh() -> None:
    api = _FakeApi(valid_token="AT2", refresh_delay=0.01)
    api.token_failure = HttpResponse(503, {"detail": "Service Unavailable"})
    client = _client(api, _credentials(expires_at=_NOW + 60))

    results = await asyncio.gather(
        client.get_bike_state("7"),
        client.get_bike_position("7"),
        client.get_bike_details("7"),
        client.get_statistics("7", StatisticsPeriod.DAY),
        return_exceptions=True,
    )

    assert api.refresh_calls == 1
    assert all(isinstance(result, StromerAuthenticationError) for result in results)
    assert all(result.status == 503 for result in results)
    assert [r for r in api.requests if r[1] != _TOKEN_PATH] == []
    assert client.tokens.require().access_token == "AT1"


@pytest.mark.asyncio
async def test_refresh_is_attempted_again_after_a_failure() -> None:
    api = _FakeApi(valid_token="AT2")
    api.token_failure = HttpResponse(503, {"detail": "Service Unavailable"})
    client = _client(api, _credentials(expires_at=_NOW + 60))

    with pytest.raises(StromerAuthenticationError):
        await client.get_bike_state("7")
    api.token_failure = None
    await client.get_bike_state("7")

    assert api.refresh_calls == 2
    assert client.tokens.require().access_token == "AT3"


@pytest.mark.asyncio
async def test_failed_refresh_leaves_credentials_untouched() -> None:
    class _RejectingTransport:
        async def request(self, method: str, endpoint: str, **kwargs: Any) -> HttpResponse:
            if endpoint == _TOKEN_PATH:
                return HttpResponse(401, {"error": "invalid_grant"})
            return HttpResponse(401, {"detail": "Invalid token."})

    original = _credentials()
    client = StromerClient(_config(), transport=_RejectingTransport(), credentials=original, clock=lambda: _NOW)

    with pytest.raises(StromerInvalidCredentialsError):
        await client.get_bike_state("7")
    assert client.tokens.require() is original


@pytest.mark.asyncio
async def test_non_2xx_raises_api_error_with_status() -> None:
    api = _FakeApi()
    api.overrides["/rapi/mobile/v4.1/bike/7/state/"] = HttpResponse(503, {"detail": "maintenance"})
    client = _client(api)

    with pytest.raises(StromerApiError) as excinfo:
        await client.get_bike_state("7")

    assert excinfo.value.status == 503
    assert "maintenance" in str(excinfo.value)


@pytest.mark.asyncio
async def test_call_without_login_raises() -> None:
    client = StromerClient(_config(), transport=_FakeApi())

    with pytest.raises(StromerAuthenticationError, match="Not authenticated"):
        await client.get_bikes()


@pytest.mark.asyncio
async def test_token_store_listener_sees_refresh() -> None:
    seen: list[Credentials | None] = []
    api = _FakeApi(valid_token="AT-server")
    client = StromerClient(
        _config(),
        transport=api,
        token_store=TokenStore(_credentials(), on_update=seen.append),
        clock=lambda: _NOW,
    )

    await client.get_bike_state("7")

    assert [c.access_token for c in seen if c is not None] == ["AT2"]


@pytest.mark.asyncio
async def test_get_bikes_parses_list() -> None:
    client = _client(_FakeApi())

    bikes = await client.get_bikes()

    assert [b.id for b in bikes] == ["7"]


@pytest.mark.asyncio
async def test_writes_on_current_generation_use_post() -> None:
    api = _FakeApi()
    client = _client(api)

    await client.set_lock("7", True)
    await client.set_light("7", "bright")
    await client.reset_trip("7")

    assert [(m, e, b) for m, e, _a, b in api.requests] == [
        ("POST", "/rapi/mobile/v4.1/bike/7/lock/", {"status": "locked"}),
        ("POST", "/rapi/mobile/v4.1/bike/7/light/", {"mode": "bright"}),
        ("POST", "/rapi/mobile/v4.1/bike/7/trip/reset/", {}),
    ]


@pytest.mark.asyncio
async def test_writes_on_legacy_generation_use_put_and_delete() -> None:
    api = _FakeApi()
    legacy = Credentials(
        access_token="AT1",
        refresh_token="RT",
        expires_at=_NOW + 3600,
        client_id="cid",
        client_secret="secret",
        api_generation=ApiGeneration.V3,
    )
    client = _client(api, legacy)

    await client.set_lock("7", False)
    await client.set_light("7", LightMode.OFF)
    await client.reset_trip("7")

    assert [(m, e, b) for m, e, _a, b in api.requests] == [
        ("PUT", "/rapi/mobile/v2/bike/7/lock/", {"lock": "false"}),
        ("PUT", "/rapi/mobile/v2/bike/7/light/", {"mode": "off"}),
        ("DELETE", "/rapi/mobile/v2/bike/7/trip_data/", None),
    ]


@pytest.mark.asyncio
async def test_invalid_light_mode_rejected_before_sending() -> None:
    api = _FakeApi()
    client = _client(api)

    with pytest.raises(ValueError):
        await client.set_light("7", "disco")
    assert api.requests == []
