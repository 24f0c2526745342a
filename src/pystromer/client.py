"""High-level async client for the Stromer bike API."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

import aiohttp

from pystromer._api import bike as _bike_api
from pystromer._constants import ApiGeneration, EndpointSet, endpoints_for
from pystromer._transport import HttpResponse, HttpTransport, Transport
from pystromer.auth import AuthNegotiator
from pystromer.config import StromerConfig
from pystromer.exceptions import StromerApiError, StromerError, StromerUnauthorizedError
from pystromer.models.bike import BikeIdentity
from pystromer.models.position import BikePosition
from pystromer.models.statistics import BikeDetails, PeriodStatistics, StatisticsPeriod
from pystromer.models.status import BikeStatus, LightMode
from pystromer.models.token import Credentials
from pystromer.session import TokenStore

_logger = logging.getLogger(__name__)


class StromerClient:
    """Async client for the Stromer bike API.

    Usage::

        async with StromerClient(config) as client:
            await client.login()
            bikes = await client.get_bikes()

    Every call carries a valid bearer token: credentials close to expiry
    are refreshed first, and a 401 triggers exactly one refresh-and-retry.
    Concurrent callers holding the same expired token share a single
    refresh request and its outcome.
    """

    def __init__(
        self,
        config: StromerConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        token_store: TokenStore | None = None,
        credentials: Credentials | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = transport
        self._tokens = token_store if token_store is not None else TokenStore(credentials)
        self._clock = clock
        self._refresh_task: asyncio.Task[Credentials] | None = None
        self._refresh_for: str | None = None
        self._auth: AuthNegotiator | None = AuthNegotiator(transport, clock=clock) if transport is not None else None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> StromerClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(
                self._config.base_url,
                self._http_session,
                timeout=self._config.request_timeout,
            )
            self._auth = AuthNegotiator(self._transport, clock=self._clock)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._transport = None
            self._auth = None

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    @property
    def config(self) -> StromerConfig:
        return self._config

    @property
    def tokens(self) -> TokenStore:
        return self._tokens

    @property
    def api_generation(self) -> ApiGeneration:
        credentials = self._tokens.credentials
        if credentials is not None:
            return credentials.api_generation
        return ApiGeneration.for_client_secret(self._config.client_secret)

    @property
    def endpoints(self) -> EndpointSet:
        return endpoints_for(self.api_generation)

    async def login(self) -> Credentials:
        """Authenticate with the configured account and store the credentials."""
        credentials = await self._require_auth().login(
            self._config.username,
            self._config.password,
            self._config.client_id,
            self._config.client_secret,
        )
        self._tokens.replace(credentials)
        return credentials

    async def ensure_credentials(self) -> Credentials:
        """Return usable credentials, refreshing first when near expiry."""
        current = self._tokens.require()
        if current.is_near_expiry(self._clock()):
            _logger.debug("Access token near expiry, refreshing before call")
            return await self.refresh_credentials(current)
        return current

    async def refresh_credentials(self, stale: Credentials) -> Credentials:
        """Refresh *stale* credentials, at most once per token.

        Callers holding the same stale token while a refresh is in flight
        await that refresh and share its outcome, success or failure. A
        failed refresh leaves the store untouched and propagates.
        """
        current = self._tokens.require()
        if not current.same_token(stale):
            return current
        task = self._refresh_task
        if task is None or task.done() or self._refresh_for != current.access_token:
            task = asyncio.get_running_loop().create_task(self._refresh(current))
            task.add_done_callback(self._refresh_finished)
            self._refresh_task = task
            self._refresh_for = current.access_token
        # Shielded so one cancelled caller does not abort the refresh for the rest.
        return await asyncio.shield(task)

    async def _refresh(self, current: Credentials) -> Credentials:
        refreshed = await self._require_auth().refresh(current)
        self._tokens.replace(refreshed)
        return refreshed

    def _refresh_finished(self, task: asyncio.Task[Credentials]) -> None:
        if self._refresh_task is task:
            self._refresh_task = None
            self._refresh_for = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise StromerError("Client not initialized. Use 'async with StromerClient(...) as client:'")
        return self._transport

    def _require_auth(self) -> AuthNegotiator:
        if self._auth is None:
            raise StromerError("Client not initialized. Use 'async with StromerClient(...) as client:'")
        return self._auth

    async def _send(self, method: str, endpoint: str, credentials: Credentials, body: Any) -> HttpResponse:
        return await self._require_transport().request(
            method,
            endpoint,
            headers={"authorization": credentials.authorization_header},
            json_body=body,
        )

    async def call(self, endpoint: str, method: str = "GET", body: Any = None) -> Any:
        """Execute an authenticated request and return the decoded JSON.

        Raises
        ------
        StromerUnauthorizedError
            The request was rejected with 401 again after one refresh.
        StromerApiError
            Any other non-2xx status (``status`` carries it verbatim).
        StromerAuthenticationError
            Not logged in, or the refresh itself failed.
        """
        credentials = await self.ensure_credentials()
        response = await self._send(method, endpoint, credentials, body)

        if response.status == 401:
            _logger.debug("401 from %s, refreshing token and retrying once", endpoint)
            credentials = await self.refresh_credentials(credentials)
            response = await self._send(method, endpoint, credentials, body)
            if response.status == 401:
                raise StromerUnauthorizedError(
                    f"API call to {endpoint} unauthorized after token refresh",
                    status=401,
                    endpoint=endpoint,
                    detail=response.error_message(),
                )

        if not response.ok:
            detail = response.error_message()
            raise StromerApiError(
                f"API call to {endpoint} failed with status {response.status}: {detail}",
                status=response.status,
                endpoint=endpoint,
                detail=detail,
            )
        return response.body

    # ------------------------------------------------------------------
    # Read endpoints
    # ------------------------------------------------------------------

    async def get_bikes(self) -> list[BikeIdentity]:
        """Fetch all bikes associated with the account."""
        return await _bike_api.fetch_bikes(self.call, self.endpoints)

    async def get_bike_state(self, bike_id: str) -> BikeStatus:
        return await _bike_api.fetch_state(self.call, self.endpoints, bike_id)

    async def get_bike_position(self, bike_id: str) -> BikePosition:
        return await _bike_api.fetch_position(self.call, self.endpoints, bike_id)

    async def get_bike_details(self, bike_id: str) -> BikeDetails:
        return await _bike_api.fetch_details(self.call, self.endpoints, bike_id)

    async def get_statistics(self, bike_id: str, period: StatisticsPeriod) -> PeriodStatistics:
        """Fetch year, month or day aggregates."""
        return await _bike_api.fetch_statistics(self.call, self.endpoints, bike_id, period)

    # ------------------------------------------------------------------
    # Write endpoints
    # ------------------------------------------------------------------

    async def set_light(self, bike_id: str, mode: LightMode | str) -> Any:
        return await _bike_api.set_light(self.call, self.endpoints, bike_id, LightMode(mode))

    async def set_lock(self, bike_id: str, locked: bool) -> Any:
        return await _bike_api.set_lock(self.call, self.endpoints, bike_id, locked)

    async def reset_trip(self, bike_id: str) -> Any:
        return await _bike_api.reset_trip(self.call, self.endpoints, bike_id)
