"""OAuth login and token refresh against either API generation."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from pystromer._api.login import (
    build_login_payload,
    build_password_grant,
    build_refresh_grant,
    parse_token_body,
    raise_for_auth_response,
)
from pystromer._constants import ApiGeneration, endpoints_for
from pystromer._transport import Transport
from pystromer.exceptions import StromerAuthenticationError, StromerNotAuthenticatedError
from pystromer.models.token import Credentials

_logger = logging.getLogger(__name__)


class AuthNegotiator:
    """Performs the two-step login and token refresh.

    The negotiator never stores credentials; it returns new
    :class:`Credentials` and leaves storing them to the caller.
    """

    def __init__(self, transport: Transport, *, clock: Callable[[], float] = time.time) -> None:
        self._transport = transport
        self._clock = clock

    async def login(
        self,
        username: str,
        password: str,
        client_id: str,
        client_secret: str | None = None,
    ) -> Credentials:
        """Validate the account, then obtain tokens with a password grant.

        The presence of *client_secret* selects the legacy ``v3`` URL set.

        Raises
        ------
        StromerAuthenticationError
            Subtype chosen from the status of the first failing step.
        """
        generation = ApiGeneration.for_client_secret(client_secret)
        endpoints = endpoints_for(generation)
        _logger.debug(
            "Authenticating user=%s generation=%s client_id=%s",
            username,
            generation,
            client_id,
        )

        login_response = await self._transport.request(
            "POST",
            endpoints.login,
            json_body=build_login_payload(username, password),
        )
        raise_for_auth_response(login_response, endpoint=endpoints.login, step="login")

        token_response = await self._transport.request(
            "POST",
            endpoints.token,
            json_body=build_password_grant(username, password, client_id, client_secret),
        )
        raise_for_auth_response(token_response, endpoint=endpoints.token, step="token")
        body = parse_token_body(token_response, endpoint=endpoints.token)

        credentials = Credentials.from_token_response(
            body,
            client_id=client_id,
            client_secret=client_secret,
            api_generation=generation,
            now=self._clock(),
        )
        _logger.info("Stromer authentication successful (generation=%s)", generation)
        return credentials

    async def refresh(self, credentials: Credentials) -> Credentials:
        """Exchange the refresh token for new credentials.

        A response without a new refresh token keeps the old one. On
        failure nothing is mutated; the error propagates.
        """
        if not credentials.refresh_token:
            raise StromerNotAuthenticatedError("No refresh token available")

        endpoints = endpoints_for(credentials.api_generation)
        response = await self._transport.request(
            "POST",
            endpoints.token,
            json_body=build_refresh_grant(
                credentials.refresh_token,
                credentials.client_id,
                credentials.client_secret,
            ),
        )
        try:
            raise_for_auth_response(response, endpoint=endpoints.token, step="token")
            body = parse_token_body(response, endpoint=endpoints.token)
        except StromerAuthenticationError as exc:
            _logger.warning("Token refresh failed: %s", exc)
            raise

        refreshed = Credentials.from_token_response(
            body,
            client_id=credentials.client_id,
            client_secret=credentials.client_secret,
            api_generation=credentials.api_generation,
            previous_refresh_token=credentials.refresh_token,
            now=self._clock(),
        )
        _logger.debug("Token refreshed, expires in %.0fs", refreshed.expires_in(self._clock()))
        return refreshed
