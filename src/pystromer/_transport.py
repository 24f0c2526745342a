"""HTTP transport for the Stromer JSON API."""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pystromer._constants import USER_AGENT
from pystromer._redact import redact_for_log
from pystromer.exceptions import StromerTransportError

_logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class HttpResponse:
    """Status and decoded JSON body of a completed request."""

    status: int
    body: Any = None
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def error_message(self) -> str:
        """Best-effort human readable error from the body."""
        if isinstance(self.body, dict):
            for key in ("error_description", "error", "message", "detail"):
                value = self.body.get(key)
                if value:
                    return str(value)
        if self.text:
            return self.text[:200]
        return f"HTTP {self.status}"

    def error_code(self) -> str | None:
        """OAuth-style ``error`` code from the body, if any."""
        if isinstance(self.body, dict):
            code = self.body.get("error")
            if isinstance(code, str) and code:
                return code
        return None


class Transport(Protocol):
    """Structural transport interface.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        headers: Mapping[str, str] | None = None,
        json_body: Any = None,
    ) -> HttpResponse: ...


class HttpTransport:
    """aiohttp-backed transport.

    Non-2xx responses are returned, not raised; callers classify them.
    Network failures and undecodable 2xx bodies raise
    :class:`StromerTransportError`.
    """

    def __init__(
        self,
        base_url: str,
        http_session: aiohttp.ClientSession,
        *,
        timeout: float = 30.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        headers: Mapping[str, str] | None = None,
        json_body: Any = None,
    ) -> HttpResponse:
        request_headers: dict[str, str] = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        if headers:
            request_headers.update(headers)

        url = f"{self._base_url}{endpoint}"
        kwargs: dict[str, Any] = {"headers": request_headers, "timeout": self._timeout}
        if json_body is not None and method.upper() != "GET":
            kwargs["json"] = json_body

        _logger.debug("%s %s body=%s", method, url, redact_for_log(json_body))

        try:
            async with self._http.request(method, url, **kwargs) as resp:
                text = await resp.text()
                status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise StromerTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc

        body: Any = None
        if text.strip():
            try:
                body = json.loads(text)
            except json.JSONDecodeError as exc:
                if 200 <= status < 300:
                    raise StromerTransportError(
                        f"Invalid JSON from {endpoint}: {text[:200]}",
                        status_code=status,
                        endpoint=endpoint,
                    ) from exc

        _logger.debug("%s %s -> %s %s", method, url, status, redact_for_log(body))
        return HttpResponse(status=status, body=body, text=text)
