"""Login and token endpoints.

Endpoints (per API generation, see :data:`pystromer._constants.ENDPOINTS`):
  - login: plain credential validation
  - token: OAuth ``password`` and ``refresh_token`` grants
"""

from __future__ import annotations

from typing import Any

from pystromer._transport import HttpResponse
from pystromer.exceptions import (
    StromerAuthenticationError,
    StromerForbiddenError,
    StromerInvalidCredentialsError,
    StromerMalformedRequestError,
    StromerRateLimitError,
)

_STATUS_ERRORS: dict[int, type[StromerAuthenticationError]] = {
    400: StromerMalformedRequestError,
    401: StromerInvalidCredentialsError,
    403: StromerForbiddenError,
    429: StromerRateLimitError,
}

_LOGIN_HINTS: dict[int, str] = {
    401: "Invalid credentials (401): wrong username or password",
    403: "Authentication rejected (403): wrong password, locked account or outdated client id",
    429: "Rate limit exceeded (429): too many login attempts, wait a few minutes",
}

_TOKEN_HINTS: dict[int, str] = {
    400: "Invalid OAuth request (400): API generation mismatch or malformed request",
    401: "OAuth token rejected (401): the client id may have expired or been rotated",
    403: "OAuth token rejected (403): the client id may have expired or been rotated",
}


def build_login_payload(username: str, password: str) -> dict[str, str]:
    return {"username": username, "password": password}


def build_password_grant(
    username: str,
    password: str,
    client_id: str,
    client_secret: str | None,
) -> dict[str, str]:
    body = {
        "grant_type": "password",
        "username": username,
        "password": password,
        "client_id": client_id,
    }
    if client_secret:
        body["client_secret"] = client_secret
    return body


def build_refresh_grant(refresh_token: str, client_id: str, client_secret: str | None) -> dict[str, str]:
    body = {
        "grant_type": "refresh_token",
        "refresh_token": refresh_token,
        "client_id": client_id,
    }
    if client_secret:
        body["client_secret"] = client_secret
    return body


def raise_for_auth_response(response: HttpResponse, *, endpoint: str, step: str) -> None:
    """Raise the :class:`StromerAuthenticationError` subtype for a failed step.

    *step* is ``"login"`` or ``"token"`` and selects the hint prepended to
    the vendor's own message.
    """
    if response.ok:
        return
    status = response.status
    hints = _LOGIN_HINTS if step == "login" else _TOKEN_HINTS
    original = response.error_message()
    code = response.error_code()
    detail = original if code is None or code in original else f"{code}: {original}"
    hint = hints.get(status)
    message = f"{hint}. Original error: {original}" if hint else f"{step} failed with status {status}: {original}"
    error_cls = _STATUS_ERRORS.get(status, StromerAuthenticationError)
    raise error_cls(message, status=status, endpoint=endpoint, detail=detail)


def parse_token_body(response: HttpResponse, *, endpoint: str) -> dict[str, Any]:
    body = response.body
    if not isinstance(body, dict) or not body.get("access_token"):
        raise StromerAuthenticationError(
            "Token response missing access_token",
            status=response.status,
            endpoint=endpoint,
        )
    return body
