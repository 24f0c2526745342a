"""Failure classification and retry timing for the reconciler."""

from __future__ import annotations

import re

from pystromer.exceptions import (
    StromerApiError,
    StromerAuthenticationError,
    StromerCycleError,
    StromerFetchError,
    StromerForbiddenError,
    StromerInvalidCredentialsError,
    StromerMalformedRequestError,
    StromerNotAuthenticatedError,
)

# Matched against vendor error text only, never against a message that
# carries the request path (bike ids are numeric).
_AUTH_WORDS = re.compile(r"\b(?:401|authentication|credentials)\b", re.IGNORECASE)


def backoff_delay(retry_count: int, max_backoff: float) -> float:
    """Seconds to wait before retry number *retry_count* (1-based)."""
    if retry_count <= 0:
        return 0.0
    # Cap the exponent so huge retry counts do not build huge integers.
    return float(min(2 ** min(retry_count, 32), max_backoff))


def _mentions_auth(detail: str | None) -> bool:
    return bool(detail) and _AUTH_WORDS.search(detail) is not None


def is_auth_failure(exc: BaseException) -> bool:
    """Return ``True`` when *exc* means the session can no longer authenticate.

    A cycle error is an auth failure when any of its sub-fetch causes is.
    Rejected credentials, a revoked refresh token (``invalid_grant``) and a
    missing login count. Rate limiting and server-side failures of the
    token endpoint do not: they are transient and go through backoff.
    """
    if isinstance(exc, StromerCycleError):
        return any(is_auth_failure(err) for err in exc.errors)
    if isinstance(exc, StromerFetchError):
        return is_auth_failure(exc.cause)

    if isinstance(exc, (StromerInvalidCredentialsError, StromerForbiddenError, StromerNotAuthenticatedError)):
        return True
    if isinstance(exc, StromerMalformedRequestError):
        return "invalid_grant" in (exc.detail or "")
    if isinstance(exc, StromerAuthenticationError):
        if exc.status is not None and (exc.status == 429 or exc.status >= 500):
            return False
        return _mentions_auth(exc.detail)

    if isinstance(exc, StromerApiError):
        if exc.status == 401:
            return True
        if exc.status is not None and exc.status >= 500:
            return False
        return _mentions_auth(exc.detail)
    return False
