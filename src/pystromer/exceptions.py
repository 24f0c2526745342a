"""Custom exception hierarchy for pystromer."""

from __future__ import annotations

from collections.abc import Sequence


class StromerError(Exception):
    """Base exception for all pystromer errors."""


class StromerConfigError(StromerError):
    """Invalid or missing configuration."""


class StromerTransportError(StromerError):
    """HTTP-level failure (network, timeout, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class StromerApiError(StromerError):
    """API returned a non-2xx status.

    ``status`` carries the HTTP status verbatim and ``detail`` the error text
    the vendor sent back, so callers can classify a failure without looking
    at ``message``, which embeds the endpoint path.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        endpoint: str = "",
        detail: str | None = None,
    ) -> None:
        self.status = status
        self.message = message
        self.endpoint = endpoint
        self.detail = detail
        super().__init__(message)


class StromerUnauthorizedError(StromerApiError):
    """Request still rejected with 401 after one refresh-and-retry."""


class StromerAuthenticationError(StromerError):
    """Login or token refresh failed.

    Used as-is for failures that do not map to a more specific subtype.
    ``detail`` holds the vendor's error text when there was a response.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        endpoint: str = "",
        detail: str | None = None,
    ) -> None:
        self.status = status
        self.endpoint = endpoint
        self.detail = detail
        super().__init__(message)


class StromerNotAuthenticatedError(StromerAuthenticationError):
    """No usable credentials: never logged in, or no refresh token to use."""


class StromerInvalidCredentialsError(StromerAuthenticationError):
    """Wrong username, password or client id (HTTP 401)."""


class StromerForbiddenError(StromerAuthenticationError):
    """Authentication rejected (HTTP 403).

    Usually a wrong password, a locked account or a rotated client id.
    """


class StromerRateLimitError(StromerAuthenticationError):
    """Too many login attempts (HTTP 429)."""


class StromerMalformedRequestError(StromerAuthenticationError):
    """OAuth request rejected as malformed (HTTP 400).

    Often indicates an API generation mismatch.
    """


class StromerFetchError(StromerError):
    """A single sub-fetch of a reconciliation cycle failed.

    Always caught by the reconciler and converted to "no data".
    """

    def __init__(self, fetch: str, cause: BaseException) -> None:
        self.fetch = fetch
        self.cause = cause
        super().__init__(f"Failed to get bike {fetch}: {cause}")


class StromerCycleError(StromerError):
    """Every sub-fetch of a reconciliation cycle failed."""

    def __init__(self, errors: Sequence[StromerFetchError]) -> None:
        self.errors = list(errors)
        detail = "; ".join(str(err) for err in self.errors)
        super().__init__(f"Failed to fetch bike data: {detail}" if detail else "Failed to fetch bike data")


class StromerCommandError(StromerError):
    """A user command (lock, light, trip reset) failed."""

    def __init__(self, message: str, *, command: str) -> None:
        self.command = command
        super().__init__(message)
