"""OAuth credential model."""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

from pystromer._constants import DEFAULT_EXPIRES_IN, DEFAULT_TOKEN_TYPE, TOKEN_EXPIRY_BUFFER, ApiGeneration
from pystromer.models._normalize import safe_float


class Credentials(BaseModel):
    """OAuth2 credentials for one account session.

    Instances are immutable: login and refresh produce a new object
    which replaces the previous one as a whole.

    Parameters
    ----------
    access_token : str
        Bearer token sent with every bike API call.
    refresh_token : str or None
        Token exchanged for a new access token.
    token_type : str
        Authorization scheme, ``"Bearer"`` unless the server says otherwise.
    expires_at : float
        Absolute expiry as epoch seconds.
    client_id : str
        OAuth client id used for the grant.
    client_secret : str or None
        OAuth client secret (legacy ``v3`` generation only).
    api_generation : ApiGeneration
        API generation whose URL set issued these credentials.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    access_token: str
    refresh_token: str | None = None
    token_type: str = DEFAULT_TOKEN_TYPE
    expires_at: float
    client_id: str
    client_secret: str | None = None
    api_generation: ApiGeneration = ApiGeneration.V4

    @classmethod
    def from_token_response(
        cls,
        data: Mapping[str, Any],
        *,
        client_id: str,
        client_secret: str | None,
        api_generation: ApiGeneration,
        previous_refresh_token: str | None = None,
        now: float | None = None,
    ) -> Credentials:
        """Build credentials from a token-endpoint response body.

        A response without ``refresh_token`` keeps *previous_refresh_token*.
        """
        issued_at = time.time() if now is None else now
        expires_in = safe_float(data.get("expires_in")) or DEFAULT_EXPIRES_IN
        return cls(
            access_token=str(data["access_token"]),
            refresh_token=data.get("refresh_token") or previous_refresh_token,
            token_type=data.get("token_type") or DEFAULT_TOKEN_TYPE,
            expires_at=issued_at + expires_in,
            client_id=client_id,
            client_secret=client_secret,
            api_generation=api_generation,
        )

    @property
    def authorization_header(self) -> str:
        return f"{self.token_type} {self.access_token}"

    def expires_in(self, now: float | None = None) -> float:
        """Seconds left before expiry (negative once expired)."""
        return self.expires_at - (time.time() if now is None else now)

    def is_near_expiry(self, now: float | None = None, buffer: float = TOKEN_EXPIRY_BUFFER) -> bool:
        """Whether fewer than *buffer* seconds remain before expiry."""
        return self.expires_in(now) < buffer

    def same_token(self, other: Credentials | None) -> bool:
        return other is not None and other.access_token == self.access_token

    def persisted(self) -> dict[str, Any]:
        """Serializable form for host-side token storage."""
        return self.model_dump(mode="json")
