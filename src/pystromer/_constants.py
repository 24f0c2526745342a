"""Internal constants shared across the library."""

from __future__ import annotations

import dataclasses
from enum import StrEnum

BASE_URL = "https://api3.stromer-portal.ch"
USER_AGENT = "pystromer"

#: Credentials closer than this to ``expires_at`` are refreshed before use.
TOKEN_EXPIRY_BUFFER: float = 5 * 60

#: Lifetime assumed when the token endpoint omits ``expires_in``.
DEFAULT_EXPIRES_IN: float = 3600

DEFAULT_TOKEN_TYPE = "Bearer"


class ApiGeneration(StrEnum):
    """Vendor API generation.

    ``V3`` is the legacy generation that requires a client secret;
    ``V4`` is the current OAuth-only generation.
    """

    V3 = "v3"
    V4 = "v4"

    @classmethod
    def for_client_secret(cls, client_secret: str | None) -> ApiGeneration:
        return cls.V3 if client_secret else cls.V4


@dataclasses.dataclass(frozen=True)
class EndpointSet:
    """URL paths for one API generation (relative to the base URL)."""

    login: str
    token: str
    bike_root: str
    writes_use_post: bool

    def bike(self, bike_id: str, suffix: str = "") -> str:
        return f"{self.bike_root}{bike_id}/{suffix}"


ENDPOINTS: dict[ApiGeneration, EndpointSet] = {
    ApiGeneration.V3: EndpointSet(
        login="/users/login/",
        token="/o/token/",
        bike_root="/rapi/mobile/v2/bike/",
        writes_use_post=False,
    ),
    ApiGeneration.V4: EndpointSet(
        login="/mobile/v4/login/",
        token="/mobile/v4/o/token/",
        bike_root="/rapi/mobile/v4.1/bike/",
        writes_use_post=True,
    ),
}


def endpoints_for(generation: ApiGeneration) -> EndpointSet:
    return ENDPOINTS[generation]
