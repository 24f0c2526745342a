"""Client configuration for pystromer."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pystromer._constants import BASE_URL
from pystromer.exceptions import StromerConfigError


@dataclasses.dataclass(frozen=True)
class PollingConfig:
    """Cadence and retry knobs for the reconciliation loop.

    Parameters
    ----------
    poll_interval : float
        Minutes between polls while the bike is idle.
    active_poll_interval : float
        Seconds between polls while the bike is in use.
    statistics_interval : float
        Minimum seconds between two fetches of the statistics endpoints.
    max_retries : int
        Consecutive hard failures after which the bike is reported degraded.
        Polling continues regardless.
    max_backoff : float
        Ceiling, in seconds, for the exponential retry delay.
    """

    poll_interval: float = 10
    active_poll_interval: float = 30
    statistics_interval: float = 60 * 60
    max_retries: int = 5
    max_backoff: float = 60

    def __post_init__(self) -> None:
        if self.poll_interval <= 0:
            raise StromerConfigError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.active_poll_interval <= 0:
            raise StromerConfigError(f"active_poll_interval must be positive, got {self.active_poll_interval}")

    @property
    def idle_seconds(self) -> float:
        return self.poll_interval * 60

    def interval_for(self, is_active: bool) -> float:
        """Seconds until the next poll for the given activity state."""
        return self.active_poll_interval if is_active else self.idle_seconds


@dataclasses.dataclass(frozen=True)
class StromerConfig:
    """Client configuration.

    Parameters
    ----------
    username : str
        Stromer portal account email.
    password : str
        Stromer portal account password.
    client_id : str
        OAuth client id captured from the official mobile app.
    client_secret : str or None
        OAuth client secret. Only the legacy ``v3`` API generation uses
        one; its presence selects that generation.
    base_url : str
        API base URL.
    request_timeout : float
        Total timeout in seconds for a single HTTP request.
    polling : PollingConfig
        Reconciliation loop cadence.
    """

    username: str
    password: str
    client_id: str
    client_secret: str | None = None
    base_url: str = BASE_URL
    request_timeout: float = 30.0
    polling: PollingConfig = dataclasses.field(default_factory=PollingConfig)

    @classmethod
    def from_env(cls, **overrides: Any) -> StromerConfig:
        """Create configuration from environment variables.

        Reads ``STROMER_USERNAME``, ``STROMER_PASSWORD``,
        ``STROMER_CLIENT_ID`` and optional ``STROMER_*`` variables.
        Explicit keyword arguments override environment values.

        Raises
        ------
        StromerConfigError
            If a required value is missing or a numeric value is invalid.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "STROMER_USERNAME": "username",
            "STROMER_PASSWORD": "password",
            "STROMER_CLIENT_ID": "client_id",
            "STROMER_CLIENT_SECRET": "client_secret",
            "STROMER_BASE_URL": "base_url",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val:
                config_kwargs[field_name] = val

        try:
            timeout_env = env.get("STROMER_REQUEST_TIMEOUT")
            if timeout_env is not None and "request_timeout" not in overrides:
                config_kwargs["request_timeout"] = float(timeout_env)

            polling_kwargs: dict[str, float] = {}
            poll_env = env.get("STROMER_POLL_INTERVAL")
            if poll_env is not None:
                polling_kwargs["poll_interval"] = float(poll_env)
            active_env = env.get("STROMER_ACTIVE_POLL_INTERVAL")
            if active_env is not None:
                polling_kwargs["active_poll_interval"] = float(active_env)
        except ValueError as exc:
            raise StromerConfigError(f"Invalid numeric STROMER_* value: {exc}") from exc

        if polling_kwargs and "polling" not in overrides:
            config_kwargs["polling"] = PollingConfig(**polling_kwargs)

        config_kwargs.update(overrides)

        missing = [name for name in ("username", "password", "client_id") if not config_kwargs.get(name)]
        if missing:
            raise StromerConfigError(f"Missing required configuration: {', '.join(missing)}")

        return cls(**config_kwargs)
