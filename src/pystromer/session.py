"""Credential storage for one account session."""

from __future__ import annotations

import logging
from collections.abc import Callable

from pystromer.exceptions import StromerNotAuthenticatedError
from pystromer.models.token import Credentials

_logger = logging.getLogger(__name__)


class TokenStore:
    """Holds the current :class:`Credentials` for one account session.

    Credentials are swapped as a whole; there is no partial update.
    An optional *on_update* listener is told about every replacement so
    the host can persist tokens.
    """

    def __init__(
        self,
        credentials: Credentials | None = None,
        *,
        on_update: Callable[[Credentials | None], None] | None = None,
    ) -> None:
        self._credentials = credentials
        self._on_update = on_update

    @property
    def credentials(self) -> Credentials | None:
        return self._credentials

    @property
    def is_authenticated(self) -> bool:
        return self._credentials is not None

    def require(self) -> Credentials:
        """Return the current credentials or raise if not logged in."""
        if self._credentials is None:
            raise StromerNotAuthenticatedError("Not authenticated")
        return self._credentials

    def replace(self, credentials: Credentials) -> None:
        self._credentials = credentials
        self._notify()

    def clear(self) -> None:
        self._credentials = None
        self._notify()

    def _notify(self) -> None:
        if self._on_update is None:
            return
        try:
            self._on_update(self._credentials)
        except Exception:
            _logger.debug("Token store update listener failed", exc_info=True)
