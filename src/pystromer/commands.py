"""User commands for a single bike.

Each command performs one vendor write, applies the expected outcome to
the snapshot without waiting for the next poll, then asks the reconciler
for an out-of-band refresh to confirm it.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from pystromer.exceptions import StromerCommandError
from pystromer.models.status import LightMode
from pystromer.state.capabilities import Capability

if TYPE_CHECKING:
    from pystromer.client import StromerClient
    from pystromer.reconciler import StateReconciler

_logger = logging.getLogger(__name__)


class CommandDispatcher:
    """Send lock, light and trip-reset commands for the reconciler's bike.

    Write failures raise :class:`~pystromer.exceptions.StromerCommandError`
    chained to the underlying error. Commands are never retried and never
    touch the reconciler's backoff state.
    """

    def __init__(self, client: StromerClient, reconciler: StateReconciler) -> None:
        self._client = client
        self._reconciler = reconciler

    @property
    def bike_id(self) -> str:
        return self._reconciler.bike_id

    async def _execute(
        self,
        command: str,
        failure_message: str,
        write: Callable[[], Awaitable[Any]],
        optimistic: tuple[Capability, Any],
    ) -> Any:
        try:
            result = await write()
        except Exception as exc:
            _logger.warning("Bike %s: %s failed: %s", self.bike_id, command, exc)
            raise StromerCommandError(failure_message, command=command) from exc

        capability, value = optimistic
        self._reconciler.apply_optimistic(capability, value)
        _logger.debug("Bike %s: %s sent, refreshing state", self.bike_id, command)
        await self._reconciler.refresh()
        return result

    async def set_lock(self, locked: bool) -> Any:
        return await self._execute(
            "lock",
            "Failed to control bike lock",
            lambda: self._client.set_lock(self.bike_id, locked),
            (Capability.LOCKED, locked),
        )

    async def set_light(self, mode: LightMode | str) -> Any:
        """Switch the light.

        Parameters
        ----------
        mode : LightMode or str
            ``"on"``, ``"off"`` or ``"bright"``. Invalid values raise
            ``ValueError`` before anything is sent.
        """
        light_mode = LightMode(mode)
        return await self._execute(
            "light",
            "Failed to control bike light",
            lambda: self._client.set_light(self.bike_id, light_mode),
            (Capability.LIGHT_ON, light_mode.is_lit),
        )

    async def reset_trip(self) -> Any:
        return await self._execute(
            "reset_trip",
            "Failed to reset trip distance",
            lambda: self._client.reset_trip(self.bike_id),
            (Capability.TRIP_DISTANCE, 0),
        )
