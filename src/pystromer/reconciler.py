"""Adaptive polling loop that keeps one bike's capability snapshot current.

One :class:`StateReconciler` owns the snapshot of a single bike. Each cycle
fans out the vendor reads concurrently, merges whatever succeeded through
the capability table, reports edge-triggered events, and schedules the next
cycle on a cadence that depends on whether the bike is in use.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pystromer.config import PollingConfig
from pystromer.exceptions import StromerCycleError, StromerError, StromerFetchError
from pystromer.models.bike import BikeIdentity
from pystromer.models.statistics import StatisticsPeriod
from pystromer.state.capabilities import Capability, FetchSection, build_patch
from pystromer.state.events import BikeEvent, detect_events
from pystromer.state.policy import backoff_delay, is_auth_failure
from pystromer.state.snapshot import CapabilitySnapshot

if TYPE_CHECKING:
    from pystromer.client import StromerClient

_logger = logging.getLogger(__name__)

CapabilityCallback = Callable[[Capability, Any], None]
AvailabilityCallback = Callable[[bool, str | None], None]
EventListener = Callable[[BikeEvent], None]

_STATISTICS_PERIODS: dict[FetchSection, StatisticsPeriod] = {
    FetchSection.YEAR: StatisticsPeriod.YEAR,
    FetchSection.MONTH: StatisticsPeriod.MONTH,
    FetchSection.DAY: StatisticsPeriod.DAY,
}


class ReconcilerState(StrEnum):
    CONNECTING = "connecting"
    POLLING = "polling"
    UNAVAILABLE_AUTH = "unavailable_auth"
    UNAVAILABLE_DEGRADED = "unavailable_degraded"


@dataclasses.dataclass
class PollState:
    """Loop bookkeeping, exposed read-only through :attr:`StateReconciler.poll_state`."""

    is_active: bool = False
    retry_count: int = 0
    last_stats_fetch_at: float | None = None
    next_delay: float | None = None


class StateReconciler:
    """Keep a bike's :class:`CapabilitySnapshot` in sync with the vendor API.

    Parameters
    ----------
    client : StromerClient
        Authenticated client used for all reads.
    bike : BikeIdentity or str
        Bike to track.
    polling : PollingConfig or None
        Cadence and retry knobs. Defaults to ``client.config.polling``.
    on_capability : callable or None
        Called as ``on_capability(capability, value)`` for every changed value.
    on_availability : callable or None
        Called as ``on_availability(available, reason)`` on state transitions.
    clock : callable
        Monotonic clock in seconds, used for the statistics throttle.
    """

    def __init__(
        self,
        client: StromerClient,
        bike: BikeIdentity | str,
        *,
        polling: PollingConfig | None = None,
        on_capability: CapabilityCallback | None = None,
        on_availability: AvailabilityCallback | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._bike_id = bike.id if isinstance(bike, BikeIdentity) else bike
        self._polling = polling if polling is not None else client.config.polling
        self._on_capability = on_capability
        self._on_availability = on_availability
        self._clock = clock

        self._snapshot = CapabilitySnapshot()
        self._state = ReconcilerState.CONNECTING
        self._poll = PollState()
        self._listeners: list[EventListener] = []

        self._cycle_lock = asyncio.Lock()
        # Sequence numbers of optimistic writes, per capability.
        self._write_seq = 0
        self._optimistic_writes: dict[Capability, int] = {}
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._started = False
        self._closed = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def bike_id(self) -> str:
        return self._bike_id

    @property
    def snapshot(self) -> CapabilitySnapshot:
        return self._snapshot

    @property
    def state(self) -> ReconcilerState:
        return self._state

    @property
    def poll_state(self) -> PollState:
        return dataclasses.replace(self._poll)

    @property
    def polling(self) -> PollingConfig:
        return self._polling

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None and not self._timer.cancelled()

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Run the first cycle and begin polling. Calling it twice is a no-op."""
        if self._closed:
            raise StromerError("Reconciler has been stopped")
        if self._started:
            return
        self._started = True
        _logger.debug("Starting reconciler for bike %s", self._bike_id)
        await self._run_cycle()

    async def refresh(self) -> list[BikeEvent]:
        """Run one cycle now, serialized with the polling loop.

        Failures are handled like any loop failure and never raised.
        Returns the events fired by this cycle.
        """
        if self._closed:
            return []
        return await self._run_cycle()

    def update_intervals(
        self,
        *,
        poll_interval: float | None = None,
        active_poll_interval: float | None = None,
    ) -> None:
        """Change the polling cadence and reschedule the pending poll."""
        changes: dict[str, float] = {}
        if poll_interval is not None:
            changes["poll_interval"] = poll_interval
        if active_poll_interval is not None:
            changes["active_poll_interval"] = active_poll_interval
        if not changes:
            return
        self._polling = dataclasses.replace(self._polling, **changes)
        _logger.info(
            "Polling intervals for bike %s: idle=%s min, active=%s s",
            self._bike_id,
            self._polling.poll_interval,
            self._polling.active_poll_interval,
        )
        if self._loop_running():
            self._schedule(self._polling.interval_for(self._poll.is_active))

    async def stop(self) -> None:
        """Tear down: cancel the timer and any running cycle, drop the snapshot."""
        if self._closed:
            return
        self._closed = True
        self._cancel_timer()
        current = asyncio.current_task()
        pending = [task for task in self._tasks if task is not current]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()
        self._listeners.clear()
        self._snapshot.clear()
        _logger.debug("Stopped reconciler for bike %s", self._bike_id)

    # ------------------------------------------------------------------
    # Host boundary
    # ------------------------------------------------------------------

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register an event listener and return a callable that removes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return _unsubscribe

    def apply_optimistic(self, capability: Capability, value: Any) -> bool:
        """Write a value right after a successful command, ahead of the next poll.

        A cycle already fetching when the write lands keeps it rather than
        applying its own older read. Returns ``True`` when the snapshot changed.
        """
        if self._closed:
            return False
        self._write_seq += 1
        self._optimistic_writes[capability] = self._write_seq
        changed = self._snapshot.set(capability, value)
        if changed:
            self._publish_capability(capability, value)
        return changed

    def _publish_capability(self, capability: Capability, value: Any) -> None:
        if self._on_capability is None:
            return
        try:
            self._on_capability(capability, value)
        except Exception:
            _logger.debug("on_capability callback failed for %s", capability, exc_info=True)

    def _publish_availability(self, available: bool, reason: str | None) -> None:
        if self._on_availability is None:
            return
        try:
            self._on_availability(available, reason)
        except Exception:
            _logger.debug("on_availability callback failed", exc_info=True)

    def _emit(self, event: BikeEvent) -> None:
        _logger.info("Bike %s event: %s %s", self._bike_id, event.type.value, event.tokens)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                _logger.debug("Event listener failed for %s", event.type.value, exc_info=True)

    def _set_state(self, state: ReconcilerState, reason: str | None = None) -> None:
        if state == self._state:
            return
        _logger.info("Bike %s: %s -> %s", self._bike_id, self._state.value, state.value)
        self._state = state
        if state == ReconcilerState.POLLING:
            self._publish_availability(True, None)
        elif state in (ReconcilerState.UNAVAILABLE_AUTH, ReconcilerState.UNAVAILABLE_DEGRADED):
            self._publish_availability(False, reason)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _loop_running(self) -> bool:
        return self._started and not self._closed and self._state != ReconcilerState.UNAVAILABLE_AUTH

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._poll.next_delay = None

    def _schedule(self, delay: float) -> None:
        self._cancel_timer()
        if self._closed:
            return
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay, self._on_timer)
        self._poll.next_delay = delay
        _logger.debug("Next poll for bike %s in %.1f s", self._bike_id, delay)

    def _on_timer(self) -> None:
        self._timer = None
        self._poll.next_delay = None
        if self._closed:
            return
        task = asyncio.get_running_loop().create_task(self._run_cycle())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    def _statistics_due(self, now: float) -> bool:
        last = self._poll.last_stats_fetch_at
        return last is None or now - last > self._polling.statistics_interval

    def _fetchers(self, with_statistics: bool) -> dict[FetchSection, Callable[[], Awaitable[Any]]]:
        client = self._client
        bike_id = self._bike_id
        fetchers: dict[FetchSection, Callable[[], Awaitable[Any]]] = {
            FetchSection.STATUS: lambda: client.get_bike_state(bike_id),
            FetchSection.POSITION: lambda: client.get_bike_position(bike_id),
        }
        if with_statistics:
            fetchers[FetchSection.DETAILS] = lambda: client.get_bike_details(bike_id)
            for section, period in _STATISTICS_PERIODS.items():
                fetchers[section] = lambda period=period: client.get_statistics(bike_id, period)
        return fetchers

    async def _safe_fetch(self, section: FetchSection, fetch: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await fetch()
        except Exception as exc:
            _logger.warning("Bike %s: %s fetch failed: %s", self._bike_id, section.value, exc)
            return StromerFetchError(section.value, exc)

    async def _run_cycle(self) -> list[BikeEvent]:
        async with self._cycle_lock:
            if self._closed:
                return []
            now = self._clock()
            written_before = self._write_seq
            with_statistics = self._statistics_due(now)
            fetchers = self._fetchers(with_statistics)
            results = await asyncio.gather(
                *(self._safe_fetch(section, fetch) for section, fetch in fetchers.items())
            )
            if self._closed:
                return []

            outcome = dict(zip(fetchers, results, strict=True))
            succeeded = {s: r for s, r in outcome.items() if not isinstance(r, StromerFetchError)}
            errors = [r for r in outcome.values() if isinstance(r, StromerFetchError)]

            if not succeeded:
                self._handle_failure(StromerCycleError(errors))
                return []
            return self._handle_success(now, succeeded, with_statistics, written_before)

    def _handle_success(
        self,
        now: float,
        succeeded: dict[FetchSection, Any],
        with_statistics: bool,
        written_before: int,
    ) -> list[BikeEvent]:
        self._poll.retry_count = 0
        if with_statistics and any(section.is_statistics for section in succeeded):
            self._poll.last_stats_fetch_at = now

        previous = self._snapshot.as_dict()
        patch: dict[Capability, Any] = {}
        for section, model in succeeded.items():
            patch.update(build_patch(section, model, previous))
        # A command that landed while this cycle was fetching wins over its stale reads.
        for capability in [c for c in patch if self._optimistic_writes.get(c, 0) > written_before]:
            _logger.debug("Bike %s: keeping %s set by a command during this poll", self._bike_id, capability.value)
            del patch[capability]
        changed = self._snapshot.merge(patch)
        events = detect_events(self._bike_id, previous, self._snapshot.as_dict())

        for capability, value in changed.items():
            self._publish_capability(capability, value)
        self._set_state(ReconcilerState.POLLING)
        for event in events:
            self._emit(event)

        status = succeeded.get(FetchSection.STATUS)
        if status is not None:
            is_active = status.is_active
            if is_active != self._poll.is_active:
                _logger.info(
                    "Bike %s is now %s",
                    self._bike_id,
                    "active" if is_active else "idle",
                )
                self._poll.is_active = is_active

        if self._loop_running():
            self._schedule(self._polling.interval_for(self._poll.is_active))
        return events

    def _handle_failure(self, error: StromerCycleError) -> None:
        if is_auth_failure(error):
            _logger.warning("Bike %s: authentication failed, polling stopped: %s", self._bike_id, error)
            self._cancel_timer()
            self._set_state(ReconcilerState.UNAVAILABLE_AUTH, "Authentication failed")
            return
        if self._state == ReconcilerState.UNAVAILABLE_AUTH:
            _logger.warning("Bike %s: refresh failed while waiting for authentication: %s", self._bike_id, error)
            return

        self._poll.retry_count += 1
        delay = backoff_delay(self._poll.retry_count, self._polling.max_backoff)
        _logger.warning(
            "Bike %s: poll failed (attempt %d), retrying in %.0f s: %s",
            self._bike_id,
            self._poll.retry_count,
            delay,
            error,
        )
        if self._poll.retry_count >= self._polling.max_retries:
            self._set_state(ReconcilerState.UNAVAILABLE_DEGRADED, str(error))
        if self._loop_running():
            self._schedule(delay)
