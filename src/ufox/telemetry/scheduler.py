"""Recurring poll loop for the telemetry endpoint.

One :class:`PollScheduler` owns at most one asyncio task at a time. Each
tick re-reads the current filter, fetches a batch, and on success stores
it before fanning it out to the views and the alert sink::

    start() -> tick -> sleep(interval) -> tick -> ... -> stop()

Ticks are serialized: a fetch that overruns its slot causes the missed
slots to be skipped rather than queued. ``stop()`` cancels the task, and
any result that still arrives from an older cycle is discarded via a
generation counter.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import math
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from ufox.api.errors import SessionExpiredError, TransientFetchError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ufox.api.client import TelemetryClient
    from ufox.models.telemetry import QueryFilter
    from ufox.telemetry.fanout import BatchFanout
    from ufox.telemetry.store import BatchStore

    FilterProvider = Callable[[], QueryFilter]
    UnauthorizedHandler = Callable[[], Awaitable[None] | None]

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0


class PollScheduler:
    """Owns the single recurring fetch task.

    Parameters:
        client: Telemetry API client used for each fetch.
        store: Batch store; written before any view renders.
        fanout: Delivers each stored batch to views and alerts.
        interval: Seconds between tick starts.
        on_unauthorized: Called (after stopping) when a fetch returns 401.
    """

    def __init__(
        self,
        client: TelemetryClient,
        store: BatchStore,
        fanout: BatchFanout,
        *,
        interval: float = DEFAULT_POLL_INTERVAL,
        on_unauthorized: UnauthorizedHandler | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("Poll interval must be positive")
        self._client = client
        self._store = store
        self._fanout = fanout
        self._interval = interval
        self._on_unauthorized = on_unauthorized
        self._task: asyncio.Task[None] | None = None
        self._generation = 0

        self._tick_count = 0
        self._failure_count = 0
        self._skipped_count = 0
        self._last_success_at: datetime | None = None

    # -- properties ------------------------------------------------------------

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def skipped_count(self) -> int:
        return self._skipped_count

    @property
    def last_success_at(self) -> datetime | None:
        return self._last_success_at

    def set_unauthorized_handler(self, handler: UnauthorizedHandler | None) -> None:
        self._on_unauthorized = handler

    # -- lifecycle -------------------------------------------------------------

    def start(self, token: str, filter_provider: FilterProvider) -> None:
        """Cancel any running cycle, then fetch now and every *interval* seconds.

        Must be called from inside a running event loop.
        """
        self.stop()
        self._generation += 1
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(
            self._run(token, filter_provider, self._generation),
            name=f"ufox-poll-{self._generation}",
        )
        logger.info("Polling started (every %.1fs)", self._interval)

    def stop(self) -> None:
        """Cancel the running cycle. Safe to call repeatedly or before start."""
        task = self._task
        if task is None:
            return
        self._task = None
        self._generation += 1
        # Stopping from inside our own tick (401 teardown) must not cancel the
        # teardown itself; the loop exits on the generation check instead.
        if not task.done() and task is not asyncio.current_task():
            task.cancel()
        logger.info("Polling stopped")

    # -- internals -------------------------------------------------------------

    async def _run(self, token: str, filter_provider: FilterProvider, generation: int) -> None:
        loop = asyncio.get_running_loop()
        next_at = loop.time()
        while generation == self._generation:
            await self._tick(token, filter_provider, generation)
            if generation != self._generation:
                return

            next_at += self._interval
            now = loop.time()
            if now > next_at:
                missed = math.ceil((now - next_at) / self._interval)
                self._skipped_count += missed
                next_at += missed * self._interval
                logger.debug("Fetch overran the poll interval; skipped %d tick(s)", missed)
            await asyncio.sleep(next_at - now)

    async def _tick(self, token: str, filter_provider: FilterProvider, generation: int) -> None:
        self._tick_count += 1
        try:
            query = filter_provider()
            batch = await self._client.fetch_batch(token, query)
        except SessionExpiredError:
            if generation != self._generation:
                return
            logger.info("Session expired during poll; logging out")
            self.stop()
            if self._on_unauthorized is not None:
                result = self._on_unauthorized()
                if inspect.isawaitable(result):
                    await result
            return
        except TransientFetchError as exc:
            self._failure_count += 1
            logger.warning("Telemetry fetch failed, retrying next tick: %s", exc)
            return
        except Exception:
            self._failure_count += 1
            logger.exception("Unexpected error during poll tick")
            return

        if generation != self._generation:
            logger.debug("Discarding batch from a stopped poll cycle")
            return

        self._store.replace(batch)
        self._last_success_at = datetime.now(UTC)
        await self._fanout.on_batch(batch)
