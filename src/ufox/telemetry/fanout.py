"""Fan-out dispatcher for telemetry batches.

Delivers each new batch to N sinks (the three views, then the alert
sink), each error-isolated: one sink failing does not affect the others
and never propagates back into the poll loop.
"""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ufox.models.telemetry import TelemetryBatch

    BatchSink = Callable[[TelemetryBatch], Awaitable[None] | None]

logger = logging.getLogger(__name__)


class BatchFanout:
    """Delivers each batch to all registered sinks, in registration order."""

    def __init__(self) -> None:
        self._sinks: list[BatchSink] = []

    def add_sink(self, callback: BatchSink) -> None:
        """Register a sink; plain callables and coroutine functions both work."""
        self._sinks.append(callback)

    async def on_batch(self, batch: TelemetryBatch) -> None:
        """Dispatch *batch* to every sink.

        If a sink raises, the exception is logged and the remaining sinks
        still receive the batch.
        """
        for sink in self._sinks:
            try:
                result = sink(batch)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.warning("Sink %s failed for batch", sink, exc_info=True)
