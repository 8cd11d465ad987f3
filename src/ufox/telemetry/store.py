"""Single source of truth for the current telemetry batch."""

from __future__ import annotations

import logging

from ufox.models.telemetry import TelemetryBatch

logger = logging.getLogger(__name__)


class BatchStore:
    """Holds exactly one :class:`TelemetryBatch`.

    :meth:`replace` is the only way in: last write wins, and the previous
    batch is dropped wholesale. Because batches are immutable, a reader
    holding the result of :meth:`current` can never see a half-updated
    batch.
    """

    def __init__(self) -> None:
        self._batch = TelemetryBatch.empty()

    def replace(self, batch: TelemetryBatch) -> None:
        self._batch = batch
        logger.debug("Batch replaced (%d records)", len(batch))

    def current(self) -> TelemetryBatch:
        return self._batch

    def clear(self) -> None:
        """Reset to an empty batch (logout / session expiry)."""
        self.replace(TelemetryBatch.empty())
