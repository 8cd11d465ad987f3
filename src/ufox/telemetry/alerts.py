"""Threshold alerts derived from the newest record of each batch."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from ufox._internal.display import format_number
from ufox.models.telemetry import AlertMessage, AlertMetric

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from ufox.models.telemetry import TelemetryBatch, TelemetryRecord, Thresholds

logger = logging.getLogger(__name__)


def evaluate(latest: TelemetryRecord | None, thresholds: Thresholds) -> list[AlertMessage]:
    """Return one message per exceeded threshold.

    Temperature and humidity are checked independently, so both can fire
    at once. A limit of ``None`` never fires; neither does a missing record.
    """
    if latest is None:
        return []

    messages: list[AlertMessage] = []
    temp_limit = thresholds.temp_limit
    if temp_limit is not None and latest.temperature > temp_limit:
        messages.append(
            AlertMessage(
                metric=AlertMetric.TEMPERATURE,
                value=latest.temperature,
                limit=temp_limit,
                text=(
                    f"ALERT: current temperature ({format_number(latest.temperature)}°C)"
                    f" exceeds the limit of {format_number(temp_limit)}°C."
                ),
            )
        )

    hum_limit = thresholds.hum_limit
    if hum_limit is not None and latest.humidity > hum_limit:
        messages.append(
            AlertMessage(
                metric=AlertMetric.HUMIDITY,
                value=latest.humidity,
                limit=hum_limit,
                text=(
                    f"ALERT: current humidity ({format_number(latest.humidity)}%)"
                    f" exceeds the limit of {format_number(hum_limit)}%."
                ),
            )
        )
    return messages


class AlertSurface(Protocol):
    def show(self, messages: Sequence[AlertMessage]) -> None: ...

    def hide(self) -> None: ...


class AlertSink:
    """Batch sink that evaluates thresholds and shows or hides the alert box.

    *thresholds* is a provider so that limits edited between ticks are
    picked up on the next batch.
    """

    def __init__(self, surface: AlertSurface, thresholds: Callable[[], Thresholds]) -> None:
        self._surface = surface
        self._thresholds = thresholds
        self._active: list[AlertMessage] = []

    @property
    def active(self) -> list[AlertMessage]:
        return list(self._active)

    def __call__(self, batch: TelemetryBatch) -> None:
        messages = evaluate(batch.latest, self._thresholds())
        previous = {m.metric for m in self._active}
        self._active = messages
        if messages:
            for message in messages:
                if message.metric not in previous:
                    logger.info(message.text)
            self._surface.show(messages)
        else:
            self._surface.hide()
