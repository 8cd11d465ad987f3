"""View adapters: project a :class:`TelemetryBatch` onto render surfaces.

Each adapter is independent of the others. Cards and table are pure
projections; the chart adapter additionally owns the chart object, its
width policy and per-series visibility.

The surfaces themselves (KPI slots, table widget, chart widget) are
described by the protocols below and implemented by the TUI, or by test
doubles.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

from ufox._internal.display import PLACEHOLDER, format_datetime, format_number, format_time

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import tzinfo

    from ufox.models.telemetry import TelemetryBatch, TelemetryRecord

logger = logging.getLogger(__name__)

# Battery below this percentage is flagged in the table.
LOW_BATTERY_PERCENT = 20.0

# Above this many points the chart scrolls instead of compressing.
CHART_WIDTH_THRESHOLD = 30
CHART_POINT_WIDTH = 30

EMPTY_TABLE_MESSAGE = "No data in this range."

# ---------------------------------------------------------------------------
# Render-surface protocols
# ---------------------------------------------------------------------------


class ScalarSlot(Protocol):
    def set_text(self, text: str) -> None: ...


class TableSurface(Protocol):
    def set_rows(self, rows: Sequence[TableRow]) -> None: ...

    def show_empty(self, message: str) -> None: ...


class ChartSurface(Protocol):
    """A line chart with one label axis and N series."""

    def set_data(self, labels: Sequence[str], series: Sequence[Sequence[float]]) -> None: ...

    def set_width(self, width: int | None) -> None:
        """Fixed scrollable width in surface units, or ``None`` to fill."""

    def resize(self) -> None:
        """Recompute layout (container size or visibility may have changed)."""

    def update(self) -> None: ...

    def set_series_visible(self, index: int, visible: bool) -> None: ...


# ---------------------------------------------------------------------------
# Cards
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CardValues:
    temperature: str
    humidity: str
    battery: str


class CardsView:
    """Shows the newest record's temperature, humidity and battery."""

    def __init__(self, temperature: ScalarSlot, humidity: ScalarSlot, battery: ScalarSlot) -> None:
        self._slots = (temperature, humidity, battery)

    @staticmethod
    def project(batch: TelemetryBatch) -> CardValues:
        latest = batch.latest
        if latest is None:
            return CardValues(
                temperature=f"{PLACEHOLDER} °C",
                humidity=f"{PLACEHOLDER} %",
                battery=f"{PLACEHOLDER} %",
            )
        return CardValues(
            temperature=f"{format_number(latest.temperature)} °C",
            humidity=f"{format_number(latest.humidity)} %",
            battery=f"{format_number(latest.battery)} %",
        )

    def render(self, batch: TelemetryBatch) -> None:
        values = self.project(batch)
        temp_slot, hum_slot, bat_slot = self._slots
        temp_slot.set_text(values.temperature)
        hum_slot.set_text(values.humidity)
        bat_slot.set_text(values.battery)


# ---------------------------------------------------------------------------
# Table
# ---------------------------------------------------------------------------


class BatteryBand(StrEnum):
    LOW = "low"
    OK = "ok"


def battery_band(battery: float) -> BatteryBand:
    return BatteryBand.LOW if battery < LOW_BATTERY_PERCENT else BatteryBand.OK


@dataclass(frozen=True, slots=True)
class TableRow:
    timestamp: str
    device_id: str
    temperature: str
    humidity: str
    battery: str
    band: BatteryBand


class TableView:
    """Lists every record of the batch, newest first."""

    def __init__(self, surface: TableSurface, *, tz: tzinfo | None = None) -> None:
        self._surface = surface
        self._tz = tz

    def row_for(self, record: TelemetryRecord) -> TableRow:
        return TableRow(
            timestamp=format_datetime(record.timestamp, self._tz),
            device_id=record.device_id,
            temperature=f"{format_number(record.temperature)} °C",
            humidity=f"{format_number(record.humidity)} %",
            battery=f"{format_number(record.battery)} %",
            band=battery_band(record.battery),
        )

    def project(self, batch: TelemetryBatch) -> list[TableRow]:
        return [self.row_for(r) for r in batch]

    def render(self, batch: TelemetryBatch) -> None:
        if batch.is_empty:
            self._surface.show_empty(EMPTY_TABLE_MESSAGE)
            return
        self._surface.set_rows(self.project(batch))


# ---------------------------------------------------------------------------
# Chart
# ---------------------------------------------------------------------------


class ChartState(StrEnum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"


SERIES_NAMES: tuple[str, ...] = ("temperature", "humidity")
SERIES_LABELS: tuple[str, ...] = ("Temperature (°C)", "Humidity (%)")


@dataclass(frozen=True, slots=True)
class ChartData:
    labels: list[str]
    series: list[list[float]]


class ChartView:
    """Stateful chart adapter.

    The chart object is created by *chart_factory* on the first render of
    a non-empty batch and is only updated in place afterwards, so series
    visibility and scroll position survive refreshes. An empty batch
    clears the data but keeps the object.
    """

    def __init__(
        self,
        chart_factory: Callable[[], ChartSurface],
        *,
        width_threshold: int = CHART_WIDTH_THRESHOLD,
        point_width: int = CHART_POINT_WIDTH,
        tz: tzinfo | None = None,
    ) -> None:
        self._factory = chart_factory
        self._chart: ChartSurface | None = None
        self._width_threshold = width_threshold
        self._point_width = point_width
        self._tz = tz
        self._visible: list[bool] = [True] * len(SERIES_NAMES)

    # -- state -----------------------------------------------------------------

    @property
    def state(self) -> ChartState:
        return ChartState.UNINITIALIZED if self._chart is None else ChartState.INITIALIZED

    @property
    def chart(self) -> ChartSurface | None:
        return self._chart

    @property
    def width_threshold(self) -> int:
        return self._width_threshold

    @property
    def visible_series(self) -> frozenset[str]:
        return frozenset(n for n, shown in zip(SERIES_NAMES, self._visible, strict=True) if shown)

    def is_series_visible(self, index: int) -> bool:
        return self._visible[index]

    # -- projections -------------------------------------------------------------

    def project(self, batch: TelemetryBatch) -> ChartData:
        """Build chart data in chronological (oldest-first) order."""
        points = batch.chronological()
        return ChartData(
            labels=[format_time(r.timestamp, self._tz) for r in points],
            series=[[r.temperature for r in points], [r.humidity for r in points]],
        )

    def width_for(self, point_count: int) -> int | None:
        """Scroll-over-compress: fixed density above the threshold."""
        if point_count > self._width_threshold:
            return point_count * self._point_width
        return None

    # -- rendering ---------------------------------------------------------------

    def render(self, batch: TelemetryBatch) -> None:
        if batch.is_empty:
            self._clear()
            return

        data = self.project(batch)
        width = self.width_for(len(data.labels))

        if self._chart is None:
            self._chart = self._factory()
            logger.debug("Chart created with %d points", len(data.labels))
            self._chart.set_width(width)
            self._chart.set_data(data.labels, data.series)
            for index, shown in enumerate(self._visible):
                self._chart.set_series_visible(index, shown)
            self._chart.resize()
            self._chart.update()
            return

        self._chart.set_width(width)
        self._chart.set_data(data.labels, data.series)
        # Width may have changed: layout must be recomputed before painting.
        self._chart.resize()
        self._chart.update()

    def _clear(self) -> None:
        if self._chart is None:
            return
        self._chart.set_data([], [[] for _ in SERIES_NAMES])
        self._chart.set_width(None)
        self._chart.resize()
        self._chart.update()

    def notify_visible(self) -> None:
        """Call when the chart's container becomes visible (e.g. tab switch)."""
        if self._chart is None:
            return
        self._chart.resize()
        self._chart.update()

    def toggle(self, index: int) -> bool:
        """Flip series *index* between shown and hidden; returns the new state.

        Data is untouched. Toggles made before the chart exists are applied
        when it is created.
        """
        if not 0 <= index < len(SERIES_NAMES):
            raise IndexError(f"No chart series at index {index}")
        self._visible[index] = not self._visible[index]
        if self._chart is not None:
            self._chart.set_series_visible(index, self._visible[index])
            self._chart.update()
        return self._visible[index]
