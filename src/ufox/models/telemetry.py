"""Telemetry data model: records, batches, query filters, thresholds and alerts."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, date, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, TypeAdapter, field_validator

if TYPE_CHECKING:
    from collections.abc import Iterator

# ---------------------------------------------------------------------------
# Records and batches
# ---------------------------------------------------------------------------


class TelemetryRecord(BaseModel):
    """A single measurement as returned by ``GET /mediciones``.

    The backend speaks Spanish (``fecha``, ``temperatura``, ``humedad``,
    ``bateria``); those names are accepted as aliases, and the English
    attribute names work too.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    timestamp: datetime = Field(alias="fecha")
    device_id: str
    temperature: float = Field(alias="temperatura")
    humidity: float = Field(alias="humedad")
    battery: float = Field(alias="bateria", ge=0, le=100)

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # The backend emits naive ISO strings that are UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


_RECORD_LIST = TypeAdapter(list[TelemetryRecord])


@dataclass(frozen=True, slots=True)
class TelemetryBatch:
    """One fetch result, newest-first (index 0 is the most recent record).

    Batches are immutable and replaced wholesale; nothing ever merges two
    batches or mutates one in place.
    """

    records: tuple[TelemetryRecord, ...] = ()

    @classmethod
    def from_payload(cls, payload: Any) -> TelemetryBatch:
        """Validate a decoded JSON array into a batch (raises ``ValidationError``)."""
        return cls(tuple(_RECORD_LIST.validate_python(payload)))

    @classmethod
    def empty(cls) -> TelemetryBatch:
        return cls()

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[TelemetryRecord]:
        return iter(self.records)

    def __getitem__(self, index: int) -> TelemetryRecord:
        return self.records[index]

    @property
    def is_empty(self) -> bool:
        return not self.records

    @property
    def latest(self) -> TelemetryRecord | None:
        """The newest record, or ``None`` for an empty batch."""
        return self.records[0] if self.records else None

    def chronological(self) -> list[TelemetryRecord]:
        """Records oldest-first, for time-series plotting."""
        return list(reversed(self.records))


# ---------------------------------------------------------------------------
# Query filters
# ---------------------------------------------------------------------------


class LimitFilter(BaseModel):
    """Return the newest *limit* records."""

    model_config = ConfigDict(frozen=True)

    limit: PositiveInt

    def to_params(self) -> dict[str, str]:
        return {"limit": str(self.limit)}


class DateRangeFilter(BaseModel):
    """Return every record between two calendar dates."""

    model_config = ConfigDict(frozen=True)

    start_date: date
    end_date: date

    def to_params(self) -> dict[str, str]:
        return {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
        }


QueryFilter = LimitFilter | DateRangeFilter


def select_filter(
    limit: int,
    start_date: date | None = None,
    end_date: date | None = None,
) -> QueryFilter:
    """Pick the filter for one poll cycle.

    A complete date range always wins; a half-filled range falls back to
    the limit filter.
    """
    if start_date is not None and end_date is not None:
        return DateRangeFilter(start_date=start_date, end_date=end_date)
    return LimitFilter(limit=limit)


# ---------------------------------------------------------------------------
# Thresholds and alerts
# ---------------------------------------------------------------------------


def _coerce_limit(value: Any) -> float | None:
    """Turn user input into a limit; anything unusable means "no limit"."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        limit = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(limit):
        return None
    return limit


class Thresholds(BaseModel):
    """Caller-configured alert limits; ``None`` disables a check."""

    model_config = ConfigDict(frozen=True)

    temp_limit: float | None = None
    hum_limit: float | None = None

    @field_validator("temp_limit", "hum_limit", mode="before")
    @classmethod
    def _invalid_means_unlimited(cls, value: Any) -> float | None:
        return _coerce_limit(value)


class AlertMetric(StrEnum):
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"


class AlertMessage(BaseModel):
    """One threshold violation derived from the latest record."""

    model_config = ConfigDict(frozen=True)

    metric: AlertMetric
    value: float
    limit: float
    text: str
