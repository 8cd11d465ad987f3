from __future__ import annotations

from ufox.models.auth import (
    DEFAULT_API_URL,
    MEASUREMENTS_PATH,
    TOKEN_PATH,
    USER_INFO_PATH,
    Session,
    TokenData,
)
from ufox.models.config import AppSettings
from ufox.models.telemetry import (
    AlertMessage,
    AlertMetric,
    DateRangeFilter,
    LimitFilter,
    QueryFilter,
    TelemetryBatch,
    TelemetryRecord,
    Thresholds,
    select_filter,
)

__all__ = [
    # auth
    "DEFAULT_API_URL",
    "MEASUREMENTS_PATH",
    "TOKEN_PATH",
    "USER_INFO_PATH",
    "Session",
    "TokenData",
    # config
    "AppSettings",
    # telemetry
    "AlertMessage",
    "AlertMetric",
    "DateRangeFilter",
    "LimitFilter",
    "QueryFilter",
    "TelemetryBatch",
    "TelemetryRecord",
    "Thresholds",
    "select_filter",
]
