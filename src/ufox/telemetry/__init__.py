"""Live telemetry: polling engine, session gate, views, alerts and CSV export."""

from __future__ import annotations

from ufox.telemetry.alerts import AlertSink, evaluate
from ufox.telemetry.csv_export import export_csv, render_csv
from ufox.telemetry.fanout import BatchFanout
from ufox.telemetry.scheduler import PollScheduler
from ufox.telemetry.session import SessionGate, SessionState
from ufox.telemetry.store import BatchStore
from ufox.telemetry.views import CardsView, ChartView, TableView

__all__ = [
    "AlertSink",
    "BatchFanout",
    "BatchStore",
    "CardsView",
    "ChartView",
    "PollScheduler",
    "SessionGate",
    "SessionState",
    "TableView",
    "evaluate",
    "export_csv",
    "render_csv",
]
