"""Full-screen Textual dashboard for live telemetry.

Implements the render surfaces used by the view adapters (KPI cards, the
readings table, the trend chart and the alert box) and wires them to the
polling engine::

    SessionGate -> PollScheduler -> TelemetryClient -> BatchStore
                                                     -> BatchFanout -> views, alerts

Filter and threshold inputs are re-read on every tick, so edits take
effect on the next refresh without restarting the poll loop.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import UTC, date, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

from rich.markup import escape
from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, HorizontalScroll, Vertical, VerticalScroll
from textual.screen import ModalScreen, Screen
from textual.widgets import (
    DataTable,
    Footer,
    Header,
    Input,
    RichLog,
    Sparkline,
    Static,
    TabbedContent,
    TabPane,
)

from ufox._internal.display import PLACEHOLDER, format_time
from ufox.api.errors import AuthError, ExportError
from ufox.models.config import AppSettings
from ufox.models.telemetry import QueryFilter, Thresholds, select_filter
from ufox.telemetry.alerts import AlertSink
from ufox.telemetry.csv_export import export_csv
from ufox.telemetry.fanout import BatchFanout
from ufox.telemetry.scheduler import PollScheduler
from ufox.telemetry.session import SessionGate, SessionState
from ufox.telemetry.store import BatchStore
from ufox.telemetry.views import (
    SERIES_LABELS,
    BatteryBand,
    CardsView,
    ChartView,
    TableView,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import tzinfo

    from ufox.api.client import TelemetryClient
    from ufox.auth.token_store import TokenStore
    from ufox.models.telemetry import AlertMessage
    from ufox.telemetry.views import TableRow

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Activity sidebar: logging handler that funnels into an asyncio queue
# ---------------------------------------------------------------------------

# Logger-name prefix -> (short label, Rich color).
SOURCE_MAP: dict[str, tuple[str, str]] = {
    "ufox.telemetry.scheduler": ("POLL", "yellow"),
    "ufox.telemetry.session": ("AUTH", "cyan"),
    "ufox.telemetry.alerts": ("ALERT", "red"),
    "ufox.telemetry.csv_export": ("CSV", "green"),
    "ufox.telemetry.fanout": ("VIEW", "magenta"),
    "ufox.api.client": ("API", "blue"),
}


class ActivityLogHandler(logging.Handler):
    """Logging handler that enqueues messages for the activity sidebar."""

    def __init__(self, queue: asyncio.Queue[tuple[str, str, str]]) -> None:
        super().__init__()
        self._queue = queue

    def emit(self, record: logging.LogRecord) -> None:
        source = "LOG"
        color = "white"
        for prefix, (label, clr) in SOURCE_MAP.items():
            if record.name.startswith(prefix):
                source = label
                color = clr
                break
        with contextlib.suppress(asyncio.QueueFull):
            self._queue.put_nowait((source, color, self.format(record)))


# ---------------------------------------------------------------------------
# Render surfaces
# ---------------------------------------------------------------------------


class KpiCard(Static):
    """Scalar display slot for one KPI."""

    def __init__(self, title: str, *, id: str) -> None:  # noqa: A002
        super().__init__(PLACEHOLDER, id=id, classes="kpi-card")
        self._title = title
        self.value_text = PLACEHOLDER

    def on_mount(self) -> None:
        self.border_title = self._title

    def set_text(self, text: str) -> None:
        self.value_text = text
        self.update(text)


class ReadingsTable(DataTable[Any]):
    """Newest-first table of records; low-battery cells are styled red."""

    COLUMNS: ClassVar[tuple[str, ...]] = (
        "Time",
        "Device",
        "Temperature",
        "Humidity",
        "Battery",
    )

    def __init__(self, *, id: str) -> None:  # noqa: A002
        super().__init__(id=id, cursor_type="none", zebra_stripes=True)
        self.shown_rows: list[TableRow] = []
        self.empty_message: str | None = None

    def on_mount(self) -> None:
        for label in self.COLUMNS:
            self.add_column(label, key=label.lower())

    def set_rows(self, rows: Sequence[TableRow]) -> None:
        self.clear()
        self.shown_rows = list(rows)
        self.empty_message = None
        for row in rows:
            style = "bold red" if row.band is BatteryBand.LOW else "green"
            self.add_row(
                row.timestamp,
                Text(row.device_id, style="bold"),
                row.temperature,
                row.humidity,
                Text(row.battery, style=style),
            )

    def show_empty(self, message: str) -> None:
        self.clear()
        self.shown_rows = []
        self.empty_message = message
        self.add_row(Text(message, style="dim italic"), "", "", "", "")


class TrendChart(Vertical):
    """Scrollable two-series sparkline chart.

    Hidden until the chart adapter "creates" it with :meth:`activate`;
    from then on it is only ever updated in place.
    """

    def __init__(self, *, id: str) -> None:  # noqa: A002
        super().__init__(id=id)
        self.created = False
        self.labels: list[str] = []
        self.series: list[list[float]] = [[] for _ in SERIES_LABELS]
        self.chart_width: int | None = None
        self.series_visible: list[bool] = [True] * len(SERIES_LABELS)
        self.resize_count = 0

    def compose(self) -> ComposeResult:
        yield Static("Waiting for data…", id="chart-placeholder")
        with HorizontalScroll(id="chart-scroll"):
            with Vertical(id="chart-body"):
                for index, label in enumerate(SERIES_LABELS):
                    yield Static(label, id=f"series-label-{index}", classes="series-label")
                    yield Sparkline([], id=f"series-{index}", summary_function=max)
                yield Static("", id="chart-axis")

    def on_mount(self) -> None:
        self.query_one("#chart-scroll").display = False

    def activate(self) -> TrendChart:
        self.created = True
        self.query_one("#chart-placeholder").display = False
        self.query_one("#chart-scroll").display = True
        return self

    # -- ChartSurface ----------------------------------------------------------

    def set_data(self, labels: Sequence[str], series: Sequence[Sequence[float]]) -> None:
        self.labels = list(labels)
        self.series = [list(values) for values in series]

    def set_width(self, width: int | None) -> None:
        self.chart_width = width
        body = self.query_one("#chart-body")
        body.styles.width = width if width is not None else "100%"

    def resize(self) -> None:
        self.resize_count += 1
        self.refresh(layout=True)

    def update(self) -> None:
        for index, values in enumerate(self.series):
            spark = self.query_one(f"#series-{index}", Sparkline)
            spark.data = values
            shown = self.series_visible[index]
            spark.display = shown
            self.query_one(f"#series-label-{index}", Static).display = shown
        axis = self.query_one("#chart-axis", Static)
        if self.labels:
            axis.update(f"{self.labels[0]}  →  {self.labels[-1]}  ({len(self.labels)} points)")
        else:
            axis.update("No data in this range.")

    def set_series_visible(self, index: int, visible: bool) -> None:
        self.series_visible[index] = visible


class AlertBox(Static):
    """Threshold alert surface; hidden while nothing is exceeded."""

    def __init__(self, *, id: str) -> None:  # noqa: A002
        super().__init__("", id=id)
        self.alert_texts: list[str] = []

    def show(self, messages: Sequence[AlertMessage]) -> None:
        self.alert_texts = [m.text for m in messages]
        self.update("\n".join(f"⚠ {text}" for text in self.alert_texts))
        self.display = True

    def hide(self) -> None:
        self.alert_texts = []
        self.update("")
        self.display = False


# ---------------------------------------------------------------------------
# Login and help screens
# ---------------------------------------------------------------------------


class LoginScreen(Screen[None]):
    """Credential form; authentication errors are shown inline."""

    CSS = """
    LoginScreen {
        align: center middle;
    }
    #login-box {
        width: 50;
        height: auto;
        border: thick $primary;
        padding: 1 2;
    }
    #login-title {
        text-align: center;
        text-style: bold;
        padding-bottom: 1;
    }
    #login-error {
        color: $error;
        height: auto;
    }
    """

    def __init__(self, gate: SessionGate) -> None:
        super().__init__()
        self._gate = gate
        self.error_text = ""

    def compose(self) -> ComposeResult:
        with Vertical(id="login-box"):
            yield Static("ufox: sign in", id="login-title")
            yield Input(placeholder="Username", id="username")
            yield Input(placeholder="Password", password=True, id="password")
            yield Static("", id="login-error")

    def on_mount(self) -> None:
        self.query_one("#username", Input).focus()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "username":
            self.query_one("#password", Input).focus()
            return
        await self.submit()

    async def submit(self) -> None:
        username = self.query_one("#username", Input).value.strip()
        password = self.query_one("#password", Input).value
        self._set_error("")
        try:
            await self._gate.login(username, password)
        except AuthError as exc:
            self._set_error(str(exc) or "Login failed")
            return
        self.query_one("#password", Input).value = ""
        self.dismiss()

    def _set_error(self, text: str) -> None:
        self.error_text = text
        self.query_one("#login-error", Static).update(text)


_HELP_TEXT = (
    "KEYBINDINGS\n"
    "\n"
    "  q          Quit\n"
    "  ?          Toggle this help screen\n"
    "  1 / 2      Show / hide temperature / humidity series\n"
    "  e          Export current batch to CSV\n"
    "  c          Clear the date range (back to \"last N\")\n"
    "  ctrl+r     Refresh now\n"
    "  ctrl+l     Log out\n"
    "\n"
    "Filters: a complete start + end date wins over the limit.\n"
    "Thresholds: leave blank for no limit.\n"
)


class HelpScreen(ModalScreen[None]):
    """Modal help screen listing keybindings."""

    BINDINGS: ClassVar[list[Binding]] = [  # type: ignore[assignment]
        Binding("escape", "dismiss", "Close"),
        Binding("question_mark", "dismiss", "Close"),
    ]

    CSS = """
    HelpScreen {
        align: center middle;
    }
    #help-container {
        width: 64;
        max-height: 80%;
        background: $surface;
        border: thick $primary;
        padding: 1 2;
    }
    #help-title {
        text-align: center;
        text-style: bold;
        padding-bottom: 1;
    }
    #help-extra {
        margin-top: 1;
        color: $text-muted;
    }
    """

    def __init__(self, server_info: str = "") -> None:
        super().__init__()
        self._server_info = server_info

    def compose(self) -> ComposeResult:
        with VerticalScroll(id="help-container"):
            yield Static("ufox Dashboard Help", id="help-title")
            yield Static(_HELP_TEXT, id="help-body")
            if self._server_info:
                yield Static(self._server_info, id="help-extra")


# ---------------------------------------------------------------------------
# Main application
# ---------------------------------------------------------------------------


def _parse_date(raw: str) -> date | None:
    raw = raw.strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None


def _parse_limit(raw: str, default: int) -> int:
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return value if value > 0 else default


class TelemetryDashboard(App[None]):
    """Live dashboard: KPI cards, readings table, trend chart and alerts."""

    TITLE = "ufox"
    AUTO_FOCUS = "#readings"

    CSS = """
    #main-area {
        height: 1fr;
    }
    #content {
        width: 3fr;
    }
    #filter-bar {
        height: auto;
    }
    #filter-bar Input {
        width: 1fr;
    }
    #cards {
        height: 5;
    }
    .kpi-card {
        width: 1fr;
        height: 100%;
        border: round $primary;
        content-align: center middle;
        text-style: bold;
    }
    #readings {
        height: 1fr;
    }
    #trend-chart {
        height: auto;
    }
    #chart-scroll {
        height: auto;
        max-height: 16;
    }
    #chart-body {
        width: 100%;
        height: auto;
    }
    #chart-body Sparkline {
        height: 4;
    }
    #threshold-bar {
        height: auto;
    }
    #threshold-bar Input {
        width: 1fr;
    }
    #alert-box {
        display: none;
        height: auto;
        border: heavy $error;
        color: $error;
        padding: 0 1;
    }
    #activity-log {
        width: 1fr;
        min-width: 30;
        border: solid $accent;
        padding: 0 1;
    }
    """

    BINDINGS: ClassVar[list[Binding]] = [  # type: ignore[assignment]
        Binding("q", "quit", "Quit"),
        Binding("question_mark", "help", "Help"),
        Binding("1", "toggle_series(0)", "Temp"),
        Binding("2", "toggle_series(1)", "Humidity"),
        Binding("e", "export", "Export CSV"),
        Binding("c", "clear_dates", "Clear dates", show=False),
        Binding("ctrl+r", "refresh_now", "Refresh", show=False),
        Binding("ctrl+l", "logout", "Logout"),
    ]

    def __init__(
        self,
        client: TelemetryClient,
        token_store: TokenStore,
        *,
        settings: AppSettings | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        super().__init__()
        self._settings = settings or AppSettings()
        self._tz = tz
        self._client = client

        self.store = BatchStore()
        self.fanout = BatchFanout()
        self.scheduler = PollScheduler(
            client,
            self.store,
            self.fanout,
            interval=self._settings.poll_interval,
        )
        self.gate = SessionGate(
            client,
            token_store,
            self.scheduler,
            self.store,
            self.fanout,
            self.current_filter,
        )
        self.gate.add_listener(self._on_session_change)

        self.cards_view: CardsView | None = None
        self.table_view: TableView | None = None
        self.chart_view: ChartView | None = None
        self.alert_sink: AlertSink | None = None

        self._activity_queue: asyncio.Queue[tuple[str, str, str]] = asyncio.Queue(maxsize=500)
        self._activity_handler: ActivityLogHandler | None = None
        self._original_propagate: dict[str, bool] = {}
        self._inputs: dict[str, Input] = {}
        self._activity_log: RichLog | None = None
        self._trend_chart: TrendChart | None = None

    # -- compose layout ----------------------------------------------------------

    def compose(self) -> ComposeResult:
        settings = self._settings
        yield Header(show_clock=True)
        with Horizontal(id="main-area"):
            with Vertical(id="content"):
                with Horizontal(id="filter-bar"):
                    yield Input(
                        str(settings.default_limit),
                        placeholder="Last N records",
                        type="integer",
                        id="limit-input",
                    )
                    yield Input(placeholder="Start YYYY-MM-DD", id="start-input")
                    yield Input(placeholder="End YYYY-MM-DD", id="end-input")
                with TabbedContent(id="tabs", initial="home"):
                    with TabPane("Home", id="home"):
                        with Horizontal(id="cards"):
                            yield KpiCard("Temperature", id="card-temp")
                            yield KpiCard("Humidity", id="card-hum")
                            yield KpiCard("Battery", id="card-bat")
                        yield ReadingsTable(id="readings")
                    with TabPane("Charts", id="charts"):
                        with Horizontal(id="threshold-bar"):
                            yield Input(
                                _limit_text(settings.temp_limit),
                                placeholder="Temp limit °C",
                                type="number",
                                id="temp-limit",
                            )
                            yield Input(
                                _limit_text(settings.hum_limit),
                                placeholder="Humidity limit %",
                                type="number",
                                id="hum-limit",
                            )
                        yield AlertBox(id="alert-box")
                        yield TrendChart(id="trend-chart")
            yield RichLog(id="activity-log", wrap=True, markup=True)
        yield Footer()

    def on_mount(self) -> None:
        # Resolved once: app-level queries only see the active screen, and the
        # login screen may be on top while ticks run.
        self._inputs = {widget.id: widget for widget in self.query(Input) if widget.id}
        self._activity_log = self.query_one("#activity-log", RichLog)
        self._activity_log.border_title = "Activity"
        self._trend_chart = self.query_one("#trend-chart", TrendChart)

        self.cards_view = CardsView(
            self.query_one("#card-temp", KpiCard),
            self.query_one("#card-hum", KpiCard),
            self.query_one("#card-bat", KpiCard),
        )
        self.table_view = TableView(self.query_one("#readings", ReadingsTable), tz=self._tz)
        self.chart_view = ChartView(
            self._create_chart,
            width_threshold=self._settings.chart_width_threshold,
            point_width=self._settings.chart_point_width,
            tz=self._tz,
        )
        self.alert_sink = AlertSink(self.query_one("#alert-box", AlertBox), self.current_thresholds)

        # Views first, alerts last.
        self.fanout.add_sink(self.cards_view.render)
        self.fanout.add_sink(self.table_view.render)
        self.fanout.add_sink(self.chart_view.render)
        self.fanout.add_sink(self.alert_sink)

        self._setup_activity_handler()
        self.set_interval(1.0, self._update_header)
        self.run_worker(self._process_activity_queue, group="activity")  # type: ignore[arg-type]
        self.run_worker(self._resume_session, group="session", exclusive=True)  # type: ignore[arg-type]

    def _create_chart(self) -> TrendChart:
        assert self._trend_chart is not None
        return self._trend_chart.activate()

    # -- providers (re-read every tick) -------------------------------------------

    def current_filter(self) -> QueryFilter:
        limit = _parse_limit(self._inputs["limit-input"].value, self._settings.default_limit)
        start = _parse_date(self._inputs["start-input"].value)
        end = _parse_date(self._inputs["end-input"].value)
        return select_filter(limit, start, end)

    def current_thresholds(self) -> Thresholds:
        return Thresholds(
            temp_limit=self._inputs["temp-limit"].value,
            hum_limit=self._inputs["hum-limit"].value,
        )

    # -- session -------------------------------------------------------------------

    async def _resume_session(self) -> None:
        if not await self.gate.resume() and self.gate.state is SessionState.LOGGED_OUT:
            self._show_login()

    def _on_session_change(self, state: SessionState) -> None:
        if state is SessionState.LOGGED_OUT:
            self._show_login()
        self._update_header()

    def _show_login(self) -> None:
        if not isinstance(self.screen, LoginScreen):
            self.push_screen(LoginScreen(self.gate))

    # -- activity sidebar ----------------------------------------------------------

    def _setup_activity_handler(self) -> None:
        """Route ufox loggers into the sidebar instead of the terminal."""
        handler = ActivityLogHandler(self._activity_queue)
        handler.setLevel(logging.INFO)
        handler.setFormatter(logging.Formatter("%(message)s"))
        self._activity_handler = handler

        for logger_name in SOURCE_MAP:
            log = logging.getLogger(logger_name)
            log.addHandler(handler)
            if log.level == logging.NOTSET or log.level > logging.INFO:
                log.setLevel(logging.INFO)
            self._original_propagate[logger_name] = log.propagate
            log.propagate = False

        for name in ("httpx", "httpcore"):
            log = logging.getLogger(name)
            self._original_propagate[name] = log.propagate
            log.propagate = False

    def _cleanup_activity_handler(self) -> None:
        handler = self._activity_handler
        if handler is None:
            return
        for logger_name in SOURCE_MAP:
            logging.getLogger(logger_name).removeHandler(handler)
        for logger_name, propagate in self._original_propagate.items():
            logging.getLogger(logger_name).propagate = propagate
        self._original_propagate.clear()
        self._activity_handler = None

    async def _process_activity_queue(self) -> None:
        while True:
            source, color, message = await self._activity_queue.get()
            ts = datetime.now(tz=UTC).astimezone(self._tz).strftime("%H:%M:%S")
            assert self._activity_log is not None
            self._activity_log.write(f"[{color}]{ts} {source}[/{color}] {escape(message)}")

    # -- header --------------------------------------------------------------------

    def _update_header(self) -> None:
        live = self.gate.state is SessionState.LOGGED_IN
        self.title = f"ufox · {'Live' if live else 'Logged out'}"
        last = self.scheduler.last_success_at
        last_text = format_time(last, self._tz) if last is not None else PLACEHOLDER
        self.sub_title = (
            f"Polls: {self.scheduler.tick_count:,}  "
            f"Failures: {self.scheduler.failure_count:,}  Last: {last_text}"
        )

    # -- events and actions ---------------------------------------------------------

    def on_tabbed_content_tab_activated(self, event: TabbedContent.TabActivated) -> None:
        if event.pane.id == "charts" and self.chart_view is not None:
            self.chart_view.notify_visible()

    def action_toggle_series(self, index: int) -> None:
        if self.chart_view is not None:
            self.chart_view.toggle(index)

    def action_export(self) -> None:
        directory = Path(self._settings.export_dir).expanduser()
        try:
            path = export_csv(self.store.current(), directory, tz=self._tz)
        except ExportError as exc:
            self.notify(str(exc), severity="warning")
            return
        except OSError as exc:
            self.notify(f"Export failed: {exc}", severity="error")
            return
        self.notify(f"Exported {path}")

    def action_clear_dates(self) -> None:
        self._inputs["start-input"].value = ""
        self._inputs["end-input"].value = ""

    def action_refresh_now(self) -> None:
        session = self.gate.session
        if session is not None and session.valid:
            self.scheduler.start(session.token, self.current_filter)

    async def action_logout(self) -> None:
        await self.gate.logout()

    def action_help(self) -> None:
        info = f"Server: {self._settings.api_url}  Poll: {self.scheduler.interval:g}s"
        self.push_screen(HelpScreen(server_info=info))

    async def action_quit(self) -> None:
        self.scheduler.stop()
        self._cleanup_activity_handler()
        self.exit()

    def on_unmount(self) -> None:
        self.scheduler.stop()
        self._cleanup_activity_handler()


def _limit_text(value: float | None) -> str:
    return "" if value is None else f"{value:g}"
