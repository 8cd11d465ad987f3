from __future__ import annotations

from typing import TYPE_CHECKING

from rich.panel import Panel
from rich.table import Table

from ufox.telemetry.views import BatteryBand, CardsView, TableView

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import tzinfo

    from rich.console import Console

    from ufox.models.telemetry import AlertMessage, TelemetryBatch
    from ufox.telemetry.views import TableRow


class _RowCollector:
    """Table surface that just keeps what the view hands it."""

    def __init__(self) -> None:
        self.rows: list[TableRow] = []
        self.empty_message: str | None = None

    def set_rows(self, rows: Sequence[TableRow]) -> None:
        self.rows = list(rows)

    def show_empty(self, message: str) -> None:
        self.empty_message = message


class RichOutput:
    """Rich-based terminal output helpers for *ufox*."""

    def __init__(self, console: Console, *, tz: tzinfo | None = None) -> None:
        self._con = console
        self._tz = tz

    # ------------------------------------------------------------------
    # Telemetry
    # ------------------------------------------------------------------

    def cards(self, batch: TelemetryBatch) -> None:
        """Print the latest-reading KPI panel."""
        values = CardsView.project(batch)
        self._con.print(
            Panel(
                f"Temperature  [bold]{values.temperature}[/bold]\n"
                f"Humidity     [bold]{values.humidity}[/bold]\n"
                f"Battery      [bold]{values.battery}[/bold]",
                title="Latest reading",
                expand=False,
            )
        )

    def telemetry_table(self, batch: TelemetryBatch) -> None:
        """Print every record, newest first, with low battery in red."""
        collector = _RowCollector()
        TableView(collector, tz=self._tz).render(batch)
        if collector.empty_message is not None:
            self._con.print(f"[dim]{collector.empty_message}[/dim]")
            return

        table = Table(title=f"Readings ({len(collector.rows)})")
        table.add_column("Time", style="cyan")
        table.add_column("Device")
        table.add_column("Temperature", justify="right")
        table.add_column("Humidity", justify="right")
        table.add_column("Battery", justify="right")
        for row in collector.rows:
            style = "red" if row.band is BatteryBand.LOW else "green"
            table.add_row(
                row.timestamp,
                row.device_id,
                row.temperature,
                row.humidity,
                f"[{style}]{row.battery}[/{style}]",
            )
        self._con.print(table)

    def alerts(self, messages: Sequence[AlertMessage]) -> None:
        for message in messages:
            self._con.print(f"[bold red]{message.text}[/bold red]")

    # ------------------------------------------------------------------
    # Generic
    # ------------------------------------------------------------------

    def error(self, message: str) -> None:
        """Print a bold red error line."""
        self._con.print(f"[bold red]Error:[/bold red] {message}")

    def info(self, message: str) -> None:
        self._con.print(message)
