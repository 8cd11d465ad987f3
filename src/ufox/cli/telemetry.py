"""CLI commands for telemetry (fetch, export, watch)."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

import click

from ufox._internal.async_utils import run_async
from ufox.api.errors import SessionExpiredError
from ufox.cli._client import get_client, get_timezone, get_token_store, require_token
from ufox.cli._options import global_options
from ufox.models.telemetry import Thresholds, select_filter
from ufox.telemetry.alerts import evaluate
from ufox.telemetry.csv_export import export_csv

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import Any

    from ufox.cli.main import AppContext
    from ufox.models.telemetry import QueryFilter, TelemetryBatch
    from ufox.output.rich_output import RichOutput

_DATE = click.DateTime(formats=["%Y-%m-%d"])


def filter_options(f: Callable[..., Any]) -> Callable[..., Any]:
    """Add ``--limit``, ``--start-date`` and ``--end-date``."""
    f = click.option("--end-date", "end", type=_DATE, default=None, help="End date (YYYY-MM-DD)")(
        f
    )
    f = click.option(
        "--start-date", "start", type=_DATE, default=None, help="Start date (YYYY-MM-DD)"
    )(f)
    f = click.option(
        "--limit",
        type=click.IntRange(min=1),
        default=None,
        help="Newest N records (ignored when both dates are given)",
    )(f)
    return f


def build_query(
    app_ctx: AppContext,
    limit: int | None,
    start: datetime | None,
    end: datetime | None,
) -> QueryFilter:
    return select_filter(
        limit or app_ctx.settings.default_limit,
        start.date() if start else None,
        end.date() if end else None,
    )


def fetch_once(app_ctx: AppContext, query: QueryFilter) -> TelemetryBatch:
    """Fetch a single batch; a rejected keyring token is removed.

    A rejected ``UFOX_ACCESS_TOKEN`` override leaves the keyring alone.
    """
    token = require_token(app_ctx)

    async def _fetch() -> TelemetryBatch:
        async with get_client(app_ctx) as client:
            return await client.fetch_batch(token, query)

    try:
        return run_async(_fetch())
    except SessionExpiredError:
        store = get_token_store(app_ctx)
        if store.access_token == token:
            store.clear()
        raise


@click.command("fetch")
@filter_options
@click.option("--temp-limit", default=None, help="Alert above this temperature (°C)")
@click.option("--hum-limit", default=None, help="Alert above this humidity (%)")
@global_options
def fetch_cmd(
    app_ctx: AppContext,
    limit: int | None,
    start: datetime | None,
    end: datetime | None,
    temp_limit: str | None,
    hum_limit: str | None,
) -> None:
    """Fetch one batch and show the latest reading, the table and alerts."""
    formatter = app_ctx.formatter
    settings = app_ctx.settings
    query = build_query(app_ctx, limit, start, end)
    batch = fetch_once(app_ctx, query)

    thresholds = Thresholds(
        temp_limit=temp_limit if temp_limit is not None else settings.temp_limit,
        hum_limit=hum_limit if hum_limit is not None else settings.hum_limit,
    )
    alerts = evaluate(batch.latest, thresholds)

    def _render(rich: RichOutput) -> None:
        rich.cards(batch)
        rich.telemetry_table(batch)
        rich.alerts(alerts)

    formatter.output(
        {"filter": query, "records": batch, "alerts": alerts},
        command="fetch",
        render=_render,
    )


@click.command("export")
@filter_options
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for the CSV file (default: UFOX_EXPORT_DIR)",
)
@global_options
def export_cmd(
    app_ctx: AppContext,
    limit: int | None,
    start: datetime | None,
    end: datetime | None,
    output_dir: Path | None,
) -> None:
    """Fetch one batch and write it to reporte_ufox_<date>.csv."""
    batch = fetch_once(app_ctx, build_query(app_ctx, limit, start, end))
    directory = output_dir or Path(app_ctx.settings.export_dir).expanduser()
    path = export_csv(batch, directory, tz=get_timezone(app_ctx))

    app_ctx.formatter.output(
        {"path": str(path), "records": len(batch)},
        command="export",
        render=lambda rich: rich.info(f"Exported {len(batch)} records to [cyan]{path}[/cyan]"),
    )


@click.command("watch")
@click.option(
    "--interval",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds between refreshes (default: UFOX_POLL_INTERVAL)",
)
@global_options
def watch_cmd(app_ctx: AppContext, interval: float | None) -> None:
    """Open the live dashboard."""
    from ufox.telemetry.tui import TelemetryDashboard

    settings = app_ctx.settings
    if interval is not None:
        settings = settings.model_copy(update={"poll_interval": interval})
    if app_ctx.api_url:
        settings = settings.model_copy(update={"api_url": app_ctx.api_url})

    async def _watch() -> None:
        async with get_client(app_ctx) as client:
            app = TelemetryDashboard(
                client,
                get_token_store(app_ctx),
                settings=settings,
                tz=get_timezone(app_ctx),
            )
            await app.run_async()

    run_async(_watch())
