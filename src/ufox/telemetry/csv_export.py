"""Spreadsheet-friendly CSV export of the current batch.

Output format (UTF-8 with BOM so Excel picks up accents)::

    Fecha,Hora,Dispositivo,Temperatura,Humedad,Bateria
    1/1/2025,10:00:00 AM,d1,20,50,80

Rows follow the batch order (newest first). The export reads the batch
store only; it never triggers a fetch.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING

from ufox._internal.display import format_date, format_number, format_time
from ufox.api.errors import ExportError

if TYPE_CHECKING:
    from datetime import tzinfo

    from ufox.models.telemetry import TelemetryBatch

logger = logging.getLogger(__name__)

HEADER = ("Fecha", "Hora", "Dispositivo", "Temperatura", "Humedad", "Bateria")

FILENAME_PREFIX = "reporte_ufox"


def build_export_path(directory: Path | None = None, today: date | None = None) -> Path:
    """Return ``<directory>/reporte_ufox_<YYYY-MM-DD>.csv``.

    Creates *directory* if it does not exist.
    """
    if directory is None:
        directory = Path.cwd()
    directory.mkdir(parents=True, exist_ok=True)
    stamp = (today or date.today()).isoformat()
    return directory / f"{FILENAME_PREFIX}_{stamp}.csv"


def render_csv(batch: TelemetryBatch, tz: tzinfo | None = None) -> str:
    """Render *batch* as CSV text (without the BOM)."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(HEADER)
    for record in batch:
        writer.writerow(
            (
                format_date(record.timestamp, tz),
                format_time(record.timestamp, tz),
                record.device_id,
                format_number(record.temperature),
                format_number(record.humidity),
                format_number(record.battery),
            )
        )
    return buf.getvalue()


def export_csv(
    batch: TelemetryBatch,
    directory: Path | None = None,
    *,
    tz: tzinfo | None = None,
    today: date | None = None,
) -> Path:
    """Write *batch* to a dated CSV file and return its path.

    Raises :class:`ExportError` when the batch is empty.
    """
    if batch.is_empty:
        raise ExportError("No data to export.")

    path = build_export_path(directory, today)
    # utf-8-sig prepends the BOM.
    with open(path, "w", newline="", encoding="utf-8-sig") as fh:
        fh.write(render_csv(batch, tz))

    logger.info("Exported %d records to %s", len(batch), path)
    return path
