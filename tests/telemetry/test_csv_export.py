"""Tests for the CSV export."""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

import pytest

from tests.telemetry._factories import make_batch, make_record
from ufox.api.errors import ExportError
from ufox.models.telemetry import TelemetryBatch, TelemetryRecord
from ufox.telemetry.csv_export import build_export_path, export_csv, render_csv

if TYPE_CHECKING:
    from pathlib import Path


class TestBuildExportPath:
    def test_dated_filename(self, tmp_path: Path) -> None:
        path = build_export_path(tmp_path, date(2025, 3, 9))
        assert path == tmp_path / "reporte_ufox_2025-03-09.csv"

    def test_creates_directory(self, tmp_path: Path) -> None:
        target = tmp_path / "reports" / "jan"
        build_export_path(target, date(2025, 1, 1))
        assert target.is_dir()


class TestRenderCsv:
    def test_header_and_row(self) -> None:
        text = render_csv(make_batch(make_record()), tz=UTC)
        lines = text.splitlines()
        assert lines[0] == "Fecha,Hora,Dispositivo,Temperatura,Humedad,Bateria"
        assert lines[1] == "1/1/2025,10:00:00 AM,d1,20,50,80"

    def test_rows_keep_batch_order(self) -> None:
        batch = make_batch(make_record(5, device_id="new"), make_record(0, device_id="old"))
        lines = render_csv(batch, tz=UTC).splitlines()
        assert [line.split(",")[2] for line in lines[1:]] == ["new", "old"]

    def test_afternoon_and_fractions(self) -> None:
        record = TelemetryRecord(
            timestamp=datetime(2025, 12, 31, 15, 5, 9, tzinfo=UTC),
            device_id="d2",
            temperature=22.5,
            humidity=48.25,
            battery=7,
        )
        line = render_csv(make_batch(record), tz=UTC).splitlines()[1]
        assert line == "12/31/2025,3:05:09 PM,d2,22.5,48.25,7"

    def test_device_with_comma_is_quoted(self) -> None:
        line = render_csv(make_batch(make_record(device_id="lab, north")), tz=UTC).splitlines()[1]
        assert '"lab, north"' in line


class TestExportCsv:
    def test_writes_file_with_bom(self, tmp_path: Path) -> None:
        path = export_csv(
            make_batch(make_record()), tmp_path, tz=UTC, today=date(2025, 1, 2)
        )

        assert path.name == "reporte_ufox_2025-01-02.csv"
        raw = path.read_bytes()
        assert raw.startswith(b"\xef\xbb\xbf")
        lines = raw.decode("utf-8-sig").splitlines()
        assert lines == [
            "Fecha,Hora,Dispositivo,Temperatura,Humedad,Bateria",
            "1/1/2025,10:00:00 AM,d1,20,50,80",
        ]

    def test_empty_batch_refused(self, tmp_path: Path) -> None:
        with pytest.raises(ExportError, match="No data to export"):
            export_csv(TelemetryBatch.empty(), tmp_path, tz=UTC)
        assert list(tmp_path.iterdir()) == []
