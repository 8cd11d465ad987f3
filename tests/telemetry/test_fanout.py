"""Tests for the BatchFanout dispatcher."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from tests.telemetry._factories import make_batch, make_record
from ufox.telemetry.fanout import BatchFanout


class TestBatchFanout:
    @pytest.mark.asyncio
    async def test_no_sinks_is_noop(self) -> None:
        await BatchFanout().on_batch(make_batch(make_record()))

    @pytest.mark.asyncio
    async def test_dispatches_to_sync_and_async_sinks(self) -> None:
        fanout = BatchFanout()
        async_sink = AsyncMock()
        sync_sink = MagicMock(return_value=None)
        fanout.add_sink(async_sink)
        fanout.add_sink(sync_sink)

        batch = make_batch(make_record())
        await fanout.on_batch(batch)

        async_sink.assert_awaited_once_with(batch)
        sync_sink.assert_called_once_with(batch)

    @pytest.mark.asyncio
    async def test_registration_order(self) -> None:
        fanout = BatchFanout()
        calls: list[str] = []
        fanout.add_sink(lambda _b: calls.append("cards"))
        fanout.add_sink(lambda _b: calls.append("table"))
        fanout.add_sink(lambda _b: calls.append("alerts"))

        await fanout.on_batch(make_batch())
        assert calls == ["cards", "table", "alerts"]

    @pytest.mark.asyncio
    async def test_failing_sink_does_not_block_others(self) -> None:
        fanout = BatchFanout()
        bad = MagicMock(side_effect=RuntimeError("boom"))
        good = AsyncMock()
        fanout.add_sink(bad)
        fanout.add_sink(good)

        batch = make_batch(make_record())
        await fanout.on_batch(batch)

        bad.assert_called_once_with(batch)
        good.assert_awaited_once_with(batch)

    @pytest.mark.asyncio
    async def test_failing_sink_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        fanout = BatchFanout()
        fanout.add_sink(AsyncMock(side_effect=ValueError("bad render")))

        with caplog.at_level("WARNING", logger="ufox.telemetry.fanout"):
            await fanout.on_batch(make_batch())

        assert "failed" in caplog.text
