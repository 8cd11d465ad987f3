"""Tests for the PollScheduler loop."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from tests.telemetry._factories import make_batch, make_record
from ufox.api.errors import SessionExpiredError, TransientFetchError
from ufox.models.telemetry import LimitFilter, TelemetryBatch
from ufox.telemetry.fanout import BatchFanout
from ufox.telemetry.scheduler import PollScheduler
from ufox.telemetry.store import BatchStore


def _limit() -> LimitFilter:
    return LimitFilter(limit=20)


def _setup(
    *, interval: float = 60.0, fetch: AsyncMock | None = None
) -> tuple[PollScheduler, MagicMock, BatchStore, MagicMock]:
    client = MagicMock()
    client.fetch_batch = fetch or AsyncMock(return_value=make_batch(make_record()))
    store = BatchStore()
    fanout = BatchFanout()
    sink = MagicMock(return_value=None)
    fanout.add_sink(sink)
    scheduler = PollScheduler(client, store, fanout, interval=interval)
    return scheduler, client, store, sink


class TestLifecycle:
    def test_rejects_non_positive_interval(self) -> None:
        with pytest.raises(ValueError):
            PollScheduler(MagicMock(), BatchStore(), BatchFanout(), interval=0)

    def test_stop_before_start_is_noop(self) -> None:
        scheduler, *_ = _setup()
        scheduler.stop()
        scheduler.stop()
        assert not scheduler.is_running

    @pytest.mark.asyncio
    async def test_first_tick_is_immediate(self) -> None:
        scheduler, client, store, sink = _setup()
        scheduler.start("tok", _limit)
        await asyncio.sleep(0.05)

        client.fetch_batch.assert_awaited_once_with("tok", LimitFilter(limit=20))
        assert len(store.current()) == 1
        sink.assert_called_once()
        assert scheduler.tick_count == 1
        assert scheduler.last_success_at is not None
        scheduler.stop()

    @pytest.mark.asyncio
    async def test_double_start_keeps_one_loop(self) -> None:
        scheduler, client, _store, _sink = _setup()
        scheduler.start("tok", _limit)
        scheduler.start("tok", _limit)
        await asyncio.sleep(0.05)

        assert client.fetch_batch.await_count == 1
        assert scheduler.is_running
        scheduler.stop()

    @pytest.mark.asyncio
    async def test_repeated_start_does_not_multiply_ticks(self) -> None:
        scheduler, client, _store, _sink = _setup(interval=0.05)
        for _ in range(5):
            scheduler.start("tok", _limit)
        await asyncio.sleep(0.5)
        scheduler.stop()

        # One loop yields about 0.5 / 0.05 + 1 ticks; five loops would give ~5x that.
        assert 3 <= client.fetch_batch.await_count <= 12

    @pytest.mark.asyncio
    async def test_stop_halts_further_fetches(self) -> None:
        scheduler, client, _store, _sink = _setup(interval=0.2)
        scheduler.start("tok", _limit)
        await asyncio.sleep(0.05)
        scheduler.stop()
        await asyncio.sleep(0.3)

        assert client.fetch_batch.await_count == 1
        assert not scheduler.is_running

    @pytest.mark.asyncio
    async def test_keeps_polling_on_interval(self) -> None:
        scheduler, client, _store, _sink = _setup(interval=0.05)
        scheduler.start("tok", _limit)
        await asyncio.sleep(0.18)
        scheduler.stop()

        assert client.fetch_batch.await_count >= 3

    @pytest.mark.asyncio
    async def test_filter_read_each_tick(self) -> None:
        limits = iter([LimitFilter(limit=5), LimitFilter(limit=50)])
        scheduler, client, _store, _sink = _setup(interval=0.05)
        scheduler.start("tok", lambda: next(limits, LimitFilter(limit=50)))
        await asyncio.sleep(0.08)
        scheduler.stop()

        queries = [call.args[1] for call in client.fetch_batch.await_args_list]
        assert queries[0] == LimitFilter(limit=5)
        assert queries[1] == LimitFilter(limit=50)


class TestTickOutcomes:
    @pytest.mark.asyncio
    async def test_store_written_before_views_render(self) -> None:
        scheduler, _client, store, _sink = _setup()
        seen: list[bool] = []
        scheduler._fanout.add_sink(lambda b: seen.append(store.current() is b))
        scheduler.start("tok", _limit)
        await asyncio.sleep(0.05)
        scheduler.stop()

        assert seen == [True]

    @pytest.mark.asyncio
    async def test_transient_failure_leaves_state(self) -> None:
        fetch = AsyncMock(side_effect=TransientFetchError("HTTP 503"))
        scheduler, _client, store, sink = _setup(fetch=fetch)
        previous = make_batch(make_record(temperature=21))
        store.replace(previous)

        scheduler.start("tok", _limit)
        await asyncio.sleep(0.05)

        assert store.current() is previous
        sink.assert_not_called()
        assert scheduler.failure_count == 1
        assert scheduler.is_running
        scheduler.stop()

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self) -> None:
        fetch = AsyncMock(side_effect=RuntimeError("bug"))
        scheduler, _client, _store, sink = _setup(fetch=fetch)
        scheduler.start("tok", _limit)
        await asyncio.sleep(0.05)

        sink.assert_not_called()
        assert scheduler.failure_count == 1
        assert scheduler.is_running
        scheduler.stop()

    @pytest.mark.asyncio
    async def test_401_stops_and_calls_handler(self) -> None:
        fetch = AsyncMock(side_effect=SessionExpiredError(status_code=401))
        scheduler, client, store, sink = _setup(interval=0.05, fetch=fetch)
        handler = AsyncMock()
        scheduler.set_unauthorized_handler(handler)

        scheduler.start("tok", _limit)
        await asyncio.sleep(0.2)

        handler.assert_awaited_once()
        assert not scheduler.is_running
        assert client.fetch_batch.await_count == 1
        assert store.current().is_empty
        sink.assert_not_called()

    @pytest.mark.asyncio
    async def test_result_after_stop_is_discarded(self) -> None:
        release = asyncio.Event()
        batch = make_batch(make_record())

        async def slow_fetch(token: str, query: LimitFilter) -> TelemetryBatch:
            await release.wait()
            return batch

        scheduler, _client, store, sink = _setup(fetch=AsyncMock(side_effect=slow_fetch))
        scheduler.start("tok", _limit)
        await asyncio.sleep(0.02)
        scheduler.stop()
        release.set()
        await asyncio.sleep(0.02)

        assert store.current().is_empty
        sink.assert_not_called()

    @pytest.mark.asyncio
    async def test_overrun_skips_missed_ticks(self) -> None:
        calls = 0

        async def slow_first(token: str, query: LimitFilter) -> TelemetryBatch:
            nonlocal calls
            calls += 1
            if calls == 1:
                await asyncio.sleep(0.13)
            return make_batch(make_record())

        scheduler, *_ = _setup(interval=0.05, fetch=AsyncMock(side_effect=slow_first))
        scheduler.start("tok", _limit)
        await asyncio.sleep(0.16)
        scheduler.stop()

        assert scheduler.skipped_count >= 1
        assert calls <= 3
