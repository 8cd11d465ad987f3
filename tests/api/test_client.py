"""Tests for ufox.api.client: TelemetryClient."""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

import httpx
import pytest

from ufox.api.client import TelemetryClient
from ufox.api.errors import AuthError, SessionExpiredError, TransientFetchError
from ufox.models.telemetry import DateRangeFilter, LimitFilter

if TYPE_CHECKING:
    from pytest_httpx import HTTPXMock

BASE = "https://api.test"

RECORDS = [
    {
        "fecha": "2025-01-01T10:05:00",
        "device_id": "d1",
        "temperatura": 22.5,
        "humedad": 48,
        "bateria": 79,
    },
    {
        "fecha": "2025-01-01T10:00:00",
        "device_id": "d1",
        "temperatura": 20,
        "humedad": 50,
        "bateria": 80,
    },
]


@pytest.fixture
def client() -> TelemetryClient:
    return TelemetryClient(BASE)


class TestLogin:
    @pytest.mark.asyncio
    async def test_returns_token(self, httpx_mock: HTTPXMock, client: TelemetryClient) -> None:
        httpx_mock.add_response(
            method="POST",
            url=f"{BASE}/token",
            json={"access_token": "abc", "token_type": "bearer"},
        )
        token = await client.login("ana", "s3cret")
        assert token.access_token == "abc"

        request = httpx_mock.get_requests()[0]
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert b"username=ana" in request.content
        assert b"password=s3cret" in request.content

    @pytest.mark.asyncio
    async def test_rejected_credentials(
        self, httpx_mock: HTTPXMock, client: TelemetryClient
    ) -> None:
        httpx_mock.add_response(method="POST", url=f"{BASE}/token", status_code=401)
        with pytest.raises(AuthError, match="Incorrect username or password") as exc_info:
            await client.login("ana", "wrong")
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_unreachable_server(
        self, httpx_mock: HTTPXMock, client: TelemetryClient
    ) -> None:
        httpx_mock.add_exception(httpx.ConnectError("refused"))
        with pytest.raises(AuthError, match="Could not reach the server"):
            await client.login("ana", "s3cret")

    @pytest.mark.asyncio
    async def test_malformed_token_body(
        self, httpx_mock: HTTPXMock, client: TelemetryClient
    ) -> None:
        httpx_mock.add_response(method="POST", url=f"{BASE}/token", json={"nope": 1})
        with pytest.raises(AuthError, match="Malformed"):
            await client.login("ana", "s3cret")


class TestValidateToken:
    @pytest.mark.asyncio
    async def test_accepted(self, httpx_mock: HTTPXMock, client: TelemetryClient) -> None:
        httpx_mock.add_response(url=f"{BASE}/users/me", json={"username": "ana"})
        assert await client.validate_token("tok") is True
        assert httpx_mock.get_requests()[0].headers["authorization"] == "Bearer tok"

    @pytest.mark.asyncio
    async def test_rejected(self, httpx_mock: HTTPXMock, client: TelemetryClient) -> None:
        httpx_mock.add_response(url=f"{BASE}/users/me", status_code=401)
        assert await client.validate_token("tok") is False

    @pytest.mark.asyncio
    async def test_unreachable_is_transient(
        self, httpx_mock: HTTPXMock, client: TelemetryClient
    ) -> None:
        httpx_mock.add_exception(httpx.ReadTimeout("slow"))
        with pytest.raises(TransientFetchError):
            await client.validate_token("tok")


class TestFetchBatch:
    @pytest.mark.asyncio
    async def test_limit_query(self, httpx_mock: HTTPXMock, client: TelemetryClient) -> None:
        httpx_mock.add_response(url=f"{BASE}/mediciones?limit=20", json=RECORDS)
        batch = await client.fetch_batch("tok", LimitFilter(limit=20))

        assert len(batch) == 2
        latest = batch.latest
        assert latest is not None
        assert latest.temperature == 22.5
        assert latest.timestamp == datetime(2025, 1, 1, 10, 5, tzinfo=UTC)
        assert httpx_mock.get_requests()[0].headers["authorization"] == "Bearer tok"

    @pytest.mark.asyncio
    async def test_date_range_query(
        self, httpx_mock: HTTPXMock, client: TelemetryClient
    ) -> None:
        httpx_mock.add_response(
            url=f"{BASE}/mediciones?start_date=2025-01-01&end_date=2025-01-31",
            json=RECORDS,
        )
        query = DateRangeFilter(start_date=date(2025, 1, 1), end_date=date(2025, 1, 31))
        batch = await client.fetch_batch("tok", query)
        assert len(batch) == 2

    @pytest.mark.asyncio
    async def test_empty_list_is_empty_batch(
        self, httpx_mock: HTTPXMock, client: TelemetryClient
    ) -> None:
        httpx_mock.add_response(url=f"{BASE}/mediciones?limit=5", json=[])
        batch = await client.fetch_batch("tok", LimitFilter(limit=5))
        assert batch.is_empty
        assert batch.latest is None

    @pytest.mark.asyncio
    async def test_401_is_session_expired(
        self, httpx_mock: HTTPXMock, client: TelemetryClient
    ) -> None:
        httpx_mock.add_response(url=f"{BASE}/mediciones?limit=20", status_code=401)
        with pytest.raises(SessionExpiredError) as exc_info:
            await client.fetch_batch("tok", LimitFilter(limit=20))
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_server_error_is_transient(
        self, httpx_mock: HTTPXMock, client: TelemetryClient
    ) -> None:
        httpx_mock.add_response(url=f"{BASE}/mediciones?limit=20", status_code=503)
        with pytest.raises(TransientFetchError, match="HTTP 503") as exc_info:
            await client.fetch_batch("tok", LimitFilter(limit=20))
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_network_failure_is_transient(
        self, httpx_mock: HTTPXMock, client: TelemetryClient
    ) -> None:
        httpx_mock.add_exception(httpx.ConnectError("down"))
        with pytest.raises(TransientFetchError):
            await client.fetch_batch("tok", LimitFilter(limit=20))

    @pytest.mark.asyncio
    async def test_unparseable_body_is_transient(
        self, httpx_mock: HTTPXMock, client: TelemetryClient
    ) -> None:
        httpx_mock.add_response(url=f"{BASE}/mediciones?limit=20", text="<html>oops</html>")
        with pytest.raises(TransientFetchError, match="Unreadable"):
            await client.fetch_batch("tok", LimitFilter(limit=20))

    @pytest.mark.asyncio
    async def test_invalid_record_is_transient(
        self, httpx_mock: HTTPXMock, client: TelemetryClient
    ) -> None:
        bad = [{**RECORDS[0], "bateria": 140}]
        httpx_mock.add_response(url=f"{BASE}/mediciones?limit=20", json=bad)
        with pytest.raises(TransientFetchError):
            await client.fetch_batch("tok", LimitFilter(limit=20))


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_context_manager_closes(self) -> None:
        async with TelemetryClient(f"{BASE}/") as client:
            assert client.base_url.startswith(BASE)
        assert client._client.is_closed
