"""Async HTTP client for the UFOX telemetry backend.

Three endpoints are consumed:

* ``POST /token`` (form-encoded credentials) -> bearer token
* ``GET /users/me`` -> token validity check
* ``GET /mediciones?limit=N`` or ``?start_date=D&end_date=D`` -> records,
  newest-first

Every response is classified into a return value or one of the
exceptions in :mod:`ufox.api.errors`; the client never touches session or
batch state itself.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from ufox.api.errors import AuthError, SessionExpiredError, TransientFetchError
from ufox.models.auth import (
    DEFAULT_API_URL,
    MEASUREMENTS_PATH,
    TOKEN_PATH,
    USER_INFO_PATH,
    TokenData,
)
from ufox.models.telemetry import TelemetryBatch

if TYPE_CHECKING:
    from types import TracebackType

    from ufox.models.telemetry import QueryFilter

logger = logging.getLogger(__name__)


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TelemetryClient:
    """Thin wrapper around :class:`httpx.AsyncClient` for the telemetry API."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return str(self._client.base_url)

    # -- lifecycle -----------------------------------------------------------

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> TelemetryClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    # -- authentication ------------------------------------------------------

    async def login(self, username: str, password: str) -> TokenData:
        """Exchange credentials for a bearer token.

        Raises :class:`AuthError` on rejection or when the backend is
        unreachable; the message is suitable for showing inline.
        """
        try:
            resp = await self._client.post(
                TOKEN_PATH,
                data={"username": username, "password": password},
            )
        except httpx.HTTPError as exc:
            raise AuthError(f"Could not reach the server: {exc}") from exc

        if resp.status_code != 200:
            raise AuthError("Incorrect username or password", status_code=resp.status_code)
        try:
            return TokenData.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise AuthError("Malformed token response", status_code=resp.status_code) from exc

    async def validate_token(self, token: str) -> bool:
        """Return ``True`` if ``GET /users/me`` accepts *token*.

        Raises :class:`TransientFetchError` only when the server cannot be
        reached, so callers can tell "invalid" apart from "unknown".
        """
        try:
            resp = await self._client.get(USER_INFO_PATH, headers=_bearer(token))
        except httpx.HTTPError as exc:
            raise TransientFetchError(f"Session check failed: {exc}") from exc
        return resp.status_code == 200

    # -- telemetry -----------------------------------------------------------

    async def fetch_batch(self, token: str, query: QueryFilter) -> TelemetryBatch:
        """Fetch one batch of records matching *query*.

        * HTTP 401 -> :class:`SessionExpiredError`
        * other non-2xx, transport failure or bad payload ->
          :class:`TransientFetchError`
        * ``[]`` -> an empty batch (a valid result, not an error)
        """
        params = query.to_params()
        try:
            resp = await self._client.get(
                MEASUREMENTS_PATH, params=params, headers=_bearer(token)
            )
        except httpx.HTTPError as exc:
            raise TransientFetchError(f"Telemetry request failed: {exc}") from exc

        if resp.status_code == 401:
            raise SessionExpiredError("Session expired", status_code=401)
        if not resp.is_success:
            raise TransientFetchError(
                f"Telemetry request returned HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            payload: Any = resp.json()
            batch = TelemetryBatch.from_payload(payload)
        except (ValueError, ValidationError) as exc:
            raise TransientFetchError(f"Unreadable telemetry payload: {exc}") from exc

        logger.debug("Fetched %d records (%s)", len(batch), params)
        return batch
