"""Session lifecycle: login, silent resume, logout and 401 teardown.

Entering ``LOGGED_IN`` starts the poll scheduler; leaving it stops the
scheduler, clears the batch store, forgets the stored token and pushes an
empty batch through the fan-out so no view keeps showing old numbers.
"""

from __future__ import annotations

import inspect
import logging
from enum import StrEnum
from typing import TYPE_CHECKING

from ufox.api.errors import TransientFetchError
from ufox.models.auth import Session

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ufox.api.client import TelemetryClient
    from ufox.auth.token_store import TokenStore
    from ufox.telemetry.fanout import BatchFanout
    from ufox.telemetry.scheduler import FilterProvider, PollScheduler
    from ufox.telemetry.store import BatchStore

    StateListener = Callable[["SessionState"], Awaitable[None] | None]

logger = logging.getLogger(__name__)


class SessionState(StrEnum):
    LOGGED_OUT = "logged_out"
    LOGGED_IN = "logged_in"


class SessionGate:
    """Entry/exit controller for the polling engine."""

    def __init__(
        self,
        client: TelemetryClient,
        token_store: TokenStore,
        scheduler: PollScheduler,
        store: BatchStore,
        fanout: BatchFanout,
        filter_provider: FilterProvider,
    ) -> None:
        self._client = client
        self._token_store = token_store
        self._scheduler = scheduler
        self._store = store
        self._fanout = fanout
        self._filter_provider = filter_provider
        self._session: Session | None = None
        self._listeners: list[StateListener] = []

        scheduler.set_unauthorized_handler(self.handle_unauthorized)

    # -- properties ------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        if self._session is not None and self._session.valid:
            return SessionState.LOGGED_IN
        return SessionState.LOGGED_OUT

    @property
    def session(self) -> Session | None:
        return self._session

    def add_listener(self, listener: StateListener) -> None:
        """Register a callback invoked after every state transition."""
        self._listeners.append(listener)

    # -- transitions -------------------------------------------------------------

    async def login(self, username: str, password: str) -> None:
        """Authenticate with credentials and start polling.

        :class:`~ufox.api.errors.AuthError` propagates to the caller, which
        shows it inline; the session is not established.
        """
        token = await self._client.login(username, password)
        self._token_store.save(token.access_token)
        logger.info("Logged in as %s", username)
        await self._enter(token.access_token)

    async def resume(self) -> bool:
        """Validate a stored token and, if accepted, start polling.

        Never raises: a rejected token logs out silently, and an unreachable
        server leaves the stored token for the next attempt.
        """
        token = self._token_store.access_token
        if not token:
            return False
        try:
            valid = await self._client.validate_token(token)
        except TransientFetchError as exc:
            logger.warning("Could not validate stored session: %s", exc)
            return False
        if not valid:
            logger.info("Stored session is no longer valid")
            await self.logout()
            return False
        await self._enter(token)
        return True

    async def logout(self) -> None:
        """Stop polling, clear state and forget the stored token."""
        self._scheduler.stop()
        self._store.clear()
        self._token_store.clear()
        was_logged_in = self._session is not None
        self._session = None
        if was_logged_in:
            logger.info("Logged out")
        await self._fanout.on_batch(self._store.current())
        await self._notify()

    async def handle_unauthorized(self) -> None:
        """Scheduler hook: a poll returned 401."""
        if self._session is not None:
            self._session = self._session.model_copy(update={"valid": False})
        logger.info("Session expired; returning to login")
        await self.logout()

    # -- internals ---------------------------------------------------------------

    async def _enter(self, token: str) -> None:
        self._session = Session(token=token)
        self._scheduler.start(token, self._filter_provider)
        await self._notify()

    async def _notify(self) -> None:
        state = self.state
        for listener in self._listeners:
            try:
                result = listener(state)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.warning("Session listener %s failed", listener, exc_info=True)
