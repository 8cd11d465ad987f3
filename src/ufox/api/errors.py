"""Exception hierarchy for the telemetry API client and its callers."""

from __future__ import annotations


class UfoxError(Exception):
    """Base class for all ufox errors."""

    def __init__(self, message: str = "", *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthError(UfoxError):
    """Credentials were rejected (or could not be checked) at ``POST /token``."""


class SessionExpiredError(UfoxError):
    """An authenticated call returned HTTP 401."""


class TransientFetchError(UfoxError):
    """Network failure, non-401 error status, or an unreadable payload.

    Never fatal: the poll scheduler logs it and retries on the next tick.
    """


class ConfigError(UfoxError):
    """Missing token or invalid user input."""


class ExportError(UfoxError):
    """The current batch cannot be exported (e.g. it is empty)."""
