"""Keyring-backed bearer-token persistence."""

from __future__ import annotations

import contextlib

import keyring
from keyring.errors import PasswordDeleteError

SERVICE_NAME = "ufox"
TOKEN_KEY = "ufox_token"


class TokenStore:
    """Read / write the single bearer token via the OS keyring.

    Absence of a token means "logged out".
    """

    def __init__(self, profile: str = "default") -> None:
        self._profile = profile

    def _key(self) -> str:
        return f"{self._profile}/{TOKEN_KEY}"

    @property
    def profile(self) -> str:
        return self._profile

    @property
    def access_token(self) -> str | None:
        """Return the stored token, or *None*."""
        return keyring.get_password(SERVICE_NAME, self._key())

    def save(self, access_token: str) -> None:
        keyring.set_password(SERVICE_NAME, self._key(), access_token)

    def clear(self) -> None:
        """Delete the stored token, ignoring a missing entry."""
        with contextlib.suppress(PasswordDeleteError):
            keyring.delete_password(SERVICE_NAME, self._key())
