"""Shared fixtures: isolate settings from the environment and the OS keyring."""

from __future__ import annotations

import keyring
import pytest
from keyring.errors import PasswordDeleteError

_UFOX_ENV = (
    "UFOX_API_URL",
    "UFOX_PROFILE",
    "UFOX_ACCESS_TOKEN",
    "UFOX_REQUEST_TIMEOUT",
    "UFOX_POLL_INTERVAL",
    "UFOX_DEFAULT_LIMIT",
    "UFOX_TEMP_LIMIT",
    "UFOX_HUM_LIMIT",
    "UFOX_EXPORT_DIR",
    "UFOX_TIMEZONE",
    "UFOX_CHART_WIDTH_THRESHOLD",
    "UFOX_CHART_POINT_WIDTH",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: object) -> None:
    for name in _UFOX_ENV:
        monkeypatch.delenv(name, raising=False)
    # Keep a stray .env in the working directory out of the settings.
    monkeypatch.chdir(tmp_path)  # type: ignore[arg-type]


@pytest.fixture(autouse=True)
def memory_keyring(monkeypatch: pytest.MonkeyPatch) -> dict[tuple[str, str], str]:
    """Replace the OS keyring with a dict for the duration of a test."""
    secrets: dict[tuple[str, str], str] = {}

    def _get(service: str, key: str) -> str | None:
        return secrets.get((service, key))

    def _set(service: str, key: str, value: str) -> None:
        secrets[(service, key)] = value

    def _delete(service: str, key: str) -> None:
        if (service, key) not in secrets:
            raise PasswordDeleteError("not found")
        del secrets[(service, key)]

    monkeypatch.setattr(keyring, "get_password", _get)
    monkeypatch.setattr(keyring, "set_password", _set)
    monkeypatch.setattr(keyring, "delete_password", _delete)
    return secrets
