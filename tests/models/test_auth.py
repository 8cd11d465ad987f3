from __future__ import annotations

import pytest

from ufox.models.auth import DEFAULT_API_URL, Session, TokenData
from ufox.models.config import AppSettings


class TestTokenData:
    def test_from_response(self) -> None:
        token = TokenData.model_validate({"access_token": "abc", "token_type": "bearer"})
        assert token.access_token == "abc"

    def test_token_type_optional(self) -> None:
        assert TokenData(access_token="abc").token_type == "bearer"


class TestSession:
    def test_valid_by_default(self) -> None:
        assert Session(token="abc").valid


class TestAppSettings:
    def test_defaults(self) -> None:
        settings = AppSettings()
        assert settings.api_url == DEFAULT_API_URL
        assert settings.poll_interval == 5.0
        assert settings.default_limit == 20
        assert settings.temp_limit is None
        assert settings.access_token is None

    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("UFOX_POLL_INTERVAL", "2.5")
        monkeypatch.setenv("UFOX_TEMP_LIMIT", "35")
        settings = AppSettings()
        assert settings.poll_interval == 2.5
        assert settings.temp_limit == 35.0
