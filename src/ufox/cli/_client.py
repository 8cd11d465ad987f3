"""Shared helpers for building the API client and resolving the token."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ufox._internal.display import resolve_timezone
from ufox.api.client import TelemetryClient
from ufox.api.errors import ConfigError
from ufox.auth.token_store import TokenStore

if TYPE_CHECKING:
    from datetime import tzinfo

    from ufox.cli.main import AppContext


def get_token_store(app_ctx: AppContext) -> TokenStore:
    return TokenStore(profile=app_ctx.profile or app_ctx.settings.profile)


def get_client(app_ctx: AppContext) -> TelemetryClient:
    """Build a :class:`TelemetryClient` from settings and CLI overrides."""
    settings = app_ctx.settings
    return TelemetryClient(
        app_ctx.api_url or settings.api_url,
        timeout=settings.request_timeout,
    )


def get_timezone(app_ctx: AppContext) -> tzinfo | None:
    return resolve_timezone(app_ctx.settings.timezone)


def require_token(app_ctx: AppContext) -> str:
    """Return the bearer token: ``UFOX_ACCESS_TOKEN`` first, then the keyring."""
    access_token = app_ctx.settings.access_token
    if not access_token:
        access_token = get_token_store(app_ctx).access_token

    if not access_token:
        raise ConfigError("No access token found. Run 'ufox auth login' or set UFOX_ACCESS_TOKEN.")
    return access_token
