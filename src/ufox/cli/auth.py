"""CLI commands for authentication (login, logout, status)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from ufox._internal.async_utils import run_async
from ufox.cli._client import get_client, get_token_store
from ufox.cli._options import global_options

if TYPE_CHECKING:
    from ufox.cli.main import AppContext
    from ufox.output.rich_output import RichOutput

auth_group = click.Group("auth", help="Sign in and manage the stored session")


def _login_banner(rich: RichOutput) -> None:
    rich.info("[bold green]Login successful![/bold green]")
    rich.info("")
    rich.info("Try it out:")
    rich.info("  [cyan]ufox fetch[/cyan]")
    rich.info("  [cyan]ufox watch[/cyan]")


@auth_group.command("login")
@click.option("--username", prompt=True, help="Account username")
@click.option("--password", prompt=True, hide_input=True, help="Account password")
@global_options
def login_cmd(app_ctx: AppContext, username: str, password: str) -> None:
    """Exchange credentials for a token and store it in the keyring."""
    store = get_token_store(app_ctx)

    async def _login() -> None:
        async with get_client(app_ctx) as client:
            token = await client.login(username, password)
        store.save(token.access_token)

    run_async(_login())

    app_ctx.formatter.output(
        {"authenticated": True, "profile": store.profile},
        command="auth.login",
        render=_login_banner,
    )


@auth_group.command("logout")
@global_options
def logout_cmd(app_ctx: AppContext) -> None:
    """Forget the stored token."""
    store = get_token_store(app_ctx)
    store.clear()

    app_ctx.formatter.output(
        {"authenticated": False, "profile": store.profile},
        command="auth.logout",
        render=lambda rich: rich.info("Logged out."),
    )


@auth_group.command("status")
@click.option("--offline", is_flag=True, default=False, help="Skip the server check")
@global_options
def status_cmd(app_ctx: AppContext, offline: bool) -> None:
    """Show whether a token is stored and whether the server accepts it."""
    store = get_token_store(app_ctx)
    token = store.access_token

    valid: bool | None = None
    if token and not offline:

        async def _check() -> bool:
            async with get_client(app_ctx) as client:
                return await client.validate_token(token)

        valid = run_async(_check())

    def _render(rich: RichOutput) -> None:
        profile = f"[cyan]{store.profile}[/cyan]"
        if token is None:
            rich.info("Not logged in.")
        elif valid is None:
            rich.info(f"Token stored for profile {profile} (not checked).")
        elif valid:
            rich.info(f"[green]Logged in[/green] (profile {profile}).")
        else:
            rich.info("[yellow]Stored token was rejected by the server.[/yellow]")
            rich.info("Run [cyan]ufox auth login[/cyan] to sign in again.")

    app_ctx.formatter.output(
        {"authenticated": token is not None, "profile": store.profile, "valid": valid},
        command="auth.status",
        render=_render,
    )
