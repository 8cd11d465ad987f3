"""CLI entry-point: Click command group and dispatch."""

from __future__ import annotations

import dataclasses
import logging

import click

from ufox._internal.display import resolve_timezone
from ufox.api.errors import (
    AuthError,
    ConfigError,
    ExportError,
    SessionExpiredError,
    TransientFetchError,
)
from ufox.models.config import AppSettings
from ufox.output.formatter import OutputFormatter

# ---------------------------------------------------------------------------
# Application context (stored in ctx.obj)
# ---------------------------------------------------------------------------


@dataclasses.dataclass
class AppContext:
    """Shared state passed to every Click command via ``@click.pass_obj``."""

    profile: str | None
    output_format: str | None
    verbose: bool
    api_url: str | None = None
    _settings: AppSettings | None = dataclasses.field(default=None, repr=False)
    _formatter: OutputFormatter | None = dataclasses.field(default=None, repr=False)

    @property
    def settings(self) -> AppSettings:
        if self._settings is None:
            self._settings = AppSettings()
        return self._settings

    @property
    def formatter(self) -> OutputFormatter:
        if self._formatter is None:
            self._formatter = OutputFormatter(
                force_format=self.output_format,
                tz=resolve_timezone(self.settings.timezone),
            )
        return self._formatter


def _configure_logging(verbose: bool) -> None:
    """Send ufox debug logs to stderr through Rich when ``--verbose`` is set."""
    if not verbose:
        return
    from rich.console import Console
    from rich.logging import RichHandler

    handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    logging.basicConfig(level=logging.WARNING, format="%(message)s", handlers=[handler])
    logging.getLogger("ufox").setLevel(logging.DEBUG)


# ---------------------------------------------------------------------------
# Root Click group
# ---------------------------------------------------------------------------


@click.group()
@click.option("--profile", default=None, help="Keyring profile name")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["rich", "json", "quiet"]),
    default=None,
    help="Output format (default: auto-detect)",
)
@click.option("--verbose", is_flag=True, default=False, help="Enable verbose logging")
@click.option("--api-url", default=None, envvar="UFOX_API_URL", help="Backend base URL")
@click.pass_context
def cli(
    ctx: click.Context,
    profile: str | None,
    output_format: str | None,
    verbose: bool,
    api_url: str | None,
) -> None:
    """Monitor UFOX temperature, humidity and battery telemetry."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj = AppContext(
        profile=profile,
        output_format=output_format,
        verbose=verbose,
        api_url=api_url,
    )


# ---------------------------------------------------------------------------
# Register subcommand groups (lazy imports keep startup fast)
# ---------------------------------------------------------------------------


def _register_commands() -> None:
    """Import and attach all subcommands to the root CLI."""
    from ufox.cli.auth import auth_group
    from ufox.cli.telemetry import export_cmd, fetch_cmd, watch_cmd

    cli.add_command(auth_group)
    cli.add_command(fetch_cmd)
    cli.add_command(export_cmd)
    cli.add_command(watch_cmd)


_register_commands()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """Parse arguments and dispatch to the appropriate command handler."""
    try:
        cli(args=argv, standalone_mode=False)
    except click.exceptions.Exit as exc:
        raise SystemExit(exc.exit_code) from None
    except click.exceptions.Abort:
        raise SystemExit(1) from None
    except click.exceptions.ClickException as exc:
        exc.show()
        raise SystemExit(exc.exit_code) from None
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    except SystemExit:
        raise
    except Exception as exc:
        app_ctx = _extract_app_ctx()
        formatter = app_ctx.formatter if app_ctx else OutputFormatter()
        cmd_name = _get_command_name()

        if _handle_known_error(exc, formatter, cmd_name):
            raise SystemExit(1) from exc

        formatter.output_error(
            code=type(exc).__name__,
            message=str(exc),
            command=cmd_name,
        )
        raise SystemExit(1) from exc


# ---------------------------------------------------------------------------
# Helpers for error handling
# ---------------------------------------------------------------------------


def _extract_app_ctx() -> AppContext | None:
    """Try to extract AppContext from the current Click context."""
    ctx = click.get_current_context(silent=True)
    while ctx is not None:
        if isinstance(ctx.obj, AppContext):
            return ctx.obj
        ctx = ctx.parent
    return None


def _get_command_name() -> str:
    """Reconstruct a dotted command name from the Click context chain."""
    ctx = click.get_current_context(silent=True)
    parts: list[str] = []
    while ctx is not None:
        if ctx.info_name and ctx.info_name != "cli":
            parts.append(ctx.info_name)
        ctx = ctx.parent
    return ".".join(reversed(parts)) or "unknown"


# Exception type -> (JSON error code, follow-up hint).
_KNOWN_ERRORS: tuple[tuple[type[Exception], str, str], ...] = (
    (SessionExpiredError, "session_expired", "Run 'ufox auth login' to sign in again."),
    (AuthError, "auth_failed", "Check your username and password."),
    (ConfigError, "config_error", "Run 'ufox auth login' or set UFOX_ACCESS_TOKEN."),
    (ExportError, "export_failed", "Widen the date range or raise --limit."),
    (TransientFetchError, "fetch_failed", "The server may be waking up; try again shortly."),
)


def _handle_known_error(
    exc: Exception,
    formatter: OutputFormatter,
    cmd_name: str,
) -> bool:
    """Show well-known errors with a next-step hint.

    Returns ``True`` if the error was handled and the caller should exit.
    """
    for exc_type, code, hint in _KNOWN_ERRORS:
        if not isinstance(exc, exc_type):
            continue
        message = str(exc) or exc_type.__name__
        if formatter.format == "json":
            formatter.output_error(code=code, message=f"{message} {hint}", command=cmd_name)
        else:
            formatter.rich.error(message)
            formatter.rich.info(f"[dim]{hint}[/dim]")
        return True
    return False
