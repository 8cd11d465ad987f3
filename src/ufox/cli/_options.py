"""Shared CLI decorator that propagates global options to leaf commands."""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING, Any

import click

if TYPE_CHECKING:
    from ufox.cli.main import AppContext


def global_options(f: Any) -> Any:
    """Add global CLI options to a leaf command.

    Allows ``--profile``, ``--format``, ``--verbose`` and ``--api-url`` to
    be given **after** the subcommand name (e.g. ``ufox fetch --format json``).
    Command-level values override the root-group values stored in
    :class:`AppContext`.
    """

    @click.option("--api-url", "local_api_url", default=None, help="Backend base URL")
    @click.option(
        "--verbose",
        "local_verbose",
        is_flag=True,
        default=False,
        help="Enable verbose logging",
    )
    @click.option(
        "--format",
        "local_output_format",
        type=click.Choice(["rich", "json", "quiet"]),
        default=None,
        help="Output format (default: auto-detect)",
    )
    @click.option("--profile", "local_profile", default=None, help="Keyring profile name")
    @click.pass_obj
    def wrapper(app_ctx: AppContext, /, **kwargs: Any) -> Any:
        local_profile: str | None = kwargs.pop("local_profile", None)
        local_output_format: str | None = kwargs.pop("local_output_format", None)
        local_verbose: bool = kwargs.pop("local_verbose", False)
        local_api_url: str | None = kwargs.pop("local_api_url", None)

        # Command-level wins
        if local_profile is not None:
            app_ctx.profile = local_profile
        if local_output_format is not None:
            app_ctx.output_format = local_output_format
            app_ctx._formatter = None
        if local_verbose and not app_ctx.verbose:
            from ufox.cli.main import _configure_logging

            app_ctx.verbose = True
            _configure_logging(True)
        if local_api_url is not None:
            app_ctx.api_url = local_api_url

        return f(app_ctx, **kwargs)

    functools.update_wrapper(wrapper, f)
    return wrapper
