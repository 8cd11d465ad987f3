from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Any

from rich.console import Console

from ufox.output.json_output import format_json_error, format_json_response
from ufox.output.rich_output import RichOutput

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import tzinfo
    from io import TextIOBase


class OutputFormatter:
    """Picks JSON or Rich output for CLI commands.

    Selection logic:

    * If *force_format* is provided, use it unconditionally.
    * Otherwise a TTY *stream* (default ``sys.stdout``) gets ``"rich"`` and
      anything piped or redirected gets ``"json"``.

    ``"quiet"`` renders through a stderr console so stdout stays empty.
    """

    def __init__(
        self,
        *,
        stream: TextIOBase | Any | None = None,
        force_format: str | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        self._stream = stream or sys.stdout
        if force_format is not None:
            self._format = force_format
        elif hasattr(self._stream, "isatty") and self._stream.isatty():
            self._format = "rich"
        else:
            self._format = "json"

        if self._format == "quiet":
            self._console = Console(stderr=True)
        else:
            self._console = Console()

        self._rich = RichOutput(self._console, tz=tz)

    # ------------------------------------------------------------------
    # Public helpers
    # ------------------------------------------------------------------

    @property
    def format(self) -> str:  # noqa: A003
        """Return the active output format (``"rich"``, ``"json"``, or ``"quiet"``)."""
        return self._format

    @property
    def rich(self) -> RichOutput:
        return self._rich

    def output(
        self,
        data: Any,
        *,
        command: str,
        render: Callable[[RichOutput], None],
    ) -> None:
        """Emit a command result.

        JSON prints the *data* envelope on stdout. Rich and quiet hand the
        :class:`RichOutput` to *render*, which draws the human view.
        """
        if self._format == "json":
            print(format_json_response(data=data, command=command))  # noqa: T201
        else:
            render(self._rich)

    def output_error(self, *, code: str, message: str, command: str) -> None:
        """Emit an error envelope (JSON) or a red error line (Rich / quiet)."""
        if self._format == "json":
            print(format_json_error(code=code, message=message, command=command))  # noqa: T201
        else:
            self._rich.error(message)
