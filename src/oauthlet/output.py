"""Output for the ``oauthlet`` command with strict stdout/stderr discipline.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** -- primary data only (the authorization URL, issued tokens,
  response bodies). This is what downstream tools pipe and parse.
* **stderr** -- all diagnostics (instructions, warnings, errors, log
  records). Never contaminates the data stream.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb``, and the
  ``--no-color`` CLI flag.

The module exposes two layers:

1. :class:`OutputManager` -- holds the stderr Rich console and quiet/verbose flags.
   Created once by :func:`oauthlet.app.run` and installed via
   :func:`set_output`.
2. Module-level convenience functions (:func:`info`, :func:`error`, ...)
   that delegate to the global ``OutputManager``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


class OutputManager:
    """Central manager for CLI output.

    Data goes straight to ``sys.stdout``; diagnostics go through a Rich
    :class:`~rich.console.Console` bound to stderr.

    Args:
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential informational messages on stderr.
        verbose: Route ``DEBUG`` log records from :mod:`oauthlet` to stderr.
    """

    def __init__(
        self,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def is_quiet(self) -> bool:
        """Whether quiet mode is enabled."""
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        """Whether verbose mode is enabled."""
        return self._verbose

    def configure_logging(self) -> None:
        """Attach a stderr :class:`~rich.logging.RichHandler` to the ``oauthlet`` logger.

        ``DEBUG`` with ``--verbose``, ``WARNING`` otherwise. Calling it
        again replaces the previously attached handler.
        """
        logger = logging.getLogger("oauthlet")
        for handler in list(logger.handlers):
            if isinstance(handler, RichHandler):
                logger.removeHandler(handler)
        handler = RichHandler(console=self._stderr, show_path=False, markup=False)
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG if self._verbose else logging.WARNING)

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def print_data(self, text: str) -> None:
        """Print raw text to stdout, appending a newline if missing."""
        sys.stdout.write(text)
        if not text.endswith("\n"):
            sys.stdout.write("\n")
        sys.stdout.flush()

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Print an informational message to stderr. Suppressed by ``--quiet``."""
        if not self._quiet:
            if self._no_color:
                print(message, file=sys.stderr, flush=True)
            else:
                self._stderr.print(message, markup=False)

    def warning(self, message: str) -> None:
        """Print a yellow warning to stderr. NOT suppressed by ``--quiet``."""
        if self._no_color:
            print(f"Warning: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print("[yellow]Warning:[/yellow] ", end="")
            self._stderr.print(message, markup=False)

    def error(self, message: str) -> None:
        """Print a bold-red error to stderr. Never suppressed."""
        if self._no_color:
            print(f"Error: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print("[bold red]Error:[/bold red] ", end="")
            self._stderr.print(message, markup=False)

    def suggest(self, message: str) -> None:
        """Print a dimmed next-step suggestion to stderr. Suppressed by ``--quiet``.

        Args:
            message: The suggestion text (prefixed with an arrow on output).
        """
        if not self._quiet:
            formatted = f"→ {message}"
            if self._no_color:
                print(formatted, file=sys.stderr, flush=True)
            else:
                self._stderr.print(formatted, style="dim", markup=False)


def _should_disable_color() -> bool:
    """Return True if ``NO_COLOR`` is set or ``TERM`` is ``dumb``."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    return os.environ.get("TERM") == "dumb"


# --- Global instance ---

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global OutputManager, creating a default one if needed."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global OutputManager."""
    global _output
    _output = output


def reset_output() -> None:
    """Drop the global OutputManager so the next call builds a fresh one."""
    global _output
    _output = None


def print_data(text: str) -> None:
    """Print raw text to stdout via the global OutputManager."""
    get_output().print_data(text)


def info(message: str) -> None:
    """Print an informational message via the global OutputManager."""
    get_output().info(message)


def warning(message: str) -> None:
    """Print a warning via the global OutputManager."""
    get_output().warning(message)


def error(message: str) -> None:
    """Print an error via the global OutputManager."""
    get_output().error(message)


def suggest(message: str) -> None:
    """Print a next-step suggestion via the global OutputManager."""
    get_output().suggest(message)
