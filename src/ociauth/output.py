"""Diagnostic output with strict stderr discipline.

Follows `clig.dev <https://clig.dev/>`_ conventions for a library that may
be embedded in a CLI: every diagnostic goes to **stderr** so it never
contaminates data a host application writes to stdout.

* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb``, and the
  ``no_color`` flag.
* **Verbosity** -- ``debug`` lines are only printed in verbose mode, which
  defaults to the ``OCIAUTH_VERBOSE`` environment toggle.

The module exposes two layers:

1. :class:`OutputManager` -- a stateful object holding a Rich stderr
   console and quiet/verbose flags. Host applications create one and
   install it via :func:`set_output`.
2. :func:`get_output` -- returns the installed manager (creating a default
   one lazily) so library code does not need to pass it around.

Credentials are never passed to this module.
"""

from __future__ import annotations

import os
import sys
from typing import Optional

from rich.console import Console
from rich.markup import escape

from ociauth.config import env_flag


class OutputManager:
    """Central manager for diagnostic output on stderr.

    Args:
        no_color: Disable all colour and Rich markup.
        quiet: Suppress informational messages.
        verbose: Enable debug-level messages. ``None`` reads the
            ``OCIAUTH_VERBOSE`` environment toggle.
    """

    def __init__(
        self,
        no_color: bool = False,
        quiet: bool = False,
        verbose: Optional[bool] = None,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = env_flag("VERBOSE") if verbose is None else verbose
        self._stderr = Console(
            file=sys.stderr,
            no_color=self._no_color,
            stderr=True,
        )

    @property
    def is_quiet(self) -> bool:
        """Whether quiet mode is enabled."""
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        """Whether verbose mode is enabled."""
        return self._verbose

    def info(self, message: str) -> None:
        """Print an informational message to stderr. Suppressed by ``quiet``."""
        if not self._quiet:
            if self._no_color:
                print(message, file=sys.stderr, flush=True)
            else:
                self._stderr.print(escape(message))

    def warning(self, message: str) -> None:
        """Print a yellow warning to stderr. NOT suppressed by ``quiet``."""
        if self._no_color:
            print(f"Warning: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[yellow]Warning:[/yellow] {escape(message)}")

    def error(self, message: str) -> None:
        """Print a bold-red error to stderr. Never suppressed."""
        if self._no_color:
            print(f"Error: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[bold red]Error:[/bold red] {escape(message)}")

    def debug(self, message: str) -> None:
        """Print a debug message to stderr. Only shown in verbose mode.

        Args:
            message: The debug text (prefixed with ``[debug]`` on output).
        """
        if self._verbose:
            if self._no_color:
                print(f"[debug] {message}", file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[dim]\\[debug] {escape(message)}[/dim]")


def _should_disable_color() -> bool:
    """Check if color should be disabled per clig.dev.

    Returns True when NO_COLOR env var is set (any value) or TERM=dumb.
    """
    if os.environ.get("NO_COLOR") is not None:
        return True
    if os.environ.get("TERM") == "dumb":
        return True
    return False


# ------------------------------------------------------------------ #
# Global output instance
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager` instance.

    If no instance has been installed via :func:`set_output`, a default
    ``OutputManager`` is created lazily.
    """
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global :class:`OutputManager` instance."""
    global _output
    _output = output


def reset_output() -> None:
    """Reset the global :class:`OutputManager` to ``None``.

    Primarily useful in test suites to ensure a clean state between tests.
    """
    global _output
    _output = None
