"""Console output for user-facing progress.

Provides the narrow UI surface the stage logger writes to. ``ConsoleUI``
writes through click so output respects CliRunner capture in tests.
"""

from abc import ABC, abstractmethod

import click


class UI(ABC):
    """Abstract sink for progress text."""

    @abstractmethod
    def print_string(self, text: str) -> None:
        """Write text without a trailing newline."""

    @abstractmethod
    def print_line(self, text: str) -> None:
        """Write text followed by a newline."""

    @abstractmethod
    def error_line(self, text: str) -> None:
        """Write an error line to the error stream."""


class ConsoleUI(UI):
    """UI that writes to stdout/stderr via click."""

    def __init__(self, quiet: bool = False) -> None:
        """Create a console UI.

        Args:
            quiet: Suppress progress output (errors are still written)
        """
        self.quiet = quiet

    def print_string(self, text: str) -> None:
        if not self.quiet:
            click.echo(text, nl=False)

    def print_line(self, text: str) -> None:
        if not self.quiet:
            click.echo(text)

    def error_line(self, text: str) -> None:
        click.secho(text, fg="red", err=True)
