"""Interactive terminal I/O used for prompts and operator-facing output."""

from __future__ import annotations

import getpass
import sys
from typing import Protocol, TextIO

from ssh_key_bootstrap.core.exceptions import InputClosedError


class Console(Protocol):
    """Line-oriented interactive I/O."""

    def prompt_line(self, label: str) -> str:
        """Show *label* and return one line of input without its newline."""
        ...

    def prompt_secret(self, label: str) -> str:
        """Show *label* and read a line without echoing it."""
        ...

    def print_line(self, text: str = "") -> None:
        """Write one informational line."""
        ...

    def is_interactive(self) -> bool:
        """Return whether a human can answer prompts."""
        ...


class TerminalConsole:
    """:class:`Console` over standard streams.

    A session is interactive only when both input and output are TTYs.

    Args:
        stdin: Input stream. Defaults to ``sys.stdin``.
        stdout: Output stream. Defaults to ``sys.stdout``.
    """

    def __init__(self, stdin: TextIO | None = None, stdout: TextIO | None = None) -> None:
        self._stdin = stdin if stdin is not None else sys.stdin
        self._stdout = stdout if stdout is not None else sys.stdout

    def prompt_line(self, label: str) -> str:
        self._stdout.write(label)
        self._stdout.flush()
        line = self._stdin.readline()
        if not line:
            raise InputClosedError(label)
        return line.rstrip("\r\n")

    def prompt_secret(self, label: str) -> str:
        try:
            return getpass.getpass(label, stream=self._stdout)
        except EOFError as exc:
            raise InputClosedError(label) from exc

    def print_line(self, text: str = "") -> None:
        self._stdout.write(f"{text}\n")
        self._stdout.flush()

    def is_interactive(self) -> bool:
        try:
            return self._stdin.isatty() and self._stdout.isatty()
        except ValueError:
            return False


def confirm(console: Console, label: str, yes: tuple[str, ...] = ("yes", "y"), no: tuple[str, ...] = ("no", "n")) -> bool:
    """Ask *label* until the answer is in *yes* or *no*."""
    hint = "/".join((yes[0], no[0]))
    while True:
        answer = console.prompt_line(label).strip().lower()
        if answer in yes:
            return True
        if answer in no:
            return False
        console.print_line(f"Please answer {hint}.")
