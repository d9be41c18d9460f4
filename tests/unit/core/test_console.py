"""Tests for terminal console I/O."""

from __future__ import annotations

import io
from unittest.mock import patch

import pytest

from ssh_key_bootstrap.core.console import TerminalConsole, confirm
from ssh_key_bootstrap.core.exceptions import ConfigurationError, InputClosedError
from tests.factories import ScriptedConsole


class TestTerminalConsole:
    def test_prompt_line_strips_newline(self) -> None:
        out = io.StringIO()
        console = TerminalConsole(stdin=io.StringIO("web1\r\n"), stdout=out)

        assert console.prompt_line("Host: ") == "web1"
        assert out.getvalue() == "Host: "

    def test_prompt_line_eof_raises(self) -> None:
        console = TerminalConsole(stdin=io.StringIO(""), stdout=io.StringIO())

        with pytest.raises(InputClosedError, match="input closed") as exc_info:
            console.prompt_line("Host: ")
        assert exc_info.value.label == "Host: "

    def test_input_closed_is_configuration_error(self) -> None:
        assert issubclass(InputClosedError, ConfigurationError)

    def test_prompt_secret_uses_getpass(self) -> None:
        out = io.StringIO()
        console = TerminalConsole(stdin=io.StringIO(), stdout=out)

        with patch("ssh_key_bootstrap.core.console.getpass.getpass", return_value="s3cret") as mock_getpass:
            assert console.prompt_secret("Password: ") == "s3cret"
        mock_getpass.assert_called_once_with("Password: ", stream=out)

    def test_prompt_secret_eof_raises(self) -> None:
        console = TerminalConsole(stdin=io.StringIO(), stdout=io.StringIO())

        with patch("ssh_key_bootstrap.core.console.getpass.getpass", side_effect=EOFError):
            with pytest.raises(InputClosedError):
                console.prompt_secret("Password: ")

    def test_print_line(self) -> None:
        out = io.StringIO()
        TerminalConsole(stdin=io.StringIO(), stdout=out).print_line("hello")
        assert out.getvalue() == "hello\n"

    def test_string_streams_are_not_interactive(self) -> None:
        console = TerminalConsole(stdin=io.StringIO(), stdout=io.StringIO())
        assert console.is_interactive() is False


class TestConfirm:
    def test_yes(self) -> None:
        assert confirm(ScriptedConsole(lines=["YES"]), "Trust? ") is True

    def test_no(self) -> None:
        assert confirm(ScriptedConsole(lines=[" n "]), "Trust? ") is False

    def test_reprompts_until_valid(self) -> None:
        console = ScriptedConsole(lines=["maybe", "", "y"])

        assert confirm(console, "Trust? ") is True
        assert console.prompts == ["Trust? "] * 3
        assert console.output == ["Please answer yes/no."] * 2

    def test_custom_answers_hint(self) -> None:
        console = ScriptedConsole(lines=["?", "n"])

        assert confirm(console, "Use it? ", yes=("y", "yes"), no=("n", "no")) is False
        assert console.output == ["Please answer y/n."]

    def test_input_closed_propagates(self) -> None:
        with pytest.raises(InputClosedError):
            confirm(ScriptedConsole(lines=[]), "Trust? ")
