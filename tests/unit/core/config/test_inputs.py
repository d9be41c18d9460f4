"""Tests for prompting missing inputs and password acquisition."""

from __future__ import annotations

import pytest

from ssh_key_bootstrap.core.config.inputs import fill_missing_inputs, prompt_required, resolve_password
from ssh_key_bootstrap.core.config.options import BootstrapOptions
from ssh_key_bootstrap.core.exceptions import ConfigurationError
from ssh_key_bootstrap.core.secrets.base import SecretResolutionError
from ssh_key_bootstrap.core.secrets.providers import LocalSecretProvider
from tests.factories import ScriptedConsole, StubProvider


class TestPromptRequired:
    def test_reprompts_on_blank(self) -> None:
        console = ScriptedConsole(lines=["", "  ", " deploy "])
        assert prompt_required(console, "SSH username: ") == "deploy"
        assert console.output == ["A value is required."] * 2

    def test_secret_not_trimmed(self) -> None:
        console = ScriptedConsole(secrets=[" pw "])
        assert prompt_required(console, "SSH password: ", secret=True) == " pw "


class TestFillMissingInputs:
    def test_non_interactive_user(self) -> None:
        with pytest.raises(ConfigurationError, match=r"SSH username is required \(use --user\)"):
            fill_missing_inputs(BootstrapOptions(servers="a", pubkey="k"), ScriptedConsole(interactive=False))

    def test_non_interactive_servers(self) -> None:
        with pytest.raises(ConfigurationError, match="servers are required"):
            fill_missing_inputs(BootstrapOptions(user="u", pubkey="k"), ScriptedConsole(interactive=False))

    def test_non_interactive_key(self) -> None:
        with pytest.raises(ConfigurationError, match="public key is required"):
            fill_missing_inputs(BootstrapOptions(user="u", servers="a"), ScriptedConsole(interactive=False))

    def test_complete_options_untouched(self) -> None:
        console = ScriptedConsole(interactive=False)
        fill_missing_inputs(BootstrapOptions(user="u", server="a", pubkey_file="k"), console)
        assert console.prompts == []

    def test_prompts_in_order_with_key_path(self) -> None:
        console = ScriptedConsole(lines=["deploy", "web1,web2", " ~/.ssh/id.pub "])
        options = BootstrapOptions()

        fill_missing_inputs(options, console)

        assert console.prompts == [
            "SSH username: ",
            "Servers (comma-separated, host or host:port): ",
            "Public key file path (enter to paste key): ",
        ]
        assert options.user == "deploy"
        assert options.servers == "web1,web2"
        assert options.pubkey_file == "~/.ssh/id.pub"

    def test_pasted_key(self) -> None:
        console = ScriptedConsole(lines=["", "ssh-ed25519 AAAA"])
        options = BootstrapOptions(user="u", server="a")

        fill_missing_inputs(options, console)

        assert options.pubkey == "ssh-ed25519 AAAA"
        assert console.prompts[-1] == "Public key text: "


class TestResolvePassword:
    def test_explicit_password(self) -> None:
        console = ScriptedConsole(interactive=False)
        assert resolve_password(BootstrapOptions(password=" pw "), [], console, env={}) == " pw "

    def test_password_env(self) -> None:
        options = BootstrapOptions(password_env="SSH_PW")
        assert resolve_password(options, [], ScriptedConsole(), env={"SSH_PW": " pw "}) == "pw"

    def test_password_env_missing(self) -> None:
        options = BootstrapOptions(password_env="SSH_PW")
        with pytest.raises(ConfigurationError, match='environment variable "SSH_PW" is empty or not set'):
            resolve_password(options, [], ScriptedConsole(), env={})

    def test_secret_reference_first_match(self) -> None:
        provider = StubProvider("bitwarden", schemes=("bw://",), value="pw")
        options = BootstrapOptions(password_secret_ref="bw://id")
        assert resolve_password(options, [provider], ScriptedConsole(interactive=False), env={}) == "pw"

    def test_secret_reference_named_provider(self) -> None:
        provider = StubProvider("vault", schemes=("vault://",), value="pw")
        options = BootstrapOptions(password_secret_ref="custom-ref", password_provider="Vault")
        assert resolve_password(options, [provider], ScriptedConsole(interactive=False), env={}) == "pw"
        assert provider.calls == ["custom-ref"]

    def test_secret_reference_failure_wrapped(self) -> None:
        provider = StubProvider("bitwarden", schemes=("bw://",), error="locked")
        options = BootstrapOptions(password_secret_ref="bw://id")

        with pytest.raises(SecretResolutionError, match="resolve password secret reference: .*bitwarden: locked"):
            resolve_password(options, [provider], ScriptedConsole(), env={})

    def test_local_provider(self) -> None:
        options = BootstrapOptions(password_provider="local")
        providers = [LocalSecretProvider(env={"PASSWORD": "pw"})]
        assert resolve_password(options, providers, ScriptedConsole(interactive=False), env={}) == "pw"

    def test_local_provider_missing_non_interactive(self) -> None:
        options = BootstrapOptions(password_provider="local")
        providers = [LocalSecretProvider(env={})]
        with pytest.raises(ConfigurationError, match="PASSWORD is required when PASSWORD_PROVIDER=local"):
            resolve_password(options, providers, ScriptedConsole(interactive=False), env={})

    def test_local_provider_missing_prompts(self) -> None:
        options = BootstrapOptions(password_provider="local")
        console = ScriptedConsole(secrets=["typed"])
        assert resolve_password(options, [LocalSecretProvider(env={})], console, env={}) == "typed"

    def test_provider_without_reference(self) -> None:
        options = BootstrapOptions(password_provider="bitwarden")
        with pytest.raises(ConfigurationError, match="PASSWORD_SECRET_REF is required when PASSWORD_PROVIDER=bitwarden"):
            resolve_password(options, [], ScriptedConsole(), env={})

    def test_non_interactive_without_source(self) -> None:
        with pytest.raises(ConfigurationError, match="SSH password is required"):
            resolve_password(BootstrapOptions(), [], ScriptedConsole(interactive=False), env={})

    def test_prompt(self) -> None:
        console = ScriptedConsole(secrets=["", "pw"])
        assert resolve_password(BootstrapOptions(), [], console, env={}) == "pw"
        assert console.prompts == ["SSH password: ", "SSH password: "]
