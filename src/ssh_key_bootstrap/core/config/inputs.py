"""Completion of options that are still missing after flags and files.

Missing values are prompted for in interactive sessions and are
configuration errors otherwise. The password is resolved exactly once per
run, from the first configured source.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence

from ssh_key_bootstrap.core.config.options import BootstrapOptions
from ssh_key_bootstrap.core.console import Console
from ssh_key_bootstrap.core.exceptions import ConfigurationError
from ssh_key_bootstrap.core.secrets.base import SecretProvider, SecretResolutionError, SecretResolutionStatus
from ssh_key_bootstrap.core.secrets.resolver import (
    provider_by_name,
    resolve_secret_reference,
    resolve_with_provider,
)

logger = logging.getLogger(__name__)

LOCAL_PROVIDER = "local"


def prompt_required(console: Console, label: str, secret: bool = False) -> str:
    """Prompt until a non-blank answer is given."""
    while True:
        answer = console.prompt_secret(label) if secret else console.prompt_line(label)
        if answer.strip():
            return answer if secret else answer.strip()
        console.print_line("A value is required.")


def fill_missing_inputs(options: BootstrapOptions, console: Console) -> None:
    """Prompt for the user, host list and key when they are missing.

    Raises:
        ConfigurationError: If a value is missing in a non-interactive
            session.
    """
    interactive = console.is_interactive()

    if not options.user.strip():
        if not interactive:
            raise ConfigurationError("SSH username is required (use --user)")
        options.user = prompt_required(console, "SSH username: ")

    if not options.has_host_source:
        if not interactive:
            raise ConfigurationError("servers are required (use --server, --servers or --servers-file)")
        options.servers = prompt_required(console, "Servers (comma-separated, host or host:port): ")

    if not options.has_key_source:
        if not interactive:
            raise ConfigurationError("public key is required (use --key, --pubkey or --pubkey-file)")
        options.pubkey_file = console.prompt_line("Public key file path (enter to paste key): ").strip()
        if not options.pubkey_file:
            options.pubkey = prompt_required(console, "Public key text: ")


def resolve_password(
    options: BootstrapOptions,
    providers: Sequence[SecretProvider | None],
    console: Console,
    env: Mapping[str, str] | None = None,
) -> str:
    """Return the SSH password from the first configured source.

    Order: explicit password, ``--password-env``, secret reference (through
    the named provider when ``password_provider`` is set), the local
    provider when ``password_provider`` is ``local``, then a hidden prompt.

    Raises:
        ConfigurationError: If a named variable is empty or no source yields
            a password in a non-interactive session.
        SecretResolutionError: If the secret reference cannot be resolved.
    """
    environment = env if env is not None else os.environ

    if options.password.strip():
        return options.password

    env_name = options.password_env.strip()
    if env_name:
        value = environment.get(env_name, "").strip()
        if not value:
            raise ConfigurationError(f'environment variable "{env_name}" is empty or not set')
        logger.info("Using password from environment variable %s", env_name)
        return value

    provider_name = options.password_provider.strip().lower()
    reference = options.password_secret_ref.strip()
    if reference:
        try:
            if provider_name:
                value = resolve_with_provider(reference, provider_name, providers)
            else:
                value = resolve_secret_reference(reference, providers)
        except SecretResolutionError as exc:
            raise SecretResolutionError(f"resolve password secret reference: {exc}", provider=exc.provider) from exc
        return value

    if provider_name == LOCAL_PROVIDER:
        local = provider_by_name(LOCAL_PROVIDER, providers)
        if local is not None:
            result = local.resolve("")
            if result.status == SecretResolutionStatus.SUCCESS and result.value:
                return result.value
        if not console.is_interactive():
            raise ConfigurationError("PASSWORD is required when PASSWORD_PROVIDER=local")
    elif provider_name:
        raise ConfigurationError(f"PASSWORD_SECRET_REF is required when PASSWORD_PROVIDER={provider_name}")

    if not console.is_interactive():
        raise ConfigurationError(
            "SSH password is required (use --password-env, --password-secret-ref or run interactively)"
        )
    return prompt_required(console, "SSH password: ", secret=True)
