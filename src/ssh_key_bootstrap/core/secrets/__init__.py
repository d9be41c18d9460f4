"""Secret providers, registry, resolution pipeline and caching."""

from __future__ import annotations

import os
from collections.abc import Mapping

from ssh_key_bootstrap.core.secrets.base import (
    SecretProvider,
    SecretProviderError,
    SecretResolutionError,
    SecretResolutionResult,
    SecretResolutionStatus,
)
from ssh_key_bootstrap.core.secrets.cache import SecretsCache
from ssh_key_bootstrap.core.secrets.commands import CommandError, CommandTimeoutError
from ssh_key_bootstrap.core.secrets.infisical import InfisicalSecretProvider
from ssh_key_bootstrap.core.secrets.providers import BitwardenSecretProvider, LocalSecretProvider
from ssh_key_bootstrap.core.secrets.registry import ProviderRegistry
from ssh_key_bootstrap.core.secrets.resolver import (
    provider_by_name,
    provider_names,
    resolve_secret_reference,
    resolve_with_provider,
)


def default_registry(env: Mapping[str, str] | None = None) -> ProviderRegistry:
    """Build the registry of built-in providers.

    Priority order: local, bitwarden, infisical.

    Args:
        env: Environment mapping handed to every provider.
            Defaults to ``os.environ``.
    """
    environment = env if env is not None else os.environ
    return ProviderRegistry(
        [
            LocalSecretProvider(env=environment),
            BitwardenSecretProvider(env=environment),
            InfisicalSecretProvider(env=environment),
        ]
    )


__all__ = [
    "BitwardenSecretProvider",
    "CommandError",
    "CommandTimeoutError",
    "InfisicalSecretProvider",
    "LocalSecretProvider",
    "ProviderRegistry",
    "SecretProvider",
    "SecretProviderError",
    "SecretResolutionError",
    "SecretResolutionResult",
    "SecretResolutionStatus",
    "SecretsCache",
    "default_registry",
    "provider_by_name",
    "provider_names",
    "resolve_secret_reference",
    "resolve_with_provider",
]
