"""Secret reference resolution across an ordered set of providers.

Resolution is first-match-wins: providers are consulted in registration
order and the first one that supports the reference and returns a
non-blank value ends the walk. Failures are collected as
``provider: message`` pairs; the reference text itself is never part of
an error message.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from ssh_key_bootstrap.core.secrets.base import (
    SecretProvider,
    SecretResolutionError,
    SecretResolutionStatus,
)

logger = logging.getLogger(__name__)

EMPTY_REFERENCE = "secret reference is empty"
NO_PROVIDERS = "no providers configured"
UNNAMED_PROVIDER = "<unnamed provider>"


def resolve_secret_reference(
    reference: str,
    providers: Sequence[SecretProvider | None],
) -> str:
    """Resolve *reference* using the first provider that supports it.

    Args:
        reference: The secret reference, e.g. ``bw://item-id``.
        providers: Providers in priority order. ``None`` entries are skipped.

    Returns:
        The trimmed plaintext secret.

    Raises:
        SecretResolutionError: If the reference is empty, no provider is
            configured, no provider supports the reference, a provider
            returns a blank value, or every supporting provider fails.
    """
    trimmed = reference.strip()
    if not trimmed:
        raise SecretResolutionError(EMPTY_REFERENCE)

    usable = [p for p in providers if p is not None]
    if not usable:
        raise SecretResolutionError(NO_PROVIDERS)

    failures: list[str] = []
    for provider in usable:
        name = provider.provider_name.strip() or UNNAMED_PROVIDER
        if not provider.supports(trimmed):
            continue

        logger.debug("Resolving secret reference with provider %s", name)
        result = provider.resolve(trimmed)
        if result.status == SecretResolutionStatus.SUCCESS:
            value = (result.value or "").strip()
            if not value:
                raise SecretResolutionError(f"{name} returned an empty secret", provider=name)
            logger.info("Secret resolved by provider %s", name)
            return value

        logger.warning("Secret provider %s failed", name)
        failures.append(f"{name}: {result.error}")

    if not failures:
        raise SecretResolutionError("no provider supports the supplied secret reference")
    raise SecretResolutionError(f"secret reference resolution failed ({'; '.join(failures)})")


def resolve_with_provider(
    reference: str,
    provider_name: str,
    providers: Sequence[SecretProvider | None],
) -> str:
    """Resolve *reference* with an explicitly named provider.

    The provider's :meth:`~SecretProvider.supports` check is skipped since
    the caller chose it.

    Raises:
        SecretResolutionError: If the name is blank or unknown, the provider
            fails, or it returns a blank value.
    """
    wanted = provider_name.strip()
    if not wanted:
        raise SecretResolutionError("provider name is required")

    provider = provider_by_name(wanted, providers)
    if provider is None:
        valid = provider_names(providers)
        if not valid:
            raise SecretResolutionError(NO_PROVIDERS)
        raise SecretResolutionError(f'unknown provider "{wanted}" (valid: {", ".join(valid)})')

    result = provider.resolve(reference.strip())
    if result.status != SecretResolutionStatus.SUCCESS:
        raise SecretResolutionError(result.error or "resolution failed", provider=provider.provider_name)
    value = (result.value or "").strip()
    if not value:
        raise SecretResolutionError(
            f"{provider.provider_name} returned an empty secret", provider=provider.provider_name
        )
    return value


def provider_by_name(
    provider_name: str,
    providers: Sequence[SecretProvider | None],
) -> SecretProvider | None:
    """Return the provider whose name matches case-insensitively, or ``None``."""
    wanted = provider_name.strip().lower()
    if not wanted:
        return None
    for provider in providers:
        if provider is not None and provider.provider_name.strip().lower() == wanted:
            return provider
    return None


def provider_names(providers: Sequence[SecretProvider | None]) -> list[str]:
    """Return the sorted, unique, non-blank provider names."""
    names = {p.provider_name.strip() for p in providers if p is not None}
    return sorted(n for n in names if n)
