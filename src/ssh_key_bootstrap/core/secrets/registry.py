"""Ordered, thread-safe registry of secret providers."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from ssh_key_bootstrap.core.secrets.base import SecretProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Ordered collection of providers, deduplicated by name.

    Insertion order is resolution priority. Registration normally happens
    once at startup; :meth:`providers` hands out snapshots so concurrent
    readers never observe a half-applied registration.

    Scheme claims must not overlap: a provider whose prefixes collide with
    an already-registered provider's would never be reached by
    first-match dispatch, so :meth:`register` rejects it.
    """

    def __init__(self, providers: Iterable[SecretProvider] = ()) -> None:
        self._providers: list[SecretProvider] = []
        self._lock = threading.Lock()
        for provider in providers:
            self.register(provider)

    def register(self, provider: SecretProvider | None) -> None:
        """Register a provider.

        Providers that are ``None`` or have a blank name are ignored, as is
        a second provider with the same case-insensitive name.

        Raises:
            ValueError: If the provider's schemes overlap a registered one.
        """
        if provider is None:
            return
        name = provider.provider_name.strip()
        if not name:
            logger.debug("Ignoring provider with blank name")
            return

        with self._lock:
            for existing in self._providers:
                if existing.provider_name.strip().lower() == name.lower():
                    logger.debug("Provider %s already registered", name)
                    return
                overlap = _overlapping_schemes(existing.schemes, provider.schemes)
                if overlap:
                    raise ValueError(
                        f"provider {name!r} schemes overlap provider "
                        f"{existing.provider_name!r}: {', '.join(overlap)}"
                    )
            self._providers.append(provider)
        logger.debug("Registered secret provider %s", name)

    def providers(self) -> list[SecretProvider]:
        """Return an ordered snapshot of the registered providers."""
        with self._lock:
            return list(self._providers)

    def __len__(self) -> int:
        with self._lock:
            return len(self._providers)


def _overlapping_schemes(existing: Iterable[str], candidate: Iterable[str]) -> list[str]:
    """Return candidate schemes that shadow or are shadowed by *existing*."""
    existing_lowered = [s.lower() for s in existing]
    overlap = []
    for scheme in candidate:
        lowered = scheme.lower()
        if any(lowered.startswith(e) or e.startswith(lowered) for e in existing_lowered):
            overlap.append(scheme)
    return overlap
