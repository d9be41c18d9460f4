"""Secret provider abstractions and models."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from ssh_key_bootstrap.core.exceptions import BootstrapError


class SecretResolutionStatus(str, Enum):
    """Outcome of a secret resolution attempt."""

    SUCCESS = "success"
    ERROR = "error"


class SecretProviderError(BootstrapError):
    """Raised inside a provider when a reference cannot be resolved.

    Messages must never contain the reference text itself.
    """

    pass


class SecretResolutionError(BootstrapError):
    """Raised when a secret reference cannot be resolved by any provider.

    Args:
        reason: Human-readable failure description.
        provider: Name of the provider that failed, when a single one did.
    """

    def __init__(self, reason: str, provider: str | None = None) -> None:
        self.reason = reason
        self.provider = provider
        super().__init__(reason)


@dataclass
class SecretResolutionResult:
    """Result of one provider's attempt at resolving a reference.

    The ``value`` field is masked in ``__repr__`` to prevent accidental
    leakage in logs or tracebacks.

    Args:
        provider: Name of the provider that produced this result.
        status: Outcome of the resolution.
        value: The secret value (only set on success).
        error: Error description (only set on failure).
    """

    provider: str
    status: SecretResolutionStatus
    value: str | None = None
    error: str | None = None

    def __repr__(self) -> str:
        masked = "***" if self.value is not None else "None"
        return (
            f"SecretResolutionResult("
            f"provider={self.provider!r}, "
            f"status={self.status!r}, "
            f"value={masked}, "
            f"error={self.error!r})"
        )


class SecretProvider(ABC):
    """Base class for secret providers.

    A provider claims a set of case-insensitive reference prefixes
    (``schemes``) and resolves references carrying one of them.
    Subclasses implement :meth:`fetch`, raising
    :class:`SecretProviderError` on failure; :meth:`resolve` turns that
    into a :class:`SecretResolutionResult`.
    """

    schemes: tuple[str, ...] = ()

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique name for this provider (e.g. ``"local"``, ``"bitwarden"``)."""
        ...

    def supports(self, reference: str) -> bool:
        """Return whether *reference* starts with one of :attr:`schemes`."""
        lowered = reference.strip().lower()
        return any(lowered.startswith(scheme) for scheme in self.schemes)

    def strip_scheme(self, reference: str) -> str | None:
        """Return *reference* without its matching scheme prefix.

        Longest prefixes are tried first so ``bw://x`` never matches
        the ``bw:`` alias. Returns ``None`` when no scheme matches.
        """
        trimmed = reference.strip()
        lowered = trimmed.lower()
        for scheme in sorted(self.schemes, key=len, reverse=True):
            if lowered.startswith(scheme):
                return trimmed[len(scheme) :]
        return None

    @abstractmethod
    def fetch(self, reference: str) -> str:
        """Fetch the plaintext secret for *reference*.

        Raises:
            SecretProviderError: If the secret cannot be fetched.
        """
        ...

    def resolve(self, reference: str) -> SecretResolutionResult:
        """Resolve *reference*, converting provider errors into a result."""
        try:
            value = self.fetch(reference)
        except SecretProviderError as exc:
            return SecretResolutionResult(
                provider=self.provider_name,
                status=SecretResolutionStatus.ERROR,
                error=str(exc),
            )
        return SecretResolutionResult(
            provider=self.provider_name,
            status=SecretResolutionStatus.SUCCESS,
            value=value,
        )
