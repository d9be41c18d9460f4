"""Tests for secret reference resolution."""

from __future__ import annotations

import pytest

from ssh_key_bootstrap.core.secrets.base import SecretResolutionError
from ssh_key_bootstrap.core.secrets.resolver import (
    provider_by_name,
    provider_names,
    resolve_secret_reference,
    resolve_with_provider,
)
from tests.factories import StubProvider

REFERENCE = "bw://top-secret-item-id"


class TestResolveSecretReference:
    def test_empty_reference(self) -> None:
        with pytest.raises(SecretResolutionError, match="secret reference is empty"):
            resolve_secret_reference("   ", [StubProvider("p", schemes=("bw://",), value="x")])

    def test_no_providers(self) -> None:
        with pytest.raises(SecretResolutionError, match="no providers configured"):
            resolve_secret_reference(REFERENCE, [None, None])

    def test_first_supporting_provider_wins(self) -> None:
        skipped = StubProvider("infisical", schemes=("inf://",), value="wrong")
        first = StubProvider("bitwarden", schemes=("bw://",), value="  pw  ")
        assert resolve_secret_reference(REFERENCE, [skipped, first]) == "pw"
        assert skipped.calls == []
        assert first.calls == [REFERENCE]

    def test_failure_then_success(self) -> None:
        failing = StubProvider("a", schemes=("bw://",), error="locked")
        # Overlapping claims cannot coexist in a registry but can be passed directly.
        working = StubProvider("b", schemes=("bw://",), value="pw")
        assert resolve_secret_reference(REFERENCE, [failing, working]) == "pw"

    def test_blank_success_is_an_error(self) -> None:
        blank = StubProvider("bitwarden", schemes=("bw://",), value="   ")
        later = StubProvider("other", schemes=("bw://",), value="pw")

        with pytest.raises(SecretResolutionError, match="bitwarden returned an empty secret"):
            resolve_secret_reference(REFERENCE, [blank, later])
        assert later.calls == []

    def test_no_supporting_provider(self) -> None:
        with pytest.raises(SecretResolutionError, match="no provider supports the supplied secret reference"):
            resolve_secret_reference(REFERENCE, [StubProvider("inf", schemes=("inf://",))])

    def test_all_failures_aggregated_in_order(self) -> None:
        providers = [
            StubProvider("a", schemes=("bw://",), error="first"),
            StubProvider("", schemes=("bw://",), error="second"),
        ]
        with pytest.raises(SecretResolutionError) as exc_info:
            resolve_secret_reference(REFERENCE, providers)
        assert str(exc_info.value) == "secret reference resolution failed (a: first; <unnamed provider>: second)"

    def test_reference_never_in_error(self) -> None:
        providers = [StubProvider("a", schemes=("bw://",), error="nope")]
        with pytest.raises(SecretResolutionError) as exc_info:
            resolve_secret_reference(REFERENCE, providers)
        assert "top-secret-item-id" not in str(exc_info.value)


class TestResolveWithProvider:
    def test_named_provider_skips_support_check(self) -> None:
        provider = StubProvider("Local", schemes=("local://",), value="pw")
        assert resolve_with_provider("anything", "local", [provider]) == "pw"

    def test_blank_name(self) -> None:
        with pytest.raises(SecretResolutionError, match="provider name is required"):
            resolve_with_provider(REFERENCE, "  ", [StubProvider("a")])

    def test_unknown_provider_lists_valid_names(self) -> None:
        providers = [StubProvider("zeta"), StubProvider("alpha")]
        with pytest.raises(SecretResolutionError, match=r'unknown provider "vault" \(valid: alpha, zeta\)'):
            resolve_with_provider(REFERENCE, "vault", providers)

    def test_unknown_provider_without_providers(self) -> None:
        with pytest.raises(SecretResolutionError, match="no providers configured"):
            resolve_with_provider(REFERENCE, "vault", [])

    def test_provider_failure(self) -> None:
        with pytest.raises(SecretResolutionError, match="locked") as exc_info:
            resolve_with_provider(REFERENCE, "a", [StubProvider("a", error="locked")])
        assert exc_info.value.provider == "a"

    def test_blank_value(self) -> None:
        with pytest.raises(SecretResolutionError, match="a returned an empty secret"):
            resolve_with_provider(REFERENCE, "a", [StubProvider("a", value="")])


class TestProviderLookup:
    def test_provider_by_name_case_insensitive(self) -> None:
        provider = StubProvider("Bitwarden")
        assert provider_by_name(" BITWARDEN ", [None, provider]) is provider

    def test_provider_by_name_missing(self) -> None:
        assert provider_by_name("x", [StubProvider("a")]) is None
        assert provider_by_name("", [StubProvider("a")]) is None

    def test_provider_names_sorted_unique(self) -> None:
        providers = [StubProvider("b"), StubProvider("a"), StubProvider("b"), StubProvider(" "), None]
        assert provider_names(providers) == ["a", "b"]
