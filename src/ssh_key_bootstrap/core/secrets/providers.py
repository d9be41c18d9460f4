"""Built-in secret provider implementations."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping

from ssh_key_bootstrap.core.secrets.base import SecretProvider, SecretProviderError
from ssh_key_bootstrap.core.secrets.commands import (
    DEFAULT_COMMAND_TIMEOUT,
    CommandError,
    run_and_capture_output,
)

logger = logging.getLogger(__name__)


class LocalSecretProvider(SecretProvider):
    """Resolve the password from the ``PASSWORD`` environment variable.

    Claims ``local://`` references; the remainder of the reference is
    ignored. No external dependencies required.

    Args:
        env: Environment mapping. Defaults to ``os.environ``.
    """

    schemes = ("local://",)
    env_var = "PASSWORD"

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env = env if env is not None else os.environ

    @property
    def provider_name(self) -> str:
        return "local"

    def fetch(self, reference: str) -> str:
        password = self._env.get(self.env_var, "")
        if not password.strip():
            raise SecretProviderError("local password is required (set PASSWORD or run interactively)")
        return password


class BitwardenSecretProvider(SecretProvider):
    """Resolve secrets through the Bitwarden CLIs.

    ``bw get secret <id> --raw`` is tried first; when it fails for any
    reason, ``bws secret get <id>`` is tried and its JSON output must
    carry a non-blank ``value`` field.

    Reference forms: ``bw://<id>``, ``bitwarden://<id>`` and ``bw:<id>``.

    Args:
        env: Environment mapping. ``BW_BIN`` and ``BWS_BIN`` override the
            binary names. Defaults to ``os.environ``.
        timeout: Per-command timeout in seconds.
    """

    schemes = ("bw://", "bitwarden://", "bw:")

    def __init__(
        self,
        env: Mapping[str, str] | None = None,
        timeout: float = DEFAULT_COMMAND_TIMEOUT,
    ) -> None:
        self._env = env if env is not None else os.environ
        self._timeout = timeout

    @property
    def provider_name(self) -> str:
        return "bitwarden"

    @property
    def bw_binary(self) -> str:
        return self._env.get("BW_BIN", "").strip() or "bw"

    @property
    def bws_binary(self) -> str:
        return self._env.get("BWS_BIN", "").strip() or "bws"

    def parse_secret_id(self, reference: str) -> str:
        """Return the secret identifier carried by *reference*.

        Raises:
            SecretProviderError: If the reference has no Bitwarden scheme or
                an empty identifier.
        """
        remainder = self.strip_scheme(reference)
        if remainder is None:
            raise SecretProviderError("invalid bitwarden secret ref")
        secret_id = remainder.strip()
        if not secret_id:
            raise SecretProviderError("bitwarden secret ref is missing secret identifier")
        return secret_id

    def fetch(self, reference: str) -> str:
        secret_id = self.parse_secret_id(reference)

        try:
            output = run_and_capture_output(
                [self.bw_binary, "get", "secret", secret_id, "--raw"],
                timeout=self._timeout,
            )
            return output.strip()
        except CommandError as bw_exc:
            logger.info("bw lookup failed, falling back to bws")
            try:
                return self._fetch_with_bws(secret_id)
            except SecretProviderError as bws_exc:
                raise SecretProviderError(f"bw failed: {bw_exc}; bws failed: {bws_exc}") from bws_exc

    def _fetch_with_bws(self, secret_id: str) -> str:
        output = run_and_capture_output(
            [self.bws_binary, "secret", "get", secret_id],
            timeout=self._timeout,
        )
        try:
            payload = json.loads(output)
        except json.JSONDecodeError as exc:
            raise SecretProviderError(f"decode bws output: {exc}") from exc

        value = payload.get("value") if isinstance(payload, dict) else None
        if not isinstance(value, str) or not value.strip():
            raise SecretProviderError("bws returned an empty secret value")
        return value.strip()
