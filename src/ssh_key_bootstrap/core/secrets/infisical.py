"""Infisical secret provider.

Reference syntax::

    infisical://<secret-name>?projectId=<id>&environment=<slug>
    inf://<secret-name>
    infisical:<secret-name>
    inf:<secret-name>

Project and environment fall back to ``INFISICAL_PROJECT_ID`` and
``INFISICAL_ENV`` / ``INFISICAL_ENVIRONMENT``. ``INFISICAL_MODE`` selects
how the secret is fetched:

- ``cli`` (default): the ``infisical`` binary, bounded by
  ``INFISICAL_CLI_TIMEOUT``.
- ``api``: the v3 raw-secrets HTTP endpoint with ``INFISICAL_TOKEN``.
- ``sdk``: the ``infisicalsdk`` client with universal-auth credentials.

Resolved values are cached for the life of the provider.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any
from urllib.parse import parse_qs, quote, urlsplit

import httpx

from ssh_key_bootstrap.core.secrets.base import SecretProvider, SecretProviderError
from ssh_key_bootstrap.core.secrets.cache import SecretsCache
from ssh_key_bootstrap.core.secrets.commands import CommandError, CommandNotFoundError, run_and_capture_output

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.infisical.com"
DEFAULT_SITE_URL = "https://app.infisical.com"
DEFAULT_CLI_BINARY = "infisical"
DEFAULT_CLI_TIMEOUT = 10.0
HTTP_TIMEOUT = 10.0
MAX_RESPONSE_BYTES = 1 << 20

_PROJECT_PARAMS = ("projectId", "projectID", "workspaceId", "workspaceID")
_ENVIRONMENT_PARAMS = ("environment", "env")


class InfisicalMode(str, Enum):
    """How the provider talks to Infisical."""

    CLI = "cli"
    API = "api"
    SDK = "sdk"


@dataclass(frozen=True)
class SecretRefSpec:
    """Parsed Infisical reference.

    Args:
        secret_name: Name of the secret, never blank.
        project_id: Project override from the query string, or ``""``.
        environment: Environment override from the query string, or ``""``.
    """

    secret_name: str
    project_id: str = ""
    environment: str = ""


@dataclass(frozen=True)
class InfisicalSettings:
    """Provider settings read from the environment.

    The ``token`` and ``client_secret`` fields are masked in ``__repr__``.
    """

    mode: InfisicalMode = InfisicalMode.CLI
    token: str = ""
    api_url: str = DEFAULT_API_URL
    site_url: str = DEFAULT_SITE_URL
    project_id: str = ""
    environment: str = ""
    cli_binary: str = DEFAULT_CLI_BINARY
    cli_timeout: float = DEFAULT_CLI_TIMEOUT
    client_id: str = ""
    client_secret: str = ""
    organization_slug: str = ""

    def __repr__(self) -> str:
        return (
            f"InfisicalSettings(mode={self.mode.value!r}, api_url={self.api_url!r}, "
            f"site_url={self.site_url!r}, project_id={self.project_id!r}, "
            f"environment={self.environment!r}, cli_binary={self.cli_binary!r}, "
            f"cli_timeout={self.cli_timeout!r}, organization_slug={self.organization_slug!r}, "
            f"token=***, client_secret=***)"
        )

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> InfisicalSettings:
        """Build settings from an environment mapping.

        Raises:
            SecretProviderError: If ``INFISICAL_MODE`` or
                ``INFISICAL_CLI_TIMEOUT`` is invalid.
        """

        def read(*names: str) -> str:
            for name in names:
                value = env.get(name, "").strip()
                if value:
                    return value
            return ""

        raw_mode = env.get("INFISICAL_MODE", "")
        mode_value = raw_mode.strip().lower() or InfisicalMode.CLI.value
        try:
            mode = InfisicalMode(mode_value)
        except ValueError:
            allowed = ", ".join(m.value for m in InfisicalMode)
            raise SecretProviderError(f'invalid INFISICAL_MODE "{raw_mode}" (allowed: {allowed})') from None

        api_url = read("INFISICAL_API_URL")
        return cls(
            mode=mode,
            token=read("INFISICAL_TOKEN"),
            api_url=api_url or DEFAULT_API_URL,
            site_url=read("INFISICAL_SITE_URL") or api_url or DEFAULT_SITE_URL,
            project_id=read("INFISICAL_PROJECT_ID"),
            environment=read("INFISICAL_ENV", "INFISICAL_ENVIRONMENT"),
            cli_binary=read("INFISICAL_CLI_BIN") or DEFAULT_CLI_BINARY,
            cli_timeout=_parse_timeout(env.get("INFISICAL_CLI_TIMEOUT", "")),
            client_id=read("INFISICAL_UNIVERSAL_AUTH_CLIENT_ID"),
            client_secret=read("INFISICAL_UNIVERSAL_AUTH_CLIENT_SECRET"),
            organization_slug=read("INFISICAL_AUTH_ORGANIZATION_SLUG"),
        )


def _parse_timeout(raw: str) -> float:
    """Parse a timeout in seconds; a trailing ``s`` is accepted."""
    trimmed = raw.strip()
    if not trimmed:
        return DEFAULT_CLI_TIMEOUT
    number = trimmed[:-1] if trimmed.lower().endswith("s") else trimmed
    try:
        seconds = float(number)
    except ValueError:
        raise SecretProviderError(f'invalid INFISICAL_CLI_TIMEOUT "{raw}"') from None
    if seconds <= 0:
        raise SecretProviderError(f'invalid INFISICAL_CLI_TIMEOUT "{raw}": must be > 0')
    return seconds


def parse_secret_ref(body: str) -> SecretRefSpec:
    """Parse the part of a reference that follows its scheme.

    Raises:
        SecretProviderError: If the secret name is missing.
    """
    remainder = body.strip()
    if remainder.startswith("//"):
        remainder = remainder[2:]
    name_part, _, query = remainder.partition("?")
    secret_name = name_part.strip().strip("/").strip()
    if not secret_name:
        raise SecretProviderError("infisical secret ref is missing secret identifier")

    params = parse_qs(query, keep_blank_values=True)

    def first(names: tuple[str, ...]) -> str:
        for name in names:
            for value in params.get(name, []):
                if value.strip():
                    return value.strip()
        return ""

    return SecretRefSpec(
        secret_name=secret_name,
        project_id=first(_PROJECT_PARAMS),
        environment=first(_ENVIRONMENT_PARAMS),
    )


def validate_site_url(raw_url: str) -> str:
    """Return *raw_url* without a trailing slash if it is a bare https origin.

    Raises:
        SecretProviderError: If the URL is not https, has no host, or carries
            a path, query, fragment or user info.
    """
    try:
        parsed = urlsplit(raw_url.strip())
    except ValueError as exc:
        raise SecretProviderError(f"invalid infisical site url: {exc}") from exc
    if parsed.scheme.lower() != "https":
        raise SecretProviderError("infisical site url must use https")
    if not parsed.hostname:
        raise SecretProviderError("infisical site url must include a host")
    if parsed.path not in ("", "/"):
        raise SecretProviderError(
            "infisical site url must not include a path; set only the host (example: https://app.infisical.com)"
        )
    if parsed.query or parsed.fragment or parsed.username or parsed.password:
        raise SecretProviderError("infisical site url must be a plain host URL without query, fragment, or user info")
    return raw_url.strip().rstrip("/")


def extract_secret_value(payload: Any) -> str:
    """Return the first non-blank secret value in an API response body.

    Checks ``secretValue``, ``value``, ``secret.secretValue`` and
    ``secret.value`` in that order.
    """
    if not isinstance(payload, dict):
        return ""
    candidates = [payload.get("secretValue"), payload.get("value")]
    nested = payload.get("secret")
    if isinstance(nested, dict):
        candidates.extend([nested.get("secretValue"), nested.get("value")])
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return ""


class InfisicalSecretProvider(SecretProvider):
    """Resolve secrets from Infisical.

    Settings are read from *env* on every resolution, so a provider built
    at startup picks up variables loaded later in the run. The HTTP client
    and SDK client are created lazily on first use and shared.

    Args:
        env: Environment mapping. Defaults to ``os.environ``.
        cache: Cache for resolved values. A private cache is created when
            omitted.
        http_client: Pre-built ``httpx.Client`` (mainly for tests).
    """

    schemes = ("infisical://", "inf://", "infisical:", "inf:")

    def __init__(
        self,
        env: Mapping[str, str] | None = None,
        cache: SecretsCache | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._env = env if env is not None else os.environ
        self._cache = cache if cache is not None else SecretsCache()
        self._http_client = http_client
        self._sdk_client: Any = None
        self._sdk_client_key = ""
        self._client_lock = threading.Lock()

    @property
    def provider_name(self) -> str:
        return "infisical"

    @property
    def cache(self) -> SecretsCache:
        return self._cache

    def fetch(self, reference: str) -> str:
        body = self.strip_scheme(reference)
        if body is None:
            raise SecretProviderError("invalid infisical secret ref")
        spec = parse_secret_ref(body)
        settings = InfisicalSettings.from_env(self._env)

        project_id = spec.project_id or settings.project_id
        environment = spec.environment or settings.environment

        if settings.mode == InfisicalMode.CLI:
            return self._fetch_cli(settings, spec.secret_name, project_id, environment)
        if settings.mode == InfisicalMode.API:
            return self._fetch_api(settings, spec.secret_name, project_id, environment)
        return self._fetch_sdk(settings, spec.secret_name, project_id, environment)

    # ------------------------------------------------------------------
    # CLI mode
    # ------------------------------------------------------------------

    def _fetch_cli(self, settings: InfisicalSettings, name: str, project_id: str, environment: str) -> str:
        _require_scope(project_id, environment)
        key = _cache_key(f"cli:{settings.cli_binary}", project_id, environment, name)

        def fetch() -> str:
            if shutil.which(settings.cli_binary) is None:
                raise SecretProviderError(
                    f'infisical CLI binary "{settings.cli_binary}" not found in PATH '
                    "(set INFISICAL_CLI_BIN to override)"
                )
            args = [
                settings.cli_binary,
                "secrets",
                "get",
                name,
                "--workspaceId",
                project_id,
                "--env",
                environment,
                "--plain",
            ]
            try:
                output = run_and_capture_output(args, timeout=settings.cli_timeout)
            except CommandNotFoundError as exc:
                raise SecretProviderError(
                    f'infisical CLI binary "{settings.cli_binary}" not found in PATH '
                    "(set INFISICAL_CLI_BIN to override)"
                ) from exc
            except CommandError as exc:
                raise SecretProviderError(f"infisical CLI command failed: {exc}") from exc
            value = output.strip()
            if not value:
                raise SecretProviderError("infisical CLI returned an empty secret value")
            return value

        return self._cache.get_or_fetch(key, fetch)

    # ------------------------------------------------------------------
    # API mode
    # ------------------------------------------------------------------

    def _get_http_client(self) -> httpx.Client:
        with self._client_lock:
            if self._http_client is None:
                self._http_client = httpx.Client(timeout=HTTP_TIMEOUT, follow_redirects=False)
            return self._http_client

    def _fetch_api(self, settings: InfisicalSettings, name: str, project_id: str, environment: str) -> str:
        if not settings.token:
            raise SecretProviderError("infisical token is required (set INFISICAL_TOKEN)")
        _require_scope(project_id, environment)

        base_url = settings.api_url.rstrip("/")
        parsed = urlsplit(base_url)
        if parsed.scheme.lower() != "https" or not parsed.hostname:
            raise SecretProviderError("infisical API URL must use https")

        key = _cache_key(base_url, project_id, environment, name)

        def fetch() -> str:
            url = f"{base_url}/api/v3/secrets/raw/{quote(name, safe='')}"
            headers = {
                "Authorization": f"Bearer {settings.token}",
                "Accept": "application/json",
            }
            params = {"workspaceId": project_id, "environment": environment}
            try:
                with self._get_http_client().stream("GET", url, params=params, headers=headers) as response:
                    if not 200 <= response.status_code < 300:
                        raise SecretProviderError(
                            f"infisical API request failed with status {response.status_code}"
                        )
                    body = bytearray()
                    for chunk in response.iter_bytes():
                        body.extend(chunk)
                        if len(body) > MAX_RESPONSE_BYTES:
                            raise SecretProviderError("infisical response exceeded 1 MiB")
            except httpx.HTTPError as exc:
                raise SecretProviderError(f"infisical request failed: {type(exc).__name__}") from exc

            try:
                payload = json.loads(bytes(body))
            except ValueError as exc:
                raise SecretProviderError(f"decode infisical response: {exc}") from exc

            value = extract_secret_value(payload)
            if not value:
                raise SecretProviderError("infisical response did not contain a non-empty secret value")
            return value

        return self._cache.get_or_fetch(key, fetch)

    # ------------------------------------------------------------------
    # SDK mode
    # ------------------------------------------------------------------

    def _get_sdk_client(self, site_url: str, settings: InfisicalSettings) -> Any:
        client_key = f"{site_url}|{settings.organization_slug}|{settings.client_id}"
        with self._client_lock:
            if self._sdk_client is None or self._sdk_client_key != client_key:
                try:
                    from infisical_sdk import InfisicalSDKClient  # type: ignore[import-untyped]
                except ImportError as exc:
                    raise SecretProviderError("infisical SDK mode requires the infisicalsdk package") from exc

                if settings.organization_slug:
                    logger.warning(
                        "INFISICAL_AUTH_ORGANIZATION_SLUG is set but the infisicalsdk login has no "
                        "organization scope; logging in with the client credentials only"
                    )
                client = InfisicalSDKClient(host=site_url)
                try:
                    client.auth.universal_auth.login(
                        client_id=settings.client_id,
                        client_secret=settings.client_secret,
                    )
                except Exception as exc:
                    raise SecretProviderError(f"infisical universal auth login failed: {type(exc).__name__}") from exc
                self._sdk_client = client
                self._sdk_client_key = client_key
            return self._sdk_client

    def _fetch_sdk(self, settings: InfisicalSettings, name: str, project_id: str, environment: str) -> str:
        if not settings.client_id:
            raise SecretProviderError(
                "infisical universal auth client id is required (set INFISICAL_UNIVERSAL_AUTH_CLIENT_ID)"
            )
        if not settings.client_secret:
            raise SecretProviderError(
                "infisical universal auth client secret is required (set INFISICAL_UNIVERSAL_AUTH_CLIENT_SECRET)"
            )
        _require_scope(project_id, environment)
        site_url = validate_site_url(settings.site_url)

        key = _cache_key(site_url, project_id, environment, name, settings.organization_slug, settings.client_id)

        def fetch() -> str:
            client = self._get_sdk_client(site_url, settings)
            try:
                secret = client.secrets.get_secret_by_name(
                    secret_name=name,
                    project_id=project_id,
                    environment_slug=environment,
                    secret_path="/",
                )
            except Exception as exc:
                raise SecretProviderError(f"infisical secret retrieval failed: {type(exc).__name__}") from exc
            value = getattr(secret, "secretValue", None)
            if not isinstance(value, str) or not value.strip():
                raise SecretProviderError("infisical response did not contain a non-empty secret value")
            return value.strip()

        return self._cache.get_or_fetch(key, fetch)

    def close(self) -> None:
        """Close the shared HTTP client, if one was created."""
        with self._client_lock:
            if self._http_client is not None:
                self._http_client.close()
                self._http_client = None


def _require_scope(project_id: str, environment: str) -> None:
    if not project_id:
        raise SecretProviderError("infisical project id is required (set INFISICAL_PROJECT_ID)")
    if not environment:
        raise SecretProviderError("infisical environment is required (set INFISICAL_ENV or INFISICAL_ENVIRONMENT)")


def _cache_key(endpoint: str, project_id: str, environment: str, name: str, *extra: str) -> str:
    """Derive the cache key ``lower(endpoint)|project|environment|name[|extra...]``."""
    return "|".join([endpoint.lower(), project_id, environment, name, *extra])
