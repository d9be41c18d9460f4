"""``.env`` file parsing.

Supported syntax, one assignment per line::

    # comment
    export SERVER=web1
    SERVERS=web1,web2:2222   # trailing comment
    PASSWORD="p@ss \\"quoted\\""
    KNOWN_HOSTS='~/.ssh/known_hosts'

Double-quoted values understand JSON-style escapes, single-quoted values
are literal, and unquoted values end at `` #``. Keys are case-insensitive
and stored upper-case.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from typing import Any

from ssh_key_bootstrap.core.utils import normalize_lf, parse_bool

_KEY_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class DotEnvError(ValueError):
    """A ``.env`` document is malformed or holds a value of the wrong type."""

    pass


def parse_dotenv(content: str) -> dict[str, str]:
    """Parse *content* into an upper-case key to value mapping.

    Later assignments to the same key win.

    Raises:
        DotEnvError: With a ``line N:`` prefix for the first malformed line.
    """
    values: dict[str, str] = {}
    for line_number, raw_line in enumerate(normalize_lf(content).split("\n"), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()

        key, separator, raw_value = line.partition("=")
        key = key.strip()
        if not separator or not key:
            raise DotEnvError(f"line {line_number}: expected KEY=VALUE")
        if not _KEY_PATTERN.match(key):
            raise DotEnvError(f'line {line_number}: invalid key "{key}"')

        try:
            values[key.upper()] = parse_dotenv_value(raw_value.strip())
        except DotEnvError as exc:
            raise DotEnvError(f"line {line_number}: {exc}") from exc
    return values


def parse_dotenv_value(raw_value: str) -> str:
    """Decode one value as written after ``=``.

    Raises:
        DotEnvError: If a quoted value is unterminated or badly escaped.
    """
    if not raw_value:
        return ""
    if raw_value.startswith('"'):
        if len(raw_value) == 1 or not raw_value.endswith('"'):
            raise DotEnvError("unterminated double-quoted value")
        try:
            decoded = json.loads(raw_value)
        except json.JSONDecodeError as exc:
            raise DotEnvError(f"invalid double-quoted value: {exc.msg}") from exc
        return str(decoded)
    if raw_value.startswith("'"):
        if len(raw_value) == 1 or not raw_value.endswith("'"):
            raise DotEnvError("unterminated single-quoted value")
        return raw_value[1:-1]
    comment_index = raw_value.find(" #")
    if comment_index >= 0:
        raw_value = raw_value[:comment_index]
    return raw_value.strip()


def _as_int(name: str, value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        raise DotEnvError(f".env key {name} must be an integer") from None


def _as_bool(name: str, value: str) -> bool:
    try:
        return parse_bool(value)
    except ValueError:
        raise DotEnvError(f".env key {name} must be a boolean") from None


def _as_str(name: str, value: str) -> str:
    return value


# .env key -> (FileConfig field, converter)
DOTENV_KEYS: dict[str, tuple[str, Callable[[str, str], Any]]] = {
    "SERVER": ("server", _as_str),
    "SERVERS": ("servers", _as_str),
    "SERVERS_FILE": ("servers_file", _as_str),
    "USER": ("user", _as_str),
    "PASSWORD": ("password", _as_str),
    "PASSWORD_ENV": ("password_env", _as_str),
    "PASSWORD_SECRET_REF": ("password_secret_ref", _as_str),
    "PASSWORD_PROVIDER": ("password_provider", _as_str),
    "KEY": ("key", _as_str),
    "PUBKEY": ("pubkey", _as_str),
    "PUBKEY_FILE": ("pubkey_file", _as_str),
    "PORT": ("port", _as_int),
    "TIMEOUT": ("timeout", _as_int),
    "INSECURE_IGNORE_HOST_KEY": ("insecure_ignore_host_key", _as_bool),
    "KNOWN_HOSTS": ("known_hosts", _as_str),
}


def dotenv_to_config_dict(values: dict[str, str]) -> dict[str, Any]:
    """Map parsed ``.env`` values onto typed config field names.

    Unknown keys are ignored, since a ``.env`` file is commonly shared with
    other tools.

    Raises:
        DotEnvError: If a typed key does not parse or more than one key
            source is set.
    """
    key_sources = [name for name in ("KEY", "PUBKEY", "PUBKEY_FILE") if values.get(name, "").strip()]
    if len(key_sources) > 1:
        raise DotEnvError(".env must set only one of KEY/PUBKEY/PUBKEY_FILE")

    converted: dict[str, Any] = {}
    for name, (field_name, convert) in DOTENV_KEYS.items():
        if name not in values:
            continue
        if name in ("KEY", "PUBKEY", "PUBKEY_FILE") and not values[name].strip():
            continue
        converted[field_name] = convert(name, values[name])
    return converted
