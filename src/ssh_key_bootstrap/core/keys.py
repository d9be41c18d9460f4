"""Public key input handling.

A key source must yield exactly one ``authorized_keys`` line; blank lines
and ``#`` comments are ignored, and a second key line is an error rather
than a silent "first wins".
"""

from __future__ import annotations

import logging
from pathlib import Path

import paramiko
from paramiko.pkey import UnknownKeyType

from ssh_key_bootstrap.core.exceptions import ConfigurationError
from ssh_key_bootstrap.core.utils import expand_home_path, normalize_lf

logger = logging.getLogger(__name__)


def extract_single_key(raw_input: str) -> str:
    """Return the single non-comment, non-blank line of *raw_input*, trimmed.

    Raises:
        ConfigurationError: If there is no key line or more than one.
    """
    found = ""
    for line in normalize_lf(raw_input).split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if found:
            raise ConfigurationError("public key input must contain exactly one key")
        found = stripped
    if not found:
        raise ConfigurationError("public key is required")
    return found


# Security-key types OpenSSH accepts but paramiko cannot load. Their blobs
# are checked structurally: valid base64 whose embedded type matches.
STRUCTURAL_ONLY_KEY_TYPES = frozenset(
    {
        "sk-ssh-ed25519@openssh.com",
        "sk-ecdsa-sha2-nistp256@openssh.com",
    }
)

_KEY_PARSE_ERRORS = (ValueError, IndexError, UnknownKeyType, paramiko.SSHException)


def _check_key_fields(text: str) -> None:
    """Validate ``type base64 [comment]``; raise on any malformed field."""
    blob = paramiko.PublicBlob.from_string(text)
    try:
        paramiko.PKey.from_type_string(blob.key_type, blob.key_blob)
    except UnknownKeyType:
        if blob.key_type not in STRUCTURAL_ONLY_KEY_TYPES:
            raise


def split_key_options(line: str) -> tuple[str, str] | None:
    """Split a leading options field (``from="...",no-pty``) off *line*.

    Double-quoted option values may contain spaces and ``\\"`` escapes.

    Returns:
        ``(options, key_text)``, or ``None`` when the options field is
        unterminated or nothing follows it.
    """
    in_quotes = False
    escaped = False
    for index, char in enumerate(line):
        if escaped:
            escaped = False
        elif char == "\\" and in_quotes:
            escaped = True
        elif char == '"':
            in_quotes = not in_quotes
        elif char in " \t" and not in_quotes:
            rest = line[index:].strip()
            return (line[:index], rest) if rest else None
    return None


def validate_public_key(line: str) -> str:
    """Check that *line* is a valid ``authorized_keys`` entry.

    The entry is ``[options] type base64 [comment]``. When the line does
    not parse as a bare key, a leading options field is skipped and the
    remainder is parsed instead.

    Returns:
        The line unchanged, options included.

    Raises:
        ConfigurationError: If the key type is unknown or the blob is
            malformed.
    """
    try:
        _check_key_fields(line)
        return line
    except _KEY_PARSE_ERRORS as exc:
        first_error: Exception = exc

    parts = split_key_options(line)
    if parts is not None:
        try:
            _check_key_fields(parts[1])
            return line
        except _KEY_PARSE_ERRORS:
            logger.debug("Key text after the options field is not valid either")
    raise ConfigurationError(
        f"invalid public key format: {first_error or type(first_error).__name__}"
    ) from first_error


def parse_public_key(raw_input: str) -> str:
    """Extract and validate the single key carried by *raw_input*."""
    return validate_public_key(extract_single_key(raw_input))


def read_public_key_file(path: str) -> str:
    """Read and validate the single key in the file at *path*.

    Raises:
        ConfigurationError: If the file cannot be read or holds no valid key.
    """
    expanded = expand_home_path(path)
    try:
        content = Path(expanded).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"read pubkey file: {exc}") from exc
    try:
        return parse_public_key(content)
    except ConfigurationError as exc:
        raise ConfigurationError(f'invalid public key in file "{expanded}": {exc}') from exc


def resolve_public_key(key_input: str) -> str:
    """Resolve a value that is either inline key text or a key file path.

    Inline text is tried first. If it does not parse as exactly one valid
    key, the value is read as a path (``~`` expanded).

    Raises:
        ConfigurationError: If the value is empty, neither parses nor
            names a readable file, or the file holds no valid key.
    """
    trimmed = key_input.strip()
    if not trimmed:
        raise ConfigurationError("public key is required")

    try:
        return parse_public_key(trimmed)
    except ConfigurationError:
        logger.debug("Key input is not inline key text, trying it as a path")

    path = expand_home_path(trimmed)
    try:
        content = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(
            f'invalid --key value: expected a public key or readable file path "{trimmed}": {exc}'
        ) from exc
    try:
        return parse_public_key(content)
    except ConfigurationError as exc:
        raise ConfigurationError(f'invalid public key in file "{path}": {exc}') from exc
