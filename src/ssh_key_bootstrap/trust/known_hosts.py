"""known_hosts trust store primitives.

The file uses the standard OpenSSH ``hostname-pattern key-type base64``
line format, so entries written here are readable by other SSH clients
and vice versa. Entries are only ever appended; an existing entry is
never rewritten.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import os
from enum import Enum
from pathlib import Path

import paramiko

from ssh_key_bootstrap.trust.exceptions import TrustStoreError

logger = logging.getLogger(__name__)


class HostKeyStatus(str, Enum):
    """Result of looking a presented key up in the trust store."""

    MATCH = "match"
    MISMATCH = "mismatch"
    UNKNOWN = "unknown"


def fingerprint_sha256(key: paramiko.PKey) -> str:
    """Return the OpenSSH-style ``SHA256:<base64>`` fingerprint of *key*."""
    digest = hashlib.sha256(key.asbytes()).digest()
    return "SHA256:" + base64.b64encode(digest).decode("ascii").rstrip("=")


def ensure_known_hosts_file(path: Path) -> None:
    """Create *path* (mode 0600) and its directory (mode 0700) if missing.

    Raises:
        TrustStoreError: If either cannot be created.
    """
    try:
        path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        if not path.exists():
            fd = os.open(path, os.O_CREAT | os.O_WRONLY | os.O_APPEND, 0o600)
            os.close(fd)
            logger.info("Created known_hosts file %s", path)
    except OSError as exc:
        raise TrustStoreError(f"prepare known_hosts file: {exc}") from exc


def load_host_keys(path: Path) -> paramiko.HostKeys:
    """Parse *path* into a fresh lookup structure.

    Unparseable lines are skipped by paramiko.

    Raises:
        TrustStoreError: If the file cannot be read.
    """
    try:
        return paramiko.HostKeys(filename=str(path))
    except (OSError, UnicodeDecodeError) as exc:
        raise TrustStoreError(f"load known_hosts: {exc}") from exc


def lookup_host_key(
    host_keys: paramiko.HostKeys,
    hostname: str,
    key: paramiko.PKey,
) -> tuple[HostKeyStatus, paramiko.PKey | None]:
    """Classify *key* for *hostname* against *host_keys*.

    Returns:
        ``(MATCH, stored)`` when an entry for the host holds this key,
        ``(MISMATCH, stored)`` when the host is known under other keys,
        and ``(UNKNOWN, None)`` when the host has no entry at all.
    """
    entry = host_keys.lookup(hostname)
    if not entry:
        return HostKeyStatus.UNKNOWN, None

    presented = key.asbytes()
    known = [entry[key_type] for key_type in entry.keys()]
    for stored in known:
        if stored.asbytes() == presented:
            return HostKeyStatus.MATCH, stored

    same_type = [k for k in known if k.get_name() == key.get_name()]
    return HostKeyStatus.MISMATCH, (same_type or known)[0]


def format_known_hosts_line(hostname: str, key: paramiko.PKey) -> str:
    """Return the known_hosts line for *hostname* and *key*, without newline."""
    return f"{hostname} {key.get_name()} {key.get_base64()}"


def append_host_key(path: Path, hostname: str, key: paramiko.PKey) -> None:
    """Append one entry for *hostname* to *path*.

    A newline is inserted first when the file does not end with one.

    Raises:
        TrustStoreError: If the file cannot be written.
    """
    line = format_known_hosts_line(hostname, key)
    try:
        needs_newline = False
        if path.exists() and path.stat().st_size > 0:
            with path.open("rb") as handle:
                handle.seek(-1, os.SEEK_END)
                needs_newline = handle.read(1) != b"\n"
        with path.open("a", encoding="utf-8") as handle:
            if needs_newline:
                handle.write("\n")
            handle.write(line + "\n")
    except OSError as exc:
        raise TrustStoreError(f"store trusted host key: {exc}") from exc
    logger.info("Added %s key for %s to %s", key.get_name(), hostname, path)
