"""Trust-on-first-use host key verification.

:class:`HostTrustEngine` owns the in-memory lookup structure for one
known_hosts file. For each presented key it moves through these states:

- known host, same key: accepted without prompting.
- known host, different key: rejected without prompting.
- unknown host: the operator is asked to confirm the fingerprint. On
  acceptance the entry is appended and the lookup reloaded from disk, so
  the next connection to that host in the same run is accepted silently.

Lookup, prompt, append and reload all run under one lock per
known_hosts path, shared by every engine for that path.

Disabling verification goes through :class:`InsecureHostKeyPolicy`, a
separate policy chosen explicitly by the caller. No error path in the
engine falls back to it.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Protocol

import paramiko

from ssh_key_bootstrap.core.console import Console, confirm
from ssh_key_bootstrap.core.exceptions import InputClosedError
from ssh_key_bootstrap.trust.exceptions import (
    HostKeyError,
    HostKeyMismatchError,
    HostKeyRejectedError,
    TrustStoreError,
    UnknownHostError,
)
from ssh_key_bootstrap.trust.known_hosts import (
    HostKeyStatus,
    append_host_key,
    ensure_known_hosts_file,
    fingerprint_sha256,
    load_host_keys,
    lookup_host_key,
)

logger = logging.getLogger(__name__)

_PATH_LOCKS: dict[str, threading.RLock] = {}
_PATH_LOCKS_GUARD = threading.Lock()


def path_lock(path: Path) -> threading.RLock:
    """Return the process-wide lock for the known_hosts file at *path*."""
    key = str(path.resolve())
    with _PATH_LOCKS_GUARD:
        lock = _PATH_LOCKS.get(key)
        if lock is None:
            lock = threading.RLock()
            _PATH_LOCKS[key] = lock
        return lock


class TrustPrompt(Protocol):
    """Asks whether an unknown host key should be trusted."""

    def confirm_trust(self, hostname: str, key_type: str, fingerprint: str, known_hosts_path: Path) -> bool:
        """Return ``True`` to trust the key, ``False`` to reject it.

        Raises:
            HostKeyError: If nobody can be asked.
        """
        ...


class ConsoleTrustPrompt:
    """Ask the operator on the console, OpenSSH style.

    Raises :class:`UnknownHostError` straight away in a non-interactive
    session.
    """

    def __init__(self, console: Console) -> None:
        self._console = console

    def confirm_trust(self, hostname: str, key_type: str, fingerprint: str, known_hosts_path: Path) -> bool:
        if not self._console.is_interactive():
            raise UnknownHostError(hostname, str(known_hosts_path))

        self._console.print_line(f'The authenticity of host "{hostname}" can\'t be established.')
        self._console.print_line(f"{key_type} key fingerprint is {fingerprint}.")
        try:
            return confirm(self._console, f"Trust this host and add it to {known_hosts_path}? (yes/no): ")
        except InputClosedError as exc:
            raise HostKeyError(f"read trust confirmation: {exc}") from exc


class HostTrustEngine:
    """TOFU verifier bound to one known_hosts file.

    Args:
        known_hosts_path: Trust store location. Created if missing.
        prompt: Decides whether unknown hosts are trusted.

    Raises:
        TrustStoreError: If the trust store cannot be prepared or read.
    """

    def __init__(self, known_hosts_path: Path, prompt: TrustPrompt) -> None:
        self._path = known_hosts_path
        self._prompt = prompt
        self._lock = path_lock(known_hosts_path)
        with self._lock:
            ensure_known_hosts_file(known_hosts_path)
            self._host_keys = load_host_keys(known_hosts_path)

    @property
    def known_hosts_path(self) -> Path:
        return self._path

    def verify(self, hostname: str, key: paramiko.PKey) -> None:
        """Accept *key* for *hostname* or raise.

        Args:
            hostname: known_hosts name, ``host`` or ``[host]:port``.
            key: Key presented by the server.

        Raises:
            HostKeyMismatchError: If the host is known under another key.
            HostKeyRejectedError: If the operator declined the key.
            UnknownHostError: If the host is unknown and nobody can confirm.
            TrustStoreError: If the accepted key cannot be stored or reloaded.
        """
        with self._lock:
            status, stored = lookup_host_key(self._host_keys, hostname, key)
            if status == HostKeyStatus.MATCH:
                logger.debug("Host key for %s matches known_hosts", hostname)
                return
            if status == HostKeyStatus.MISMATCH:
                assert stored is not None
                logger.error("Host key mismatch for %s", hostname)
                raise HostKeyMismatchError(hostname, fingerprint_sha256(stored), fingerprint_sha256(key))

            fingerprint = fingerprint_sha256(key)
            logger.info("Unknown host %s presented %s %s", hostname, key.get_name(), fingerprint)
            if not self._prompt.confirm_trust(hostname, key.get_name(), fingerprint, self._path):
                raise HostKeyRejectedError(hostname)

            append_host_key(self._path, hostname, key)
            self._reload()

    def _reload(self) -> None:
        try:
            self._host_keys = load_host_keys(self._path)
        except TrustStoreError as exc:
            raise TrustStoreError(f"reload known_hosts: {exc}") from exc


class TofuHostKeyPolicy(paramiko.MissingHostKeyPolicy):
    """Paramiko policy that routes every presented key through an engine.

    Clients using it must not load any host keys of their own, so paramiko
    calls the policy on every connection and the engine sees all three
    states.
    """

    def __init__(self, engine: HostTrustEngine) -> None:
        self._engine = engine

    @property
    def engine(self) -> HostTrustEngine:
        return self._engine

    def missing_host_key(self, client: paramiko.SSHClient, hostname: str, key: paramiko.PKey) -> None:
        self._engine.verify(hostname, key)


class InsecureHostKeyPolicy(paramiko.MissingHostKeyPolicy):
    """Accept every host key without verification.

    Only selected when the operator explicitly disables host key checking.
    Logs a warning per host.
    """

    def missing_host_key(self, client: paramiko.SSHClient, hostname: str, key: paramiko.PKey) -> None:
        logger.warning(
            "Host key verification disabled; accepting %s %s for %s",
            key.get_name(),
            fingerprint_sha256(key),
            hostname,
        )


def build_host_key_policy(
    insecure: bool,
    known_hosts_path: Path,
    prompt: TrustPrompt,
) -> paramiko.MissingHostKeyPolicy:
    """Return the host key policy for a run.

    Args:
        insecure: Skip verification entirely.
        known_hosts_path: Trust store used when verifying.
        prompt: Confirms unknown hosts when verifying.

    Raises:
        TrustStoreError: If the trust store cannot be prepared.
    """
    if insecure:
        logger.warning("Host key verification is disabled for this run")
        return InsecureHostKeyPolicy()
    return TofuHostKeyPolicy(HostTrustEngine(known_hosts_path, prompt))
