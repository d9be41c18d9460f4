"""Per-host provisioning over SSH.

One attempt per host, no retry. The key line is streamed to a fixed
shell script on standard input, so it never appears on the remote command
line. The script is idempotent: the key is appended only when no
identical line is already present.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

import paramiko

from ssh_key_bootstrap.core.exceptions import BootstrapError
from ssh_key_bootstrap.core.hosts import address_parts
from ssh_key_bootstrap.core.utils import normalize_lf

logger = logging.getLogger(__name__)

REMOTE_SCRIPT = normalize_lf(
    "set -eu\n"
    "umask 077\n"
    "mkdir -p ~/.ssh\n"
    "touch ~/.ssh/authorized_keys\n"
    "chmod 700 ~/.ssh\n"
    "chmod 600 ~/.ssh/authorized_keys\n"
    "IFS= read -r KEY\n"
    "grep -qxF \"$KEY\" ~/.ssh/authorized_keys || printf '%s\\n' \"$KEY\" >> ~/.ssh/authorized_keys\n"
)

_READ_CHUNK = 32768


class ProvisionError(BootstrapError):
    """Provisioning a single host failed."""

    pass


@dataclass
class ClientSettings:
    """Connection settings shared by every host in a run.

    The ``password`` field is masked in ``__repr__``.

    Args:
        username: Remote account name.
        password: Password for that account.
        host_key_policy: Paramiko policy that decides host key trust.
        timeout: Seconds allowed for TCP connect, banner and authentication.
    """

    username: str
    password: str
    host_key_policy: paramiko.MissingHostKeyPolicy
    timeout: float = 10.0

    def __repr__(self) -> str:
        return (
            f"ClientSettings(username={self.username!r}, password=***, "
            f"host_key_policy={type(self.host_key_policy).__name__}, timeout={self.timeout!r})"
        )


def provision_host(
    address: str,
    public_key: str,
    settings: ClientSettings,
    client_factory: Callable[[], paramiko.SSHClient] = paramiko.SSHClient,
) -> None:
    """Ensure *public_key* is present in ``~/.ssh/authorized_keys`` on *address*.

    The client loads no host keys of its own, so every presented key goes
    through ``settings.host_key_policy``. The connection and channel are
    closed on every exit path.

    Args:
        address: Normalised ``host:port``.
        public_key: One validated authorized_keys line.
        settings: Credentials, host key policy and timeout.
        client_factory: Builds the SSH client (injectable for tests).

    Raises:
        ProvisionError: If the connection, session or remote command fails.
            A non-zero exit carries the remote output when there was any.
    """
    host, port = address_parts(address)
    payload = normalize_lf(public_key).strip() + "\n"

    client = client_factory()
    channel: paramiko.Channel | None = None
    try:
        client.set_missing_host_key_policy(settings.host_key_policy)
        try:
            client.connect(
                hostname=host,
                port=port,
                username=settings.username,
                password=settings.password,
                timeout=settings.timeout,
                banner_timeout=settings.timeout,
                auth_timeout=settings.timeout,
                allow_agent=False,
                look_for_keys=False,
            )
        except (paramiko.SSHException, OSError) as exc:
            raise ProvisionError(f"ssh dial: {exc}") from exc

        try:
            transport = client.get_transport()
            if transport is None:
                raise paramiko.SSHException("transport is not connected")
            channel = transport.open_session(timeout=settings.timeout)
        except (paramiko.SSHException, OSError) as exc:
            raise ProvisionError(f"create session: {exc}") from exc

        try:
            channel.set_combine_stderr(True)
            channel.exec_command(REMOTE_SCRIPT)
            channel.sendall(payload.encode("utf-8"))
            channel.shutdown_write()
            output = _read_all(channel)
            exit_status = channel.recv_exit_status()
        except (paramiko.SSHException, OSError) as exc:
            raise ProvisionError(f"run remote command: {exc}") from exc
    finally:
        if channel is not None:
            channel.close()
        client.close()

    if exit_status != 0:
        message = f"remote command exited with status {exit_status}"
        trimmed = output.strip()
        if trimmed:
            message = f"{message}: {trimmed}"
        raise ProvisionError(message)
    logger.debug("Authorized key ensured on %s", address)


def _read_all(channel: paramiko.Channel) -> str:
    chunks: list[bytes] = []
    while True:
        data = channel.recv(_READ_CHUNK)
        if not data:
            break
        chunks.append(data)
    return b"".join(chunks).decode("utf-8", errors="replace")
