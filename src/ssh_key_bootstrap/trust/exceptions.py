"""Host-key trust exceptions.

All of them subclass :class:`paramiko.SSHException` so they surface
unchanged from :meth:`paramiko.SSHClient.connect` when raised by a host-key
policy.
"""

from __future__ import annotations

import paramiko


class HostKeyError(paramiko.SSHException):
    """Base exception for host-key trust failures."""

    pass


class HostKeyMismatchError(HostKeyError):
    """The trust store holds a different key for this host."""

    def __init__(self, hostname: str, expected: str, presented: str) -> None:
        self.hostname = hostname
        self.expected = expected
        self.presented = presented
        super().__init__(
            f"host key mismatch for {hostname} (known {expected}, presented {presented}); "
            "refusing to connect"
        )


class HostKeyRejectedError(HostKeyError):
    """The operator declined to trust an unknown host."""

    def __init__(self, hostname: str) -> None:
        self.hostname = hostname
        super().__init__(f"host key for {hostname} rejected by user")


class UnknownHostError(HostKeyError):
    """An unknown host was seen with nobody available to confirm it."""

    def __init__(self, hostname: str, known_hosts_path: str) -> None:
        self.hostname = hostname
        self.known_hosts_path = known_hosts_path
        super().__init__(
            f"unknown host {hostname} and no interactive terminal available to confirm trust "
            f"(add it to {known_hosts_path} out-of-band or pass --insecure-ignore-host-key)"
        )


class TrustStoreError(HostKeyError):
    """The known_hosts file could not be created, written or read."""

    pass
