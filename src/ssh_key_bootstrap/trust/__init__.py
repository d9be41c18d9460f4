"""Host key trust: known_hosts store, TOFU engine and paramiko policies."""

from ssh_key_bootstrap.trust.exceptions import (
    HostKeyError,
    HostKeyMismatchError,
    HostKeyRejectedError,
    TrustStoreError,
    UnknownHostError,
)
from ssh_key_bootstrap.trust.known_hosts import HostKeyStatus, fingerprint_sha256
from ssh_key_bootstrap.trust.policy import (
    ConsoleTrustPrompt,
    HostTrustEngine,
    InsecureHostKeyPolicy,
    TofuHostKeyPolicy,
    TrustPrompt,
    build_host_key_policy,
)

__all__ = [
    "ConsoleTrustPrompt",
    "HostKeyError",
    "HostKeyMismatchError",
    "HostKeyRejectedError",
    "HostKeyStatus",
    "HostTrustEngine",
    "InsecureHostKeyPolicy",
    "TofuHostKeyPolicy",
    "TrustPrompt",
    "TrustStoreError",
    "UnknownHostError",
    "build_host_key_policy",
    "fingerprint_sha256",
]
