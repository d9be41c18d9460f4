"""Host list resolution and ``host:port`` normalisation.

Every resolved address carries an explicit, validated port. IPv6
literals are bracketed on output (``[2001:db8::1]:22``), whether or not
the input was bracketed. Results are deduplicated and sorted, so run
order is deterministic.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ssh_key_bootstrap.core.exceptions import ConfigurationError
from ssh_key_bootstrap.core.utils import expand_home_path

logger = logging.getLogger(__name__)

MIN_PORT = 1
MAX_PORT = 65535


class HostFormatError(ValueError):
    """A single host entry could not be normalised."""

    pass


def split_host_port(address: str) -> tuple[str, str] | None:
    """Split *address* into host and port, or return ``None`` if it has no port.

    Bracketed hosts may carry a port (``[::1]:22``). Unbracketed input
    with more than one colon is a bare IPv6 literal without a port.

    Raises:
        HostFormatError: If brackets are unbalanced or followed by junk.
    """
    if address.startswith("["):
        closing = address.find("]")
        if closing < 0:
            raise HostFormatError("missing ']' in address")
        host = address[1:closing]
        rest = address[closing + 1 :]
        if not rest:
            return None
        if not rest.startswith(":"):
            raise HostFormatError("unexpected text after ']' in address")
        return host, rest[1:]
    if address.count(":") == 1:
        host, _, port = address.partition(":")
        return host, port
    return None


def join_host_port(host: str, port: int | str) -> str:
    """Join *host* and *port*, bracketing IPv6 literals."""
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def parse_port(raw_port: str) -> int:
    """Return *raw_port* as an int in 1..65535.

    Raises:
        HostFormatError: If the port is not numeric or out of range.
    """
    if not raw_port.isdigit() or not raw_port.isascii():
        raise HostFormatError(f'invalid port "{raw_port}"')
    port = int(raw_port)
    if not MIN_PORT <= port <= MAX_PORT:
        raise HostFormatError(f'invalid port "{raw_port}"')
    return port


def normalize_host(raw_host: str, default_port: int) -> str:
    """Normalise one host entry to ``host:port``.

    An explicit port is validated; otherwise *default_port* is applied.
    Normalising an already-normalised address returns it unchanged.

    Args:
        raw_host: Entry such as ``web1``, ``web1:2222``, ``[::1]`` or ``::1``.
        default_port: Port applied when the entry has none.

    Raises:
        HostFormatError: If the host is missing or the port is invalid.
    """
    entry = raw_host.strip()
    parts = split_host_port(entry)
    if parts is not None:
        host, raw_port = parts
        if not host.strip():
            raise HostFormatError("missing host")
        return join_host_port(host, parse_port(raw_port))

    if entry.startswith("[") and entry.endswith("]"):
        entry = entry[1:-1]
    if not entry.strip():
        raise HostFormatError("missing host")
    return join_host_port(entry, default_port)


def address_parts(address: str) -> tuple[str, int]:
    """Return ``(host, port)`` for a normalised address."""
    parts = split_host_port(address)
    if parts is None:
        raise HostFormatError(f'address "{address}" has no port')
    return parts[0], parse_port(parts[1])


def resolve_hosts(
    server: str = "",
    servers: str = "",
    servers_file: str = "",
    default_port: int = 22,
) -> list[str]:
    """Merge every host source into a sorted, deduplicated address list.

    Args:
        server: Host entry. Commas separate further entries, as in
            *servers*.
        servers: Comma-separated host entries.
        servers_file: Path to a file with one entry per line. Blank lines
            and ``#`` comments are ignored.
        default_port: Port applied to entries without one.

    Returns:
        Normalised ``host:port`` strings in lexicographic order.

    Raises:
        ConfigurationError: If an entry is invalid, the file cannot be
            read, or no host was given at all.
    """
    resolved: set[str] = set()

    def add(raw: str) -> None:
        entry = raw.strip()
        if not entry:
            return
        try:
            resolved.add(normalize_host(entry, default_port))
        except HostFormatError as exc:
            raise ConfigurationError(f'invalid server "{entry}": {exc}') from exc

    for source in (server, servers):
        for candidate in source.split(","):
            add(candidate)

    path = expand_home_path(servers_file)
    if path:
        try:
            lines = Path(path).read_text(encoding="utf-8").splitlines()
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigurationError(f"open servers file: {exc}") from exc
        for line_number, line in enumerate(lines, start=1):
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            try:
                add(stripped)
            except ConfigurationError as exc:
                raise ConfigurationError(f"servers file line {line_number}: {exc}") from exc

    if not resolved:
        raise ConfigurationError("no servers provided")

    hosts = sorted(resolved)
    logger.debug("Resolved %d host(s)", len(hosts))
    return hosts
