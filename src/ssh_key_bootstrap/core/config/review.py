"""Display of values loaded from a configuration file."""

from __future__ import annotations

from dataclasses import dataclass

from ssh_key_bootstrap.core.config.options import BootstrapOptions
from ssh_key_bootstrap.core.console import Console

MAX_PREVIEW_LENGTH = 80


@dataclass(frozen=True)
class ReviewField:
    """How one option is shown during review."""

    name: str
    label: str
    sensitive: bool = False


REVIEW_FIELDS: tuple[ReviewField, ...] = (
    ReviewField("server", "Server"),
    ReviewField("servers", "Servers"),
    ReviewField("servers_file", "Servers File"),
    ReviewField("user", "SSH User"),
    ReviewField("password", "SSH Password", sensitive=True),
    ReviewField("password_env", "Password Env Var"),
    ReviewField("password_secret_ref", "Password Secret Ref", sensitive=True),
    ReviewField("password_provider", "Password Provider"),
    ReviewField("key_input", "Public Key Input", sensitive=True),
    ReviewField("pubkey", "Public Key", sensitive=True),
    ReviewField("pubkey_file", "Public Key File"),
    ReviewField("port", "Default Port"),
    ReviewField("timeout", "Timeout Seconds"),
    ReviewField("insecure_ignore_host_key", "Insecure Ignore Host Key"),
    ReviewField("known_hosts", "Known Hosts Path"),
)


def preview_text(value: str, max_length: int = MAX_PREVIEW_LENGTH) -> str:
    """Trim *value* and truncate it to *max_length* characters."""
    trimmed = value.strip()
    if not trimmed:
        return "<empty>"
    if len(trimmed) <= max_length:
        return trimmed
    return trimmed[:max_length] + "..."


def mask_sensitive(value: str) -> str:
    """Return ``<redacted>`` for any non-empty value."""
    return "<redacted>" if value else "<empty>"


def preview_field(review_field: ReviewField, options: BootstrapOptions) -> str:
    """Return the on-screen preview of one option."""
    raw = getattr(options, review_field.name)
    if isinstance(raw, bool):
        value = "true" if raw else "false"
    else:
        value = str(raw)
    if review_field.sensitive:
        return mask_sensitive(value)
    return preview_text(value)


def review_loaded_fields(options: BootstrapOptions, loaded: list[str], console: Console) -> None:
    """Print every loaded option with its preview, in a fixed order."""
    if not loaded:
        return
    console.print_line("Loaded configuration values:")
    wanted = set(loaded)
    for review_field in REVIEW_FIELDS:
        if review_field.name in wanted:
            console.print_line(f"{review_field.label}: {preview_field(review_field, options)}")
