"""Shared utility functions."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from typing import Any


def safe_call(
    fn: Callable[[], None],
    call_logger: logging.Logger,
    message: str,
    *message_args: Any,
) -> None:
    """Invoke *fn* and log exceptions as warnings instead of raising.

    Use this to call hooks or other extension points where a failure
    should not interrupt the run.

    Args:
        fn: Zero-argument callable to invoke.
        call_logger: Logger instance for warning output.
        message: Log message template (``%s``-style).
        *message_args: Arguments interpolated into *message*.
    """
    try:
        fn()
    except Exception:
        call_logger.warning(message, *message_args, exc_info=True)


def normalize_lf(value: str) -> str:
    """Convert CRLF and bare CR line endings to ``\\n``."""
    return value.replace("\r\n", "\n").replace("\r", "\n")


def expand_home_path(path: str) -> str:
    """Expand a leading ``~`` and return the trimmed path.

    Empty input stays empty.
    """
    trimmed = path.strip()
    if not trimmed:
        return ""
    return os.path.expanduser(trimmed)


def parse_bool(value: str) -> bool:
    """Parse the boolean spellings accepted in config files.

    Raises:
        ValueError: If *value* is not a recognised boolean.
    """
    lowered = value.strip().lower()
    if lowered in ("1", "t", "true", "y", "yes", "on"):
        return True
    if lowered in ("0", "f", "false", "n", "no", "off"):
        return False
    raise ValueError(f"invalid boolean {value!r}")
