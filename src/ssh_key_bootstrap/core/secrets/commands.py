"""Bounded subprocess execution for CLI-backed secret providers."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Mapping, Sequence

from ssh_key_bootstrap.core.secrets.base import SecretProviderError

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT = 10.0


class CommandError(SecretProviderError):
    """A provider subprocess could not be run or exited unsuccessfully."""

    pass


class CommandNotFoundError(CommandError):
    """The provider binary is not on ``PATH``."""

    def __init__(self, binary: str) -> None:
        self.binary = binary
        super().__init__(f"{binary} not found in PATH")


class CommandTimeoutError(CommandError):
    """A provider subprocess exceeded its timeout and was killed."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"command timed out after {timeout:g}s")


def run_and_capture_output(
    args: Sequence[str],
    timeout: float = DEFAULT_COMMAND_TIMEOUT,
    env: Mapping[str, str] | None = None,
) -> str:
    """Run *args* and return its combined stdout/stderr.

    The child is killed when *timeout* elapses.

    Args:
        args: Program and arguments. No shell is involved.
        timeout: Seconds before the child is killed.
        env: Full child environment, or ``None`` to inherit.

    Returns:
        The raw combined output.

    Raises:
        CommandNotFoundError: If the program does not exist.
        CommandTimeoutError: If the timeout elapsed.
        CommandError: If the program exits non-zero. The trimmed output is
            appended to the message only when there is some.
    """
    logger.debug("Running %s (timeout %gs)", args[0], timeout)
    try:
        completed = subprocess.run(
            list(args),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            timeout=timeout,
            env=dict(env) if env is not None else None,
            check=False,
        )
    except FileNotFoundError as exc:
        raise CommandNotFoundError(args[0]) from exc
    except subprocess.TimeoutExpired as exc:
        raise CommandTimeoutError(timeout) from exc
    except OSError as exc:
        raise CommandError(str(exc)) from exc

    output = completed.stdout.decode("utf-8", errors="replace")
    if completed.returncode != 0:
        message = f"exit status {completed.returncode}"
        trimmed = output.strip()
        if trimmed:
            message = f"{message}: {trimmed}"
        raise CommandError(message)
    return output
