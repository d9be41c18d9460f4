"""Built-in run hooks: logging and operator-facing reports."""

from __future__ import annotations

import logging
import sys
from typing import TextIO

from ssh_key_bootstrap.runner.result import RunResult

RECAP_TASK_NAME = "Ensure authorized key"
_BANNER_WIDTH = 79


class LoggingHooks:
    """Hooks that log run lifecycle events.

    Uses ``%s`` formatting for lazy evaluation. Host failures are logged
    with their message only; they are already part of the run result.

    Args:
        logger: Custom logger instance. Defaults to ``logging.getLogger("skb.run")``.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("skb.run")

    @property
    def logger(self) -> logging.Logger:
        """Return the logger used by this hooks instance."""
        return self._logger

    def before_run(self, hosts: list[str]) -> None:
        self._logger.info("Run starting with %d host(s)", len(hosts))

    def after_run(self, result: RunResult) -> None:
        self._logger.info(
            "Run finished with status %s: %d ok, %d failed in %dms",
            result.status.value,
            len(result.succeeded_hosts),
            result.failure_count,
            result.total_duration_ms,
        )

    def before_host(self, host: str, index: int, total: int) -> None:
        self._logger.info("Host %s [%d/%d] starting", host, index + 1, total)

    def after_host(self, host: str, index: int, total: int, duration_ms: int) -> None:
        self._logger.info("Host %s [%d/%d] completed in %dms", host, index + 1, total, duration_ms)

    def on_host_failure(self, host: str, index: int, error: Exception) -> None:
        self._logger.error("Host %s [%d] failed: %s", host, index + 1, error)


class PlainReportHooks:
    """Print one ``[OK]`` / ``[FAIL]`` line per host.

    Args:
        stream: Output stream. Defaults to ``sys.stdout``.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def _write(self, line: str) -> None:
        stream = self._stream or sys.stdout
        stream.write(line + "\n")
        stream.flush()

    def before_run(self, hosts: list[str]) -> None:
        pass

    def after_run(self, result: RunResult) -> None:
        pass

    def before_host(self, host: str, index: int, total: int) -> None:
        pass

    def after_host(self, host: str, index: int, total: int, duration_ms: int) -> None:
        self._write(f"[OK]   {host}")

    def on_host_failure(self, host: str, index: int, error: Exception) -> None:
        self._write(f"[FAIL] {host}: {error}")


class RecapReportHooks:
    """Print an Ansible-style task report followed by a play recap.

    Args:
        stream: Output stream. Defaults to ``sys.stdout``.
        task_name: Name shown in the task banner.
    """

    def __init__(self, stream: TextIO | None = None, task_name: str = RECAP_TASK_NAME) -> None:
        self._stream = stream
        self._task_name = task_name

    def _write(self, line: str = "") -> None:
        stream = self._stream or sys.stdout
        stream.write(line + "\n")
        stream.flush()

    @staticmethod
    def banner(title: str) -> str:
        """Return *title* padded with ``*`` to the banner width."""
        return f"{title} ".ljust(_BANNER_WIDTH, "*")

    def before_run(self, hosts: list[str]) -> None:
        self._write(self.banner(f"TASK [{self._task_name}]"))

    def after_run(self, result: RunResult) -> None:
        self._write()
        self._write(self.banner("PLAY RECAP"))
        if not result.outcomes:
            return
        width = max(len(o.host) for o in result.outcomes)
        for outcome in result.outcomes:
            ok = 1 if outcome.ok else 0
            self._write(f"{outcome.host.ljust(width)} : ok={ok} failed={1 - ok}")

    def before_host(self, host: str, index: int, total: int) -> None:
        pass

    def after_host(self, host: str, index: int, total: int, duration_ms: int) -> None:
        self._write(f"ok: [{host}]")

    def on_host_failure(self, host: str, index: int, error: Exception) -> None:
        self._write(f"failed: [{host}] => {error}")
