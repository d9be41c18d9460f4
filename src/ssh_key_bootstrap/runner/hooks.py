"""Run lifecycle hooks protocol and infrastructure."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from ssh_key_bootstrap.runner.result import RunResult

logger = logging.getLogger(__name__)


class RunHooks(Protocol):
    """Protocol defining lifecycle callbacks for a provisioning run.

    ``after_host`` and ``on_host_failure`` are always called from the
    runner's thread in host order. ``before_host`` may be called from a
    worker thread when the run is parallel.
    """

    def before_run(self, hosts: list[str]) -> None:
        """Called before the first host is attempted."""
        ...

    def after_run(self, result: RunResult) -> None:
        """Called after every host has been attempted."""
        ...

    def before_host(self, host: str, index: int, total: int) -> None:
        """Called before a host is attempted."""
        ...

    def after_host(self, host: str, index: int, total: int, duration_ms: int) -> None:
        """Called after a host was provisioned."""
        ...

    def on_host_failure(self, host: str, index: int, error: Exception) -> None:
        """Called when provisioning a host failed."""
        ...


class NoOpHooks:
    """Hooks implementation that does nothing."""

    def before_run(self, hosts: list[str]) -> None:
        pass

    def after_run(self, result: RunResult) -> None:
        pass

    def before_host(self, host: str, index: int, total: int) -> None:
        pass

    def after_host(self, host: str, index: int, total: int, duration_ms: int) -> None:
        pass

    def on_host_failure(self, host: str, index: int, error: Exception) -> None:
        pass


class CompositeHooks:
    """Broadcasts lifecycle events to multiple hooks implementations.

    Exceptions raised by individual hooks are caught and logged so that
    one misbehaving hook does not break the run.
    """

    def __init__(self, *hooks: RunHooks) -> None:
        self._hooks: tuple[RunHooks, ...] = hooks

    def _call_all(self, method: str, *args: Any) -> None:
        for hook in self._hooks:
            try:
                getattr(hook, method)(*args)
            except Exception:
                logger.warning(
                    "Hook %s.%s raised an exception",
                    type(hook).__name__,
                    method,
                    exc_info=True,
                )

    def before_run(self, hosts: list[str]) -> None:
        self._call_all("before_run", hosts)

    def after_run(self, result: RunResult) -> None:
        self._call_all("after_run", result)

    def before_host(self, host: str, index: int, total: int) -> None:
        self._call_all("before_host", host, index, total)

    def after_host(self, host: str, index: int, total: int, duration_ms: int) -> None:
        self._call_all("after_host", host, index, total, duration_ms)

    def on_host_failure(self, host: str, index: int, error: Exception) -> None:
        self._call_all("on_host_failure", host, index, error)
