"""Run orchestration: provision every host and aggregate the outcomes."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from ssh_key_bootstrap.core.utils import safe_call
from ssh_key_bootstrap.runner.executor import ClientSettings, provision_host
from ssh_key_bootstrap.runner.hooks import NoOpHooks, RunHooks
from ssh_key_bootstrap.runner.result import HostOutcome, HostStatus, RunResult, RunResultStatus

logger = logging.getLogger(__name__)

ProvisionFunc = Callable[[str, str, ClientSettings], None]


class BootstrapRunner:
    """Provisions a fixed host list, one attempt per host.

    A failing host never stops the run. Hosts run sequentially by default;
    with ``workers > 1`` they run on a thread pool, and outcomes are still
    reported in host order.

    Args:
        hooks: Lifecycle hooks (default: ``NoOpHooks``).
        workers: Number of hosts attempted concurrently.
        provision: Per-host provisioning function (injectable for tests).
        clock: Injectable monotonic clock for testing.
    """

    def __init__(
        self,
        hooks: RunHooks | None = None,
        workers: int = 1,
        provision: ProvisionFunc = provision_host,
        clock: Callable[[], float] | None = None,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self._hooks: RunHooks = hooks or NoOpHooks()
        self._workers = workers
        self._provision = provision
        self._clock = clock or time.monotonic

    def run(self, hosts: list[str], public_key: str, settings: ClientSettings) -> RunResult:
        """Provision *public_key* on every host.

        Args:
            hosts: Normalised, sorted ``host:port`` addresses.
            public_key: One validated authorized_keys line.
            settings: Connection settings shared by all hosts.

        Returns:
            ``RunResult`` with per-host outcomes in host order.
        """
        start = self._clock()
        self._call_hook("before_run", hosts)

        total = len(hosts)
        outcomes: list[HostOutcome] = []

        if self._workers == 1 or total <= 1:
            for index, host in enumerate(hosts):
                outcome = self._attempt(host, index, total, public_key, settings)
                self._report(outcome, index, total)
                outcomes.append(outcome)
        else:
            with ThreadPoolExecutor(max_workers=min(self._workers, total), thread_name_prefix="skb-host") as pool:
                futures: list[Future[HostOutcome]] = [
                    pool.submit(self._attempt, host, index, total, public_key, settings)
                    for index, host in enumerate(hosts)
                ]
                for index, future in enumerate(futures):
                    outcome = future.result()
                    self._report(outcome, index, total)
                    outcomes.append(outcome)

        failures = sum(1 for o in outcomes if not o.ok)
        if failures == 0:
            status = RunResultStatus.SUCCESS
        elif failures == len(outcomes):
            status = RunResultStatus.FAILURE
        else:
            status = RunResultStatus.PARTIAL_SUCCESS

        result = RunResult(
            status=status,
            outcomes=outcomes,
            total_duration_ms=int((self._clock() - start) * 1000),
        )
        self._call_hook("after_run", result)
        return result

    def _attempt(self, host: str, index: int, total: int, public_key: str, settings: ClientSettings) -> HostOutcome:
        """Provision one host, converting any exception into an outcome."""
        self._call_hook("before_host", host, index, total)
        start = self._clock()
        try:
            self._provision(host, public_key, settings)
        except Exception as exc:
            logger.debug("Provisioning %s failed", host, exc_info=True)
            return HostOutcome(
                host=host,
                status=HostStatus.FAILED,
                duration_ms=int((self._clock() - start) * 1000),
                error=exc,
            )
        return HostOutcome(
            host=host,
            status=HostStatus.OK,
            duration_ms=int((self._clock() - start) * 1000),
        )

    def _report(self, outcome: HostOutcome, index: int, total: int) -> None:
        if outcome.ok:
            self._call_hook("after_host", outcome.host, index, total, outcome.duration_ms)
        else:
            assert outcome.error is not None
            self._call_hook("on_host_failure", outcome.host, index, outcome.error)

    def _call_hook(self, method: str, *args: Any) -> None:
        """Invoke a hook method; errors are logged, not raised."""
        safe_call(
            lambda: getattr(self._hooks, method)(*args),
            logger,
            "Hook %s.%s raised an exception",
            type(self._hooks).__name__,
            method,
        )
