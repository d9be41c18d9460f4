"""Tests for BootstrapRunner orchestration."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest

from ssh_key_bootstrap.runner.bootstrap_runner import BootstrapRunner
from ssh_key_bootstrap.runner.executor import ClientSettings, ProvisionError
from ssh_key_bootstrap.runner.result import HostStatus, RunResultStatus
from tests.factories import make_settings

KEY = "ssh-ed25519 AAAA test"


def _provision(failing: set[str] | None = None) -> MagicMock:
    failing = failing or set()

    def provision(host: str, public_key: str, settings: ClientSettings) -> None:
        if host in failing:
            raise ProvisionError(f"ssh dial: {host} unreachable")

    return MagicMock(side_effect=provision)


class TestBootstrapRunner:
    def test_all_succeed(self) -> None:
        provision = _provision()
        settings = make_settings()
        result = BootstrapRunner(provision=provision).run(["a:22", "b:22"], KEY, settings)

        assert result.status == RunResultStatus.SUCCESS
        assert result.succeeded_hosts == ["a:22", "b:22"]
        assert provision.call_count == 2
        provision.assert_any_call("a:22", KEY, settings)

    def test_failure_does_not_stop_run(self) -> None:
        provision = _provision({"a:22"})
        result = BootstrapRunner(provision=provision).run(["a:22", "b:22", "c:22"], KEY, make_settings())

        assert result.status == RunResultStatus.PARTIAL_SUCCESS
        assert provision.call_count == 3
        assert result.failure_count == 1
        host, error = result.failed_hosts[0]
        assert host == "a:22"
        assert "unreachable" in str(error)

    def test_all_fail(self) -> None:
        result = BootstrapRunner(provision=_provision({"a:22"})).run(["a:22"], KEY, make_settings())
        assert result.status == RunResultStatus.FAILURE
        assert result.outcomes[0].status == HostStatus.FAILED

    def test_any_exception_becomes_outcome(self) -> None:
        provision = MagicMock(side_effect=RuntimeError("unexpected"))
        result = BootstrapRunner(provision=provision).run(["a:22"], KEY, make_settings())
        assert result.failure_count == 1

    def test_empty_host_list(self) -> None:
        result = BootstrapRunner(provision=_provision()).run([], KEY, make_settings())
        assert result.status == RunResultStatus.SUCCESS
        assert result.outcomes == []

    def test_hook_order(self) -> None:
        hooks = MagicMock()
        runner = BootstrapRunner(hooks=hooks, provision=_provision({"b:22"}))
        runner.run(["a:22", "b:22"], KEY, make_settings())

        names = [c[0] for c in hooks.method_calls]
        assert names == [
            "before_run",
            "before_host",
            "after_host",
            "before_host",
            "on_host_failure",
            "after_run",
        ]
        hooks.before_host.assert_any_call("b:22", 1, 2)

    def test_hook_errors_are_swallowed(self) -> None:
        hooks = MagicMock()
        hooks.before_host.side_effect = RuntimeError("hook broke")
        result = BootstrapRunner(hooks=hooks, provision=_provision()).run(["a:22"], KEY, make_settings())
        assert result.status == RunResultStatus.SUCCESS

    def test_durations_use_clock(self) -> None:
        ticks = iter([0.0, 1.0, 1.5, 2.0])
        runner = BootstrapRunner(provision=_provision(), clock=lambda: next(ticks))

        result = runner.run(["a:22"], KEY, make_settings())

        assert result.outcomes[0].duration_ms == 500
        assert result.total_duration_ms == 2000

    def test_invalid_workers(self) -> None:
        with pytest.raises(ValueError, match="workers must be at least 1"):
            BootstrapRunner(workers=0)


class TestParallelRun:
    def test_outcomes_in_host_order(self) -> None:
        hosts = [f"h{i:02d}:22" for i in range(12)]
        release = threading.Event()

        def provision(host: str, public_key: str, settings: ClientSettings) -> None:
            release.wait(timeout=5)
            if host == "h03:22":
                raise ProvisionError("boom")

        runner = BootstrapRunner(workers=4, provision=provision)
        threading.Timer(0.05, release.set).start()
        result = runner.run(hosts, KEY, make_settings())

        assert [o.host for o in result.outcomes] == hosts
        assert result.failure_count == 1
        assert result.status == RunResultStatus.PARTIAL_SUCCESS

    def test_runs_concurrently(self) -> None:
        barrier = threading.Barrier(3, timeout=5)

        def provision(host: str, public_key: str, settings: ClientSettings) -> None:
            barrier.wait()

        result = BootstrapRunner(workers=3, provision=provision).run(["a:22", "b:22", "c:22"], KEY, make_settings())
        assert result.status == RunResultStatus.SUCCESS

    def test_reports_in_host_order(self) -> None:
        hooks = MagicMock()
        runner = BootstrapRunner(hooks=hooks, workers=3, provision=_provision({"b:22"}))
        runner.run(["a:22", "b:22", "c:22"], KEY, make_settings())

        reported = [c for c in hooks.method_calls if c[0] in ("after_host", "on_host_failure")]
        assert [c[1][0] for c in reported] == ["a:22", "b:22", "c:22"]
