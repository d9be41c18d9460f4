"""Tests for built-in run hooks."""

from __future__ import annotations

import io
import logging

import pytest

from ssh_key_bootstrap.runner.hooks_builtin import LoggingHooks, PlainReportHooks, RecapReportHooks
from ssh_key_bootstrap.runner.result import HostOutcome, HostStatus, RunResult, RunResultStatus


def _result() -> RunResult:
    return RunResult(
        status=RunResultStatus.PARTIAL_SUCCESS,
        outcomes=[
            HostOutcome(host="web1:22", status=HostStatus.OK, duration_ms=10),
            HostOutcome(host="db10:2222", status=HostStatus.FAILED, error=RuntimeError("ssh dial: refused")),
        ],
        total_duration_ms=50,
    )


class TestLoggingHooks:
    def test_default_logger_name(self) -> None:
        assert LoggingHooks().logger.name == "skb.run"

    def test_custom_logger(self) -> None:
        custom = logging.getLogger("custom.hooks")
        assert LoggingHooks(custom).logger is custom

    def test_logs_lifecycle(self, caplog: pytest.LogCaptureFixture) -> None:
        hooks = LoggingHooks()
        with caplog.at_level(logging.INFO, logger="skb.run"):
            hooks.before_run(["web1:22", "db10:2222"])
            hooks.before_host("web1:22", 0, 2)
            hooks.after_host("web1:22", 0, 2, 10)
            hooks.on_host_failure("db10:2222", 1, RuntimeError("refused"))
            hooks.after_run(_result())

        assert "Run starting with 2 host(s)" in caplog.text
        assert "Host web1:22 [1/2] completed in 10ms" in caplog.text
        assert "Host db10:2222 [2] failed: refused" in caplog.text
        assert "partial_success: 1 ok, 1 failed" in caplog.text
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1


class TestPlainReportHooks:
    def test_lines(self) -> None:
        stream = io.StringIO()
        hooks = PlainReportHooks(stream)
        hooks.before_run(["web1:22"])
        hooks.after_host("web1:22", 0, 2, 10)
        hooks.on_host_failure("db10:2222", 1, RuntimeError("ssh dial: refused"))
        hooks.after_run(_result())

        assert stream.getvalue() == "[OK]   web1:22\n[FAIL] db10:2222: ssh dial: refused\n"


class TestRecapReportHooks:
    def test_banner_width(self) -> None:
        banner = RecapReportHooks.banner("PLAY RECAP")
        assert len(banner) == 79
        assert banner.startswith("PLAY RECAP *")

    def test_report(self) -> None:
        stream = io.StringIO()
        hooks = RecapReportHooks(stream)
        result = _result()

        hooks.before_run(["web1:22", "db10:2222"])
        hooks.after_host("web1:22", 0, 2, 10)
        hooks.on_host_failure("db10:2222", 1, RuntimeError("ssh dial: refused"))
        hooks.after_run(result)

        lines = stream.getvalue().splitlines()
        assert lines[0].startswith("TASK [Ensure authorized key] ***")
        assert lines[1] == "ok: [web1:22]"
        assert lines[2] == "failed: [db10:2222] => ssh dial: refused"
        assert lines[3] == ""
        assert lines[4].startswith("PLAY RECAP ***")
        assert lines[5] == "web1:22   : ok=1 failed=0"
        assert lines[6] == "db10:2222 : ok=0 failed=1"

    def test_empty_recap(self) -> None:
        stream = io.StringIO()
        RecapReportHooks(stream).after_run(RunResult(status=RunResultStatus.SUCCESS))
        assert stream.getvalue().splitlines()[-1].startswith("PLAY RECAP")


class TestRunResult:
    def test_helpers(self) -> None:
        result = _result()
        assert result.succeeded_hosts == ["web1:22"]
        assert result.failure_count == 1
        assert result.failed_hosts[0][0] == "db10:2222"
        assert result.outcomes[0].ok
        assert not result.outcomes[1].ok
