"""Bootstrap runner: remote execution, hooks, results and orchestration."""

from ssh_key_bootstrap.runner.bootstrap_runner import BootstrapRunner
from ssh_key_bootstrap.runner.executor import (
    REMOTE_SCRIPT,
    ClientSettings,
    ProvisionError,
    provision_host,
)
from ssh_key_bootstrap.runner.hooks import (
    CompositeHooks,
    NoOpHooks,
    RunHooks,
)
from ssh_key_bootstrap.runner.hooks_builtin import (
    LoggingHooks,
    PlainReportHooks,
    RecapReportHooks,
)
from ssh_key_bootstrap.runner.result import (
    HostOutcome,
    HostStatus,
    RunResult,
    RunResultStatus,
)

__all__ = [
    "REMOTE_SCRIPT",
    "BootstrapRunner",
    "ClientSettings",
    "CompositeHooks",
    "HostOutcome",
    "HostStatus",
    "LoggingHooks",
    "NoOpHooks",
    "PlainReportHooks",
    "ProvisionError",
    "RecapReportHooks",
    "RunHooks",
    "RunResult",
    "RunResultStatus",
    "provision_host",
]
