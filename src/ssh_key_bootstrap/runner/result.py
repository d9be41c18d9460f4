"""Run result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class RunResultStatus(str, Enum):
    """Overall outcome of a run."""

    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    FAILURE = "failure"


class HostStatus(str, Enum):
    """Outcome for a single host."""

    OK = "ok"
    FAILED = "failed"


@dataclass
class HostOutcome:
    """Result of provisioning a single host."""

    host: str
    status: HostStatus
    duration_ms: int = 0
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.status == HostStatus.OK


@dataclass
class RunResult:
    """Aggregate result of provisioning every host."""

    status: RunResultStatus
    outcomes: list[HostOutcome] = field(default_factory=list)
    total_duration_ms: int = 0

    @property
    def succeeded_hosts(self) -> list[str]:
        """Return hosts that were provisioned."""
        return [o.host for o in self.outcomes if o.ok]

    @property
    def failed_hosts(self) -> list[tuple[str, Exception]]:
        """Return (host, error) pairs for hosts that failed."""
        return [(o.host, o.error) for o in self.outcomes if not o.ok and o.error is not None]

    @property
    def failure_count(self) -> int:
        return sum(1 for o in self.outcomes if not o.ok)
