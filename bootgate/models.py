"""Value types shared by the gate pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from bootgate.core.exceptions import BootGateError


class LoadStatus(str, Enum):
    LOADED = "loaded"
    ALREADY_LOADED = "already_loaded"


class StartStatus(str, Enum):
    """Outcome of starting a service or a repository pool."""

    STARTED = "started"
    ALREADY_RUNNING = "already_running"
    FAILED = "failed"


@dataclass(frozen=True)
class StartOutcome:
    status: StartStatus
    name: str
    reason: Optional[str] = None

    @classmethod
    def started(cls, name: str) -> "StartOutcome":
        return cls(StartStatus.STARTED, name)

    @classmethod
    def already_running(cls, name: str) -> "StartOutcome":
        return cls(StartStatus.ALREADY_RUNNING, name)

    @classmethod
    def failed(cls, name: str, reason: str) -> "StartOutcome":
        return cls(StartStatus.FAILED, name, reason)

    @property
    def ok(self) -> bool:
        return self.status is not StartStatus.FAILED


class GateState(str, Enum):
    """Pipeline position of a gate invocation."""

    START = "start"
    LOADED = "loaded"
    BOOTSTRAPPED = "bootstrapped"
    REPOSITORIES_READY = "repositories_ready"
    MIGRATIONS_RUN = "migrations_run"
    NOOP = "noop"
    MIGRATED = "migrated"
    HALTED = "halted"
    FAILED = "failed"


class GateStatus(str, Enum):
    NOOP = "noop"
    MIGRATED = "migrated"
    FAILED = "failed"


@dataclass(frozen=True)
class GateResult:
    """Outcome of one gate invocation.

    ``migrations`` holds the versions applied by *this* run, in the order
    they were applied. It is non-empty exactly when ``status`` is MIGRATED.
    """

    status: GateStatus
    migrations: tuple[int, ...] = field(default_factory=tuple)
    error: Optional[BootGateError] = None

    @classmethod
    def noop(cls) -> "GateResult":
        return cls(GateStatus.NOOP)

    @classmethod
    def migrated(cls, versions: Sequence[int]) -> "GateResult":
        if not versions:
            raise ValueError("a migrated result needs at least one version")
        return cls(GateStatus.MIGRATED, tuple(versions))

    @classmethod
    def failed(cls, error: BootGateError) -> "GateResult":
        return cls(GateStatus.FAILED, error=error)

    @property
    def ok(self) -> bool:
        return self.status is not GateStatus.FAILED
