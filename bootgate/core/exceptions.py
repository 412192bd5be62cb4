"""Gate exceptions with structured error details."""

from __future__ import annotations

from typing import Any


class BootGateError(Exception):
    """Base gate exception with a structured error payload."""

    error_code: str = "BOOT_GATE_ERROR"
    message: str = "Boot gate failed"

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            **({"details": self.details} if self.details else {}),
        }


class NotLoadedError(BootGateError):
    """The target application could not be loaded."""

    error_code = "NOT_LOADED"
    message = "Application could not be loaded"


class DependencyStartError(BootGateError):
    """A service or repository pool failed to start (non-fatal)."""

    error_code = "DEPENDENCY_START_FAILURE"
    message = "Dependency failed to start"


class MigrationError(BootGateError):
    """A migration unit could not be discovered or applied."""

    error_code = "MIGRATION_FAILURE"
    message = "Migration failed"


class HaltError(BootGateError):
    """The process controller returned instead of terminating the process."""

    error_code = "HALT_NOT_HONORED"
    message = "Process controller did not halt the process"
