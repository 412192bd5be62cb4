"""Migrate an application's databases at boot, before it serves traffic."""

from .core.exceptions import (
    BootGateError,
    DependencyStartError,
    HaltError,
    MigrationError,
    NotLoadedError,
)
from .gate import BootGate, migrate, migrated
from .loader import BootTarget, ConfigSource, ModuleConfigSource, StaticConfigSource
from .migrator import MigrationUnit, discover_migrations, run_migrations
from .models import GateResult, GateState, GateStatus, StartOutcome, StartStatus
from .process import ExitProcessController, ProcessController, SystemExitController
from .repository import Repository, migrations_path, priv_path_for
from .services import ModuleService, Service


__version__ = "0.1.0"

__all__ = [
    "BootGate",
    "BootGateError",
    "BootTarget",
    "ConfigSource",
    "DependencyStartError",
    "ExitProcessController",
    "GateResult",
    "GateState",
    "GateStatus",
    "HaltError",
    "MigrationError",
    "MigrationUnit",
    "ModuleConfigSource",
    "ModuleService",
    "NotLoadedError",
    "ProcessController",
    "Repository",
    "Service",
    "StartOutcome",
    "StartStatus",
    "StaticConfigSource",
    "SystemExitController",
    "discover_migrations",
    "migrate",
    "migrated",
    "migrations_path",
    "priv_path_for",
    "run_migrations",
]
