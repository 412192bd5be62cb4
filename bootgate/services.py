"""Runtime services that must be up before a repository can be migrated."""

from __future__ import annotations

import importlib
import sys
from typing import Iterable, Protocol, Sequence

from bootgate.core.config import settings
from bootgate.core.exceptions import DependencyStartError
from bootgate.core.logging import get_logger
from bootgate.models import StartOutcome, StartStatus


logger = get_logger("services")


class Service(Protocol):
    name: str

    def start(self) -> StartOutcome:
        ...


class ModuleService:
    """A service that is running once its module has been imported."""

    def __init__(self, module: str, name: str | None = None):
        self.module = module
        self.name = name or module

    def start(self) -> StartOutcome:
        if self.module in sys.modules:
            return StartOutcome.already_running(self.name)
        try:
            importlib.import_module(self.module)
        except Exception as e:
            return StartOutcome.failed(self.name, f"{type(e).__name__}: {e}")
        return StartOutcome.started(self.name)

    def __repr__(self) -> str:
        return f"ModuleService({self.module!r})"


def default_services(modules: Sequence[str] | None = None) -> list[Service]:
    """Services from settings, in start order (crypto, TLS, ORM, migrator)."""
    return [ModuleService(module) for module in (modules or settings.services)]


def start_services(services: Iterable[Service]) -> list[StartOutcome]:
    """Start each service in order. Failures are logged, never raised."""
    outcomes: list[StartOutcome] = []

    logger.info("Starting dependencies...")
    for service in services:
        logger.info(f"Starting dependency: {service.name}")
        try:
            outcome = service.start()
        except Exception as e:
            outcome = StartOutcome.failed(service.name, f"{type(e).__name__}: {e}")

        if outcome.status is StartStatus.STARTED:
            logger.info(f"Started dependency: {service.name}")
        elif outcome.status is StartStatus.ALREADY_RUNNING:
            logger.info(f"Dependency already running: {service.name}")
        else:
            error = DependencyStartError(
                f"Failed to start dependency {service.name}: {outcome.reason}",
                details={"service": service.name, "reason": outcome.reason},
            )
            logger.warning(error.message, extra={"extra_fields": error.to_dict()})

        outcomes.append(outcome)
    logger.info("Started dependencies")
    return outcomes
