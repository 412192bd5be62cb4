"""The boot gate: migrate an application's repositories before it starts.

Typical use, early in an application's entry point::

    from bootgate import migrated

    if not migrated("myapp"):
        start_server()

With the default ``halt_on_migration=True`` the call never returns when a
migration was applied: the process exits and its supervisor is expected to
start it again against the migrated schema. ``migrated`` then returns
``False`` on the next boot.
"""

from __future__ import annotations

from typing import Sequence

from bootgate.core.config import settings
from bootgate.core.exceptions import BootGateError, HaltError, MigrationError, NotLoadedError
from bootgate.core.logging import get_logger, target_var
from bootgate.loader import BootTarget
from bootgate.migrator import run_all
from bootgate.models import GateResult, GateState, GateStatus, LoadStatus
from bootgate.process import ProcessController, default_controller
from bootgate.repository import start_repositories
from bootgate.services import Service, default_services, start_services


logger = get_logger("gate")


class BootGate:
    """One gate invocation over a ``BootTarget``.

    ``state`` follows the pipeline::

        START -> LOADED -> BOOTSTRAPPED -> REPOSITORIES_READY -> MIGRATIONS_RUN
              -> NOOP | MIGRATED | HALTED

    with FAILED reachable from START (the application did not load) and from
    MIGRATIONS_RUN (a unit failed).
    """

    def __init__(
        self,
        target: BootTarget | str,
        *,
        services: Sequence[Service] | None = None,
        process: ProcessController | None = None,
        pool_size: int | None = None,
    ):
        self.target = BootTarget.coerce(target)
        self.services = list(services) if services is not None else default_services()
        self.process = process or default_controller()
        self.pool_size = pool_size or settings.pool_size
        self.state = GateState.START

    def _transition(self, state: GateState) -> None:
        logger.debug(f"Gate state {self.state.value} -> {state.value}")
        self.state = state

    def _fail(self, error: BootGateError) -> GateResult:
        self._transition(GateState.FAILED)
        return GateResult.failed(error)

    def run(self, halt_on_migration: bool | None = None) -> GateResult:
        """Run the gate once.

        Returns a NOOP or MIGRATED result, or a FAILED result carrying the
        error. Halting never returns.
        """
        if self.state is not GateState.START:
            raise RuntimeError("A BootGate runs only once; create a new one")
        halt = settings.halt_on_migration if halt_on_migration is None else halt_on_migration

        token = target_var.set(self.target.name)
        try:
            return self._run(halt)
        finally:
            target_var.reset(token)

    def _run(self, halt: bool) -> GateResult:
        app = self.target.name
        config = self.target.config

        logger.info(f"Loading application {app}...")
        try:
            status = config.load(app)
            repos = config.repositories(app)
        except NotLoadedError as e:
            logger.error(f"Failed to load the application: {e.message}")
            return self._fail(e)

        if status is LoadStatus.ALREADY_LOADED:
            logger.info(f"Application {app} is already loaded")
        else:
            logger.info(f"Loaded application {app}")
        self._transition(GateState.LOADED)

        start_services(self.services)
        self._transition(GateState.BOOTSTRAPPED)

        ready = start_repositories(repos, self.pool_size)
        self._transition(GateState.REPOSITORIES_READY)

        try:
            migrations = run_all(ready)
        except MigrationError as e:
            self._transition(GateState.MIGRATIONS_RUN)
            logger.error(e.message, extra={"extra_fields": e.to_dict()})
            return self._fail(e)
        self._transition(GateState.MIGRATIONS_RUN)
        logger.info("Done")

        if not migrations:
            self._transition(GateState.NOOP)
            return GateResult.noop()

        if not halt:
            self._transition(GateState.MIGRATED)
            return GateResult.migrated(migrations)

        logger.info(f"Applied {len(migrations)} migration(s), exiting for restart")
        self._transition(GateState.HALTED)
        self.process.halt()
        raise HaltError(details={"migrations": migrations})


def migrate(
    target: BootTarget | str,
    halt_on_migration: bool | None = None,
    **options,
) -> GateResult:
    """Run pending migrations for ``target``.

    ``options`` are passed to ``BootGate`` (``services``, ``process``,
    ``pool_size``).
    """
    return BootGate(target, **options).run(halt_on_migration)


def migrated(
    target: BootTarget | str,
    halt_on_migration: bool | None = None,
    **options,
) -> bool:
    """Like ``migrate`` but returns whether anything was applied.

    Raises the gate error instead of returning a FAILED result.
    """
    result = migrate(target, halt_on_migration, **options)
    if result.status is GateStatus.FAILED:
        raise result.error
    return result.status is GateStatus.MIGRATED
