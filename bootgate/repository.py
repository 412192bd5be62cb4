"""Repositories: named databases whose schema the gate migrates.

A repository pairs a SQLAlchemy URL with the application that owns it. The
owning application decides where migration units live::

    <app package>/priv/<repository name, underscored>/migrations/

so ``Repository("MainRepo", url, app="myapp")`` reads its units from
``myapp/priv/main_repo/migrations``.
"""

from __future__ import annotations

import importlib
import re
from pathlib import Path
from typing import Any, Iterable, Optional

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import URL, make_url
from sqlalchemy.pool import StaticPool

from bootgate.core.config import settings
from bootgate.core.exceptions import DependencyStartError
from bootgate.core.logging import get_logger
from bootgate.models import StartOutcome, StartStatus


logger = get_logger("repository")

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def underscore(name: str) -> str:
    """Convert the last segment of a dotted name to snake_case.

    >>> underscore("myapp.db.MainRepo")
    'main_repo'
    """
    last = re.split(r"[.:]", name)[-1]
    return _CAMEL_BOUNDARY.sub("_", last).replace("-", "_").lower()


def priv_dir(app: str) -> Path:
    """Private data directory shipped inside the ``app`` package."""
    module = importlib.import_module(app)
    module_file = getattr(module, "__file__", None)
    if module_file is None:
        raise ValueError(f"Application {app!r} has no location on disk")
    return Path(module_file).resolve().parent / settings.priv_dirname


def priv_path_for(repo: "Repository", filename: str) -> Path:
    """Path of ``filename`` inside the repository's private directory."""
    return priv_dir(repo.app) / underscore(repo.name) / filename


def migrations_path(repo: "Repository") -> Path:
    if repo.migrations_dir is not None:
        return repo.migrations_dir
    return priv_path_for(repo, settings.migrations_dirname)


def _pool_options(url: URL, pool_size: int) -> dict[str, Any]:
    # In-memory SQLite lives and dies with its single connection.
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        return {"poolclass": StaticPool}
    return {"pool_size": pool_size, "max_overflow": 0}


class Repository:
    """A named database owned by an application."""

    def __init__(
        self,
        name: str,
        url: str | URL,
        app: str,
        *,
        migrations_path: str | Path | None = None,
        engine_options: Optional[dict[str, Any]] = None,
    ):
        self.name = name
        self.url = make_url(url)
        self.app = app
        self.migrations_dir = Path(migrations_path) if migrations_path else None
        self.engine_options = dict(engine_options or {})
        self._engine: Engine | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @property
    def started(self) -> bool:
        return self._engine is not None

    def start(self, pool_size: int = 1) -> StartOutcome:
        """Create the engine and verify it can connect."""
        if self._engine is not None:
            return StartOutcome.already_running(self.name)

        options = {**_pool_options(self.url, pool_size), **self.engine_options}
        engine: Engine | None = None
        try:
            engine = create_engine(self.url, **options)
            with engine.connect():
                pass
        except Exception as e:
            if engine is not None:
                engine.dispose()
            return StartOutcome.failed(self.name, str(e))

        self._engine = engine
        return StartOutcome.started(self.name)

    def stop(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def __repr__(self) -> str:
        return f"Repository(name={self.name!r}, url={self.url!r}, app={self.app!r})"


def start_repositories(
    repos: Iterable[Repository], pool_size: int | None = None
) -> list[Repository]:
    """Start every repository pool, keeping the ones that came up.

    A repository that fails to start is logged and left out; the others are
    returned in their configured order.
    """
    size = pool_size or settings.pool_size
    ready: list[Repository] = []

    logger.info("Starting repos...")
    for repo in repos:
        logger.info(f"Starting repo: {repo.name}")
        outcome = repo.start(pool_size=size)

        if outcome.status is StartStatus.STARTED:
            logger.info(f"Started repo: {repo.name} ({repo.url})")
        elif outcome.status is StartStatus.ALREADY_RUNNING:
            logger.info(f"Repo was already started: {repo.name}")
        else:
            error = DependencyStartError(
                f"Failed to start the repo {repo.name}: {outcome.reason}",
                details={"repository": repo.name, "reason": outcome.reason},
            )
            logger.warning(error.message, extra={"extra_fields": error.to_dict()})
            continue

        ready.append(repo)
    logger.info(f"Started repos: {len(ready)} ready")
    return ready
