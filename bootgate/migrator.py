"""Discovering and applying migration units.

A repository's migration directory holds one file per unit, named
``<version>_<name>.py`` or ``<version>_<name>.sql``. Versions are positive
integers (usually a ``YYYYMMDDHHMMSS`` timestamp) and are applied in
ascending order. Python units look like Alembic revisions::

    from alembic import op
    import sqlalchemy as sa


    def upgrade() -> None:
        op.create_table("users", sa.Column("id", sa.Integer, primary_key=True))

SQL units hold a single statement. Applied versions are recorded in the
repository's ``schema_migrations`` table, so a unit never runs twice.
"""

from __future__ import annotations

import importlib.util
import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator

from alembic.operations import Operations
from alembic.runtime.migration import MigrationContext
from sqlalchemy import BigInteger, Connection, DateTime, MetaData, func, insert, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from bootgate.core.config import settings
from bootgate.core.exceptions import MigrationError
from bootgate.core.logging import get_logger
from bootgate.repository import Repository, migrations_path


logger = get_logger("migrator")

MIGRATION_FILE = re.compile(r"^(?P<version>\d+)_(?P<name>[A-Za-z0-9_]+)\.(?P<kind>py|sql)$")

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class SchemaMigration(Base):
    """Track applied migration units."""
    __tablename__ = "schema_migrations"

    version: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    inserted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


@dataclass(frozen=True, order=True)
class MigrationUnit:
    version: int
    name: str = field(compare=False)
    path: Path = field(compare=False)

    @property
    def kind(self) -> str:
        return self.path.suffix.lstrip(".")


def discover_migrations(path: Path) -> list[MigrationUnit]:
    """Migration units under ``path`` in ascending version order.

    Files that do not look like migration units are ignored. Two units with
    the same version or the same name are an error.
    """
    if not path.is_dir():
        logger.debug(f"No migrations directory at {path}")
        return []

    units: list[MigrationUnit] = []
    for entry in path.iterdir():
        match = MIGRATION_FILE.match(entry.name)
        if match is None or not entry.is_file():
            continue
        units.append(MigrationUnit(int(match["version"]), match["name"], entry))
    units.sort()

    seen_versions: set[int] = set()
    seen_names: set[str] = set()
    for unit in units:
        if unit.version in seen_versions:
            raise MigrationError(
                f"Migration version {unit.version} is duplicated in {path}",
                details={"version": unit.version, "path": str(path)},
            )
        if unit.name in seen_names:
            raise MigrationError(
                f"Migration name {unit.name!r} is duplicated in {path}",
                details={"name": unit.name, "path": str(path)},
            )
        seen_versions.add(unit.version)
        seen_names.add(unit.name)
    return units


def applied_versions(conn: Connection) -> set[int]:
    return set(conn.execute(select(SchemaMigration.version)).scalars())


def _load_upgrade(unit: MigrationUnit):
    spec = importlib.util.spec_from_file_location(
        f"bootgate_migration_{unit.version}_{unit.name}", unit.path
    )
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    upgrade = getattr(module, "upgrade", None)
    if not callable(upgrade):
        raise MigrationError(
            f"Migration {unit.path.name} does not define upgrade()",
            details={"version": unit.version, "path": str(unit.path)},
        )
    return upgrade


def apply_unit(conn: Connection, unit: MigrationUnit) -> None:
    """Run one unit and record it, inside the caller's transaction."""
    if unit.kind == "sql":
        conn.execute(text(unit.path.read_text()))
    else:
        upgrade = _load_upgrade(unit)
        context = MigrationContext.configure(connection=conn)
        with Operations.context(context):
            upgrade()
    conn.execute(insert(SchemaMigration).values(version=unit.version))


@contextmanager
def _migration_lock(conn: Connection) -> Iterator[None]:
    """Hold a PostgreSQL advisory lock so replicas migrate one at a time."""
    if conn.dialect.name != "postgresql":
        yield
        return

    lock_id = settings.migration_lock_id
    with conn.begin():
        conn.execute(text("SELECT pg_advisory_lock(:lock_id)"), {"lock_id": lock_id})
    try:
        yield
    finally:
        with conn.begin():
            conn.execute(text("SELECT pg_advisory_unlock(:lock_id)"), {"lock_id": lock_id})


def run_migrations(repo: Repository) -> list[int]:
    """Apply every pending unit of ``repo``; return the applied versions.

    Each unit runs in its own transaction. The first failing unit stops the
    run; units applied before it stay applied.
    """
    if repo.engine is None:
        raise MigrationError(
            f"Repository {repo.name} is not started", details={"repository": repo.name}
        )

    try:
        path = migrations_path(repo)
    except (ImportError, ValueError) as e:
        raise MigrationError(
            f"Cannot locate migrations for {repo.name}: {e}",
            details={"repository": repo.name},
        ) from e

    try:
        units = discover_migrations(path)
    except OSError as e:
        raise MigrationError(
            f"Cannot read migrations for {repo.name} at {path}: {e}",
            details={"repository": repo.name, "path": str(path)},
        ) from e

    applied: list[int] = []

    try:
        with repo.engine.connect() as conn, _migration_lock(conn):
            with conn.begin():
                Base.metadata.create_all(conn, tables=[SchemaMigration.__table__])
            with conn.begin():
                done = applied_versions(conn)

            for unit in units:
                if unit.version in done:
                    continue
                logger.info(f"Applying migration {unit.version} ({unit.name}) to {repo.name}")
                try:
                    with conn.begin():
                        apply_unit(conn, unit)
                except MigrationError as e:
                    e.details.setdefault("repository", repo.name)
                    e.details.setdefault("version", unit.version)
                    e.details["applied"] = list(applied)
                    raise
                except Exception as e:
                    raise MigrationError(
                        f"Migration {unit.version} ({unit.name}) failed on {repo.name}: {e}",
                        details={
                            "repository": repo.name,
                            "version": unit.version,
                            "applied": list(applied),
                        },
                    ) from e
                applied.append(unit.version)
    except SQLAlchemyError as e:
        raise MigrationError(
            f"Migration bookkeeping failed on {repo.name}: {e}",
            details={"repository": repo.name, "applied": list(applied)},
        ) from e

    return applied


def run_all(repos: Iterable[Repository]) -> list[int]:
    """Migrate repositories in order, concatenating the applied versions."""
    migrations: list[int] = []

    logger.info("Running migrations")
    for repo in repos:
        logger.info(f"Running migration: repo {repo.name}")
        result = run_migrations(repo)
        logger.info(f"Ran migration: repo {repo.name}, applied = {result}")
        migrations.extend(result)
    logger.info(f"Ran migrations: count = {len(migrations)}")
    return migrations
