"""Pytest configuration and fixtures."""

from __future__ import annotations

import importlib
import sys
import uuid
from pathlib import Path
from typing import Generator

import pytest

from bootgate.repository import Repository, underscore


PY_CREATE_TABLE = '''\
from alembic import op
import sqlalchemy as sa


def upgrade() -> None:
    op.create_table("{table}", sa.Column("id", sa.Integer, primary_key=True))
'''

PY_FAILING = '''\
def upgrade() -> None:
    raise RuntimeError("boom")
'''


class Halted(Exception):
    """Raised by the recording controller in place of ending the process."""


class RecordingController:
    """Process controller that counts halts instead of exiting."""

    def __init__(self, raise_on_halt: bool = True):
        self.calls = 0
        self.raise_on_halt = raise_on_halt

    def halt(self):
        self.calls += 1
        if self.raise_on_halt:
            raise Halted()


def write_unit(directory: Path, filename: str, body: str | None = None) -> Path:
    """Write a migration unit; Python units create a table named after the file."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    if body is None:
        table = "t_" + filename.split(".")[0]
        body = PY_CREATE_TABLE.format(table=table)
    path.write_text(body)
    return path


class AppFactory:
    """Creates throwaway application packages on ``sys.path``."""

    def __init__(self, root: Path):
        self.root = root
        self.names: list[str] = []

    def create(self, repos: dict[str, str] | None = None, name: str | None = None) -> str:
        name = name or f"gateapp_{uuid.uuid4().hex[:8]}"
        package = self.root / name
        package.mkdir(parents=True)

        lines = ["from bootgate import Repository", ""]
        if repos is not None:
            lines.append("REPOSITORIES = [")
            for repo_name, url in repos.items():
                lines.append(f"    Repository({repo_name!r}, {url!r}, app={name!r}),")
            lines.append("]")
        (package / "__init__.py").write_text("\n".join(lines) + "\n")

        importlib.invalidate_caches()
        self.names.append(name)
        return name

    def migrations_dir(self, app: str, repo_name: str) -> Path:
        return self.root / app / "priv" / underscore(repo_name) / "migrations"

    def cleanup(self) -> None:
        for name in self.names:
            module = sys.modules.pop(name, None)
            for repo in getattr(module, "REPOSITORIES", []):
                if isinstance(repo, Repository):
                    repo.stop()


@pytest.fixture
def sqlite_url(tmp_path: Path):
    """Factory for file-backed SQLite URLs inside the test's tmp dir."""

    def _url(name: str) -> str:
        return f"sqlite:///{tmp_path / name}.db"

    return _url


@pytest.fixture
def app_factory(tmp_path: Path, monkeypatch) -> Generator[AppFactory, None, None]:
    root = tmp_path / "apps"
    root.mkdir()
    monkeypatch.syspath_prepend(str(root))
    factory = AppFactory(root)
    yield factory
    factory.cleanup()


@pytest.fixture
def repos() -> Generator[list[Repository], None, None]:
    """Collects repositories created by a test and stops them afterwards."""
    created: list[Repository] = []
    yield created
    for repo in created:
        repo.stop()


@pytest.fixture
def controller() -> RecordingController:
    return RecordingController()
