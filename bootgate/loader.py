"""Loading the gated application and reading its repository list."""

from __future__ import annotations

import importlib
import sys
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Protocol

from bootgate.core.config import settings
from bootgate.core.exceptions import NotLoadedError
from bootgate.models import LoadStatus
from bootgate.repository import Repository


class ConfigSource(Protocol):
    """Where an application's configuration comes from."""

    def load(self, app: str) -> LoadStatus:
        """Make ``app`` available in-process or raise ``NotLoadedError``."""
        ...

    def repositories(self, app: str) -> list[Repository]:
        """Repositories configured for ``app``, in migration order."""
        ...


def resolve_repository(entry: Any) -> Repository:
    """Turn a configured entry into a ``Repository``.

    Entries are either ``Repository`` instances or ``"module:attribute"``
    references to one.
    """
    if isinstance(entry, Repository):
        return entry
    if isinstance(entry, str) and ":" in entry:
        module_name, _, attribute = entry.partition(":")
        try:
            module = importlib.import_module(module_name)
            resolved = getattr(module, attribute)
        except (ImportError, AttributeError) as e:
            raise NotLoadedError(
                f"Cannot resolve repository {entry!r}: {e}",
                details={"repository": entry},
            ) from e
        if isinstance(resolved, Repository):
            return resolved
    raise NotLoadedError(
        f"Invalid repository entry: {entry!r}",
        details={"repository": repr(entry)},
    )


class ModuleConfigSource:
    """Configuration read from the application's importable module.

    ``myapp`` lists its repositories in ``myapp.REPOSITORIES`` (the attribute
    name comes from settings); a missing attribute means no repositories.
    """

    def __init__(self, attribute: str | None = None):
        self.attribute = attribute or settings.repositories_attribute

    def load(self, app: str) -> LoadStatus:
        if app in sys.modules:
            return LoadStatus.ALREADY_LOADED
        try:
            importlib.import_module(app)
        except Exception as e:
            raise NotLoadedError(
                f"Failed to load application {app!r}: {e}",
                details={"app": app, "reason": repr(e)},
            ) from e
        return LoadStatus.LOADED

    def repositories(self, app: str) -> list[Repository]:
        module = sys.modules.get(app) or importlib.import_module(app)
        entries = getattr(module, self.attribute, None) or []
        return [resolve_repository(entry) for entry in entries]


class StaticConfigSource:
    """In-memory configuration, keyed by application name."""

    def __init__(self, apps: Mapping[str, Iterable[Repository]]):
        self._apps = {app: list(repos) for app, repos in apps.items()}
        self._loaded: set[str] = set()

    def load(self, app: str) -> LoadStatus:
        if app not in self._apps:
            raise NotLoadedError(
                f"Unknown application {app!r}", details={"app": app}
            )
        if app in self._loaded:
            return LoadStatus.ALREADY_LOADED
        self._loaded.add(app)
        return LoadStatus.LOADED

    def repositories(self, app: str) -> list[Repository]:
        return [resolve_repository(entry) for entry in self._apps.get(app, [])]


@dataclass(frozen=True)
class BootTarget:
    """The application whose repositories are gated."""

    name: str
    config: ConfigSource = field(default_factory=ModuleConfigSource)

    @classmethod
    def coerce(cls, target: "BootTarget | str") -> "BootTarget":
        if isinstance(target, BootTarget):
            return target
        return cls(name=target)
