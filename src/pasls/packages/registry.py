"""Package registry: one in-memory :class:`Package` per manifest path."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from pasls.packages.manifest import Paths, read_manifest

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from pasls.packages.manifest import ManifestData

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Dependency:
    """A named reference from one package to another."""

    name: str
    path: str = ""
    prefer: bool = False
    package: Package | None = None  # resolved target, set at most once

    @property
    def resolved(self) -> bool:
        return self.package is not None


@dataclass(eq=False)
class Package:
    """A discovered project or package manifest.

    Identity is the canonical manifest path; the registry hands out a single
    instance per path, so instances compare by identity.
    """

    manifest: str
    name: str
    directory: str
    paths: Paths = field(default_factory=Paths)
    dependencies: list[Dependency] = field(default_factory=list)
    # Back-references to dependents, filled by resolve_deps.  Not ownership.
    required_by: list[Package] = field(default_factory=list)
    resolved_paths: Paths = field(default_factory=Paths)
    did_resolve_deps: bool = False
    did_resolve_paths: bool = False
    configured: bool = False

    def __repr__(self) -> str:
        return f"Package({self.name!r}, {self.manifest!r})"


def canonical_path(path: Path | str) -> str:
    return str(Path(path).expanduser().resolve())


class PackageRegistry:
    """Memoized store of packages keyed by canonical manifest path.

    A second index maps lower-cased package names to the manifest of the first
    package registered under that name.
    """

    def __init__(self, reader: Callable[[Path], ManifestData] = read_manifest) -> None:
        self._reader = reader
        self._packages: dict[str, Package] = {}
        self._by_name: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._packages)

    def __iter__(self) -> Iterator[Package]:
        return iter(list(self._packages.values()))

    def get_package_or_project(self, path: Path | str) -> Package:
        """Return the package for *path*, parsing the manifest on first use.

        Raises :class:`~pasls.packages.manifest.ParseError` if the manifest
        is unreadable; nothing is registered in that case.
        """
        key = canonical_path(path)
        pkg = self._packages.get(key)
        if pkg is not None:
            return pkg

        data = self._reader(Path(key))
        pkg = Package(
            manifest=key,
            name=data.name,
            directory=data.directory,
            paths=data.paths,
            dependencies=[
                Dependency(name=d.name, path=d.path, prefer=d.prefer) for d in data.dependencies
            ],
        )
        self._packages[key] = pkg
        self._by_name.setdefault(pkg.name.lower(), key)
        logger.debug("Registered %s (%s)", pkg.name, key)
        return pkg

    def lookup(self, name: str) -> str:
        """Return the manifest path registered under *name*, or ``""``."""
        return self._by_name.get(name.lower(), "")

    def get(self, path: Path | str) -> Package | None:
        return self._packages.get(canonical_path(path))
