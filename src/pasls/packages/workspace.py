"""Workspace walk: find manifests below a root and run resolution phases on them."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from pasls.packages.manifest import ParseError, is_manifest
from pasls.packages.resolver import guess_missing_dependencies, resolve_deps

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from pasls.packages.registry import Package, PackageRegistry

logger = logging.getLogger(__name__)

# Directory base names never scanned (compared lower-case).
_IGNORED_NAMES = frozenset({"backup", "lib"})
# Substrings marking bundle/debug-symbol directories.
_IGNORED_FRAGMENTS = (".dsym", ".app")


def ignore_directory(directory: Path | str, extra: frozenset[str] = frozenset()) -> bool:
    """Return ``True`` if *directory* and its subtree must be skipped.

    *extra* holds additional lower-case base names from the workspace config.
    """
    name = Path(directory).name.lower()
    if name.startswith("."):
        return True
    if name in _IGNORED_NAMES or name in extra:
        return True
    return any(fragment in name for fragment in _IGNORED_FRAGMENTS)


def list_manifests(directory: Path) -> list[Path]:
    """Manifests directly inside *directory*, sorted.  Raises ``OSError``."""
    return sorted(p for p in directory.iterdir() if p.is_file() and is_manifest(p))


def list_subdirectories(directory: Path) -> list[Path]:
    """Immediate subdirectories, sorted.  Symlinked directories are skipped."""
    return sorted(p for p in directory.iterdir() if p.is_dir() and not p.is_symlink())


def iter_packages(
    registry: PackageRegistry,
    directory: Path,
    ignore: frozenset[str] = frozenset(),
) -> Iterator[Package]:
    """Yield the package of every manifest under *directory*, depth-first.

    Ignored directories, unreadable directories and unparsable manifests are
    skipped.
    """
    if ignore_directory(directory, ignore):
        return

    try:
        manifests = list_manifests(directory)
        subdirs = list_subdirectories(directory)
    except OSError as exc:
        logger.warning("Skipping %s: %s", directory, exc)
        return

    for manifest in manifests:
        try:
            yield registry.get_package_or_project(manifest)
        except ParseError as exc:
            logger.warning("Skipping manifest %s", exc)

    for subdir in subdirs:
        yield from iter_packages(registry, subdir, ignore)


def _for_all_packages(
    registry: PackageRegistry,
    directory: Path,
    action: Callable[[Package], None],
    ignore: frozenset[str],
) -> int:
    count = 0
    for pkg in iter_packages(registry, directory, ignore):
        action(pkg)
        count += 1
    return count


def load_all_packages_under_path(
    registry: PackageRegistry,
    directory: Path,
    ignore: frozenset[str] = frozenset(),
) -> int:
    """Register every manifest under *directory* and resolve its dependencies.

    Returns the number of manifests found in the tree.
    """
    return _for_all_packages(
        registry, directory, lambda pkg: resolve_deps(registry, pkg), ignore
    )


def guess_missing_deps_for_all_packages(
    registry: PackageRegistry,
    directory: Path,
    ignore: frozenset[str] = frozenset(),
) -> int:
    """Run the missing-dependency heuristic on every manifest under *directory*."""
    return _for_all_packages(registry, directory, guess_missing_dependencies, ignore)
