"""Dependency resolution over registered packages.

Three phases, each guarded so that every package is processed at most once
and cyclic graphs terminate:

1. :func:`resolve_deps` links each dependency to a :class:`Package`, using
   the registry's name index first and the manifest's path hint second.
2. :func:`guess_missing_dependencies` repairs dependencies that phase 1 could
   not find by borrowing the target a dependent package already resolved.
3. :func:`resolve_paths` merges each package's search paths with those of
   its dependencies.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pasls.packages.manifest import ParseError

if TYPE_CHECKING:
    from pasls.packages.registry import Package, PackageRegistry

logger = logging.getLogger(__name__)


def resolve_deps(registry: PackageRegistry, pkg: Package) -> None:
    """Resolve the dependencies of *pkg*, then theirs, depth-first."""
    if pkg.did_resolve_deps:
        return
    pkg.did_resolve_deps = True

    for dep in pkg.dependencies:
        dep_path = registry.lookup(dep.name)
        if dep.prefer or not dep_path:
            dep_path = dep.path

        if not dep_path:
            logger.debug("Dependency %s of %s: not found", dep.name, pkg.name)
            continue

        try:
            target = registry.get_package_or_project(dep_path)
        except ParseError as exc:
            logger.warning("Dependency %s of %s: %s", dep.name, pkg.name, exc)
            continue

        logger.debug("Dependency: %s -> %s", dep.name, dep_path)
        dep.package = target
        target.required_by.append(pkg)

        resolve_deps(registry, target)


def _find_resolved(node: Package, name: str, visited: set[int]) -> Package | None:
    """Search *node* and, transitively, its dependents for a resolved *name*.

    First match wins, in ``dependencies`` then ``required_by`` order.
    """
    if id(node) in visited:
        return None
    visited.add(id(node))

    wanted = name.lower()
    for dep in node.dependencies:
        if dep.package is not None and dep.name.lower() == wanted:
            return dep.package

    for parent in node.required_by:
        found = _find_resolved(parent, name, visited)
        if found is not None:
            return found
    return None


def guess_missing_dependencies(pkg: Package) -> None:
    """Fill unresolved dependencies of *pkg* from its dependents.

    If A requires B and C, and C was not found for A but B requires C and did
    find it (say through a preferred path), A uses B's C too.  Dependencies
    with no match stay unresolved.
    """
    for dep in pkg.dependencies:
        if dep.package is not None:
            continue
        found = _find_resolved(pkg, dep.name, set())
        if found is not None:
            logger.debug("Guessed dependency %s of %s -> %s", dep.name, pkg.name, found.manifest)
            dep.package = found


def resolve_paths(pkg: Package) -> None:
    """Compute ``pkg.resolved_paths``: own paths, then each dependency's, in order."""
    if pkg.did_resolve_paths:
        return
    pkg.did_resolve_paths = True

    pkg.resolved_paths = pkg.paths.copy()

    for dep in pkg.dependencies:
        if dep.package is None:
            continue
        resolve_paths(dep.package)
        pkg.resolved_paths.extend(dep.package.resolved_paths)
