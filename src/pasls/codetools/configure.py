"""Publish resolved search paths into the engine's define tree."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pasls.codetools.define_tree import (
    INCLUDE_PATH,
    SRC_PATH,
    UNIT_PATH,
    Define,
    DefineNode,
)
from pasls.packages.manifest import ParseError, Paths
from pasls.packages.registry import canonical_path
from pasls.packages.resolver import resolve_paths
from pasls.packages.workspace import ignore_directory, list_manifests, list_subdirectories

if TYPE_CHECKING:
    from pathlib import Path

    from pasls.codetools.define_tree import DefineTree
    from pasls.packages.registry import Package, PackageRegistry

logger = logging.getLogger(__name__)


def configure_package(tree: DefineTree, pkg: Package) -> None:
    """Scope *pkg*'s resolved paths to its directory and subdirectories.

    Dependencies are configured too, so their own directories see their own
    paths.  Requires :func:`~pasls.packages.resolver.resolve_paths` first.
    """
    if pkg.configured:
        return
    pkg.configured = True

    resolved = pkg.resolved_paths
    node = DefineNode(name=f"Package {pkg.name}", directory=pkg.directory)
    node.add(
        Define(
            UNIT_PATH,
            tuple(resolved.unit_path),
            recurse=True,
            description="Add to the UnitPath",
        )
    )
    node.add(
        Define(
            INCLUDE_PATH,
            tuple(resolved.include_path),
            recurse=True,
            description="Add to the Include path",
        )
    )
    node.add(
        Define(SRC_PATH, tuple(resolved.src_path), recurse=True, description="Add to the Src path")
    )
    tree.add(node)

    for dep in pkg.dependencies:
        if dep.package is not None:
            configure_package(tree, dep.package)


def _directory_defaults(directory: str) -> DefineNode:
    """Directory-only node adding *directory* to the unit and include paths."""
    node = DefineNode(name="Directory", directory=directory)
    node.add(Define(UNIT_PATH, (directory,), description="Add to the UnitPath"))
    node.add(Define(INCLUDE_PATH, (directory,), description="Add to the Include path"))
    return node


def configure_paths(
    tree: DefineTree,
    registry: PackageRegistry,
    directory: Path,
    parent_paths: Paths,
    ignore: frozenset[str] = frozenset(),
) -> None:
    """Walk *directory* and define search paths for every directory in it.

    Each directory gets itself on its unit and include paths.  Manifests found
    in a directory add their package's resolved paths on top, scoped to the
    package's directory tree.

    *parent_paths* is passed down unchanged to every subdirectory; the define
    tree's scoping is what carries values from parent to child directories.
    """
    if ignore_directory(directory, ignore):
        return

    logger.debug("--- %s ---", directory)
    # Same form as Package.directory, so package scopes cover the walk.
    tree.add(_directory_defaults(canonical_path(directory)))

    try:
        manifests = list_manifests(directory)
        subdirs = list_subdirectories(directory)
    except OSError as exc:
        logger.warning("Skipping %s: %s", directory, exc)
        return

    packages: list[Package] = []
    for manifest in manifests:
        try:
            packages.append(registry.get_package_or_project(manifest))
        except ParseError as exc:
            logger.warning("Skipping manifest %s", exc)

    for pkg in packages:
        resolve_paths(pkg)
    for pkg in packages:
        configure_package(tree, pkg)
        logger.debug("  UnitPath of %s: %s", pkg.name, ";".join(pkg.resolved_paths.unit_path))

    for subdir in subdirs:
        configure_paths(tree, registry, subdir, parent_paths, ignore)
