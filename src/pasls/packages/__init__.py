"""Packages domain: manifest parsing, registry, dependency and path resolution."""

from pasls.packages.manifest import (
    MANIFEST_SUFFIXES,
    DeclaredDependency,
    ManifestData,
    ParseError,
    Paths,
    is_manifest,
    read_manifest,
)
from pasls.packages.registry import (
    Dependency,
    Package,
    PackageRegistry,
    canonical_path,
)
from pasls.packages.resolver import (
    guess_missing_dependencies,
    resolve_deps,
    resolve_paths,
)
from pasls.packages.workspace import (
    guess_missing_deps_for_all_packages,
    ignore_directory,
    iter_packages,
    load_all_packages_under_path,
)

__all__ = [
    "MANIFEST_SUFFIXES",
    "DeclaredDependency",
    "Dependency",
    "ManifestData",
    "Package",
    "PackageRegistry",
    "ParseError",
    "Paths",
    "canonical_path",
    "guess_missing_dependencies",
    "guess_missing_deps_for_all_packages",
    "ignore_directory",
    "is_manifest",
    "iter_packages",
    "load_all_packages_under_path",
    "read_manifest",
    "resolve_deps",
    "resolve_paths",
]
