"""Manifest parser: read Lazarus project (``.lpi``) and package (``.lpk``) files.

Both formats are XML documents rooted at a ``CONFIG`` element.  Only the
fields needed for dependency resolution are extracted: the name, the three
search-path lists and the ordered list of required packages.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path

# Manifest suffixes, lower-case.
PROJECT_SUFFIX = ".lpi"
PACKAGE_SUFFIX = ".lpk"
MANIFEST_SUFFIXES = frozenset({PROJECT_SUFFIX, PACKAGE_SUFFIX})


class ParseError(ValueError):
    """Raised when a manifest cannot be read or is not a Lazarus document."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


@dataclass
class Paths:
    """Three ordered search-path lists.  Never deduplicated."""

    include_path: list[str] = field(default_factory=list)
    unit_path: list[str] = field(default_factory=list)
    src_path: list[str] = field(default_factory=list)

    def copy(self) -> Paths:
        return Paths(
            include_path=list(self.include_path),
            unit_path=list(self.unit_path),
            src_path=list(self.src_path),
        )

    def extend(self, other: Paths) -> None:
        """Append *other*'s lists to ours, keeping order."""
        self.include_path.extend(other.include_path)
        self.unit_path.extend(other.unit_path)
        self.src_path.extend(other.src_path)


@dataclass(frozen=True)
class DeclaredDependency:
    """A required package as written in the manifest."""

    name: str
    path: str  # absolute manifest/directory hint, or ""
    prefer: bool = False


@dataclass
class ManifestData:
    """Structured fields of one manifest."""

    name: str
    directory: str
    paths: Paths
    dependencies: list[DeclaredDependency]


def is_manifest(path: Path) -> bool:
    return path.suffix.lower() in MANIFEST_SUFFIXES


def _value(parent: ET.Element | None, tag: str, attr: str = "Value") -> str:
    """Return ``parent/tag/@attr`` or ``""`` if any link is missing."""
    if parent is None:
        return ""
    node = parent.find(tag)
    if node is None:
        return ""
    return node.get(attr, "")


def _split_paths(raw: str, base: Path) -> list[str]:
    """Split a ``;``-separated search path relative to *base*."""
    result: list[str] = []
    for entry in raw.split(";"):
        entry = entry.strip()
        if not entry:
            continue
        if "$(" in entry:
            # Unexpanded IDE macro, keep as written.
            result.append(entry)
            continue
        entry = entry.replace("\\", "/")
        result.append(str((base / entry).resolve()))
    return result


def _parse_search_paths(compiler_options: ET.Element | None, base: Path) -> Paths:
    search = compiler_options.find("SearchPaths") if compiler_options is not None else None
    include = _split_paths(_value(search, "IncludeFiles"), base)
    units = _split_paths(_value(search, "OtherUnitFiles"), base)
    sources = _split_paths(_value(search, "SrcPath"), base)
    own_dir = str(base)
    return Paths(
        include_path=[own_dir, *include],
        unit_path=[own_dir, *units],
        src_path=sources,
    )


def _resolve_hint(raw: str, base: Path, name: str) -> str:
    """Turn a ``DefaultFilename`` value into an absolute manifest path.

    A hint naming a directory is resolved to the package manifest inside it.
    """
    if not raw or "$(" in raw:
        return ""
    hint = (base / raw.replace("\\", "/")).resolve()
    if hint.is_dir():
        candidate = hint / f"{name}{PACKAGE_SUFFIX}"
        if candidate.is_file():
            return str(candidate)
        found = sorted(p for p in hint.iterdir() if p.suffix.lower() == PACKAGE_SUFFIX)
        return str(found[0]) if found else ""
    return str(hint)


def _parse_dependencies(required: ET.Element | None, base: Path) -> list[DeclaredDependency]:
    if required is None:
        return []
    deps: list[DeclaredDependency] = []
    # Item1, Item2, ... in document order.
    for item in required:
        if not item.tag.startswith("Item"):
            continue
        name = _value(item, "PackageName")
        if not name:
            continue
        default = item.find("DefaultFilename")
        raw_path = default.get("Value", "") if default is not None else ""
        prefer = default is not None and default.get("Prefer", "").lower() == "true"
        deps.append(
            DeclaredDependency(
                name=name,
                path=_resolve_hint(raw_path, base, name),
                prefer=prefer,
            )
        )
    return deps


def read_manifest(path: Path) -> ManifestData:
    """Parse a ``.lpi`` or ``.lpk`` file.

    Raises
    ------
    ParseError
        If the file cannot be read, is not well-formed XML, is not a Lazarus
        ``CONFIG`` document of a known kind, or its search paths cannot be
        resolved.
    """
    try:
        root = ET.parse(path).getroot()
    except (OSError, ET.ParseError) as exc:
        raise ParseError(path, str(exc)) from exc
    if root.tag != "CONFIG":
        raise ParseError(path, f"unexpected root element <{root.tag}>")

    base = path.parent
    suffix = path.suffix.lower()

    if suffix == PACKAGE_SUFFIX:
        section = root.find("Package")
        if section is None:
            raise ParseError(path, "missing <Package> section")
        name = _value(section, "Name") or path.stem
        options = section.find("CompilerOptions")
        required = section.find("RequiredPkgs")
    elif suffix == PROJECT_SUFFIX:
        section = root.find("ProjectOptions")
        name = _value(section, "Title") or path.stem
        options = root.find("CompilerOptions")
        required = section.find("RequiredPackages") if section is not None else None
    else:
        raise ParseError(path, "not a project or package file")

    # Resolving entries touches the filesystem: symlink loops, unreadable
    # hint directories.
    try:
        paths = _parse_search_paths(options, base)
        deps = _parse_dependencies(required, base)
    except (OSError, RuntimeError) as exc:
        raise ParseError(path, f"cannot resolve search paths: {exc}") from exc

    return ManifestData(name=name, directory=str(base), paths=paths, dependencies=deps)
