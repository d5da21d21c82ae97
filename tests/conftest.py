"""Shared test fixtures for Pasls."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol
from xml.sax.saxutils import quoteattr

import pytest

from pasls.packages.manifest import DeclaredDependency, ManifestData, Paths

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

# (name, DefaultFilename, Prefer)
DepSpec = tuple[str, str, bool]


class ManifestWriter(Protocol):
    def __call__(
        self,
        directory: Path,
        name: str,
        *,
        deps: Sequence[DepSpec] = (),
        units: str = "",
        includes: str = "",
        sources: str = "",
    ) -> Path: ...


def _required_items(deps: Sequence[DepSpec]) -> str:
    items = []
    for i, (dep_name, default, prefer) in enumerate(deps, start=1):
        default_xml = ""
        if default:
            prefer_attr = ' Prefer="True"' if prefer else ""
            default_xml = f"<DefaultFilename Value={quoteattr(default)}{prefer_attr}/>"
        items.append(
            f"<Item{i}><PackageName Value={quoteattr(dep_name)}/>{default_xml}</Item{i}>"
        )
    return "".join(items)


def _search_paths(units: str, includes: str, sources: str) -> str:
    return (
        "<SearchPaths>"
        f"<IncludeFiles Value={quoteattr(includes)}/>"
        f"<OtherUnitFiles Value={quoteattr(units)}/>"
        f"<SrcPath Value={quoteattr(sources)}/>"
        "</SearchPaths>"
    )


@pytest.fixture()
def write_lpk() -> ManifestWriter:
    """Return a helper writing ``<directory>/<name>.lpk``."""

    def _write(
        directory: Path,
        name: str,
        *,
        deps: Sequence[DepSpec] = (),
        units: str = "",
        includes: str = "",
        sources: str = "",
    ) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{name}.lpk"
        path.write_text(
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            "<CONFIG><Package Version=\"5\">"
            f"<Name Value={quoteattr(name)}/>"
            f"<CompilerOptions>{_search_paths(units, includes, sources)}</CompilerOptions>"
            f'<RequiredPkgs Count="{len(deps)}">{_required_items(deps)}</RequiredPkgs>'
            "</Package></CONFIG>\n",
            encoding="utf-8",
        )
        return path

    return _write


@pytest.fixture()
def write_lpi() -> ManifestWriter:
    """Return a helper writing ``<directory>/<name>.lpi``."""

    def _write(
        directory: Path,
        name: str,
        *,
        deps: Sequence[DepSpec] = (),
        units: str = "",
        includes: str = "",
        sources: str = "",
    ) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{name}.lpi"
        path.write_text(
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            "<CONFIG><ProjectOptions>"
            f"<Title Value={quoteattr(name)}/>"
            f'<RequiredPackages Count="{len(deps)}">{_required_items(deps)}</RequiredPackages>'
            "</ProjectOptions>"
            f"<CompilerOptions>{_search_paths(units, includes, sources)}</CompilerOptions>"
            "</CONFIG>\n",
            encoding="utf-8",
        )
        return path

    return _write


class FakeReader:
    """In-memory manifest reader keyed by canonical manifest path."""

    def __init__(self) -> None:
        self.manifests: dict[str, ManifestData] = {}
        self.calls: list[str] = []

    def add(
        self,
        path: str,
        name: str,
        deps: Sequence[DepSpec] = (),
        units: Sequence[str] = (),
    ) -> str:
        directory = path.rsplit("/", 1)[0]
        self.manifests[path] = ManifestData(
            name=name,
            directory=directory,
            paths=Paths(unit_path=list(units)),
            dependencies=[DeclaredDependency(n, p, pref) for n, p, pref in deps],
        )
        return path

    def __call__(self, path: Path) -> ManifestData:
        from pasls.packages.manifest import ParseError

        self.calls.append(str(path))
        try:
            return self.manifests[str(path)]
        except KeyError:
            raise ParseError(path, "no such manifest") from None


@pytest.fixture()
def fake_reader() -> FakeReader:
    return FakeReader()
