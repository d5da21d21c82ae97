"""Directory-scoped configuration store for search-path variables.

Nodes are replayed in insertion order.  Each define appends its paths to the
value the variable already has at that point, so later (narrower) nodes
search after earlier ones.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path, PurePath

UNIT_PATH = "UnitPath"
INCLUDE_PATH = "IncludePath"
SRC_PATH = "SrcPath"

PATH_VARIABLES = (UNIT_PATH, INCLUDE_PATH, SRC_PATH)


@dataclass(frozen=True)
class Define:
    """Augment *variable* with *paths*.

    A recursive define applies to the node's directory and everything below
    it; a plain define applies to the directory only.
    """

    variable: str
    paths: tuple[str, ...]
    recurse: bool = False
    description: str = ""


@dataclass
class DefineNode:
    """A group of defines scoped to one directory."""

    name: str
    directory: str
    defines: list[Define] = field(default_factory=list)

    def add(self, define: Define) -> None:
        self.defines.append(define)

    def applies_to(self, directory: str, define: Define) -> bool:
        target = PurePath(directory)
        scope = PurePath(self.directory)
        if target == scope:
            return True
        return define.recurse and scope in target.parents


class DefineTree:
    """Ordered collection of :class:`DefineNode` objects."""

    def __init__(self) -> None:
        self._nodes: list[DefineNode] = []

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def nodes(self) -> list[DefineNode]:
        return list(self._nodes)

    def add(self, node: DefineNode) -> None:
        self._nodes.append(node)

    def evaluate(self, directory: str) -> dict[str, list[str]]:
        """Return the value of every path variable as seen from *directory*.

        *directory* is resolved first, so a path through a symlink sees the
        same values as its target.
        """
        directory = str(Path(directory).expanduser().resolve())
        values: dict[str, list[str]] = {name: [] for name in PATH_VARIABLES}
        for node in self._nodes:
            for define in node.defines:
                if node.applies_to(directory, define):
                    values.setdefault(define.variable, []).extend(define.paths)
        return values
