"""Code-intelligence engine facade: toolchain options and the define tree."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from typing import TYPE_CHECKING

from pasls.codetools.define_tree import DefineTree

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

# Environment variables the engine falls back to, per option field.
_ENV_DEFAULTS: dict[str, str] = {
    "fpc_path": "PP",
    "fpc_src_dir": "FPCDIR",
    "lazarus_src_dir": "LAZARUSDIR",
    "target_os": "FPCTARGET",
    "target_cpu": "FPCTARGETCPU",
}


@dataclass
class ToolchainOptions:
    """Compiler location and target settings handed to the engine."""

    fpc_path: str = ""
    fpc_src_dir: str = ""
    lazarus_src_dir: str = ""
    target_os: str = ""
    target_cpu: str = ""
    project_dir: str = ""
    test_pascal_file: str = ""

    def fill(self, field_name: str, value: str) -> bool:
        """Set *field_name* to *value* if it is empty and *value* is not.

        Returns ``True`` if the field was changed.
        """
        if getattr(self, field_name) or not value:
            return False
        setattr(self, field_name, value)
        return True

    def missing(self) -> list[str]:
        return [
            f.name for f in fields(self) if f.name in _ENV_DEFAULTS and not getattr(self, f.name)
        ]


def with_environment_defaults(
    options: ToolchainOptions, environ: Mapping[str, str] | None = None
) -> ToolchainOptions:
    """Return a copy of *options* with empty fields taken from the environment."""
    env = os.environ if environ is None else environ
    result = replace(options)
    for field_name, var in _ENV_DEFAULTS.items():
        result.fill(field_name, env.get(var, ""))
    return result


class CodeToolsEngine:
    """In-process stand-in for the code-intelligence engine.

    Holds the effective toolchain options, the directory-scoped define tree
    and the identifier-list sort preferences.
    """

    def __init__(self) -> None:
        self.define_tree = DefineTree()
        self.options: ToolchainOptions | None = None
        self.sort_for_history = False
        self.sort_for_scope = False

    @property
    def initialized(self) -> bool:
        return self.options is not None

    def init(self, options: ToolchainOptions, environ: Mapping[str, str] | None = None) -> None:
        """Initialize with *options*, filling gaps from environment defaults.

        *options* itself is left untouched.
        """
        self.options = with_environment_defaults(options, environ)
        logger.info(
            "Engine initialized: compiler=%r target=%s/%s project=%s",
            self.options.fpc_path,
            self.options.target_os or "?",
            self.options.target_cpu or "?",
            self.options.project_dir,
        )
