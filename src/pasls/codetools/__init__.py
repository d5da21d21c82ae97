"""CodeTools domain: engine facade, define tree and search-path configuration."""

from pasls.codetools.configure import configure_package, configure_paths
from pasls.codetools.define_tree import (
    INCLUDE_PATH,
    PATH_VARIABLES,
    SRC_PATH,
    UNIT_PATH,
    Define,
    DefineNode,
    DefineTree,
)
from pasls.codetools.engine import CodeToolsEngine, ToolchainOptions, with_environment_defaults

__all__ = [
    "INCLUDE_PATH",
    "PATH_VARIABLES",
    "SRC_PATH",
    "UNIT_PATH",
    "CodeToolsEngine",
    "Define",
    "DefineNode",
    "DefineTree",
    "ToolchainOptions",
    "configure_package",
    "configure_paths",
    "with_environment_defaults",
]
