"""Infrastructure domain: workspace config and Lazarus IDE config discovery."""

from pasls.infrastructure.config import WorkspaceConfig, load_workspace_config
from pasls.infrastructure.lazarus_config import (
    default_config_dirs,
    guess_codetools_config,
    load_lazarus_config,
    read_environment_options,
    read_fpc_defines,
)

__all__ = [
    "WorkspaceConfig",
    "default_config_dirs",
    "guess_codetools_config",
    "load_lazarus_config",
    "load_workspace_config",
    "read_environment_options",
    "read_fpc_defines",
]
