"""Workspace configuration from ``.pasls/config.yml``."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import yaml

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_DIR = ".pasls"
CONFIG_FILE = "config.yml"


@dataclass
class WorkspaceConfig:
    """Optional per-workspace settings.

    ``ignore_dirs`` adds directory names to skip during the scan.
    ``lazarus_dirs`` replaces the default Lazarus config candidates when set.
    """

    ignore_dirs: frozenset[str] = field(default_factory=frozenset)
    lazarus_dirs: list[str] | None = None


def load_workspace_config(root: Path) -> WorkspaceConfig:
    """Read ``<root>/.pasls/config.yml``, returning defaults if absent or invalid."""
    config_path = root / CONFIG_DIR / CONFIG_FILE
    if not config_path.is_file():
        return WorkspaceConfig()

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except (OSError, UnicodeDecodeError, yaml.YAMLError):
        logger.warning("Failed to read %s, using defaults", config_path)
        return WorkspaceConfig()
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: expected a mapping", config_path)
        return WorkspaceConfig()

    config = WorkspaceConfig()
    ignore = data.get("ignore_dirs")
    if isinstance(ignore, list):
        config.ignore_dirs = frozenset(str(name).lower() for name in ignore if name)
    dirs = data.get("lazarus_dirs")
    if isinstance(dirs, list) and dirs:
        config.lazarus_dirs = [str(d) for d in dirs]
    return config
