"""Guess toolchain settings from the Lazarus IDE's own configuration files.

Lazarus keeps ``environmentoptions.xml`` (compiler, FPC and Lazarus source
directories) and ``fpcdefines.xml`` (last detected target OS/CPU) in its
config directory.  Every read here is best-effort: a missing or broken file
just moves on to the next candidate directory.
"""

from __future__ import annotations

import logging
import os
import sys
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from pasls.codetools.engine import ToolchainOptions

logger = logging.getLogger(__name__)

ENVIRONMENT_OPTIONS = "environmentoptions.xml"
FPC_DEFINES = "fpcdefines.xml"


def default_config_dirs(
    environ: Mapping[str, str] | None = None, home: Path | None = None
) -> list[Path]:
    """Candidate Lazarus config directories, highest priority first.

    Per-user config directory, then ``~/.lazarus``, then the system-wide one.
    """
    env = os.environ if environ is None else environ
    home = home or Path.home()

    if sys.platform == "win32":
        local = env.get("LOCALAPPDATA") or str(home / "AppData" / "Local")
        user_dir = Path(local) / "lazarus"
        program_data = env.get("ALLUSERSPROFILE") or env.get("PROGRAMDATA", "C:/ProgramData")
        system_dir = Path(program_data) / "lazarus"
    else:
        xdg = env.get("XDG_CONFIG_HOME") or str(home / ".config")
        user_dir = Path(xdg) / "lazarus"
        system_dir = Path("/etc/lazarus")

    return [user_dir, home / ".lazarus", system_dir]


def load_lazarus_config(path: Path) -> ET.Element | None:
    """Parse *path* and return its ``CONFIG`` root, or ``None`` on any failure."""
    try:
        root = ET.parse(path).getroot()
    except (OSError, ET.ParseError) as exc:
        logger.debug("Cannot read %s: %s", path, exc)
        return None
    if root.tag != "CONFIG":
        logger.debug("Ignoring %s: root element is <%s>", path, root.tag)
        return None
    return root


def _get_value(parent: ET.Element | None, ident: str, attr: str = "Value") -> str:
    if parent is None:
        return ""
    node = parent.find(ident)
    if node is None:
        return ""
    return node.get(attr, "")


def read_environment_options(config_dir: Path) -> dict[str, str] | None:
    """Extract compiler and source directories from ``environmentoptions.xml``."""
    root = load_lazarus_config(config_dir / ENVIRONMENT_OPTIONS)
    if root is None:
        return None
    env_options = root.find("EnvironmentOptions")
    return {
        "lazarus_src_dir": _get_value(env_options, "LazarusDirectory"),
        "fpc_src_dir": _get_value(env_options, "FPCSourceDirectory"),
        "fpc_path": _get_value(env_options, "CompilerFilename"),
    }


def read_fpc_defines(config_dir: Path) -> dict[str, str] | None:
    """Extract the detected target from the first entry of ``fpcdefines.xml``."""
    root = load_lazarus_config(config_dir / FPC_DEFINES)
    if root is None:
        return None
    configs = root.find("FPCConfigs")
    first = configs[0] if configs is not None and len(configs) > 0 else None
    return {
        "target_os": _get_value(first, "RealCompiler", "OS"),
        "target_cpu": _get_value(first, "RealCompiler", "CPU"),
    }


_READERS = (read_environment_options, read_fpc_defines)


def guess_codetools_config(
    options: ToolchainOptions, config_dirs: Iterable[Path] | None = None
) -> list[str]:
    """Fill empty fields of *options* from Lazarus config files.

    Candidates are tried in order; within each, the first non-empty value for
    a field wins and later candidates never overwrite it.  Returns the names of
    the fields that were filled.
    """
    dirs = list(config_dirs) if config_dirs is not None else default_config_dirs()
    filled: list[str] = []
    for config_dir in dirs:
        for reader in _READERS:
            values = reader(config_dir)
            if values is None:
                continue
            for field_name, value in values.items():
                if options.fill(field_name, value):
                    logger.debug("%s = %r (from %s)", field_name, value, config_dir)
                    filled.append(field_name)
    return filled
