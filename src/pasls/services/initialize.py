"""Initialize handshake: configure the engine and scan the workspace.

The whole scan runs synchronously inside the ``initialize`` request:

1. Merge client options with settings guessed from Lazarus config files.
2. Initialize the engine.
3. Register every manifest under the root and resolve dependencies.
4. Repair missing dependencies workspace-wide.
5. Publish resolved search paths into the define tree.
"""

from __future__ import annotations

import logging
import tempfile
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse
from urllib.request import url2pathname

from pasls.codetools.configure import configure_paths
from pasls.codetools.engine import CodeToolsEngine, ToolchainOptions
from pasls.infrastructure.config import WorkspaceConfig, load_workspace_config
from pasls.infrastructure.lazarus_config import guess_codetools_config
from pasls.packages.manifest import Paths
from pasls.packages.registry import PackageRegistry, canonical_path
from pasls.packages.workspace import (
    guess_missing_deps_for_all_packages,
    load_all_packages_under_path,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

logger = logging.getLogger(__name__)

SERVER_NAME = "Pascal Language Server"

# JSON-RPC error code for invalid method parameters.
INVALID_PARAMS = -32602

# initializationOptions key -> ToolchainOptions field
_CLIENT_OPTION_KEYS: dict[str, str] = {
    "PP": "fpc_path",
    "FPCDIR": "fpc_src_dir",
    "LAZARUSDIR": "lazarus_src_dir",
    "FPCTARGET": "target_os",
    "FPCTARGETCPU": "target_cpu",
}


class InitializeError(ValueError):
    """The initialize request cannot be served; reported as a protocol error."""

    def __init__(self, message: str, code: int = INVALID_PARAMS) -> None:
        self.code = code
        super().__init__(message)

    def to_error(self) -> dict[str, Any]:
        return {"code": self.code, "message": str(self)}


@dataclass
class ScanSession:
    """State for one initialize call: registry, engine and merged options."""

    registry: PackageRegistry = field(default_factory=PackageRegistry)
    engine: CodeToolsEngine = field(default_factory=CodeToolsEngine)
    options: ToolchainOptions = field(default_factory=ToolchainOptions)
    root: Path | None = None
    config: WorkspaceConfig = field(default_factory=WorkspaceConfig)
    manifests_found: int = 0

    def unresolved(self) -> list[tuple[str, str]]:
        """``(package, dependency)`` name pairs left without a target."""
        return [
            (pkg.name, dep.name)
            for pkg in self.registry
            for dep in pkg.dependencies
            if dep.package is None
        ]


def uri_to_path(uri: object) -> Path:
    """Convert a ``file://`` URI to an absolute directory path.

    Raises :class:`InitializeError` for anything that is not a local file URI.
    """
    if not isinstance(uri, str) or not uri:
        msg = "rootUri must be a non-empty string"
        raise InitializeError(msg)

    parsed = urlparse(uri)
    if parsed.scheme != "file":
        msg = f"rootUri is not a file URI: {uri!r}"
        raise InitializeError(msg)
    if parsed.netloc not in ("", "localhost"):
        msg = f"rootUri refers to a remote host: {uri!r}"
        raise InitializeError(msg)

    path = Path(url2pathname(parsed.path))
    if not parsed.path or not path.is_absolute():
        msg = f"rootUri has no absolute path: {uri!r}"
        raise InitializeError(msg)
    return path


def apply_client_options(options: ToolchainOptions, init_options: object) -> None:
    """Copy recognised string values from ``initializationOptions``."""
    if init_options is None:
        return
    if not isinstance(init_options, dict):
        msg = "initializationOptions must be an object"
        raise InitializeError(msg)
    for key, field_name in _CLIENT_OPTION_KEYS.items():
        value = init_options.get(key)
        if isinstance(value, str):
            setattr(options, field_name, value)


def scratch_file_path() -> str:
    """A fresh, not yet existing scratch source file name."""
    return str(Path(tempfile.gettempdir()) / f"pasls-{uuid.uuid4().hex}.pas")


def scan_workspace(session: ScanSession, root: Path) -> None:
    """Load, repair and configure every package below *root*."""
    ignore = session.config.ignore_dirs
    registry = session.registry

    session.manifests_found = load_all_packages_under_path(registry, root, ignore)
    guess_missing_deps_for_all_packages(registry, root, ignore)
    configure_paths(session.engine.define_tree, registry, root, Paths(), ignore)

    logger.info(
        "Scanned %s: %d manifest(s), %d package(s) registered, %d unresolved dependency(ies)",
        root,
        session.manifests_found,
        len(registry),
        len(session.unresolved()),
    )


def server_capabilities() -> dict[str, Any]:
    """The ``initialize`` result announced to the client."""
    return {
        "serverInfo": {"name": SERVER_NAME},
        "capabilities": {
            # 1 = full document sync
            "textDocumentSync": {"openClose": True, "change": 1},
            "completionProvider": {
                "triggerCharacters": None,
                "allCommitCharacters": None,
                "resolveProvider": False,
            },
            "signatureHelpProvider": {
                "triggerCharacters": ["(", ","],
                "retriggerCharacters": [],
            },
            "declarationProvider": True,
            "definitionProvider": True,
        },
        "workspaceFolders": True,
    }


def handle_initialize(
    session: ScanSession,
    params: object,
    *,
    config_dirs: Iterable[Path] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Serve an ``initialize`` request.

    Parameters
    ----------
    session:
        Fresh session receiving the registry, engine state and options.
    params:
        Request ``params`` object (``rootUri``, ``initializationOptions``).
    config_dirs:
        Lazarus config directories to search instead of the defaults.
    environ:
        Environment used for engine defaults (``os.environ`` if omitted).

    Raises
    ------
    InitializeError
        If the request is malformed; nothing is scanned in that case.
    """
    if not isinstance(params, dict):
        msg = "initialize params must be an object"
        raise InitializeError(msg)

    options = session.options
    apply_client_options(options, params.get("initializationOptions"))
    root = uri_to_path(params.get("rootUri"))
    # Package scopes use resolved manifest paths; the walk must match them.
    try:
        root = Path(canonical_path(root))
    except (OSError, RuntimeError) as exc:
        msg = f"rootUri cannot be resolved: {exc}"
        raise InitializeError(msg) from exc

    session.root = root
    session.config = load_workspace_config(root)

    if config_dirs is None and session.config.lazarus_dirs is not None:
        config_dirs = [Path(d).expanduser() for d in session.config.lazarus_dirs]
    guess_codetools_config(options, config_dirs)
    if options.missing():
        logger.info("No value for toolchain setting(s): %s", ", ".join(options.missing()))

    options.project_dir = str(root)
    options.test_pascal_file = scratch_file_path()

    engine = session.engine
    engine.init(options, environ)
    engine.sort_for_history = True
    engine.sort_for_scope = True

    scan_workspace(session, root)

    return server_capabilities()
