"""Tests for pasls.services.initialize: the initialize handshake."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest

from pasls.codetools.define_tree import UNIT_PATH
from pasls.codetools.engine import ToolchainOptions
from pasls.services.initialize import (
    SERVER_NAME,
    InitializeError,
    ScanSession,
    apply_client_options,
    handle_initialize,
    scratch_file_path,
    server_capabilities,
    uri_to_path,
)

if TYPE_CHECKING:
    from tests.conftest import ManifestWriter


def _params(root: Path, **init_options: Any) -> dict[str, Any]:
    return {"rootUri": root.as_uri(), "initializationOptions": init_options}


class TestUriToPath:
    def test_file_uri(self, tmp_path: Path) -> None:
        assert uri_to_path(tmp_path.as_uri()) == tmp_path

    def test_percent_encoding(self, tmp_path: Path) -> None:
        target = tmp_path / "my project"
        assert uri_to_path(target.as_uri()) == target

    @pytest.mark.parametrize(
        "uri",
        [None, "", 42, "not a uri", "http://example.com/ws", "file://remote/share", "file:"],
    )
    def test_invalid(self, uri: object) -> None:
        with pytest.raises(InitializeError) as excinfo:
            uri_to_path(uri)
        assert excinfo.value.code == -32602


class TestApplyClientOptions:
    def test_recognised_keys(self) -> None:
        options = ToolchainOptions()
        apply_client_options(
            options,
            {
                "PP": "/usr/bin/fpc",
                "FPCDIR": "/usr/share/fpcsrc",
                "LAZARUSDIR": "/usr/lib/lazarus",
                "FPCTARGET": "linux",
                "FPCTARGETCPU": "x86_64",
                "Unknown": "ignored",
            },
        )
        assert options == ToolchainOptions(
            fpc_path="/usr/bin/fpc",
            fpc_src_dir="/usr/share/fpcsrc",
            lazarus_src_dir="/usr/lib/lazarus",
            target_os="linux",
            target_cpu="x86_64",
        )

    def test_non_string_values_ignored(self) -> None:
        options = ToolchainOptions()
        apply_client_options(options, {"PP": 3, "FPCTARGET": None})
        assert options == ToolchainOptions()

    def test_non_object_rejected(self) -> None:
        with pytest.raises(InitializeError):
            apply_client_options(ToolchainOptions(), ["PP"])


class TestHandleInitialize:
    def test_client_compiler_path_without_ide_config(self, tmp_path: Path) -> None:
        session = ScanSession()
        result = handle_initialize(
            session,
            _params(tmp_path, PP="/usr/bin/fpc"),
            config_dirs=[tmp_path / "no-lazarus"],
            environ={},
        )
        options = session.options
        assert options.fpc_path == "/usr/bin/fpc"
        assert options.fpc_src_dir == ""
        assert options.lazarus_src_dir == ""
        assert options.target_os == ""
        assert options.target_cpu == ""
        assert session.engine.initialized
        assert result["serverInfo"]["name"] == SERVER_NAME

    def test_malformed_root_scans_nothing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def _fail(*args: object, **kwargs: object) -> None:
            raise AssertionError("scan must not run")

        monkeypatch.setattr("pasls.services.initialize.scan_workspace", _fail)
        monkeypatch.setattr("pasls.services.initialize.guess_codetools_config", _fail)
        session = ScanSession()
        with pytest.raises(InitializeError) as excinfo:
            handle_initialize(session, {"rootUri": "::not-a-uri::"}, environ={})
        assert excinfo.value.to_error()["code"] == -32602
        assert not session.engine.initialized
        assert len(session.registry) == 0

    def test_params_must_be_object(self) -> None:
        with pytest.raises(InitializeError):
            handle_initialize(ScanSession(), None, config_dirs=[], environ={})

    def test_guessed_values_fill_gaps(self, tmp_path: Path) -> None:
        lazarus = tmp_path / "lazcfg"
        lazarus.mkdir()
        (lazarus / "environmentoptions.xml").write_text(
            '<CONFIG><EnvironmentOptions><CompilerFilename Value="/ide/fpc"/>'
            '<FPCSourceDirectory Value="/ide/fpcsrc"/></EnvironmentOptions></CONFIG>',
            encoding="utf-8",
        )
        workspace = tmp_path / "ws"
        workspace.mkdir()
        session = ScanSession()
        handle_initialize(
            session, _params(workspace, PP="/client/fpc"), config_dirs=[lazarus], environ={}
        )
        assert session.options.fpc_path == "/client/fpc"
        assert session.options.fpc_src_dir == "/ide/fpcsrc"

    def test_lazarus_dirs_from_workspace_config(self, tmp_path: Path) -> None:
        lazarus = tmp_path / "lazcfg"
        lazarus.mkdir()
        (lazarus / "fpcdefines.xml").write_text(
            '<CONFIG><FPCConfigs><Item1><RealCompiler OS="freebsd" CPU="x86_64"/></Item1>'
            "</FPCConfigs></CONFIG>",
            encoding="utf-8",
        )
        workspace = tmp_path / "ws"
        (workspace / ".pasls").mkdir(parents=True)
        (workspace / ".pasls" / "config.yml").write_text(
            f"lazarus_dirs:\n  - {lazarus}\n", encoding="utf-8"
        )
        session = ScanSession()
        handle_initialize(session, _params(workspace), environ={})
        assert session.options.target_os == "freebsd"

    def test_engine_receives_merged_options(self, tmp_path: Path) -> None:
        session = ScanSession()
        handle_initialize(
            session,
            _params(tmp_path, FPCTARGET="win64"),
            config_dirs=[],
            environ={"FPCTARGET": "linux", "FPCTARGETCPU": "arm"},
        )
        engine_options = session.engine.options
        assert engine_options is not None
        assert engine_options.target_os == "win64"
        assert engine_options.target_cpu == "arm"
        assert engine_options.project_dir == str(tmp_path)
        assert engine_options.test_pascal_file.endswith(".pas")
        assert session.engine.sort_for_history
        assert session.engine.sort_for_scope

    def test_full_scan(self, tmp_path: Path, write_lpk: ManifestWriter) -> None:
        # Leaf needs Util but has no idea where it is; Top knows.
        write_lpk(tmp_path / "leaf", "Leaf", deps=[("Util", "", False)], units="src")
        (tmp_path / "leaf" / "src").mkdir()
        write_lpk(
            tmp_path / "top",
            "Top",
            deps=[("Leaf", "../leaf/Leaf.lpk", False), ("Util", "../vendor/util.lpk", True)],
        )
        write_lpk(tmp_path / "vendor", "util")
        write_lpk(tmp_path / "lib", "Ignored")

        session = ScanSession()
        result = handle_initialize(session, _params(tmp_path), config_dirs=[], environ={})

        assert result == server_capabilities()
        assert session.manifests_found == 3
        assert session.unresolved() == []

        leaf_dir = tmp_path / "leaf"
        vendor = tmp_path / "vendor"
        unit_path = session.engine.define_tree.evaluate(str(leaf_dir / "src"))[UNIT_PATH]
        # Package paths first, then the directory's own default entry.
        assert unit_path == [
            str(leaf_dir),
            str(leaf_dir / "src"),
            str(vendor),
            str(leaf_dir / "src"),
        ]

    @pytest.mark.skipif(sys.platform == "win32", reason="needs directory symlinks")
    def test_symlinked_root(self, tmp_path: Path, write_lpk: ManifestWriter) -> None:
        real = tmp_path / "real"
        write_lpk(real / "app", "App", units="src")
        (real / "app" / "src").mkdir()
        link = tmp_path / "link"
        link.symlink_to(real, target_is_directory=True)

        session = ScanSession()
        handle_initialize(session, _params(link), config_dirs=[], environ={})

        assert session.root == real
        tree = session.engine.define_tree
        app = real / "app"
        expected = [str(app), str(app / "src"), str(app / "src")]
        assert tree.evaluate(str(app / "src"))[UNIT_PATH] == expected
        assert tree.evaluate(str(link / "app" / "src"))[UNIT_PATH] == expected

    @pytest.mark.skipif(sys.platform == "win32", reason="needs symlinks")
    def test_symlink_loop_in_manifest_does_not_abort(
        self, tmp_path: Path, write_lpk: ManifestWriter
    ) -> None:
        write_lpk(tmp_path / "good", "Good")
        bad = tmp_path / "bad"
        write_lpk(bad, "Bad", units="loop")
        (bad / "loop").symlink_to(bad / "loop")

        session = ScanSession()
        result = handle_initialize(session, _params(tmp_path), config_dirs=[], environ={})

        assert result == server_capabilities()
        assert session.registry.lookup("Good") == str(tmp_path / "good" / "Good.lpk")

    def test_unresolved_reported_not_raised(
        self, tmp_path: Path, write_lpk: ManifestWriter
    ) -> None:
        write_lpk(tmp_path, "App", deps=[("Ghost", "", False)])
        session = ScanSession()
        handle_initialize(session, _params(tmp_path), config_dirs=[], environ={})
        assert session.unresolved() == [("App", "Ghost")]


def test_capabilities_shape() -> None:
    caps = server_capabilities()
    assert caps["workspaceFolders"] is True
    capabilities = caps["capabilities"]
    assert capabilities["textDocumentSync"] == {"openClose": True, "change": 1}
    assert capabilities["completionProvider"] == {
        "triggerCharacters": None,
        "allCommitCharacters": None,
        "resolveProvider": False,
    }
    assert capabilities["signatureHelpProvider"] == {
        "triggerCharacters": ["(", ","],
        "retriggerCharacters": [],
    }
    assert capabilities["declarationProvider"] is True
    assert capabilities["definitionProvider"] is True


def test_scratch_file_paths_are_fresh() -> None:
    first, second = scratch_file_path(), scratch_file_path()
    assert first != second
    assert not Path(first).exists()
