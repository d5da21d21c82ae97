"""Pasls CLI entry point."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from pasls import __version__

if TYPE_CHECKING:
    from pasls.packages.registry import Package
    from pasls.services.initialize import ScanSession


@click.group()
@click.version_option(version=__version__, prog_name="pasls")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """Pasls - Lazarus workspace scanner for the Pascal language server."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", force=True)


def _sorted_packages(session: ScanSession) -> list[Package]:
    return sorted(session.registry, key=lambda p: p.name.lower())


def _package_to_dict(pkg: Package) -> dict[str, Any]:
    return {
        "name": pkg.name,
        "manifest": pkg.manifest,
        "dependencies": {
            dep.name: dep.package.manifest if dep.package is not None else None
            for dep in pkg.dependencies
        },
        "unit_path": pkg.resolved_paths.unit_path,
        "include_path": pkg.resolved_paths.include_path,
        "src_path": pkg.resolved_paths.src_path,
    }


@main.command()
@click.argument(
    "root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
def scan(*, root: Path, output_json: bool) -> None:
    """Resolve packages under ROOT and show their search paths."""
    from pasls.infrastructure.config import load_workspace_config
    from pasls.services.initialize import ScanSession, scan_workspace

    root = root.resolve()
    session = ScanSession(root=root, config=load_workspace_config(root))
    scan_workspace(session, root)

    packages = _sorted_packages(session)
    unresolved = session.unresolved()

    if output_json:
        payload = {
            "root": str(root),
            "packages": [_package_to_dict(pkg) for pkg in packages],
            "unresolved": [{"package": p, "dependency": d} for p, d in unresolved],
        }
        click.echo(json.dumps(payload, indent=2, ensure_ascii=False))
        return

    from rich.console import Console
    from rich.table import Table

    console = Console()
    table = Table(title=f"Packages under {root}")
    table.add_column("Package", style="bold")
    table.add_column("Dependencies")
    table.add_column("Unit path")
    table.add_column("Include path")

    for pkg in packages:
        dep_text = "\n".join(
            dep.name if dep.package is not None else f"[red]{dep.name} (missing)[/red]"
            for dep in pkg.dependencies
        )
        table.add_row(
            pkg.name,
            dep_text or "-",
            "\n".join(pkg.resolved_paths.unit_path),
            "\n".join(pkg.resolved_paths.include_path),
        )

    console.print(table)
    if unresolved:
        console.print(f"[yellow]{len(unresolved)} unresolved dependency(ies)[/yellow]")
    else:
        console.print("[green]All dependencies resolved.[/green]")


@main.command()
@click.argument(
    "root",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
)
@click.option("--root-uri", default=None, help="Send this rootUri verbatim instead of ROOT.")
@click.option("--pp", default=None, help="Compiler executable (PP).")
@click.option("--fpcdir", default=None, help="FPC source directory (FPCDIR).")
@click.option("--lazarusdir", default=None, help="Lazarus source directory (LAZARUSDIR).")
@click.option("--target-os", default=None, help="Target OS (FPCTARGET).")
@click.option("--target-cpu", default=None, help="Target CPU (FPCTARGETCPU).")
def initialize(
    *,
    root: Path,
    root_uri: str | None,
    pp: str | None,
    fpcdir: str | None,
    lazarusdir: str | None,
    target_os: str | None,
    target_cpu: str | None,
) -> None:
    """Run the initialize handshake for ROOT and print the response."""
    from pasls.services.initialize import InitializeError, ScanSession, handle_initialize

    init_options = {
        key: value
        for key, value in (
            ("PP", pp),
            ("FPCDIR", fpcdir),
            ("LAZARUSDIR", lazarusdir),
            ("FPCTARGET", target_os),
            ("FPCTARGETCPU", target_cpu),
        )
        if value is not None
    }
    params = {
        "rootUri": root_uri if root_uri is not None else root.resolve().as_uri(),
        "initializationOptions": init_options,
    }

    session = ScanSession()
    try:
        result = handle_initialize(session, params)
    except InitializeError as exc:
        click.echo(json.dumps({"error": exc.to_error()}), err=True)
        sys.exit(1)

    click.echo(json.dumps({"result": result}, indent=2))
