"""Monoguard CLI entry point."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from monoguard import __version__


@click.group()
@click.version_option(version=__version__, prog_name="monoguard")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """Monoguard - dependency constraints for monorepo workspaces."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    level = logging.WARNING
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@main.command()
@click.option("--fix", is_flag=True, help="Write the changes back to the manifests.")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["rich", "json", "porcelain"]),
    default=None,
    help="Output format (default: rich if TTY, porcelain if piped).",
)
@click.option(
    "--strict",
    is_flag=True,
    help="Exit 1 on violations, or on pending changes when --fix is not given.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Constraints file (default: constraints.yml in the project root).",
)
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
def check(
    *,
    fix: bool,
    fmt: str | None,
    strict: bool,
    config_path: Path | None,
    project: Path | None,
) -> None:
    """Check workspace manifests against constraints.yml.

    Exit codes: 0 = clean or violations without --strict,
    1 = violations (or pending changes) with --strict, 2 = configuration error.
    """
    from monoguard.runner import ConstraintsError
    from monoguard.runner import check as run_check
    from monoguard.runner import format_json as _format_json
    from monoguard.runner import format_porcelain as _format_porcelain
    from monoguard.runner import format_rich as _format_rich

    project_root = project or Path.cwd()

    if fmt is None:
        fmt = "rich" if sys.stdout.isatty() else "porcelain"

    try:
        result = run_check(project_root, config_path=config_path, fix=fix)
    except ConstraintsError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    formatters = {
        "rich": _format_rich,
        "json": _format_json,
        "porcelain": _format_porcelain,
    }
    output = formatters[fmt](result)
    if output:
        click.echo(output)

    if strict and (result.violations or (result.changes and not fix)):
        sys.exit(1)


@main.command()
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
def workspaces(*, project: Path | None) -> None:
    """List workspaces with their dependency counts per type."""
    from rich.console import Console
    from rich.table import Table

    from monoguard.graph.project import Project
    from monoguard.manifest import DependencyType

    project_root = project or Path.cwd()
    try:
        graph = Project.load(project_root)
    except (OSError, ValueError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    table = Table(title="Workspaces")
    table.add_column("cwd", style="cyan")
    table.add_column("name")
    for dep_type in DependencyType:
        table.add_column(dep_type.name.lower(), justify="right")

    for ws in graph.workspaces():
        counts = [
            str(len(graph.dependencies(workspace=ws, dep_type=dep_type)))
            for dep_type in DependencyType
        ]
        table.add_row(ws.cwd, ws.ident or "-", *counts)

    Console().print(table)
