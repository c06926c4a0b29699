"""repodeps CLI - dependency extraction and README generation for repositories.

Usage:
    repodeps analyze <repo-path-or-url> [options]
    repodeps extract path/to/package.json
    repodeps readme https://github.com/pallets/flask --output README.md
    repodeps serve --port 8420
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from . import __version__
from .analyzer import AnalysisResult, DEPENDENCY_FILES, analyze, analyze_repo
from .config import DEFAULT_PORT, Settings
from .metadata import META_EXTRACTORS, extract_project_meta
from .readme import render_readme
from .records import DependencyType, ExtractedDependency, ParseError
from .registry import extract_dependencies_from_file, supported_manifests
from .repository import RepoInfo, RepositoryClient, RepositoryError

console = Console()

_URL = re.compile(r"^https?://")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _resolve_target(target: str, settings: Settings) -> tuple[RepoInfo | None, AnalysisResult]:
    """Analyze a local directory or a GitHub/GitLab URL.

    Returns (repo_info, analysis); repo_info is only available for URLs.
    """
    if _URL.match(target):
        with RepositoryClient(settings) as client:
            repo_info = client.get_repo_info(target)
        return repo_info, analyze(repo_info.files)

    path = Path(target).resolve()
    if not path.is_dir():
        raise click.ClickException(f"Not a directory: {target}")
    return None, analyze_repo(path, max_file_bytes=settings.max_file_bytes)


def _local_repo_info(path: Path) -> RepoInfo:
    return RepoInfo(
        name=path.name,
        description=None,
        language=None,
        platform="github",
        owner=path.parent.name or "owner",
    )


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def cli(verbose: bool):
    """repodeps - dependency extraction for software repositories.

    Reads the package manifests of a repository (npm, pip, Composer,
    Bundler, Go modules, Cargo, Maven, Gradle, pub, SwiftPM) and reports
    the declared dependencies, or renders a README from them.
    """
    _configure_logging(verbose)


@cli.command(name="analyze")
@click.argument("target", default=".")
@click.option("--json-only", is_flag=True, help="Output raw JSON to stdout (for piping)")
def analyze_command(target: str, json_only: bool):
    """Analyze a repository and list its dependencies.

    TARGET can be a local path or a GitHub / GitLab URL.

    Examples:

        repodeps analyze .

        repodeps analyze https://github.com/pallets/flask --json-only
    """
    settings = Settings.from_env()
    try:
        repo_info, analysis = _resolve_target(target, settings)
    except RepositoryError as e:
        raise click.ClickException(str(e))

    if json_only:
        result = {"analysisResult": analysis.to_dict()}
        if repo_info is not None:
            result["repoInfo"] = repo_info.to_dict()
        click.echo(json.dumps(result, indent=2))
        return

    console.print()
    console.print(Panel.fit(
        f"[bold cyan]repodeps v{__version__}[/] - {repo_info.name if repo_info else target}",
        border_style="cyan",
    ))
    _print_analysis_summary(analysis)
    _print_structure(analysis)
    _print_dependencies(analysis)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json-only", is_flag=True, help="Output raw JSON to stdout (for piping)")
def extract(file: Path, json_only: bool):
    """Extract dependencies from a single manifest file.

    The file is recognized by its exact name, e.g. package.json or Cargo.toml.
    """
    try:
        content = file.read_text(errors="replace")
        packages = extract_dependencies_from_file(file.name, content)
    except (ParseError, OSError) as e:
        raise click.ClickException(str(e))
    meta = extract_project_meta(file.name, content)

    if json_only:
        result = {"file": file.name, "packages": [p.to_dict() for p in packages]}
        if meta is not None:
            result.update(meta.to_dict())
        click.echo(json.dumps(result, indent=2))
        return

    if file.name not in supported_manifests():
        console.print(f"[yellow]Unrecognized manifest: {file.name}[/]")
        return

    _print_package_table(file.name, packages)
    if meta is not None and not meta.is_empty:
        console.print(f"Version: {meta.version or '-'} | License: {meta.license or '-'}", style="dim")


@cli.command()
@click.argument("target", default=".")
@click.option("--output", "-O", default=None, type=click.Path(dir_okay=False, path_type=Path),
              help="Write the README to this file instead of stdout")
def readme(target: str, output: Path | None):
    """Generate a README.md for a repository.

    TARGET can be a local path or a GitHub / GitLab URL.
    """
    settings = Settings.from_env()
    try:
        repo_info, analysis = _resolve_target(target, settings)
    except RepositoryError as e:
        raise click.ClickException(str(e))

    if repo_info is None:
        repo_info = _local_repo_info(Path(target).resolve())
    content = render_readme(repo_info, analysis)

    if output is None:
        click.echo(content)
        return
    try:
        output.write_text(content + "\n")
    except OSError as e:
        raise click.ClickException(str(e))
    console.print(f"[green]README written to {output}[/]")


@cli.command()
def formats():
    """List supported manifest formats."""
    table = Table(title="Supported Manifests", show_header=True)
    table.add_column("File", style="bold")
    table.add_column("Package manager")
    table.add_column("Version / license", justify="center")

    for name in supported_manifests():
        table.add_row(
            name,
            DEPENDENCY_FILES.get(name, "-"),
            "yes" if name in META_EXTRACTORS else "-",
        )
    console.print(table)


@cli.command()
@click.option("--port", "-p", default=DEFAULT_PORT, show_default=True, help="Port to serve on")
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind")
def serve(port: int, host: str):
    """Start the JSON API server."""
    from .serve import start_server

    console.print(f"[bold cyan]repodeps API[/] listening on http://{host}:{port}  (Ctrl+C to stop)")
    start_server(port=port, client=RepositoryClient(Settings.from_env()), host=host)


@cli.command()
def version():
    """Show version information."""
    console.print(f"repodeps v{__version__}")
    console.print("Dependency extraction for software repositories")


def _print_analysis_summary(analysis: AnalysisResult) -> None:
    """Print a compact summary of the analysis."""
    table = Table(title="Repository Analysis", show_header=False, border_style="dim")
    table.add_column("Key", style="bold")
    table.add_column("Value")

    table.add_row("Language", analysis.language)
    table.add_row("Package manager", analysis.package_manager or "-")
    if analysis.dependencies:
        table.add_row("Manifests", ", ".join(d.path for d in analysis.dependencies))
    if analysis.version:
        table.add_row("Version", analysis.version)
    if analysis.license:
        table.add_row("License", analysis.license)

    counts = []
    for dep_type in DependencyType:
        n = len(analysis.packages_of_type(dep_type))
        if n:
            counts.append(f"{n} {dep_type.value}")
    table.add_row("Dependencies", ", ".join(counts) or "none")

    console.print(table)


def _print_structure(analysis: AnalysisResult) -> None:
    structure = analysis.structure
    if not structure.directories and not structure.key_files:
        return
    tree = Tree("[bold]Project Structure[/]")
    for d in structure.directories:
        tree.add(f"{d}/")
    for f in structure.key_files:
        tree.add(f)
    console.print(tree)


def _print_dependencies(analysis: AnalysisResult) -> None:
    for dep_file in analysis.dependencies:
        if dep_file.packages:
            _print_package_table(dep_file.path, dep_file.packages)


def _print_package_table(title: str, packages: list[ExtractedDependency]) -> None:
    table = Table(title=title, show_header=True)
    table.add_column("Package", style="bold")
    table.add_column("Version")
    table.add_column("Type")
    for p in packages:
        style = None if p.type is DependencyType.PRODUCTION else "dim"
        table.add_row(p.name, p.version or "-", p.type.value, style=style)
    console.print(table)


if __name__ == "__main__":
    cli()
