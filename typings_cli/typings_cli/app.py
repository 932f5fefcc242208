"""typings-impact CLI application -- Typer-based developer interface.

Provides commands for computing the packages affected by a change-set and
for generating the package search index.  Human-readable output goes to
*stderr* via Rich; machine-readable output (``--json``) goes to *stdout*
so that pipelines can compose cleanly.

Structural errors are printed verbatim and exit with code 1.  Anything
else (git failures, registry outages) propagates with a full traceback.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console

from typings_cli.display import display_affected, display_errors, display_search_summary

if TYPE_CHECKING:
    from typings_engine.config import Settings
    from typings_engine.models.changes import AffectedResult, FileChange
    from typings_engine.pipeline import EngineContext
    from typings_engine.search.search_index import SearchRecord

# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="typings-impact",
    help="Change impact analysis for a monorepo of type declaration packages.",
    no_args_is_help=True,
)
console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _setup(verbose: bool, **overrides: object) -> Settings:
    from typings_engine.config import load_settings
    from typings_engine.logging_config import configure_logging

    if verbose:
        overrides["debug"] = True
    settings = load_settings(**overrides)
    configure_logging(settings)
    return settings


def _result_payload(result: AffectedResult) -> dict[str, object]:
    return {
        "snapshot": result.snapshot,
        "ok": result.ok,
        "packageNames": sorted(result.package_names),
        "dependents": sorted(result.dependents),
        "errors": result.errors,
        "warnings": result.warnings,
    }


async def _evaluate(context: EngineContext, diffs: list[FileChange], snapshot: str) -> AffectedResult:
    from typings_engine.pipeline import get_affected_packages_from_diff

    try:
        return await get_affected_packages_from_diff(context, diffs, snapshot)
    finally:
        await context.registry.close()


# ---------------------------------------------------------------------------
# affected
# ---------------------------------------------------------------------------


@app.command()
def affected(
    repo: Path = typer.Argument(
        ...,
        help="Path to the repository checkout.",
        exists=True,
        file_okay=False,
        resolve_path=True,
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit the result as JSON on stdout.",
    ),
    branch: str | None = typer.Option(
        None,
        "--branch",
        help="Branch to diff against (default: TYPINGS_SOURCE_BRANCH or master).",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """List the packages changed by the working tree and everything depending on them."""
    from typings_engine.git.git_client import get_current_sha, get_git_diff, validate_repo
    from typings_engine.pipeline import EngineContext

    overrides: dict[str, object] = {}
    if branch:
        overrides["source_branch"] = branch
    settings = _setup(verbose, **overrides)

    validate_repo(repo)
    diffs = get_git_diff(repo, settings.source_branch, settings.source_remote)
    snapshot = get_current_sha(repo)
    context = EngineContext.from_repository(repo, settings)

    result = asyncio.run(_evaluate(context, diffs, snapshot))

    if json_output:
        typer.echo(json.dumps(_result_payload(result), indent=2))
    if not result.ok:
        display_errors(console, result.errors)
        raise typer.Exit(code=1)
    if not json_output:
        display_affected(console, result)


# ---------------------------------------------------------------------------
# search-index
# ---------------------------------------------------------------------------


async def _build_search_index(settings: Settings, repo: Path, skip_downloads: bool) -> list[SearchRecord]:
    from typings_engine.index.loader import load_package_index
    from typings_engine.registry.npm_client import NpmRegistryClient
    from typings_engine.search.search_index import create_search_index

    index = load_package_index(repo, settings)
    async with NpmRegistryClient.from_settings(settings) as registry:
        return await create_search_index(index, registry, settings, skip_downloads)


@app.command("search-index")
def search_index(
    repo: Path = typer.Argument(
        ...,
        help="Path to the repository checkout.",
        exists=True,
        file_okay=False,
        resolve_path=True,
    ),
    skip_downloads: bool = typer.Option(
        False,
        "--skip-downloads",
        help="Do not query download counts; every record gets 0.",
    ),
    output_dir: Path = typer.Option(
        Path("data"),
        "--output-dir",
        "-o",
        help="Directory to write the index files into.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Generate the package search index ranked by monthly downloads."""
    from typings_engine.search.search_index import write_search_index

    settings = _setup(verbose)
    records = asyncio.run(_build_search_index(settings, repo, skip_downloads))
    paths = write_search_index(records, output_dir, settings.search_index_head_size)

    display_search_summary(console, records)
    for path in paths:
        console.print(f"Wrote [bold]{path}[/bold]")
