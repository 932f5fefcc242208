"""Orchestrate one change-set evaluation.

``diff -> classify -> (validate deprecations) -> resolve``.  Structural
errors are returned as data in an :class:`AffectedResult`; registry and
git failures propagate.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import networkx as nx

from typings_engine.affected.resolver import get_affected_packages
from typings_engine.config import Settings
from typings_engine.deprecation.validator import validate_deprecations
from typings_engine.diff.change_classifier import classify_changes
from typings_engine.graph.dependency_graph import build_dependency_graph
from typings_engine.index.loader import load_package_index
from typings_engine.index.package_index import PackageIndex
from typings_engine.models.changes import AffectedResult, FileChange, Renamed
from typings_engine.registry.npm_client import NpmRegistryClient

logger = logging.getLogger(__name__)


@dataclass
class EngineContext:
    """Everything a pipeline run reads from.  Built once per process."""

    settings: Settings
    index: PackageIndex
    graph: nx.DiGraph
    registry: NpmRegistryClient
    limiter: asyncio.Semaphore

    @classmethod
    def create(
        cls,
        settings: Settings,
        index: PackageIndex,
        registry: NpmRegistryClient | None = None,
    ) -> EngineContext:
        """Build the dependency graph and limiter for *index*."""
        return cls(
            settings=settings,
            index=index,
            graph=build_dependency_graph(index),
            registry=registry or NpmRegistryClient.from_settings(settings),
            limiter=asyncio.Semaphore(settings.registry_concurrency),
        )

    @classmethod
    def from_repository(
        cls,
        repo_path: Path,
        settings: Settings,
        registry: NpmRegistryClient | None = None,
    ) -> EngineContext:
        return cls.create(settings, load_package_index(repo_path, settings), registry)


def touches_manifest(diffs: Sequence[FileChange], manifest_name: str) -> bool:
    """Return ``True`` if any event's path is the not-needed manifest."""
    for diff in diffs:
        if diff.path == manifest_name:
            return True
        if isinstance(diff, Renamed) and diff.source == manifest_name:
            return True
    return False


async def get_affected_packages_from_diff(
    context: EngineContext,
    diffs: Sequence[FileChange],
    snapshot: str = "",
) -> AffectedResult:
    """Evaluate *diffs* against the snapshot described by *context*.

    Parameters
    ----------
    context:
        Index, graph and registry of the snapshot after the change.
    diffs:
        File-level events in diff order.
    snapshot:
        Identifier of the snapshot, carried into the result.

    Returns
    -------
    AffectedResult
        Either the affected packages or the structural errors.  When
        deprecation errors reject the change-set, dangling-reference
        warnings are appended to the errors.

    Raises
    ------
    RegistryError
        On registry failures other than a missing package or version.
    """
    classification = classify_changes(diffs, context.settings.types_directory)
    if classification.change_set is None:
        return AffectedResult.rejected(list(classification.errors), snapshot)
    change_set = classification.change_set

    errors: list[str] = []
    if touches_manifest(diffs, context.settings.not_needed_manifest):
        errors = await validate_deprecations(context.index, change_set, context.registry, context.limiter)

    result = get_affected_packages(change_set, context.graph, snapshot)
    if errors:
        return AffectedResult.rejected(errors + result.warnings, snapshot)

    logger.info(
        "Changed packages (%d): %s",
        len(result.package_names),
        ", ".join(sorted(result.package_names)) or "-",
    )
    logger.info(
        "Dependent packages (%d): %s",
        len(result.dependents),
        ", ".join(sorted(result.dependents)) or "-",
    )
    return result
